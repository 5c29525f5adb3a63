"""FastAPI application factory.

Creates the app with logging middleware, CORS, lifespan events for
database initialization and extraction service wiring, and the v1 API
router.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.app.config import get_settings
from src.app.core.database import close_db, get_session, init_db
from src.app.api.deps import build_crm_client_factory
from src.app.api.middleware.logging import LoggingMiddleware, configure_structlog
from src.app.api.v1.router import router as v1_router
from src.app.extraction.field_sync import FieldSyncService
from src.app.extraction.recreation import FieldRecreationService
from src.app.extraction.repository import ExtractionRepository
from src.app.extraction.updater import ContactUpdater


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: init DB and extraction services, close DB on shutdown."""
    log = structlog.get_logger(__name__)
    settings = get_settings()
    configure_structlog()
    await init_db()

    repository = ExtractionRepository(session_factory=get_session)
    client_factory = build_crm_client_factory(settings)

    app.state.extraction_repository = repository
    app.state.contact_updater = ContactUpdater(
        repository=repository, client_factory=client_factory
    )
    app.state.field_sync_service = FieldSyncService(
        repository=repository, client_factory=client_factory
    )
    app.state.recreation_service = FieldRecreationService(
        repository=repository, client_factory=client_factory
    )
    log.info("extraction.initialized", environment=settings.ENVIRONMENT.value)

    yield

    await close_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Field Sync API",
        version="0.1.0",
        description="AI-extracted contact field merge and CRM custom-field sync",
        lifespan=lifespan,
    )

    # Middleware is added in reverse order (last added = outermost)

    # CORS middleware
    if settings.CORS_ALLOWED_ORIGINS == "*":
        origins = ["*"]
    else:
        origins = [o.strip() for o in settings.CORS_ALLOWED_ORIGINS.split(",")]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Logging middleware (logs every request with timing)
    app.add_middleware(LoggingMiddleware)

    app.include_router(v1_router)

    return app


# Module-level app for uvicorn
app = create_app()
