"""FastAPI dependency injection for extraction services.

The repository and services are created once in the application lifespan
and kept on app.state; these dependencies hand them to endpoints and raise
503 while they are not initialized. Tests override them via
app.dependency_overrides or by setting app.state directly.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import HTTPException, Request, status

from src.app.config import Settings
from src.app.extraction.crm.adapter import CRMClient
from src.app.extraction.crm.leadconnector import LeadConnectorClient
from src.app.extraction.field_sync import FieldSyncService
from src.app.extraction.recreation import FieldRecreationService
from src.app.extraction.repository import ExtractionRepository
from src.app.extraction.schemas import CRMConfiguration
from src.app.extraction.updater import ContactUpdater


def build_crm_client_factory(settings: Settings) -> Callable[[CRMConfiguration], CRMClient]:
    """Factory producing a LeadConnectorClient per stored configuration."""

    def factory(configuration: CRMConfiguration) -> CRMClient:
        return LeadConnectorClient.for_configuration(
            configuration,
            base_url=settings.CRM_API_BASE_URL,
            api_version=settings.CRM_API_VERSION,
            read_timeout=settings.CRM_READ_TIMEOUT,
            write_timeout=settings.CRM_WRITE_TIMEOUT,
            custom_field_model=settings.CUSTOM_FIELD_MODEL,
        )

    return factory


def _from_state(request: Request, name: str) -> object:
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Extraction service not initialized",
        )
    return value


async def get_extraction_repository(request: Request) -> ExtractionRepository:
    """Retrieve ExtractionRepository from app.state, 503 if not available."""
    return _from_state(request, "extraction_repository")  # type: ignore[return-value]


async def get_contact_updater(request: Request) -> ContactUpdater:
    return _from_state(request, "contact_updater")  # type: ignore[return-value]


async def get_field_sync_service(request: Request) -> FieldSyncService:
    return _from_state(request, "field_sync_service")  # type: ignore[return-value]


async def get_recreation_service(request: Request) -> FieldRecreationService:
    return _from_state(request, "recreation_service")  # type: ignore[return-value]
