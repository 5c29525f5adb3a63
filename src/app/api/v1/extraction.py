"""REST API endpoints for contact field extraction.

Provides the contact update entry point for the upstream extractor, CRUD
over a configuration's extraction fields, remote field sync and recreation,
and the static field-type and standard-field catalogs used by the UI.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from src.app.api.deps import (
    get_contact_updater,
    get_extraction_repository,
    get_field_sync_service,
    get_recreation_service,
)
from src.app.extraction.errors import ExtractionError
from src.app.extraction.field_sync import FieldSyncService
from src.app.extraction.field_types import REMOTE_FIELD_TYPE_MAPPING, describe_field_type
from src.app.extraction.recreation import FieldRecreationService
from src.app.extraction.repository import ExtractionRepository
from src.app.extraction.schemas import (
    ContactUpdateRequest,
    ContactUpdateResult,
    CRMConfiguration,
    ExtractionFieldConfig,
    ExtractionFieldCreate,
    ExtractionFieldUpdate,
    RecreationResult,
)
from src.app.extraction.standard_fields import STANDARD_FIELDS_BY_CATEGORY
from src.app.extraction.updater import ContactUpdater

router = APIRouter(prefix="/extraction", tags=["extraction"])

# Failure reason -> HTTP status for structured failures.
REASON_STATUS: dict[str, int] = {
    "validation_error": status.HTTP_400_BAD_REQUEST,
    "not_found": status.HTTP_404_NOT_FOUND,
    "upstream_error": status.HTTP_502_BAD_GATEWAY,
    "partial_data": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "internal_error": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


# ── Response Schemas ─────────────────────────────────────────────────────────


class FieldSyncResponse(BaseModel):
    """Summary of a sync run."""

    refreshed: list[str] = Field(default_factory=list)
    renamed: dict[str, str] = Field(default_factory=dict)
    missing: list[str] = Field(default_factory=list)


class StandardFieldResponse(BaseModel):
    key: str
    name: str
    data_type: str
    description: str


# ── Helpers ──────────────────────────────────────────────────────────────────


def _http_error(exc: ExtractionError) -> HTTPException:
    return HTTPException(
        status_code=REASON_STATUS.get(exc.reason, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail=exc.to_result(),
    )


async def _get_configuration(
    repo: ExtractionRepository, config_id: str
) -> CRMConfiguration:
    configuration = await repo.get_configuration(config_id)
    if configuration is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Configuration {config_id} not found",
        )
    return configuration


async def _ensure_unique_target(
    repo: ExtractionRepository,
    config_id: str,
    target_key: str,
    field_id: str | None = None,
) -> None:
    for existing in await repo.list_fields(config_id):
        if existing.target_key == target_key and existing.id != field_id:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"A field targeting {target_key} already exists",
            )


# ── Contact Update ───────────────────────────────────────────────────────────


@router.post("/contacts/update", response_model=ContactUpdateResult)
async def update_contact(
    body: ContactUpdateRequest,
    updater: ContactUpdater = Depends(get_contact_updater),
) -> Any:
    """Merge extracted data into a contact under the location's overwrite policies."""
    result = await updater.update_contact(body)
    if result.success:
        return result
    return JSONResponse(
        status_code=REASON_STATUS.get(result.reason or "", status.HTTP_500_INTERNAL_SERVER_ERROR),
        content=result.model_dump(mode="json"),
    )


# ── Extraction Fields ────────────────────────────────────────────────────────


@router.get(
    "/configurations/{config_id}/fields",
    response_model=list[ExtractionFieldConfig],
)
async def list_fields(
    config_id: str,
    repo: ExtractionRepository = Depends(get_extraction_repository),
) -> Any:
    """List a configuration's extraction fields, ordered by sort_order."""
    await _get_configuration(repo, config_id)
    return await repo.list_fields(config_id)


@router.post(
    "/configurations/{config_id}/fields",
    response_model=ExtractionFieldConfig,
    status_code=201,
)
async def create_field(
    config_id: str,
    body: ExtractionFieldCreate,
    repo: ExtractionRepository = Depends(get_extraction_repository),
) -> Any:
    """Create an extraction field; 409 if its target key is already used."""
    await _get_configuration(repo, config_id)
    await _ensure_unique_target(repo, config_id, body.target_key)
    return await repo.create_field(config_id, body)


@router.patch(
    "/configurations/{config_id}/fields/{field_id}",
    response_model=ExtractionFieldConfig,
)
async def update_field(
    config_id: str,
    field_id: str,
    body: ExtractionFieldUpdate,
    repo: ExtractionRepository = Depends(get_extraction_repository),
) -> Any:
    if body.target_key:
        await _ensure_unique_target(repo, config_id, body.target_key, field_id=field_id)
    field = await repo.update_field(config_id, field_id, body)
    if field is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Field {field_id} not found",
        )
    return field


@router.delete(
    "/configurations/{config_id}/fields/{field_id}",
    status_code=204,
)
async def delete_field(
    config_id: str,
    field_id: str,
    repo: ExtractionRepository = Depends(get_extraction_repository),
) -> Response:
    deleted = await repo.delete_field(config_id, field_id)
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Field {field_id} not found",
        )
    return Response(status_code=204)


# ── Remote Field Sync & Recreation ───────────────────────────────────────────


@router.post(
    "/configurations/{config_id}/fields/sync",
    response_model=FieldSyncResponse,
)
async def sync_fields(
    config_id: str,
    repo: ExtractionRepository = Depends(get_extraction_repository),
    service: FieldSyncService = Depends(get_field_sync_service),
) -> Any:
    """Refresh stored snapshots from the live CRM schema."""
    configuration = await _get_configuration(repo, config_id)
    try:
        result = await service.refresh_configuration(configuration)
    except ExtractionError as exc:
        raise _http_error(exc) from exc

    return FieldSyncResponse(
        refreshed=[u.field_id for u in result.updated],
        renamed={u.field_id: u.new_name for u in result.renamed if u.new_name},
        missing=result.missing,
    )


@router.post(
    "/configurations/{config_id}/fields/{field_id}/recreate",
    response_model=RecreationResult,
)
async def recreate_field(
    config_id: str,
    field_id: str,
    repo: ExtractionRepository = Depends(get_extraction_repository),
    service: FieldRecreationService = Depends(get_recreation_service),
) -> Any:
    """Recreate a deleted remote field from its stored snapshot."""
    configuration = await _get_configuration(repo, config_id)
    try:
        return await service.restore_field(configuration, field_id)
    except ExtractionError as exc:
        raise _http_error(exc) from exc


# ── Catalogs ─────────────────────────────────────────────────────────────────


@router.get("/field-types")
async def list_field_types() -> list[dict[str, Any]]:
    """Remote custom-field types with their local type, label, icon and hint."""
    return [describe_field_type(data_type) for data_type in REMOTE_FIELD_TYPE_MAPPING]


@router.get(
    "/standard-fields",
    response_model=dict[str, list[StandardFieldResponse]],
)
async def list_standard_fields() -> Any:
    """Standard contact fields operators can target, grouped by category."""
    return {
        category: [
            StandardFieldResponse(
                key=f.key,
                name=f.name,
                data_type=f.data_type,
                description=f.description,
            )
            for f in fields
        ]
        for category, fields in STANDARD_FIELDS_BY_CATEGORY.items()
    }
