"""Extraction repository -- async CRUD for CRM configurations and extraction fields.

Provides ExtractionRepository with the session_factory callable pattern.
Handles serialization between Pydantic schemas and SQLAlchemy models;
snapshots are stored via model_dump(mode="json") and read back with
model_validate().
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator, Callable
from typing import Any

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.app.extraction.models import CRMConfigurationModel, ExtractionFieldModel
from src.app.extraction.schemas import (
    CRMConfiguration,
    ExtractionFieldConfig,
    ExtractionFieldCreate,
    ExtractionFieldUpdate,
    RemoteFieldSnapshot,
)
from src.app.extraction.standard_fields import classify_target_key

logger = structlog.get_logger(__name__)


# ── Serialization Helpers ───────────────────────────────────────────────────


def _model_to_configuration(model: CRMConfigurationModel) -> CRMConfiguration:
    return CRMConfiguration(
        id=str(model.id),
        location_id=model.location_id,
        access_token=model.access_token or "",
        business_name=model.business_name,
        is_active=bool(model.is_active),
    )


def _model_to_field(model: ExtractionFieldModel) -> ExtractionFieldConfig:
    """Convert ExtractionFieldModel to ExtractionFieldConfig schema."""
    return ExtractionFieldConfig(
        id=str(model.id),
        config_id=str(model.config_id),
        field_name=model.field_name,
        description=model.description,
        target_key=model.target_key,
        field_key=model.field_key,
        field_type=model.field_type or "TEXT",
        field_class=model.field_class or None,
        overwrite_policy=model.overwrite_policy,
        original_remote_snapshot=model.original_remote_snapshot or None,
        sort_order=model.sort_order or 0,
        placeholder=model.placeholder,
        picklist_options=model.picklist_options or [],
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def _parse_uuid(value: str) -> uuid.UUID | None:
    """UUID from a path or stored id; None when malformed (treated as not found)."""
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def _snapshot_to_json(snapshot: RemoteFieldSnapshot | None) -> dict[str, Any] | None:
    if snapshot is None:
        return None
    return snapshot.model_dump(mode="json")


def _parse_ids(config_id: str, field_id: str) -> tuple[uuid.UUID, uuid.UUID] | None:
    config_uuid = _parse_uuid(config_id)
    field_uuid = _parse_uuid(field_id)
    if config_uuid is None or field_uuid is None:
        return None
    return config_uuid, field_uuid


# ── Repository ──────────────────────────────────────────────────────────────


class ExtractionRepository:
    """Async CRUD for CRM configurations and their extraction fields.

    Args:
        session_factory: Async callable that yields AsyncSession instances.
    """

    def __init__(
        self, session_factory: Callable[..., AsyncGenerator[AsyncSession, None]]
    ) -> None:
        self._session_factory = session_factory

    # ── Configurations ──────────────────────────────────────────────────────

    async def get_configuration(self, config_id: str) -> CRMConfiguration | None:
        config_uuid = _parse_uuid(config_id)
        if config_uuid is None:
            return None
        async for session in self._session_factory():
            stmt = select(CRMConfigurationModel).where(
                CRMConfigurationModel.id == config_uuid
            )
            result = await session.execute(stmt)
            model = result.scalar_one_or_none()
            if model is None:
                return None
            return _model_to_configuration(model)

    async def get_active_configuration_by_location(
        self, location_id: str
    ) -> CRMConfiguration | None:
        """Active configuration for a CRM location, None if absent or inactive."""
        async for session in self._session_factory():
            stmt = select(CRMConfigurationModel).where(
                CRMConfigurationModel.location_id == location_id,
                CRMConfigurationModel.is_active.is_(True),
            )
            result = await session.execute(stmt)
            model = result.scalars().first()
            if model is None:
                return None
            return _model_to_configuration(model)

    # ── Extraction Fields ───────────────────────────────────────────────────

    async def list_fields(self, config_id: str) -> list[ExtractionFieldConfig]:
        """All extraction fields of a configuration, ordered by sort_order."""
        config_uuid = _parse_uuid(config_id)
        if config_uuid is None:
            return []
        async for session in self._session_factory():
            stmt = (
                select(ExtractionFieldModel)
                .where(ExtractionFieldModel.config_id == config_uuid)
                .order_by(ExtractionFieldModel.sort_order, ExtractionFieldModel.created_at)
            )
            result = await session.execute(stmt)
            return [_model_to_field(m) for m in result.scalars().all()]

    async def get_field(self, config_id: str, field_id: str) -> ExtractionFieldConfig | None:
        ids = _parse_ids(config_id, field_id)
        if ids is None:
            return None
        async for session in self._session_factory():
            stmt = select(ExtractionFieldModel).where(
                ExtractionFieldModel.config_id == ids[0],
                ExtractionFieldModel.id == ids[1],
            )
            result = await session.execute(stmt)
            model = result.scalar_one_or_none()
            if model is None:
                return None
            return _model_to_field(model)

    async def create_field(
        self, config_id: str, data: ExtractionFieldCreate
    ) -> ExtractionFieldConfig:
        """Create an extraction field; its field_class is classified here and stored.

        Args:
            config_id: Owning configuration UUID string.
            data: ExtractionFieldCreate schema with field details.

        Returns:
            ExtractionFieldConfig with all persisted fields.
        """
        async for session in self._session_factory():
            model = ExtractionFieldModel(
                config_id=uuid.UUID(config_id),
                field_name=data.field_name,
                description=data.description,
                target_key=data.target_key,
                field_key=data.field_key,
                field_type=data.field_type,
                field_class=classify_target_key(data.target_key).value,
                overwrite_policy=data.overwrite_policy.value,
                original_remote_snapshot=_snapshot_to_json(data.original_remote_snapshot),
                placeholder=data.placeholder,
                picklist_options=list(data.picklist_options),
                sort_order=data.sort_order,
            )
            session.add(model)
            await session.commit()
            await session.refresh(model)
            logger.info(
                "extraction.field_created",
                config_id=config_id,
                field_id=str(model.id),
                target_key=model.target_key,
                field_class=model.field_class,
            )
            return _model_to_field(model)

    async def update_field(
        self, config_id: str, field_id: str, data: ExtractionFieldUpdate
    ) -> ExtractionFieldConfig | None:
        """Apply a partial update; a changed target_key is re-classified."""
        values: dict[str, Any] = data.model_dump(exclude_unset=True)
        if "overwrite_policy" in values and data.overwrite_policy is not None:
            values["overwrite_policy"] = data.overwrite_policy.value
        if "original_remote_snapshot" in values:
            values["original_remote_snapshot"] = _snapshot_to_json(
                data.original_remote_snapshot
            )
        if values.get("target_key"):
            values["field_class"] = classify_target_key(values["target_key"]).value
        return await self._update(config_id, field_id, values)

    async def update_snapshot(
        self,
        config_id: str,
        field_id: str,
        snapshot: RemoteFieldSnapshot,
        field_name: str | None = None,
    ) -> ExtractionFieldConfig | None:
        """Store a refreshed remote snapshot, and the new display name if renamed."""
        values: dict[str, Any] = {"original_remote_snapshot": _snapshot_to_json(snapshot)}
        if field_name is not None:
            values["field_name"] = field_name
        return await self._update(config_id, field_id, values)

    async def replace_target(
        self,
        config_id: str,
        field_id: str,
        target_key: str,
        snapshot: RemoteFieldSnapshot,
    ) -> ExtractionFieldConfig | None:
        """Point a field at a recreated remote field: new target and snapshot."""
        values: dict[str, Any] = {
            "target_key": target_key,
            "field_class": classify_target_key(target_key).value,
            "original_remote_snapshot": _snapshot_to_json(snapshot),
        }
        return await self._update(config_id, field_id, values)

    async def delete_field(self, config_id: str, field_id: str) -> bool:
        ids = _parse_ids(config_id, field_id)
        if ids is None:
            return False
        async for session in self._session_factory():
            stmt = delete(ExtractionFieldModel).where(
                ExtractionFieldModel.config_id == ids[0],
                ExtractionFieldModel.id == ids[1],
            )
            result = await session.execute(stmt)
            await session.commit()
            deleted = (result.rowcount or 0) > 0
            if deleted:
                logger.info("extraction.field_deleted", config_id=config_id, field_id=field_id)
            return deleted

    async def _update(
        self, config_id: str, field_id: str, values: dict[str, Any]
    ) -> ExtractionFieldConfig | None:
        ids = _parse_ids(config_id, field_id)
        if ids is None:
            return None
        async for session in self._session_factory():
            if values:
                stmt = (
                    update(ExtractionFieldModel)
                    .where(
                        ExtractionFieldModel.config_id == ids[0],
                        ExtractionFieldModel.id == ids[1],
                    )
                    .values(**values)
                )
                await session.execute(stmt)
                await session.commit()

            stmt = select(ExtractionFieldModel).where(
                ExtractionFieldModel.config_id == ids[0],
                ExtractionFieldModel.id == ids[1],
            )
            result = await session.execute(stmt)
            model = result.scalar_one_or_none()
            if model is None:
                return None
            return _model_to_field(model)
