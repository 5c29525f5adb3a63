"""Shared test fixtures for the extraction suite.

Provides:
- InMemoryExtractionRepository: repository test double, no database
- make_field / make_contact / make_snapshot: builders with sensible defaults
- repo, configuration, crm_client fixtures (CRM client is an AsyncMock)
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any
from unittest.mock import AsyncMock

import pytest

from src.app.extraction.crm.adapter import CRMClient
from src.app.extraction.schemas import (
    ContactRecord,
    CRMConfiguration,
    ExtractionFieldConfig,
    ExtractionFieldCreate,
    ExtractionFieldUpdate,
    RemoteFieldSnapshot,
)
from src.app.extraction.standard_fields import classify_target_key

LOCATION_ID = "loc-123"


# ── Builders ─────────────────────────────────────────────────────────────────


def make_snapshot(**overrides: Any) -> RemoteFieldSnapshot:
    """Remote custom-field definition with sensible defaults."""
    defaults: dict[str, Any] = {
        "id": "cf_budget",
        "name": "Budget",
        "dataType": "TEXT",
        "fieldKey": "contact.budget",
        "parentId": "folder-1",
        "position": 50,
        "model": "contact",
    }
    defaults.update(overrides)
    return RemoteFieldSnapshot.model_validate(defaults)


def make_field(**overrides: Any) -> ExtractionFieldConfig:
    """Extraction field config with sensible defaults (a standard first name field)."""
    defaults: dict[str, Any] = {
        "id": str(uuid.uuid4()),
        "config_id": "config-1",
        "field_name": "First Name",
        "target_key": "contact.firstName",
        "field_type": "TEXT",
        "overwrite_policy": "always",
    }
    defaults.update(overrides)
    return ExtractionFieldConfig.model_validate(defaults)


def make_contact(**overrides: Any) -> ContactRecord:
    defaults: dict[str, Any] = {"id": "contact-1", "locationId": LOCATION_ID}
    defaults.update(overrides)
    return ContactRecord.model_validate(defaults)


# ── In-Memory Test Double ────────────────────────────────────────────────────


class InMemoryExtractionRepository:
    """In-memory ExtractionRepository for testing without database."""

    def __init__(self) -> None:
        self._configurations: dict[str, CRMConfiguration] = {}
        self._fields: dict[str, ExtractionFieldConfig] = {}

    def add_configuration(self, configuration: CRMConfiguration) -> CRMConfiguration:
        self._configurations[configuration.id] = configuration
        return configuration

    def add_field(self, field: ExtractionFieldConfig) -> ExtractionFieldConfig:
        self._fields[field.id] = field
        return field

    async def get_configuration(self, config_id: str) -> CRMConfiguration | None:
        return self._configurations.get(config_id)

    async def get_active_configuration_by_location(
        self, location_id: str
    ) -> CRMConfiguration | None:
        for configuration in self._configurations.values():
            if configuration.location_id == location_id and configuration.is_active:
                return configuration
        return None

    async def list_fields(self, config_id: str) -> list[ExtractionFieldConfig]:
        fields = [f for f in self._fields.values() if f.config_id == config_id]
        return sorted(fields, key=lambda f: f.sort_order)

    async def get_field(self, config_id: str, field_id: str) -> ExtractionFieldConfig | None:
        field = self._fields.get(field_id)
        if field and field.config_id == config_id:
            return field
        return None

    async def create_field(
        self, config_id: str, data: ExtractionFieldCreate
    ) -> ExtractionFieldConfig:
        now = datetime.now(timezone.utc)
        field = ExtractionFieldConfig(
            id=str(uuid.uuid4()),
            config_id=config_id,
            field_class=classify_target_key(data.target_key),
            created_at=now,
            updated_at=now,
            **data.model_dump(),
        )
        self._fields[field.id] = field
        return field

    async def update_field(
        self, config_id: str, field_id: str, data: ExtractionFieldUpdate
    ) -> ExtractionFieldConfig | None:
        values = data.model_dump(exclude_unset=True)
        if values.get("target_key"):
            values["field_class"] = classify_target_key(values["target_key"])
        return self._apply(config_id, field_id, values)

    async def update_snapshot(
        self,
        config_id: str,
        field_id: str,
        snapshot: RemoteFieldSnapshot,
        field_name: str | None = None,
    ) -> ExtractionFieldConfig | None:
        values: dict[str, Any] = {"original_remote_snapshot": snapshot}
        if field_name is not None:
            values["field_name"] = field_name
        return self._apply(config_id, field_id, values)

    async def replace_target(
        self,
        config_id: str,
        field_id: str,
        target_key: str,
        snapshot: RemoteFieldSnapshot,
    ) -> ExtractionFieldConfig | None:
        return self._apply(
            config_id,
            field_id,
            {
                "target_key": target_key,
                "field_class": classify_target_key(target_key),
                "original_remote_snapshot": snapshot,
            },
        )

    async def delete_field(self, config_id: str, field_id: str) -> bool:
        field = self._fields.get(field_id)
        if field is None or field.config_id != config_id:
            return False
        del self._fields[field_id]
        return True

    def _apply(
        self, config_id: str, field_id: str, values: dict[str, Any]
    ) -> ExtractionFieldConfig | None:
        field = self._fields.get(field_id)
        if field is None or field.config_id != config_id:
            return None
        updated = ExtractionFieldConfig.model_validate(
            {**field.model_dump(), **values, "updated_at": datetime.now(timezone.utc)}
        )
        self._fields[field_id] = updated
        return updated


# ── Fixtures ─────────────────────────────────────────────────────────────────


@pytest.fixture
def configuration() -> CRMConfiguration:
    return CRMConfiguration(
        id="config-1",
        location_id=LOCATION_ID,
        access_token="token-abc",
        business_name="Acme Plumbing",
    )


@pytest.fixture
def repo(configuration: CRMConfiguration) -> InMemoryExtractionRepository:
    repository = InMemoryExtractionRepository()
    repository.add_configuration(configuration)
    return repository


@pytest.fixture
def crm_client() -> AsyncMock:
    """CRMClient mock; every method is an AsyncMock."""
    return AsyncMock(spec=CRMClient)
