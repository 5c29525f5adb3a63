"""Pydantic schemas for contact field extraction -- configs, snapshots, records, results.

Defines all structured types used by the extraction core:
- Enums: OverwritePolicy (FieldClass lives in standard_fields)
- Extracted data: ExtractedValue closed union, ABSENT sentinel
- Configuration: CRMConfiguration, ExtractionFieldConfig, ExtractionFieldCreate/Update
- Remote schema: RemoteFieldSnapshot, CustomFieldCreate
- Target record: ContactRecord, CustomFieldValue
- Results: MergeResult, FieldSnapshotUpdate, FieldSyncResult, RecreationResult,
  ContactUpdateRequest, ContactUpdateResult
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

import structlog
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from src.app.extraction.standard_fields import FieldClass, classify_target_key

logger = structlog.get_logger(__name__)


# ── Extracted Data ──────────────────────────────────────────────────────────

ExtractedValue = str | int | float | bool | list[Any] | None
ExtractedData = dict[str, ExtractedValue]


class _Absent:
    """Marker for an attribute the record does not carry at all."""

    _instance: _Absent | None = None

    def __new__(cls) -> _Absent:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False


ABSENT = _Absent()


# ── Enums ───────────────────────────────────────────────────────────────────


class OverwritePolicy(str, Enum):
    """Per-field rule governing whether an extracted value replaces an existing one.

    ASK is accepted because stored configs and UI copy use it, but there is
    no interactive path: it evaluates exactly like ALWAYS.
    """

    ALWAYS = "always"
    IF_EMPTY = "if_empty"
    NEVER = "never"
    ASK = "ask"

    @classmethod
    def parse(cls, value: Any) -> OverwritePolicy:
        """Coerce a stored value, falling back to ALWAYS when absent or unknown."""
        if isinstance(value, cls):
            return value
        if value is None or value == "":
            return cls.ALWAYS
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            logger.warning("extraction.unknown_overwrite_policy", policy=value)
            return cls.ALWAYS


# ── Remote Field Schema ─────────────────────────────────────────────────────


class RemoteFieldSnapshot(BaseModel):
    """Point-in-time copy of a remote custom field definition.

    Attribute names follow the CRM's wire format. Keys the CRM returns that
    are not modeled here (``options``, ``textBoxListOptions``,
    ``acceptedFormats``...) are kept verbatim so recreation can use them.
    """

    model_config = ConfigDict(extra="allow", protected_namespaces=())

    id: str | None = None
    name: str | None = None
    dataType: str | None = None
    fieldKey: str | None = None
    parentId: str | None = None
    position: int | float | None = None
    model: str | None = None
    objectId: str | None = None
    objectSchemaId: str | None = None
    placeholder: str | None = None
    picklistOptions: list[Any] | None = None

    def get_extra(self, key: str, default: Any = None) -> Any:
        """Read an unmodeled wire attribute."""
        return (self.model_extra or {}).get(key, default)


class CustomFieldCreate(BaseModel):
    """Creation payload for a remote custom field, rebuilt from a snapshot.

    ``parentId`` is always present: a folder id, or None for root placement.
    """

    model_config = ConfigDict(protected_namespaces=())

    name: str
    dataType: str
    parentId: str | None
    position: int | float | None = None
    placeholder: str | None = None
    model: str | None = None
    objectId: str | None = None
    objectSchemaId: str | None = None
    picklistOptions: list[str] | None = None
    acceptedFormats: str | None = None
    maxFileLimit: int | None = None


# ── Configuration ───────────────────────────────────────────────────────────


class CRMConfiguration(BaseModel):
    """Owning configuration for a CRM location (one per connected location)."""

    id: str
    location_id: str
    access_token: str = ""
    business_name: str | None = None
    is_active: bool = True


class ExtractionFieldConfig(BaseModel):
    """Operator configuration for one extracted attribute.

    ``target_key`` is either a dotted standard attribute path
    (``contact.firstName``) or an opaque custom field id, and is unique per
    owning configuration. ``field_class`` is derived from ``target_key`` when
    not supplied and then stored.
    """

    id: str
    config_id: str | None = None
    field_name: str
    description: str | None = None
    target_key: str
    field_key: str | None = None
    field_type: str = "TEXT"
    field_class: FieldClass | None = None
    overwrite_policy: OverwritePolicy = OverwritePolicy.ALWAYS
    original_remote_snapshot: RemoteFieldSnapshot | None = None
    sort_order: int = 0
    placeholder: str | None = None
    picklist_options: list[str] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("overwrite_policy", mode="before")
    @classmethod
    def _coerce_policy(cls, value: Any) -> OverwritePolicy:
        return OverwritePolicy.parse(value)

    @field_validator("original_remote_snapshot", mode="before")
    @classmethod
    def _empty_snapshot_is_none(cls, value: Any) -> Any:
        if isinstance(value, dict) and not value:
            return None
        return value

    @model_validator(mode="after")
    def _derive_field_class(self) -> ExtractionFieldConfig:
        if self.field_class is None:
            self.field_class = classify_target_key(self.target_key)
        return self

    @property
    def is_standard(self) -> bool:
        return self.field_class == FieldClass.STANDARD


class ExtractionFieldCreate(BaseModel):
    """Request payload for creating an extraction field config."""

    field_name: str = Field(min_length=1)
    description: str | None = None
    target_key: str = Field(min_length=1)
    field_key: str | None = None
    field_type: str = "TEXT"
    overwrite_policy: OverwritePolicy = OverwritePolicy.ALWAYS
    original_remote_snapshot: RemoteFieldSnapshot | None = None
    sort_order: int = 0
    placeholder: str | None = None
    picklist_options: list[str] = Field(default_factory=list)

    @field_validator("overwrite_policy", mode="before")
    @classmethod
    def _coerce_policy(cls, value: Any) -> OverwritePolicy:
        return OverwritePolicy.parse(value)


class ExtractionFieldUpdate(BaseModel):
    """Partial update of an extraction field config (all fields optional)."""

    field_name: str | None = None
    description: str | None = None
    target_key: str | None = None
    field_key: str | None = None
    field_type: str | None = None
    overwrite_policy: OverwritePolicy | None = None
    original_remote_snapshot: RemoteFieldSnapshot | None = None
    sort_order: int | None = None
    placeholder: str | None = None
    picklist_options: list[str] | None = None

    @field_validator("overwrite_policy", mode="before")
    @classmethod
    def _coerce_policy(cls, value: Any) -> OverwritePolicy | None:
        if value is None:
            return None
        return OverwritePolicy.parse(value)


# ── Target Record ───────────────────────────────────────────────────────────


class CustomFieldValue(BaseModel):
    """One ``{id, value}`` custom attribute entry on a contact."""

    model_config = ConfigDict(extra="allow")

    id: str
    value: Any = None


class ContactRecord(BaseModel):
    """Current state of a CRM contact as returned by the record store.

    Only read by the core; all writes go through the update payload.
    """

    model_config = ConfigDict(extra="allow")

    id: str
    locationId: str | None = None
    name: str | None = None
    firstName: str | None = None
    lastName: str | None = None
    email: str | None = None
    phone: str | None = None
    companyName: str | None = None
    address1: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    postalCode: str | None = None
    website: str | None = None
    timezone: str | None = None
    dateOfBirth: str | None = None
    tags: list[Any] | None = None
    customFields: list[CustomFieldValue] = Field(default_factory=list)

    @field_validator("customFields", mode="before")
    @classmethod
    def _null_custom_fields(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            return [entry for entry in value if isinstance(entry, dict) and entry.get("id")]
        return value

    def get_attribute(self, name: str) -> Any:
        """Value of a named standard attribute, ABSENT if the record lacks it."""
        if name in type(self).model_fields:
            return getattr(self, name)
        return (self.model_extra or {}).get(name, ABSENT)

    def custom_field_value(self, field_id: str) -> Any:
        """Value of the custom attribute with this id, ABSENT if not set."""
        for entry in self.customFields:
            if entry.id == field_id:
                return entry.value
        return ABSENT


# ── Results ─────────────────────────────────────────────────────────────────


class MergeResult(BaseModel):
    """Output of the overwrite-policy engine. Ephemeral, never persisted.

    ``updated_keys`` / ``skipped_keys`` are the extracted keys, not the
    resolved target keys.
    ``written_attributes`` maps each updated key to the payload attribute
    carrying its value (``customFields`` for custom attributes).
    """

    update_payload: dict[str, Any] = Field(default_factory=dict)
    updated_keys: list[str] = Field(default_factory=list)
    skipped_keys: list[str] = Field(default_factory=list)
    written_attributes: dict[str, str] = Field(default_factory=dict)


class FieldSnapshotUpdate(BaseModel):
    """Refreshed snapshot (and optional rename) for one stored field config."""

    field_id: str
    snapshot: RemoteFieldSnapshot
    previous_name: str
    new_name: str | None = None

    @property
    def renamed(self) -> bool:
        return self.new_name is not None


class FieldSyncResult(BaseModel):
    """Outcome of reconciling stored snapshots against the live schema."""

    updated: list[FieldSnapshotUpdate] = Field(default_factory=list)
    missing: list[str] = Field(default_factory=list)

    @property
    def renamed(self) -> list[FieldSnapshotUpdate]:
        return [u for u in self.updated if u.renamed]


class RecreationResult(BaseModel):
    """Outcome of restoring a deleted remote field from its snapshot."""

    field_id: str
    previous_target_key: str
    new_target_key: str
    snapshot: RemoteFieldSnapshot
    parent_preserved: bool = True


class ContactUpdateRequest(BaseModel):
    """Invocation payload from the upstream extractor.

    ``extracted_data`` may be a mapping or the raw extractor output string;
    strings are parsed as JSON by the updater.
    """

    contact_id: str | None = Field(
        default=None, validation_alias=AliasChoices("contact_id", "ghl_contact_id")
    )
    location_id: str | None = None
    conversation_id: str | None = None
    extracted_data: dict[str, Any] | str | None = None


class ContactUpdateResult(BaseModel):
    """Structured result of a contact update; never raised across the core boundary."""

    success: bool
    message: str | None = None
    contact_id: str | None = None
    location_id: str | None = None
    updated_fields: list[str] = Field(default_factory=list)
    skipped_fields: list[str] = Field(default_factory=list)
    crm_response: Any = None
    error: str | None = None
    reason: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
