"""Recreation of deleted remote custom fields from stored snapshots.

recreate() rebuilds a creation payload from a snapshot:
- name and dataType copied (both required)
- parentId copied, or explicitly None for root placement
- position, placeholder, model, objectId, objectSchemaId copied when present
- choice types: options gathered from the first non-empty known source,
  normalized to trimmed strings, deduplicated, defaulted when none survive
- file uploads: accepted formats and file limit copied or defaulted

The payload is validated before any CRM call. After creation the caller
must point the config at the new field id and store the new definition as
its snapshot; restore_field() does both.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import structlog

from src.app.extraction.crm.adapter import CRMClient
from src.app.extraction.errors import NotFoundError, RecreationValidationError
from src.app.extraction.field_sync import refresh_snapshot
from src.app.extraction.field_types import (
    FILE_UPLOAD,
    default_choice_options,
    is_choice_type,
)
from src.app.extraction.repository import ExtractionRepository
from src.app.extraction.schemas import (
    CRMConfiguration,
    CustomFieldCreate,
    ExtractionFieldConfig,
    RecreationResult,
    RemoteFieldSnapshot,
)

logger = structlog.get_logger(__name__)

# Snapshot keys that may hold a choice field's options, in priority order.
OPTION_SOURCES: tuple[str, ...] = (
    "picklistOptions",
    "options",
    "choices",
    "values",
    "textBoxListOptions",
)

# Keys tried, in order, to read a label from a dict-shaped option.
OPTION_LABEL_KEYS: tuple[str, ...] = ("label", "value", "key", "name", "text")

DEFAULT_ACCEPTED_FORMATS = ".pdf,.jpg,.png"
DEFAULT_MAX_FILE_LIMIT = 1


# ── Option Handling ────────────────────────────────────────────────────────


def gather_options(snapshot: RemoteFieldSnapshot) -> list[Any]:
    """First non-empty option list found on the snapshot, else []."""
    data = snapshot.model_dump()
    for source in OPTION_SOURCES:
        value = data.get(source)
        if isinstance(value, list) and value:
            return value
    return []


def normalize_option(option: Any, index: int) -> str:
    """One option as a trimmed string ("" when it should be dropped)."""
    if isinstance(option, str):
        return option.strip()
    if isinstance(option, dict):
        for key in OPTION_LABEL_KEYS:
            label = option.get(key)
            if label not in (None, ""):
                return str(label).strip()
        return f"Option {index + 1}"
    if isinstance(option, (int, float)) and not isinstance(option, bool):
        return str(option)
    return f"Option {index + 1}"


def normalize_options(options: list[Any]) -> list[str]:
    normalized = (normalize_option(option, i) for i, option in enumerate(options))
    return [option for option in normalized if option]


# ── Recreation ─────────────────────────────────────────────────────────────


def can_recreate(config: ExtractionFieldConfig) -> bool:
    """True if the config's snapshot has enough to rebuild the field."""
    snapshot = config.original_remote_snapshot
    return bool(
        snapshot is not None
        and snapshot.name
        and snapshot.dataType
        and snapshot.fieldKey
    )


def recreate(snapshot: RemoteFieldSnapshot) -> CustomFieldCreate:
    """Build and validate a creation payload from a stored snapshot.

    Raises:
        RecreationValidationError: name or dataType missing, or the choice
            options are unusable.
    """
    missing = [key for key in ("name", "dataType") if not getattr(snapshot, key)]
    if missing:
        raise RecreationValidationError(
            f"Missing required fields for recreation: {', '.join(missing)}",
            details={"missing": missing},
        )

    parent_id = snapshot.parentId
    if isinstance(parent_id, str) and not parent_id.strip():
        parent_id = None

    fields: dict[str, Any] = {
        "name": snapshot.name,
        "dataType": snapshot.dataType,
        "parentId": parent_id,
    }
    if snapshot.position is not None:
        fields["position"] = snapshot.position
    if snapshot.placeholder:
        fields["placeholder"] = snapshot.placeholder
    if snapshot.model:
        fields["model"] = snapshot.model
    if snapshot.objectId:
        fields["objectId"] = snapshot.objectId
    if snapshot.objectSchemaId:
        fields["objectSchemaId"] = snapshot.objectSchemaId

    if is_choice_type(snapshot.dataType):
        options = normalize_options(gather_options(snapshot))
        if not options:
            options = default_choice_options(snapshot.dataType)
            logger.warning(
                "recreation.default_options",
                field_name=snapshot.name,
                data_type=snapshot.dataType,
                options=options,
            )
        fields["picklistOptions"] = options

    if snapshot.dataType == FILE_UPLOAD:
        fields["acceptedFormats"] = (
            snapshot.get_extra("acceptedFormats") or DEFAULT_ACCEPTED_FORMATS
        )
        fields["maxFileLimit"] = snapshot.get_extra("maxFileLimit") or DEFAULT_MAX_FILE_LIMIT

    payload = CustomFieldCreate(**fields)
    return validate_payload(payload)


def validate_payload(payload: CustomFieldCreate) -> CustomFieldCreate:
    """Validate a creation payload; duplicate options are collapsed, not rejected."""
    if not payload.name or not payload.name.strip():
        raise RecreationValidationError("Field name cannot be empty")
    if not payload.dataType:
        raise RecreationValidationError("Field dataType cannot be empty")

    if is_choice_type(payload.dataType):
        options = payload.picklistOptions or []
        if not options:
            raise RecreationValidationError(
                f"Choice field type {payload.dataType} requires at least one option"
            )

        invalid = [o for o in options if not isinstance(o, str) or not o.strip()]
        if invalid:
            raise RecreationValidationError(
                f"All options must be non-empty strings. Found {len(invalid)} invalid options",
                details={"invalid_count": len(invalid)},
            )

        unique = list(dict.fromkeys(options))
        if len(unique) != len(options):
            logger.warning(
                "recreation.duplicate_options_removed",
                field_name=payload.name,
                removed=len(options) - len(unique),
            )
            payload = payload.model_copy(update={"picklistOptions": unique})

    return payload


class FieldRecreationService:
    """Restores deleted remote custom fields and re-points their configs.

    Args:
        repository: Extraction field persistence.
        client_factory: Builds a CRMClient for a stored configuration.
    """

    def __init__(
        self,
        repository: ExtractionRepository,
        client_factory: Callable[[CRMConfiguration], CRMClient],
    ) -> None:
        self._repository = repository
        self._client_factory = client_factory

    recreate = staticmethod(recreate)
    can_recreate = staticmethod(can_recreate)

    async def restore_field(
        self, configuration: CRMConfiguration, field_id: str
    ) -> RecreationResult:
        """Recreate the remote field behind a stored config.

        Args:
            configuration: Owning CRM configuration (location and token).
            field_id: Id of the stored extraction field config.

        Returns:
            RecreationResult with the previous and new target keys.

        Raises:
            NotFoundError: The field config does not exist.
            RecreationValidationError: The snapshot cannot be recreated.
            UpstreamError: The CRM create call failed.
        """
        config = await self._repository.get_field(configuration.id, field_id)
        if config is None:
            raise NotFoundError(
                "Extraction field not found",
                details={"config_id": configuration.id, "field_id": field_id},
            )

        if not can_recreate(config):
            raise RecreationValidationError(
                "No original field data available for recreation. "
                "This field cannot be recreated.",
                details={"field_id": field_id},
            )

        snapshot = config.original_remote_snapshot
        payload = recreate(snapshot)
        logger.info(
            "recreation.started",
            field_id=field_id,
            field_name=payload.name,
            data_type=payload.dataType,
            parent_id=payload.parentId,
        )

        client = self._client_factory(configuration)
        created = await client.create_custom_field(configuration.location_id, payload)

        parent_preserved = (created.parentId or None) == payload.parentId
        if not parent_preserved:
            logger.warning(
                "recreation.parent_mismatch",
                field_id=field_id,
                expected=payload.parentId,
                actual=created.parentId,
            )

        new_snapshot = refresh_snapshot(created)
        await self._repository.replace_target(
            configuration.id, field_id, created.id, new_snapshot
        )

        logger.info(
            "recreation.complete",
            field_id=field_id,
            previous_target_key=config.target_key,
            new_target_key=created.id,
        )
        return RecreationResult(
            field_id=field_id,
            previous_target_key=config.target_key,
            new_target_key=created.id,
            snapshot=new_snapshot,
            parent_preserved=parent_preserved,
        )
