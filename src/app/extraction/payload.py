"""Contact update payload sanitizer.

Drops read-only attributes, keeps only whitelisted writable standard
attributes plus the custom-field list, and reports "nothing to write" as
None instead of an empty payload.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

READ_ONLY_ATTRIBUTES: frozenset[str] = frozenset(
    {"id", "locationId", "dateAdded", "dateUpdated", "lastActivity"}
)

WRITABLE_STANDARD_ATTRIBUTES: frozenset[str] = frozenset(
    {
        "firstName",
        "lastName",
        "name",
        "email",
        "phone",
        "dnd",
        "dndSettings",
        "companyName",
        "address1",
        "address",
        "city",
        "state",
        "country",
        "postalCode",
        "website",
        "dateOfBirth",
        "tags",
    }
)

CUSTOM_FIELDS_ATTRIBUTE = "customFields"


def sanitize(payload: Mapping[str, Any]) -> dict[str, Any] | None:
    """Filter an update payload down to what the contact store accepts.

    Args:
        payload: Update payload produced by the overwrite-policy engine.

    Returns:
        The writable subset of ``payload``, or None when nothing writable
        remains (a valid outcome, not an error).
    """
    sanitized: dict[str, Any] = {}

    for name, value in payload.items():
        if name in READ_ONLY_ATTRIBUTES:
            logger.warning("payload.read_only_dropped", attribute=name)
            continue
        if name == CUSTOM_FIELDS_ATTRIBUTE:
            entries = _sanitize_custom_fields(value)
            if entries:
                sanitized[CUSTOM_FIELDS_ATTRIBUTE] = entries
            continue
        if name not in WRITABLE_STANDARD_ATTRIBUTES:
            logger.warning("payload.non_writable_dropped", attribute=name)
            continue
        sanitized[name] = value

    if not sanitized:
        logger.info("payload.nothing_to_write", attributes=list(payload.keys()))
        return None
    return sanitized


def _sanitize_custom_fields(entries: Any) -> list[dict[str, Any]]:
    if not isinstance(entries, list):
        logger.warning("payload.custom_fields_malformed", type=type(entries).__name__)
        return []

    kept: list[dict[str, Any]] = []
    for entry in entries:
        if not isinstance(entry, Mapping) or not entry.get("id"):
            logger.warning("payload.custom_field_without_id", entry=entry)
            continue
        kept.append({"id": entry["id"], "value": entry.get("value")})
    return kept
