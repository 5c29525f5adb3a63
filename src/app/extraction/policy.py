"""Overwrite-policy engine: merges extracted values into a contact update payload.

For each extracted (key, value) pair, in the order the extractor produced
them, the engine resolves the owning config, reads the contact's current
value, applies the config's overwrite policy and writes the result into an
update payload. The contact itself is never mutated.

Policies:
- always / ask: overwrite whenever a non-empty value was extracted
- if_empty: overwrite only when the current value is empty
- never: keep the current value
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

import structlog

from src.app.extraction.resolver import KeyResolver
from src.app.extraction.schemas import (
    ABSENT,
    ContactRecord,
    ExtractionFieldConfig,
    MergeResult,
    OverwritePolicy,
)
from src.app.extraction.standard_fields import (
    TAGS_ATTRIBUTE,
    FieldClass,
    to_native_attribute,
)

logger = structlog.get_logger(__name__)

CUSTOM_FIELDS_ATTRIBUTE = "customFields"


# ── Predicates ─────────────────────────────────────────────────────────────


def is_missing_extraction(value: Any) -> bool:
    """An extracted value that means "nothing was extracted".

    An empty list is a real value and is written.
    """
    return value is ABSENT or value is None or value == ""


def is_empty_value(value: Any) -> bool:
    """Empty predicate for current record values (used by ``if_empty``)."""
    if value is ABSENT or value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


def should_overwrite(policy: OverwritePolicy | str | None, current_value: Any) -> bool:
    """Decide whether an extracted value may replace ``current_value``."""
    resolved = OverwritePolicy.parse(policy)
    if resolved == OverwritePolicy.NEVER:
        return False
    if resolved == OverwritePolicy.IF_EMPTY:
        return is_empty_value(current_value)
    # ALWAYS, and ASK which has no interactive path
    return True


def union_tags(existing: Any, new: Any) -> list[Any]:
    """Existing tags first, then new ones, without duplicates."""
    current = _as_list(existing)
    incoming = _as_list(new)

    merged: list[Any] = []
    seen: set[Any] = set()
    for tag in [*current, *incoming]:
        marker = tag if isinstance(tag, (str, int, float, bool)) else repr(tag)
        if marker in seen:
            continue
        seen.add(marker)
        merged.append(tag)
    return merged


def _as_list(value: Any) -> list[Any]:
    if value is ABSENT or value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


# ── Engine ─────────────────────────────────────────────────────────────────


class OverwritePolicyEngine:
    """Builds a MergeResult from a contact, extracted data and field configs.

    Stateless; a fresh KeyResolver is built for every merge.
    """

    def merge(
        self,
        record: ContactRecord,
        extracted: Mapping[str, Any],
        configs: Iterable[ExtractionFieldConfig],
    ) -> MergeResult:
        """Merge extracted values into an update payload.

        Args:
            record: Current state of the contact, fetched for this merge.
            extracted: Extracted key -> value map, in extractor order.
            configs: Extraction field configs of the owning configuration.

        Returns:
            MergeResult whose payload holds only the standard attributes that
            change plus, when non-empty, a ``customFields`` list. Reported keys
            are the extracted keys.
        """
        resolver = KeyResolver(configs)
        payload: dict[str, Any] = {}
        custom_updates: list[dict[str, Any]] = []
        updated: list[str] = []
        skipped: list[str] = []
        written: dict[str, str] = {}

        for key, value in extracted.items():
            if is_missing_extraction(value):
                logger.debug("merge.skip_empty", key=key)
                skipped.append(key)
                continue

            config = resolver.resolve(key)
            if config is None:
                logger.debug("merge.skip_unresolved", key=key)
                skipped.append(key)
                continue

            if config.field_class == FieldClass.STANDARD:
                attribute = to_native_attribute(config.target_key)
                current_value = record.get_attribute(attribute)
            else:
                attribute = config.target_key
                current_value = record.custom_field_value(attribute)

            if not should_overwrite(config.overwrite_policy, current_value):
                logger.debug(
                    "merge.skip_policy",
                    key=key,
                    target_key=config.target_key,
                    policy=config.overwrite_policy.value,
                )
                skipped.append(key)
                continue

            if config.field_class == FieldClass.STANDARD:
                if attribute == TAGS_ATTRIBUTE:
                    base = payload.get(TAGS_ATTRIBUTE, current_value)
                    payload[TAGS_ATTRIBUTE] = union_tags(base, value)
                else:
                    payload[attribute] = value
                written[key] = attribute
            else:
                custom_updates.append({"id": attribute, "value": value})
                written[key] = CUSTOM_FIELDS_ATTRIBUTE

            logger.debug(
                "merge.update",
                key=key,
                target_key=config.target_key,
                field_class=config.field_class.value,
            )
            updated.append(key)

        if custom_updates:
            payload[CUSTOM_FIELDS_ATTRIBUTE] = custom_updates

        logger.info(
            "merge.completed",
            contact_id=record.id,
            updated=len(updated),
            skipped=len(skipped),
        )
        return MergeResult(
            update_payload=payload,
            updated_keys=updated,
            skipped_keys=skipped,
            written_attributes=written,
        )
