"""Contact updater -- entry point for the upstream extractor.

Takes extracted data for one contact, merges it under the location's
overwrite policies and writes the sanitized result to the CRM. Every
outcome, failures included, comes back as a ContactUpdateResult; no
exception leaves update_contact().
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import structlog

from src.app.extraction.concurrency import gather_or_cancel
from src.app.extraction.crm.adapter import CRMClient
from src.app.extraction.errors import (
    ExtractionError,
    ExtractionValidationError,
    NotFoundError,
    PartialDataError,
)
from src.app.extraction.payload import sanitize
from src.app.extraction.policy import OverwritePolicyEngine
from src.app.extraction.repository import ExtractionRepository
from src.app.extraction.schemas import (
    CRMConfiguration,
    ContactUpdateRequest,
    ContactUpdateResult,
    MergeResult,
)

logger = structlog.get_logger(__name__)

NO_FIELDS_UPDATED = "No fields were updated due to overwrite policies"
NO_VALID_FIELDS = "No valid fields to update"
INTERNAL_ERROR = "internal_error"


def parse_extracted_data(raw: dict[str, Any] | str | None) -> dict[str, Any]:
    """Extracted data as a mapping; raw extractor output strings are JSON-parsed.

    Raises:
        PartialDataError: The string is not JSON, or not a JSON object.
    """
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, str):
        try:
            parsed = json.loads(raw)
        except ValueError as exc:
            raise PartialDataError(
                "Extracted data is not valid JSON",
                details={"error": str(exc)},
            ) from exc
        if not isinstance(parsed, dict):
            raise PartialDataError(
                "Extracted data must be a JSON object",
                details={"type": type(parsed).__name__},
            )
        return parsed
    raise PartialDataError(
        "Extracted data must be an object",
        details={"type": type(raw).__name__},
    )


def split_written_keys(
    merge: MergeResult, payload: dict[str, Any]
) -> tuple[list[str], list[str]]:
    """Split the merge's updated keys by whether the sanitized payload still carries them.

    Returns:
        (written, dropped), each in extractor order.
    """
    written: list[str] = []
    dropped: list[str] = []
    for key in merge.updated_keys:
        attribute = merge.written_attributes.get(key)
        if attribute is not None and attribute in payload:
            written.append(key)
        else:
            dropped.append(key)
    if dropped:
        logger.info("updater.keys_not_writable", keys=dropped)
    return written, dropped


class ContactUpdater:
    """Orchestrates load, merge, sanitize and write for a single contact.

    Args:
        repository: Extraction configuration and field persistence.
        client_factory: Builds a CRMClient for a stored configuration.
        engine: Overwrite-policy engine (a default instance when omitted).
    """

    def __init__(
        self,
        repository: ExtractionRepository,
        client_factory: Callable[[CRMConfiguration], CRMClient],
        engine: OverwritePolicyEngine | None = None,
    ) -> None:
        self._repository = repository
        self._client_factory = client_factory
        self._engine = engine or OverwritePolicyEngine()

    async def update_contact(self, request: ContactUpdateRequest) -> ContactUpdateResult:
        """Run one update and report the outcome as a structured result."""
        log = logger.bind(
            contact_id=request.contact_id,
            location_id=request.location_id,
            conversation_id=request.conversation_id,
        )
        try:
            result = await self._update(request)
        except ExtractionError as exc:
            log.warning("updater.failed", reason=exc.reason, error=exc.message)
            return ContactUpdateResult(
                contact_id=request.contact_id,
                location_id=request.location_id,
                **exc.to_result(),
            )
        except Exception as exc:
            log.exception("updater.internal_error", error=str(exc))
            return ContactUpdateResult(
                success=False,
                contact_id=request.contact_id,
                location_id=request.location_id,
                error=str(exc),
                reason=INTERNAL_ERROR,
                details={"type": type(exc).__name__},
            )

        log.info(
            "updater.complete",
            updated=len(result.updated_fields),
            skipped=len(result.skipped_fields),
        )
        return result

    async def _update(self, request: ContactUpdateRequest) -> ContactUpdateResult:
        missing = [
            name
            for name in ("contact_id", "location_id", "extracted_data")
            if getattr(request, name) in (None, "")
        ]
        if missing:
            raise ExtractionValidationError(
                f"Missing required fields: {', '.join(missing)}",
                details={"missing": missing},
            )

        extracted = parse_extracted_data(request.extracted_data)
        contact_id = request.contact_id
        location_id = request.location_id

        configuration = await self._repository.get_active_configuration_by_location(
            location_id
        )
        if configuration is None:
            raise NotFoundError(
                "No active configuration found for location",
                details={"location_id": location_id},
            )

        client = self._client_factory(configuration)
        configs, contact = await gather_or_cancel(
            self._repository.list_fields(configuration.id),
            client.get_contact(contact_id),
        )
        if contact is None:
            raise NotFoundError("Contact not found", details={"contact_id": contact_id})

        merge = self._engine.merge(contact, extracted, configs)
        if not merge.update_payload:
            return ContactUpdateResult(
                success=True,
                message=NO_FIELDS_UPDATED,
                contact_id=contact_id,
                location_id=location_id,
                skipped_fields=merge.skipped_keys,
            )

        payload = sanitize(merge.update_payload)
        written, dropped = split_written_keys(merge, payload or {})
        skipped = [*merge.skipped_keys, *dropped]
        if payload is None:
            return ContactUpdateResult(
                success=True,
                message=NO_VALID_FIELDS,
                contact_id=contact_id,
                location_id=location_id,
                skipped_fields=skipped,
            )

        response = await client.update_contact(contact_id, payload)
        return ContactUpdateResult(
            success=True,
            message=f"Updated {len(written)} field(s)",
            contact_id=contact_id,
            location_id=location_id,
            updated_fields=written,
            skipped_fields=skipped,
            crm_response=response,
        )
