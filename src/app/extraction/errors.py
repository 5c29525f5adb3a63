"""Failure taxonomy for the extraction core.

Exceptions are used internally to unwind from validation and lookup
failures. At the boundary every ExtractionError is converted into a
structured failure (``{success: False, error, reason, details}``) via
``to_result()`` so that callers can tell "nothing to extract" from "AI
output unparseable" from "CRM call failed" without parsing messages.
"""

from __future__ import annotations

from typing import Any


class ExtractionError(Exception):
    """Base class for all extraction-core failures.

    Attributes:
        reason: Stable machine-readable failure code.
        details: Optional structured context for the caller.
    """

    reason = "extraction_error"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_result(self) -> dict[str, Any]:
        """Structured failure payload for callers of the core."""
        return {
            "success": False,
            "error": self.message,
            "reason": self.reason,
            "details": self.details,
        }


class ExtractionValidationError(ExtractionError):
    """Missing required invocation fields or malformed input."""

    reason = "validation_error"


class RecreationValidationError(ExtractionValidationError):
    """A custom-field creation payload failed validation before any API call."""


class NotFoundError(ExtractionError):
    """Target record, owning configuration, or stored field config is absent."""

    reason = "not_found"


class UpstreamError(ExtractionError):
    """A CRM or schema-store call failed or returned a non-success status.

    Never retried. Carries the upstream status code and response body
    when available.
    """

    reason = "upstream_error"

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response: Any = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.status_code = status_code
        self.response = response
        merged = dict(details or {})
        if status_code is not None:
            merged.setdefault("status_code", status_code)
        if response is not None:
            merged.setdefault("response", response)
        super().__init__(message, merged)


class PartialDataError(ExtractionError):
    """Extractor output is not parseable structured data; merge is skipped."""

    reason = "partial_data"
