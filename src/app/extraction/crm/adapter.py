"""CRM client abstract base class -- the boundary between the extraction core and the CRM.

The core only ever talks to the CRM through this interface: the contact
record store (read and write) and the custom-field schema store (list and
create). LeadConnectorClient is the production implementation; tests use
AsyncMock or an in-memory double.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from src.app.extraction.schemas import (
    ContactRecord,
    CustomFieldCreate,
    RemoteFieldSnapshot,
)


class CRMClient(ABC):
    """Abstract interface for CRM record and schema operations.

    Every method raises UpstreamError on a failed or non-success call.
    Nothing is retried.

    Methods:
        get_contact: Fetch a contact, None when it does not exist.
        update_contact: Apply a sanitized update payload to a contact.
        list_custom_fields: List custom-field definitions for a location.
        create_custom_field: Create a custom field, return its live definition.
    """

    @abstractmethod
    async def get_contact(self, contact_id: str) -> ContactRecord | None:
        """Fetch contact by id, None if not found."""
        ...

    @abstractmethod
    async def update_contact(self, contact_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Update contact by id, return the CRM response body."""
        ...

    @abstractmethod
    async def list_custom_fields(self, location_id: str) -> list[RemoteFieldSnapshot]:
        """List custom-field definitions for a location."""
        ...

    @abstractmethod
    async def create_custom_field(
        self, location_id: str, payload: CustomFieldCreate
    ) -> RemoteFieldSnapshot:
        """Create a custom field, return the new live definition (with its new id)."""
        ...
