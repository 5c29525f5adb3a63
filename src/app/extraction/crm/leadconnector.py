"""Async HTTP client for the LeadConnector (HighLevel) REST API.

Implements CRMClient over httpx.AsyncClient with per-operation timeouts and
the versioned bearer-token headers the API requires. Non-2xx responses and
transport failures become UpstreamError carrying the status code and
response body; requests are not retried. A 404 on a contact read is
"not found", returned as None.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog
from pydantic import ValidationError

from src.app.extraction.crm.adapter import CRMClient
from src.app.extraction.errors import UpstreamError
from src.app.extraction.field_types import FILE_UPLOAD, TEXTBOX_LIST, is_choice_type
from src.app.extraction.schemas import (
    ContactRecord,
    CRMConfiguration,
    CustomFieldCreate,
    RemoteFieldSnapshot,
)

logger = structlog.get_logger(__name__)

DEFAULT_BASE_URL = "https://services.leadconnectorhq.com"
DEFAULT_API_VERSION = "2021-07-28"


def build_custom_field_body(
    payload: CustomFieldCreate, default_model: str = "contact"
) -> dict[str, Any]:
    """Translate a creation payload into the customFields POST body.

    ``parentId`` is always sent, as JSON null for root placement. Options
    go out as ``textBoxListOptions`` for text-box lists and as ``options``
    for the other choice types; file uploads send the accepted formats as
    a list together with the file-count limits.
    """
    body: dict[str, Any] = {
        "name": payload.name,
        "dataType": payload.dataType,
        "model": payload.model or default_model,
        "parentId": payload.parentId,
    }

    if payload.placeholder:
        body["placeholder"] = payload.placeholder
    if payload.position is not None:
        body["position"] = payload.position
    if payload.objectId is not None:
        body["objectId"] = payload.objectId
    if payload.objectSchemaId is not None:
        body["objectSchemaId"] = payload.objectSchemaId

    if is_choice_type(payload.dataType) and payload.picklistOptions:
        if payload.dataType == TEXTBOX_LIST:
            body["textBoxListOptions"] = [
                {"label": option, "prefillValue": "", "position": index}
                for index, option in enumerate(payload.picklistOptions)
            ]
        else:
            body["options"] = list(payload.picklistOptions)

    if payload.dataType == FILE_UPLOAD:
        formats = payload.acceptedFormats or ".pdf"
        max_files = payload.maxFileLimit or 1
        body["acceptedFormat"] = [f.strip() for f in formats.split(",") if f.strip()]
        body["isMultipleFile"] = max_files > 1
        body["maxNumberOfFiles"] = max_files

    return body


class LeadConnectorClient(CRMClient):
    """CRMClient backed by the LeadConnector REST API.

    Args:
        access_token: Location-scoped OAuth access token (used as-is).
        base_url: API root URL.
        api_version: Value for the required ``Version`` header.
        read_timeout: Timeout in seconds for GET requests.
        write_timeout: Timeout in seconds for PUT/POST requests.
        custom_field_model: Object model custom fields are listed for.
        transport: Optional httpx transport (tests pass httpx.MockTransport).
    """

    def __init__(
        self,
        access_token: str,
        base_url: str = DEFAULT_BASE_URL,
        api_version: str = DEFAULT_API_VERSION,
        read_timeout: float = 10.0,
        write_timeout: float = 30.0,
        custom_field_model: str = "contact",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._read_timeout = read_timeout
        self._write_timeout = write_timeout
        self._model = custom_field_model
        self._transport = transport
        self._headers = {
            "Authorization": f"Bearer {access_token}",
            "Version": api_version,
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

    @classmethod
    def for_configuration(
        cls, configuration: CRMConfiguration, **kwargs: Any
    ) -> LeadConnectorClient:
        """Client authenticated with a stored configuration's token."""
        return cls(access_token=configuration.access_token, **kwargs)

    def _client(self, timeout: float) -> httpx.AsyncClient:
        """Create a new httpx client with specified timeout."""
        return httpx.AsyncClient(
            base_url=self._base_url,
            headers=self._headers,
            timeout=timeout,
            transport=self._transport,
        )

    async def _request(
        self,
        method: str,
        path: str,
        timeout: float,
        allow_not_found: bool = False,
        **kwargs: Any,
    ) -> Any:
        try:
            async with self._client(timeout) as client:
                response = await client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.error("crm.request_failed", method=method, path=path, error=str(exc))
            raise UpstreamError(f"CRM request failed: {method} {path}: {exc}") from exc

        if allow_not_found and response.status_code == 404:
            return None

        if response.is_error:
            body = _response_body(response)
            logger.error(
                "crm.error_response",
                method=method,
                path=path,
                status_code=response.status_code,
            )
            raise UpstreamError(
                f"CRM returned {response.status_code} for {method} {path}",
                status_code=response.status_code,
                response=body,
            )

        return _response_body(response)

    async def get_contact(self, contact_id: str) -> ContactRecord | None:
        """GET /contacts/{id}; the body is either ``{contact: {...}}`` or the contact itself."""
        data = await self._request(
            "GET", f"/contacts/{contact_id}", self._read_timeout, allow_not_found=True
        )
        if data is None:
            logger.info("crm.contact_not_found", contact_id=contact_id)
            return None

        contact = data.get("contact", data) if isinstance(data, dict) else None
        if not isinstance(contact, dict) or not contact:
            return None
        contact.setdefault("id", contact_id)
        try:
            return ContactRecord.model_validate(contact)
        except ValidationError as exc:
            raise _malformed("contact", exc, data) from exc

    async def update_contact(self, contact_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        data = await self._request(
            "PUT", f"/contacts/{contact_id}", self._write_timeout, json=payload
        )
        logger.info(
            "crm.contact_updated",
            contact_id=contact_id,
            attributes=sorted(payload.keys()),
        )
        return data if isinstance(data, dict) else {"response": data}

    async def list_custom_fields(self, location_id: str) -> list[RemoteFieldSnapshot]:
        data = await self._request(
            "GET",
            f"/locations/{location_id}/customFields",
            self._read_timeout,
            params={"model": self._model},
        )
        raw_fields = data.get("customFields", []) if isinstance(data, dict) else []
        try:
            fields = [
                RemoteFieldSnapshot.model_validate(f) for f in raw_fields if isinstance(f, dict)
            ]
        except ValidationError as exc:
            raise _malformed("custom field listing", exc, data) from exc
        logger.debug("crm.custom_fields_listed", location_id=location_id, count=len(fields))
        return fields

    async def create_custom_field(
        self, location_id: str, payload: CustomFieldCreate
    ) -> RemoteFieldSnapshot:
        body = build_custom_field_body(payload, default_model=self._model)
        data = await self._request(
            "POST",
            f"/locations/{location_id}/customFields",
            self._write_timeout,
            json=body,
        )
        created = data.get("customField", data) if isinstance(data, dict) else None
        if not isinstance(created, dict) or not created.get("id"):
            raise UpstreamError(
                "CRM did not return an id for the created custom field",
                response=data,
            )

        try:
            snapshot = RemoteFieldSnapshot.model_validate(created)
        except ValidationError as exc:
            raise _malformed("created custom field", exc, data) from exc
        logger.info(
            "crm.custom_field_created",
            location_id=location_id,
            field_id=snapshot.id,
            data_type=snapshot.dataType,
        )
        return snapshot


def _malformed(what: str, exc: ValidationError, data: Any) -> UpstreamError:
    logger.error("crm.malformed_response", body=what, errors=exc.error_count())
    return UpstreamError(
        f"CRM returned a malformed {what}",
        response=data,
        details={"errors": [{"loc": list(e["loc"]), "msg": e["msg"]} for e in exc.errors()]},
    )


def _response_body(response: httpx.Response) -> Any:
    if not response.content:
        return {}
    try:
        return response.json()
    except ValueError:
        return response.text
