"""
CMS API Client

Thin asynchronous client for the CMS search-sync endpoints. It is the only
place that knows how ids, entities and property metadata are fetched; the
indexing pipeline depends on this interface alone.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx
from pydantic import ValidationError

from .models import AnyEntity, EntityKind, entity_list_adapter
from ..config import settings

logger = logging.getLogger("sync.cms")


class CmsClientError(RuntimeError):
    """Base exception for CMS client failures."""


class CmsRequestError(CmsClientError):
    """Raised when the CMS API cannot be reached or answers with an error."""


class CmsResponseError(CmsClientError):
    """Raised when the CMS API returns an unexpected payload."""


class CmsClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = str(base_url or settings.cms_api_base_url).rstrip("/") + "/"
        self.api_key = api_key or settings.cms_api_key.get_secret_value()
        self.timeout = timeout or settings.http_timeout
        self._transport = transport

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> Any:
        """
        Make an authenticated request to the CMS API and return decoded JSON.
        """
        headers = {"x-api-key": self.api_key} if self.api_key else {}

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                resp = await client.request(
                    method,
                    self.base_url + path,
                    params=params,
                    json=json,
                    headers=headers,
                )
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("CMS request %s %s failed: %s", method, path, exc)
            raise CmsRequestError(
                f"CMS request failed: {type(exc).__name__}"
            ) from exc

        try:
            return resp.json()
        except ValueError as exc:
            raise CmsResponseError(f"CMS returned invalid JSON for {path}") from exc

    async def get_ids_by_kind(self, kind: EntityKind) -> List[int]:
        """Return every entity id of the given kind."""
        data = await self._request("GET", "ids", params={"kind": kind.value})
        if not isinstance(data, list):
            raise CmsResponseError("Expected a list of ids.")
        try:
            return [int(x) for x in data]
        except (TypeError, ValueError) as exc:
            raise CmsResponseError("Id list contains non-integer values.") from exc

    async def get_entities_by_ids(
        self,
        kind: EntityKind,
        ids: Sequence[int],
    ) -> List[Optional[AnyEntity]]:
        """
        Fetch entities for the given ids. Entries may be None for ids that no
        longer exist.
        """
        if not ids:
            return []

        data = await self._request(
            "POST",
            "entities",
            json={"kind": kind.value, "ids": list(ids)},
        )
        try:
            return entity_list_adapter.validate_python(data)
        except ValidationError as exc:
            raise CmsResponseError(
                f"Malformed {kind.value} entities payload: {exc.error_count()} errors"
            ) from exc

    async def get_system_property_names(self) -> List[str]:
        data = await self._request("GET", "properties/system")
        return self._names(data)

    async def get_user_property_names(self) -> List[str]:
        data = await self._request("GET", "properties/user")
        return self._names(data)

    @staticmethod
    def _names(data: Any) -> List[str]:
        if not isinstance(data, list) or not all(isinstance(x, str) for x in data):
            raise CmsResponseError("Expected a list of property names.")
        return data
