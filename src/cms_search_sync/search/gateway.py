"""
Search Service Client

This module implements the submission gateway and schema administration
calls against the Azure Cognitive Search REST API. It is responsible for:

- Batch upload and delete of documents
- Reporting partial batch failures without raising
- Listing, deleting and creating indexes
- Transport error isolation

The class is stateless and safe to reuse across requests.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence
import logging
import httpx

from .models import IndexDefinition, KEY_FIELD, SearchDocument, SubmissionResult
from ..config import settings

logger = logging.getLogger("sync.search")


class SearchServiceError(RuntimeError):
    """Raised when the search service cannot be reached or rejects a request."""


class SearchServiceClient:
    """
    Asynchronous client for one search service.

    Timeouts are owned by this client and propagate to callers as
    ``SearchServiceError``.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        api_version: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Parameters
        ----------
        base_url : Optional[str]
            Search service root URL. Defaults to settings.search_service_url.

        api_key : Optional[str]
            Admin API key. Defaults to settings.search_api_key.

        api_version : Optional[str]
            REST API version. Defaults to settings.search_api_version.

        timeout : Optional[float]
            HTTP timeout for each request.

        transport : Optional[httpx.AsyncBaseTransport]
            Optional transport override (used by tests).
        """
        self.base_url = str(base_url or settings.search_service_url).rstrip("/")
        self.api_key = api_key or settings.search_api_key.get_secret_value()
        self.api_version = api_version or settings.search_api_version
        self.timeout = timeout or settings.http_timeout
        self._transport = transport

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    async def submit_batch(
        self,
        index_name: str,
        documents: Sequence[SearchDocument],
    ) -> SubmissionResult:
        """
        Upload a batch of documents.

        Returns
        -------
        SubmissionResult
            ``success`` is False when the service rejected any document; the
            rejected keys are listed in ``failed_keys``.

        Raises
        ------
        SearchServiceError
            If the request itself fails.
        """
        if not documents:
            return SubmissionResult(success=True, message="")

        actions = [{"@search.action": "upload", **doc} for doc in documents]
        return await self._index_actions(index_name, actions)

    async def delete_by_id(self, index_name: str, entity_id: int) -> SubmissionResult:
        actions = [{"@search.action": "delete", KEY_FIELD: str(entity_id)}]
        return await self._index_actions(index_name, actions)

    async def _index_actions(
        self,
        index_name: str,
        actions: List[Dict[str, Any]],
    ) -> SubmissionResult:
        resp = await self._request(
            "POST",
            f"/indexes/{index_name}/docs/index",
            json={"value": actions},
            # 207 means some documents in the batch were rejected
            ok_statuses=(200, 207),
        )
        return self._extract_result(resp.json())

    @staticmethod
    def _extract_result(data: Dict[str, Any]) -> SubmissionResult:
        records = data.get("value")
        if not isinstance(records, list):
            raise SearchServiceError("Index response missing 'value' list.")

        failed = [
            str(r.get("key"))
            for r in records
            if isinstance(r, dict) and not r.get("status", False)
        ]

        if failed:
            message = "Failed to index some of the documents: " + ", ".join(failed)
            logger.warning(message)
            return SubmissionResult(success=False, message=message, failed_keys=failed)

        return SubmissionResult(success=True, message="")

    # ------------------------------------------------------------------
    # Schema administration
    # ------------------------------------------------------------------

    async def list_indexes(self) -> List[str]:
        resp = await self._request("GET", "/indexes", params={"$select": "name"})
        return [idx["name"] for idx in resp.json().get("value", [])]

    async def delete_index(self, name: str) -> None:
        await self._request("DELETE", f"/indexes/{name}", ok_statuses=(204, 404))

    async def create_index(self, definition: IndexDefinition) -> None:
        await self._request("POST", "/indexes", json=definition.to_wire())

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        ok_statuses: Optional[Sequence[int]] = None,
    ) -> httpx.Response:
        headers = {"api-key": self.api_key}
        query = {"api-version": self.api_version, **(params or {})}

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.request(
                    method,
                    self.base_url + path,
                    params=query,
                    json=json,
                    headers=headers,
                )
            if ok_statuses is None or response.status_code not in ok_statuses:
                response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error(
                "Search request failed (%s): %s %s, error=%s",
                type(exc).__name__,
                method,
                path,
                str(exc),
            )
            detail = ""
            if isinstance(exc, httpx.HTTPStatusError):
                detail = f" ({exc.response.status_code}) {exc.response.text[:500]}"
            raise SearchServiceError(
                f"Search request failed: {type(exc).__name__}{detail}"
            ) from exc

        return response
