"""
Reindex Paginator

Drives a resumable reindex run one page at a time. The caller invokes
``reindex(kind, session_id, page)`` repeatedly with page = 1, 2, ... until
the returned status reports ``finished``; page 0 is a read-only status check.

State per (session_id, kind)
----------------------------
- Uninitialized : no id snapshot; the first call takes one from the CMS.
- Active        : pages are sliced from the immutable snapshot.
- Done          : the final page has been processed and the snapshot deleted.

A page that fails to transform or submit raises; the snapshot is kept so the
same page can be retried.
"""

from __future__ import annotations

import asyncio
import logging
import math
from typing import List, Optional, Protocol, Sequence

from pydantic import BaseModel, Field

from .schema import SchemaBuilder
from .transformer import DocumentTransformer
from ..cms.models import AnyEntity, CmsEntity, EntityKind
from ..core.errors import SessionStateError
from ..search.models import SearchDocument, SearchFieldConfig, SubmissionResult
from ..sessions.store import ReindexSession, SessionStore

logger = logging.getLogger("sync.reindex")

DEFAULT_BATCH_SIZE = 999


class EntitySource(Protocol):
    async def get_ids_by_kind(self, kind: EntityKind) -> List[int]: ...

    async def get_entities_by_ids(
        self, kind: EntityKind, ids: Sequence[int]
    ) -> List[Optional[AnyEntity]]: ...


class SubmissionGateway(Protocol):
    async def submit_batch(
        self, index_name: str, documents: Sequence[SearchDocument]
    ) -> SubmissionResult: ...

    async def delete_by_id(self, index_name: str, entity_id: int) -> SubmissionResult: ...


class ReindexStatus(BaseModel):
    """
    Progress report for one reindex call.
    """

    session_id: str
    entity_kind: EntityKind
    page: int = Field(..., ge=0)
    total_pages: int = Field(default=0, ge=0)
    queued: int = Field(default=0, ge=0)
    processed: int = Field(default=0, ge=0)
    finished: bool = False
    error: bool = False
    message: str = ""
    failed_keys: List[str] = Field(default_factory=list)


def total_page_count(total_ids: int, batch_size: int) -> int:
    return math.ceil(total_ids / batch_size)


def queued_count(total_ids: int, page: int, batch_size: int) -> int:
    if page == 0:
        return total_ids
    return max(0, total_ids - batch_size * page)


def page_slice(ids: Sequence[int], page: int, batch_size: int) -> List[int]:
    start = (page - 1) * batch_size
    return list(ids[start : start + batch_size])


class ReindexPaginator:
    """
    Pages through id snapshots and pushes transformed batches to the index.
    """

    def __init__(
        self,
        cms: EntitySource,
        gateway: SubmissionGateway,
        sessions: SessionStore,
        schema: SchemaBuilder,
        transformer: DocumentTransformer,
        index_name: str,
        search_fields: Sequence[SearchFieldConfig] = (),
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be positive.")

        self._cms = cms
        self._gateway = gateway
        self._sessions = sessions
        self._schema = schema
        self._transformer = transformer
        self._index_name = index_name
        self._search_fields = list(search_fields)
        self._batch_size = batch_size

    @property
    def batch_size(self) -> int:
        return self._batch_size

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def reindex(self, kind: EntityKind, session_id: str, page: int) -> ReindexStatus:
        """
        Process one page of a reindex run, or report its status when page == 0.
        """
        if page < 0:
            raise ValueError("page must be zero or positive.")

        if page == 0:
            ids = await self._peek_ids(kind, session_id)
        else:
            ids = (await self._load_or_snapshot(kind, session_id)).ids
        total = len(ids)
        total_pages = total_page_count(total, self._batch_size)

        status = ReindexStatus(
            session_id=session_id,
            entity_kind=kind,
            page=page,
            total_pages=total_pages,
            queued=queued_count(total, page, self._batch_size),
        )

        if page == 0:
            return status

        page_ids = page_slice(ids, page, self._batch_size)
        if not page_ids:
            await asyncio.to_thread(self._sessions.delete, session_id, kind)
            status.finished = True
            status.message = "Done"
            return status

        documents = await self._build_documents(kind, page_ids)
        result = await self._gateway.submit_batch(self._index_name, documents)

        status.processed = len(documents)
        status.error = not result.success
        status.failed_keys = list(result.failed_keys)

        if page >= total_pages:
            await asyncio.to_thread(self._sessions.delete, session_id, kind)
            status.finished = True
            status.message = f"Done. {result.message}".strip() if result.message else "Done"
        else:
            status.message = (
                f"Sent {kind.value} page {page} of {total_pages} for indexing. {result.message}"
            ).strip()

        logger.info(
            "Reindex %s session %s page %d/%d: %d documents submitted, %d queued%s",
            kind.value,
            session_id,
            page,
            total_pages,
            status.processed,
            status.queued,
            " (with failures)" if status.error else "",
        )
        return status

    async def reindex_entity(self, entity: CmsEntity) -> Optional[SubmissionResult]:
        """
        Transform and submit a single entity, e.g. after it was saved.

        Returns None when an indexing hook cancelled the document.
        """
        standard = await self._schema.standard_fields()
        document = self._transformer.transform(entity, standard, self._search_fields)
        if document is None:
            return None
        return await self._gateway.submit_batch(self._index_name, [document])

    async def delete(self, entity_id: int) -> SubmissionResult:
        return await self._gateway.delete_by_id(self._index_name, entity_id)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _peek_ids(self, kind: EntityKind, session_id: str) -> List[int]:
        # A status check reads an existing snapshot but never creates or discards one
        if await asyncio.to_thread(self._sessions.exists, session_id, kind):
            try:
                return (await asyncio.to_thread(self._sessions.read, session_id, kind)).ids
            except SessionStateError as exc:
                logger.warning("Probe of %s session %s: %s", kind.value, session_id, exc)
        return await self._cms.get_ids_by_kind(kind)

    async def _load_or_snapshot(self, kind: EntityKind, session_id: str) -> ReindexSession:
        if await asyncio.to_thread(self._sessions.exists, session_id, kind):
            try:
                return await asyncio.to_thread(self._sessions.read, session_id, kind)
            except SessionStateError as exc:
                logger.warning("Discarding %s session %s: %s", kind.value, session_id, exc)
                await asyncio.to_thread(self._sessions.delete, session_id, kind)

        ids = await self._cms.get_ids_by_kind(kind)
        return await asyncio.to_thread(self._sessions.write, session_id, kind, ids)

    async def _build_documents(self, kind: EntityKind, ids: Sequence[int]) -> List[SearchDocument]:
        entities = await self._cms.get_entities_by_ids(kind, ids)
        standard = await self._schema.standard_fields()

        documents: List[SearchDocument] = []
        for entity in entities:
            if entity is None:
                continue
            document = self._transformer.transform(entity, standard, self._search_fields)
            if document is not None:
                documents.append(document)
        return documents
