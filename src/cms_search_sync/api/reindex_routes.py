"""
Reindex Routes

This module exposes endpoints for:
- Paging through a full reindex run of one entity kind
- Reindexing a single entity after it changed in the CMS
- Removing a single document from the search index

These endpoints are designed to be invoked by the CMS back office, which
calls the reindex endpoint once per page until the run reports `finished`.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from .dependencies import get_cms_client, get_paginator
from .models import OperationResult, ReindexStatus
from ..auth.security import verify_admin
from ..cms.client import CmsClient
from ..cms.models import EntityKind
from ..indexing.paginator import ReindexPaginator
from ..sessions.store import InvalidSessionError

router = APIRouter(tags=["reindex"], dependencies=[Depends(verify_admin)])


@router.post(
    "/reindex/{kind}",
    response_model=ReindexStatus,
    summary="Process one page of a reindex run",
)
async def reindex_page(
    kind: EntityKind,
    paginator: Annotated[ReindexPaginator, Depends(get_paginator)],
    session_id: str = Query(..., min_length=1, max_length=64),
    page: int = Query(0, ge=0),
) -> ReindexStatus:
    """
    Process `page` of the run identified by `session_id`.

    Page 0 only reports how many items are queued. The id snapshot is taken
    on the first page and deleted after the last one.
    """
    try:
        return await paginator.reindex(kind, session_id, page)
    except InvalidSessionError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.post(
    "/documents/{kind}/{entity_id}",
    response_model=OperationResult,
    summary="Reindex a single entity",
)
async def reindex_document(
    kind: EntityKind,
    entity_id: int,
    cms: Annotated[CmsClient, Depends(get_cms_client)],
    paginator: Annotated[ReindexPaginator, Depends(get_paginator)],
) -> OperationResult:
    entities = await cms.get_entities_by_ids(kind, [entity_id])
    entity = entities[0] if entities else None
    if entity is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{kind.value} {entity_id} not found",
        )

    result = await paginator.reindex_entity(entity)
    if result is None:
        return OperationResult(status="skipped", count=0, message="Cancelled by indexing hook")
    return OperationResult.from_submission(result, status="updated", count=1)


@router.delete(
    "/documents/{entity_id}",
    response_model=OperationResult,
    summary="Delete a document from the search index",
)
async def delete_document(
    entity_id: int,
    paginator: Annotated[ReindexPaginator, Depends(get_paginator)],
) -> OperationResult:
    result = await paginator.delete(entity_id)
    return OperationResult.from_submission(result, status="deleted", count=1)
