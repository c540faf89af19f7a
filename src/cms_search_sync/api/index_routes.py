"""
Index Administration Routes

List the indexes of the search service and drop/recreate the configured
index from the current schema.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from .dependencies import get_index_administrator
from .models import IndexListResponse, IndexRebuildResponse
from ..auth.security import verify_admin
from ..indexing.admin import IndexAdministrator

router = APIRouter(prefix="/indexes", tags=["indexes"], dependencies=[Depends(verify_admin)])


@router.get("", response_model=IndexListResponse, summary="List search indexes")
async def list_indexes(
    admin: Annotated[IndexAdministrator, Depends(get_index_administrator)],
) -> IndexListResponse:
    return IndexListResponse(indexes=await admin.get_search_indexes())


@router.post(
    "/rebuild",
    response_model=IndexRebuildResponse,
    summary="Drop and recreate the configured index",
)
async def rebuild_index(
    admin: Annotated[IndexAdministrator, Depends(get_index_administrator)],
) -> IndexRebuildResponse:
    """
    Recreate the index. Documents must be reindexed afterwards.

    Creation failures are reported in the response body rather than as an
    HTTP error.
    """
    message = await admin.drop_create_index()
    return IndexRebuildResponse(created=message == "Index created", message=message)
