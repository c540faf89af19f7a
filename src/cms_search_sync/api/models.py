"""
API Models

Pydantic models used for request/response validation across the reindex,
document and index administration endpoints. ``ReindexStatus`` is defined
with the paginator and re-exported here.

Design Goals
------------
- Strong typing
- Safe defaults (no shared mutable state)
- Clear schema documentation
"""

from __future__ import annotations

from typing import List, Optional, Literal
from pydantic import BaseModel, Field, ConfigDict

from ..indexing.paginator import ReindexStatus
from ..search.models import SubmissionResult

__all__ = [
    "ReindexStatus",
    "OperationResult",
    "IndexListResponse",
    "IndexRebuildResponse",
]


class OperationResult(BaseModel):
    """
    Standardized mutation operation result.
    Used for single-document update/delete endpoints.
    """
    status: Literal["updated", "deleted", "skipped", "failed"]
    count: Optional[int] = Field(default=None, ge=0)
    message: str = ""
    failed_keys: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")

    @classmethod
    def from_submission(
        cls,
        result: SubmissionResult,
        status: Literal["updated", "deleted"],
        count: int,
    ) -> "OperationResult":
        return cls(
            status=status if result.success else "failed",
            count=count if result.success else 0,
            message=result.message,
            failed_keys=result.failed_keys,
        )


class IndexListResponse(BaseModel):
    indexes: List[str] = Field(default_factory=list)


class IndexRebuildResponse(BaseModel):
    created: bool
    message: str
