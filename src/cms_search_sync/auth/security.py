"""
Admin Authentication

Reindex and index administration endpoints mutate the search index and are
restricted to callers holding the configured admin API key.

The key may be provided as:
- `x-admin-key` header, or
- `key` query parameter
"""

import hmac
from typing import Optional

from fastapi import Header, HTTPException, Query, status

from ..config import settings


async def verify_admin(
    x_admin_key: Optional[str] = Header(None, alias="x-admin-key"),
    key: Optional[str] = Query(None)
) -> None:
    """
    Verify the request is from an admin using the configured API key.
    Checks header first, then query param.
    """
    expected_key = settings.admin_api_key.get_secret_value() if settings.admin_api_key else None

    if not expected_key:
        # If no key is configured, disable admin access securely
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access is not configured (ADMIN_API_KEY missing)"
        )

    provided_key = x_admin_key or key

    if not provided_key or not hmac.compare_digest(
        provided_key.encode("utf-8"), expected_key.encode("utf-8")
    ):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid or missing admin API key"
        )
