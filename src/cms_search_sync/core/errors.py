"""
Error Taxonomy and Global Error Handling

This module defines the exceptions raised by the synchronization pipeline and
the application-wide exception handlers for the HTTP surface.

Taxonomy
--------
- ConfigurationError : a computed field parser cannot be resolved (startup)
- TransformError     : a CMS entity could not be converted into a document
- SessionStateError  : a persisted session id list is missing or corrupt
- SchemaBuildError   : CMS metadata could not be read while building the schema

Partial submission failures are not exceptions; they are reported through
``SubmissionResult`` so a reindex run keeps going.

HTTP handlers map configuration problems and upstream (CMS or search
service) failures to fixed JSON payloads; tracebacks are only logged.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger("sync.errors")


# ---------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------

class SearchSyncError(RuntimeError):
    """Base error for all synchronization failures."""


class ConfigurationError(SearchSyncError):
    """Raised when configuration cannot be satisfied (fatal at startup)."""


class TransformError(SearchSyncError):
    """
    Raised when a single entity cannot be transformed into a document.

    The failing entity id and field name (when known) are kept on the
    exception so callers can report which page item to retry.
    """

    def __init__(self, entity_id: int, field: Optional[str], message: str) -> None:
        self.entity_id = entity_id
        self.field = field
        where = f" field '{field}'" if field else ""
        super().__init__(f"Failed to transform entity {entity_id}{where}: {message}")


class SessionStateError(SearchSyncError):
    """Raised when a persisted session id list is missing or corrupt."""


class SchemaBuildError(SearchSyncError):
    """Raised when the CMS metadata query backing the schema fails."""


# ---------------------------------------------------------------------
# Public Exception Handlers
# ---------------------------------------------------------------------

def _error_response(status_code: int, error: str, detail: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "detail": detail})


async def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.error("Configuration error on %s %s: %s", request.method, request.url.path, exc)
    return _error_response(500, "configuration_error", "Search synchronization is misconfigured")


async def upstream_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Map CMS and search service failures to 502.

    The page that failed can be requested again; the session is untouched.
    """
    logger.warning("Upstream failure on %s %s: %s", request.method, request.url.path, exc)
    return _error_response(502, "upstream_error", str(exc))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Final safety net for exceptions no other handler claimed.

    Parameters
    ----------
    request : Request
        The request being served.

    exc : Exception
        The uncaught exception; logged with its traceback, never returned.
    """
    logger.exception(
        "Unhandled exception during request: %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
    )
    return _error_response(500, "internal_server_error", "Internal server error")
