"""
FastAPI entry point for cms-search-sync.

``create_app()`` builds a fresh application (tests use it through
``TestClient``); ``app`` is the instance served by uvicorn::

    uvicorn cms_search_sync.main:app

Computed field parsers are resolved during startup, so a search field
pointing at an unknown parser type stops the service before any reindex
request is accepted.
"""

from __future__ import annotations

import logging
from fastapi import FastAPI

from . import __version__
from .config import settings
from .cms.client import CmsClientError
from .core.errors import (
    ConfigurationError,
    SchemaBuildError,
    configuration_error_handler,
    unhandled_exception_handler,
    upstream_error_handler,
)
from .indexing.parsers import load_parser_modules
from .search.gateway import SearchServiceError

from .api import health_routes, index_routes, reindex_routes
from .api.dependencies import get_parser_registry


logger = logging.getLogger("sync.app")

_UPSTREAM_ERRORS = (CmsClientError, SearchServiceError, SchemaBuildError)


def register_computed_fields() -> int:
    """
    Import configured parser modules and register every computed field parser.

    Returns the number of distinct parser types registered.

    Raises
    ------
    ConfigurationError
        If any configured parser type cannot be resolved.
    """
    load_parser_modules(settings.parser_modules)
    type_ids = get_parser_registry().register_fields(settings.search_fields)
    return len(type_ids)


def create_app() -> FastAPI:
    app = FastAPI(title="cms-search-sync", version=__version__)

    app.add_exception_handler(ConfigurationError, configuration_error_handler)
    for error_type in _UPSTREAM_ERRORS:
        app.add_exception_handler(error_type, upstream_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    for module in (health_routes, reindex_routes, index_routes):
        app.include_router(module.router)

    @app.on_event("startup")
    async def _register_parsers() -> None:
        logger.info(
            "Starting cms-search-sync %s (index=%s, batch size=%d)",
            __version__,
            settings.index_name,
            settings.reindex_batch_size,
        )
        count = register_computed_fields()
        logger.info("Registered %d computed field parser type(s)", count)

    @app.on_event("shutdown")
    async def _log_shutdown() -> None:
        logger.info("Shutting down cms-search-sync")

    return app


app = create_app()
