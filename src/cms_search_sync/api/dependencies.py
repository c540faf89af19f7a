from functools import lru_cache
from pathlib import Path

from ..config import settings
from ..cms.client import CmsClient
from ..indexing.admin import IndexAdministrator
from ..indexing.paginator import ReindexPaginator
from ..indexing.parsers import ComputedFieldRegistry
from ..indexing.schema import SchemaBuilder
from ..indexing.transformer import DocumentTransformer
from ..search.gateway import SearchServiceClient
from ..sessions.store import SessionStore


@lru_cache
def get_cms_client() -> CmsClient:
    return CmsClient()


@lru_cache
def get_search_client() -> SearchServiceClient:
    return SearchServiceClient()


@lru_cache
def get_session_store() -> SessionStore:
    return SessionStore(Path(settings.data_root_path) / "sessions")


@lru_cache
def get_schema_builder() -> SchemaBuilder:
    return SchemaBuilder(
        get_cms_client(),
        search_fields=settings.search_fields,
        ttl=settings.schema_cache_ttl,
    )


@lru_cache
def get_parser_registry() -> ComputedFieldRegistry:
    return ComputedFieldRegistry()


@lru_cache
def get_transformer() -> DocumentTransformer:
    # Hooks are registered on this shared instance via on_indexing/on_indexed
    return DocumentTransformer(get_parser_registry())


@lru_cache
def get_paginator() -> ReindexPaginator:
    return ReindexPaginator(
        cms=get_cms_client(),
        gateway=get_search_client(),
        sessions=get_session_store(),
        schema=get_schema_builder(),
        transformer=get_transformer(),
        index_name=settings.index_name,
        search_fields=settings.search_fields,
        batch_size=settings.reindex_batch_size,
    )


@lru_cache
def get_index_administrator() -> IndexAdministrator:
    return IndexAdministrator(
        service=get_search_client(),
        schema=get_schema_builder(),
        index_name=settings.index_name,
        scoring_profiles=settings.scoring_profiles,
        analyzers=settings.analyzers,
    )
