"""
Index Schema Builder

Derives the search index schema from three sources:

- a fixed set of standard fields present on every document
- property names reported by the CMS for the current install
- custom fields from configuration

The standard part depends on CMS metadata, so it is cached for a fixed time
window. Callers that need the live schema (index recreation) pass
``force_refresh=True``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Iterable, List, Optional, Protocol, Sequence

from ..core.errors import SchemaBuildError
from ..search.models import (
    DataType,
    FieldDescriptor,
    KEYWORD_ANALYZER,
    SearchFieldConfig,
)

logger = logging.getLogger("sync.schema")

# CMS user properties with this prefix are treated as system fields
SYSTEM_PROPERTY_PREFIX = "umbraco"


class PropertyMetadataSource(Protocol):
    async def get_system_property_names(self) -> List[str]: ...

    async def get_user_property_names(self) -> List[str]: ...


def _field(name: str, data_type: DataType = DataType.STRING, **flags: bool) -> FieldDescriptor:
    return FieldDescriptor(name=name, type=data_type, **flags)


# Key field has to be a string
STANDARD_FIELDS: Sequence[FieldDescriptor] = (
    _field("Id", key=True, filterable=True, sortable=True),
    _field("Name", filterable=True, sortable=True, searchable=True, retrievable=True),
    _field("Key", searchable=True, retrievable=True),

    _field("Url", searchable=True, retrievable=True),
    _field("MemberEmail", searchable=True),

    _field("IsContent", DataType.BOOLEAN, filterable=True, facetable=True),
    _field("IsMedia", DataType.BOOLEAN, filterable=True, facetable=True),
    _field("IsMember", DataType.BOOLEAN, filterable=True, facetable=True),

    _field("Published", DataType.BOOLEAN, filterable=True, facetable=True),
    _field("Trashed", DataType.BOOLEAN, filterable=True, facetable=True),

    _field("SearchablePath", searchable=True, filterable=True),
    _field("Path", DataType.STRING_COLLECTION, searchable=True, filterable=True),
    _field("Template", searchable=True, facetable=True),
    _field("Icon", searchable=True, facetable=True),

    _field("ContentTypeAlias", searchable=True, facetable=True, filterable=True),

    _field("UpdateDate", DataType.DATE_TIME_OFFSET, filterable=True, sortable=True),
    _field("CreateDate", DataType.DATE_TIME_OFFSET, filterable=True, sortable=True),

    _field("ContentTypeId", DataType.INT32, filterable=True),
    _field("ParentID", filterable=True, searchable=True),
    _field("Level", DataType.INT32, sortable=True, facetable=True),
    _field("SortOrder", DataType.INT32, sortable=True),

    _field("WriterId", DataType.INT32, sortable=True, facetable=True),
    _field("CreatorId", DataType.INT32, sortable=True, facetable=True),
    _field("WriterName", sortable=True, facetable=True),
    _field("CreatorName", sortable=True, facetable=True),
)


def _keyword_field(name: str) -> FieldDescriptor:
    return FieldDescriptor(
        name=name,
        type=DataType.STRING,
        filterable=True,
        searchable=True,
        analyzer=KEYWORD_ANALYZER,
    )


def sort_key_first(fields: Iterable[FieldDescriptor]) -> List[FieldDescriptor]:
    """
    Sort fields by name, with the key field forced to index 0.
    """
    fields = list(fields)
    keys = [f for f in fields if f.key]
    if len(keys) != 1:
        raise SchemaBuildError(f"Schema must have exactly one key field, found {len(keys)}.")

    rest = sorted((f for f in fields if not f.key), key=lambda f: f.name)
    return [keys[0], *rest]


class SchemaBuilder:
    """
    Builds and caches the index schema.

    The cache is owned by the instance: created empty, populated on first use
    and refreshed once ``ttl`` seconds have passed or on ``invalidate()``.
    """

    def __init__(
        self,
        metadata: PropertyMetadataSource,
        search_fields: Sequence[SearchFieldConfig] = (),
        ttl: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._metadata = metadata
        self._search_fields = list(search_fields)
        self._ttl = ttl
        self._clock = clock

        self._cached: Optional[List[FieldDescriptor]] = None
        self._expires_at: float = 0.0
        self._lock: Optional[asyncio.Lock] = None
        self._lock_loop: Optional[asyncio.AbstractEventLoop] = None

    def _loop_lock(self) -> asyncio.Lock:
        # One lock per event loop; the CLI and tests may run several loops
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    def invalidate(self) -> None:
        self._cached = None
        self._expires_at = 0.0

    async def standard_fields(self, force_refresh: bool = False) -> List[FieldDescriptor]:
        """
        Return the standard fields merged with CMS-reported property fields.

        Raises
        ------
        SchemaBuildError
            If the CMS metadata query fails.
        """
        async with self._loop_lock():
            if (
                not force_refresh
                and self._cached is not None
                and self._clock() < self._expires_at
            ):
                return list(self._cached)

            fields = await self._load_standard_fields()
            self._cached = fields
            self._expires_at = self._clock() + self._ttl
            return list(fields)

    async def build_schema(self, force_refresh: bool = False) -> List[FieldDescriptor]:
        """
        Return the full schema: standard fields plus configured custom fields.
        """
        fields = await self.standard_fields(force_refresh=force_refresh)
        existing = {f.name.lower() for f in fields}

        for search_field in self._search_fields:
            if search_field.name.lower() in existing:
                logger.warning(
                    "Custom field '%s' shadows a standard field and is ignored in the schema",
                    search_field.name,
                )
                continue
            fields.append(search_field.to_descriptor())
            existing.add(search_field.name.lower())

        return sort_key_first(fields)

    async def _load_standard_fields(self) -> List[FieldDescriptor]:
        try:
            system_names = await self._metadata.get_system_property_names()
            user_names = await self._metadata.get_user_property_names()
        except Exception as exc:
            raise SchemaBuildError(
                f"Failed to read CMS property metadata: {type(exc).__name__}"
            ) from exc

        fields = list(STANDARD_FIELDS)
        existing = {f.name.lower() for f in fields}

        # System properties which haven't already been defined above
        for name in system_names:
            if name.lower() not in existing:
                fields.append(_keyword_field(name))
                existing.add(name.lower())

        # 'System' fields like umbracoWidth, umbracoBytes, umbracoNaviHide
        for name in user_names:
            if name.startswith(SYSTEM_PROPERTY_PREFIX) and name.lower() not in existing:
                fields.append(_keyword_field(name))
                existing.add(name.lower())

        logger.info(
            "Built index schema with %d standard fields (%d from CMS metadata)",
            len(fields),
            len(fields) - len(STANDARD_FIELDS),
        )
        return sort_key_first(fields)
