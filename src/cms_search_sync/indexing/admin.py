"""
Index Administration

Drop-and-create of the configured search index from the current schema.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Protocol, Sequence

from .schema import SchemaBuilder
from ..search.gateway import SearchServiceError
from ..search.models import IndexDefinition

logger = logging.getLogger("sync.admin")

# Called with the definition just before it is sent; may modify it in place
CreatingIndexHook = Callable[[IndexDefinition], None]


class IndexService(Protocol):
    async def list_indexes(self) -> List[str]: ...

    async def delete_index(self, name: str) -> None: ...

    async def create_index(self, definition: IndexDefinition) -> None: ...


class IndexAdministrator:
    def __init__(
        self,
        service: IndexService,
        schema: SchemaBuilder,
        index_name: str,
        scoring_profiles: Sequence[Dict[str, Any]] = (),
        analyzers: Sequence[Dict[str, Any]] = (),
        creating_index_hooks: Iterable[CreatingIndexHook] = (),
    ) -> None:
        self._service = service
        self._schema = schema
        self._index_name = index_name
        self._scoring_profiles = list(scoring_profiles)
        self._analyzers = list(analyzers)
        self._hooks: List[CreatingIndexHook] = list(creating_index_hooks)

    def on_creating_index(self, hook: CreatingIndexHook) -> CreatingIndexHook:
        self._hooks.append(hook)
        return hook

    async def get_search_indexes(self) -> List[str]:
        return await self._service.list_indexes()

    async def drop_create_index(self) -> str:
        """
        Delete the configured index if present and create it from a fresh
        schema.

        Returns
        -------
        str
            "Index created", or a human-readable reason why creation failed.
        """
        if self._index_name in await self._service.list_indexes():
            logger.info("Deleting search index %s", self._index_name)
            await self._service.delete_index(self._index_name)

        definition = await self.build_definition(force_refresh=True)

        try:
            for hook in self._hooks:
                hook(definition)
            await self._service.create_index(definition)
        except (SearchServiceError, ValueError) as exc:
            logger.error("Creating search index %s failed: %s", self._index_name, exc)
            return str(exc)

        logger.info(
            "Created search index %s with %d fields",
            self._index_name,
            len(definition.fields),
        )
        return "Index created"

    async def build_definition(self, force_refresh: bool = False) -> IndexDefinition:
        return IndexDefinition(
            name=self._index_name,
            fields=await self._schema.build_schema(force_refresh=force_refresh),
            scoring_profiles=self._scoring_profiles,
            analyzers=self._analyzers,
        )
