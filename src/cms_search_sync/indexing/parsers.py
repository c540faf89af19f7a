"""
Computed Field Parser Registry

Computed fields get their value from a parser plugin instead of a CMS
property. Plugins announce themselves with the ``computed_field_parser``
decorator under a string type id; configuration refers to that id through
``SearchFieldConfig.parser_type``.

Every configured type id is resolved and instantiated once at startup. An id
that cannot be resolved, or that resolves to something that is not a parser,
is a configuration error and stops startup.

Thread Safety
-------------
- The factory table and each registry are protected by an RLock
- Parser instances are shared and must be safe for concurrent reads
"""

from __future__ import annotations

import importlib
import logging
from abc import ABC, abstractmethod
from threading import RLock
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..cms.models import CmsEntity
from ..core.errors import ConfigurationError
from ..search.models import SearchFieldConfig

logger = logging.getLogger("sync.parsers")


class ComputedFieldParser(ABC):
    """Produces the value of a computed field for one entity."""

    @abstractmethod
    def get_value(self, entity: CmsEntity) -> Any:
        ...


ParserFactory = Callable[[], Any]


# ---------------------------------------------------------------------
# Global Factory Table
# ---------------------------------------------------------------------

_factories: Dict[str, ParserFactory] = {}
_factories_lock = RLock()


def computed_field_parser(type_id: str) -> Callable[[ParserFactory], ParserFactory]:
    """
    Class decorator registering a parser factory under ``type_id``.

    Registering the same id twice with a different factory is an error.
    """

    def decorator(factory: ParserFactory) -> ParserFactory:
        register_parser_factory(type_id, factory)
        return factory

    return decorator


def register_parser_factory(type_id: str, factory: ParserFactory) -> None:
    if not type_id:
        raise ValueError("Parser type id must be non-empty.")

    with _factories_lock:
        existing = _factories.get(type_id)
        if existing is not None and existing is not factory:
            raise ConfigurationError(
                f"Parser type '{type_id}' is already registered by {existing!r}"
            )
        _factories[type_id] = factory


def unregister_parser_factory(type_id: str) -> bool:
    with _factories_lock:
        return _factories.pop(type_id, None) is not None


def get_parser_factory(type_id: str) -> Optional[ParserFactory]:
    with _factories_lock:
        return _factories.get(type_id)


def load_parser_modules(module_names: Iterable[str]) -> None:
    """
    Import plugin modules so their decorators populate the factory table.
    """
    for name in module_names:
        try:
            importlib.import_module(name)
        except ImportError as exc:
            raise ConfigurationError(
                f"Cannot import computed field parser module '{name}'"
            ) from exc
        logger.info("Loaded parser module %s", name)


# ---------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------

class ComputedFieldRegistry:
    """
    Holds one parser instance per configured parser type id.
    """

    def __init__(self) -> None:
        self._parsers: Dict[str, ComputedFieldParser] = {}
        self._lock = RLock()

    def register(self, parser_type_id: str) -> ComputedFieldParser:
        """
        Resolve, instantiate and validate the parser for ``parser_type_id``.

        Raises
        ------
        ConfigurationError
            If the id is unknown or the factory does not produce a
            ComputedFieldParser.
        """
        with self._lock:
            if parser_type_id in self._parsers:
                return self._parsers[parser_type_id]

            factory = get_parser_factory(parser_type_id)
            if factory is None:
                raise ConfigurationError(
                    f"No computed field parser registered for type '{parser_type_id}'"
                )

            try:
                parser = factory()
            except Exception as exc:
                raise ConfigurationError(
                    f"Computed field parser '{parser_type_id}' failed to initialize: "
                    f"{type(exc).__name__}: {exc}"
                ) from exc

            if not isinstance(parser, ComputedFieldParser):
                raise ConfigurationError(
                    f"Type {parser_type_id} does not implement {ComputedFieldParser.__name__}"
                )

            self._parsers[parser_type_id] = parser
            logger.info("Registered computed field parser '%s'", parser_type_id)
            return parser

    def register_fields(self, fields: Iterable[SearchFieldConfig]) -> List[str]:
        """
        Register every distinct parser type used by the computed fields.
        """
        type_ids: List[str] = []
        for field in fields:
            if field.is_computed and field.parser_type not in type_ids:
                type_ids.append(field.parser_type)

        for type_id in type_ids:
            self.register(type_id)
        return type_ids

    def get_value(self, field: SearchFieldConfig, entity: CmsEntity) -> Any:
        # Startup validation registers every configured type, so a miss here
        # means the field list changed without re-registering.
        with self._lock:
            parser = self._parsers.get(field.parser_type or "")

        if parser is None:
            raise ConfigurationError(
                f"Computed field '{field.name}' uses unregistered parser '{field.parser_type}'"
            )
        return parser.get_value(entity)

    def is_registered(self, parser_type_id: str) -> bool:
        with self._lock:
            return parser_type_id in self._parsers

    def __len__(self) -> int:
        with self._lock:
            return len(self._parsers)
