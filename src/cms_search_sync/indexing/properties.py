"""
Property Resolution

Reads the value of a schema field from a CMS entity. A few structural fields
are derived directly; everything else goes through a per-entity-class
accessor table that maps the PascalCase schema name to a model attribute,
falling back to the entity's generic property bag.
"""

from __future__ import annotations

import re
from operator import attrgetter
from threading import RLock
from typing import Any, Callable, Dict, Optional

from ..cms.models import CmsEntity

Accessor = Callable[[CmsEntity], Any]

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")

# Schema names whose attribute does not follow the snake_case convention
ACCESSOR_ALIASES: Dict[str, Accessor] = {
    "ContentTypeId": lambda e: e.content_type.id,
    "ContentTypeAlias": lambda e: e.content_type.alias,
    "Icon": lambda e: e.content_type.icon,
    "Template": lambda e: getattr(e, "template_alias", None),
}


def _special_searchable_path(entity: CmsEntity) -> Any:
    return entity.path.lstrip("-")


def _special_path(entity: CmsEntity) -> Any:
    return entity.path.split(",") if entity.path else None


SPECIAL_FIELDS: Dict[str, Accessor] = {
    "SearchablePath": _special_searchable_path,
    "Path": _special_path,
    "CreatorName": lambda e: e.creator_name,
    "ParentID": lambda e: e.parent_id,
}


def to_snake_case(name: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", name).lower()


class PropertyResolver:
    """
    Resolves field values and caches accessors per entity class.

    The cache lives for the lifetime of the resolver; entity classes do not
    change shape at runtime.
    """

    def __init__(self) -> None:
        self._cache: Dict[str, Dict[str, Optional[Accessor]]] = {}
        self._lock = RLock()

    def resolve(self, entity: CmsEntity, field_name: str) -> Any:
        """
        Return the field value, or None when the entity has no such value.
        """
        special = SPECIAL_FIELDS.get(field_name)
        if special is not None:
            return special(entity)

        accessor = self._accessor(type(entity), field_name)
        if accessor is not None:
            return accessor(entity)

        if entity.has_property(field_name):
            return entity.get_value(field_name)
        return None

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def cached_fields(self, entity_class: type) -> Dict[str, Optional[Accessor]]:
        with self._lock:
            return dict(self._cache.get(entity_class.__name__, {}))

    def _accessor(self, entity_class: type, field_name: str) -> Optional[Accessor]:
        with self._lock:
            table = self._cache.setdefault(entity_class.__name__, {})
            if field_name not in table:
                table[field_name] = self._build_accessor(entity_class, field_name)
            return table[field_name]

    @staticmethod
    def _build_accessor(entity_class: type, field_name: str) -> Optional[Accessor]:
        alias = ACCESSOR_ALIASES.get(field_name)
        if alias is not None:
            return alias

        attribute = to_snake_case(field_name)
        if attribute in entity_class.model_fields and attribute != "properties":
            return attrgetter(attribute)
        return None
