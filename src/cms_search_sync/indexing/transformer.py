"""
Document Transformer

Converts CMS entities (content, media, members) into search documents.

Workflow
--------
1. Resolve and coerce every standard schema field.
2. Tag the document with the entity kind.
3. Run the cancellable "indexing" hooks.
4. Map configured CMS property fields.
5. Evaluate computed fields.
6. Apply kind-specific enrichment.
7. Run the informational "indexed" hooks.

Hooks run before the document is submitted; an "indexed" hook does not mean
the document has reached the search service.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, List, Optional, Sequence

from .parsers import ComputedFieldRegistry
from .properties import PropertyResolver
from .text import extract_grid_text
from ..cms.models import CmsEntity, ContentEntity, MediaEntity, MemberEntity
from ..core.errors import TransformError
from ..search.models import DataType, FieldDescriptor, SearchDocument, SearchFieldConfig

logger = logging.getLogger("sync.transform")

# Returns True to exclude the entity from the batch
IndexingHook = Callable[[CmsEntity, SearchDocument], bool]
IndexedHook = Callable[[CmsEntity, SearchDocument], None]

MEDIA_FILE_PROPERTY = "umbracoFile"
MEDIA_FOLDER_ALIAS = "Folder"
UPLOAD_FIELD_EDITOR = "Umbraco.UploadField"
IMAGE_CROPPER_EDITOR = "Umbraco.ImageCropper"

_KIND_FLAGS = {
    ContentEntity: "IsContent",
    MediaEntity: "IsMedia",
    MemberEntity: "IsMember",
}

_TYPE_DEFAULTS = {
    "collection": list,
    "string": str,
    "int": int,
    "bool": bool,
}


# ---------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------

def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() == "true"


def coerce_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def format_datetime(value: Any) -> Optional[str]:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    if value is None:
        return None
    return str(value)


def to_text(value: Any) -> Optional[str]:
    # Structured editor values (image cropper, pickers) are indexed as JSON
    if value is None:
        return None
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value)
    return str(value)


def coerce_value(data_type: DataType, value: Any) -> Any:
    if data_type == DataType.STRING:
        return to_text(value)
    if data_type == DataType.BOOLEAN:
        return parse_bool(value)
    if data_type == DataType.INT32:
        return coerce_int(value)
    if data_type == DataType.DATE_TIME_OFFSET:
        return format_datetime(value)
    return value


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


# ---------------------------------------------------------------------
# Transformer
# ---------------------------------------------------------------------

class DocumentTransformer:
    """
    Builds search documents for CMS entities.

    Instances are safe to share between concurrent callers once their hooks
    are registered; the property and parser caches they use are locked.
    """

    def __init__(
        self,
        registry: ComputedFieldRegistry,
        resolver: Optional[PropertyResolver] = None,
        indexing_hooks: Iterable[IndexingHook] = (),
        indexed_hooks: Iterable[IndexedHook] = (),
    ) -> None:
        self._registry = registry
        self._resolver = resolver or PropertyResolver()
        self._indexing_hooks: List[IndexingHook] = list(indexing_hooks)
        self._indexed_hooks: List[IndexedHook] = list(indexed_hooks)

    def on_indexing(self, hook: IndexingHook) -> IndexingHook:
        """Register a hook that may cancel indexing by returning True."""
        self._indexing_hooks.append(hook)
        return hook

    def on_indexed(self, hook: IndexedHook) -> IndexedHook:
        self._indexed_hooks.append(hook)
        return hook

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def transform(
        self,
        entity: CmsEntity,
        standard_fields: Sequence[FieldDescriptor],
        search_fields: Sequence[SearchFieldConfig] = (),
    ) -> Optional[SearchDocument]:
        """
        Build the document for ``entity``.

        Returns
        -------
        Optional[SearchDocument]
            The document, or None when an indexing hook cancelled it.

        Raises
        ------
        TransformError
            If a standard field cannot be resolved or coerced.
        """
        document: SearchDocument = {}

        for field in standard_fields:
            try:
                value = coerce_value(field.type, self._resolver.resolve(entity, field.name))
            except Exception as exc:
                raise TransformError(entity.id, field.name, f"{type(exc).__name__}: {exc}") from exc

            if not _is_blank(value):
                document[field.name] = value

        flag = next(
            (name for cls, name in _KIND_FLAGS.items() if isinstance(entity, cls)),
            None,
        )
        if flag is None:
            raise TransformError(entity.id, None, f"unsupported entity type {type(entity).__name__}")
        document[flag] = True

        for hook in self._indexing_hooks:
            if hook(entity, document):
                logger.info("Indexing of entity %s cancelled by hook", entity.id)
                return None

        # Standard fields win over configured fields of the same name
        standard_names = {f.name.lower() for f in standard_fields}
        configured = [f for f in search_fields if f.name.lower() not in standard_names]
        property_fields = [f for f in configured if not f.is_computed]
        computed_fields = [f for f in configured if f.is_computed]

        self._map_properties(document, entity, property_fields)

        for field in computed_fields:
            document[field.name] = self._registry.get_value(field, entity)

        if isinstance(entity, ContentEntity):
            self._enrich_content(document, entity)
        elif isinstance(entity, MediaEntity):
            self._enrich_media(document, entity)
        elif isinstance(entity, MemberEntity):
            self._enrich_member(document, entity)

        for hook in self._indexed_hooks:
            hook(entity, document)

        return document

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _map_properties(
        document: SearchDocument,
        entity: CmsEntity,
        fields: Sequence[SearchFieldConfig],
    ) -> None:
        for field in fields:
            value = entity.get_value(field.name) if entity.has_property(field.name) else None

            if value is None:
                default = _TYPE_DEFAULTS.get(field.type)
                if default is not None:
                    document[field.name] = default()
                continue

            if field.type == "collection":
                if isinstance(value, (list, tuple)):
                    document[field.name] = [str(v) for v in value]
                elif str(value):
                    document[field.name] = str(value).split(",")
                continue

            if field.is_grid_json:
                value = extract_grid_text(value)
            elif field.type == "string":
                value = to_text(value)

            document[field.name] = value

    @staticmethod
    def _enrich_content(document: SearchDocument, content: ContentEntity) -> None:
        document["Published"] = content.published
        document["WriterId"] = content.writer_id
        document["WriterName"] = content.writer_name
        document["ContentTypeAlias"] = content.content_type.alias

        # Only published content with a resolvable rendering has a URL
        if content.published and content.url:
            document["Url"] = content.url
        else:
            document.pop("Url", None)

        if content.template_alias:
            document["Template"] = content.template_alias

        document["Icon"] = content.content_type.icon

    @staticmethod
    def _enrich_media(document: SearchDocument, media: MediaEntity) -> None:
        document["Url"] = media_file_url(media)
        document["ContentTypeAlias"] = media.content_type.alias
        document["Icon"] = media.content_type.icon

    @staticmethod
    def _enrich_member(document: SearchDocument, member: MemberEntity) -> None:
        document["MemberEmail"] = member.email
        document["ContentTypeAlias"] = member.content_type.alias
        document["Icon"] = member.content_type.icon


def media_file_url(media: MediaEntity) -> str:
    """
    Best-effort URL of a media item's file, "" when there is none.
    """
    if media.content_type.alias == MEDIA_FOLDER_ALIAS:
        return ""

    prop = media.properties.get(MEDIA_FILE_PROPERTY)
    if prop is None or prop.value is None:
        return ""

    if prop.editor_alias == IMAGE_CROPPER_EDITOR:
        value = prop.value
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except ValueError:
                return value
        if isinstance(value, dict):
            return str(value.get("src") or "")
        return str(value)

    if prop.editor_alias in (UPLOAD_FIELD_EDITOR, None):
        return str(prop.value)

    return ""
