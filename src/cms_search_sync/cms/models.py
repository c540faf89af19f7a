"""
CMS Entity Models

Canonical representations of the CMS entities that are synchronized into the
search index. Entities arrive from the CMS API as JSON and are parsed into one
of the concrete kinds through a discriminated union on ``kind``.

Each entity exposes its typed structural attributes (name, path, dates ...)
plus a bag of user-defined properties keyed by alias.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class EntityKind(str, Enum):
    CONTENT = "content"
    MEDIA = "media"
    MEMBER = "member"

    @property
    def session_filename(self) -> str:
        return f"{self.value}.json"


class ContentType(BaseModel):
    id: int
    alias: str
    icon: Optional[str] = None


class CmsProperty(BaseModel):
    """
    A single user-defined property value on an entity.
    """

    alias: str
    editor_alias: Optional[str] = None
    value: Any = None


class CmsEntity(BaseModel):
    """
    Fields shared by content, media and member entities.
    """

    id: int
    key: Optional[str] = None
    name: Optional[str] = None
    path: str = ""
    level: Optional[int] = None
    sort_order: Optional[int] = None
    parent_id: Optional[int] = None
    trashed: bool = False
    create_date: Optional[datetime] = None
    update_date: Optional[datetime] = None
    creator_id: Optional[int] = None
    creator_name: Optional[str] = None
    content_type: ContentType
    properties: Dict[str, CmsProperty] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore")

    def has_property(self, alias: str) -> bool:
        return alias in self.properties

    def get_value(self, alias: str) -> Any:
        prop = self.properties.get(alias)
        return prop.value if prop is not None else None


class ContentEntity(CmsEntity):
    kind: Literal["content"] = "content"
    published: bool = False
    writer_id: Optional[int] = None
    writer_name: Optional[str] = None
    template_alias: Optional[str] = None
    # Front-end URL of the published rendering, when the CMS could resolve it
    url: Optional[str] = None


class MediaEntity(CmsEntity):
    kind: Literal["media"] = "media"


class MemberEntity(CmsEntity):
    kind: Literal["member"] = "member"
    email: Optional[str] = None


AnyEntity = Annotated[
    Union[ContentEntity, MediaEntity, MemberEntity],
    Field(discriminator="kind"),
]

entity_list_adapter: TypeAdapter[List[Optional[AnyEntity]]] = TypeAdapter(
    List[Optional[AnyEntity]]
)
