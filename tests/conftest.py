from datetime import datetime, timezone

import pytest

from cms_search_sync.cms.models import (
    CmsProperty,
    ContentEntity,
    ContentType,
    MediaEntity,
    MemberEntity,
)


def _base(entity_id: int, **overrides):
    data = {
        "id": entity_id,
        "key": f"key-{entity_id}",
        "name": f"Item {entity_id}",
        "path": f"-1,1000,{entity_id}",
        "level": 2,
        "sort_order": 0,
        "parent_id": 1000,
        "create_date": datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc),
        "update_date": datetime(2024, 2, 1, 12, 0),
        "creator_id": 0,
        "creator_name": "Administrator",
        "content_type": ContentType(id=1051, alias="textPage", icon="icon-document"),
    }
    properties = overrides.pop("properties", {})
    data["properties"] = {
        alias: CmsProperty(alias=alias, value=value) if not isinstance(value, CmsProperty) else value
        for alias, value in properties.items()
    }
    data.update(overrides)
    return data


@pytest.fixture
def make_content():
    def _make(entity_id: int = 1, **overrides) -> ContentEntity:
        overrides.setdefault("published", True)
        overrides.setdefault("writer_id", 3)
        overrides.setdefault("writer_name", "Editor")
        return ContentEntity(**_base(entity_id, **overrides))
    return _make


@pytest.fixture
def make_media():
    def _make(entity_id: int = 1, **overrides) -> MediaEntity:
        overrides.setdefault(
            "content_type", ContentType(id=1032, alias="Image", icon="icon-picture")
        )
        return MediaEntity(**_base(entity_id, **overrides))
    return _make


@pytest.fixture
def make_member():
    def _make(entity_id: int = 1, **overrides) -> MemberEntity:
        overrides.setdefault(
            "content_type", ContentType(id=1044, alias="Member", icon="icon-user")
        )
        overrides.setdefault("email", f"member{entity_id}@example.com")
        return MemberEntity(**_base(entity_id, **overrides))
    return _make
