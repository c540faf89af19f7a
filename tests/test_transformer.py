import json

import pytest

from cms_search_sync.cms.models import CmsProperty, ContentType
from cms_search_sync.core.errors import ConfigurationError, TransformError
from cms_search_sync.indexing.parsers import (
    ComputedFieldParser,
    ComputedFieldRegistry,
    register_parser_factory,
    unregister_parser_factory,
)
from cms_search_sync.indexing.properties import PropertyResolver, to_snake_case
from cms_search_sync.indexing.schema import STANDARD_FIELDS
from cms_search_sync.indexing.text import extract_grid_text
from cms_search_sync.indexing.transformer import DocumentTransformer, parse_bool
from cms_search_sync.search.models import DataType, FieldDescriptor, SearchFieldConfig


class UpperNameParser(ComputedFieldParser):
    def get_value(self, entity):
        return (entity.name or "").upper()


@pytest.fixture
def registry():
    register_parser_factory("test.upper_name", UpperNameParser)
    reg = ComputedFieldRegistry()
    reg.register("test.upper_name")
    yield reg
    unregister_parser_factory("test.upper_name")


@pytest.fixture
def transformer(registry):
    return DocumentTransformer(registry)


STANDARD = list(STANDARD_FIELDS)


# ---------------------------------------------------------------------
# Standard fields
# ---------------------------------------------------------------------

def test_content_standard_fields(transformer, make_content):
    doc = transformer.transform(make_content(1234), STANDARD)

    assert doc["Id"] == "1234"
    assert doc["Name"] == "Item 1234"
    assert doc["SearchablePath"] == "1,1000,1234"
    assert doc["Path"] == ["-1", "1000", "1234"]
    assert doc["ParentID"] == "1000"
    assert doc["CreatorName"] == "Administrator"
    assert doc["ContentTypeId"] == 1051
    assert doc["Level"] == 2
    assert doc["CreateDate"] == "2024-01-01T12:00:00+00:00"
    # Naive datetimes are treated as UTC
    assert doc["UpdateDate"] == "2024-02-01T12:00:00+00:00"
    assert doc["IsContent"] is True
    assert doc["IsMedia"] is False
    assert doc["IsMember"] is False
    assert doc["Trashed"] is False


def test_missing_boolean_defaults_to_false(transformer, make_member):
    doc = transformer.transform(make_member(), STANDARD)

    # Members have no published state
    assert doc["Published"] is False
    assert doc["IsMember"] is True


def test_blank_string_fields_are_skipped(transformer, make_media):
    doc = transformer.transform(make_media(key="   ", name=None), STANDARD)

    assert "Key" not in doc
    assert "Name" not in doc
    assert "WriterName" not in doc


def test_generic_property_fallback(transformer, make_content):
    fields = STANDARD + [FieldDescriptor(name="umbracoNaviHide", type=DataType.STRING)]
    doc = transformer.transform(make_content(properties={"umbracoNaviHide": 1}), fields)

    assert doc["umbracoNaviHide"] == "1"


def test_structured_property_values_are_indexed_as_json(transformer, make_media):
    cropper = {"src": "/media/a.jpg", "crops": []}
    fields = STANDARD + [FieldDescriptor(name="umbracoFile", type=DataType.STRING)]

    doc = transformer.transform(make_media(properties={"umbracoFile": cropper}), fields)

    assert json.loads(doc["umbracoFile"]) == cropper


def test_resolution_failure_raises_transform_error(transformer, make_content):
    class Exploding:
        def __str__(self):
            raise RuntimeError("boom")

    fields = [FieldDescriptor(name="Id", key=True), FieldDescriptor(name="odd")]
    entity = make_content(7, properties={"odd": Exploding()})

    with pytest.raises(TransformError) as excinfo:
        transformer.transform(entity, fields)
    assert excinfo.value.entity_id == 7
    assert excinfo.value.field == "odd"


@pytest.mark.parametrize(
    "value, expected",
    [(True, True), ("True", True), (" true ", True), ("1", False), (None, False), ("nope", False)],
)
def test_parse_bool(value, expected):
    assert parse_bool(value) is expected


# ---------------------------------------------------------------------
# Hooks
# ---------------------------------------------------------------------

def test_indexing_hook_can_cancel(transformer, make_content):
    seen = []
    transformer.on_indexing(lambda entity, doc: entity.id == 2)
    transformer.on_indexed(lambda entity, doc: seen.append(entity.id))

    assert transformer.transform(make_content(2), STANDARD) is None
    assert transformer.transform(make_content(3), STANDARD) is not None
    assert seen == [3]


def test_indexing_hook_sees_partial_document(transformer, make_content):
    captured = {}

    def hook(entity, doc):
        captured.update(doc)
        return False

    transformer.on_indexing(hook)
    transformer.transform(
        make_content(properties={"bodyText": "hello"}),
        STANDARD,
        [SearchFieldConfig(name="bodyText")],
    )

    assert captured["IsContent"] is True
    assert "bodyText" not in captured


# ---------------------------------------------------------------------
# Configured fields
# ---------------------------------------------------------------------

def test_missing_configured_fields_get_type_defaults(transformer, make_content):
    search_fields = [
        SearchFieldConfig(name="tags", type="collection"),
        SearchFieldConfig(name="summary", type="string"),
        SearchFieldConfig(name="rating", type="int"),
        SearchFieldConfig(name="featured", type="bool"),
    ]
    doc = transformer.transform(make_content(), STANDARD, search_fields)

    assert doc["tags"] == []
    assert doc["summary"] == ""
    assert doc["rating"] == 0
    assert doc["featured"] is False


def test_configured_field_does_not_replace_standard_field(transformer, make_content):
    doc = transformer.transform(
        make_content(7), STANDARD, [SearchFieldConfig(name="name", type="string")]
    )

    assert doc["Name"] == "Item 7"
    assert "name" not in doc


def test_configured_string_field_with_structured_value(transformer, make_content):
    entity = make_content(properties={"picker": [1, 2]})
    doc = transformer.transform(entity, STANDARD, [SearchFieldConfig(name="picker")])

    assert doc["picker"] == "[1, 2]"


def test_collection_is_split_on_commas(transformer, make_content):
    entity = make_content(properties={"tags": "a,b,c", "cats": ["x", 2]})
    search_fields = [
        SearchFieldConfig(name="tags", type="collection"),
        SearchFieldConfig(name="cats", type="collection"),
    ]
    doc = transformer.transform(entity, STANDARD, search_fields)

    assert doc["tags"] == ["a", "b", "c"]
    assert doc["cats"] == ["x", "2"]


def test_grid_json_field_is_flattened(transformer, make_content):
    grid = {
        "name": "1 column layout",
        "sections": [{"rows": [{"areas": [{"controls": [
            {"value": "<p>Hello</p><p>World</p>", "editor": {"alias": "rte"}},
        ]}]}]}],
    }
    entity = make_content(properties={"grid": json.dumps(grid)})
    doc = transformer.transform(
        entity, STANDARD, [SearchFieldConfig(name="grid", is_grid_json=True)]
    )

    assert doc["grid"] == "Hello World"


def test_malformed_grid_json_degrades_to_empty(transformer, make_content):
    entity = make_content(properties={"grid": "{not json"})
    doc = transformer.transform(
        entity, STANDARD, [SearchFieldConfig(name="grid", is_grid_json=True)]
    )

    assert doc["grid"] == ""


def test_computed_field_value_is_assigned_as_is(transformer, make_content):
    doc = transformer.transform(
        make_content(name="home"),
        STANDARD,
        [SearchFieldConfig(name="upper", parser_type="test.upper_name")],
    )

    assert doc["upper"] == "HOME"


def test_unregistered_computed_field_raises(make_content):
    transformer = DocumentTransformer(ComputedFieldRegistry())
    with pytest.raises(ConfigurationError):
        transformer.transform(
            make_content(), STANDARD, [SearchFieldConfig(name="x", parser_type="nope")]
        )


# ---------------------------------------------------------------------
# Kind enrichment
# ---------------------------------------------------------------------

def test_published_content_enrichment(transformer, make_content):
    entity = make_content(url="/about-us/", template_alias="TextPage")
    doc = transformer.transform(entity, STANDARD)

    assert doc["Published"] is True
    assert doc["WriterId"] == 3
    assert doc["WriterName"] == "Editor"
    assert doc["ContentTypeAlias"] == "textPage"
    assert doc["Url"] == "/about-us/"
    assert doc["Template"] == "TextPage"
    assert doc["Icon"] == "icon-document"


def test_unpublished_content_has_no_url(transformer, make_content):
    doc = transformer.transform(make_content(published=False, url="/draft/"), STANDARD)

    assert "Url" not in doc
    assert doc["Published"] is False


def test_media_upload_url(transformer, make_media):
    entity = make_media(properties={
        "umbracoFile": CmsProperty(
            alias="umbracoFile",
            editor_alias="Umbraco.UploadField",
            value="/media/1001/file.pdf",
        ),
    })
    doc = transformer.transform(entity, STANDARD)

    assert doc["Url"] == "/media/1001/file.pdf"
    assert doc["IsMedia"] is True
    assert doc["ContentTypeAlias"] == "Image"
    assert doc["Icon"] == "icon-picture"


@pytest.mark.parametrize(
    "value",
    [
        {"src": "/media/1002/cat.jpg", "crops": []},
        json.dumps({"src": "/media/1002/cat.jpg", "focalPoint": {"left": 0.5, "top": 0.5}}),
    ],
)
def test_media_image_cropper_prefers_src(transformer, make_media, value):
    entity = make_media(properties={
        "umbracoFile": CmsProperty(
            alias="umbracoFile", editor_alias="Umbraco.ImageCropper", value=value
        ),
    })

    assert transformer.transform(entity, STANDARD)["Url"] == "/media/1002/cat.jpg"


def test_media_image_cropper_plain_string(transformer, make_media):
    entity = make_media(properties={
        "umbracoFile": CmsProperty(
            alias="umbracoFile", editor_alias="Umbraco.ImageCropper", value="/media/cat.jpg"
        ),
    })

    assert transformer.transform(entity, STANDARD)["Url"] == "/media/cat.jpg"


def test_media_folder_has_empty_url(transformer, make_media):
    entity = make_media(
        content_type=ContentType(id=1031, alias="Folder", icon="icon-folder"),
        properties={"umbracoFile": "/media/ignored.png"},
    )

    assert transformer.transform(entity, STANDARD)["Url"] == ""


def test_member_enrichment(transformer, make_member):
    doc = transformer.transform(make_member(9), STANDARD)

    assert doc["MemberEmail"] == "member9@example.com"
    assert doc["ContentTypeAlias"] == "Member"
    assert doc["Icon"] == "icon-user"


# ---------------------------------------------------------------------
# Property resolver and grid text
# ---------------------------------------------------------------------

def test_property_resolver_caches_accessors_per_entity_class(make_content, make_member):
    resolver = PropertyResolver()

    assert resolver.resolve(make_content(), "WriterName") == "Editor"
    assert resolver.resolve(make_member(), "WriterName") is None

    content_table = resolver.cached_fields(type(make_content()))
    member_table = resolver.cached_fields(type(make_member()))
    assert content_table["WriterName"] is not None
    assert member_table["WriterName"] is None


def test_to_snake_case():
    assert to_snake_case("CreateDate") == "create_date"
    assert to_snake_case("SortOrder") == "sort_order"
    assert to_snake_case("Id") == "id"


def test_grid_text_collects_nested_values():
    grid = {"value": "<h1>Title</h1>", "rows": [{"value": ["one", "two\\nthree"]}], "other": "x"}

    assert extract_grid_text(grid) == "Title one two three"


@pytest.mark.parametrize("raw", ["", "null", "42", None, b"\xff"])
def test_grid_text_unreadable_input(raw):
    assert extract_grid_text(raw) == ""
