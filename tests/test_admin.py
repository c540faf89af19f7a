import pytest
from unittest.mock import AsyncMock

from cms_search_sync.indexing.admin import IndexAdministrator
from cms_search_sync.indexing.schema import SchemaBuilder
from cms_search_sync.search.gateway import SearchServiceError
from cms_search_sync.search.models import SearchFieldConfig


@pytest.fixture
def metadata():
    mock = AsyncMock()
    mock.get_system_property_names.return_value = ["nodeName"]
    mock.get_user_property_names.return_value = []
    return mock


@pytest.fixture
def service():
    mock = AsyncMock()
    mock.list_indexes.return_value = ["umbraco", "other"]
    return mock


@pytest.fixture
def admin(service, metadata):
    schema = SchemaBuilder(metadata, search_fields=[SearchFieldConfig(name="bodyText")])
    return IndexAdministrator(
        service=service,
        schema=schema,
        index_name="umbraco",
        scoring_profiles=[{"name": "boostTitle"}],
    )


@pytest.mark.asyncio
async def test_drop_create_index(admin, service):
    assert await admin.drop_create_index() == "Index created"

    service.delete_index.assert_awaited_once_with("umbraco")
    definition = service.create_index.await_args.args[0]
    names = [f.name for f in definition.fields]
    assert names[0] == "Id"
    assert "bodyText" in names and "nodeName" in names
    assert definition.scoring_profiles == [{"name": "boostTitle"}]


@pytest.mark.asyncio
async def test_missing_index_is_not_deleted(admin, service):
    service.list_indexes.return_value = ["other"]

    await admin.drop_create_index()

    service.delete_index.assert_not_awaited()
    service.create_index.assert_awaited_once()


@pytest.mark.asyncio
async def test_creation_failure_returns_message(admin, service):
    service.create_index.side_effect = SearchServiceError("Search request failed: HTTPStatusError (400)")

    message = await admin.drop_create_index()

    assert message == "Search request failed: HTTPStatusError (400)"


@pytest.mark.asyncio
async def test_creating_index_hook_can_modify_definition(admin, service):
    @admin.on_creating_index
    def add_profile(definition):
        definition.scoring_profiles.append({"name": "fromHook"})

    await admin.drop_create_index()

    definition = service.create_index.await_args.args[0]
    assert {"name": "fromHook"} in definition.scoring_profiles


@pytest.mark.asyncio
async def test_schema_is_refreshed_for_index_creation(admin, metadata):
    await admin.build_definition()
    await admin.drop_create_index()

    assert metadata.get_system_property_names.await_count == 2


@pytest.mark.asyncio
async def test_get_search_indexes(admin):
    assert await admin.get_search_indexes() == ["umbraco", "other"]
