import pytest

from cms_search_sync.cms.models import EntityKind
from cms_search_sync.core.errors import SessionStateError
from cms_search_sync.sessions.store import InvalidSessionError, SessionStore


@pytest.fixture
def store(tmp_path):
    return SessionStore(tmp_path / "sessions")


def test_write_then_read_preserves_order(store):
    ids = [5, 3, 9, 1, 1000000]
    store.write("abc", EntityKind.CONTENT, ids)

    session = store.read("abc", EntityKind.CONTENT)
    assert session.ids == ids
    assert session.session_id == "abc"
    assert session.entity_kind == EntityKind.CONTENT
    assert session.created_at is not None


def test_file_layout(store, tmp_path):
    store.write("run-1", EntityKind.MEDIA, [1, 2])

    path = tmp_path / "sessions" / "run-1" / "media.json"
    assert path.read_text(encoding="utf-8") == "[1, 2]"


def test_kinds_are_isolated(store):
    store.write("s", EntityKind.CONTENT, [1])
    store.write("s", EntityKind.MEMBER, [2, 3])

    assert store.read("s", EntityKind.CONTENT).ids == [1]
    assert store.read("s", EntityKind.MEMBER).ids == [2, 3]
    assert not store.exists("s", EntityKind.MEDIA)


def test_id_list_is_write_once(store):
    store.write("s", EntityKind.CONTENT, [1, 2])

    with pytest.raises(SessionStateError):
        store.write("s", EntityKind.CONTENT, [3])
    assert store.read("s", EntityKind.CONTENT).ids == [1, 2]


def test_delete(store, tmp_path):
    store.write("s", EntityKind.CONTENT, [1])

    assert store.delete("s", EntityKind.CONTENT) is True
    assert not store.exists("s", EntityKind.CONTENT)
    assert not (tmp_path / "sessions" / "s").exists()
    assert store.delete("s", EntityKind.CONTENT) is False


def test_missing_session_raises(store):
    with pytest.raises(SessionStateError):
        store.read("nope", EntityKind.CONTENT)


@pytest.mark.parametrize("contents", ["{broken", '{"ids": [1]}', '[1, "2"]', "[true]"])
def test_corrupt_session_raises(store, contents):
    path = store.path_for("bad", EntityKind.CONTENT)
    path.parent.mkdir(parents=True)
    path.write_text(contents, encoding="utf-8")

    with pytest.raises(SessionStateError):
        store.read("bad", EntityKind.CONTENT)


@pytest.mark.parametrize("session_id", ["", "../etc", "a/b", "x" * 65, "a b"])
def test_invalid_session_ids_rejected(store, session_id):
    with pytest.raises(InvalidSessionError):
        store.exists(session_id, EntityKind.CONTENT)
