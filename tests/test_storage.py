from concurrent.futures import ThreadPoolExecutor

import pytest

from studysphere.core.database import create_db_engine, create_session_factory, init_db, verify_db_connection
from studysphere.services.session_store import SessionStore, session_key
from studysphere.services.storage import DatabaseStorage, InMemoryStorage, NamespacedStorage


@pytest.fixture
def db_storage():
    engine = create_db_engine("sqlite://")
    assert verify_db_connection(engine)
    init_db(engine)
    yield DatabaseStorage(create_session_factory(engine))
    engine.dispose()


def test_database_storage_round_trips_json(db_storage):
    assert db_storage.get("chatSessions") is None
    db_storage.set("chatSessions", [{"id": "1", "title": "New Chat", "messages": [], "timestamp": 1}])
    db_storage.set("pinnedChats", ["1"])
    db_storage.set("pinnedChats", [])

    assert db_storage.get("chatSessions")[0]["id"] == "1"
    assert db_storage.get("pinnedChats") == []


def test_in_memory_storage_copies_values():
    storage = InMemoryStorage()
    value = ["a"]
    storage.set("k", value)
    value.append("b")
    assert storage.get("k") == ["a"]


def test_namespaces_isolate_users(db_storage):
    alice = SessionStore(NamespacedStorage(db_storage, "alice")).load()
    alice.rename(alice.current.id, "Alice's chat")
    bob = SessionStore(NamespacedStorage(db_storage, "bob")).load()

    assert bob.current.title == "New Chat"
    alice_ids = db_storage.get("alice:chatSessions")
    assert db_storage.get(f"alice:{session_key(alice_ids[0])}")["title"] == "Alice's chat"
    assert SessionStore(NamespacedStorage(db_storage, "alice")).load().current.title == "Alice's chat"


def test_database_update_applies_mutation_to_stored_value(db_storage):
    assert db_storage.update("pinnedChats", lambda ids: [*(ids or []), "1"]) == ["1"]
    db_storage.update("pinnedChats", lambda ids: [*(ids or []), "2"])
    assert db_storage.get("pinnedChats") == ["1", "2"]


def test_database_update_from_many_threads_loses_nothing(db_storage):
    def append(n):
        db_storage.update("chatSessions", lambda ids: [*(ids or []), str(n)])

    with ThreadPoolExecutor(max_workers=4) as pool:
        list(pool.map(append, range(20)))

    assert sorted(db_storage.get("chatSessions"), key=int) == [str(n) for n in range(20)]


def test_database_delete_removes_key(db_storage):
    db_storage.set("activeChat", "1")
    db_storage.delete("activeChat")
    db_storage.delete("never-set")
    assert db_storage.get("activeChat") is None
