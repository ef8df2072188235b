from __future__ import annotations

import pytest

from credentia.app.db import SQLiteStore
from credentia.app.store import LOGIN, USER, Entity, MemoryStore
from credentia.core.error import StoreConnectionInvalidError, StoreIntegrityError

from conftest import run


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        yield MemoryStore()
        return
    s = SQLiteStore(str(tmp_path / "entities.db"))
    yield s
    s.rip_connection()


def test_create_and_find(store):
    saved = run(store.create(USER, {"nick": "alice", "email": "a@x.com", "active": True}))
    assert saved.id
    assert saved.collection == USER

    assert run(store.find_one(USER, "nick", "alice")).id == saved.id
    assert run(store.find_one(USER, "email", "a@x.com")).id == saved.id
    assert run(store.find_one(USER, "id", saved.id))["nick"] == "alice"
    assert run(store.find_one(USER, "nick", "bob")) is None
    assert run(store.find_one(LOGIN, "id", saved.id)) is None


def test_find_by_plain_field(store):
    run(store.create(LOGIN, {"id": "t1", "nick": "alice", "active": True, "reason": "password"}))
    assert run(store.find_one(LOGIN, "reason", "password")).id == "t1"
    assert run(store.find_one(LOGIN, "active", True)).id == "t1"
    assert run(store.find_one(LOGIN, "reason", "auto")) is None


def test_unique_nick_and_email(store):
    run(store.create(USER, {"nick": "alice", "email": "a@x.com"}))
    with pytest.raises(StoreIntegrityError) as exc:
        run(store.create(USER, {"nick": "alice", "email": "b@x.com"}))
    assert exc.value.field == "nick"

    with pytest.raises(StoreIntegrityError) as exc:
        run(store.create(USER, {"nick": "bob", "email": "a@x.com"}))
    assert exc.value.field == "email"

    assert run(store.find_one(USER, "nick", "bob")) is None


def test_empty_values_are_not_unique(store):
    run(store.create(USER, {"nick": "alice", "email": None}))
    run(store.create(USER, {"nick": "bob", "email": None}))
    assert run(store.find_one(USER, "nick", "bob")) is not None


def test_create_rejects_duplicate_id(store):
    run(store.create(LOGIN, {"id": "same"}))
    with pytest.raises(StoreIntegrityError):
        run(store.create(LOGIN, {"id": "same"}))


def test_save_updates_record(store):
    user = run(store.create(USER, {"nick": "alice", "email": "a@x.com"}))
    user["nick"] = "alice2"
    run(store.save(user))

    assert run(store.find_one(USER, "nick", "alice")) is None
    assert run(store.find_one(USER, "nick", "alice2")).id == user.id
    # the old nick is free again
    run(store.create(USER, {"nick": "alice"}))


def test_save_cannot_take_another_nick(store):
    run(store.create(USER, {"nick": "alice"}))
    bob = run(store.create(USER, {"nick": "bob"}))
    bob["nick"] = "alice"
    with pytest.raises(StoreIntegrityError):
        run(store.save(bob))
    assert run(store.find_one(USER, "nick", "bob")).id == bob.id


def test_returned_entities_are_copies(store):
    user = run(store.create(USER, {"nick": "alice"}))
    user["nick"] = "mutated"
    assert run(store.find_one(USER, "id", user.id))["nick"] == "alice"


def test_sqlite_persists_between_connections(tmp_path):
    path = str(tmp_path / "entities.db")
    first = SQLiteStore(path)
    saved = run(first.create(USER, {"nick": "alice"}))
    first.rip_connection()

    second = SQLiteStore(path)
    assert run(second.find_one(USER, "nick", "alice")).id == saved.id
    second.rip_connection()

    with pytest.raises(StoreConnectionInvalidError):
        run(second.find_one(USER, "nick", "alice"))


def test_entity_safe_projection():
    ent = Entity(USER, nick="alice", hash="h", salt="s")
    assert ent.safe({"hash", "salt"}) == {"nick": "alice"}
    assert ent.copy().collection == USER


def test_update_if_sets_only_on_expected_value(store):
    run(store.create(LOGIN, {"id": "t2", "active": True}))
    updated = run(store.update_if(LOGIN, "t2", "active", True, False))
    assert updated["active"] is False
    assert run(store.update_if(LOGIN, "t2", "active", True, False)) is None
    assert run(store.update_if(LOGIN, "nope", "active", True, False)) is None
    assert run(store.find_one(LOGIN, "id", "t2"))["active"] is False
