from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from credentia.app.db import SQLiteStore
from credentia.app.store import RESET, USER, MemoryStore
from credentia.app.user import UserService
from credentia.core.error import UserNotFoundError

from conftest import fast_options, run


@pytest.fixture
def svc():
    service = UserService(MemoryStore(), fast_options(reset_period=3600))
    run(service.register({"nick": "alice", "email": "a@x.com", "password": "old"}))
    return service


def test_change_password(svc):
    out = run(svc.change_password({"nick": "alice"}, "new"))
    assert out.ok is True
    assert run(svc.login({"nick": "alice"}, "old")).why == "invalid-password"
    assert run(svc.login({"nick": "alice"}, "new")).ok is True


def test_change_password_with_resolved_user(svc):
    user = run(svc.resolve({"nick": "alice"}))
    out = run(svc.change_password(user, "new", "new"))
    assert out.ok is True
    assert out.user["salt"] != user["salt"]
    assert run(svc.login({"nick": "alice"}, "new")).ok is True


def test_change_password_mismatch_keeps_hash(svc):
    before = run(svc.resolve({"nick": "alice"}))
    out = run(svc.change_password({"nick": "alice"}, "a", "b"))
    assert out.ok is False
    assert out.why == "password_mismatch"
    after = run(svc.resolve({"nick": "alice"}))
    assert after["hash"] == before["hash"]
    assert after["salt"] == before["salt"]


def test_change_password_unknown_user_raises(svc):
    with pytest.raises(UserNotFoundError):
        run(svc.change_password({"nick": "ghost"}, "new"))


def test_raised_rounds_keep_old_hashes_valid(svc):
    assert run(svc.resolve({"nick": "alice"}))["rounds"] == 10

    upgraded = UserService(svc.store, svc.options.replace(rounds=20))
    assert run(upgraded.login({"nick": "alice"}, "old")).ok is True

    out = run(upgraded.change_password({"nick": "alice"}, "new"))
    assert out.user["rounds"] == 20
    assert run(upgraded.login({"nick": "alice"}, "new")).ok is True


def test_reset_flow(svc):
    created = run(svc.create_reset({"email": "a@x.com"}))
    assert created.ok is True
    token = created.reset.id
    assert created.reset["active"] is True
    assert created.reset["nick"] == "alice"

    assert run(svc.load_reset(token)).ok is True

    out = run(svc.execute_reset(token, "fresh", "fresh"))
    assert out.ok is True
    assert out.reset["active"] is False
    assert run(svc.login({"nick": "alice"}, "fresh")).ok is True

    again = run(svc.execute_reset(token, "other"))
    assert again.ok is False
    assert again.why == "reset-not-active"


def test_reset_unknown_user(svc):
    out = run(svc.create_reset({"nick": "ghost"}))
    assert out.ok is False
    assert out.why == "user-not-found"
    assert svc.store.records(RESET) == []


def test_reset_unknown_token(svc):
    assert run(svc.execute_reset("missing", "pw")).why == "reset-not-found"


def test_reset_stale(svc):
    reset = run(svc.create_reset({"nick": "alice"})).reset
    old = datetime.now(timezone.utc) - timedelta(hours=2)
    reset["when"] = old.isoformat()
    run(svc.store.save(reset))

    out = run(svc.execute_reset(reset.id, "fresh"))
    assert out.ok is False
    assert out.why == "reset-stale"
    assert run(svc.login({"nick": "alice"}, "old")).ok is True


def test_reset_mismatch_keeps_token(svc):
    token = run(svc.create_reset({"nick": "alice"})).reset.id
    out = run(svc.execute_reset(token, "a", "b"))
    assert out.why == "password_mismatch"
    assert run(svc.load_reset(token)).ok is True
    assert len(svc.store.records(USER)) == 1


@pytest.mark.parametrize("backend", ["memory", "sqlite"])
def test_concurrent_resets_consume_token_once(backend, tmp_path):
    store = MemoryStore() if backend == "memory" else SQLiteStore(str(tmp_path / "reset.db"))
    svc = UserService(store, fast_options(reset_period=3600))
    run(svc.register({"nick": "alice", "email": "a@x.com", "password": "old"}))
    token = run(svc.create_reset({"nick": "alice"})).reset.id

    async def both():
        return await asyncio.gather(
            svc.execute_reset(token, "first"),
            svc.execute_reset(token, "second"),
        )

    outs = run(both())
    winners = [o for o in outs if o.ok]
    losers = [o for o in outs if not o.ok]
    assert len(winners) == 1
    assert len(losers) == 1
    assert losers[0].why == "reset-not-active"

    won = "first" if outs[0].ok else "second"
    lost = "second" if won == "first" else "first"
    assert run(svc.login({"nick": "alice"}, won)).ok is True
    assert run(svc.login({"nick": "alice"}, lost)).why == "invalid-password"
    assert run(svc.load_reset(token)).why == "reset-not-active"
    svc.close()
