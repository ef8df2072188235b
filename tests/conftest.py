from __future__ import annotations

import asyncio
from typing import Any

from credentia.app.store import USER, Entity, MemoryStore
from credentia.core.config import Options


def run(coro):
    return asyncio.run(coro)


def fast_options(**kwargs: Any) -> Options:
    kwargs.setdefault("rounds", 10)
    return Options(**kwargs)


def seed_user(store: MemoryStore, **fields: Any) -> Entity:
    fields.setdefault("active", True)
    return run(store.create(USER, fields))
