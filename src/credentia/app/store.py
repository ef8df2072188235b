"""Entity records and the store contract."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Iterable, Mapping
from datetime import datetime, timezone
import copy
import secrets

from ..core.error import StoreIntegrityError, StoreOperationalError

USER = "sys/user"
LOGIN = "sys/login"
RESET = "sys/reset"

# fields each collection keeps unique, checked by the store itself
UNIQUE_FIELDS: dict[str, tuple[str, ...]] = {
    USER: ("nick", "email"),
}


def new_id(nbytes: int = 24) -> str:
    return secrets.token_urlsafe(nbytes)


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class Entity(dict):
    """
    A stored record.

    A plain dict of fields plus the name of the collection it lives in.
    """

    def __init__(self, collection: str, data: Mapping[str, Any] | None = None, **fields: Any) -> None:
        super().__init__(data or {}, **fields)
        self.collection = collection

    @property
    def id(self) -> str | None:
        return self.get("id")

    def copy(self) -> "Entity":
        return Entity(self.collection, copy.deepcopy(dict(self)))

    def safe(self, hidden: Iterable[str]) -> dict[str, Any]:
        """Return a plain dict without the hidden fields."""
        names = set(hidden)
        return {k: v for k, v in self.items() if k not in names}

    def __repr__(self) -> str:
        return f"Entity({self.collection!r}, {dict.__repr__(self)})"


class EntityStore(ABC):
    """
    Persistence collaborator used by the workflows.

    Implementations must enforce UNIQUE_FIELDS themselves and raise
    StoreIntegrityError on a violation.
    """

    @abstractmethod
    async def find_one(self, collection: str, field: str, value: Any) -> Entity | None:
        """Return the first record whose field equals value, or None."""

    @abstractmethod
    async def create(self, collection: str, record: Mapping[str, Any]) -> Entity:
        """Insert a new record, assigning an id when missing."""

    @abstractmethod
    async def save(self, entity: Entity) -> Entity:
        """Insert or update a record by id."""

    @abstractmethod
    async def update_if(
        self, collection: str, id: str, field: str, expected: Any, value: Any
    ) -> Entity | None:
        """
        Set field to value only if it currently equals expected.

        Atomic with respect to other writers. Returns the updated record,
        or None when the record is missing or the field differs.
        """


class MemoryStore(EntityStore):
    """In-process store, mainly for tests and embedding."""

    def __init__(self, unique: Mapping[str, tuple[str, ...]] | None = None) -> None:
        self.unique = dict(UNIQUE_FIELDS if unique is None else unique)
        self._data: dict[str, dict[str, dict[str, Any]]] = {}

    def records(self, collection: str) -> list[Entity]:
        return [Entity(collection, copy.deepcopy(r)) for r in self._data.get(collection, {}).values()]

    async def find_one(self, collection: str, field: str, value: Any) -> Entity | None:
        for rec in self._data.get(collection, {}).values():
            if field in rec and rec[field] == value:
                return Entity(collection, copy.deepcopy(rec))
        return None

    async def create(self, collection: str, record: Mapping[str, Any]) -> Entity:
        ent = Entity(collection, copy.deepcopy(dict(record)))
        if not ent.get("id"):
            ent["id"] = new_id()
        if ent["id"] in self._data.get(collection, {}):
            raise StoreIntegrityError(collection, "id", ent["id"])
        return self._put(ent)

    async def save(self, entity: Entity) -> Entity:
        if not getattr(entity, "collection", None):
            raise StoreOperationalError("entity has no collection")
        ent = entity.copy()
        if not ent.get("id"):
            ent["id"] = new_id()
        return self._put(ent)

    async def update_if(
        self, collection: str, id: str, field: str, expected: Any, value: Any
    ) -> Entity | None:
        rec = self._data.get(collection, {}).get(id)
        if rec is None or rec.get(field) != expected:
            return None
        ent = Entity(collection, copy.deepcopy(rec))
        ent[field] = value
        return self._put(ent)

    def _put(self, ent: Entity) -> Entity:
        table = self._data.setdefault(ent.collection, {})
        for field in self.unique.get(ent.collection, ()):
            value = ent.get(field)
            if not value:
                continue
            for rid, rec in table.items():
                if rid != ent["id"] and rec.get(field) == value:
                    raise StoreIntegrityError(ent.collection, field, str(value))
        table[ent["id"]] = copy.deepcopy(dict(ent))
        return ent.copy()
