"""SQLite database manager and entity store."""

from __future__ import annotations

from typing import Any, Iterable, Mapping
import asyncio
import json
import threading
from sqlite3 import (
    connect,
    Connection,
    Cursor,

    Error,
    OperationalError,
    IntegrityError,
    ProgrammingError
)

from .store import Entity, EntityStore, UNIQUE_FIELDS, new_id
from ..core.error import (
    StoreError,

    StoreConnectionInvalidError,
    StoreOperationalError,
    StoreIntegrityError,
    StoreProgrammingError
)


def _call_error_handler(e: Error):
    if isinstance(e, OperationalError):
        raise StoreOperationalError(str(e))
    elif isinstance(e, ProgrammingError):
        raise StoreProgrammingError(str(e))
    elif isinstance(e, IntegrityError):
        raise StoreIntegrityError(detail=str(e))
    else:
        raise StoreConnectionInvalidError(str(e))


class DatabaseManager:
    """
    Simple SQLite database manager.

    - Opens a connection on construction
    - Applies safe PRAGMA defaults
    - Provides execute/execute_many helpers
    - Serializes access to the connection with a lock, so calls may
      come from worker threads
    """
    def __init__(self, db_file: str, auto_commit: bool = True):
        self.db_file: str = db_file
        self.auto_commit: bool = auto_commit

        self._conn: Connection | None = None
        self._cursor: Cursor | None = None
        self._lock = threading.RLock()

        self.start_connection(auto_commit=auto_commit)
        self._init()

    def _init(self) -> None:
        """Initialize tables (override in subclasses)."""
        ...

    def start_connection(self, auto_commit: bool = True) -> None:
        """Open a SQLite connection and apply PRAGMA defaults."""
        try:
            self.auto_commit = auto_commit
            self._conn = connect(self.db_file, check_same_thread=False)
            self._cursor = self._conn.cursor()

            # ---- SQLite safety / performance defaults ----
            self._cursor.execute("PRAGMA foreign_keys = ON")
            self._cursor.execute("PRAGMA journal_mode = WAL")
            # avoid immediate 'database is locked'
            self._cursor.execute("PRAGMA busy_timeout = 3000")
            self._cursor.execute("PRAGMA synchronous = NORMAL")

            self.commit()
        except Error as e:
            _call_error_handler(e)

    def rip_connection(self) -> None:
        """Close the current connection."""
        if self._conn is None:
            raise StoreConnectionInvalidError()
        with self._lock:
            self._conn.close()
            self._conn = None
            self._cursor = None

    def commit(self) -> None:
        """Commit the current transaction."""
        if self._conn is None or self._cursor is None:
            raise StoreConnectionInvalidError()
        self._conn.commit()

    def execute(self, sql: str, *args: Any) -> list[tuple] | None:
        """
        Execute a single SQL statement.

        Returns rows for SELECT, otherwise None.
        """
        if self._conn is None or self._cursor is None:
            raise StoreConnectionInvalidError()

        with self._lock:
            try:
                self._cursor.execute(sql, tuple(args))
                if self.auto_commit:
                    self._conn.commit()

                if sql.lstrip().upper().startswith("SELECT"):
                    return self._cursor.fetchall()
                return None

            except Error as e:
                self._conn.rollback()
                _call_error_handler(e)

    def execute_many(self, sql_inserts: Iterable[tuple[str, tuple]]) -> None:
        """Execute multiple SQL statements in a single transaction."""
        if self._conn is None or self._cursor is None:
            raise StoreConnectionInvalidError()

        with self._lock:
            try:
                for sql, values in sql_inserts:
                    self._cursor.execute(sql, values)

                if self.auto_commit:
                    self._conn.commit()

            except Error as e:
                self._conn.rollback()
                _call_error_handler(e)


class SQLiteStore(DatabaseManager, EntityStore):
    """
    Entity store backed by one SQLite file.

    Records are kept as JSON bodies. Unique fields are mirrored into
    entity_keys, whose primary key enforces uniqueness across
    concurrent writers.
    """

    def __init__(
        self,
        db_file: str,
        *,
        unique: Mapping[str, tuple[str, ...]] | None = None,
    ) -> None:
        self.unique = dict(UNIQUE_FIELDS if unique is None else unique)
        super().__init__(db_file)

    def _init(self) -> None:
        """Create entity tables if they do not exist."""
        self.execute_many(
            [
                (
                    """
                    CREATE TABLE IF NOT EXISTS entities (
                        collection TEXT NOT NULL,
                        id TEXT NOT NULL,
                        body TEXT NOT NULL,
                        PRIMARY KEY (collection, id)
                    );
                    """,
                    (),
                ),
                (
                    """
                    CREATE TABLE IF NOT EXISTS entity_keys (
                        collection TEXT NOT NULL,
                        field TEXT NOT NULL,
                        value TEXT NOT NULL,
                        id TEXT NOT NULL,
                        PRIMARY KEY (collection, field, value)
                    );
                    """,
                    (),
                ),
            ]
        )

    # ---- EntityStore ----

    async def find_one(self, collection: str, field: str, value: Any) -> Entity | None:
        return await asyncio.to_thread(self._find_one, collection, field, value)

    async def create(self, collection: str, record: Mapping[str, Any]) -> Entity:
        ent = Entity(collection, dict(record))
        if not ent.get("id"):
            ent["id"] = new_id()
        return await asyncio.to_thread(self._put, ent, False)

    async def save(self, entity: Entity) -> Entity:
        ent = Entity(entity.collection, dict(entity))
        if not ent.get("id"):
            ent["id"] = new_id()
        return await asyncio.to_thread(self._put, ent, True)

    async def update_if(
        self, collection: str, id: str, field: str, expected: Any, value: Any
    ) -> Entity | None:
        return await asyncio.to_thread(self._update_if, collection, id, field, expected, value)

    # ---- sync parts (run on worker threads) ----

    def _find_one(self, collection: str, field: str, value: Any) -> Entity | None:
        if field == "id":
            rows = self.execute(
                "SELECT body FROM entities WHERE collection=? AND id=?",
                collection,
                str(value),
            )
        elif field in self.unique.get(collection, ()):
            rows = self.execute(
                """
                SELECT e.body FROM entity_keys k
                JOIN entities e ON e.collection=k.collection AND e.id=k.id
                WHERE k.collection=? AND k.field=? AND k.value=?
                """,
                collection,
                field,
                str(value),
            )
        else:
            rows = self.execute(
                "SELECT body FROM entities WHERE collection=? AND json_extract(body, ?)=? LIMIT 1",
                collection,
                _json_path(field),
                value,
            )
        if not rows:
            return None
        return Entity(collection, json.loads(rows[0][0]))

    def _update_if(
        self, collection: str, id: str, field: str, expected: Any, value: Any
    ) -> Entity | None:
        # the lock is held from read to write so no other caller sees the old value
        with self._lock:
            ent = self._find_one(collection, "id", id)
            if ent is None or ent.get(field) != expected:
                return None
            ent[field] = value
            return self._put(ent, True)

    def _put(self, ent: Entity, upsert: bool) -> Entity:
        if self._conn is None or self._cursor is None:
            raise StoreConnectionInvalidError()

        body = json.dumps(dict(ent), ensure_ascii=False, default=str)
        with self._lock:
            cur = self._cursor
            try:
                if upsert:
                    cur.execute(
                        """
                        INSERT INTO entities(collection, id, body) VALUES(?,?,?)
                        ON CONFLICT(collection, id) DO UPDATE SET body=excluded.body
                        """,
                        (ent.collection, ent["id"], body),
                    )
                else:
                    try:
                        cur.execute(
                            "INSERT INTO entities(collection, id, body) VALUES(?,?,?)",
                            (ent.collection, ent["id"], body),
                        )
                    except IntegrityError:
                        raise StoreIntegrityError(ent.collection, "id", ent["id"])

                cur.execute(
                    "DELETE FROM entity_keys WHERE collection=? AND id=?",
                    (ent.collection, ent["id"]),
                )
                for field in self.unique.get(ent.collection, ()):
                    value = ent.get(field)
                    if not value:
                        continue
                    try:
                        cur.execute(
                            "INSERT INTO entity_keys(collection, field, value, id) VALUES(?,?,?,?)",
                            (ent.collection, field, str(value), ent["id"]),
                        )
                    except IntegrityError:
                        raise StoreIntegrityError(ent.collection, field, str(value))

                self._conn.commit()

            except StoreError:
                self._conn.rollback()
                raise
            except Error as e:
                self._conn.rollback()
                _call_error_handler(e)

        return Entity(ent.collection, json.loads(body))


def _json_path(field: str) -> str:
    return '$."' + field.replace('"', '\\"') + '"'
