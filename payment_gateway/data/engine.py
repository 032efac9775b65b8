from __future__ import annotations

import re
import sqlite3
import threading
from typing import Protocol

from payment_gateway.data.errors import EngineError

_TREE_NAME = re.compile(r"^[A-Za-z0-9_]{1,64}$")


class KVTree(Protocol):
    """Named byte-keyed collection. Every method is a blocking call and atomic per key."""

    def get(self, key: bytes) -> bytes | None: ...

    def iter(self) -> list[tuple[bytes, bytes]]: ...

    def last(self) -> tuple[bytes, bytes] | None: ...

    def insert(self, key: bytes, value: bytes) -> None: ...

    def remove(self, key: bytes) -> bytes | None: ...


class SqliteEngine:
    """sqlite3-backed engine: one WITHOUT ROWID table per named tree.

    Keys are BLOB primary keys, so ``iter`` and ``last`` follow byte-lexicographic
    key order. A single lock serialises all access to the shared connection, so
    trees may be used from executor threads.
    """

    def __init__(self, path: str, *, timeout: float = 5.0):
        self.path = path
        self._lock = threading.Lock()
        try:
            self._conn = sqlite3.connect(
                path,
                timeout=timeout,
                isolation_level=None,
                check_same_thread=False,
            )
            self._conn.execute("PRAGMA journal_mode=WAL")
        except sqlite3.Error as exc:
            raise EngineError(f"open {path}: {exc}") from exc

    def tree(self, name: str) -> SqliteTree:
        if not _TREE_NAME.match(name):
            raise ValueError(f"invalid tree name {name!r}")
        table = f"tree_{name}"
        self._execute(
            f'CREATE TABLE IF NOT EXISTS "{table}" (k BLOB PRIMARY KEY, v BLOB NOT NULL) WITHOUT ROWID'
        )
        return SqliteTree(self, table)

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def _execute(self, sql: str, params: tuple = ()) -> list[tuple]:
        with self._lock:
            try:
                return self._conn.execute(sql, params).fetchall()
            except sqlite3.Error as exc:
                raise EngineError(str(exc)) from exc


class SqliteTree:
    def __init__(self, engine: SqliteEngine, table: str):
        self._engine = engine
        self.table = table

    def get(self, key: bytes) -> bytes | None:
        rows = self._engine._execute(f'SELECT v FROM "{self.table}" WHERE k = ?', (key,))
        return bytes(rows[0][0]) if rows else None

    def iter(self) -> list[tuple[bytes, bytes]]:
        rows = self._engine._execute(f'SELECT k, v FROM "{self.table}" ORDER BY k')
        return [(bytes(k), bytes(v)) for k, v in rows]

    def last(self) -> tuple[bytes, bytes] | None:
        rows = self._engine._execute(f'SELECT k, v FROM "{self.table}" ORDER BY k DESC LIMIT 1')
        if not rows:
            return None
        k, v = rows[0]
        return bytes(k), bytes(v)

    def insert(self, key: bytes, value: bytes) -> None:
        self._engine._execute(
            f'INSERT INTO "{self.table}" (k, v) VALUES (?, ?) ON CONFLICT(k) DO UPDATE SET v = excluded.v',
            (key, value),
        )

    def remove(self, key: bytes) -> bytes | None:
        rows = self._engine._execute(f'DELETE FROM "{self.table}" WHERE k = ? RETURNING v', (key,))
        return bytes(rows[0][0]) if rows else None
