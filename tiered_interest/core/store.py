"""Key/value persistence for calculator state.

Values are stored as JSON text. The engine never touches a store; only the
session does.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Union

logger = logging.getLogger(__name__)

MEMORY_PATH = ":memory:"


class StoreError(RuntimeError):
    pass


class KeyValueStore(Protocol):
    """Values are JSON-compatible. Implementations may raise on any call;
    callers treat every exception as a failed read or write.
    """

    def get(self, key: str) -> Optional[Any]: ...

    def set(self, key: str, value: Any) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryStore:
    def __init__(self) -> None:
        self._values: Dict[str, str] = {}

    def get(self, key: str) -> Optional[Any]:
        raw = self._values.get(key)
        return None if raw is None else json.loads(raw)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = json.dumps(value)

    def remove(self, key: str) -> None:
        self._values.pop(key, None)


class SqliteStore:
    def __init__(self, path: Union[str, Path]):
        self.path = str(path)
        # Every connection to ":memory:" is a fresh database, so keep one open.
        self._shared: Optional[sqlite3.Connection] = None
        if self.path == MEMORY_PATH:
            self._shared = sqlite3.connect(MEMORY_PATH, check_same_thread=False)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        if self._shared is not None:
            return self._shared
        return sqlite3.connect(self.path)

    def _release(self, conn: sqlite3.Connection) -> None:
        if conn is not self._shared:
            conn.close()

    def _init_db(self) -> None:
        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            raise StoreError(f"cannot open store at {self.path}: {exc}") from exc
        try:
            conn.execute(
                """
                create table if not exists kv_store (
                    key text primary key,
                    value text not null,
                    updated_at text not null
                )
                """
            )
            conn.commit()
        except sqlite3.Error as exc:
            raise StoreError(f"cannot initialise store at {self.path}: {exc}") from exc
        finally:
            self._release(conn)

    def get(self, key: str) -> Optional[Any]:
        try:
            conn = self._connect()
            try:
                row = conn.execute("select value from kv_store where key = ?", (key,)).fetchone()
            finally:
                self._release(conn)
        except sqlite3.Error as exc:
            raise StoreError(f"failed to read {key!r}: {exc}") from exc

        logger.debug(f"store get {key!r}: {'hit' if row else 'miss'}")
        if row is None:
            return None
        return json.loads(row[0])

    def set(self, key: str, value: Any) -> None:
        try:
            conn = self._connect()
            try:
                conn.execute(
                    """
                    insert into kv_store (key, value, updated_at)
                    values (?, ?, ?)
                    on conflict(key) do update set
                        value = excluded.value,
                        updated_at = excluded.updated_at
                    """,
                    (
                        key,
                        json.dumps(value),
                        datetime.now(timezone.utc).isoformat(timespec="seconds"),
                    ),
                )
                conn.commit()
            finally:
                self._release(conn)
        except sqlite3.Error as exc:
            raise StoreError(f"failed to write {key!r}: {exc}") from exc
        logger.debug(f"store set {key!r}")

    def remove(self, key: str) -> None:
        try:
            conn = self._connect()
            try:
                conn.execute("delete from kv_store where key = ?", (key,))
                conn.commit()
            finally:
                self._release(conn)
        except sqlite3.Error as exc:
            raise StoreError(f"failed to remove {key!r}: {exc}") from exc
        logger.debug(f"store remove {key!r}")