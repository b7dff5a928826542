"""
SQLite Storage Backend for FlowCanvas.

Implements the GraphStore protocol on a single SQLite file. This is the
transactional tier: every call commits or rolls back as one transaction, and
put_many replaces a whole collection atomically.

Structure:
- nodes(id TEXT PRIMARY KEY, body TEXT): one JSON record per node
- connections(id TEXT PRIMARY KEY, body TEXT): one JSON record per connection
"""

import json
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from flowcanvas.storage.protocol import COLLECTIONS, StorageUnavailable, check_collection

logger = logging.getLogger(__name__)


class SQLiteBackend:
    """
    Durable per-entity storage in SQLite.

    The connection is opened lazily on first use. A backend constructed with
    no path (tier disabled by configuration) raises StorageUnavailable on
    every call, as does any sqlite3 error.
    """

    def __init__(self, db_path: Optional[Union[str, Path]]):
        self.db_path = Path(db_path) if db_path else None
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()

    @property
    def backend_type(self) -> str:
        return "sqlite"

    def _connect(self) -> sqlite3.Connection:
        if self._conn is not None:
            return self._conn
        if self.db_path is None:
            raise StorageUnavailable("SQLite storage is disabled")
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            with conn:
                for table in COLLECTIONS:
                    conn.execute(
                        f"CREATE TABLE IF NOT EXISTS {table} ("
                        "id TEXT PRIMARY KEY, body TEXT NOT NULL)"
                    )
        except (OSError, sqlite3.Error) as e:
            raise StorageUnavailable(f"Cannot open {self.db_path}: {e}") from e
        logger.info(f"Opened SQLite store at {self.db_path}")
        self._conn = conn
        return conn

    def load_all(self, collection: str) -> List[Dict[str, Any]]:
        table = check_collection(collection)
        with self._lock:
            conn = self._connect()
            rows = conn.execute(f"SELECT body FROM {table} ORDER BY rowid").fetchall()
        return [json.loads(body) for (body,) in rows]

    def put(self, collection: str, entity: Dict[str, Any]) -> None:
        table = check_collection(collection)
        with self._lock:
            conn = self._connect()
            with conn:
                conn.execute(
                    f"INSERT INTO {table} (id, body) VALUES (?, ?) "
                    "ON CONFLICT(id) DO UPDATE SET body = excluded.body",
                    (entity["id"], json.dumps(entity, ensure_ascii=False)),
                )

    def put_many(self, collection: str, entities: List[Dict[str, Any]]) -> None:
        table = check_collection(collection)
        with self._lock:
            conn = self._connect()
            with conn:
                conn.execute(f"DELETE FROM {table}")
                conn.executemany(
                    f"INSERT OR REPLACE INTO {table} (id, body) VALUES (?, ?)",
                    [(e["id"], json.dumps(e, ensure_ascii=False)) for e in entities],
                )

    def delete_by_id(self, collection: str, entity_id: str) -> None:
        table = check_collection(collection)
        with self._lock:
            conn = self._connect()
            with conn:
                conn.execute(f"DELETE FROM {table} WHERE id = ?", (entity_id,))

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
