"""
SQLite metadata storage.

One table holds every collection as JSON documents, so the server and
the CLI (seed-admin, purge-tokens) see the same users and tokens.
Filters are evaluated in Python with the same matcher as the in-memory
store.
"""

from __future__ import annotations

import asyncio
import json
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Generator

from aiquiz.storage.base import MetadataStorage, matches_filters


# Datetimes survive the JSON round trip as {"$date": iso}
def _encode(value: Any) -> Any:
    if isinstance(value, datetime):
        return {"$date": value.isoformat()}
    raise TypeError(f"Not JSON serializable: {type(value).__name__}")


def _decode(obj: dict[str, Any]) -> Any:
    if set(obj) == {"$date"}:
        return datetime.fromisoformat(obj["$date"])
    return obj


def dumps(doc: dict[str, Any]) -> str:
    return json.dumps(doc, default=_encode)


def loads(raw: str) -> dict[str, Any]:
    return json.loads(raw, object_hook=_decode)


class SQLiteMetadataStorage(MetadataStorage):
    """Document storage in a single SQLite file."""

    def __init__(self, db_path: str = "./data/aiquiz.db"):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()
        self._init_db()

    def _init_db(self) -> None:
        with self._connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS documents (
                    collection TEXT NOT NULL,
                    id TEXT NOT NULL,
                    data TEXT NOT NULL,
                    PRIMARY KEY (collection, id)
                )
            """)

    @contextmanager
    def _connection(self) -> Generator[sqlite3.Connection, None, None]:
        with self._lock:
            conn = sqlite3.connect(str(self.db_path))
            try:
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise
            finally:
                conn.close()

    # -------------------------------------------------------------------------
    # Blocking operations (run in a worker thread)
    # -------------------------------------------------------------------------

    def _save(self, collection: str, id: str, data: dict[str, Any]) -> None:
        doc = {**data, "_id": id, "_updated_at": datetime.now(timezone.utc).isoformat()}
        with self._connection() as conn:
            conn.execute(
                """
                INSERT INTO documents (collection, id, data) VALUES (?, ?, ?)
                ON CONFLICT (collection, id) DO UPDATE SET data = excluded.data
                """,
                (collection, id, dumps(doc)),
            )

    def _get(self, collection: str, id: str) -> dict[str, Any] | None:
        with self._connection() as conn:
            row = conn.execute(
                "SELECT data FROM documents WHERE collection = ? AND id = ?",
                (collection, id),
            ).fetchone()
        return loads(row[0]) if row else None

    def _delete(self, collection: str, id: str) -> bool:
        with self._connection() as conn:
            cursor = conn.execute(
                "DELETE FROM documents WHERE collection = ? AND id = ?",
                (collection, id),
            )
            return cursor.rowcount > 0

    def _query(
        self,
        collection: str,
        filters: dict[str, Any] | None,
        limit: int,
        offset: int,
    ) -> list[dict[str, Any]]:
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT data FROM documents WHERE collection = ? ORDER BY rowid",
                (collection,),
            ).fetchall()

        results = [loads(row[0]) for row in rows]
        if filters:
            results = [doc for doc in results if matches_filters(doc, filters)]
        return results[offset:offset + limit]

    def _update(self, collection: str, id: str, updates: dict[str, Any]) -> bool:
        with self._connection() as conn:
            # Read-modify-write under one write lock
            conn.execute("BEGIN IMMEDIATE")
            row = conn.execute(
                "SELECT data FROM documents WHERE collection = ? AND id = ?",
                (collection, id),
            ).fetchone()
            if row is None:
                return False

            doc = loads(row[0])
            doc.update(updates)
            doc["_updated_at"] = datetime.now(timezone.utc).isoformat()
            conn.execute(
                "UPDATE documents SET data = ? WHERE collection = ? AND id = ?",
                (dumps(doc), collection, id),
            )
            return True

    # -------------------------------------------------------------------------
    # MetadataStorage
    # -------------------------------------------------------------------------

    async def save(self, collection: str, id: str, data: dict[str, Any]) -> None:
        await asyncio.to_thread(self._save, collection, id, data)

    async def get(self, collection: str, id: str) -> dict[str, Any] | None:
        return await asyncio.to_thread(self._get, collection, id)

    async def delete(self, collection: str, id: str) -> bool:
        return await asyncio.to_thread(self._delete, collection, id)

    async def query(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        return await asyncio.to_thread(self._query, collection, filters, limit, offset)

    async def update(self, collection: str, id: str, updates: dict[str, Any]) -> bool:
        return await asyncio.to_thread(self._update, collection, id, updates)
