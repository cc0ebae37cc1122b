# -*- coding: utf-8 -*-
from __future__ import annotations

import json
import time
from typing import Any, Protocol

import aiosqlite


class BlobStore(Protocol):
    """Durable key/value store for byte payloads with a metadata map."""

    async def set(self, key: str, data: bytes, metadata: dict[str, Any]) -> None:
        """Write (or overwrite) ``data`` under ``key``."""

    async def get(self, key: str) -> bytes | None:
        """Return stored bytes or None when the key was never written."""

    async def get_metadata(self, key: str) -> dict[str, Any] | None:
        """Return metadata only, without reading the body."""

    async def list_keys(self, prefix: str = "") -> list[str]:
        """Return every stored key starting with ``prefix``."""


_MIGRATIONS = [
    """
    CREATE TABLE IF NOT EXISTS blobs (
        key TEXT PRIMARY KEY,
        data BLOB NOT NULL,
        metadata TEXT NOT NULL DEFAULT '{}',
        updated_at INTEGER DEFAULT (strftime('%s','now'))
    );
    """,
]


class SqliteBlobStore:
    """BlobStore backed by a single sqlite file."""

    def __init__(self, path: str) -> None:
        self._path = path

    @property
    def path(self) -> str:
        return self._path

    def connect(self) -> aiosqlite.Connection:
        """Return raw sqlite connection (aio)."""
        return aiosqlite.connect(self._path)

    async def migrate(self) -> None:
        """Apply schema migrations."""
        async with self.connect() as db:
            for sql in _MIGRATIONS:
                await db.executescript(sql)
            await db.commit()

    async def set(self, key: str, data: bytes, metadata: dict[str, Any]) -> None:
        # last write wins
        async with self.connect() as db:
            await db.execute(
                """
                INSERT INTO blobs (key, data, metadata, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(key) DO UPDATE
                   SET data = excluded.data,
                       metadata = excluded.metadata,
                       updated_at = excluded.updated_at
                """,
                (key, bytes(data), json.dumps(metadata), int(time.time())),
            )
            await db.commit()

    async def get(self, key: str) -> bytes | None:
        async with self.connect() as db:
            cur = await db.execute("SELECT data FROM blobs WHERE key = ?", (key,))
            row = await cur.fetchone()
            await cur.close()
        return bytes(row[0]) if row else None

    async def get_metadata(self, key: str) -> dict[str, Any] | None:
        async with self.connect() as db:
            cur = await db.execute("SELECT metadata FROM blobs WHERE key = ?", (key,))
            row = await cur.fetchone()
            await cur.close()
        if not row:
            return None
        return json.loads(row[0] or "{}")

    async def list_keys(self, prefix: str = "") -> list[str]:
        # substr вместо LIKE: в ключах допустимы '%' и '_'
        async with self.connect() as db:
            cur = await db.execute(
                "SELECT key FROM blobs WHERE substr(key, 1, ?) = ? ORDER BY key",
                (len(prefix), prefix),
            )
            rows = await cur.fetchall()
            await cur.close()
        return [row[0] for row in rows]
