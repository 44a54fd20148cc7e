"""
Key/Value Cache
Small SQLite-backed cache with per-entry expiry.
"""

import asyncio
import json
import time
from pathlib import Path
from typing import Any, Optional

import aiosqlite

from ..utils.logger import get_logger

logger = get_logger()


class KVCache:
    """JSON values keyed by string, optionally expiring."""

    def __init__(self, db_path: str):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialized = False
        self._init_lock = asyncio.Lock()
        self._write_lock = asyncio.Lock()

    async def initialize(self):
        """Initialize database schema."""
        if self._initialized:
            return

        async with self._init_lock:
            if self._initialized:
                return

            async with aiosqlite.connect(self.db_path) as conn:
                await conn.execute("PRAGMA journal_mode=WAL")
                await conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS kv_cache (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL,
                        expires_at REAL
                    )
                    """
                )
                await conn.commit()

            self._initialized = True

    async def get(self, key: str) -> Optional[Any]:
        """Cached value, or None when missing or expired."""
        await self.initialize()
        async with aiosqlite.connect(self.db_path) as conn:
            cursor = await conn.execute(
                "SELECT value, expires_at FROM kv_cache WHERE key = ?", (key,)
            )
            row = await cursor.fetchone()
            await cursor.close()

        if row is None:
            return None

        value, expires_at = row
        if expires_at is not None and expires_at <= time.time():
            await self.delete(key)
            return None

        try:
            return json.loads(value)
        except json.JSONDecodeError as exc:
            logger.warning(f"Discarding unreadable cache entry {key}: {exc}")
            await self.delete(key)
            return None

    async def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None):
        """Store a JSON-serializable value."""
        await self.initialize()
        expires_at = time.time() + ttl_seconds if ttl_seconds else None
        payload = json.dumps(value, ensure_ascii=False, default=str)

        async with self._write_lock:
            async with aiosqlite.connect(self.db_path) as conn:
                await conn.execute(
                    """
                    INSERT INTO kv_cache (key, value, expires_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        expires_at = excluded.expires_at
                    """,
                    (key, payload, expires_at),
                )
                await conn.commit()

    async def delete(self, key: str):
        await self.initialize()
        async with self._write_lock:
            async with aiosqlite.connect(self.db_path) as conn:
                await conn.execute("DELETE FROM kv_cache WHERE key = ?", (key,))
                await conn.commit()
