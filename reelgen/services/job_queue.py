"""
Work Queue Service
Durable FIFO queues over SQLite with atomic pop and a status side channel.
"""

import asyncio
import json
import time
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

import aiosqlite
from pydantic import BaseModel

from ..utils.logger import get_logger

logger = get_logger()

StatusListener = Callable[[Dict[str, Any]], Awaitable[None]]


class QUEUES:
    """Queue names shared by producers and consumers"""
    VIDEO_GENERATION = "video-generation"
    STATUS_UPDATES = "status-updates"


class WorkQueue:
    """Named FIFO queues persisted in SQLite."""

    def __init__(self, db_path: str, status_ttl: float = 300.0):
        self.db_path = Path(db_path)
        self.status_ttl = status_ttl
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialized = False
        self._init_lock = asyncio.Lock()
        self._write_lock = asyncio.Lock()
        self._status_listeners: List[StatusListener] = []

    async def initialize(self):
        """Initialize database schema."""
        if self._initialized:
            return

        async with self._init_lock:
            if self._initialized:
                return

            async with aiosqlite.connect(self.db_path) as conn:
                await conn.execute("PRAGMA journal_mode=WAL")
                await conn.execute("PRAGMA synchronous=NORMAL")
                await conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS queue_messages (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        queue TEXT NOT NULL,
                        payload TEXT NOT NULL,
                        enqueued_at REAL NOT NULL
                    )
                    """
                )
                await conn.execute(
                    "CREATE INDEX IF NOT EXISTS idx_queue_messages_queue ON queue_messages(queue, id)"
                )
                await conn.commit()

            self._initialized = True
            logger.info(f"Work queue initialized at {self.db_path}")

    @staticmethod
    def _to_json(message: Union[BaseModel, Dict[str, Any], str]) -> str:
        if isinstance(message, str):
            return message
        if isinstance(message, BaseModel):
            return message.model_dump_json()
        return json.dumps(message, ensure_ascii=False, default=str)

    async def enqueue(self, queue: str, message: Union[BaseModel, Dict[str, Any], str]):
        """Append a message to the tail of a queue."""
        await self.initialize()
        payload = self._to_json(message)

        async with self._write_lock:
            async with aiosqlite.connect(self.db_path) as conn:
                await conn.execute(
                    "INSERT INTO queue_messages (queue, payload, enqueued_at) VALUES (?, ?, ?)",
                    (queue, payload, time.time()),
                )
                await conn.commit()

    async def dequeue(self, queue: str) -> Optional[str]:
        """
        Pop the head of a queue.

        Select and delete run in one IMMEDIATE transaction, so two consumers
        (in this or another process) never receive the same message.
        Returns the raw JSON payload, or None when the queue is empty.
        """
        await self.initialize()

        async with self._write_lock:
            async with aiosqlite.connect(self.db_path, isolation_level=None) as conn:
                await conn.execute("BEGIN IMMEDIATE")
                try:
                    cursor = await conn.execute(
                        "SELECT id, payload FROM queue_messages WHERE queue = ? ORDER BY id LIMIT 1",
                        (queue,),
                    )
                    row = await cursor.fetchone()
                    await cursor.close()

                    if row is None:
                        await conn.execute("COMMIT")
                        return None

                    message_id, payload = row
                    await conn.execute("DELETE FROM queue_messages WHERE id = ?", (message_id,))
                    await conn.execute("COMMIT")
                    return payload
                except Exception:
                    await conn.execute("ROLLBACK")
                    raise

    async def requeue(self, queue: str, raw_message: str):
        """Put a previously dequeued message back at the tail."""
        await self.enqueue(queue, raw_message)
        logger.info(f"Requeued message on {queue}")

    async def size(self, queue: str) -> int:
        """Number of pending messages in a queue."""
        await self.initialize()
        async with aiosqlite.connect(self.db_path) as conn:
            cursor = await conn.execute(
                "SELECT COUNT(*) FROM queue_messages WHERE queue = ?", (queue,)
            )
            (count,) = await cursor.fetchone()
            await cursor.close()
        return count

    # ------------------------------------------------------------------
    # Status side channel
    # ------------------------------------------------------------------

    def add_status_listener(self, listener: StatusListener):
        """Register a coroutine called with every dispatched status event."""
        self._status_listeners.append(listener)

    def remove_status_listener(self, listener: StatusListener):
        if listener in self._status_listeners:
            self._status_listeners.remove(listener)

    async def publish_status(self, event: Dict[str, Any]):
        """
        Publish a job status event on the status-updates channel.

        Events older than ``status_ttl`` seconds are pruned on each publish.
        """
        await self.initialize()
        now = time.time()

        async with self._write_lock:
            async with aiosqlite.connect(self.db_path) as conn:
                await conn.execute(
                    "INSERT INTO queue_messages (queue, payload, enqueued_at) VALUES (?, ?, ?)",
                    (QUEUES.STATUS_UPDATES, self._to_json(event), now),
                )
                if self.status_ttl:
                    await conn.execute(
                        "DELETE FROM queue_messages WHERE queue = ? AND enqueued_at < ?",
                        (QUEUES.STATUS_UPDATES, now - self.status_ttl),
                    )
                await conn.commit()

    async def dispatch_status_updates(self, limit: int = 100) -> int:
        """Drain pending status events into the registered listeners."""
        dispatched = 0
        while dispatched < limit:
            raw = await self.dequeue(QUEUES.STATUS_UPDATES)
            if raw is None:
                break
            dispatched += 1

            try:
                event = json.loads(raw)
            except json.JSONDecodeError as exc:
                logger.warning(f"Dropping malformed status event: {exc}")
                continue

            for listener in list(self._status_listeners):
                try:
                    await listener(event)
                except Exception as exc:
                    logger.warning(f"Status listener failed: {exc}")

        return dispatched
