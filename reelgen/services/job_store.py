"""
Job Status Store
SQLite-backed job records with merge-style updates and status fan-out.
"""

import asyncio
import json
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional

import aiosqlite

from ..models.job import TERMINAL_STATUSES, Job, JobStatus, is_retryable, is_terminal
from ..utils.logger import get_logger
from .job_queue import WorkQueue

logger = get_logger()

# Receives the stored record (or the default when absent); returns the new
# record, or None to leave the store untouched.
JobMutation = Callable[[Job, bool], Optional[Job]]


class JobStatusStore:
    """Persistent job status records keyed by job id."""

    is_terminal = staticmethod(is_terminal)
    is_retryable = staticmethod(is_retryable)

    def __init__(self, db_path: str, queue: Optional[WorkQueue] = None):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.queue = queue
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
                await conn.execute("PRAGMA synchronous=NORMAL")
                await conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS jobs (
                        id TEXT PRIMARY KEY,
                        payload TEXT NOT NULL,
                        updated_at TEXT NOT NULL
                    )
                    """
                )
                await conn.commit()

            self._initialized = True
            logger.info(f"Job status store initialized at {self.db_path}")

    @staticmethod
    def _to_json(job: Job) -> str:
        return json.dumps(job.model_dump(mode="json"), ensure_ascii=False)

    @staticmethod
    async def _read(conn: aiosqlite.Connection, job_id: str) -> Optional[Job]:
        cursor = await conn.execute("SELECT payload FROM jobs WHERE id = ?", (job_id,))
        row = await cursor.fetchone()
        await cursor.close()
        if row is None:
            return None
        return Job(**json.loads(row[0]))

    async def get(self, job_id: str) -> Job:
        """Current record, or the default record when nothing was written yet."""
        await self.initialize()
        async with aiosqlite.connect(self.db_path) as conn:
            job = await self._read(conn, job_id)
        return job or Job.default(job_id)

    async def list_awaiting_render(self) -> List[Job]:
        """Non-terminal jobs that already have a remote render job."""
        await self.initialize()
        terminal = [status.value for status in TERMINAL_STATUSES]
        async with aiosqlite.connect(self.db_path) as conn:
            cursor = await conn.execute(
                """
                SELECT payload FROM jobs
                WHERE json_extract(payload, '$.remote_job_id') IS NOT NULL
                  AND json_extract(payload, '$.status') NOT IN (?, ?)
                ORDER BY updated_at
                """,
                terminal,
            )
            rows = await cursor.fetchall()
            await cursor.close()
        return [Job(**json.loads(row[0])) for row in rows]

    async def _mutate(self, job_id: str, mutation: JobMutation) -> Job:
        """Read-modify-write one record inside a single connection."""
        await self.initialize()

        async with self._write_lock:
            async with aiosqlite.connect(self.db_path) as conn:
                stored = await self._read(conn, job_id)
                current = stored or Job.default(job_id)
                updated = mutation(current, stored is not None)
                if updated is None:
                    return current

                updated.timestamp = datetime.utcnow()
                await conn.execute(
                    """
                    INSERT INTO jobs (id, payload, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        payload = excluded.payload,
                        updated_at = excluded.updated_at
                    """,
                    (job_id, self._to_json(updated), updated.timestamp.isoformat()),
                )
                await conn.commit()

        await self.publish(updated)
        return updated

    async def update_progress(
        self,
        job_id: str,
        progress: int,
        message: str,
        remote_job_id: Optional[str] = None
    ) -> Job:
        """Advance a job; progress never moves backwards."""

        def apply(job: Job, exists: bool) -> Optional[Job]:
            if exists and is_terminal(job):
                logger.warning(
                    f"[{job_id}] Ignoring progress update on {job.status} job: {message}"
                )
                return None
            return job.model_copy(update={
                "status": JobStatus.PROCESSING.value,
                "progress": min(100, max(int(progress), job.progress)),
                "message": message,
                "remote_job_id": remote_job_id or job.remote_job_id,
            })

        return await self._mutate(job_id, apply)

    async def mark_failed(self, job_id: str, error: str) -> Job:
        """Fail a job, keeping its progress; a completed job stays completed."""

        def apply(job: Job, exists: bool) -> Optional[Job]:
            if job.status == JobStatus.COMPLETED:
                logger.warning(f"[{job_id}] Ignoring failure of completed job: {error}")
                return None
            return job.model_copy(update={
                "status": JobStatus.FAILED.value,
                "error": error,
                "message": error,
            })

        job = await self._mutate(job_id, apply)
        if job.status == JobStatus.FAILED:
            logger.error(f"[{job_id}] Job failed: {error}")
        return job

    async def mark_completed(self, job_id: str, video_url: str) -> Job:
        """Complete a job with its final video url."""

        def apply(job: Job, exists: bool) -> Optional[Job]:
            if job.status == JobStatus.FAILED:
                logger.warning(f"[{job_id}] Ignoring completion of failed job")
                return None
            return job.model_copy(update={
                "status": JobStatus.COMPLETED.value,
                "progress": 100,
                "message": "Video ready",
                "video_url": video_url,
                "error": None,
            })

        job = await self._mutate(job_id, apply)
        if job.status == JobStatus.COMPLETED:
            logger.info(f"[{job_id}] Job completed: {video_url}")
        return job

    async def reset(self, job_id: str, user_id: Optional[str] = None, message: str = "Waiting in queue...") -> Job:
        """Start a job over from QUEUED with zero progress."""

        def apply(job: Job, exists: bool) -> Job:
            return Job(
                job_id=job_id,
                status=JobStatus.QUEUED,
                progress=0,
                message=message,
                user_id=user_id or job.user_id,
            )

        return await self._mutate(job_id, apply)

    async def publish(self, job: Job):
        """Broadcast a record on the status side channel; never raises."""
        if self.queue is None:
            return
        try:
            await self.queue.publish_status(job.model_dump(mode="json"))
        except Exception as exc:
            logger.warning(f"[{job.job_id}] Failed to publish status update: {exc}")
