"""
Queue Worker
Long-running consumers for the video-generation queue.
"""

import asyncio
import json
from typing import Awaitable, Callable, List, Optional

from pydantic import ValidationError as PydanticValidationError

from ..models.queue_message import VideoGenerationMessage
from ..utils.exceptions import InvalidMessageError
from ..utils.logger import get_logger
from .job_queue import QUEUES, WorkQueue

logger = get_logger()

MessageHandler = Callable[[VideoGenerationMessage], Awaitable[object]]


def parse_message(raw: str) -> VideoGenerationMessage:
    """Validate a raw queue payload; raises InvalidMessageError for anything unusable"""
    try:
        payload = json.loads(raw)
    except (TypeError, json.JSONDecodeError) as exc:
        raise InvalidMessageError(f"Message is not valid JSON: {exc}") from exc

    if not isinstance(payload, dict):
        raise InvalidMessageError("Message is not a JSON object")

    job_id = payload.get("job_id") if isinstance(payload.get("job_id"), str) else None
    try:
        return VideoGenerationMessage.model_validate(payload)
    except PydanticValidationError as exc:
        raise InvalidMessageError(f"Invalid message shape: {exc.error_count()} error(s)", job_id) from exc


class QueueWorker:
    """Polls one queue and hands each message to a handler."""

    def __init__(
        self,
        queue: WorkQueue,
        handler: MessageHandler,
        poll_interval: float = 1.0,
        queue_name: str = QUEUES.VIDEO_GENERATION,
        worker_id: int = 1,
        max_attempts: int = 2
    ):
        self.queue = queue
        self.handler = handler
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self.queue_name = queue_name
        self.worker_id = worker_id
        self._stopping = asyncio.Event()

    @property
    def running(self) -> bool:
        return not self._stopping.is_set()

    def stop(self):
        """Ask the loop to exit after the in-flight message."""
        self._stopping.set()

    async def _idle(self):
        try:
            await asyncio.wait_for(self._stopping.wait(), timeout=self.poll_interval)
        except asyncio.TimeoutError:
            pass

    async def run_once(self) -> bool:
        """Process at most one message; True if one was taken off the queue."""
        raw = await self.queue.dequeue(self.queue_name)
        if raw is None:
            return False

        try:
            message = parse_message(raw)
        except InvalidMessageError as exc:
            logger.error(f"Worker {self.worker_id} dropped invalid message: {exc.message}")
            return True

        try:
            await self.handler(message)
            logger.info(f"[{message.job_id}] Worker {self.worker_id} finished message")
        except Exception as exc:
            logger.error(f"[{message.job_id}] Worker {self.worker_id} failed: {exc}")
            await self._retry(message)
        return True

    async def _retry(self, message: VideoGenerationMessage):
        attempt = message.attempt + 1
        if attempt >= self.max_attempts:
            logger.warning(f"[{message.job_id}] Giving up after {attempt} attempt(s)")
            return
        retry = message.model_copy(update={"attempt": attempt})
        await self.queue.requeue(self.queue_name, retry.model_dump_json())

    async def run(self):
        """Consume until stopped."""
        logger.info(f"Worker {self.worker_id} consuming {self.queue_name}")
        while self.running:
            try:
                processed = await self.run_once()
            except Exception as exc:
                logger.exception(f"Worker {self.worker_id} queue error: {exc}")
                processed = False

            if not processed:
                await self._idle()
        logger.info(f"Worker {self.worker_id} stopped")


class QueueWorkerPool:
    """Runs several QueueWorkers as tasks on the current loop."""

    def __init__(
        self,
        queue: WorkQueue,
        handler: MessageHandler,
        concurrency: int = 1,
        poll_interval: float = 1.0,
        max_attempts: int = 2
    ):
        self.workers: List[QueueWorker] = [
            QueueWorker(queue, handler, poll_interval, worker_id=index + 1, max_attempts=max_attempts)
            for index in range(max(1, concurrency))
        ]
        self._tasks: List[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    async def start(self):
        """Start worker tasks."""
        if self._tasks:
            return
        self._tasks = [asyncio.create_task(worker.run()) for worker in self.workers]
        logger.info(f"Queue worker pool started (workers={len(self.workers)})")

    async def stop(self, timeout: Optional[float] = None):
        """Stop worker tasks, letting in-flight messages finish."""
        if not self._tasks:
            return

        for worker in self.workers:
            worker.stop()

        _, pending = await asyncio.wait(self._tasks, timeout=timeout)
        for task in pending:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        logger.info("Queue worker pool stopped")


class StatusRelay:
    """Forwards status-updates events to in-process listeners."""

    def __init__(self, queue: WorkQueue, poll_interval: float = 0.5):
        self.queue = queue
        self.poll_interval = poll_interval
        self._task: Optional[asyncio.Task] = None
        self._stopping = asyncio.Event()

    async def _run(self):
        while not self._stopping.is_set():
            try:
                dispatched = await self.queue.dispatch_status_updates()
            except Exception as exc:
                logger.warning(f"Status relay error: {exc}")
                dispatched = 0

            if not dispatched:
                try:
                    await asyncio.wait_for(self._stopping.wait(), timeout=self.poll_interval)
                except asyncio.TimeoutError:
                    pass

    async def start(self):
        if self._task is None:
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self):
        if self._task is None:
            return
        self._stopping.set()
        await asyncio.gather(self._task, return_exceptions=True)
        self._task = None
