"""
Transcode Job Manager
Submits render jobs and follows them to a terminal state
"""

import asyncio
import time
from typing import Dict, Optional

from ...utils.exceptions import OutputResolutionError, RemoteStatusError, RemoteSubmissionError
from ...utils.logger import get_logger
from ..job_store import JobStatusStore
from .client import MediaConvertClient
from .recipe import CaptionStyle, VideoJobInput, build_job_settings
from .status import RemoteStatus
from .url_handler import URLHandler

logger = get_logger()


class JobManager:
    """One background monitor task per submitted remote job"""

    def __init__(
        self,
        transcoder: MediaConvertClient,
        store: JobStatusStore,
        url_handler: URLHandler,
        bucket: str,
        role: str,
        caption_style: CaptionStyle,
        poll_interval: float = 10.0,
        timeout_seconds: float = 7200.0,
        max_status_failures: int = 5
    ):
        self.transcoder = transcoder
        self.store = store
        self.url_handler = url_handler
        self.bucket = bucket
        self.role = role
        self.caption_style = caption_style
        self.poll_interval = poll_interval
        self.timeout_seconds = timeout_seconds
        self.max_status_failures = max_status_failures
        self._monitors: Dict[str, asyncio.Task] = {}

    @property
    def active_monitors(self) -> int:
        return len(self._monitors)

    async def create_job(self, job_id: str, job_input: VideoJobInput) -> str:
        """Submit a render job and start monitoring it; does not wait for completion"""
        logger.info(f"[{job_id}] Creating MediaConvert job: {job_input}")
        settings = build_job_settings(job_input, self.bucket, self.role, self.caption_style)

        try:
            remote_job_id = await self.transcoder.submit(settings)
        except RemoteSubmissionError as e:
            await self.store.mark_failed(job_id, e.message)
            raise RemoteSubmissionError(e.message, job_id) from e
        except Exception as e:
            message = str(e) or "Failed to create MediaConvert job"
            await self.store.mark_failed(job_id, message)
            raise RemoteSubmissionError(message, job_id) from e

        await self.store.update_progress(job_id, 0, "Video processing started", remote_job_id)
        logger.info(f"[{job_id}] MediaConvert job created: {remote_job_id}")

        self.start_monitor(job_id, remote_job_id)
        return remote_job_id

    def start_monitor(self, job_id: str, remote_job_id: str) -> asyncio.Task:
        """Begin polling a remote job in the background"""
        existing = self._monitors.get(job_id)
        if existing and not existing.done():
            return existing

        task = asyncio.create_task(self.monitor_job(job_id, remote_job_id))
        self._monitors[job_id] = task
        task.add_done_callback(lambda done: self._forget(job_id, done))
        return task

    def _forget(self, job_id: str, task: asyncio.Task):
        if self._monitors.get(job_id) is task:
            del self._monitors[job_id]

    async def monitor_job(self, job_id: str, remote_job_id: str):
        """Poll until the remote job is terminal, mirroring it onto the local record"""
        started = time.monotonic()
        status_failures = 0

        while True:
            if self.timeout_seconds and time.monotonic() - started > self.timeout_seconds:
                await self.store.mark_failed(job_id, "Video processing timed out")
                return

            try:
                status = await self.transcoder.get_status(remote_job_id)
            except RemoteStatusError as e:
                status_failures += 1
                logger.warning(
                    f"[{job_id}] Status check failed "
                    f"({status_failures}/{self.max_status_failures}): {e.message}"
                )
                if status_failures >= self.max_status_failures:
                    await self.store.mark_failed(job_id, e.message)
                    return
                await asyncio.sleep(self.poll_interval)
                continue
            except Exception as e:
                logger.exception(f"[{job_id}] Error monitoring job: {e}")
                await self.store.mark_failed(job_id, str(e) or "Failed to monitor job status")
                return

            status_failures = 0

            try:
                finished = await self._apply_status(job_id, remote_job_id, status)
            except Exception as e:
                logger.exception(f"[{job_id}] Error monitoring job: {e}")
                await self.store.mark_failed(job_id, str(e) or "Failed to monitor job status")
                return

            if finished:
                return
            await asyncio.sleep(self.poll_interval)

    async def _apply_status(self, job_id: str, remote_job_id: str, status) -> bool:
        """Record one status observation; True once the job is terminal"""
        if status.status == RemoteStatus.COMPLETE:
            try:
                url = await self.url_handler.get_accessible_url(remote_job_id)
            except OutputResolutionError as e:
                logger.error(f"[{job_id}] Failed to get output after completion: {e.message}")
                await self.store.mark_failed(job_id, "Failed to get video output")
                return True
            await self.store.mark_completed(job_id, url)
            return True

        if status.status == RemoteStatus.ERROR:
            await self.store.mark_failed(job_id, status.error_message or "Unknown error occurred")
            return True

        if status.status == RemoteStatus.CANCELED:
            await self.store.mark_failed(job_id, "Job was canceled")
            return True

        current = await self.store.get(job_id)
        if status.status == RemoteStatus.PROGRESSING:
            progress = status.percent_complete
            if progress is None:
                progress = current.progress
            await self.store.update_progress(job_id, progress, "Processing video...", remote_job_id)
        else:
            await self.store.update_progress(
                job_id, current.progress, "Initializing video processing...", remote_job_id
            )
        return False

    async def wait_for_monitors(self, timeout: Optional[float] = None):
        """Wait for every in-flight monitor to finish"""
        tasks = list(self._monitors.values())
        if tasks:
            await asyncio.wait(tasks, timeout=timeout)

    async def shutdown(self):
        """Cancel in-flight monitors"""
        tasks = list(self._monitors.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info(f"Cancelled {len(tasks)} MediaConvert monitor(s)")
        self._monitors.clear()
