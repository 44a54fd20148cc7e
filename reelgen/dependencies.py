"""
Dependency Wiring
Builds every client and service explicitly from Settings
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from fastapi import Request

from .config import Settings
from .models.job import is_retryable, is_terminal
from .models.queue_message import VideoGenerationMessage
from .services.job_queue import WorkQueue
from .services.job_store import JobStatusStore
from .services.kv_cache import KVCache
from .services.media_processor import MediaProcessor
from .services.mediaconvert import (
    CaptionStyle,
    JobManager,
    MediaConvertClient,
    OutputPathResolver,
    URLHandler,
)
from .services.queue_worker import QueueWorkerPool, StatusRelay
from .services.s3_storage import S3Storage
from .services.script_generator import ScriptGenerator
from .services.speech_synthesizer import SpeechSynthesizer
from .services.transcription import TranscriptionService
from .services.video_pipeline import VideoPipeline
from .utils.logger import get_logger

logger = get_logger()

DATABASE_NAME = "reelgen.db"


@dataclass
class AppContainer:
    """Process-wide service graph"""
    settings: Settings
    queue: WorkQueue
    store: JobStatusStore
    cache: KVCache
    storage: S3Storage
    media: MediaProcessor
    scripts: ScriptGenerator
    speech: SpeechSynthesizer
    transcriber: TranscriptionService
    transcoder: MediaConvertClient
    resolver: OutputPathResolver
    url_handler: URLHandler
    jobs: JobManager
    pipeline: VideoPipeline

    @classmethod
    def build(
        cls,
        settings: Settings,
        *,
        storage: Optional[S3Storage] = None,
        transcoder: Optional[MediaConvertClient] = None,
        scripts: Optional[ScriptGenerator] = None,
        speech: Optional[SpeechSynthesizer] = None,
        transcriber: Optional[TranscriptionService] = None
    ) -> "AppContainer":
        """Wire the graph; keyword overrides replace individual external clients"""
        db_path = str(Path(settings.data_dir) / DATABASE_NAME)

        queue = WorkQueue(db_path, status_ttl=settings.status_event_ttl)
        store = JobStatusStore(db_path, queue)
        cache = KVCache(db_path)

        storage = storage or S3Storage(settings)
        transcoder = transcoder or MediaConvertClient(settings)
        scripts = scripts or ScriptGenerator(settings, storage, cache)
        speech = speech or SpeechSynthesizer(settings)
        transcriber = transcriber or TranscriptionService(settings.whisper_model)

        media = MediaProcessor(storage)
        resolver = OutputPathResolver(storage, transcoder, cache, cache_ttl=settings.output_cache_ttl)
        url_handler = URLHandler(
            storage,
            resolver,
            settings.cloudfront_domain,
            retry_attempts=settings.output_retry_attempts,
            retry_delay=settings.output_retry_delay,
            signed_url_ttl=settings.signed_url_ttl,
        )
        jobs = JobManager(
            transcoder,
            store,
            url_handler,
            bucket=settings.s3_bucket_name,
            role=settings.mediaconvert_role,
            caption_style=CaptionStyle.from_settings(settings),
            poll_interval=settings.monitor_poll_interval,
            timeout_seconds=settings.monitor_timeout_seconds,
            max_status_failures=settings.monitor_max_status_failures,
        )
        pipeline = VideoPipeline(settings, store, media, scripts, speech, transcriber, jobs)

        return cls(
            settings=settings,
            queue=queue,
            store=store,
            cache=cache,
            storage=storage,
            media=media,
            scripts=scripts,
            speech=speech,
            transcriber=transcriber,
            transcoder=transcoder,
            resolver=resolver,
            url_handler=url_handler,
            jobs=jobs,
            pipeline=pipeline,
        )

    async def initialize(self):
        """Create database schemas"""
        await self.queue.initialize()
        await self.store.initialize()
        await self.cache.initialize()

    async def resume_monitors(self) -> int:
        """Restart monitoring for renders that were in flight when a process stopped"""
        jobs = await self.store.list_awaiting_render()
        for job in jobs:
            logger.info(f"[{job.job_id}] Resuming monitor for {job.remote_job_id}")
            self.jobs.start_monitor(job.job_id, job.remote_job_id)
        return len(jobs)

    async def handle_message(self, message: VideoGenerationMessage):
        """Run the pipeline for one generate_video message"""
        job_id = message.job_id

        if message.attempt > 0:
            job = await self.store.get(job_id)
            if is_terminal(job) and not is_retryable(job):
                logger.warning(f"[{job_id}] Not retrying: {job.error or job.status}")
                return
            await self.store.reset(job_id, message.user_id or None, "Retrying...")

        await self.pipeline.run(job_id, message.data.image_data)

    def worker_pool(self) -> QueueWorkerPool:
        return QueueWorkerPool(
            self.queue,
            self.handle_message,
            concurrency=self.settings.job_worker_concurrency,
            poll_interval=self.settings.queue_poll_interval,
            max_attempts=self.settings.queue_max_attempts,
        )

    def status_relay(self) -> StatusRelay:
        return StatusRelay(self.queue)

    async def shutdown(self):
        await self.jobs.shutdown()


def get_container(request: Request) -> AppContainer:
    """FastAPI dependency returning the app's container"""
    return request.app.state.container
