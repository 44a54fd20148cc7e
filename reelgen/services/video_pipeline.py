"""
Video Pipeline
Image -> script -> speech -> captions -> MediaConvert hand-off
"""

from typing import Awaitable, TypeVar

from ..captions import (
    SubtitleOptions,
    analyze_sync_points,
    conservative_options,
    improve_subtitles,
)
from ..config import Settings
from ..utils.exceptions import ReelGenError, StageError
from ..utils.logger import get_logger
from .job_store import JobStatusStore
from .media_processor import MediaProcessor, approximate_audio_duration
from .mediaconvert import JobManager, VideoJobInput
from .s3_storage import S3Paths
from .script_generator import ScriptGenerator
from .speech_synthesizer import SpeechSynthesizer
from .transcription import TranscriptionResult, TranscriptionService

logger = get_logger()

T = TypeVar("T")


class VideoPipeline:
    """Runs the fixed stage sequence for one job"""

    def __init__(
        self,
        settings: Settings,
        store: JobStatusStore,
        media: MediaProcessor,
        scripts: ScriptGenerator,
        speech: SpeechSynthesizer,
        transcriber: TranscriptionService,
        jobs: JobManager
    ):
        self.settings = settings
        self.store = store
        self.media = media
        self.scripts = scripts
        self.speech = speech
        self.transcriber = transcriber
        self.jobs = jobs

    @staticmethod
    async def _stage(stage: str, operation: Awaitable[T]) -> T:
        try:
            return await operation
        except StageError:
            raise
        except ReelGenError as e:
            raise StageError(stage, e.message) from e
        except Exception as e:
            raise StageError(stage, str(e) or f"{stage} failed") from e

    def subtitle_options(self, audio_duration: int) -> SubtitleOptions:
        return SubtitleOptions(
            min_duration=self.settings.subtitle_min_duration,
            max_duration=self.settings.subtitle_max_duration,
            char_reading_speed=self.settings.subtitle_char_reading_speed,
            pause_between_blocks=self.settings.subtitle_pause_between_blocks,
            sentence_pause=self.settings.subtitle_sentence_pause,
            audio_duration=audio_duration,
        )

    def build_subtitles(self, job_id: str, transcript: TranscriptionResult, audio_duration: int) -> str:
        """Word-timed SRT track, regenerated once with slower timing if it scores poorly"""
        options = self.subtitle_options(audio_duration)

        improved = improve_subtitles(transcript.text, options, transcript.words)
        if not improved.success:
            raise StageError("captions", f"Failed to improve subtitles: {improved.error.message}")

        analysis = analyze_sync_points(improved.value, audio_duration)
        if not analysis.success:
            raise StageError("captions", f"Failed to analyze subtitle sync: {analysis.error.message}")

        score = analysis.value.sync_score
        logger.info(f"[{job_id}] Subtitle sync score: {score}")

        if score < self.settings.subtitle_retry_threshold:
            logger.warning(f"[{job_id}] Low sync score, suggestions: {analysis.value.suggestions}")
            retry = improve_subtitles(transcript.text, conservative_options(options), transcript.words)
            if retry.success:
                logger.info(f"[{job_id}] Regenerated subtitles with conservative timing")
                return retry.value
            logger.warning(f"[{job_id}] Conservative retry failed: {retry.error.message}")

        return improved.value

    async def run(self, job_id: str, image_data: str) -> str:
        """
        Process one job up to the MediaConvert hand-off

        Returns the remote job id. Completion is recorded later by the
        job manager's monitor.
        """
        logger.info(f"[{job_id}] Starting video generation")

        try:
            # =================================================================
            # Step 1: Upload image
            # =================================================================
            await self.store.update_progress(job_id, 0, "Processing image...")
            image = await self._stage("image", self.media.process_image_upload(image_data, job_id))

            # =================================================================
            # Step 2: Script
            # =================================================================
            await self.store.update_progress(job_id, 20, "Analyzing image...")
            script = await self._stage("script", self.scripts.generate_script(image.key))
            logger.info(f"[{job_id}] Script ready: {len(script.segments)} segments")

            # =================================================================
            # Step 3: Speech
            # =================================================================
            await self.store.update_progress(job_id, 40, "Generating audio...")
            narration = " ".join(script.segments) or script.script
            audio = await self._stage("speech", self.speech.synthesize(narration))
            audio_file = await self._stage("speech", self.media.process_audio_upload(audio, job_id))

            # =================================================================
            # Step 4: Transcription + captions
            # =================================================================
            await self.store.update_progress(job_id, 60, "Generating subtitles...")
            transcript = await self._stage("transcription", self.transcriber.transcribe(audio))

            audio_duration = transcript.duration_ms or approximate_audio_duration(audio)
            subtitles = self.build_subtitles(job_id, transcript, audio_duration)
            subtitles_file = await self._stage(
                "captions", self.media.process_subtitles_upload(subtitles, job_id)
            )

            # =================================================================
            # Step 5: Render
            # =================================================================
            await self.store.update_progress(job_id, 80, "Creating video...")
            remote_job_id = await self._stage("render", self.jobs.create_job(
                job_id,
                VideoJobInput(
                    image_key=image.key,
                    audio_key=audio_file.key,
                    subtitles_key=subtitles_file.key,
                    output_key=S3Paths.output(f"{job_id}.mp4"),
                )
            ))

            await self.store.update_progress(job_id, 90, "Processing video...", remote_job_id)
            logger.info(f"[{job_id}] Handed off to MediaConvert: {remote_job_id}")
            return remote_job_id

        except Exception as exc:
            message = exc.message if isinstance(exc, ReelGenError) else (str(exc) or "Video generation failed")
            logger.exception(f"[{job_id}] Video generation failed: {message}")
            await self.store.mark_failed(job_id, message)
            await self._cleanup(job_id)
            raise

    async def _cleanup(self, job_id: str):
        try:
            await self.media.cleanup_media_files(job_id)
        except Exception as exc:
            logger.error(f"[{job_id}] Cleanup failed: {exc}")
