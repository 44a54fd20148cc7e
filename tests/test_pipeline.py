"""End-to-end tests for the image-to-video pipeline with fake collaborators."""

import pytest

from reelgen.config import Settings
from reelgen.models.job import JobStatus
from reelgen.services.job_store import JobStatusStore
from reelgen.services.media_processor import MediaProcessor
from reelgen.services.mediaconvert import CaptionStyle, JobManager
from reelgen.services.transcription import TranscriptionResult
from reelgen.services.video_pipeline import VideoPipeline
from reelgen.captions import WordTiming
from reelgen.utils.exceptions import SpeechSynthesisError, StageError

from .fakes import (
    FakeScriptGenerator,
    FakeSpeechSynthesizer,
    FakeStorage,
    FakeTranscoder,
    FakeTranscriber,
    FakeURLHandler,
)

STAGE_MESSAGES = [
    "Processing image...",
    "Analyzing image...",
    "Generating audio...",
    "Generating subtitles...",
    "Creating video...",
    "Processing video...",
]


def build_pipeline(settings: Settings, store: JobStatusStore, storage: FakeStorage, **fakes):
    transcoder = fakes.get("transcoder") or FakeTranscoder()
    jobs = JobManager(
        transcoder,
        store,
        FakeURLHandler(),
        bucket=storage.bucket,
        role=settings.mediaconvert_role,
        caption_style=CaptionStyle.from_settings(settings),
        poll_interval=60,
        timeout_seconds=0,
    )
    pipeline = VideoPipeline(
        settings,
        store,
        MediaProcessor(storage),
        fakes.get("scripts") or FakeScriptGenerator(),
        fakes.get("speech") or FakeSpeechSynthesizer(),
        fakes.get("transcriber") or FakeTranscriber(),
        jobs,
    )
    return pipeline, jobs, transcoder


class TestPipelineRun:

    @pytest.mark.asyncio
    async def test_stages_in_order(self, settings, store, storage, image_base64) -> None:
        events = []

        async def listener(event):
            if event["message"] in STAGE_MESSAGES:
                events.append((event["progress"], event["message"]))

        store.queue.add_status_listener(listener)
        scripts = FakeScriptGenerator()
        pipeline, jobs, transcoder = build_pipeline(settings, store, storage, scripts=scripts)

        remote_job_id = await pipeline.run("job-1", image_base64)
        await jobs.shutdown()
        await store.queue.dispatch_status_updates()

        assert remote_job_id == "mc-job-1"
        assert events == list(zip([0, 20, 40, 60, 80, 90], STAGE_MESSAGES))

        job = await store.get("job-1")
        assert job.status == JobStatus.PROCESSING
        assert job.progress == 90
        assert job.remote_job_id == "mc-job-1"

        assert scripts.calls == ["images/job-1.png"]
        assert storage.content_types == {
            "images/job-1.jpg": "image/jpeg",
            "images/job-1.png": "image/png",
            "audio/job-1.mp3": "audio/mpeg",
            "subtitles/job-1.srt": "application/x-subrip",
        }
        assert storage.objects["images/job-1.png"].startswith(b"\x89PNG")
        assert storage.objects["subtitles/job-1.srt"].decode("utf-8") == (
            "1\n00:00:00,000 --> 00:00:00,400\nHi\n"
            "\n"
            "2\n00:00:00,450 --> 00:00:00,850\nthere\n"
        )

        inputs = transcoder.submitted[0]["Settings"]["Inputs"][0]
        assert inputs["FileInput"] == "s3://reelgen-test/audio/job-1.mp3"
        assert storage.deleted == []

    @pytest.mark.asyncio
    async def test_speech_failure_fails_job_and_cleans_up_once(
        self, settings, store, storage, image_base64
    ) -> None:
        speech = FakeSpeechSynthesizer(
            error=SpeechSynthesisError("Invalid text for speech generation. Please try again.")
        )
        transcriber = FakeTranscriber()
        pipeline, _, transcoder = build_pipeline(
            settings, store, storage, speech=speech, transcriber=transcriber
        )

        with pytest.raises(StageError) as exc_info:
            await pipeline.run("job-1", image_base64)

        assert exc_info.value.stage == "speech"
        job = await store.get("job-1")
        assert job.status == JobStatus.FAILED
        assert job.error == "Invalid text for speech generation. Please try again."
        assert job.progress == 40

        assert sorted(storage.deleted) == sorted([
            "images/job-1.jpg",
            "images/job-1.png",
            "audio/job-1.mp3",
            "subtitles/job-1.srt",
        ])
        assert transcriber.calls == 0
        assert transcoder.submitted == []

    @pytest.mark.asyncio
    async def test_invalid_image(self, settings, store, storage) -> None:
        pipeline, _, _ = build_pipeline(settings, store, storage)

        with pytest.raises(StageError) as exc_info:
            await pipeline.run("job-1", "%%% not base64 %%%")

        assert exc_info.value.stage == "image"
        job = await store.get("job-1")
        assert job.status == JobStatus.FAILED
        assert job.error.startswith("Invalid base64 image data")

    @pytest.mark.asyncio
    async def test_submission_failure(self, settings, store, storage, image_base64) -> None:
        transcoder = FakeTranscoder()
        transcoder.submit_error = RuntimeError("endpoint unreachable")
        pipeline, _, _ = build_pipeline(settings, store, storage, transcoder=transcoder)

        with pytest.raises(StageError):
            await pipeline.run("job-1", image_base64)

        job = await store.get("job-1")
        assert job.status == JobStatus.FAILED
        assert job.error == "endpoint unreachable"
        assert len(storage.deleted) == 4


class TestBuildSubtitles:

    def test_low_score_uses_conservative_timing(self, settings, store, storage) -> None:
        strict = settings.model_copy(update={"subtitle_retry_threshold": 100})
        pipeline, _, _ = build_pipeline(strict, store, storage)
        transcript = TranscriptionResult(
            text="Hi there",
            words=[WordTiming("Hi", 0, 300), WordTiming("there", 350, 700)],
            duration_ms=10000,
        )

        track = pipeline.build_subtitles("job-1", transcript, 10000)

        assert track == (
            "1\n00:00:00,000 --> 00:00:00,500\nHi\n"
            "\n"
            "2\n00:00:00,550 --> 00:00:01,050\nthere\n"
        )

    def test_good_score_keeps_first_track(self, settings, store, storage) -> None:
        pipeline, _, _ = build_pipeline(settings, store, storage)
        track = pipeline.build_subtitles("job-1", FakeTranscriber().result, 2000)

        assert track.startswith("1\n00:00:00,000 --> 00:00:00,400\nHi\n")

    def test_no_usable_words(self, settings, store, storage) -> None:
        pipeline, _, _ = build_pipeline(settings, store, storage)
        transcript = TranscriptionResult(text="", words=[], duration_ms=2000)

        with pytest.raises(StageError) as exc_info:
            pipeline.build_subtitles("job-1", transcript, 2000)
        assert exc_info.value.stage == "captions"
