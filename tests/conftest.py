"""Pytest fixtures for ReelGen tests."""

import base64
import io

import pytest
from PIL import Image

from reelgen.captions import SubtitleOptions
from reelgen.config import Settings
from reelgen.services.job_queue import WorkQueue
from reelgen.services.job_store import JobStatusStore
from reelgen.services.kv_cache import KVCache

from .fakes import FakeStorage, FakeTranscoder


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings isolated from any local .env file."""
    return Settings(
        _env_file=None,
        data_dir=str(tmp_path / "data"),
        temp_dir=str(tmp_path / "temp"),
        s3_bucket_name="reelgen-test",
        cloudfront_domain="cdn.example.com",
        mediaconvert_role="arn:aws:iam::123456789012:role/MediaConvert",
        monitor_poll_interval=0,
        output_retry_attempts=2,
        output_retry_delay=0,
        queue_poll_interval=0.01,
        run_embedded_worker=False,
        api_key="",
    )


@pytest.fixture
def db_path(tmp_path) -> str:
    return str(tmp_path / "reelgen.db")


@pytest.fixture
def queue(db_path) -> WorkQueue:
    return WorkQueue(db_path)


@pytest.fixture
def store(db_path, queue) -> JobStatusStore:
    return JobStatusStore(db_path, queue)


@pytest.fixture
def cache(db_path) -> KVCache:
    return KVCache(db_path)


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def transcoder() -> FakeTranscoder:
    return FakeTranscoder()


@pytest.fixture
def subtitle_options() -> SubtitleOptions:
    return SubtitleOptions(
        min_duration=400,
        max_duration=3000,
        char_reading_speed=80,
        pause_between_blocks=200,
        sentence_pause=500,
        audio_duration=2000,
    )


@pytest.fixture
def image_base64() -> str:
    """A tiny JPEG, base64 encoded without a data URL prefix."""
    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), color=(200, 40, 40)).save(buffer, format="JPEG")
    return base64.b64encode(buffer.getvalue()).decode("ascii")
