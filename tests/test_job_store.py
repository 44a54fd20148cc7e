"""Tests for the persistent job status store."""

import pytest

from reelgen.models.job import JobStatus, is_retryable
from reelgen.services.job_queue import QUEUES
from reelgen.services.job_store import JobStatusStore


class TestProgress:

    @pytest.mark.asyncio
    async def test_progress_never_decreases(self, store: JobStatusStore) -> None:
        observed = []
        for value in [10, 5, 30, 20]:
            job = await store.update_progress("job-1", value, f"step {value}")
            observed.append(job.progress)

        assert observed == [10, 10, 30, 30]
        current = await store.get("job-1")
        assert current.progress == 30
        assert current.message == "step 20"
        assert current.status == JobStatus.PROCESSING

    @pytest.mark.asyncio
    async def test_progress_is_capped(self, store: JobStatusStore) -> None:
        job = await store.update_progress("job-1", 250, "overflow")
        assert job.progress == 100

    @pytest.mark.asyncio
    async def test_remote_job_id_is_kept(self, store: JobStatusStore) -> None:
        await store.update_progress("job-1", 80, "Creating video...", "mc-1")
        job = await store.update_progress("job-1", 85, "Processing video...")
        assert job.remote_job_id == "mc-1"

    @pytest.mark.asyncio
    async def test_unknown_job_has_default_record(self, store: JobStatusStore) -> None:
        job = await store.get("missing")
        assert job.status == JobStatus.PROCESSING
        assert job.progress == 0
        assert job.message == "Initializing..."


class TestTerminalStates:

    @pytest.mark.asyncio
    async def test_failed_is_sticky(self, store: JobStatusStore) -> None:
        await store.update_progress("job-1", 40, "Generating audio...")
        await store.mark_failed("job-1", "AI service quota exceeded. Please try again later.")

        await store.update_progress("job-1", 90, "Processing video...")
        await store.mark_completed("job-1", "https://cdn.example.com/output/job-1.mp4")

        job = await store.get("job-1")
        assert job.status == JobStatus.FAILED
        assert job.progress == 40
        assert job.error == "AI service quota exceeded. Please try again later."
        assert job.video_url is None

    @pytest.mark.asyncio
    async def test_completed_is_sticky(self, store: JobStatusStore) -> None:
        await store.mark_completed("job-1", "https://cdn.example.com/output/job-1.mp4")

        job = await store.mark_failed("job-1", "late failure")

        assert job.status == JobStatus.COMPLETED
        stored = await store.get("job-1")
        assert stored.status == JobStatus.COMPLETED
        assert stored.error is None
        assert stored.video_url == "https://cdn.example.com/output/job-1.mp4"

    @pytest.mark.asyncio
    async def test_completed(self, store: JobStatusStore) -> None:
        await store.update_progress("job-1", 90, "Processing video...")
        job = await store.mark_completed("job-1", "https://cdn.example.com/output/job-1.mp4")

        assert job.status == JobStatus.COMPLETED
        assert job.progress == 100
        assert job.message == "Video ready"
        assert job.video_url == "https://cdn.example.com/output/job-1.mp4"

        await store.update_progress("job-1", 50, "late update")
        assert (await store.get("job-1")).status == JobStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_retryable_classification(self, store: JobStatusStore) -> None:
        await store.mark_failed("transient", "Failed to create MediaConvert job")
        await store.mark_failed("quota", "AI service quota exceeded. Please try again later.")
        await store.mark_failed("bad-input", "Invalid text for speech generation. Please try again.")

        assert is_retryable(await store.get("transient"))
        assert not is_retryable(await store.get("quota"))
        assert not is_retryable(await store.get("bad-input"))
        assert not is_retryable(await store.get("never-written"))

    @pytest.mark.asyncio
    async def test_reset_returns_to_queue(self, store: JobStatusStore) -> None:
        await store.mark_failed("job-1", "Failed to create MediaConvert job")
        job = await store.reset("job-1", "user-1", "Retrying...")

        assert job.status == JobStatus.QUEUED
        assert job.progress == 0
        assert job.error is None
        assert job.message == "Retrying..."
        assert job.user_id == "user-1"


class TestAwaitingRender:

    @pytest.mark.asyncio
    async def test_lists_only_unfinished_remote_jobs(self, store: JobStatusStore) -> None:
        await store.update_progress("rendering", 0, "Video processing started", "mc-1")
        await store.update_progress("no-remote", 40, "Generating audio...")
        await store.update_progress("done", 0, "Video processing started", "mc-2")
        await store.mark_completed("done", "https://cdn.example.com/output/done.mp4")
        await store.update_progress("failed", 0, "Video processing started", "mc-3")
        await store.mark_failed("failed", "Job was canceled")

        jobs = await store.list_awaiting_render()

        assert [(job.job_id, job.remote_job_id) for job in jobs] == [("rendering", "mc-1")]

    @pytest.mark.asyncio
    async def test_empty_store(self, store: JobStatusStore) -> None:
        assert await store.list_awaiting_render() == []


class TestPersistence:

    @pytest.mark.asyncio
    async def test_records_survive_a_new_store(self, db_path: str, store: JobStatusStore) -> None:
        await store.update_progress("job-1", 60, "Generating subtitles...")

        reopened = JobStatusStore(db_path)
        job = await reopened.get("job-1")
        assert job.progress == 60
        assert job.message == "Generating subtitles..."

    @pytest.mark.asyncio
    async def test_every_write_is_published(self, store: JobStatusStore, queue) -> None:
        await store.update_progress("job-1", 20, "Analyzing image...")
        await store.mark_failed("job-1", "boom")

        assert await queue.size(QUEUES.STATUS_UPDATES) == 2

        events = []

        async def listener(event):
            events.append(event)

        queue.add_status_listener(listener)
        assert await queue.dispatch_status_updates() == 2
        assert [event["status"] for event in events] == ["processing", "failed"]
        assert events[1]["error"] == "boom"
