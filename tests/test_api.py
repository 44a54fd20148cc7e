"""Tests for the HTTP and WebSocket surface."""

import re
from typing import Optional

import pytest
from fastapi.testclient import TestClient

from reelgen.dependencies import AppContainer
from reelgen.main import create_app
from reelgen.models.job import JobStatus
from reelgen.models.queue_message import GENERATE_VIDEO, VideoGenerationData, VideoGenerationMessage
from reelgen.routers.websocket import ConnectionHub
from reelgen.services.job_queue import QUEUES
from reelgen.services.mediaconvert import RemoteJobStatus, RemoteStatus, VideoJobInput

from .fakes import (
    FakeScriptGenerator,
    FakeSpeechSynthesizer,
    FakeStorage,
    FakeTranscoder,
    FakeTranscriber,
)

JOB_ID_PATTERN = re.compile(r"^job_\d{13}_[0-9a-z]{9}$")
USER = {"X-User-Id": "user-1"}


def build_container(settings, transcoder: Optional[FakeTranscoder] = None) -> AppContainer:
    return AppContainer.build(
        settings,
        storage=FakeStorage(),
        transcoder=transcoder or FakeTranscoder(),
        scripts=FakeScriptGenerator(),
        speech=FakeSpeechSynthesizer(),
        transcriber=FakeTranscriber(),
    )


@pytest.fixture
def container(settings) -> AppContainer:
    return build_container(settings)


@pytest.fixture
def client(settings, container):
    app = create_app(settings, container)
    with TestClient(app) as test_client:
        yield test_client


def submit(client: TestClient, image_base64: str, **extra) -> str:
    response = client.post("/api/videos", json={"image_data": image_base64, **extra}, headers=USER)
    assert response.status_code == 200, response.text
    return response.json()["job_id"]


class TestCreateVideo:

    def test_queues_job(self, client: TestClient, container: AppContainer, image_base64: str) -> None:
        response = client.post("/api/videos", json={"image_data": image_base64}, headers=USER)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert JOB_ID_PATTERN.match(body["job_id"])

        size = client.portal.call(container.queue.size, QUEUES.VIDEO_GENERATION)
        assert size == 1

    def test_data_url_prefix_is_accepted(self, client: TestClient, image_base64: str) -> None:
        submit(client, f"data:image/jpeg;base64,{image_base64}")

    def test_invalid_base64(self, client: TestClient) -> None:
        response = client.post("/api/videos", json={"image_data": "%%%"}, headers=USER)
        assert response.status_code == 400
        assert "Invalid image data" in response.json()["detail"]

    def test_missing_image(self, client: TestClient) -> None:
        response = client.post("/api/videos", json={}, headers=USER)
        assert response.status_code == 422

    def test_retry_of_non_retryable_job_conflicts(
        self, client: TestClient, container: AppContainer, image_base64: str
    ) -> None:
        job_id = submit(client, image_base64)
        client.portal.call(
            container.store.mark_failed, job_id, "AI service quota exceeded. Please try again later."
        )

        response = client.post(
            "/api/videos", json={"image_data": image_base64, "previous_job_id": job_id}, headers=USER
        )
        assert response.status_code == 409

    def test_retry_of_transient_failure_is_accepted(
        self, client: TestClient, container: AppContainer, image_base64: str
    ) -> None:
        job_id = submit(client, image_base64)
        client.portal.call(container.store.mark_failed, job_id, "Failed to create MediaConvert job")

        new_job_id = submit(client, image_base64, previous_job_id=job_id)
        assert new_job_id != job_id


class TestVideoStatus:

    def test_queued_is_reported_as_processing(self, client: TestClient, image_base64: str) -> None:
        job_id = submit(client, image_base64)

        response = client.get(f"/api/videos/{job_id}/status", headers=USER)

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "status": "processing",
            "progress": 0,
            "message": "Waiting in queue...",
            "error": None,
            "video_url": None,
        }

    def test_other_users_job_is_hidden(self, client: TestClient, image_base64: str) -> None:
        job_id = submit(client, image_base64)

        response = client.get(f"/api/videos/{job_id}/status", headers={"X-User-Id": "user-2"})
        assert response.status_code == 404

    def test_completed_with_valid_url(self, client: TestClient, container: AppContainer, image_base64: str) -> None:
        job_id = submit(client, image_base64)
        url = "https://cdn.example.com/output/job_output.mp4"
        client.portal.call(container.store.mark_completed, job_id, url)

        body = client.get(f"/api/videos/{job_id}/status", headers=USER).json()

        assert body["status"] == "completed"
        assert body["progress"] == 100
        assert body["video_url"] == url

    def test_signed_fallback_url_is_valid(self, client: TestClient, container: AppContainer, image_base64: str) -> None:
        job_id = submit(client, image_base64)
        url = "https://reelgen-test.s3.amazonaws.com/output/job_output.mp4?X-Amz-Expires=3600"
        client.portal.call(container.store.mark_completed, job_id, url)

        body = client.get(f"/api/videos/{job_id}/status", headers=USER).json()
        assert body["video_url"] == url

    def test_completed_with_invalid_url_is_failed(
        self, client: TestClient, container: AppContainer, image_base64: str
    ) -> None:
        job_id = submit(client, image_base64)
        client.portal.call(container.store.mark_completed, job_id, "https://cdn.example.com/output/undefined.mp4")

        body = client.get(f"/api/videos/{job_id}/status", headers=USER).json()

        assert body["success"] is False
        assert body["status"] == "failed"
        assert body["error"] == "Video URL validation failed"
        assert body["video_url"] is None

    def test_failed(self, client: TestClient, container: AppContainer, image_base64: str) -> None:
        job_id = submit(client, image_base64)
        client.portal.call(container.store.mark_failed, job_id, "Video processing timed out")

        body = client.get(f"/api/videos/{job_id}/status", headers=USER).json()
        assert body["success"] is False
        assert body["status"] == "failed"
        assert body["error"] == "Video processing timed out"


class TestAppShell:

    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_api_key_required_when_configured(self, settings, image_base64: str) -> None:
        secured = settings.model_copy(update={"api_key": "secret"})
        app = create_app(secured, build_container(secured))

        with TestClient(app) as client:
            assert client.get("/health").status_code == 200
            assert client.get("/api/videos/job_1/status").status_code == 401

            response = client.get("/api/videos/job_1/status", headers={"X-API-Key": "secret"})
            assert response.status_code == 200

            response = client.get("/api/videos/job_1/status", headers={"Authorization": "Bearer secret"})
            assert response.status_code == 200

    def test_websocket_ping(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as websocket:
            websocket.send_json({"type": "ping"})
            assert websocket.receive_json() == {"type": "pong"}

    def test_websocket_receives_status_events(self, client: TestClient, image_base64: str) -> None:
        with client.websocket_connect("/ws", headers=USER) as websocket:
            job_id = submit(client, image_base64)
            payload = websocket.receive_json()

        assert payload["type"] == "status"
        assert payload["data"]["job_id"] == job_id
        assert payload["data"]["status"] == "queued"

    def test_websocket_only_sees_own_jobs(self, client: TestClient, image_base64: str) -> None:
        other = {"X-User-Id": "user-2"}
        with client.websocket_connect("/ws", headers=other) as other_socket, \
                client.websocket_connect("/ws") as anonymous_socket:
            submit(client, image_base64)
            response = client.post("/api/videos", json={"image_data": image_base64}, headers=other)
            other_job_id = response.json()["job_id"]
            response = client.post("/api/videos", json={"image_data": image_base64})
            anonymous_job_id = response.json()["job_id"]

            # Events arrive in publish order, so a leaked user-1 event would come first
            assert other_socket.receive_json()["data"]["job_id"] == other_job_id
            assert other_socket.receive_json()["data"]["job_id"] == anonymous_job_id
            assert anonymous_socket.receive_json()["data"]["job_id"] == anonymous_job_id

    def test_websocket_user_id_query_param(self, client: TestClient, image_base64: str) -> None:
        with client.websocket_connect("/ws?user_id=user-1") as websocket:
            job_id = submit(client, image_base64)
            payload = websocket.receive_json()

        assert payload["data"]["job_id"] == job_id
        assert payload["data"]["user_id"] == "user-1"

    def test_signed_url_is_resigned_on_read(
        self, client: TestClient, container: AppContainer, image_base64: str
    ) -> None:
        job_id = submit(client, image_base64)
        stored = "https://reelgen-test.s3.amazonaws.com/output/job_output.mp4?X-Amz-Expires=60&X-Amz-Signature=old"
        client.portal.call(container.store.mark_completed, job_id, stored)

        body = client.get(f"/api/videos/{job_id}/status", headers=USER).json()

        assert body["status"] == "completed"
        assert body["video_url"] == "https://reelgen-test.s3.amazonaws.com/output/job_output.mp4?X-Amz-Expires=3600"


class TestConnectionHub:

    def test_owned_events_reach_only_the_owner(self) -> None:
        hub = ConnectionHub()
        owner = hub.register("owner-socket", "user-1")
        stranger = hub.register("stranger-socket", "user-2")
        anonymous = hub.register("anonymous-socket")

        hub.broadcast({"job": "private"}, owner="user-1")
        hub.broadcast({"job": "public"})

        assert owner.qsize() == 2
        assert stranger.get_nowait() == {"job": "public"}
        assert stranger.empty()
        assert anonymous.get_nowait() == {"job": "public"}

    def test_full_queue_drops_oldest(self) -> None:
        hub = ConnectionHub(max_queue_size=2)
        queue = hub.register("socket", "user-1")

        for n in range(3):
            hub.broadcast({"n": n}, owner="user-1")

        assert [queue.get_nowait()["n"] for _ in range(2)] == [1, 2]

    def test_unregister(self) -> None:
        hub = ConnectionHub()
        hub.register("socket", "user-1")
        hub.unregister("socket")
        hub.unregister("socket")

        assert len(hub) == 0


class TestHandleMessage:

    @staticmethod
    def message(job_id: str, attempt: int, image_base64: str) -> VideoGenerationMessage:
        return VideoGenerationMessage(
            job_id=job_id,
            user_id="user-1",
            data=VideoGenerationData(type=GENERATE_VIDEO, image_data=image_base64),
            attempt=attempt,
        )

    @pytest.mark.asyncio
    async def test_first_delivery_runs_pipeline(self, container: AppContainer, image_base64: str) -> None:
        await container.handle_message(self.message("job-1", 0, image_base64))
        await container.shutdown()

        job = await container.store.get("job-1")
        assert job.progress == 90
        assert container.scripts.calls == ["images/job-1.png"]

    @pytest.mark.asyncio
    async def test_redelivery_of_permanent_failure_is_skipped(
        self, container: AppContainer, image_base64: str
    ) -> None:
        await container.store.mark_failed("job-1", "Invalid text for speech generation. Please try again.")

        await container.handle_message(self.message("job-1", 1, image_base64))

        job = await container.store.get("job-1")
        assert job.status == JobStatus.FAILED
        assert container.scripts.calls == []

    @pytest.mark.asyncio
    async def test_redelivery_of_transient_failure_restarts(
        self, container: AppContainer, image_base64: str
    ) -> None:
        await container.store.update_progress("job-1", 80, "Creating video...")
        await container.store.mark_failed("job-1", "Failed to create MediaConvert job")

        await container.handle_message(self.message("job-1", 1, image_base64))
        await container.shutdown()

        job = await container.store.get("job-1")
        assert job.status == JobStatus.PROCESSING
        assert job.progress == 90
        assert job.error is None
        assert container.scripts.calls == ["images/job-1.png"]


class TestResumeMonitors:

    @pytest.mark.asyncio
    async def test_restart_resumes_in_flight_render(self, settings) -> None:
        settings = settings.model_copy(update={"monitor_poll_interval": 0.05})
        stuck = FakeTranscoder([RemoteJobStatus(RemoteStatus.PROGRESSING, percent_complete=30)])
        first = build_container(settings, stuck)
        await first.initialize()
        await first.jobs.create_job("job-1", VideoJobInput(
            "images/job-1.png", "audio/job-1.mp3", "subtitles/job-1.srt", "output/job-1.mp4"
        ))
        await first.shutdown()

        job = await first.store.get("job-1")
        assert job.status == JobStatus.PROCESSING
        assert job.remote_job_id == "mc-job-1"

        failing = FakeTranscoder([RemoteJobStatus(RemoteStatus.ERROR, error_message="Render failed")])
        second = build_container(settings, failing)
        await second.initialize()

        assert await second.resume_monitors() == 1
        assert second.jobs.active_monitors == 1

        await second.jobs.wait_for_monitors(timeout=5)
        job = await second.store.get("job-1")
        assert job.status == JobStatus.FAILED
        assert job.error == "Render failed"
        assert failing.status_calls == 1
        assert second.jobs.active_monitors == 0

    @pytest.mark.asyncio
    async def test_nothing_to_resume(self, container: AppContainer) -> None:
        await container.initialize()
        await container.store.update_progress("job-1", 40, "Generating audio...")

        assert await container.resume_monitors() == 0
        assert container.jobs.active_monitors == 0
