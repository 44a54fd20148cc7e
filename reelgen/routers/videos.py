"""
Videos Router
Accepts image submissions and reports job status.
"""

import random
import string
import time

from fastapi import APIRouter, Depends, Header, HTTPException

from ..dependencies import AppContainer, get_container
from ..models.job import Job, JobStatus, JobStatusResponse, VideoSubmission, is_retryable
from ..models.queue_message import GENERATE_VIDEO, VideoGenerationData, VideoGenerationMessage
from ..services.job_queue import QUEUES
from ..services.media_processor import decode_image_data
from ..services.mediaconvert import validate_against
from ..utils.logger import get_logger

router = APIRouter(prefix="/api/videos", tags=["videos"])
logger = get_logger()

_ID_ALPHABET = string.digits + string.ascii_lowercase


def new_job_id() -> str:
    """job_<epoch ms>_<9 base36 chars>"""
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"job_{int(time.time() * 1000)}_{suffix}"


def _owned_by(job: Job, user_id: str) -> bool:
    return not job.user_id or job.user_id == user_id


@router.post("")
async def create_video(
    submission: VideoSubmission,
    user_id: str = Header(default="", alias="X-User-Id"),
    container: AppContainer = Depends(get_container),
):
    """Queue a new image-to-video job."""
    try:
        decode_image_data(submission.image_data)
    except ValueError as exc:
        raise HTTPException(400, f"Invalid image data: {exc}") from exc

    if submission.previous_job_id:
        previous = await container.store.get(submission.previous_job_id)
        if not _owned_by(previous, user_id):
            raise HTTPException(404, "Job not found")
        if not is_retryable(previous):
            raise HTTPException(409, previous.error or "Job cannot be retried")

    job_id = new_job_id()
    await container.store.reset(job_id, user_id or None)

    message = VideoGenerationMessage(
        job_id=job_id,
        user_id=user_id,
        data=VideoGenerationData(type=GENERATE_VIDEO, image_data=submission.image_data),
    )
    try:
        await container.queue.enqueue(QUEUES.VIDEO_GENERATION, message)
    except Exception as exc:
        logger.error(f"[{job_id}] Failed to queue job: {exc}")
        await container.store.mark_failed(job_id, "Failed to queue video generation")
        raise HTTPException(503, f"Job queue unavailable: {exc}") from exc

    logger.info(f"[{job_id}] Queued video generation for user {user_id or 'anonymous'}")
    return {"success": True, "job_id": job_id}


@router.get("/{job_id}/status", response_model=JobStatusResponse)
async def get_video_status(
    job_id: str,
    user_id: str = Header(default="", alias="X-User-Id"),
    container: AppContainer = Depends(get_container),
):
    """Current status of a job as seen by polling clients."""
    job = await container.store.get(job_id)
    if not _owned_by(job, user_id):
        raise HTTPException(404, "Job not found")

    if job.status == JobStatus.QUEUED:
        return JobStatusResponse(
            success=True,
            status=JobStatus.PROCESSING.value,
            progress=job.progress,
            message="Waiting in queue...",
        )

    if job.status == JobStatus.COMPLETED:
        video_url = validate_against(job.video_url, container.url_handler.allowed_domains)
        if not video_url:
            return JobStatusResponse(
                success=False,
                status=JobStatus.FAILED.value,
                progress=job.progress,
                message="Video URL validation failed",
                error="Video URL validation failed",
            )
        video_url = await container.url_handler.refresh_url(video_url)
        return JobStatusResponse(
            success=True,
            status=job.status,
            progress=job.progress,
            message=job.message,
            video_url=video_url,
        )

    return JobStatusResponse(
        success=job.status != JobStatus.FAILED,
        status=job.status,
        progress=job.progress,
        message=job.message,
        error=job.error,
    )
