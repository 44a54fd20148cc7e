"""
Job Data Models
Represents one image-to-video generation request and its tracked state
"""

from pydantic import BaseModel, Field
from typing import Optional
from enum import Enum
from datetime import datetime


class JobStatus(str, Enum):
    """Job processing status"""
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = (JobStatus.COMPLETED, JobStatus.FAILED)

# Error fragments that mark a failure as not worth retrying
NON_RETRYABLE_ERROR_MARKERS = ("quota", "invalid", "unauthorized")


class Job(BaseModel):
    """Persisted job status record"""
    job_id: str
    status: JobStatus = JobStatus.PROCESSING
    progress: int = Field(default=0, ge=0, le=100)
    message: Optional[str] = None
    error: Optional[str] = None
    video_url: Optional[str] = None
    remote_job_id: Optional[str] = None
    user_id: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        use_enum_values = True

    @classmethod
    def default(cls, job_id: str) -> "Job":
        """Record reported for a job that has not written any status yet"""
        return cls(
            job_id=job_id,
            status=JobStatus.PROCESSING,
            progress=0,
            message="Initializing..."
        )


def is_terminal(job: Job) -> bool:
    """True once a job is COMPLETED or FAILED"""
    return job.status in TERMINAL_STATUSES


def is_retryable(job: Job) -> bool:
    """True for failed jobs whose error does not look permanent"""
    if job.status != JobStatus.FAILED:
        return False
    error = (job.error or "").lower()
    return not any(marker in error for marker in NON_RETRYABLE_ERROR_MARKERS)


class VideoSubmission(BaseModel):
    """Request body for a new video generation job"""
    image_data: str = Field(..., min_length=1, description="Base64 image, data URL prefix allowed")
    previous_job_id: Optional[str] = Field(None, description="Failed job being retried")


class JobStatusResponse(BaseModel):
    """Status payload exposed to polling clients"""
    success: bool
    status: str
    progress: int = 0
    message: Optional[str] = None
    error: Optional[str] = None
    video_url: Optional[str] = None
