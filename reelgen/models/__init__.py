"""Models package initialization"""
from .job import Job, JobStatus, JobStatusResponse, VideoSubmission, is_terminal, is_retryable
from .queue_message import QueueMessage, VideoGenerationData, VideoGenerationMessage, GENERATE_VIDEO

__all__ = [
    "Job",
    "JobStatus",
    "JobStatusResponse",
    "VideoSubmission",
    "is_terminal",
    "is_retryable",
    "QueueMessage",
    "VideoGenerationData",
    "VideoGenerationMessage",
    "GENERATE_VIDEO"
]
