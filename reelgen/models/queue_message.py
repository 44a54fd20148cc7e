"""
Queue Message Models
Envelope carried by the work queue
"""

import time
from typing import Generic, Literal, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")

GENERATE_VIDEO = "generate_video"


class VideoGenerationData(BaseModel):
    """Payload of a generate_video message"""
    type: Literal["generate_video"]
    image_data: str = Field(..., min_length=1)


class QueueMessage(BaseModel, Generic[T]):
    """Opaque envelope: job id, submitting user, payload and enqueue time"""
    job_id: str = Field(..., min_length=1)
    user_id: str = ""
    data: T
    attempt: int = Field(default=0, ge=0)
    timestamp: int = Field(default_factory=lambda: int(time.time() * 1000))


VideoGenerationMessage = QueueMessage[VideoGenerationData]
