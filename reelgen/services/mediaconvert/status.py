"""
MediaConvert job status
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from ...models.job import JobStatus


class RemoteStatus(str, Enum):
    """Lifecycle of a MediaConvert job"""
    SUBMITTED = "SUBMITTED"
    PROGRESSING = "PROGRESSING"
    COMPLETE = "COMPLETE"
    ERROR = "ERROR"
    CANCELED = "CANCELED"

    @classmethod
    def parse(cls, value: Optional[str]) -> "RemoteStatus":
        """Map a raw status string; anything unrecognized counts as SUBMITTED"""
        try:
            return cls((value or "").upper())
        except ValueError:
            return cls.SUBMITTED

    @property
    def is_terminal(self) -> bool:
        return self in (RemoteStatus.COMPLETE, RemoteStatus.ERROR, RemoteStatus.CANCELED)

    def to_job_status(self) -> JobStatus:
        return _JOB_STATUS[self]


_JOB_STATUS = {
    RemoteStatus.SUBMITTED: JobStatus.PROCESSING,
    RemoteStatus.PROGRESSING: JobStatus.PROCESSING,
    RemoteStatus.COMPLETE: JobStatus.COMPLETED,
    RemoteStatus.ERROR: JobStatus.FAILED,
    RemoteStatus.CANCELED: JobStatus.FAILED,
}


@dataclass
class RemoteJobStatus:
    """Snapshot of a remote job as reported by GetJob"""
    status: RemoteStatus
    percent_complete: Optional[int] = None
    error_message: Optional[str] = None
    settings: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_job(cls, job: Dict[str, Any]) -> "RemoteJobStatus":
        percent = job.get("JobPercentComplete")
        return cls(
            status=RemoteStatus.parse(job.get("Status")),
            percent_complete=percent if isinstance(percent, int) else None,
            error_message=job.get("ErrorMessage"),
            settings=job.get("Settings") or {},
        )
