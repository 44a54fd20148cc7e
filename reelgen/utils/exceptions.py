"""
Custom Exceptions for ReelGen
Structured error handling with recovery hints
"""

from typing import Optional, Dict, Any, List


class ReelGenError(Exception):
    """Base exception for all ReelGen errors"""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        recoverable: bool = False,
        recovery_hint: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.recoverable = recoverable
        self.recovery_hint = recovery_hint
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to JSON-serializable dict"""
        return {
            "error": self.code,
            "message": self.message,
            "recoverable": self.recoverable,
            "recovery_hint": self.recovery_hint,
            "details": self.details
        }


# ============================================================================
# Caption Errors
# ============================================================================

class CaptionError(ReelGenError):
    """Base class for caption timing engine errors"""

    def __init__(self, message: str, code: str = "CAPTION_ERROR", **kwargs):
        super().__init__(
            message=message,
            code=code,
            recoverable=True,
            recovery_hint="Regenerate the subtitles with adjusted timing options.",
            details=kwargs
        )


class TimestampFormatError(CaptionError):
    """Timestamp is not a valid HH:MM:SS,mmm value"""

    def __init__(self, message: str, value: Optional[str] = None):
        super().__init__(message, code="TIMESTAMP_FORMAT_ERROR", value=value)
        self.value = value


class BlockParseError(CaptionError):
    """A subtitle block could not be parsed"""

    def __init__(self, message: str, block_index: Optional[int] = None):
        super().__init__(message, code="BLOCK_PARSE_ERROR", block_index=block_index)
        self.block_index = block_index


class ValidationError(CaptionError):
    """Subtitle content failed validation"""

    def __init__(self, message: str, details: Optional[List[str]] = None):
        super().__init__(message, code="VALIDATION_ERROR", errors=details or [])
        self.errors = details or []


class SyncAnalysisError(CaptionError):
    """Subtitle synchronization could not be analyzed"""

    def __init__(self, message: str):
        super().__init__(message, code="SYNC_ANALYSIS_ERROR")


# ============================================================================
# Transcoding Errors
# ============================================================================

class RemoteSubmissionError(ReelGenError):
    """MediaConvert rejected or failed to create a job"""

    def __init__(self, message: str, job_id: Optional[str] = None):
        super().__init__(
            message=message,
            code="REMOTE_SUBMISSION_ERROR",
            recoverable=True,
            recovery_hint="Check the MediaConvert endpoint, role and bucket configuration.",
            details={"job_id": job_id}
        )


class RemoteStatusError(ReelGenError):
    """Transient failure while reading a MediaConvert job status"""

    def __init__(self, message: str, remote_job_id: Optional[str] = None):
        super().__init__(
            message=message,
            code="REMOTE_STATUS_ERROR",
            recoverable=True,
            recovery_hint="The transcoding service may be temporarily unavailable.",
            details={"remote_job_id": remote_job_id}
        )


class OutputResolutionError(ReelGenError):
    """The transcoded output file could not be located"""

    def __init__(self, message: str, remote_job_id: Optional[str] = None, attempts: int = 0):
        super().__init__(
            message=message,
            code="OUTPUT_RESOLUTION_ERROR",
            recoverable=True,
            recovery_hint="Check the output bucket and CloudFront distribution.",
            details={"remote_job_id": remote_job_id, "attempts": attempts}
        )


# ============================================================================
# Pipeline Errors
# ============================================================================

class StageError(ReelGenError):
    """A pipeline stage failed"""

    def __init__(self, stage: str, message: str):
        super().__init__(
            message=message,
            code="STAGE_ERROR",
            recoverable=True,
            recovery_hint="Try submitting the image again.",
            details={"stage": stage}
        )
        self.stage = stage


class StorageError(ReelGenError):
    """Error reading from or writing to object storage"""

    def __init__(self, message: str, bucket: Optional[str] = None, key: Optional[str] = None):
        super().__init__(
            message=message,
            code="STORAGE_ERROR",
            recoverable=True,
            recovery_hint="Check AWS credentials and bucket permissions.",
            details={"bucket": bucket, "key": key}
        )


class ScriptGenerationError(ReelGenError):
    """Error generating a script from an image"""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message=message,
            code="SCRIPT_GENERATION_ERROR",
            recoverable=True,
            recovery_hint="Check your Gemini API key configuration. The AI service may be temporarily unavailable.",
            details=kwargs
        )


class SpeechSynthesisError(ReelGenError):
    """Error synthesizing speech"""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message=message,
            code="SPEECH_SYNTHESIS_ERROR",
            recoverable=True,
            recovery_hint="Check your ElevenLabs API key and voice configuration.",
            details=kwargs
        )


class TranscriptionError(ReelGenError):
    """Error during audio transcription"""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message=message,
            code="TRANSCRIPTION_ERROR",
            recoverable=True,
            recovery_hint="Try with a different audio source or check if the audio is clear.",
            details=kwargs
        )


class APIKeyError(ReelGenError):
    """Missing or invalid API key"""

    def __init__(self, service: str):
        super().__init__(
            message=f"API key for {service} is missing or invalid",
            code="API_KEY_ERROR",
            recoverable=True,
            recovery_hint=f"Configure the {service} API key in the .env file.",
            details={"service": service}
        )


class RateLimitError(ReelGenError):
    """API rate limit exceeded"""

    def __init__(self, service: str, retry_after: Optional[int] = None):
        hint = "Wait and try again."
        if retry_after:
            hint = f"Wait {retry_after} seconds before retrying."

        super().__init__(
            message=f"AI service quota exceeded for {service}. Please try again later.",
            code="RATE_LIMIT_ERROR",
            recoverable=True,
            recovery_hint=hint,
            details={"service": service, "retry_after": retry_after}
        )


# ============================================================================
# Queue & Job Errors
# ============================================================================

class InvalidMessageError(ReelGenError):
    """Queue message has an unknown type or shape"""

    def __init__(self, message: str, job_id: Optional[str] = None):
        super().__init__(
            message=message,
            code="INVALID_MESSAGE",
            recoverable=False,
            details={"job_id": job_id}
        )


class JobNotFoundError(ReelGenError):
    """Job not found"""

    def __init__(self, job_id: str):
        super().__init__(
            message=f"Job not found: {job_id}",
            code="JOB_NOT_FOUND",
            recoverable=False,
            details={"job_id": job_id}
        )


# ============================================================================
# AI Service Error Mapping
# ============================================================================

AUTH_FAILURE_MESSAGE = "Authentication error with AI service. Please try again later."
QUOTA_FAILURE_MESSAGE = "AI service quota exceeded. Please try again later."
SERVICE_FAILURE_MESSAGE = "AI service error. Please try again later."


def vendor_status_code(exc: Exception) -> Optional[int]:
    """HTTP status carried by a vendor SDK error, if any"""
    for attr in ("code", "status_code", "status"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    return None


def describe_ai_failure(exc: Exception, action: str, bad_request_message: str) -> str:
    """User-facing message for a failed AI service call"""
    status = vendor_status_code(exc)
    if status == 400:
        return bad_request_message
    if status in (401, 403):
        return AUTH_FAILURE_MESSAGE
    if status == 429:
        return QUOTA_FAILURE_MESSAGE
    if status is not None and status >= 500:
        return SERVICE_FAILURE_MESSAGE
    return f"Failed to {action}: {exc or 'Unknown error'}"
