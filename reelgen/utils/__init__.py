"""Utils package initialization"""
from .logger import setup_logger, get_logger
from .exceptions import (
    ReelGenError,
    CaptionError,
    TimestampFormatError,
    BlockParseError,
    ValidationError,
    SyncAnalysisError,
    RemoteSubmissionError,
    RemoteStatusError,
    OutputResolutionError,
    StageError,
    StorageError,
    ScriptGenerationError,
    SpeechSynthesisError,
    TranscriptionError,
    APIKeyError,
    RateLimitError,
    InvalidMessageError,
    JobNotFoundError,
    describe_ai_failure
)
from .retry import retry_async

__all__ = [
    "setup_logger",
    "get_logger",
    "ReelGenError",
    "CaptionError",
    "TimestampFormatError",
    "BlockParseError",
    "ValidationError",
    "SyncAnalysisError",
    "RemoteSubmissionError",
    "RemoteStatusError",
    "OutputResolutionError",
    "StageError",
    "StorageError",
    "ScriptGenerationError",
    "SpeechSynthesisError",
    "TranscriptionError",
    "APIKeyError",
    "RateLimitError",
    "InvalidMessageError",
    "JobNotFoundError",
    "describe_ai_failure",
    "retry_async"
]
