"""Services package initialization"""
from .job_queue import QUEUES, WorkQueue
from .job_store import JobStatusStore
from .kv_cache import KVCache
from .s3_storage import S3Paths, S3Storage
from .media_processor import MediaProcessor
from .script_generator import ScriptGenerator, ScriptResult
from .speech_synthesizer import SpeechSynthesizer
from .transcription import TranscriptionResult, TranscriptionService
from .video_pipeline import VideoPipeline
from .queue_worker import QueueWorker, QueueWorkerPool, StatusRelay

__all__ = [
    "QUEUES",
    "WorkQueue",
    "JobStatusStore",
    "KVCache",
    "S3Paths",
    "S3Storage",
    "MediaProcessor",
    "ScriptGenerator",
    "ScriptResult",
    "SpeechSynthesizer",
    "TranscriptionResult",
    "TranscriptionService",
    "VideoPipeline",
    "QueueWorker",
    "QueueWorkerPool",
    "StatusRelay"
]
