"""MediaConvert transcode job lifecycle"""
from .status import RemoteStatus, RemoteJobStatus
from .recipe import CaptionStyle, VideoJobInput, build_job_settings
from .client import MediaConvertClient
from .output_resolver import OutputLocation, OutputPathResolver, expected_output_key, parse_s3_uri
from .url_handler import URLHandler, validate_video_url, validate_against
from .job_manager import JobManager

__all__ = [
    "RemoteStatus",
    "RemoteJobStatus",
    "CaptionStyle",
    "VideoJobInput",
    "build_job_settings",
    "MediaConvertClient",
    "OutputLocation",
    "OutputPathResolver",
    "expected_output_key",
    "parse_s3_uri",
    "URLHandler",
    "validate_video_url",
    "validate_against",
    "JobManager"
]
