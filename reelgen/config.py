"""
ReelGen Configuration
Centralized settings management using Pydantic Settings
"""

from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import List
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # ==========================================================================
    # Application
    # ==========================================================================
    app_name: str = "ReelGen"
    debug: bool = False
    app_version: str = "1.0.0"

    # ==========================================================================
    # Google Gemini
    # ==========================================================================
    gemini_api_key: str = Field(default="", description="Google Gemini API Key")
    gemini_model: str = Field(default="gemini-2.0-flash", description="Vision model used for scripts")
    script_cache_ttl: int = Field(default=60 * 60 * 24 * 7, ge=0, description="Script cache TTL in seconds")

    # ==========================================================================
    # AWS
    # ==========================================================================
    aws_access_key_id: str = Field(default="", description="AWS Access Key ID")
    aws_secret_access_key: str = Field(default="", description="AWS Secret Key")
    aws_region: str = Field(default="us-east-1", description="AWS Region")
    s3_bucket_name: str = Field(default="", description="S3 Bucket Name")
    cloudfront_domain: str = Field(default="", description="CloudFront domain serving the bucket")
    mediaconvert_endpoint: str = Field(default="", description="Account-specific MediaConvert endpoint")
    mediaconvert_role: str = Field(default="", description="IAM role ARN assumed by MediaConvert")

    # ==========================================================================
    # ElevenLabs
    # ==========================================================================
    elevenlabs_api_key: str = Field(default="", description="ElevenLabs API Key")
    elevenlabs_voice_id: str = Field(default="21m00Tcm4TlvDq8ikWAM", description="Narration voice")
    elevenlabs_model_id: str = Field(default="eleven_multilingual_v2", description="Speech model")

    # ==========================================================================
    # Transcription
    # ==========================================================================
    whisper_model: str = Field(default="base", description="Whisper model size")

    # ==========================================================================
    # Captions
    # ==========================================================================
    caption_font_size: int = Field(default=72, ge=10, le=200)
    caption_font_color: str = Field(default="WHITE")
    caption_outline_color: str = Field(default="BLACK")
    caption_outline_size: int = Field(default=6, ge=0, le=10)
    caption_x_position: int = Field(default=540, ge=0, le=1080)
    caption_y_position: int = Field(default=1600, ge=0, le=1920)

    subtitle_min_duration: int = Field(default=400, ge=50, description="Minimum ms per word")
    subtitle_max_duration: int = Field(default=3000, ge=100, description="Maximum ms per word")
    subtitle_char_reading_speed: int = Field(default=80, ge=1, description="ms per character")
    subtitle_pause_between_blocks: int = Field(default=200, ge=0)
    subtitle_sentence_pause: int = Field(default=500, ge=0)
    subtitle_retry_threshold: int = Field(default=50, ge=0, le=100, description="Sync score that triggers a retry")

    # ==========================================================================
    # Pipeline Timings
    # ==========================================================================
    monitor_poll_interval: float = Field(default=10.0, ge=0, description="Seconds between MediaConvert polls")
    monitor_timeout_seconds: float = Field(default=7200.0, ge=0, description="Give up on a remote job after this long")
    monitor_max_status_failures: int = Field(default=5, ge=1, description="Consecutive status errors tolerated")
    output_retry_attempts: int = Field(default=10, ge=1, le=50)
    output_retry_delay: float = Field(default=5.0, ge=0)
    signed_url_ttl: int = Field(default=3600, ge=60, le=604800)
    output_cache_ttl: int = Field(default=60 * 60 * 24, ge=0, description="Resolved output location cache TTL in seconds")

    # ==========================================================================
    # Queue & Workers
    # ==========================================================================
    queue_poll_interval: float = Field(default=1.0, ge=0, description="Idle wait between empty dequeues")
    job_worker_concurrency: int = Field(default=1, ge=1, le=16, description="Concurrent queue consumers")
    queue_max_attempts: int = Field(default=2, ge=1, le=10, description="Deliveries per message before it is dropped")
    run_embedded_worker: bool = Field(default=True, description="Consume the queue inside the API process")
    status_event_ttl: float = Field(default=300.0, ge=0, description="Undelivered status events older than this are pruned")

    # ==========================================================================
    # Security
    # ==========================================================================
    api_key: str = Field(default="", description="Optional API key for /api and /ws routes")
    cors_allowed_origins: List[str] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://127.0.0.1:3000"
        ],
        description="Allowed CORS origins"
    )

    # ==========================================================================
    # Paths
    # ==========================================================================
    temp_dir: str = Field(default="temp", description="Temporary processing directory")
    data_dir: str = Field(default="data", description="Persistent application data directory")

    @field_validator("cors_allowed_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, value):
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
