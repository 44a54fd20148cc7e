"""
MediaConvert Client
Async wrapper over the boto3 MediaConvert API
"""

import asyncio
from typing import Any, Dict

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ...config import Settings
from ...utils.exceptions import RemoteStatusError, RemoteSubmissionError
from ...utils.logger import get_logger
from .status import RemoteJobStatus

logger = get_logger()


class MediaConvertClient:
    """Submits render jobs and reads their status"""

    def __init__(self, settings: Settings, client=None):
        self.settings = settings
        self._client = client

    @property
    def client(self):
        """Lazy initialize MediaConvert client"""
        if self._client is None:
            config = Config(retries={'max_attempts': 3, 'mode': 'adaptive'})
            self._client = boto3.client(
                'mediaconvert',
                endpoint_url=self.settings.mediaconvert_endpoint or None,
                aws_access_key_id=self.settings.aws_access_key_id or None,
                aws_secret_access_key=self.settings.aws_secret_access_key or None,
                region_name=self.settings.aws_region,
                config=config
            )
            logger.info("MediaConvert client initialized")
        return self._client

    async def submit(self, job_settings: Dict[str, Any]) -> str:
        """Create a job and return its remote id"""
        loop = asyncio.get_event_loop()
        try:
            response = await loop.run_in_executor(
                None, lambda: self.client.create_job(**job_settings)
            )
        except (BotoCoreError, ClientError) as e:
            raise RemoteSubmissionError(f"MediaConvert job creation failed: {e}") from e

        remote_job_id = (response.get("Job") or {}).get("Id")
        if not remote_job_id:
            raise RemoteSubmissionError("MediaConvert job creation failed: No job ID returned")
        return remote_job_id

    async def get_status(self, remote_job_id: str) -> RemoteJobStatus:
        """Current status of a remote job"""
        loop = asyncio.get_event_loop()
        try:
            response = await loop.run_in_executor(
                None, lambda: self.client.get_job(Id=remote_job_id)
            )
        except (BotoCoreError, ClientError) as e:
            raise RemoteStatusError(f"Failed to get MediaConvert job status: {e}", remote_job_id) from e

        job = response.get("Job")
        if not job:
            raise RemoteStatusError("MediaConvert job not found", remote_job_id)
        return RemoteJobStatus.from_job(job)
