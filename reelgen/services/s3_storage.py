"""
S3 Storage Service
Object storage for stage artifacts and transcoded output
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ..config import Settings
from ..utils.exceptions import StorageError
from ..utils.logger import get_logger

logger = get_logger()


class S3Paths:
    """Key layout for per-job artifacts"""

    @staticmethod
    def image(job_id: str, extension: str = "png") -> str:
        return f"images/{job_id}.{extension}"

    @staticmethod
    def audio(job_id: str) -> str:
        return f"audio/{job_id}.mp3"

    @staticmethod
    def subtitles(job_id: str) -> str:
        return f"subtitles/{job_id}.srt"

    @staticmethod
    def output(filename: str) -> str:
        return f"output/{filename}"

    @staticmethod
    def s3_uri(bucket: str, key: str) -> str:
        return f"s3://{bucket}/{key}"


@dataclass
class StoredObject:
    """Listing entry for an object in the bucket"""
    key: str
    size: int
    last_modified: Optional[datetime] = None


class S3Storage:
    """Async wrapper around a boto3 S3 client bound to one bucket"""

    def __init__(self, settings: Settings, client=None):
        self.settings = settings
        self.bucket = settings.s3_bucket_name
        self._client = client

    @property
    def client(self):
        """Lazy initialize S3 client"""
        if self._client is None:
            config = Config(
                retries={'max_attempts': 3, 'mode': 'adaptive'},
                max_pool_connections=10
            )
            self._client = boto3.client(
                's3',
                aws_access_key_id=self.settings.aws_access_key_id or None,
                aws_secret_access_key=self.settings.aws_secret_access_key or None,
                region_name=self.settings.aws_region,
                config=config
            )
            logger.info(f"S3 client initialized for bucket: {self.bucket}")
        return self._client

    async def _run(self, func, *args, **kwargs):
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, lambda: func(*args, **kwargs))

    async def upload(self, key: str, data: bytes, content_type: str) -> str:
        """Upload bytes and return the s3:// uri of the object"""
        logger.info(f"Uploading to S3: {key} ({len(data) / 1024:.1f} KB)")
        try:
            await self._run(
                self.client.put_object,
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Failed to upload {key}: {e}", self.bucket, key) from e
        return S3Paths.s3_uri(self.bucket, key)

    async def get(self, key: str) -> bytes:
        """Download an object's contents"""
        try:
            response = await self._run(self.client.get_object, Bucket=self.bucket, Key=key)
            return await self._run(response["Body"].read)
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Failed to read {key}: {e}", self.bucket, key) from e

    async def get_signed_url(self, key: str, ttl_seconds: int) -> str:
        """Presigned GET url valid for ``ttl_seconds``"""
        try:
            return await self._run(
                self.client.generate_presigned_url,
                'get_object',
                Params={'Bucket': self.bucket, 'Key': key},
                ExpiresIn=ttl_seconds
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Failed to sign url for {key}: {e}", self.bucket, key) from e

    async def list(self, prefix: str, max_keys: int = 100) -> List[StoredObject]:
        """List objects under a prefix"""
        try:
            response = await self._run(
                self.client.list_objects_v2,
                Bucket=self.bucket,
                Prefix=prefix,
                MaxKeys=max_keys
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Failed to list {prefix}: {e}", self.bucket, prefix) from e

        return [
            StoredObject(
                key=item["Key"],
                size=item.get("Size", 0),
                last_modified=item.get("LastModified")
            )
            for item in response.get("Contents", [])
        ]

    async def exists(self, key: str) -> bool:
        """True when the object is present; missing objects are not errors"""
        try:
            await self._run(self.client.head_object, Bucket=self.bucket, Key=key)
            return True
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code in ("404", "NoSuchKey", "NotFound"):
                return False
            raise StorageError(f"Failed to check {key}: {e}", self.bucket, key) from e
        except BotoCoreError as e:
            raise StorageError(f"Failed to check {key}: {e}", self.bucket, key) from e

    async def delete(self, key: str) -> bool:
        """Delete an object"""
        try:
            await self._run(self.client.delete_object, Bucket=self.bucket, Key=key)
            logger.info(f"Deleted from S3: {key}")
            return True
        except (BotoCoreError, ClientError) as e:
            logger.error(f"S3 delete failed: {e}")
            return False
