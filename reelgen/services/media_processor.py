"""
Media Processor
Normalizes uploaded images and stores per-job media artifacts
"""

import asyncio
import base64
import binascii
import io
import re
from dataclasses import dataclass
from typing import Tuple

from PIL import Image, UnidentifiedImageError

from ..utils.logger import get_logger
from .s3_storage import S3Paths, S3Storage

logger = get_logger()

DATA_URL_PATTERN = re.compile(r"^data:([A-Za-z0-9.+/-]+);base64,(.+)$", re.DOTALL)

# Bitrate assumed when estimating MP3 length from its size
MP3_BITRATE = 128000


@dataclass
class UploadedFile:
    """Storage key and s3:// uri of an uploaded artifact"""
    key: str
    uri: str


def decode_image_data(image_data: str) -> Tuple[bytes, str]:
    """
    Decode a base64 image, with or without a data URL prefix.

    Returns the raw bytes and the declared content type (JPEG when the
    input carries no prefix). Raises ValueError on malformed input.
    """
    content_type = "image/jpeg"
    payload = image_data.strip()

    match = DATA_URL_PATTERN.match(payload)
    if match:
        content_type, payload = match.group(1), match.group(2)
    elif payload.startswith("data:"):
        raise ValueError("Malformed data URL")

    try:
        raw = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Invalid base64 image data: {e}") from e

    if not raw:
        raise ValueError("Image data is empty")
    return raw, content_type


def convert_to_png(raw: bytes) -> bytes:
    """Re-encode an image as PNG without resizing"""
    try:
        with Image.open(io.BytesIO(raw)) as image:
            if image.mode not in ("RGB", "RGBA", "L", "LA", "P"):
                image = image.convert("RGBA")
            buffer = io.BytesIO()
            image.save(buffer, format="PNG")
            return buffer.getvalue()
    except UnidentifiedImageError as e:
        raise ValueError("Uploaded data is not a recognizable image") from e


def approximate_audio_duration(audio: bytes) -> int:
    """MP3 duration estimate in ms, assuming 128 kbps"""
    return round(len(audio) * 8 / MP3_BITRATE * 1000)


class MediaProcessor:
    """Uploads stage artifacts under the per-job key layout"""

    def __init__(self, storage: S3Storage):
        self.storage = storage

    async def process_image_upload(self, image_data: str, job_id: str) -> UploadedFile:
        """Store the original image and the PNG copy the transcoder reads"""
        logger.info(f"[{job_id}] Processing image upload")
        raw, content_type = decode_image_data(image_data)

        loop = asyncio.get_event_loop()
        png = await loop.run_in_executor(None, convert_to_png, raw)

        await self.storage.upload(S3Paths.image(job_id, "jpg"), raw, content_type)
        key = S3Paths.image(job_id, "png")
        uri = await self.storage.upload(key, png, "image/png")
        return UploadedFile(key=key, uri=uri)

    async def process_audio_upload(self, audio: bytes, job_id: str) -> UploadedFile:
        logger.info(f"[{job_id}] Processing audio upload")
        key = S3Paths.audio(job_id)
        uri = await self.storage.upload(key, audio, "audio/mpeg")
        return UploadedFile(key=key, uri=uri)

    async def process_subtitles_upload(self, subtitles: str, job_id: str) -> UploadedFile:
        logger.info(f"[{job_id}] Processing subtitles upload")
        key = S3Paths.subtitles(job_id)
        uri = await self.storage.upload(key, subtitles.encode("utf-8"), "application/x-subrip")
        return UploadedFile(key=key, uri=uri)

    async def cleanup_media_files(self, job_id: str):
        """Remove a job's intermediate artifacts; failures are only logged"""
        logger.info(f"[{job_id}] Cleaning up media files")
        keys = [
            S3Paths.image(job_id, "jpg"),
            S3Paths.image(job_id, "png"),
            S3Paths.audio(job_id),
            S3Paths.subtitles(job_id),
        ]
        for key in keys:
            try:
                await self.storage.delete(key)
            except Exception as e:
                logger.warning(f"[{job_id}] Failed to delete {key}: {e}")
