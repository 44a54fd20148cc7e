"""
Script Generator
Uses Google Gemini to write a short narration script for an image
"""

import asyncio
import re
from dataclasses import asdict, dataclass, field
from typing import List

from ..config import Settings
from ..utils.exceptions import (
    APIKeyError,
    RateLimitError,
    ScriptGenerationError,
    describe_ai_failure,
    vendor_status_code,
)
from ..utils.logger import get_logger
from ..utils.retry import retry_async
from .kv_cache import KVCache
from .s3_storage import S3Storage

logger = get_logger()

SCRIPT_PROMPT = (
    "Generate a creative short-form video script based on this image. "
    "The script should be engaging and suitable for social media, about 30-60 "
    "seconds long. Break it into natural speaking segments. Return only the "
    "words to be spoken, without stage directions or headings."
)

SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")


@dataclass
class ScriptResult:
    """Narration script and its sentence-level segments"""
    script: str
    segments: List[str] = field(default_factory=list)


def split_segments(script: str) -> List[str]:
    return [segment.strip() for segment in SENTENCE_BOUNDARY.split(script) if segment.strip()]


class ScriptGenerator:
    """Writes narration scripts from images using Gemini vision"""

    def __init__(self, settings: Settings, storage: S3Storage, cache: KVCache):
        self.settings = settings
        self.storage = storage
        self.cache = cache
        self._client = None

    def _ensure_client(self):
        """Lazy load the Gemini client"""
        if self._client is not None:
            return

        if not self.settings.gemini_api_key:
            raise APIKeyError("Gemini")

        from google import genai
        self._client = genai.Client(api_key=self.settings.gemini_api_key)
        logger.info("Gemini client initialized")

    async def generate_script(self, image_key: str) -> ScriptResult:
        """
        Generate (or fetch the cached) script for an uploaded image

        Args:
            image_key: Storage key of the PNG image

        Returns:
            ScriptResult with the full script and its segments
        """
        cache_key = f"script:{image_key}"
        cached = await self.cache.get(cache_key)
        if cached:
            logger.info(f"Using cached script for: {image_key}")
            return ScriptResult(**cached)

        logger.info(f"Generating new script for: {image_key}")
        self._ensure_client()
        image = await self.storage.get(image_key)

        script = await self._generate(image)
        if not script or not script.strip():
            raise ScriptGenerationError("Failed to generate script from image", image_key=image_key)

        script = script.strip()
        result = ScriptResult(script=script, segments=split_segments(script))
        await self.cache.set(cache_key, asdict(result), self.settings.script_cache_ttl)

        logger.info(f"Script generated: {len(result.segments)} segments")
        return result

    @retry_async(max_retries=2, base_delay=2.0, retryable_exceptions=(RateLimitError,))
    async def _generate(self, image: bytes) -> str:
        from google.genai import types

        loop = asyncio.get_event_loop()
        try:
            response = await loop.run_in_executor(
                None,
                lambda: self._client.models.generate_content(
                    model=self.settings.gemini_model,
                    contents=[
                        types.Part.from_bytes(data=image, mime_type="image/png"),
                        SCRIPT_PROMPT,
                    ],
                    config={'max_output_tokens': 500}
                )
            )
        except Exception as e:
            logger.error(f"Script generation error: {e}")
            if vendor_status_code(e) == 429:
                raise RateLimitError("Gemini") from e
            raise ScriptGenerationError(describe_ai_failure(
                e,
                "generate script",
                "Failed to analyze image. Please ensure the image is valid and try again."
            )) from e

        if not response or not getattr(response, 'text', None):
            logger.error("Gemini returned empty response (possibly blocked)")
            return ""
        return response.text
