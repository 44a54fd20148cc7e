"""
Speech Synthesizer
ElevenLabs text-to-speech for narration audio
"""

import asyncio

from ..config import Settings
from ..utils.exceptions import (
    APIKeyError,
    RateLimitError,
    SpeechSynthesisError,
    describe_ai_failure,
    vendor_status_code,
)
from ..utils.logger import get_logger
from ..utils.retry import retry_async

logger = get_logger()


class SpeechSynthesizer:
    """Narration voice using ElevenLabs"""

    def __init__(self, settings: Settings):
        self.settings = settings
        self._client = None

    def _ensure_initialized(self):
        """Lazy initialize ElevenLabs client"""
        if self._client is not None:
            return

        if not self.settings.elevenlabs_api_key:
            raise APIKeyError("ElevenLabs")

        from elevenlabs.client import ElevenLabs

        self._client = ElevenLabs(api_key=self.settings.elevenlabs_api_key)
        logger.info("ElevenLabs client initialized")

    @retry_async(max_retries=2, base_delay=2.0, retryable_exceptions=(RateLimitError,))
    async def synthesize(self, text: str) -> bytes:
        """Render text as MP3 audio"""
        if not text or not text.strip():
            raise SpeechSynthesisError("Invalid text for speech generation. Please try again.")

        self._ensure_initialized()
        logger.info(f"Synthesizing speech ({len(text)} chars)")

        loop = asyncio.get_event_loop()
        try:
            audio = await loop.run_in_executor(None, self._do_synthesis, text)
        except Exception as e:
            logger.error(f"Speech generation error: {e}")
            if vendor_status_code(e) == 429:
                raise RateLimitError("ElevenLabs") from e
            raise SpeechSynthesisError(describe_ai_failure(
                e,
                "generate speech",
                "Invalid text for speech generation. Please try again."
            )) from e

        if not audio:
            raise SpeechSynthesisError("Failed to generate speech: empty audio returned")

        logger.info(f"Speech synthesized: {len(audio) / 1024:.1f} KB")
        return audio

    def _do_synthesis(self, text: str) -> bytes:
        """Perform synthesis (blocking)"""
        chunks = self._client.text_to_speech.convert(
            voice_id=self.settings.elevenlabs_voice_id,
            model_id=self.settings.elevenlabs_model_id,
            text=text,
            output_format="mp3_44100_128"
        )
        return b"".join(chunks)
