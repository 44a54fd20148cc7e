"""
Transcription Service
Faster-Whisper transcription of narration audio with word-level timestamps
"""

import asyncio
import io
import os
from dataclasses import dataclass, field
from typing import List, Optional

from ..captions.types import WordTiming
from ..utils.exceptions import TranscriptionError
from ..utils.logger import get_logger

logger = get_logger()


@dataclass
class TranscriptionResult:
    """Transcript text with word timings, all times in milliseconds"""
    text: str
    words: List[WordTiming] = field(default_factory=list)
    duration_ms: Optional[int] = None

    def __str__(self) -> str:
        return self.text


class TranscriptionService:
    """CPU-optimized transcription using Faster-Whisper"""

    def __init__(self, model_size: str = "base"):
        self.model_size = model_size
        self.model = None

    def _ensure_model_loaded(self):
        """Lazy load the Whisper model with optimal settings"""
        if self.model is not None:
            return

        logger.info(f"Loading Faster-Whisper model: {self.model_size}")
        from faster_whisper import WhisperModel

        # Use 75% of available cores
        cpu_count = os.cpu_count() or 4
        optimal_threads = max(2, int(cpu_count * 0.75))

        self.model = WhisperModel(
            self.model_size,
            device="cpu",
            compute_type="int8",
            cpu_threads=optimal_threads,
            num_workers=2,
        )
        logger.info(f"Whisper model loaded (threads={optimal_threads})")

    async def transcribe(self, audio: bytes) -> TranscriptionResult:
        """
        Transcribe MP3 audio

        Args:
            audio: Encoded audio bytes

        Returns:
            TranscriptionResult with word timings in ms
        """
        logger.info(f"Starting transcription ({len(audio) / 1024:.1f} KB)")

        loop = asyncio.get_event_loop()
        try:
            result = await loop.run_in_executor(None, self._do_transcription, audio)
        except Exception as e:
            logger.error(f"Transcription error: {e}")
            raise TranscriptionError(f"Failed to generate transcription: {e}") from e

        logger.info(f"Transcription complete: {len(result.words)} words")
        return result

    def _do_transcription(self, audio: bytes) -> TranscriptionResult:
        """Perform the actual transcription (blocking)"""
        self._ensure_model_loaded()

        segments_gen, info = self.model.transcribe(
            io.BytesIO(audio),
            word_timestamps=True,
            vad_filter=True,
            vad_parameters=dict(
                min_silence_duration_ms=500,
                speech_pad_ms=200
            )
        )

        words: List[WordTiming] = []
        text_parts = []

        for segment in segments_gen:
            text_parts.append(segment.text.strip())
            for word in segment.words or []:
                words.append(WordTiming(
                    word=word.word.strip(),
                    start=word.start * 1000,
                    end=word.end * 1000
                ))

        duration_ms = int(info.duration * 1000) if info.duration else None

        return TranscriptionResult(
            text=" ".join(part for part in text_parts if part),
            words=words,
            duration_ms=duration_ms
        )
