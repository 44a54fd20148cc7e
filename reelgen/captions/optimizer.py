"""
Word Optimizer
Turns caption text (or transcribed word timings) into one block per word
"""

import math
import re
from typing import List, Optional, Sequence

from ..utils.exceptions import ValidationError
from ..utils.logger import get_logger
from .blocks import CaptionBlock
from .types import Result, SubtitleOptions, WordTiming

logger = get_logger()

# Minimum gap between consecutive word blocks (ms)
MIN_GAP_MS = 50

PUNCTUATION_END = re.compile(r"[.!?,;]$")


def sanitize_word(word: str) -> str:
    """Flatten line breaks and trim; never returns an empty string"""
    return word.replace("\r", " ").replace("\n", " ").strip() or " "


class WordOptimizer:
    """Word-level caption timing with min/max durations and gaps"""

    def __init__(self, options: SubtitleOptions):
        self.options = options

    def is_valid_timing(self, timing: WordTiming) -> bool:
        return (
            timing.start >= 0
            and timing.end >= timing.start
            and timing.end <= self.options.audio_duration
            and bool(timing.word and timing.word.strip())
        )

    def optimize_to_words(
        self,
        blocks: Sequence[CaptionBlock],
        word_timings: Optional[Sequence[WordTiming]] = None
    ) -> Result[List[CaptionBlock]]:
        """
        Build a word-by-word track.

        Uses the word timings when any are given, otherwise estimates
        per-word durations from the text of ``blocks``.
        """
        if word_timings:
            return self._from_word_timings(word_timings)
        return self._from_estimate(blocks)

    def _from_word_timings(self, word_timings: Sequence[WordTiming]) -> Result[List[CaptionBlock]]:
        opts = self.options

        valid = [t for t in word_timings if self.is_valid_timing(t)]
        dropped = len(word_timings) - len(valid)
        if dropped:
            logger.warning(f"Dropped {dropped} invalid word timing(s)")
        if not valid:
            return Result.fail(ValidationError(
                "Failed to optimize words", ["No valid word timings found"]
            ))

        blocks: List[CaptionBlock] = []
        previous_end: Optional[int] = None

        for position, timing in enumerate(valid, start=1):
            start = int(timing.start)
            end = int(timing.end)

            if previous_end is not None and start < previous_end + MIN_GAP_MS:
                start = previous_end + MIN_GAP_MS

            if end <= start + opts.min_duration:
                end = start + opts.min_duration

            if end > opts.audio_duration:
                end = opts.audio_duration
                if end - start < opts.min_duration:
                    start = max(0, end - opts.min_duration)

            if end <= start:
                return Result.fail(ValidationError(
                    "Failed to optimize words",
                    [f"Word {position} ({timing.word!r}) has no room before the end of audio"]
                ))

            blocks.append(CaptionBlock(position, start, end, sanitize_word(timing.word)))
            previous_end = end

        return Result.ok(blocks)

    def _from_estimate(self, source: Sequence[CaptionBlock]) -> Result[List[CaptionBlock]]:
        opts = self.options

        words = [word for block in source for word in block.text.split() if word.strip()]
        if not words:
            return Result.fail(ValidationError(
                "Failed to optimize words", ["No words found in caption text"]
            ))

        count = len(words)
        average = math.floor((opts.audio_duration - count * MIN_GAP_MS) / count)
        average = max(opts.min_duration, min(opts.max_duration, average))

        blocks: List[CaptionBlock] = []
        current = 0

        for position, raw in enumerate(words, start=1):
            word = sanitize_word(raw)
            pause = opts.sentence_pause if PUNCTUATION_END.search(word) else 0

            duration = min(
                max(len(word) * opts.char_reading_speed + pause, average * 0.8, opts.min_duration),
                opts.max_duration,
                average * 1.5,
            )

            remaining = opts.audio_duration - current
            if duration > remaining:
                duration = max(opts.min_duration, remaining - 100)

            start = int(current)
            end = int(current + duration)
            if end <= start:
                return Result.fail(ValidationError(
                    "Failed to optimize words",
                    [f"Word {position} ({word!r}) has a non-positive duration"]
                ))

            blocks.append(CaptionBlock(position, start, end, word))
            current += duration + MIN_GAP_MS

        return Result.ok(blocks)


def optimize_to_words(
    blocks: Sequence[CaptionBlock],
    options: SubtitleOptions,
    word_timings: Optional[Sequence[WordTiming]] = None
) -> Result[List[CaptionBlock]]:
    return WordOptimizer(options).optimize_to_words(blocks, word_timings)
