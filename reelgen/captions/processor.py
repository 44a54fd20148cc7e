"""
Subtitle Processor
Entry points used by the pipeline: text in, SRT track out
"""

from typing import List, Optional, Sequence

from ..utils.logger import get_logger
from .blocks import CaptionBlock, parse_track, serialize_track
from .optimizer import WordOptimizer
from .sync import analyze_sync
from .types import Result, SubtitleOptions, SyncAnalysis, WordTiming

logger = get_logger()


def _source_blocks(text: str) -> List[CaptionBlock]:
    """Use the text as an SRT track if it is one, else as a single block"""
    if text and "-->" in text:
        parsed = parse_track(text)
        if parsed.success:
            return parsed.value
    return [CaptionBlock(1, 0, 1000, text.strip() or " ")]


def improve_subtitles(
    text: str,
    options: SubtitleOptions,
    word_timings: Optional[Sequence[WordTiming]] = None
) -> Result[str]:
    """Re-time a transcription (plain text or SRT) into a word-by-word track"""
    optimized = WordOptimizer(options).optimize_to_words(_source_blocks(text), word_timings)
    if not optimized.success:
        logger.warning(f"Subtitle optimization failed: {optimized.error.message}")
        return Result.fail(optimized.error)

    return Result.ok(serialize_track(optimized.value))


def create_word_by_word_subtitles(
    text: str,
    options: SubtitleOptions,
    word_timings: Optional[Sequence[WordTiming]] = None
) -> Result[str]:
    """Build a word-by-word track from the full transcription text"""
    source = [CaptionBlock(1, 0, 1000, text.strip() or " ")]
    optimized = WordOptimizer(options).optimize_to_words(source, word_timings)
    if not optimized.success:
        return Result.fail(optimized.error)

    return Result.ok(serialize_track(optimized.value))


def analyze_sync_points(subtitles: str, audio_duration: int) -> Result[SyncAnalysis]:
    parsed = parse_track(subtitles)
    if not parsed.success:
        return Result.fail(parsed.error)

    result = analyze_sync(parsed.value, audio_duration)
    if result.success:
        logger.debug(f"Sync score {result.value.sync_score}: {result.value.suggestions}")
    return result
