"""Caption timing engine"""
from .types import Result, SubtitleOptions, WordTiming, SyncAnalysis, conservative_options
from .timestamps import parse_timestamp, format_timestamp, MAX_TIMESTAMP_MS
from .blocks import CaptionBlock, parse_track, serialize_track
from .optimizer import WordOptimizer, optimize_to_words
from .sync import analyze_sync
from .processor import improve_subtitles, create_word_by_word_subtitles, analyze_sync_points

__all__ = [
    "Result",
    "SubtitleOptions",
    "WordTiming",
    "SyncAnalysis",
    "conservative_options",
    "parse_timestamp",
    "format_timestamp",
    "MAX_TIMESTAMP_MS",
    "CaptionBlock",
    "parse_track",
    "serialize_track",
    "WordOptimizer",
    "optimize_to_words",
    "analyze_sync",
    "improve_subtitles",
    "create_word_by_word_subtitles",
    "analyze_sync_points"
]
