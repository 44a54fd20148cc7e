"""
Caption Types
Value objects shared by the caption timing engine
"""

from dataclasses import dataclass, field, replace
from typing import Generic, List, Optional, TypeVar

from ..utils.exceptions import CaptionError

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Explicit success/failure value returned by every engine operation"""
    value: Optional[T] = None
    error: Optional[CaptionError] = None

    @property
    def success(self) -> bool:
        return self.error is None

    @classmethod
    def ok(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def fail(cls, error: CaptionError) -> "Result[T]":
        return cls(error=error)


@dataclass(frozen=True)
class SubtitleOptions:
    """Timing constraints for caption generation, all in milliseconds"""
    min_duration: int
    max_duration: int
    char_reading_speed: int
    pause_between_blocks: int
    sentence_pause: int
    audio_duration: int


@dataclass(frozen=True)
class WordTiming:
    """A transcribed word with its start/end offsets in milliseconds"""
    word: str
    start: float
    end: float


@dataclass
class SyncAnalysis:
    """Caption-to-audio alignment score (0-100) and improvement hints"""
    sync_score: int
    suggestions: List[str] = field(default_factory=list)


def conservative_options(options: SubtitleOptions) -> SubtitleOptions:
    """Slower, more widely spaced timing used when a track scores poorly"""
    return replace(
        options,
        min_duration=max(options.min_duration, 500),
        pause_between_blocks=max(options.pause_between_blocks, 250),
        sentence_pause=max(options.sentence_pause, 600),
    )
