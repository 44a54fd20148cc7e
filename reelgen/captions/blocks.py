"""
Caption Blocks
Parsing and serialization of SRT caption tracks
"""

import re
from dataclasses import dataclass
from typing import List, Sequence

from ..utils.exceptions import BlockParseError
from ..utils.logger import get_logger
from .timestamps import format_timestamp, parse_timestamp
from .types import Result

logger = get_logger()

TIMING_LINE_PATTERN = re.compile(
    r"^[0-9]{2}:[0-9]{2}:[0-9]{2},[0-9]{3} --> [0-9]{2}:[0-9]{2}:[0-9]{2},[0-9]{3}$"
)


@dataclass(frozen=True)
class CaptionBlock:
    """One timed subtitle unit; times are millisecond offsets from track start"""
    index: int
    start_time: int
    end_time: int
    text: str

    @property
    def duration(self) -> int:
        return self.end_time - self.start_time

    def to_srt(self) -> str:
        return (
            f"{self.index}\n"
            f"{format_timestamp(self.start_time)} --> {format_timestamp(self.end_time)}\n"
            f"{self.text or ' '}\n"
        )


def serialize_track(blocks: Sequence[CaptionBlock]) -> str:
    """Render blocks as SRT text, one blank line between blocks"""
    return "\n".join(block.to_srt() for block in blocks)


def parse_block(chunk: str, index: int) -> Result[CaptionBlock]:
    """Parse one block; ``index`` is the position the block must declare"""
    lines = chunk.strip("\n").split("\n")

    if len(lines) < 3:
        return Result.fail(
            BlockParseError(f"Invalid block structure (insufficient lines: {len(lines)})", index)
        )

    try:
        declared = int(lines[0].strip())
    except ValueError:
        declared = None
    if declared != index:
        return Result.fail(
            BlockParseError(f"Invalid block index (expected: {index}, got: {lines[0]})", index)
        )

    timing_line = lines[1].strip()
    if not TIMING_LINE_PATTERN.match(timing_line):
        return Result.fail(BlockParseError(f"Invalid timestamp format: {timing_line}", index))

    start_str, end_str = timing_line.split(" --> ")
    start = parse_timestamp(start_str)
    if not start.success:
        return Result.fail(BlockParseError(start.error.message, index))
    end = parse_timestamp(end_str)
    if not end.success:
        return Result.fail(BlockParseError(end.error.message, index))

    if start.value >= end.value:
        return Result.fail(BlockParseError("End time must be greater than start time", index))

    text = "\n".join(lines[2:]).strip() or " "
    return Result.ok(CaptionBlock(index, start.value, end.value, text))


def parse_track(content: str) -> Result[List[CaptionBlock]]:
    """Parse a full SRT track, reporting every malformed block at once"""
    clean = content.replace("\r\n", "\n").strip("\n")
    if not clean.strip():
        return Result.fail(BlockParseError("Empty subtitle file"))

    chunks = [chunk for chunk in clean.split("\n\n") if chunk.strip()]

    blocks: List[CaptionBlock] = []
    errors: List[str] = []
    first_failure = None

    for position, chunk in enumerate(chunks, start=1):
        result = parse_block(chunk, position)
        if result.success:
            blocks.append(result.value)
        else:
            errors.append(f"Block {position}: {result.error.message}")
            if first_failure is None:
                first_failure = position

    if errors:
        logger.warning(f"Failed to parse {len(errors)} subtitle block(s)")
        return Result.fail(
            BlockParseError(f"Failed to parse blocks: {'; '.join(errors)}", first_failure)
        )

    return Result.ok(blocks)
