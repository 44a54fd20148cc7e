"""
SRT Timestamp Parsing
Strict HH:MM:SS,mmm conversion to and from milliseconds
"""

import re

from ..utils.exceptions import TimestampFormatError
from .types import Result

TIMESTAMP_PATTERN = re.compile(r"^([0-9]{2}):([0-9]{2}):([0-9]{2}),([0-9]{3})$")

# 99:59:59,999
MAX_TIMESTAMP_MS = 359999999


def parse_timestamp(timestamp: str) -> Result[int]:
    """Parse an SRT timestamp into milliseconds"""
    clean = timestamp.strip()
    match = TIMESTAMP_PATTERN.match(clean)
    if not match:
        return Result.fail(TimestampFormatError(f"Invalid timestamp format: {clean}", clean))

    hours, minutes, seconds, millis = (int(part) for part in match.groups())
    if minutes > 59 or seconds > 59:
        return Result.fail(
            TimestampFormatError(f"Invalid time values in timestamp: {clean}", clean)
        )

    return Result.ok(hours * 3600000 + minutes * 60000 + seconds * 1000 + millis)


def format_timestamp(ms: float) -> str:
    """Format milliseconds as HH:MM:SS,mmm, clamped to the representable range"""
    ms = int(ms)
    if ms < 0:
        ms = 0
    elif ms > MAX_TIMESTAMP_MS:
        ms = MAX_TIMESTAMP_MS

    hours, rest = divmod(ms, 3600000)
    minutes, rest = divmod(rest, 60000)
    seconds, millis = divmod(rest, 1000)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d},{millis:03d}"
