"""
Sync Analyzer
Scores how well a caption track lines up with its audio
"""

from typing import List, Sequence

from .blocks import CaptionBlock
from .types import Result, SyncAnalysis

UNUSED_AUDIO_SUGGESTION = "Significant unused audio duration at the end"
NO_BLOCKS_SUGGESTION = "No subtitle blocks found"

LARGE_GAP_MS = 2000
UNUSED_AUDIO_MS = 3000
OPTIMAL_MEAN_DURATION = (300, 2000)


def analyze_sync(blocks: Sequence[CaptionBlock], audio_duration: int) -> Result[SyncAnalysis]:
    """Score a track 0-100 against the audio duration, with improvement hints"""
    if not blocks:
        return Result.ok(SyncAnalysis(sync_score=0, suggestions=[NO_BLOCKS_SUGGESTION]))

    score = 100
    suggestions: List[str] = []
    previous_end = 0

    for position, block in enumerate(blocks, start=1):
        if block.end_time > audio_duration:
            score -= 20
            suggestions.append(f"Block {position}: Subtitles extend beyond audio duration")

        if block.start_time < previous_end:
            score -= 5
            suggestions.append(f"Block {position}: Overlap with previous subtitle")

        if block.start_time - previous_end > LARGE_GAP_MS:
            score -= 2
            suggestions.append(f"Block {position}: Large gap from previous subtitle")

        previous_end = block.end_time

    if audio_duration - blocks[-1].end_time > UNUSED_AUDIO_MS:
        score -= 10
        suggestions.append(UNUSED_AUDIO_SUGGESTION)

    mean = sum(block.duration for block in blocks) / len(blocks)
    low, high = OPTIMAL_MEAN_DURATION
    if mean < low or mean > high:
        score -= 5
        suggestions.append(f"Average word duration ({round(mean)}ms) is outside optimal range")

    return Result.ok(SyncAnalysis(
        sync_score=max(0, score),
        suggestions=list(dict.fromkeys(suggestions))
    ))
