"""Clip deduplication.

Merges candidates that overlap or sit too close together in the same file.
"""
import logging
from functools import reduce
from typing import List, Optional, Sequence

from .config import PipelineConfig, DEFAULT_PIPELINE_CONFIG
from .peaks import Clip

logger = logging.getLogger(__name__)


def enforce_clip_bounds(
    clip: Clip,
    min_length: float = 0.5,
    duration: Optional[float] = None,
) -> Clip:
    """
    Clamp start to >= 0 and end to >= start + min_length.

    When the file duration is known, end is also clamped to it and the start
    is pulled back to keep the minimum length.
    """
    start = max(0.0, clip.start)
    end = max(start + min_length, clip.end)
    if duration is not None and end > duration:
        end = duration
        start = max(0.0, min(start, end - min_length))
    return Clip(file_index=clip.file_index, start=start, end=end)


def _merge_step(merged: List[Clip], clip: Clip, min_gap_seconds: float) -> List[Clip]:
    if merged:
        last = merged[-1]
        if last.file_index == clip.file_index and clip.start - last.end < min_gap_seconds:
            merged[-1] = Clip(last.file_index, last.start, max(last.end, clip.end))
            return merged
    merged.append(clip)
    return merged


def merge_sorted_clips(
    clips: Sequence[Clip],
    min_gap_seconds: float = 1.0,
) -> List[Clip]:
    """
    Single-pass interval merge over clips sorted by (file_index, start).

    Keeps the last emitted clip and extends it whenever the next clip of the
    same file starts less than `min_gap_seconds` after its end.
    """
    return reduce(lambda merged, clip: _merge_step(merged, clip, min_gap_seconds), clips, [])


def dedupe_clips(
    clips: Sequence[Clip],
    min_gap_seconds: float = 1.0,
    durations: Optional[Sequence[float]] = None,
    config: PipelineConfig = DEFAULT_PIPELINE_CONFIG,
) -> List[Clip]:
    """
    Sort, merge and bound candidate clips.

    Args:
        clips: Candidate clips (not modified)
        min_gap_seconds: Clips closer than this in the same file are merged
        durations: Optional per-file durations used to clamp clip ends
        config: Pipeline configuration

    Returns:
        Ordered, merged clip list
    """
    min_length = config.min_clip_length

    def bound(clip: Clip) -> Clip:
        duration = durations[clip.file_index] if durations is not None else None
        return enforce_clip_bounds(clip, min_length, duration)

    # Bounds hold before merging too; merging only ever extends ends
    bounded = [bound(c) for c in clips]
    ordered = sorted(bounded, key=lambda c: (c.file_index, c.start))
    merged = merge_sorted_clips(ordered, min_gap_seconds)
    result = [bound(c) for c in merged]

    logger.info(f"Deduplication: {len(clips)} -> {len(result)} clips")
    return result
