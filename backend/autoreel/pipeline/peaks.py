"""Peak-to-clip mapping.

Peaks in the global interest curve become highlight candidates. Each peak
gets a window centered on it, and the window is mapped back onto the source
file whose span contains the window start.
"""
import logging
import math
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np

from .config import PipelineConfig, DEFAULT_PIPELINE_CONFIG
from .errors import BoundaryClampFailure
from .interest import GlobalInterestCurve
from .scenes import FileTimeline

logger = logging.getLogger(__name__)


@dataclass
class Clip:
    """A contiguous range of one source file, in file-local seconds."""
    file_index: int
    start: float
    end: float

    @property
    def duration(self) -> float:
        return self.end - self.start

    def to_dict(self) -> dict:
        return {
            "file_index": self.file_index,
            "start": self.start,
            "end": self.end,
            "duration": self.duration,
        }

    def __repr__(self):
        return f"Clip(file={self.file_index}, {self.start:.2f}-{self.end:.2f}, dur={self.duration:.2f}s)"


def quantile_threshold(
    curve: Sequence[float],
    quantile: float = 0.8,
    floor: float = 0.01,
) -> float:
    """
    Quantile of the curve used as the peak threshold.

    Uses a sorted copy with index floor(quantile * len). An empty curve or a
    zero quantile value falls back to `floor` so the threshold is never zero.
    """
    values = np.sort(np.asarray(curve, dtype=np.float64))
    if len(values) == 0:
        return floor
    index = min(int(math.floor(quantile * len(values))), len(values) - 1)
    value = float(values[index])
    return value if value else floor


def detect_peaks(
    curve: Sequence[float],
    threshold: float,
    min_distance: int = 3,
) -> List[int]:
    """
    Find local maxima above a threshold.

    Index i qualifies when curve[i] > threshold, curve[i] > curve[i-1] and
    curve[i] >= curve[i+1]. A qualifying index closer than `min_distance` to
    the previously accepted peak is skipped.
    """
    arr = np.asarray(curve, dtype=np.float64)
    peaks = []
    last_index = None

    for i in range(1, len(arr) - 1):
        if arr[i] > threshold and arr[i] > arr[i - 1] and arr[i] >= arr[i + 1]:
            if last_index is None or i - last_index >= min_distance:
                peaks.append(i)
                last_index = i

    return peaks


def candidate_window(
    peak_time: float,
    min_len: float,
    max_len: float,
) -> Tuple[float, float]:
    """
    Window around a peak on the global timeline.

    The start sits min_len/2 before the peak and the window spans max_len.
    Only the lower bound is clamped (to zero).
    """
    start = max(0.0, peak_time - min_len / 2)
    end = max(0.0, start + max_len)
    return start, end


def map_window_to_file(
    start: float,
    end: float,
    timelines: Sequence[FileTimeline],
) -> Clip:
    """
    Map a global window onto the file containing its start.

    A window crossing into the next file is truncated at the file end, not
    split.

    Raises:
        BoundaryClampFailure: If no file contains the window start
    """
    for timeline in timelines:
        if timeline.contains(start):
            offset = timeline.global_offset_seconds
            return Clip(
                file_index=timeline.file_index,
                start=start - offset,
                end=min(end - offset, timeline.duration_seconds),
            )
    raise BoundaryClampFailure(start, end)


def select_candidates(
    curve: GlobalInterestCurve,
    timelines: Sequence[FileTimeline],
    min_len: float,
    max_len: float,
    max_clips: int,
    config: PipelineConfig = DEFAULT_PIPELINE_CONFIG,
) -> Tuple[List[Clip], List[int], float]:
    """
    Select candidate clips from interest peaks.

    Returns:
        (candidate clips, accepted peak indices, threshold)
    """
    threshold = quantile_threshold(
        curve.values, config.threshold_quantile, config.threshold_floor
    )
    peaks = detect_peaks(curve.values, threshold, config.peak_min_distance)
    logger.info(f"Found {len(peaks)} peaks above threshold {threshold:.4f}")

    candidates = []
    if max_clips <= 0:
        return candidates, peaks, threshold

    for peak_index in peaks:
        peak_time = curve.index_to_seconds(peak_index)
        start, end = candidate_window(peak_time, min_len, max_len)
        try:
            clip = map_window_to_file(start, end, timelines)
        except BoundaryClampFailure as e:
            logger.debug(f"Dropping peak {peak_index}: {e}")
            continue

        candidates.append(clip)
        if len(candidates) >= max_clips:
            break

    logger.info(f"Mapped {len(candidates)} candidate clips")
    return candidates, peaks, threshold
