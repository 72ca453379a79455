"""Scene segmentation.

Coarse scene cut detection from sampled frames: at most ~120 evenly spaced
frames are rendered into a small working surface and compared with the
previous sample. Cuts are advisory and are carried on each FileTimeline.
"""
import logging
import math
from dataclasses import dataclass, field
from typing import Callable, List, Sequence, Tuple

import numpy as np

from .config import PipelineConfig, DEFAULT_PIPELINE_CONFIG

logger = logging.getLogger(__name__)

# sample_frame(timestamp) -> RGBA pixels shaped (height, width, 4)
FrameSampler = Callable[[float], np.ndarray]


@dataclass
class FileTimeline:
    """Per-file placement on the concatenated analysis timeline."""
    file_index: int
    duration_seconds: float
    scene_cuts: List[float] = field(default_factory=list)
    global_offset_seconds: float = 0.0

    @property
    def global_end_seconds(self) -> float:
        return self.global_offset_seconds + self.duration_seconds

    def contains(self, global_time: float) -> bool:
        return self.global_offset_seconds <= global_time < self.global_end_seconds

    def to_dict(self) -> dict:
        return {
            "file_index": self.file_index,
            "duration_seconds": self.duration_seconds,
            "scene_cuts": list(self.scene_cuts),
            "global_offset_seconds": self.global_offset_seconds,
        }


def working_surface_size(
    source_width: int,
    source_height: int,
    config: PipelineConfig = DEFAULT_PIPELINE_CONFIG,
) -> Tuple[int, int]:
    """Fixed-width working surface preserving the source aspect ratio."""
    width = config.scene_surface_width
    if source_width <= 0 or source_height <= 0:
        return width, config.scene_surface_min_height
    height = max(config.scene_surface_min_height, round(source_height / source_width * width))
    return width, height


def sample_timestamps(duration: float, max_samples: int = 120) -> List[float]:
    """Evenly spaced timestamps with a whole-second step of at least 1s."""
    if duration <= 0:
        return []
    step = max(1, math.floor(duration / max_samples))
    return [float(t) for t in np.arange(0, duration, step)]


def frame_difference(current: np.ndarray, previous: np.ndarray) -> float:
    """
    Mean absolute RGB difference normalized to [0, 1].

    Alpha is ignored. Both frames must share the same shape.
    """
    if current.shape != previous.shape:
        raise ValueError(f"Frame shape mismatch: {current.shape} vs {previous.shape}")

    height, width = current.shape[:2]
    rgb_current = current[..., :3].astype(np.int32)
    rgb_previous = previous[..., :3].astype(np.int32)
    diff = np.abs(rgb_current - rgb_previous).sum()
    return float(diff) / (width * height * 3 * 255)


def detect_scene_cuts(
    sample_frame: FrameSampler,
    duration: float,
    config: PipelineConfig = DEFAULT_PIPELINE_CONFIG,
) -> List[float]:
    """
    Detect scene cuts by frame differencing.

    Args:
        sample_frame: Returns the RGBA frame at a timestamp
        duration: File duration in seconds
        config: Pipeline configuration

    Returns:
        Ascending timestamps, always starting with 0 and ending with duration
    """
    cuts = [0.0]
    previous = None

    for timestamp in sample_timestamps(duration, config.scene_max_samples):
        frame = sample_frame(timestamp)
        if previous is not None:
            diff = frame_difference(frame, previous)
            if diff > config.scene_threshold:
                cuts.append(timestamp)
        previous = frame

    cuts.append(float(duration))
    logger.debug(f"Detected {len(cuts) - 2} scene cuts over {duration:.1f}s")
    return cuts


def build_file_timelines(
    durations: Sequence[float],
    scene_cuts: Sequence[List[float]],
) -> List[FileTimeline]:
    """Assign cumulative global offsets to each file in order."""
    if len(durations) != len(scene_cuts):
        raise ValueError("durations and scene_cuts must have the same length")

    timelines = []
    offset = 0.0
    for index, (duration, cuts) in enumerate(zip(durations, scene_cuts)):
        timelines.append(FileTimeline(
            file_index=index,
            duration_seconds=float(duration),
            scene_cuts=list(cuts),
            global_offset_seconds=offset,
        ))
        offset += float(duration)
    return timelines
