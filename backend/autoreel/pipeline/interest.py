"""Interest curve builder.

Turns decoded audio into a low-rate (10 Hz) smoothed RMS energy curve:
- Linear resample to the fixed analysis rate (16 kHz)
- RMS over non-overlapping hop-sized windows (1600 samples = 0.1s)
- Trailing moving average (window 5) that does not attenuate the curve start

Per-file curves are concatenated in file order into one global curve.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Sequence

import numpy as np

from .config import ANALYSIS_RATE, HOP_SAMPLES, HOP_SECONDS, PipelineConfig, DEFAULT_PIPELINE_CONFIG

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AudioSamples:
    """Decoded mono audio."""
    samples: np.ndarray  # float32 in [-1, 1]
    sample_rate: int

    @property
    def duration(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return len(self.samples) / self.sample_rate


@dataclass
class GlobalInterestCurve:
    """Concatenation of per-file interest curves."""
    values: np.ndarray
    file_lengths: List[int] = field(default_factory=list)
    curve_offsets: List[int] = field(default_factory=list)  # Start index of each file's curve
    hop_seconds: float = HOP_SECONDS

    def __len__(self) -> int:
        return len(self.values)

    def index_to_seconds(self, index: int) -> float:
        return index * self.hop_seconds

    def file_curve(self, file_index: int) -> np.ndarray:
        """Slice of the global curve belonging to one file."""
        start = self.curve_offsets[file_index]
        return self.values[start:start + self.file_lengths[file_index]]

    def to_dict(self) -> dict:
        return {
            "values": self.values.tolist(),
            "file_lengths": list(self.file_lengths),
            "curve_offsets": list(self.curve_offsets),
            "hop_seconds": self.hop_seconds,
        }


def resample_linear(
    samples: np.ndarray,
    source_rate: int,
    target_rate: int = ANALYSIS_RATE,
) -> np.ndarray:
    """
    Resample mono audio with linear interpolation.

    Output length is floor(len / (source_rate / target_rate)). The sample past
    the end is taken to equal the last sample.
    """
    samples = np.asarray(samples, dtype=np.float32)
    if source_rate == target_rate or len(samples) == 0:
        return samples

    ratio = source_rate / target_rate
    length = int(np.floor(len(samples) / ratio))
    if length <= 0:
        return np.zeros(0, dtype=np.float32)

    positions = np.arange(length, dtype=np.float64) * ratio
    i0 = np.floor(positions).astype(np.int64)
    frac = (positions - i0).astype(np.float32)

    padded = np.append(samples, samples[-1])
    v0 = padded[i0]
    v1 = padded[i0 + 1]
    return v0 + (v1 - v0) * frac


def compute_rms(
    samples: np.ndarray,
    window: int = HOP_SAMPLES,
    hop: int = HOP_SAMPLES,
) -> np.ndarray:
    """RMS energy per window. A trailing partial window is discarded."""
    samples = np.asarray(samples, dtype=np.float64)
    if window <= 0 or hop <= 0:
        raise ValueError("window and hop must be positive")
    if len(samples) < window:
        return np.zeros(0)

    frames = np.lib.stride_tricks.sliding_window_view(samples, window)[::hop]
    return np.sqrt(np.mean(frames ** 2, axis=1))


def moving_average(values: Sequence[float], k: int = 5) -> np.ndarray:
    """
    Trailing moving average with window k.

    The divisor at index i is min(i + 1, k), so the first k - 1 outputs
    average over the samples seen so far instead of zero padding.
    """
    arr = np.asarray(values, dtype=np.float64)
    if len(arr) == 0:
        return arr
    if k <= 1:
        return arr.copy()

    cumsum = np.cumsum(arr)
    window_sums = cumsum.copy()
    window_sums[k:] = cumsum[k:] - cumsum[:-k]
    divisors = np.minimum(np.arange(1, len(arr) + 1), k)
    return window_sums / divisors


def build_interest_curve(
    audio: AudioSamples,
    config: PipelineConfig = DEFAULT_PIPELINE_CONFIG,
) -> np.ndarray:
    """Build the smoothed interest curve for one file."""
    mono = resample_linear(audio.samples, audio.sample_rate, config.analysis_rate)
    rms = compute_rms(mono, config.hop_samples, config.hop_samples)
    curve = moving_average(rms, config.smoothing_window)
    logger.debug(
        f"Interest curve: {len(audio.samples)} samples @ {audio.sample_rate}Hz "
        f"-> {len(curve)} points"
    )
    return curve


def concatenate_curves(
    curves: Sequence[np.ndarray],
    hop_seconds: float = HOP_SECONDS,
) -> GlobalInterestCurve:
    """Concatenate per-file curves in file order, recording each file's offset."""
    offsets = []
    lengths = []
    position = 0
    for curve in curves:
        offsets.append(position)
        lengths.append(len(curve))
        position += len(curve)

    values = np.concatenate([np.asarray(c, dtype=np.float64) for c in curves]) if curves else np.zeros(0)
    return GlobalInterestCurve(
        values=values,
        file_lengths=lengths,
        curve_offsets=offsets,
        hop_seconds=hop_seconds,
    )
