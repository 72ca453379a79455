"""Audio mix graph for timeline export.

Two beds share the export clock:
- speech: the clip audio, concatenated in playback order, through a speech
  gain stage (unity gain until speech-aware ducking exists)
- music: an optional bed from time zero at a fixed gain

Both are fitted to the export duration and summed into one mono track.
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np

from .interest import AudioSamples, resample_linear

logger = logging.getLogger(__name__)

SPEECH_SOURCE = "speech"
MUSIC_SOURCE = "music"


@dataclass
class GainStage:
    """A named gain applied to one source."""
    name: str
    gain: float = 1.0

    def process(self, samples: np.ndarray) -> np.ndarray:
        if self.gain == 1.0:
            return samples
        return samples * np.float32(self.gain)


def fit_length(samples: np.ndarray, length: int) -> np.ndarray:
    """Truncate or zero-pad to exactly `length` samples."""
    samples = np.asarray(samples, dtype=np.float32)
    if len(samples) >= length:
        return samples[:length]
    return np.pad(samples, (0, length - len(samples)))


def build_clip_audio_bed(
    slices: Sequence[AudioSamples],
    durations: Sequence[float],
    sample_rate: int,
) -> AudioSamples:
    """
    Concatenate per-clip audio in playback order.

    Each slice is resampled to `sample_rate` and fitted to its clip's duration
    so the bed stays aligned with the visual timeline.
    """
    if len(slices) != len(durations):
        raise ValueError("slices and durations must have the same length")

    parts: List[np.ndarray] = []
    for audio, duration in zip(slices, durations):
        samples = resample_linear(audio.samples, audio.sample_rate, sample_rate)
        parts.append(fit_length(samples, int(round(duration * sample_rate))))

    bed = np.concatenate(parts) if parts else np.zeros(0, dtype=np.float32)
    return AudioSamples(samples=bed.astype(np.float32), sample_rate=sample_rate)


class AudioMixGraph:
    """Named gain-scaled sources mixed into one output."""

    def __init__(self, sample_rate: int, duration: float, speech_gain: float = 1.0):
        self.sample_rate = sample_rate
        self.duration = duration
        self.length = int(round(duration * sample_rate))
        self._sources: Dict[str, np.ndarray] = {}
        self._stages: Dict[str, GainStage] = {}
        self.speech_stage = GainStage(SPEECH_SOURCE, speech_gain)

    @property
    def source_names(self) -> List[str]:
        return list(self._sources)

    def gain(self, name: str) -> float:
        return self._stages[name].gain

    def set_gain(self, name: str, gain: float):
        self._stages[name].gain = gain

    def _add(self, name: str, audio: AudioSamples, stage: GainStage):
        samples = resample_linear(audio.samples, audio.sample_rate, self.sample_rate)
        self._sources[name] = fit_length(samples, self.length)
        self._stages[name] = stage

    def set_speech(self, audio: AudioSamples):
        """Connect the clip audio bed through the speech gain stage."""
        self._add(SPEECH_SOURCE, audio, self.speech_stage)

    def set_music(self, audio: AudioSamples, gain: float):
        """Connect the music bed, played from time zero for the whole export."""
        if MUSIC_SOURCE in self._sources:
            raise ValueError("A music source is already connected")
        self._add(MUSIC_SOURCE, audio, GainStage(MUSIC_SOURCE, gain))

    def mix(self) -> AudioSamples:
        """Sum all sources after their gain stages, clipped to [-1, 1]."""
        output = np.zeros(self.length, dtype=np.float32)
        for name, samples in self._sources.items():
            output += self._stages[name].process(samples)
        np.clip(output, -1.0, 1.0, out=output)
        logger.info(
            f"Mixed {len(self._sources)} audio sources "
            f"({', '.join(self._sources) or 'none'}) over {self.duration:.2f}s"
        )
        return AudioSamples(samples=output, sample_rate=self.sample_rate)


def build_mix(
    speech: Optional[AudioSamples],
    music: Optional[AudioSamples],
    music_gain: float,
    duration: float,
    sample_rate: int,
    speech_gain: float = 1.0,
) -> AudioSamples:
    """Build the export mix from the clip audio bed and an optional music bed."""
    graph = AudioMixGraph(sample_rate, duration, speech_gain)
    if speech is not None:
        graph.set_speech(speech)
    if music is not None:
        graph.set_music(music, music_gain)
    return graph.mix()
