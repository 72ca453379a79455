"""In-memory media, encoder and transcriber fakes for driving the pipeline without ffmpeg."""
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np

from autoreel.pipeline.errors import DecodeFailure
from autoreel.pipeline.interest import AudioSamples, resample_linear
from autoreel.pipeline.media import VideoFrame
from autoreel.utils.ffmpeg import VideoInfo

FAKE_RATE = 16000


def burst_audio(
    duration: float,
    bursts: List[Tuple[float, float]],
    level: float = 0.8,
    sample_rate: int = FAKE_RATE,
) -> np.ndarray:
    """Silence with constant-level bursts at (start, end) seconds."""
    samples = np.zeros(int(duration * sample_rate), dtype=np.float32)
    for start, end in bursts:
        samples[int(start * sample_rate):int(end * sample_rate)] = level
    return samples


@dataclass
class FakeMedia:
    """One in-memory source file."""
    duration: float
    samples: np.ndarray
    sample_rate: int = FAKE_RATE
    width: int = 160
    height: int = 90
    color: Tuple[int, int, int] = (200, 30, 30)


class FakeMediaBackend:
    """MediaBackend over FakeMedia entries keyed by path."""

    def __init__(self, media: Dict[str, FakeMedia]):
        self.media = {str(k): v for k, v in media.items()}
        self.decoded: List[str] = []

    def _get(self, path) -> FakeMedia:
        item = self.media.get(str(path))
        if item is None:
            raise DecodeFailure(path, "unknown file")
        return item

    async def probe(self, path) -> VideoInfo:
        item = self._get(path)
        return VideoInfo(
            duration=item.duration,
            width=item.width,
            height=item.height,
            fps=30.0,
            video_codec="rawvideo",
            audio_codec="pcm_f32le",
            audio_sample_rate=item.sample_rate,
            format_name="fake",
            bit_rate=None,
        )

    async def decode_audio(self, path) -> AudioSamples:
        item = self._get(path)
        self.decoded.append(str(path))
        return AudioSamples(samples=item.samples, sample_rate=item.sample_rate)

    async def decode_audio_range(self, path, start, end, sample_rate) -> AudioSamples:
        item = self._get(path)
        piece = item.samples[int(start * item.sample_rate):int(end * item.sample_rate)]
        return AudioSamples(
            samples=resample_linear(piece, item.sample_rate, sample_rate),
            sample_rate=sample_rate,
        )

    def sample_frame(self, path, timestamp, width, height) -> np.ndarray:
        item = self._get(path)
        frame = np.zeros((height, width, 4), dtype=np.uint8)
        frame[..., :3] = item.color
        frame[..., 3] = 255
        return frame

    @contextmanager
    def open_clip(self, path, start, end, fps):
        item = self._get(path)
        pixels = self.sample_frame(path, start, item.width, item.height)
        count = int(round((end - start) * fps)) + 2
        yield (VideoFrame(start + i / fps, pixels) for i in range(count))


class FakeEncoder:
    """CaptureEncoder that records what it was given."""

    def __init__(self):
        self.frames: List[np.ndarray] = []
        self.audio: Optional[AudioSamples] = None
        self.size = None

    def encode(self, frames, width, height, fps, audio) -> bytes:
        self.frames = list(frames)
        self.audio = audio
        self.size = (width, height, fps)
        return b"FAKE" + len(self.frames).to_bytes(4, "big")


@dataclass
class FakeTranscriber:
    result: object = None
    error: Optional[Exception] = None
    calls: List[Tuple[int, int]] = field(default_factory=list)

    def transcribe(self, samples, sample_rate):
        self.calls.append((len(samples), sample_rate))
        if self.error:
            raise self.error
        return self.result
