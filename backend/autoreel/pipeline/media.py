"""Media collaborators.

The engine never touches codecs directly. It talks to a MediaBackend for
decoding and frame access, a CaptureEncoder for the final container, and a
Transcriber for speech recognition. The FFmpeg implementations live here;
tests inject in-memory fakes.
"""
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, ContextManager, Iterable, Iterator, Protocol

import numpy as np

from autoreel.utils.ffmpeg import (
    FFmpegError,
    VideoInfo,
    decode_audio,
    encode_frames,
    get_video_info,
    read_clip_frames,
    sample_frame,
)
from .errors import DecodeFailure, RenderFailure
from .interest import AudioSamples

logger = logging.getLogger(__name__)


@dataclass
class VideoFrame:
    """One decoded frame with its source-file position in seconds."""
    position: float
    pixels: np.ndarray  # (height, width, 4) RGBA uint8


class MediaBackend(Protocol):
    async def probe(self, path: Path) -> VideoInfo: ...

    async def decode_audio(self, path: Path) -> AudioSamples: ...

    async def decode_audio_range(
        self, path: Path, start: float, end: float, sample_rate: int
    ) -> AudioSamples: ...

    def sample_frame(self, path: Path, timestamp: float, width: int, height: int) -> np.ndarray: ...

    def open_clip(
        self, path: Path, start: float, end: float, fps: float
    ) -> ContextManager[Iterable[VideoFrame]]: ...


class CaptureEncoder(Protocol):
    def encode(
        self,
        frames: Iterable[np.ndarray],
        width: int,
        height: int,
        fps: float,
        audio: AudioSamples,
    ) -> bytes: ...


class Transcriber(Protocol):
    def transcribe(self, samples: np.ndarray, sample_rate: int) -> Any: ...


class FFmpegMediaBackend:
    """MediaBackend backed by ffmpeg/ffprobe subprocesses."""

    def __init__(self):
        self._info_cache = {}

    async def probe(self, path: Path) -> VideoInfo:
        key = str(path)
        if key not in self._info_cache:
            try:
                self._info_cache[key] = await get_video_info(path)
            except FFmpegError as e:
                raise DecodeFailure(path, str(e)) from e
        return self._info_cache[key]

    async def decode_audio(self, path: Path) -> AudioSamples:
        try:
            samples, rate = await decode_audio(path)
        except FFmpegError as e:
            raise DecodeFailure(path, str(e)) from e
        return AudioSamples(samples=samples, sample_rate=rate)

    async def decode_audio_range(
        self, path: Path, start: float, end: float, sample_rate: int
    ) -> AudioSamples:
        try:
            samples, rate = await decode_audio(path, sample_rate, start, end)
        except FFmpegError as e:
            raise DecodeFailure(path, str(e)) from e
        return AudioSamples(samples=samples, sample_rate=rate)

    def sample_frame(self, path: Path, timestamp: float, width: int, height: int) -> np.ndarray:
        try:
            return sample_frame(path, timestamp, width, height)
        except FFmpegError as e:
            raise DecodeFailure(path, str(e)) from e

    @contextmanager
    def open_clip(self, path: Path, start: float, end: float, fps: float) -> Iterator[Iterable[VideoFrame]]:
        info = self._info_cache.get(str(path))
        if info is None:
            raise RenderFailure(f"{path} was not probed before rendering")

        with read_clip_frames(path, start, end, info.width, info.height, fps) as frames:
            yield (VideoFrame(position, pixels) for position, pixels in frames)


class FFmpegCaptureEncoder:
    """CaptureEncoder writing an mp4/webm container through ffmpeg."""

    def __init__(self, container: str = "mp4"):
        self.container = container

    def encode(
        self,
        frames: Iterable[np.ndarray],
        width: int,
        height: int,
        fps: float,
        audio: AudioSamples,
    ) -> bytes:
        try:
            return encode_frames(
                frames, width, height, fps,
                audio.samples, audio.sample_rate, self.container,
            )
        except FFmpegError as e:
            raise RenderFailure(str(e)) from e
