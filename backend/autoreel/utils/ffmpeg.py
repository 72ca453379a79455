"""FFmpeg and ffprobe utilities."""
import asyncio
import json
import shutil
import subprocess
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Tuple

import numpy as np

from autoreel.config import settings


@dataclass
class VideoInfo:
    """Video metadata container."""
    duration: float
    width: int
    height: int
    fps: float
    video_codec: str
    audio_codec: Optional[str]
    audio_sample_rate: Optional[int]
    format_name: str
    bit_rate: Optional[int]


class FFmpegError(Exception):
    """FFmpeg related error."""
    pass


def check_ffmpeg_available() -> bool:
    """Check if ffmpeg is available."""
    return shutil.which(settings.ffmpeg_path) is not None


def check_ffprobe_available() -> bool:
    """Check if ffprobe is available."""
    return shutil.which(settings.ffprobe_path) is not None


def _round_even(value: float) -> int:
    return max(2, int(round(value / 2)) * 2)


def _parse_fps(fps_str: str) -> float:
    if "/" in fps_str:
        num, den = fps_str.split("/")
        return float(num) / float(den) if float(den) > 0 else 30.0
    return float(fps_str)


async def get_video_info(video_path: str | Path) -> VideoInfo:
    """
    Get video metadata using ffprobe.

    Args:
        video_path: Path to video file

    Returns:
        VideoInfo with video metadata

    Raises:
        FFmpegError: If ffprobe fails
    """
    video_path = Path(video_path)
    if not video_path.exists():
        raise FFmpegError(f"Video file not found: {video_path}")

    cmd = [
        settings.ffprobe_path,
        "-v", "quiet",
        "-print_format", "json",
        "-show_format",
        "-show_streams",
        str(video_path)
    ]

    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE
        )
        stdout, stderr = await proc.communicate()

        if proc.returncode != 0:
            raise FFmpegError(f"ffprobe failed: {stderr.decode()}")

        data = json.loads(stdout.decode())

        # Find video stream
        video_stream = None
        audio_stream = None
        for stream in data.get("streams", []):
            if stream.get("codec_type") == "video" and video_stream is None:
                video_stream = stream
            elif stream.get("codec_type") == "audio" and audio_stream is None:
                audio_stream = stream

        if not video_stream:
            raise FFmpegError("No video stream found")

        fps = _parse_fps(video_stream.get("r_frame_rate", "30/1"))

        # Get duration
        duration = float(data.get("format", {}).get("duration", 0))
        if duration == 0:
            duration = float(video_stream.get("duration", 0))

        audio_rate = None
        if audio_stream and audio_stream.get("sample_rate"):
            audio_rate = int(audio_stream["sample_rate"])

        return VideoInfo(
            duration=duration,
            width=int(video_stream.get("width", 0)),
            height=int(video_stream.get("height", 0)),
            fps=fps,
            video_codec=video_stream.get("codec_name", "unknown"),
            audio_codec=audio_stream.get("codec_name") if audio_stream else None,
            audio_sample_rate=audio_rate,
            format_name=data.get("format", {}).get("format_name", "unknown"),
            bit_rate=int(data.get("format", {}).get("bit_rate", 0)) or None
        )
    except json.JSONDecodeError as e:
        raise FFmpegError(f"Failed to parse ffprobe output: {e}")
    except Exception as e:
        if isinstance(e, FFmpegError):
            raise
        raise FFmpegError(f"ffprobe error: {e}")


async def get_audio_sample_rate(media_path: str | Path) -> int:
    """Native sample rate of the first audio stream."""
    cmd = [
        settings.ffprobe_path,
        "-v", "quiet",
        "-print_format", "json",
        "-show_streams",
        "-select_streams", "a:0",
        str(media_path)
    ]
    proc = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE
    )
    stdout, stderr = await proc.communicate()

    if proc.returncode != 0:
        raise FFmpegError(f"ffprobe failed: {stderr.decode()}")

    try:
        streams = json.loads(stdout.decode()).get("streams", [])
    except json.JSONDecodeError as e:
        raise FFmpegError(f"Failed to parse ffprobe output: {e}")

    if not streams or not streams[0].get("sample_rate"):
        raise FFmpegError(f"No audio stream found in {media_path}")
    return int(streams[0]["sample_rate"])


def build_audio_decode_command(
    media_path: str | Path,
    sample_rate: int,
    start: Optional[float] = None,
    duration: Optional[float] = None,
) -> List[str]:
    """FFmpeg command decoding channel 0 of the first audio stream to raw f32le."""
    cmd = [settings.ffmpeg_path, "-v", "error"]
    if start is not None:
        cmd += ["-ss", f"{start:.3f}"]
    cmd += ["-i", str(media_path)]
    if duration is not None:
        cmd += ["-t", f"{duration:.3f}"]
    cmd += [
        "-vn",
        "-map", "0:a:0",
        "-af", "pan=mono|c0=c0",
        "-ar", str(sample_rate),
        "-f", "f32le",
        "-"
    ]
    return cmd


async def decode_audio(
    media_path: str | Path,
    sample_rate: Optional[int] = None,
    start: Optional[float] = None,
    end: Optional[float] = None,
) -> Tuple[np.ndarray, int]:
    """
    Decode mono audio (channel 0) to float32 samples.

    Args:
        media_path: Path to media file
        sample_rate: Output rate (native rate when None)
        start: Optional start time in seconds
        end: Optional end time in seconds

    Returns:
        (samples, sample_rate)

    Raises:
        FFmpegError: If decoding fails
    """
    media_path = Path(media_path)
    if not media_path.exists():
        raise FFmpegError(f"Media file not found: {media_path}")

    if sample_rate is None:
        sample_rate = await get_audio_sample_rate(media_path)

    duration = None
    if start is not None and end is not None:
        duration = max(0.0, end - start)

    cmd = build_audio_decode_command(media_path, sample_rate, start, duration)
    proc = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE
    )
    stdout, stderr = await proc.communicate()

    if proc.returncode != 0:
        raise FFmpegError(f"Audio decode failed: {stderr.decode()[:500]}")

    usable = len(stdout) - len(stdout) % 4
    samples = np.frombuffer(stdout[:usable], dtype="<f4").astype(np.float32)
    return samples, sample_rate


def build_frame_sample_command(
    video_path: str | Path,
    timestamp: float,
    width: int,
    height: int,
) -> List[str]:
    """FFmpeg command capturing one RGBA frame at a timestamp."""
    return [
        settings.ffmpeg_path,
        "-v", "error",
        "-ss", f"{timestamp:.3f}",
        "-i", str(video_path),
        "-frames:v", "1",
        "-vf", f"scale={width}:{height}",
        "-f", "rawvideo",
        "-pix_fmt", "rgba",
        "-"
    ]


def sample_frame(
    video_path: str | Path,
    timestamp: float,
    width: int,
    height: int,
    timeout: float = 30,
) -> np.ndarray:
    """
    Seek and capture a single frame as an RGBA array of shape (height, width, 4).

    Raises:
        FFmpegError: If no complete frame was produced
    """
    cmd = build_frame_sample_command(video_path, timestamp, width, height)

    try:
        result = subprocess.run(cmd, capture_output=True, timeout=timeout)
    except subprocess.TimeoutExpired as e:
        raise FFmpegError(f"Frame capture timed out at {timestamp:.2f}s: {e}")

    expected = width * height * 4
    if result.returncode != 0 or len(result.stdout) < expected:
        raise FFmpegError(
            f"Frame capture failed at {timestamp:.2f}s: {result.stderr.decode(errors='ignore')[:500]}"
        )

    return np.frombuffer(result.stdout[:expected], dtype=np.uint8).reshape(height, width, 4)


def build_clip_read_command(
    video_path: str | Path,
    start: float,
    end: float,
    fps: float,
) -> List[str]:
    """FFmpeg command streaming RGBA frames of [start, end) at a fixed rate."""
    return [
        settings.ffmpeg_path,
        "-v", "error",
        "-ss", f"{start:.3f}",
        "-i", str(video_path),
        "-t", f"{max(0.0, end - start):.3f}",
        "-an",
        "-vf", f"fps={fps}",
        "-f", "rawvideo",
        "-pix_fmt", "rgba",
        "-"
    ]


@contextmanager
def read_clip_frames(
    video_path: str | Path,
    start: float,
    end: float,
    width: int,
    height: int,
    fps: float,
) -> Iterator[Iterator[Tuple[float, np.ndarray]]]:
    """
    Stream (position, RGBA frame) pairs of a clip at a constant rate.

    Position is in source-file seconds. The ffmpeg process is terminated when
    the context exits, including on error.
    """
    cmd = build_clip_read_command(video_path, start, end, fps)
    proc = subprocess.Popen(cmd, stdout=subprocess.PIPE, stderr=subprocess.DEVNULL)
    frame_size = width * height * 4

    def frames():
        index = 0
        while True:
            data = proc.stdout.read(frame_size)
            if len(data) < frame_size:
                break
            pixels = np.frombuffer(data, dtype=np.uint8).reshape(height, width, 4)
            yield start + index / fps, pixels
            index += 1

    try:
        yield frames()
    finally:
        proc.stdout.close()
        if proc.poll() is None:
            proc.kill()
        proc.wait()


def build_encode_command(
    output_path: str | Path,
    width: int,
    height: int,
    fps: float,
    audio_path: str | Path,
    audio_rate: int,
    container: str = "mp4",
) -> List[str]:
    """FFmpeg command muxing raw RGB frames from stdin with a raw f32le audio file."""
    cmd = [
        settings.ffmpeg_path,
        "-y",
        "-v", "error",
        "-f", "rawvideo",
        "-pix_fmt", "rgb24",
        "-s", f"{width}x{height}",
        "-r", str(fps),
        "-i", "-",
        "-f", "f32le",
        "-ar", str(audio_rate),
        "-ac", "1",
        "-i", str(audio_path),
        "-map", "0:v:0",
        "-map", "1:a:0",
    ]
    if container == "webm":
        cmd += [
            "-c:v", "libvpx-vp9",
            "-b:v", "0",
            "-crf", str(settings.export_video_crf + 14),
            "-c:a", "libopus",
        ]
    else:
        cmd += [
            "-c:v", settings.export_video_codec,
            "-preset", settings.export_video_preset,
            "-crf", str(settings.export_video_crf),
            "-c:a", settings.export_audio_codec,
            "-b:a", settings.export_audio_bitrate,
            "-movflags", "+faststart",
        ]
    cmd += ["-pix_fmt", "yuv420p", str(output_path)]
    return cmd


def encode_frames(
    frames: Iterable[np.ndarray],
    width: int,
    height: int,
    fps: float,
    audio: np.ndarray,
    audio_rate: int,
    container: str = "mp4",
) -> bytes:
    """
    Encode RGB frames plus mono float audio into container bytes.

    Raises:
        FFmpegError: If ffmpeg fails
    """
    with tempfile.TemporaryDirectory(prefix="autoreel_encode_") as tmp:
        tmp_dir = Path(tmp)
        audio_path = tmp_dir / "mix.f32le"
        output_path = tmp_dir / f"output.{container}"
        log_path = tmp_dir / "ffmpeg.log"

        np.asarray(audio, dtype="<f4").tofile(audio_path)

        cmd = build_encode_command(
            output_path, width, height, fps, audio_path, audio_rate, container
        )

        with open(log_path, "wb") as log_file:
            proc = subprocess.Popen(cmd, stdin=subprocess.PIPE, stderr=log_file)
            try:
                for frame in frames:
                    proc.stdin.write(np.ascontiguousarray(frame, dtype=np.uint8).tobytes())
            except BrokenPipeError:
                # ffmpeg exited early; the return code and log below report it
                pass
            except BaseException:
                proc.kill()
                raise
            finally:
                try:
                    proc.stdin.close()
                except BrokenPipeError:
                    pass
                proc.wait()

        if proc.returncode != 0:
            raise FFmpegError(f"Encode failed: {log_path.read_text(errors='ignore')[:500]}")

        return output_path.read_bytes()
