"""Tests for ffmpeg command builders and helpers."""
import pytest

from autoreel.config import settings
from autoreel.utils.ffmpeg import (
    FFmpegError,
    _parse_fps,
    _round_even,
    build_audio_decode_command,
    build_clip_read_command,
    build_encode_command,
    build_frame_sample_command,
    decode_audio,
)
from autoreel.utils.timefmt import format_seconds


def test_round_even():
    assert _round_even(719) == 720
    assert _round_even(1) == 2


def test_parse_fps_fraction():
    assert _parse_fps("30000/1001") == pytest.approx(29.97, rel=1e-3)
    assert _parse_fps("25") == 25.0
    assert _parse_fps("0/0") == 30.0


def test_audio_decode_command_full_file():
    cmd = build_audio_decode_command("in.mp4", 16000)
    assert cmd[0] == settings.ffmpeg_path
    assert "-ss" not in cmd and "-t" not in cmd
    assert cmd[cmd.index("-af") + 1] == "pan=mono|c0=c0"
    assert cmd[cmd.index("-ar") + 1] == "16000"
    assert cmd[-3:] == ["-f", "f32le", "-"]


def test_audio_decode_command_range():
    cmd = build_audio_decode_command("in.mp4", 48000, start=1.5, duration=2.25)
    assert cmd[cmd.index("-ss") + 1] == "1.500"
    assert cmd[cmd.index("-t") + 1] == "2.250"
    assert cmd.index("-ss") < cmd.index("-i")


def test_frame_sample_command():
    cmd = build_frame_sample_command("in.mp4", 12.0, 320, 180)
    assert cmd[cmd.index("-vf") + 1] == "scale=320:180"
    assert cmd[cmd.index("-pix_fmt") + 1] == "rgba"
    assert cmd[cmd.index("-frames:v") + 1] == "1"


def test_clip_read_command():
    cmd = build_clip_read_command("in.mp4", 4.0, 9.5, 30)
    assert cmd[cmd.index("-ss") + 1] == "4.000"
    assert cmd[cmd.index("-t") + 1] == "5.500"
    assert cmd[cmd.index("-vf") + 1] == "fps=30"
    assert "-an" in cmd


def test_encode_command_mp4():
    cmd = build_encode_command("out.mp4", 1280, 720, 30, "mix.f32le", 48000)
    assert cmd[cmd.index("-s") + 1] == "1280x720"
    assert cmd[cmd.index("-c:v") + 1] == settings.export_video_codec
    assert "+faststart" in cmd
    assert cmd[-3:] == ["-pix_fmt", "yuv420p", "out.mp4"]


def test_encode_command_webm():
    cmd = build_encode_command("out.webm", 640, 360, 30, "mix.f32le", 48000, container="webm")
    assert cmd[cmd.index("-c:v") + 1] == "libvpx-vp9"
    assert cmd[cmd.index("-c:a") + 1] == "libopus"
    assert "+faststart" not in cmd


@pytest.mark.asyncio
async def test_decode_audio_missing_file(tmp_path):
    with pytest.raises(FFmpegError):
        await decode_audio(tmp_path / "nope.mp4", 16000)


@pytest.mark.parametrize("seconds,expected", [
    (0, "0:00"),
    (9.4, "0:09"),
    (59.5, "1:00"),
    (83.4, "1:23"),
    (600, "10:00"),
    (-3, "0:00"),
])
def test_format_seconds(seconds, expected):
    assert format_seconds(seconds) == expected
