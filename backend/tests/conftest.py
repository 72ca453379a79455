"""Shared fixtures."""
import numpy as np
import pytest

from autoreel.pipeline.errors import TranscriptionFailure

from fakes import FAKE_RATE, FakeEncoder, FakeMedia, FakeMediaBackend, FakeTranscriber, burst_audio


@pytest.fixture
def two_file_backend():
    """10s and 15s files with one loud burst each (global 4.0s and 18.0s)."""
    return FakeMediaBackend({
        "a.mp4": FakeMedia(duration=10.0, samples=burst_audio(10.0, [(4.0, 4.5)])),
        "b.mp4": FakeMedia(duration=15.0, samples=burst_audio(15.0, [(8.0, 8.5)])),
    })


@pytest.fixture
def speech_backend():
    """Two files with constant-level audio for export tests."""
    return FakeMediaBackend({
        "a.mp4": FakeMedia(duration=4.0, samples=np.full(4 * FAKE_RATE, 0.25, dtype=np.float32)),
        "b.mp4": FakeMedia(
            duration=3.0,
            samples=np.full(3 * FAKE_RATE, 0.25, dtype=np.float32),
            color=(20, 20, 220),
        ),
        "music.mp3": FakeMedia(duration=1.0, samples=np.full(FAKE_RATE, 0.5, dtype=np.float32)),
    })


@pytest.fixture
def fake_encoder():
    return FakeEncoder()


@pytest.fixture
def failing_transcriber():
    return FakeTranscriber(error=TranscriptionFailure("model unavailable"))
