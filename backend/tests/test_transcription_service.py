"""Tests for the faster-whisper transcription service."""
import sys
from types import SimpleNamespace

import numpy as np
import pytest

from autoreel.pipeline.captions import normalize_transcription
from autoreel.pipeline.errors import TranscriptionFailure
from autoreel.services.transcription_service import WhisperTranscriptionService


class _FakeModel:
    def __init__(self, segments=None, error=None):
        self.segments = segments or []
        self.error = error
        self.received = None

    def transcribe(self, audio, vad_filter=True):
        if self.error:
            raise self.error
        self.received = audio
        return iter(self.segments), SimpleNamespace(language="en")


@pytest.fixture
def service():
    return WhisperTranscriptionService(model_name="tiny.en", device="cpu", compute_type="int8")


def test_segments_returned_in_whisper_shape(service):
    service._model = _FakeModel([
        SimpleNamespace(start=0.0, end=1.2, text=" Nice shot "),
        SimpleNamespace(start=1.2, end=2.0, text="again"),
    ])
    result = service.transcribe(np.zeros(8000, dtype=np.float32), 8000)

    assert result["text"] == "Nice shot again"
    assert result["segments"][0] == {"start": 0.0, "end": 1.2, "text": "Nice shot"}
    assert len(service._model.received) == 16000
    assert [s.text for s in normalize_transcription(result)] == ["Nice shot", "again"]


def test_empty_audio(service):
    with pytest.raises(TranscriptionFailure):
        service.transcribe(np.zeros(0), 16000)


def test_model_error(service):
    service._model = _FakeModel(error=RuntimeError("cuda out of memory"))
    with pytest.raises(TranscriptionFailure):
        service.transcribe(np.zeros(16000), 16000)


def test_nothing_recognized(service):
    service._model = _FakeModel([])
    with pytest.raises(TranscriptionFailure):
        service.transcribe(np.zeros(16000), 16000)


def test_model_load_error(service, monkeypatch):
    def broken_model(*args, **kwargs):
        raise ValueError("Invalid model size 'tiny.en'")

    monkeypatch.setitem(
        sys.modules, "faster_whisper", SimpleNamespace(WhisperModel=broken_model)
    )
    with pytest.raises(TranscriptionFailure, match="Invalid model size"):
        service.transcribe(np.zeros(16000), 16000)
    assert service._model is None
