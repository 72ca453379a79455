"""Speech recognition via faster-whisper."""
import logging
from typing import Optional

import numpy as np

from autoreel.config import settings
from autoreel.pipeline.config import ANALYSIS_RATE
from autoreel.pipeline.errors import TranscriptionFailure
from autoreel.pipeline.interest import resample_linear

logger = logging.getLogger(__name__)


class WhisperTranscriptionService:
    """Transcribes mono audio into timestamped segments."""

    def __init__(
        self,
        model_name: Optional[str] = None,
        device: Optional[str] = None,
        compute_type: Optional[str] = None,
    ):
        self.model_name = model_name or settings.whisper_model
        self.device = device or settings.whisper_device
        self.compute_type = compute_type or settings.whisper_compute_type
        self._model = None

    def _get_model(self):
        if self._model is None:
            try:
                from faster_whisper import WhisperModel
            except ImportError as exc:
                raise TranscriptionFailure("faster-whisper is not installed") from exc
            logger.info(f"Loading whisper model {self.model_name} on {self.device}")
            self._model = WhisperModel(
                self.model_name, device=self.device, compute_type=self.compute_type
            )
        return self._model

    def transcribe(self, samples: np.ndarray, sample_rate: int) -> dict:
        """
        Transcribe audio.

        Args:
            samples: Mono float samples
            sample_rate: Rate of `samples`

        Returns:
            {"text": ..., "segments": [{"start", "end", "text"}, ...]}

        Raises:
            TranscriptionFailure: If recognition fails or yields nothing
        """
        if samples is None or len(samples) == 0:
            raise TranscriptionFailure("No audio to transcribe")

        audio = resample_linear(samples, sample_rate, ANALYSIS_RATE).astype(np.float32)
        try:
            model = self._get_model()
            segments_iter, info = model.transcribe(audio, vad_filter=True)
            segments = [
                {"start": float(seg.start), "end": float(seg.end), "text": seg.text.strip()}
                for seg in segments_iter
            ]
        except TranscriptionFailure:
            raise
        except Exception as e:
            raise TranscriptionFailure(f"Transcription failed: {e}") from e

        text = " ".join(s["text"] for s in segments if s["text"])
        if not segments and not text:
            raise TranscriptionFailure("Transcription returned nothing")

        logger.info(
            f"Transcribed {len(audio) / ANALYSIS_RATE:.1f}s of audio into {len(segments)} segments "
            f"(language: {getattr(info, 'language', 'unknown')})"
        )
        return {"text": text, "segments": segments}
