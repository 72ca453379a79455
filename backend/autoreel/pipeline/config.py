"""Pipeline configuration."""
from dataclasses import dataclass, field
from typing import Dict


# Analysis clock shared by every stage so that curve index <-> seconds is exact
ANALYSIS_RATE = 16000
HOP_SAMPLES = 1600
HOP_SECONDS = HOP_SAMPLES / ANALYSIS_RATE  # 0.1s

# Fallback caption end when only a full transcript is available
CAPTION_FALLBACK_END = (2 ** 53 - 1) / 1000

ASPECT_PRESETS: Dict[str, float] = {
    "16:9": 16 / 9,
    "9:16": 9 / 16,
    "1:1": 1.0,
}


@dataclass
class PipelineConfig:
    """Configuration for highlight analysis and timeline export."""

    # Interest curve
    analysis_rate: int = ANALYSIS_RATE
    hop_samples: int = HOP_SAMPLES
    smoothing_window: int = 5

    # Peak detection
    threshold_quantile: float = 0.8
    threshold_floor: float = 0.01  # Used when the quantile is empty or zero
    peak_min_distance: int = 3  # In curve samples (0.3s)

    # Scene segmentation
    scene_surface_width: int = 320
    scene_surface_min_height: int = 180
    scene_max_samples: int = 120
    scene_threshold: float = 0.12

    # Deduplication
    dedupe_min_gap_seconds: float = 1.0
    min_clip_length: float = 0.5

    # Output
    export_width: int = 1280
    preview_width: int = 960
    aspect_presets: Dict[str, float] = field(default_factory=lambda: dict(ASPECT_PRESETS))
    default_aspect: str = "16:9"

    # Captions
    caption_width_ratio: float = 0.8
    caption_padding_ratio: float = 0.4
    caption_line_height_ratio: float = 1.2

    # Audio mix
    speech_gain: float = 1.0  # Placeholder for speech-aware ducking
    asr_sample_rate: int = ANALYSIS_RATE

    @property
    def hop_seconds(self) -> float:
        return self.hop_samples / self.analysis_rate

    def to_dict(self) -> dict:
        """Convert config to dictionary for serialization."""
        return {
            "analysis_rate": self.analysis_rate,
            "hop_samples": self.hop_samples,
            "hop_seconds": self.hop_seconds,
            "smoothing_window": self.smoothing_window,
            "threshold_quantile": self.threshold_quantile,
            "threshold_floor": self.threshold_floor,
            "peak_min_distance": self.peak_min_distance,
            "scene_surface_width": self.scene_surface_width,
            "scene_surface_min_height": self.scene_surface_min_height,
            "scene_max_samples": self.scene_max_samples,
            "scene_threshold": self.scene_threshold,
            "dedupe_min_gap_seconds": self.dedupe_min_gap_seconds,
            "min_clip_length": self.min_clip_length,
            "export_width": self.export_width,
            "preview_width": self.preview_width,
            "aspect_presets": dict(self.aspect_presets),
            "speech_gain": self.speech_gain,
        }


# Default configuration instance
DEFAULT_PIPELINE_CONFIG = PipelineConfig()
