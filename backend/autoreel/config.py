"""Application configuration."""
from pathlib import Path
from typing import Literal
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="AUTOREEL_",
    )
    
    # App settings
    app_name: str = "AutoReel"
    debug: bool = False
    
    # Server settings
    host: str = "0.0.0.0"
    port: int = 8000
    
    # Data directories
    data_dir: Path = Path("./data")
    exports_dir: Path = Path("./data/exports")
    
    # FFmpeg settings
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"
    
    # Analysis defaults
    min_clip_seconds: float = 6.0
    max_clip_seconds: float = 20.0
    max_clips: int = 8
    parallel_decode: bool = True  # Decode files concurrently (order is preserved)
    write_debug_json: bool = False
    write_debug_plot: bool = False  # Timeline plot next to the debug JSON
    
    # Export settings
    export_width: int = 1280
    preview_width: int = 960
    export_fps: int = 30
    export_audio_rate: int = 48000
    export_container: Literal["mp4", "webm"] = "mp4"
    export_video_codec: str = "libx264"
    export_video_preset: str = "veryfast"
    export_video_crf: int = 18
    export_audio_codec: str = "aac"
    export_audio_bitrate: str = "192k"
    
    # Captions
    caption_font_size: int = 28
    caption_bg_opacity: float = 0.4
    caption_font_path: str = "DejaVuSans-Bold.ttf"
    
    # Music bed
    music_gain: float = 0.3
    
    # Speech recognition
    asr_enabled: bool = False
    whisper_model: str = "tiny.en"
    whisper_device: str = "cpu"
    whisper_compute_type: str = "int8"


settings = Settings()

# Ensure directories exist
settings.data_dir.mkdir(parents=True, exist_ok=True)
settings.exports_dir.mkdir(parents=True, exist_ok=True)
