"""Pydantic schemas for API requests and responses."""
from datetime import datetime
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

AspectPreset = Literal["16:9", "9:16", "1:1"]


# =============================================================================
# Analysis Schemas
# =============================================================================

class AnalyzeRequest(BaseModel):
    """Request to analyze source videos for highlights."""
    files: List[str] = Field(..., description="Local video paths, in timeline order")
    min_len: Optional[float] = Field(None, gt=0, description="Clip length used to center windows (seconds)")
    max_len: Optional[float] = Field(None, gt=0, description="Candidate window length (seconds)")
    max_clips: Optional[int] = Field(None, ge=1, description="Maximum number of candidate clips")


class ClipModel(BaseModel):
    """A clip in file-local seconds."""
    file_index: int = Field(..., ge=0)
    start: float = Field(..., ge=0)
    end: float = Field(..., gt=0)

    @model_validator(mode="after")
    def check_order(self):
        if self.end <= self.start:
            raise ValueError("end must be greater than start")
        return self


# =============================================================================
# Export Schemas
# =============================================================================

class CaptionStyleModel(BaseModel):
    """Caption appearance overrides."""
    font_size: Optional[int] = Field(None, ge=6, le=200)
    bg_opacity: Optional[float] = Field(None, ge=0, le=1)
    font_path: Optional[str] = None


class CaptionSegmentModel(BaseModel):
    """A caption on the export clock."""
    start: float = Field(..., ge=0)
    end: float = Field(..., ge=0)
    text: str


class ExportRequest(BaseModel):
    """Request to render clips into one output."""
    files: List[str] = Field(..., min_length=1)
    clips: List[ClipModel] = Field(..., min_length=1)
    aspect: AspectPreset = "16:9"
    caption_style: Optional[CaptionStyleModel] = None
    caption_segments: Optional[List[CaptionSegmentModel]] = None
    transcription: Optional[Any] = Field(None, description="Raw recognizer output to caption from")
    use_asr: Optional[bool] = Field(None, description="Transcribe clip audio when no captions are given")
    music_file: Optional[str] = None
    music_gain: Optional[float] = Field(None, ge=0, le=2)
    width: Optional[int] = Field(None, ge=16, le=3840)


class PreviewRequest(BaseModel):
    """Request to render one clip at preview width."""
    file: str
    clip: ClipModel
    aspect: AspectPreset = "16:9"


# =============================================================================
# Job Schemas
# =============================================================================

class JobResponse(BaseModel):
    """Job response."""
    id: str
    job_type: str
    status: str
    progress: float
    message: Optional[str]
    result: Optional[Any]
    error: Optional[str]
    has_output: bool = False
    created_at: datetime
    started_at: Optional[datetime]
    completed_at: Optional[datetime]


# =============================================================================
# Health Check
# =============================================================================

class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    ffmpeg_available: bool
    ffprobe_available: bool
    message: Optional[str] = None


class DependencyCheckResponse(BaseModel):
    """Dependency check response."""
    name: str
    available: bool
    path: Optional[str] = None
    install_command: Optional[str] = None
