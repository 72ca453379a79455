"""API routes."""
import logging
import shutil
from pathlib import Path
from typing import Iterable, List

from fastapi import APIRouter, HTTPException
from fastapi.responses import FileResponse

from autoreel.config import settings
from autoreel.models.job import Job, JobType
from autoreel.utils.ffmpeg import check_ffmpeg_available, check_ffprobe_available
from autoreel.workers.job_runner import job_runner
from autoreel.api.schemas import (
    AnalyzeRequest,
    ExportRequest,
    PreviewRequest,
    JobResponse,
    HealthResponse,
    DependencyCheckResponse,
)

router = APIRouter()
logger = logging.getLogger(__name__)


def _job_response(job: Job) -> JobResponse:
    return JobResponse(**job.to_dict())


def _require_files(paths: Iterable[str]):
    """Raise 404 for the first path that does not exist."""
    for path in paths:
        if not Path(path).is_file():
            raise HTTPException(status_code=404, detail=f"File not found: {path}")


async def _start(job_type: JobType, **kwargs) -> JobResponse:
    job = job_runner.create_job(job_type)
    started = await job_runner.start_job(job.id, **kwargs)
    if not started:
        raise HTTPException(status_code=500, detail=f"Could not start {job_type.value} job")
    return _job_response(job)


# =============================================================================
# Health & System
# =============================================================================

@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Check API health and dependencies."""
    ffmpeg_ok = check_ffmpeg_available()
    ffprobe_ok = check_ffprobe_available()

    all_ok = ffmpeg_ok and ffprobe_ok

    message = None
    if not all_ok:
        missing = []
        if not ffmpeg_ok:
            missing.append("ffmpeg")
        if not ffprobe_ok:
            missing.append("ffprobe")
        message = f"Missing dependencies: {', '.join(missing)}. Install with: brew install ffmpeg"

    return HealthResponse(
        status="healthy" if all_ok else "degraded",
        ffmpeg_available=ffmpeg_ok,
        ffprobe_available=ffprobe_ok,
        message=message
    )


@router.get("/dependencies", response_model=List[DependencyCheckResponse])
async def check_dependencies():
    """Check status of all dependencies."""
    deps = []

    for name, configured in (("ffmpeg", settings.ffmpeg_path), ("ffprobe", settings.ffprobe_path)):
        path = shutil.which(configured)
        deps.append(DependencyCheckResponse(
            name=name,
            available=path is not None,
            path=path,
            install_command="brew install ffmpeg"
        ))

    try:
        import faster_whisper  # noqa: F401
        whisper_ok = True
    except ImportError:
        whisper_ok = False
    deps.append(DependencyCheckResponse(
        name="faster-whisper",
        available=whisper_ok,
        install_command="pip install 'autoreel[asr]'"
    ))

    return deps


# =============================================================================
# Analysis & Export
# =============================================================================

@router.post("/analyze", response_model=JobResponse)
async def start_analysis(request: AnalyzeRequest):
    """Start a highlight analysis job over local video files."""
    _require_files(request.files)
    if request.min_len and request.max_len and request.min_len > request.max_len:
        raise HTTPException(status_code=400, detail="min_len must not exceed max_len")

    return await _start(
        JobType.ANALYZE,
        files=request.files,
        min_len=request.min_len,
        max_len=request.max_len,
        max_clips=request.max_clips,
    )


@router.post("/exports", response_model=JobResponse)
async def start_export(request: ExportRequest):
    """Start a timeline export job."""
    for clip in request.clips:
        if clip.file_index >= len(request.files):
            raise HTTPException(
                status_code=400,
                detail=f"Clip references unknown file index {clip.file_index}"
            )
    _require_files(request.files)
    if request.music_file:
        _require_files([request.music_file])

    return await _start(
        JobType.EXPORT,
        files=request.files,
        clips=[c.model_dump() for c in request.clips],
        aspect=request.aspect,
        caption_style=request.caption_style.model_dump(exclude_none=True) if request.caption_style else None,
        caption_segments=(
            [s.model_dump() for s in request.caption_segments]
            if request.caption_segments is not None else None
        ),
        transcription=request.transcription,
        use_asr=request.use_asr,
        music_file=request.music_file,
        music_gain=request.music_gain,
        width=request.width,
    )


@router.post("/previews", response_model=JobResponse)
async def start_preview(request: PreviewRequest):
    """Start a single clip preview job."""
    _require_files([request.file])

    return await _start(
        JobType.PREVIEW,
        file=request.file,
        clip={**request.clip.model_dump(), "file_index": 0},
        aspect=request.aspect,
    )


# =============================================================================
# Jobs
# =============================================================================

@router.get("/jobs/{job_id}", response_model=JobResponse)
async def get_job(job_id: str):
    """Get job status."""
    job = job_runner.get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return _job_response(job)


@router.get("/jobs/{job_id}/output")
async def get_job_output(job_id: str):
    """Download the file rendered by an export or preview job."""
    job = job_runner.get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    if not job.has_output:
        raise HTTPException(status_code=404, detail="Job has no output")

    media_type = "video/webm" if job.output_path.suffix == ".webm" else "video/mp4"
    return FileResponse(job.output_path, media_type=media_type, filename=job.output_path.name)
