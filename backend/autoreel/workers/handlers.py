"""Job handlers for different task types."""
import logging
from pathlib import Path
from typing import Any, Callable, List, Optional

from autoreel.config import settings
from autoreel.models.job import Job
from autoreel.pipeline import analyze, export_timeline, preview_clip
from autoreel.pipeline.captions import CaptionSegment
from autoreel.pipeline.compositor import CaptionStyle
from autoreel.pipeline.media import FFmpegCaptureEncoder, FFmpegMediaBackend
from autoreel.pipeline.peaks import Clip
from autoreel.services.transcription_service import WhisperTranscriptionService
from autoreel.utils.timefmt import format_seconds

logger = logging.getLogger(__name__)


def _clip_listing(clips: List[Clip]) -> List[dict]:
    return [
        {**clip.to_dict(), "label": f"{format_seconds(clip.start)} - {format_seconds(clip.end)}"}
        for clip in clips
    ]


def _write_output(job: Job, data: bytes) -> Path:
    output_path = settings.exports_dir / f"{job.id}.{settings.export_container}"
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(data)
    job.output_path = output_path
    logger.info(f"Job {job.id} wrote {len(data)} bytes to {output_path}")
    return output_path


async def handle_analyze(
    job: Job,
    progress_callback: Callable,
    files: List[str],
    min_len: Optional[float] = None,
    max_len: Optional[float] = None,
    max_clips: Optional[int] = None,
    **kwargs
) -> dict:
    """
    Handle highlight analysis job.

    Args:
        job: Job record
        progress_callback: Async callback for progress updates
        files: Source video paths, in timeline order
        min_len / max_len / max_clips: Overrides for the settings defaults

    Returns:
        Analysis result dictionary
    """
    debug_dir = None
    if settings.write_debug_json or settings.write_debug_plot:
        debug_dir = settings.data_dir / "debug" / job.id

    result = await analyze(
        files,
        min_len=min_len if min_len is not None else settings.min_clip_seconds,
        max_len=max_len if max_len is not None else settings.max_clip_seconds,
        max_clips=max_clips if max_clips is not None else settings.max_clips,
        backend=FFmpegMediaBackend(),
        progress_callback=progress_callback,
        parallel=settings.parallel_decode,
        debug_dir=debug_dir,
        debug_plot=settings.write_debug_plot,
    )

    data = result.to_dict()
    data["clips"] = _clip_listing(result.clips)
    return data


async def handle_export(
    job: Job,
    progress_callback: Callable,
    files: List[str],
    clips: List[dict],
    aspect: str = "16:9",
    caption_style: Optional[dict] = None,
    caption_segments: Optional[List[dict]] = None,
    transcription: Any = None,
    use_asr: Optional[bool] = None,
    music_file: Optional[str] = None,
    music_gain: Optional[float] = None,
    width: Optional[int] = None,
    **kwargs
) -> dict:
    """
    Handle timeline export job.

    Returns:
        Export summary dictionary; the rendered file is attached to the job
    """
    want_asr = settings.asr_enabled if use_asr is None else use_asr
    style = CaptionStyle(
        font_size=settings.caption_font_size,
        bg_opacity=settings.caption_bg_opacity,
        font_path=settings.caption_font_path,
    )
    if caption_style:
        style = CaptionStyle(**{**style.to_dict(), **caption_style})

    segments = None
    if caption_segments is not None:
        segments = [CaptionSegment(**s) for s in caption_segments]

    result = await export_timeline(
        files,
        [Clip(**c) for c in clips],
        aspect=aspect,
        caption_style=style,
        caption_segments=segments,
        music_file=music_file,
        music_gain=music_gain if music_gain is not None else settings.music_gain,
        transcription=transcription,
        want_asr=want_asr,
        backend=FFmpegMediaBackend(),
        encoder=FFmpegCaptureEncoder(settings.export_container),
        transcriber=WhisperTranscriptionService() if want_asr else None,
        width=width or settings.export_width,
        fps=settings.export_fps,
        audio_rate=settings.export_audio_rate,
        progress_callback=progress_callback,
    )

    if result.data:
        _write_output(job, result.data)
    return result.to_dict()


async def handle_preview(
    job: Job,
    progress_callback: Callable,
    file: str,
    clip: dict,
    aspect: str = "16:9",
    **kwargs
) -> dict:
    """Handle single clip preview job."""
    result = await preview_clip(
        file,
        Clip(**clip),
        aspect=aspect,
        backend=FFmpegMediaBackend(),
        encoder=FFmpegCaptureEncoder(settings.export_container),
        width=settings.preview_width,
        fps=settings.export_fps,
        progress_callback=progress_callback,
    )
    if result.data:
        _write_output(job, result.data)
    return result.to_dict()
