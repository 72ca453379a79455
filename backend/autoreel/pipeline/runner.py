"""Pipeline runner.

Orchestrates highlight analysis and timeline export.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Tuple, Union

import numpy as np

from .audio_mix import build_clip_audio_bed, build_mix
from .captions import CaptionSegment, normalize_transcription
from .compositor import (
    CaptionStyle,
    ExportTimeline,
    TimelineCompositor,
    output_dimensions,
)
from .config import PipelineConfig, DEFAULT_PIPELINE_CONFIG
from .debug_artifacts import write_analysis_debug_json, write_analysis_debug_plot
from .dedupe import dedupe_clips
from .errors import EmptyInputFailure, TranscriptionFailure
from .interest import (
    AudioSamples,
    GlobalInterestCurve,
    build_interest_curve,
    concatenate_curves,
    resample_linear,
)
from .media import (
    CaptureEncoder,
    FFmpegCaptureEncoder,
    FFmpegMediaBackend,
    MediaBackend,
    Transcriber,
)
from .peaks import Clip, select_candidates
from .scenes import FileTimeline, build_file_timelines, detect_scene_cuts, working_surface_size

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float, str], Awaitable[None]]


@dataclass
class AnalysisResult:
    """Result from highlight analysis."""
    clips: List[Clip]
    global_interest_curve: GlobalInterestCurve
    curve_hop_seconds: float
    timelines: List[FileTimeline] = field(default_factory=list)
    peaks: List[int] = field(default_factory=list)
    threshold: float = 0.0
    candidates: List[Clip] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @classmethod
    def empty(cls, hop_seconds: float) -> "AnalysisResult":
        return cls(
            clips=[],
            global_interest_curve=concatenate_curves([], hop_seconds),
            curve_hop_seconds=hop_seconds,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "clips": [c.to_dict() for c in self.clips],
            "global_interest_curve": self.global_interest_curve.values.tolist(),
            "curve_hop_seconds": self.curve_hop_seconds,
            "timelines": [t.to_dict() for t in self.timelines],
            "peaks": list(self.peaks),
            "threshold": self.threshold,
            "warnings": list(self.warnings),
        }


@dataclass
class ExportResult:
    """Result from timeline export."""
    data: bytes
    width: int
    height: int
    duration: float
    clip_count: int
    caption_count: int = 0
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "size_bytes": len(self.data),
            "width": self.width,
            "height": self.height,
            "duration": self.duration,
            "clip_count": self.clip_count,
            "caption_count": self.caption_count,
            "warnings": list(self.warnings),
        }


def _progress_reporter(progress_callback: Optional[ProgressCallback]) -> ProgressCallback:
    async def report_progress(pct: float, msg: str):
        if progress_callback:
            await progress_callback(pct, msg)
        logger.info(f"[{pct:.0f}%] {msg}")
    return report_progress


async def _analyze_file(
    backend: MediaBackend,
    path: Path,
    file_index: int,
    file_count: int,
    config: PipelineConfig,
    report_progress: ProgressCallback,
) -> Tuple[np.ndarray, float, List[float]]:
    """Interest curve, duration and scene cuts for one file."""
    pct = 5 + 60 * file_index / file_count
    await report_progress(pct, f"Decoding file {file_index + 1}/{file_count}: {path.name}")
    info = await backend.probe(path)
    audio = await backend.decode_audio(path)
    curve = build_interest_curve(audio, config)

    await report_progress(pct, f"Scanning frames {file_index + 1}/{file_count}: {path.name}")
    width, height = working_surface_size(info.width, info.height, config)
    cuts = await asyncio.to_thread(
        detect_scene_cuts,
        lambda t: backend.sample_frame(path, t, width, height),
        info.duration,
        config,
    )
    return curve, info.duration, cuts


async def _run_analysis(
    files: Sequence[Path],
    min_len: float,
    max_len: float,
    max_clips: int,
    backend: MediaBackend,
    config: PipelineConfig,
    report_progress: ProgressCallback,
    parallel: bool,
    debug_dir: Optional[Path],
    debug_plot: bool,
) -> AnalysisResult:
    if not files:
        raise EmptyInputFailure("No input files")

    # Stage 1: per-file curves and scene cuts
    if parallel:
        per_file = await asyncio.gather(*[
            _analyze_file(backend, path, i, len(files), config, report_progress)
            for i, path in enumerate(files)
        ])
    else:
        per_file = []
        for i, path in enumerate(files):
            per_file.append(
                await _analyze_file(backend, path, i, len(files), config, report_progress)
            )

    curves = [curve for curve, _, _ in per_file]
    durations = [duration for _, duration, _ in per_file]
    cuts = [scene_cuts for _, _, scene_cuts in per_file]

    global_curve = concatenate_curves(curves, config.hop_seconds)
    timelines = build_file_timelines(durations, cuts)
    await report_progress(70, f"Built interest curve with {len(global_curve)} points")

    # Stage 2: peaks -> candidate clips
    candidates, peaks, threshold = select_candidates(
        global_curve, timelines, min_len, max_len, max_clips, config
    )
    await report_progress(85, f"Found {len(peaks)} peaks, {len(candidates)} candidates")

    # Stage 3: dedupe
    clips = dedupe_clips(candidates, config.dedupe_min_gap_seconds, durations, config)

    result = AnalysisResult(
        clips=clips,
        global_interest_curve=global_curve,
        curve_hop_seconds=config.hop_seconds,
        timelines=timelines,
        peaks=peaks,
        threshold=threshold,
        candidates=candidates,
    )

    if debug_dir is not None:
        write_analysis_debug_json(
            debug_dir / "analysis_debug.json", config, files, global_curve,
            timelines, threshold, peaks, candidates, clips,
        )
        if debug_plot:
            write_analysis_debug_plot(
                debug_dir / "analysis_debug.png", global_curve, timelines, threshold, peaks, clips,
            )

    if not clips:
        raise EmptyInputFailure("No candidate clips found", result=result)

    return result


async def analyze(
    files: Sequence[Union[str, Path]],
    min_len: float,
    max_len: float,
    max_clips: int,
    backend: Optional[MediaBackend] = None,
    config: Optional[PipelineConfig] = None,
    progress_callback: Optional[ProgressCallback] = None,
    parallel: bool = True,
    debug_dir: Optional[Path] = None,
    debug_plot: bool = False,
) -> AnalysisResult:
    """
    Analyze source videos and pick highlight clips.

    Args:
        files: Source video paths, in timeline order
        min_len: Clip length used to center windows on peaks (seconds)
        max_len: Candidate window length (seconds)
        max_clips: Maximum number of candidates
        backend: Media backend (ffmpeg when not provided)
        config: Pipeline configuration (uses defaults if not provided)
        progress_callback: Optional async callback for progress updates
        parallel: Decode files concurrently; results keep file order
        debug_dir: Write analysis_debug.json here when set
        debug_plot: Also write analysis_debug.png into debug_dir

    Returns:
        AnalysisResult with clips, the global interest curve and its hop

    Raises:
        DecodeFailure: If any file cannot be decoded
    """
    files = [Path(f) for f in files]
    backend = backend or FFmpegMediaBackend()
    config = config or DEFAULT_PIPELINE_CONFIG
    report_progress = _progress_reporter(progress_callback)

    await report_progress(0, f"Analyzing {len(files)} file(s)...")

    try:
        result = await _run_analysis(
            files, min_len, max_len, max_clips, backend, config,
            report_progress, parallel, debug_dir, debug_plot,
        )
    except EmptyInputFailure as e:
        logger.warning(f"Analysis produced no clips: {e}")
        result = e.result or AnalysisResult.empty(config.hop_seconds)
        result.warnings.append(str(e))

    await report_progress(100, f"Analysis complete: {len(result.clips)} clips")
    return result


async def _captions_from_asr(
    transcriber: Transcriber,
    bed: AudioSamples,
    sample_rate: int,
    warnings: List[str],
) -> Optional[List[CaptionSegment]]:
    samples = resample_linear(bed.samples, bed.sample_rate, sample_rate)
    try:
        try:
            asr_result = await asyncio.to_thread(transcriber.transcribe, samples, sample_rate)
        except TranscriptionFailure:
            raise
        except Exception as e:
            raise TranscriptionFailure(str(e)) from e
        if not asr_result:
            raise TranscriptionFailure("Transcriber returned nothing")
        return normalize_transcription(asr_result)
    except TranscriptionFailure as e:
        logger.warning(f"Speech recognition failed; continuing without captions: {e}")
        warnings.append(f"Captions unavailable: {e}")
        return None


async def export_timeline(
    files: Sequence[Union[str, Path]],
    clips: Sequence[Clip],
    aspect: str = "16:9",
    caption_style: Optional[CaptionStyle] = None,
    caption_segments: Optional[Sequence[CaptionSegment]] = None,
    music_file: Optional[Union[str, Path]] = None,
    music_gain: float = 0.3,
    transcription: Any = None,
    want_asr: bool = False,
    backend: Optional[MediaBackend] = None,
    encoder: Optional[CaptureEncoder] = None,
    transcriber: Optional[Transcriber] = None,
    config: Optional[PipelineConfig] = None,
    width: Optional[int] = None,
    fps: float = 30,
    audio_rate: int = 48000,
    progress_callback: Optional[ProgressCallback] = None,
) -> ExportResult:
    """
    Composite clips into one output with captions and mixed audio.

    Captions come from `caption_segments` (export time base), else from a raw
    `transcription`, else from speech recognition over the clip audio when
    `want_asr` is set and a transcriber is available.

    Raises:
        DecodeFailure: If a source or the music file cannot be decoded
        RenderFailure: If any clip fails to render or encode
    """
    files = [Path(f) for f in files]
    backend = backend or FFmpegMediaBackend()
    encoder = encoder or FFmpegCaptureEncoder()
    config = config or DEFAULT_PIPELINE_CONFIG
    report_progress = _progress_reporter(progress_callback)
    width, height = output_dimensions(aspect, width or config.export_width, config)
    warnings: List[str] = []

    await report_progress(0, "Loading clips...")

    if not clips:
        e = EmptyInputFailure("No clips to export")
        logger.warning(f"Nothing to export: {e}")
        return ExportResult(
            data=b"", width=width, height=height, duration=0.0,
            clip_count=0, warnings=[str(e)],
        )

    for clip in clips:
        if not 0 <= clip.file_index < len(files):
            raise ValueError(f"Clip references unknown file index {clip.file_index}")

    timeline = ExportTimeline(clips)
    for index in sorted({c.file_index for c in clips}):
        await backend.probe(files[index])

    # Clip audio bed, in playback order
    slices = []
    for i, clip in enumerate(timeline.clips):
        await report_progress(5 + 15 * i / len(timeline), f"Decoding audio {i + 1}/{len(timeline)}")
        slices.append(await backend.decode_audio_range(
            files[clip.file_index], clip.start, clip.end, audio_rate
        ))
    bed = build_clip_audio_bed(slices, [c.duration for c in timeline.clips], audio_rate)

    # Captions
    segments: Optional[List[CaptionSegment]] = None
    if caption_segments is not None:
        segments = list(caption_segments)
    elif transcription is not None:
        segments = normalize_transcription(transcription)
    elif want_asr:
        if transcriber is None:
            warnings.append("Captions unavailable: no transcriber configured")
        else:
            await report_progress(20, "Transcribing...")
            segments = await _captions_from_asr(transcriber, bed, config.asr_sample_rate, warnings)

    # Music bed
    music = None
    if music_file is not None:
        await report_progress(30, "Loading music...")
        music = await backend.decode_audio(Path(music_file))

    mix = build_mix(bed, music, music_gain, timeline.duration, audio_rate, config.speech_gain)

    # Frames
    compositor = TimelineCompositor(width, height, caption_style, segments, config)
    loop = asyncio.get_running_loop()

    def frame_source(clip: Clip):
        return backend.open_clip(files[clip.file_index], clip.start, clip.end, fps)

    def log_progress_error(future):
        if not future.cancelled() and future.exception() is not None:
            logger.warning(f"Progress callback failed: {future.exception()}")

    def on_clip(index: int, total: int):
        pct = 35 + 60 * index / total
        future = asyncio.run_coroutine_threadsafe(
            report_progress(pct, f"Rendering clip {index + 1}/{total}"), loop
        )
        future.add_done_callback(log_progress_error)

    frames = compositor.render(timeline, frame_source, on_clip)
    data = await asyncio.to_thread(encoder.encode, frames, width, height, fps, mix)

    await report_progress(100, f"Export complete: {len(data)} bytes")
    return ExportResult(
        data=data,
        width=width,
        height=height,
        duration=timeline.duration,
        clip_count=len(timeline),
        caption_count=len(segments or []),
        warnings=warnings,
    )


async def preview_clip(
    file: Union[str, Path],
    clip: Clip,
    aspect: str = "16:9",
    backend: Optional[MediaBackend] = None,
    encoder: Optional[CaptureEncoder] = None,
    config: Optional[PipelineConfig] = None,
    width: Optional[int] = None,
    fps: float = 30,
    progress_callback: Optional[ProgressCallback] = None,
) -> ExportResult:
    """Render a single clip at preview width, without captions or music."""
    config = config or DEFAULT_PIPELINE_CONFIG
    local = Clip(file_index=0, start=clip.start, end=clip.end)
    return await export_timeline(
        [file], [local], aspect=aspect,
        backend=backend, encoder=encoder, config=config,
        width=width or config.preview_width, fps=fps,
        progress_callback=progress_callback,
    )
