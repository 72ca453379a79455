#!/usr/bin/env python3
"""
CLI tool to pick highlight clips from videos and export them as one reel.

Usage:
    python scripts/highlight_cli.py analyze <video> [<video> ...] [--output-dir <dir>]
    python scripts/highlight_cli.py export <video> [<video> ...] --clips <clips.json> --output <file>

Example:
    python scripts/highlight_cli.py analyze match1.mp4 match2.mp4 -o ./reel
    python scripts/highlight_cli.py export match1.mp4 match2.mp4 --clips ./reel/clips.json -O reel.mp4
"""
import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from autoreel.config import settings
from autoreel.pipeline import analyze, export_timeline
from autoreel.pipeline.captions import CaptionSegment
from autoreel.pipeline.compositor import CaptionStyle
from autoreel.pipeline.media import FFmpegCaptureEncoder
from autoreel.pipeline.peaks import Clip
from autoreel.services.transcription_service import WhisperTranscriptionService
from autoreel.utils.timefmt import format_seconds


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def _check_inputs(paths):
    for path in paths:
        if not path.exists():
            raise FileNotFoundError(f"Video not found: {path}")


async def run_analyze(args):
    """Analyze videos and write clips.json."""
    _check_inputs(args.videos)
    args.output_dir.mkdir(parents=True, exist_ok=True)

    result = await analyze(
        args.videos,
        min_len=args.min_len,
        max_len=args.max_len,
        max_clips=args.max_clips,
        parallel=not args.sequential,
        debug_dir=args.output_dir if args.debug or args.plot else None,
        debug_plot=args.plot,
    )

    output_file = args.output_dir / "clips.json"
    with open(output_file, "w") as f:
        json.dump({
            "files": [str(p) for p in args.videos],
            "clip_count": len(result.clips),
            "threshold": result.threshold,
            "warnings": result.warnings,
            "clips": [c.to_dict() for c in result.clips],
        }, f, indent=2)

    logger.info(f"Clips written to: {output_file}")
    for i, clip in enumerate(result.clips):
        logger.info(
            f"  {i + 1}. {args.videos[clip.file_index].name} "
            f"{format_seconds(clip.start)} - {format_seconds(clip.end)} ({clip.duration:.1f}s)"
        )
    for warning in result.warnings:
        logger.warning(warning)


async def run_export(args):
    """Render clips from clips.json into one output file."""
    _check_inputs(args.videos)
    with open(args.clips) as f:
        clips = [Clip(**c) for c in json.load(f)["clips"]]

    captions = None
    if args.captions:
        with open(args.captions) as f:
            captions = [CaptionSegment(**s) for s in json.load(f)]

    container = args.output.suffix.lstrip(".") or settings.export_container
    result = await export_timeline(
        args.videos,
        clips,
        aspect=args.aspect,
        caption_style=CaptionStyle(
            font_size=settings.caption_font_size,
            bg_opacity=settings.caption_bg_opacity,
            font_path=settings.caption_font_path,
        ),
        caption_segments=captions,
        music_file=args.music,
        music_gain=args.music_gain,
        want_asr=args.asr,
        encoder=FFmpegCaptureEncoder(container),
        transcriber=WhisperTranscriptionService() if args.asr else None,
        width=args.width,
        fps=settings.export_fps,
        audio_rate=settings.export_audio_rate,
    )

    for warning in result.warnings:
        logger.warning(warning)
    if not result.data:
        logger.error("Nothing was exported")
        sys.exit(1)

    args.output.parent.mkdir(parents=True, exist_ok=True)
    args.output.write_bytes(result.data)
    logger.info(
        f"Exported {result.clip_count} clips ({format_seconds(result.duration)}, "
        f"{result.width}x{result.height}) to {args.output}"
    )


def main():
    parser = argparse.ArgumentParser(
        description="Pick highlight clips and export them with AutoReel",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Pick clips from two videos
    python scripts/highlight_cli.py analyze a.mp4 b.mp4 -o ./reel

    # Vertical export with music and speech captions
    python scripts/highlight_cli.py export a.mp4 b.mp4 --clips ./reel/clips.json \\
        --aspect 9:16 --music bed.mp3 --asr -O reel.mp4
        """
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze_parser = subparsers.add_parser("analyze", help="Find highlight clips")
    analyze_parser.add_argument("videos", type=Path, nargs="+", help="Video files, in timeline order")
    analyze_parser.add_argument(
        "--output-dir", "-o",
        type=Path,
        default=Path("./autoreel_output"),
        help="Output directory for clips.json (default: ./autoreel_output)"
    )
    analyze_parser.add_argument("--min-len", type=float, default=settings.min_clip_seconds)
    analyze_parser.add_argument("--max-len", type=float, default=settings.max_clip_seconds)
    analyze_parser.add_argument("--max-clips", type=int, default=settings.max_clips)
    analyze_parser.add_argument("--sequential", action="store_true", help="Decode files one at a time")
    analyze_parser.add_argument("--debug", action="store_true", help="Also write analysis_debug.json")
    analyze_parser.add_argument("--plot", action="store_true", help="Also write analysis_debug.png")

    export_parser = subparsers.add_parser("export", help="Render clips into one video")
    export_parser.add_argument("videos", type=Path, nargs="+", help="Video files, same order as analysis")
    export_parser.add_argument("--clips", "-c", type=Path, required=True, help="clips.json from analyze")
    export_parser.add_argument("--output", "-O", type=Path, required=True, help="Output .mp4 or .webm")
    export_parser.add_argument("--aspect", "-a", choices=["16:9", "9:16", "1:1"], default="16:9")
    export_parser.add_argument("--width", type=int, default=settings.export_width)
    export_parser.add_argument("--captions", type=Path, default=None, help="JSON list of {start, end, text}")
    export_parser.add_argument("--music", type=Path, default=None, help="Music bed played under the clips")
    export_parser.add_argument("--music-gain", type=float, default=settings.music_gain)
    export_parser.add_argument("--asr", action="store_true", help="Caption from speech recognition")

    args = parser.parse_args()
    command = run_analyze if args.command == "analyze" else run_export

    try:
        asyncio.run(command(args))
    except FileNotFoundError as e:
        logger.error(str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted")
        sys.exit(130)
    except Exception as e:
        logger.exception(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
