"""Debug artifact generation.

Writes a JSON file and an optional timeline plot explaining how the
analysis picked its clips.
"""
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Sequence

from .config import PipelineConfig
from .interest import GlobalInterestCurve
from .peaks import Clip
from .scenes import FileTimeline

logger = logging.getLogger(__name__)


def write_analysis_debug_json(
    output_path: Path,
    config: PipelineConfig,
    files: Sequence[Path],
    curve: GlobalInterestCurve,
    timelines: Sequence[FileTimeline],
    threshold: float,
    peaks: List[int],
    candidates: List[Clip],
    final_clips: List[Clip],
):
    """
    Write comprehensive debug JSON file.
    """
    values = curve.values
    debug_data = {
        "generated_at": datetime.now(timezone.utc).isoformat(),

        # Configuration
        "config": config.to_dict(),

        # Inputs
        "files": [
            {
                "path": str(path),
                "curve_length": curve.file_lengths[i] if i < len(curve.file_lengths) else 0,
                "curve_offset": curve.curve_offsets[i] if i < len(curve.curve_offsets) else 0,
                **(timelines[i].to_dict() if i < len(timelines) else {}),
            }
            for i, path in enumerate(files)
        ],

        # Interest curve summary
        "curve_summary": {
            "length": len(values),
            "hop_seconds": curve.hop_seconds,
            "min": float(values.min()) if len(values) else 0.0,
            "max": float(values.max()) if len(values) else 0.0,
            "mean": float(values.mean()) if len(values) else 0.0,
        },

        # Peak detection
        "threshold": threshold,
        "peaks": [
            {"index": idx, "time_sec": curve.index_to_seconds(idx), "value": float(values[idx])}
            for idx in peaks
        ],

        # Candidate clips before deduplication
        "candidates": [c.to_dict() for c in candidates],

        # Final clips
        "final_clips": [c.to_dict() for c in final_clips],

        # Statistics
        "statistics": {
            "total_peaks": len(peaks),
            "candidates": len(candidates),
            "final_clips": len(final_clips),
            "total_duration": sum(c.duration for c in final_clips),
        }
    }

    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w') as f:
        json.dump(debug_data, f, indent=2)

    logger.info(f"Wrote debug JSON to {output_path}")


def write_analysis_debug_plot(
    output_path: Path,
    curve: GlobalInterestCurve,
    timelines: Sequence[FileTimeline],
    threshold: float,
    peaks: List[int],
    final_clips: List[Clip],
):
    """
    Generate a timeline visualization of the analysis.

    Everything is drawn on the global (concatenated) timeline.
    """
    import matplotlib
    matplotlib.use('Agg')  # Non-interactive backend
    import matplotlib.pyplot as plt
    import matplotlib.patches as patches

    try:
        fig, axes = plt.subplots(2, 1, figsize=(16, 7), sharex=True)
        times = [curve.index_to_seconds(i) for i in range(len(curve))]

        # Interest curve + threshold + peaks
        ax = axes[0]
        ax.plot(times, curve.values, 'r-', alpha=0.7, linewidth=0.5)
        ax.axhline(y=threshold, color='gray', linestyle='--', alpha=0.7)
        ax.plot(
            [curve.index_to_seconds(i) for i in peaks],
            [curve.values[i] for i in peaks],
            'x', color='purple',
        )
        ax.set_ylabel('Interest (RMS)')
        ax.set_title('Highlight Analysis: Interest Timeline')
        ax.legend(['Interest', 'Threshold', 'Peaks'], loc='upper right')

        # Clips
        ax = axes[1]
        ax.set_ylim(0, 1)
        for clip in final_clips:
            offset = timelines[clip.file_index].global_offset_seconds
            rect = patches.Rectangle(
                (offset + clip.start, 0.1), clip.duration, 0.8,
                linewidth=1, edgecolor='blue', facecolor='blue', alpha=0.3
            )
            ax.add_patch(rect)
        ax.set_ylabel('Clips')
        ax.set_xlabel('Time (seconds)')

        # File boundaries solid, scene cuts faint
        for timeline in timelines:
            for a in axes:
                a.axvline(x=timeline.global_offset_seconds, color='black', alpha=0.6, linewidth=1)
            for cut in timeline.scene_cuts[1:-1]:
                axes[0].axvline(
                    x=timeline.global_offset_seconds + cut, color='orange', alpha=0.2, linewidth=0.5
                )
        if timelines:
            axes[1].set_xlim(0, timelines[-1].global_end_seconds)

        plt.tight_layout()
        output_path.parent.mkdir(parents=True, exist_ok=True)
        plt.savefig(output_path, dpi=100)
        plt.close(fig)

        logger.info(f"Wrote debug plot to {output_path}")

    except Exception as e:
        logger.warning(f"Failed to generate debug plot: {e}")
