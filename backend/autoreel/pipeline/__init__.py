# Highlight pipeline
"""
Highlight Pipeline: Interest-Driven Clip Extraction and Export

Picks the loudest moments across one or more source videos and renders them
into a single captioned output.

Pipeline stages:
1. Interest Curve: RMS loudness per 100 ms hop, smoothed, concatenated across files
2. Scene Segmentation: Frame-difference cuts per file on a global timeline
3. Peak Mapping: Local maxima above the 80th percentile become candidate windows
4. Deduplication: Sort and merge overlapping or near-adjacent clips
5. Export: Cover-fit compositing with captions and a speech/music mix
"""

from .runner import analyze, export_timeline, preview_clip, AnalysisResult, ExportResult

__all__ = ["analyze", "export_timeline", "preview_clip", "AnalysisResult", "ExportResult"]
