"""Caption segment normalization.

Speech recognizers return transcripts in several shapes. Each chunk is
classified once at this boundary into a tagged timing variant, then
converted into CaptionSegments in export time.

Recognized shapes:
- {"chunks": [{"timestamp": [start, end], "text": ...}]}   (transformers ASR)
- {"segments": [{"start": ..., "end": ..., "text": ...}]}  (whisper-style)
- chunks carrying "time": [start, end] or "timestart"/"timeend"
- {"text": "..."} with no chunks at all
"""
import enum
import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional

from .config import CAPTION_FALLBACK_END

logger = logging.getLogger(__name__)

_CHUNK_LIST_FIELDS = ("chunks", "segments")
_TEXT_FIELDS = ("text", "chunk", "raw_text")


@dataclass
class CaptionSegment:
    """A caption in export-time seconds."""
    start: float
    end: float
    text: str

    def to_dict(self) -> dict:
        return {"start": self.start, "end": self.end, "text": self.text}


class TimingKind(str, enum.Enum):
    """Where a chunk keeps its timestamps."""
    TIMESTAMP_PAIR = "timestamp"
    TIME_PAIR = "time"
    TIMESTART_TIMEEND = "timestart"
    START_END = "start_end"
    NONE = "none"


@dataclass(frozen=True)
class ChunkTiming:
    """Tagged timing extracted from one transcript chunk."""
    kind: TimingKind
    start: Optional[float]
    end: Optional[float]


def _get(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _pair(value: Any):
    if isinstance(value, (list, tuple)):
        first = value[0] if len(value) > 0 else None
        second = value[1] if len(value) > 1 else None
        return first, second
    return None


def classify_chunk(chunk: Any) -> ChunkTiming:
    """Classify a transcript chunk by the timestamp fields it carries."""
    pair = _pair(_get(chunk, "timestamp"))
    if pair is not None:
        return ChunkTiming(TimingKind.TIMESTAMP_PAIR, *pair)

    pair = _pair(_get(chunk, "time"))
    if pair is not None:
        return ChunkTiming(TimingKind.TIME_PAIR, *pair)

    if _get(chunk, "timestart") is not None or _get(chunk, "timeend") is not None:
        return ChunkTiming(
            TimingKind.TIMESTART_TIMEEND, _get(chunk, "timestart"), _get(chunk, "timeend")
        )

    if _get(chunk, "start") is not None or _get(chunk, "end") is not None:
        return ChunkTiming(TimingKind.START_END, _get(chunk, "start"), _get(chunk, "end"))

    return ChunkTiming(TimingKind.NONE, None, None)


def chunk_text(chunk: Any) -> str:
    for name in _TEXT_FIELDS:
        value = _get(chunk, name)
        if value:
            return str(value)
    return ""


def _chunk_list(result: Any) -> Iterable[Any]:
    for name in _CHUNK_LIST_FIELDS:
        value = _get(result, name)
        if value:
            return value
    return []


def to_caption_segment(chunk: Any) -> CaptionSegment:
    """Convert one chunk. Missing times default to 0 and end is kept >= start."""
    timing = classify_chunk(chunk)
    start = max(0.0, float(timing.start or 0.0))
    end = max(start, float(timing.end or 0.0))
    return CaptionSegment(start=start, end=end, text=chunk_text(chunk))


def normalize_transcription(result: Any) -> Optional[List[CaptionSegment]]:
    """
    Normalize a transcription result into caption segments.

    Chunk order is trusted as ascending. When there are no chunks but a full
    transcript exists, a single segment spanning the whole export is returned.

    Returns:
        List of segments, or None when there is no result
    """
    if result is None:
        return None

    segments = [to_caption_segment(chunk) for chunk in _chunk_list(result)]

    if not segments:
        text = _get(result, "text")
        if text:
            logger.info("No chunk timestamps in transcript, using full-text caption")
            segments.append(CaptionSegment(start=0.0, end=CAPTION_FALLBACK_END, text=str(text)))

    return segments
