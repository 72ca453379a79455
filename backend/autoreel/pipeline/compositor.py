"""Timeline compositing.

Renders the deduplicated clips, in order, into one output surface:
- Cover-fit: scale the source to fill the output, cropping the overflowing
  axis symmetrically
- Export clock: cumulative duration of prior clips + time into the current clip
- Captions: a forward-only cursor picks the segment active at each export
  time; text is wrapped to 80% of the width over a translucent bottom band

Rendering is an explicit loop over frames from an injectable frame source,
so it runs the same against ffmpeg or in-memory test frames.
"""
import logging
from dataclasses import dataclass
from typing import Callable, ContextManager, Iterable, Iterator, List, Optional, Sequence, Tuple

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from .captions import CaptionSegment
from .config import PipelineConfig, DEFAULT_PIPELINE_CONFIG
from .errors import PipelineError, RenderFailure
from .media import VideoFrame
from .peaks import Clip

logger = logging.getLogger(__name__)

# frame_source(clip) -> context manager yielding frames from clip.start onward
FrameSource = Callable[[Clip], ContextManager[Iterable[VideoFrame]]]


@dataclass
class CaptionStyle:
    """Caption appearance."""
    font_size: int = 28
    bg_opacity: float = 0.4
    font_path: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "font_size": self.font_size,
            "bg_opacity": self.bg_opacity,
            "font_path": self.font_path,
        }


@dataclass(frozen=True)
class CoverRect:
    """Source crop and destination placement for a cover-fit draw."""
    sx: float
    sy: float
    s_width: float
    s_height: float
    dx: int
    dy: int
    d_width: int
    d_height: int


def compute_cover_rect(src_w: int, src_h: int, dst_w: int, dst_h: int) -> CoverRect:
    """
    Cover-fit crop of the source for a destination rectangle.

    If the source is wider than the destination aspect, the crop width is
    src_h * dst_aspect; otherwise the crop height is src_w / dst_aspect. The
    crop is centered.
    """
    src_aspect = src_w / src_h
    dst_aspect = dst_w / dst_h
    s_width, s_height = float(src_w), float(src_h)
    if src_aspect > dst_aspect:
        s_width = src_h * dst_aspect
    else:
        s_height = src_w / dst_aspect
    return CoverRect(
        sx=(src_w - s_width) / 2,
        sy=(src_h - s_height) / 2,
        s_width=s_width,
        s_height=s_height,
        dx=0,
        dy=0,
        d_width=dst_w,
        d_height=dst_h,
    )


def output_dimensions(
    aspect: str,
    width: int,
    config: PipelineConfig = DEFAULT_PIPELINE_CONFIG,
) -> Tuple[int, int]:
    """Output size for an aspect preset. Unknown presets fall back to the default."""
    ratio = config.aspect_presets.get(aspect) or config.aspect_presets[config.default_aspect]
    height = int(round(width / ratio / 2)) * 2  # Encoders need even dimensions
    return width, max(2, height)


class ExportTimeline:
    """Clips in playback order with the mapping to export time."""

    def __init__(self, clips: Sequence[Clip]):
        for clip in clips:
            if clip.end <= clip.start:
                raise ValueError(f"Clip has no duration: {clip!r}")
        self.clips: List[Clip] = list(clips)
        self.offsets: List[float] = []
        offset = 0.0
        for clip in self.clips:
            self.offsets.append(offset)
            offset += clip.end - clip.start
        self.duration = offset

    def __len__(self) -> int:
        return len(self.clips)

    def export_time(self, clip_index: int, position: float) -> float:
        """Export time of a source position inside clip `clip_index`."""
        clip = self.clips[clip_index]
        return self.offsets[clip_index] + (position - clip.start)


class CaptionCursor:
    """Forward-only caption lookup for monotonically increasing export time."""

    def __init__(self, segments: Optional[Sequence[CaptionSegment]]):
        self.segments = list(segments or [])
        self.index = 0

    def advance(self, export_time: float) -> Optional[CaptionSegment]:
        """Return the segment active at `export_time`, if any."""
        while self.index < len(self.segments) and self.segments[self.index].end < export_time:
            self.index += 1
        if self.index >= len(self.segments):
            return None
        segment = self.segments[self.index]
        if segment.start <= export_time <= segment.end:
            return segment
        return None


def load_caption_font(style: CaptionStyle) -> ImageFont.ImageFont:
    """Load the caption font, falling back to Pillow's bundled font."""
    if style.font_path:
        try:
            return ImageFont.truetype(style.font_path, style.font_size)
        except OSError:
            logger.warning(f"Caption font {style.font_path} not found, using default font")
    return ImageFont.load_default(size=style.font_size)


def wrap_text(text: str, max_width: float, measure: Callable[[str], float]) -> List[str]:
    """Greedy word wrap. A single word wider than max_width gets its own line."""
    lines = []
    line = ""
    for word in str(text or "").split():
        candidate = f"{line} {word}" if line else word
        if measure(candidate) > max_width and line:
            lines.append(line)
            line = word
        else:
            line = candidate
    if line:
        lines.append(line)
    return lines


class CaptionRenderer:
    """Draws caption text over a translucent band anchored to the bottom."""

    def __init__(self, style: CaptionStyle, config: PipelineConfig = DEFAULT_PIPELINE_CONFIG):
        self.style = style
        self.config = config
        self.font = load_caption_font(style)

    def measure(self, text: str) -> float:
        left, _, right, _ = self.font.getbbox(text)
        return right - left

    def draw(self, image: Image.Image, text: str) -> Image.Image:
        """Return a copy of `image` (RGBA) with the caption composited on it."""
        width, height = image.size
        font_size = self.style.font_size
        padding = round(font_size * self.config.caption_padding_ratio)
        line_height = round(font_size * self.config.caption_line_height_ratio)
        band_width = width * self.config.caption_width_ratio
        band_left = (width - band_width) / 2

        lines = wrap_text(text, band_width, self.measure)
        if not lines:
            return image

        total_height = len(lines) * line_height + padding * 2
        y_bottom = height - padding
        y_top = y_bottom - total_height

        overlay = Image.new("RGBA", image.size, (0, 0, 0, 0))
        draw = ImageDraw.Draw(overlay)
        alpha = int(round(255 * min(1.0, max(0.0, self.style.bg_opacity))))
        draw.rectangle(
            [band_left, y_top, band_left + band_width, y_top + total_height],
            fill=(0, 0, 0, alpha),
        )
        for idx, line in enumerate(lines):
            baseline = y_top + padding + (idx + 1) * line_height
            draw.text((width / 2, baseline), line, font=self.font, fill=(255, 255, 255, 255), anchor="ms")

        return Image.alpha_composite(image, overlay)


class TimelineCompositor:
    """Renders an ExportTimeline frame by frame into a fixed-size surface."""

    def __init__(
        self,
        width: int,
        height: int,
        caption_style: Optional[CaptionStyle] = None,
        caption_segments: Optional[Sequence[CaptionSegment]] = None,
        config: PipelineConfig = DEFAULT_PIPELINE_CONFIG,
    ):
        self.width = width
        self.height = height
        self.config = config
        self.caption_segments = list(caption_segments or [])
        self.caption_renderer = None
        if self.caption_segments:
            self.caption_renderer = CaptionRenderer(caption_style or CaptionStyle(), config)

    def cover_fit(self, pixels: np.ndarray) -> Image.Image:
        """Scale and crop a source frame to fill the output surface."""
        src_h, src_w = pixels.shape[:2]
        rect = compute_cover_rect(src_w, src_h, self.width, self.height)
        source = Image.fromarray(np.ascontiguousarray(pixels[..., :3]))
        # Pillow rejects boxes past the source edge, even by rounding error
        box = (
            max(0.0, rect.sx),
            max(0.0, rect.sy),
            min(float(src_w), rect.sx + rect.s_width),
            min(float(src_h), rect.sy + rect.s_height),
        )
        return source.resize((rect.d_width, rect.d_height), Image.Resampling.BILINEAR, box=box)

    def compose_frame(self, pixels: np.ndarray, caption: Optional[CaptionSegment]) -> np.ndarray:
        """Build one output frame as an RGB array of shape (height, width, 3)."""
        image = self.cover_fit(pixels)
        if caption is not None and self.caption_renderer is not None:
            image = self.caption_renderer.draw(image.convert("RGBA"), caption.text).convert("RGB")
        return np.asarray(image, dtype=np.uint8)

    def render(
        self,
        timeline: ExportTimeline,
        frame_source: FrameSource,
        on_clip: Optional[Callable[[int, int], None]] = None,
    ) -> Iterator[np.ndarray]:
        """
        Yield output frames for every clip in order.

        Playback of a clip stops when the source position reaches clip.end.

        Raises:
            RenderFailure: If any clip fails to render
        """
        cursor = CaptionCursor(self.caption_segments)
        total = len(timeline)

        for clip_index, clip in enumerate(timeline.clips):
            logger.info(f"Rendering clip {clip_index + 1}/{total}: {clip!r}")
            if on_clip:
                on_clip(clip_index, total)

            try:
                with frame_source(clip) as frames:
                    for frame in frames:
                        if frame.position >= clip.end:
                            break
                        export_time = timeline.export_time(clip_index, frame.position)
                        caption = cursor.advance(export_time)
                        yield self.compose_frame(frame.pixels, caption)
            except PipelineError:
                raise
            except Exception as e:
                raise RenderFailure(f"Failed to render clip {clip_index + 1}/{total}: {e}") from e
