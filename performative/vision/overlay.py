"""Pure overlay rendering utilities.

:func:`render` maps accepted predictions from video pixel space onto a canvas
sized in device pixels and returns a list of draw operations. The operations
are executed by :class:`OverlaySurface`, a Pillow backed drawing surface.
"""

from __future__ import annotations

import io
import math
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from performative.core.models import Prediction, Size

MAX_DPR = 2.0

BOX_COLOR = (255, 204, 0, 255)
LABEL_FILL = (5, 5, 8, 217)
LABEL_BORDER = (255, 204, 0, 102)
LABEL_TEXT = (240, 240, 245, 255)

MeasureText = Callable[[str, float], float]


@dataclass(frozen=True)
class Clear:
    width: int
    height: int


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    w: float
    h: float
    line_width: float
    color: Tuple[int, int, int, int] = BOX_COLOR


@dataclass(frozen=True)
class Label:
    text: str
    box: Tuple[float, float, float, float]
    text_x: float
    text_y: float
    font_size: float
    radius: float
    fill: Tuple[int, int, int, int] = LABEL_FILL
    border: Tuple[int, int, int, int] = LABEL_BORDER
    color: Tuple[int, int, int, int] = LABEL_TEXT


DrawOp = Union[Clear, Rect, Label]


def clamp_dpr(device_pixel_ratio: Optional[float], max_dpr: float = MAX_DPR) -> float:
    """Clamp the device pixel ratio to ``max_dpr``; missing or invalid means 1."""
    try:
        dpr = float(device_pixel_ratio or 1.0)
    except (TypeError, ValueError):
        return 1.0
    if not math.isfinite(dpr) or dpr <= 0:
        return 1.0
    return min(dpr, max_dpr)


def canvas_size_for(
    display_w: float,
    display_h: float,
    device_pixel_ratio: Optional[float] = None,
    max_dpr: float = MAX_DPR,
) -> Size:
    """Return the canvas size in device pixels for a displayed (CSS) size."""
    dpr = clamp_dpr(device_pixel_ratio, max_dpr)
    return Size(int(display_w * dpr), int(display_h * dpr))


def _finite_bbox(bbox) -> Optional[Tuple[float, float, float, float]]:
    if not isinstance(bbox, (list, tuple, np.ndarray)) or len(bbox) < 4:
        return None
    vals = []
    for v in list(bbox)[:4]:
        if isinstance(v, bool) or not isinstance(v, (int, float, np.number)):
            return None
        if not math.isfinite(v):
            return None
        vals.append(float(v))
    return vals[0], vals[1], vals[2], vals[3]


def _xyxy(x: float, y: float, w: float, h: float) -> List[float]:
    return [min(x, x + w), min(y, y + h), max(x, x + w), max(y, y + h)]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def label_text(prediction: Prediction) -> str:
    pct = _round_half_up(prediction.score * 100)
    return f"{prediction.label} {pct}%"


@lru_cache(maxsize=16)
def _load_font(size: float):
    try:
        return ImageFont.load_default(size=size)
    except Exception:  # pragma: no cover - font load errors
        return None


def measure_text_pil(text: str, font_size: float) -> float:
    """Return the rendered width of ``text`` with the default font."""
    font = _load_font(font_size)
    if font is None:  # pragma: no cover - font load errors
        return len(text) * font_size * 0.6
    return float(font.getlength(text))


def render(
    pass_set: Iterable[Prediction],
    video_size: Size,
    canvas_size: Size,
    *,
    dpr: float = 1.0,
    enabled: bool = True,
    measure_text: Optional[MeasureText] = None,
) -> List[DrawOp]:
    """Return draw operations for ``pass_set``.

    The first operation always clears the whole canvas. Nothing else is drawn
    when ``enabled`` is false, when the video size is unknown, or for
    predictions whose bbox is not four finite numbers.
    """
    ops: List[DrawOp] = [Clear(int(canvas_size.width), int(canvas_size.height))]
    if not enabled:
        return ops
    if not video_size.width or not video_size.height:
        return ops

    measure = measure_text or measure_text_pil
    dpr = clamp_dpr(dpr)
    scale_x = canvas_size.width / video_size.width
    scale_y = canvas_size.height / video_size.height

    font_size = 11 * dpr
    th = 20 * dpr
    for pred in pass_set:
        bbox = _finite_bbox(pred.bbox)
        if bbox is None:
            continue
        x, y, w, h = bbox
        sx, sy = x * scale_x, y * scale_y
        sw, sh = w * scale_x, h * scale_y
        ops.append(Rect(sx, sy, sw, sh, line_width=2 * dpr))

        text = label_text(pred)
        tw = measure(text, font_size) + 12 * dpr
        box_y = max(0.0, sy - th - 6 * dpr)
        ops.append(
            Label(
                text=text,
                box=(sx, box_y, tw, th),
                text_x=sx + 6 * dpr,
                text_y=max(14 * dpr, sy - 10 * dpr),
                font_size=font_size,
                radius=6 * dpr,
            )
        )
    return ops


class OverlaySurface:
    """Transparent RGBA drawing surface sized in device pixels."""

    def __init__(
        self, width: int = 1, height: int = 1, dpr: float = 1.0, max_dpr: float = MAX_DPR
    ) -> None:
        self.max_dpr = max_dpr
        self.dpr = clamp_dpr(dpr, max_dpr)
        self.image = Image.new("RGBA", (max(1, int(width)), max(1, int(height))), (0, 0, 0, 0))

    @property
    def size(self) -> Size:
        return Size(self.image.width, self.image.height)

    def resize(self, display_w: float, display_h: float, device_pixel_ratio: Optional[float] = None) -> Size:
        """Resize to the displayed size of the video surface; contents are cleared."""
        self.dpr = clamp_dpr(device_pixel_ratio, self.max_dpr)
        size = canvas_size_for(display_w, display_h, self.dpr, self.max_dpr)
        self.image = Image.new("RGBA", (max(1, size.width), max(1, size.height)), (0, 0, 0, 0))
        return self.size

    def clear(self) -> None:
        self.image.paste((0, 0, 0, 0), (0, 0, self.image.width, self.image.height))

    def apply(self, ops: Sequence[DrawOp]) -> None:
        draw = ImageDraw.Draw(self.image)
        for op in ops:
            if isinstance(op, Clear):
                self.clear()
            elif isinstance(op, Rect):
                draw.rectangle(
                    _xyxy(op.x, op.y, op.w, op.h),
                    outline=op.color,
                    width=max(1, int(round(op.line_width))),
                )
            elif isinstance(op, Label):
                x, y, w, h = op.box
                draw.rounded_rectangle(
                    _xyxy(x, y, w, h),
                    radius=op.radius,
                    fill=op.fill,
                    outline=op.border,
                    width=1,
                )
                font = _load_font(op.font_size)
                # text_y is a baseline position
                draw.text(
                    (op.text_x, op.text_y - op.font_size),
                    op.text,
                    fill=op.color,
                    font=font,
                )

    def to_numpy(self) -> np.ndarray:
        return np.asarray(self.image)

    def to_png(self) -> bytes:
        bio = io.BytesIO()
        self.image.save(bio, "PNG")
        return bio.getvalue()


__all__ = [
    "Clear",
    "Rect",
    "Label",
    "DrawOp",
    "MAX_DPR",
    "clamp_dpr",
    "canvas_size_for",
    "label_text",
    "measure_text_pil",
    "render",
    "OverlaySurface",
]
