"""Render the play field to PNG.

Literal coordinates:
  Origin (0, 0) = top-left of the play area; x right, y down.
  A circle's (x, y) is the top-left of its CIRCLE_SIZE bounding box.
  Circles are drawn highest number first so lower numbers end up on top.
"""

import base64
import io
import os
from typing import Sequence

from PIL import Image, ImageDraw, ImageFont

from .circles import CIRCLE_SIZE, Circle
from .display import (
    COLOR_CLICKED,
    COLOR_DEFAULT,
    COLOR_WRONG,
    circle_color,
    countdown_label,
    text_color,
    z_index,
)

DEFAULT_AREA_WIDTH = 800
DEFAULT_AREA_HEIGHT = 600

# Outline width as a fraction of the circle diameter
K = 1 / 30

BACKGROUND = (249, 250, 251)
FILLS = {
    COLOR_DEFAULT: (255, 255, 255),
    COLOR_CLICKED: (59, 130, 246),
    COLOR_WRONG: (239, 68, 68),
}
TEXT = {"white": (255, 255, 255), "black": (0, 0, 0)}


def _line_width() -> int:
    return max(1, round(CIRCLE_SIZE * K))


def circle_box(circle: Circle) -> tuple[int, int, int, int]:
    """Bounding box (x0, y0, x1, y1) of a circle in pixels."""
    x0, y0 = int(circle.x), int(circle.y)
    return x0, y0, x0 + CIRCLE_SIZE - 1, y0 + CIRCLE_SIZE - 1


def _draw_centered(
    draw: ImageDraw.ImageDraw, cx: float, cy: float, text: str, fill, font
) -> None:
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    draw.text((cx - (right - left) / 2 - left, cy - (bottom - top) / 2 - top), text, fill=fill, font=font)


def render_field_screenshot(
    circles: Sequence[Circle],
    now: float,
    width: int = DEFAULT_AREA_WIDTH,
    height: int = DEFAULT_AREA_HEIGHT,
    save_path: str | None = None,
) -> str:
    """Draw every circle with its number and countdown. Returns base64 PNG."""
    img = Image.new("RGB", (int(width), int(height)), BACKGROUND)
    draw = ImageDraw.Draw(img)
    font = ImageFont.load_default()
    outline = (0, 0, 0)

    for circle in sorted(circles, key=lambda c: z_index(c.number)):
        color = circle_color(circle.clicked, circle.wrong)
        box = circle_box(circle)
        draw.ellipse(
            box,
            fill=FILLS[color],
            outline=outline if color == COLOR_DEFAULT else None,
            width=_line_width(),
        )
        cx = (box[0] + box[2]) / 2
        cy = (box[1] + box[3]) / 2
        fg = TEXT[text_color(circle)]
        label = countdown_label(circle, now)
        if label is None:
            _draw_centered(draw, cx, cy, str(circle.number), fg, font)
        else:
            _draw_centered(draw, cx, cy - 7, str(circle.number), fg, font)
            _draw_centered(draw, cx, cy + 9, f"{label}s", fg, font)

    buf = io.BytesIO()
    img.save(buf, format="PNG")
    png_bytes = buf.getvalue()
    if save_path:
        d = os.path.dirname(save_path)
        if d:
            os.makedirs(d, exist_ok=True)
        with open(save_path, "wb") as f:
            f.write(png_bytes)
    return base64.b64encode(png_bytes).decode("ascii")
