"""Flatten strokes into raster images with Pillow."""
import base64
import io
from typing import Optional

from PIL import Image, ImageColor, ImageDraw

from studio.models import Stroke
from studio.sanitize import DEFAULT_STROKE_COLOR, MAX_PREVIEW_LENGTH

DEFAULT_CANVAS_SIZE = (1200, 800)
CANVAS_COLOR = (255, 255, 255, 255)
PREVIEW_MAX_WIDTH = 640
# raster side limit; ink beyond it is clipped
MAX_RENDER_SIZE = 4096


def _color(value: str) -> tuple:
    try:
        return ImageColor.getcolor(value, "RGBA")
    except ValueError:
        return ImageColor.getcolor(DEFAULT_STROKE_COLOR, "RGBA")


def _canvas_size(strokes: list[Stroke], background: Optional[Image.Image]) -> tuple[int, int]:
    if background is not None:
        return background.size
    width, height = DEFAULT_CANVAS_SIZE
    for stroke in strokes:
        for p in stroke.points:
            width = max(width, int(p.x + stroke.stroke_width) + 1)
            height = max(height, int(p.y + stroke.stroke_width) + 1)
    return min(width, MAX_RENDER_SIZE), min(height, MAX_RENDER_SIZE)


def render_strokes(strokes: list[Stroke], background: Optional[bytes] = None) -> Image.Image:
    """Draw canonical strokes, optionally over a PNG background."""
    bg_image = Image.open(io.BytesIO(background)).convert("RGBA") if background else None
    size = _canvas_size(strokes, bg_image)
    ink = Image.new("RGBA", size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(ink)
    for stroke in strokes:
        # eraser strokes clear ink pixels and reveal whatever is underneath
        fill = _color(stroke.stroke_color) if stroke.draw_mode else (0, 0, 0, 0)
        width = max(1, int(round(stroke.stroke_width)))
        coords = [(p.x, p.y) for p in stroke.points]
        if len(coords) == 1:
            x, y = coords[0]
            r = width / 2
            draw.ellipse((x - r, y - r, x + r, y + r), fill=fill)
        else:
            draw.line(coords, fill=fill, width=width, joint="curve")
    base = bg_image if bg_image is not None else Image.new("RGBA", size, CANVAS_COLOR)
    return Image.alpha_composite(base, ink)


def png_bytes(image: Image.Image) -> bytes:
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


def to_data_url(data: bytes, mime: str = "image/png") -> str:
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def preview_data_url(image: Image.Image) -> str:
    """A thumbnail data URL small enough to pass the store's preview check."""
    thumb = image.copy()
    thumb.thumbnail((PREVIEW_MAX_WIDTH, PREVIEW_MAX_WIDTH))
    url = to_data_url(png_bytes(thumb))
    if len(url) <= MAX_PREVIEW_LENGTH:
        return url
    buf = io.BytesIO()
    thumb.convert("RGB").save(buf, format="JPEG", quality=70)
    url = to_data_url(buf.getvalue(), "image/jpeg")
    return url if len(url) <= MAX_PREVIEW_LENGTH else ""
