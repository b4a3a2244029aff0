# tests/test_render.py
import io

from PIL import Image

from studio.models import Point, Stroke
from studio.render import DEFAULT_CANVAS_SIZE, MAX_RENDER_SIZE, png_bytes, preview_data_url, render_strokes


def _line(draw_mode=True, color="#000000", width=6):
    return Stroke(points=[Point(10, 10), Point(90, 10)], stroke_width=width, stroke_color=color, draw_mode=draw_mode)


def test_blank_canvas_is_white():
    image = render_strokes([])
    assert image.size == DEFAULT_CANVAS_SIZE
    assert image.getpixel((5, 5)) == (255, 255, 255, 255)


def test_stroke_is_drawn():
    image = render_strokes([_line()])
    assert image.getpixel((50, 10)) == (0, 0, 0, 255)


def test_eraser_clears_ink():
    image = render_strokes([_line(), _line(draw_mode=False, width=12)])
    assert image.getpixel((50, 10)) == (255, 255, 255, 255)


def test_canvas_grows_to_fit_far_points():
    far = Stroke(points=[Point(1500, 900)], stroke_width=4)
    assert render_strokes([far]).size == (1505, 905)


def test_canvas_size_is_capped():
    far = Stroke(points=[Point(100000, 100000), Point(-100000, 50)], stroke_width=60)
    assert render_strokes([far]).size == (MAX_RENDER_SIZE, MAX_RENDER_SIZE)


def test_background_sets_size_and_shows_through_eraser():
    bg = Image.new("RGBA", (200, 100), (255, 0, 0, 255))
    image = render_strokes([_line(), _line(draw_mode=False, width=12)], png_bytes(bg))
    assert image.size == (200, 100)
    assert image.getpixel((50, 10)) == (255, 0, 0, 255)


def test_invalid_color_falls_back_to_default():
    image = render_strokes([_line(color="not-a-color")])
    assert image.getpixel((50, 10)) == (17, 17, 17, 255)


def test_single_point_stroke_is_a_dot():
    dot = Stroke(points=[Point(40, 40)], stroke_width=10, stroke_color="#000000")
    assert render_strokes([dot]).getpixel((40, 40)) == (0, 0, 0, 255)


def test_png_bytes_round_trip():
    data = png_bytes(render_strokes([_line()]))
    assert Image.open(io.BytesIO(data)).size == DEFAULT_CANVAS_SIZE


def test_preview_data_url_is_a_small_png():
    url = preview_data_url(render_strokes([_line()]))
    assert url.startswith("data:image/png;base64,")
    assert len(url) < 650_000
