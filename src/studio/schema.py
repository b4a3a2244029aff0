"""Deserialization of whiteboard documents at the store boundary.

``parse_whiteboard`` is the one place raw JSON becomes a ``Whiteboard``.
Whatever it is given, the result satisfies the document invariants:

* ``page_order`` has no duplicates and lists every key of ``page_drawings``;
* every key in ``page_order`` has a label;
* ``active_page_key`` is a member of ``page_order``;
* at most ``MAX_STROKES_PER_PAGE`` strokes per page and
  ``MAX_POINTS_PER_STROKE`` points per stroke.

Malformed nested structures fall back to a single empty ``page-1``.
"""
from collections.abc import Mapping

from studio.models import DEFAULT_AUTHOR, DEFAULT_TITLE, Point, Stroke, Whiteboard
from studio.sanitize import (
    sanitize_data_url_image,
    sanitize_number,
    sanitize_page_key,
    sanitize_string,
    sanitize_stroke_color,
)

DEFAULT_PAGE_KEY = "page-1"
MAX_STROKES_PER_PAGE = 350
MAX_POINTS_PER_STROKE = 2400
COORDINATE_LIMIT = 100_000


def _get(entry, key, default=None):
    if isinstance(entry, Mapping):
        return entry.get(key, default)
    return default


def parse_point(raw) -> Point:
    return Point(
        x=sanitize_number(_get(raw, "x"), 0, -COORDINATE_LIMIT, COORDINATE_LIMIT),
        y=sanitize_number(_get(raw, "y"), 0, -COORDINATE_LIMIT, COORDINATE_LIMIT),
    )


def parse_stroke(raw) -> Stroke | None:
    if isinstance(raw, Stroke):
        raw = raw.to_dict()
    points_raw = _get(raw, "paths")
    if not isinstance(points_raw, list):
        return None
    points = [parse_point(p) for p in points_raw[:MAX_POINTS_PER_STROKE]]
    if not points:
        return None
    return Stroke(
        points=points,
        stroke_width=sanitize_number(_get(raw, "strokeWidth"), 4, 1, 60),
        stroke_color=sanitize_stroke_color(_get(raw, "strokeColor")),
        draw_mode=bool(_get(raw, "drawMode")),
    )


def parse_strokes(value) -> list[Stroke]:
    if not isinstance(value, list):
        return []
    strokes = []
    for raw in value[:MAX_STROKES_PER_PAGE]:
        stroke = parse_stroke(raw)
        if stroke is not None:
            strokes.append(stroke)
    return strokes


def parse_page_drawings(value, fallback_paths=None) -> dict[str, list[Stroke]]:
    drawings: dict[str, list[Stroke]] = {}
    if isinstance(value, Mapping):
        for key, paths in value.items():
            safe_key = sanitize_page_key(key)
            if not safe_key:
                continue
            drawings[safe_key] = parse_strokes(paths)
    if not drawings:
        drawings[DEFAULT_PAGE_KEY] = parse_strokes(fallback_paths)
    return drawings


def parse_page_order(value, drawings: Mapping) -> list[str]:
    drawing_keys = list(drawings.keys())
    if not isinstance(value, list):
        return drawing_keys
    order: list[str] = []
    for entry in value:
        key = sanitize_page_key(entry)
        if key and key in drawings and key not in order:
            order.append(key)
    for key in drawing_keys:
        if key not in order:
            order.append(key)
    return order


def parse_page_labels(value, page_order: list[str]) -> dict[str, str]:
    raw = value if isinstance(value, Mapping) else {}
    return {
        key: sanitize_string(raw.get(key), 120) or f"Page {idx}"
        for idx, key in enumerate(page_order, 1)
    }


def parse_whiteboard(entry) -> Whiteboard:
    """Build an invariant-holding ``Whiteboard`` from raw JSON (or a board)."""
    if isinstance(entry, Whiteboard):
        entry = entry.to_dict()
    drawings = parse_page_drawings(_get(entry, "pageDrawings"), _get(entry, "paths"))
    order = parse_page_order(_get(entry, "pageOrder"), drawings)
    labels = parse_page_labels(_get(entry, "pageLabels"), order)
    candidate = sanitize_page_key(_get(entry, "activePageKey"))
    active = candidate if candidate in order else order[0]
    return Whiteboard(
        id=sanitize_string(_get(entry, "id"), 80),
        title=sanitize_string(_get(entry, "title"), 120) or DEFAULT_TITLE,
        author=sanitize_string(_get(entry, "author"), 60) or DEFAULT_AUTHOR,
        page_drawings=drawings,
        page_order=order,
        page_labels=labels,
        active_page_key=active,
        preview_image=sanitize_data_url_image(_get(entry, "previewImage")),
        created_at=sanitize_string(_get(entry, "createdAt"), 40),
        updated_at=sanitize_string(_get(entry, "updatedAt"), 40),
    )
