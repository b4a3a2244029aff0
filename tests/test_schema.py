# tests/test_schema.py
from studio.models import Whiteboard
from studio.schema import (
    DEFAULT_PAGE_KEY,
    MAX_POINTS_PER_STROKE,
    MAX_STROKES_PER_PAGE,
    parse_page_labels,
    parse_page_order,
    parse_stroke,
    parse_whiteboard,
)


def _stroke(*points, **extra):
    return {"paths": [{"x": x, "y": y} for x, y in points], **extra}


def test_parse_stroke_defaults():
    stroke = parse_stroke(_stroke((1, 2), (3, 4)))
    assert [(p.x, p.y) for p in stroke.points] == [(1, 2), (3, 4)]
    assert stroke.stroke_width == 4
    assert stroke.stroke_color == "#111111"
    assert stroke.draw_mode is False


def test_parse_stroke_clamps_values():
    stroke = parse_stroke(_stroke((500_000, -500_000), strokeWidth=300, strokeColor="blue", drawMode=True))
    assert stroke.points[0].x == 100_000
    assert stroke.points[0].y == -100_000
    assert stroke.stroke_width == 60
    assert stroke.stroke_color == "#111111"
    assert stroke.draw_mode is True


def test_parse_stroke_without_points_is_dropped():
    assert parse_stroke({"paths": []}) is None
    assert parse_stroke({"strokeWidth": 3}) is None
    assert parse_stroke("garbage") is None


def test_parse_stroke_caps_points():
    stroke = parse_stroke(_stroke(*[(i, i) for i in range(MAX_POINTS_PER_STROKE + 50)]))
    assert len(stroke.points) == MAX_POINTS_PER_STROKE


def test_parse_page_order_dedups_and_appends_missing():
    drawings = {"a": [], "b": [], "c": []}
    assert parse_page_order(["b", "b", "zzz", "a"], drawings) == ["b", "a", "c"]
    assert parse_page_order(None, drawings) == ["a", "b", "c"]


def test_parse_page_labels_defaults():
    labels = parse_page_labels({"b": "Intro"}, ["a", "b"])
    assert labels == {"a": "Page 1", "b": "Intro"}


def test_parse_whiteboard_empty_gets_default_page():
    board = parse_whiteboard({})
    assert board.page_order == [DEFAULT_PAGE_KEY]
    assert board.active_page_key == DEFAULT_PAGE_KEY
    assert board.page_labels == {DEFAULT_PAGE_KEY: "Page 1"}
    assert board.title == "Untitled Whiteboard"
    assert board.author == "Member"


def test_parse_whiteboard_legacy_paths_become_first_page():
    board = parse_whiteboard({"id": "wb-1", "paths": [_stroke((1, 1), (2, 2))]})
    assert len(board.page_drawings[DEFAULT_PAGE_KEY]) == 1


def test_parse_whiteboard_active_key_must_be_in_order():
    board = parse_whiteboard({
        "pageDrawings": {"p1": [], "p2": []},
        "pageOrder": ["p2", "p1"],
        "activePageKey": "missing",
    })
    assert board.active_page_key == "p2"


def test_parse_whiteboard_caps_strokes_per_page():
    strokes = [_stroke((i, i)) for i in range(MAX_STROKES_PER_PAGE + 10)]
    board = parse_whiteboard({"pageDrawings": {"page-1": strokes}})
    assert len(board.page_drawings["page-1"]) == MAX_STROKES_PER_PAGE


def test_parse_whiteboard_drops_bad_preview():
    board = parse_whiteboard({"previewImage": "https://example.com/x.png"})
    assert board.preview_image == ""


def test_parse_whiteboard_accepts_board_instance():
    original = parse_whiteboard({"id": "wb-2", "title": "Notes", "pageDrawings": {"x": [_stroke((5, 5))]}})
    again = parse_whiteboard(original)
    assert isinstance(again, Whiteboard)
    assert again.to_dict() == original.to_dict()


def test_to_dict_mirrors_active_page_as_paths():
    board = parse_whiteboard({
        "pageDrawings": {"p1": [_stroke((1, 1))], "p2": [_stroke((2, 2)), _stroke((3, 3))]},
        "activePageKey": "p2",
    })
    data = board.to_dict()
    assert data["paths"] == data["pageDrawings"]["p2"]
    assert board.summary()["pathCount"] == 3
    assert board.summary()["pageCount"] == 2
