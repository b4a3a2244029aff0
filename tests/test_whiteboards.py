# tests/test_whiteboards.py
from unittest.mock import patch

import pytest

from studio.errors import NotFoundError, ValidationError
from studio.whiteboards import create_whiteboard, get_whiteboard, list_whiteboards, save_whiteboard

PNG_PREVIEW = "data:image/png;base64,iVBORw0KGgo="


def _stroke(*points, **extra):
    return {"paths": [{"x": x, "y": y} for x, y in points], "drawMode": True, **extra}


def test_create_seeds_one_empty_page(tmp_db):
    created = create_whiteboard(tmp_db, title="Algebra Notes")
    board = created["whiteboard"]
    assert board.title == "Algebra Notes"
    assert board.page_order == ["page-1"]
    assert board.page_drawings == {"page-1": []}
    assert board.active_page_key == "page-1"
    assert board.created_at == board.updated_at
    assert created["summary"]["id"] == board.id


def test_create_defaults_title_and_author(tmp_db):
    board = create_whiteboard(tmp_db, title="   ")["whiteboard"]
    assert board.title == "Untitled Whiteboard"
    assert board.author == "Member"


def test_create_then_get_round_trip(tmp_db):
    """Three strokes saved on page-1 come back exactly."""
    board = create_whiteboard(tmp_db, title="Algebra Notes")["whiteboard"]
    strokes = [_stroke((1, 2), (3, 4)), _stroke((5, 6)), _stroke((7.5, 8.25), (9, 10), strokeColor="#ff0000")]
    save_whiteboard(tmp_db, board.id, page_drawings={"page-1": strokes})

    reloaded = get_whiteboard(tmp_db, board.id)
    assert len(reloaded.page_drawings["page-1"]) == 3
    assert reloaded.page_order == ["page-1"]
    assert [s.to_dict() for s in reloaded.page_drawings["page-1"]] == [
        {"paths": s["paths"], "strokeWidth": 4, "strokeColor": s.get("strokeColor", "#111111"), "drawMode": True}
        for s in strokes
    ]


def test_get_unknown_or_blank_id_is_not_found(tmp_db):
    with pytest.raises(NotFoundError):
        get_whiteboard(tmp_db, "whiteboard-missing")
    with pytest.raises(NotFoundError):
        get_whiteboard(tmp_db, "  ")


def test_save_requires_id(tmp_db):
    with pytest.raises(ValidationError):
        save_whiteboard(tmp_db, "", title="X")
    with pytest.raises(ValidationError):
        save_whiteboard(tmp_db, None, title="X")


def test_save_unknown_id_is_not_found(tmp_db):
    with pytest.raises(NotFoundError):
        save_whiteboard(tmp_db, "whiteboard-nope", title="X")


def test_partial_save_keeps_strokes(tmp_db):
    """Saving only a title never erases pages, labels or preview."""
    board = create_whiteboard(
        tmp_db,
        title="Lesson",
        page_drawings={"page-1": [_stroke((1, 1))], "page-2": [_stroke((2, 2)), _stroke((3, 3))]},
        page_labels={"page-2": "Diagram"},
        active_page_key="page-2",
        preview_image=PNG_PREVIEW,
    )["whiteboard"]

    saved = save_whiteboard(tmp_db, board.id, title="X")["whiteboard"]
    assert saved.title == "X"
    assert saved.page_order == ["page-1", "page-2"]
    assert saved.page_labels == {"page-1": "Page 1", "page-2": "Diagram"}
    assert len(saved.page_drawings["page-1"]) == 1
    assert len(saved.page_drawings["page-2"]) == 2
    assert saved.active_page_key == "page-2"
    assert saved.preview_image == PNG_PREVIEW
    assert saved.created_at == board.created_at


def test_save_paths_overwrites_active_page_only(tmp_db):
    board = create_whiteboard(
        tmp_db,
        page_drawings={"page-1": [_stroke((1, 1))], "page-2": [_stroke((2, 2))]},
        active_page_key="page-2",
    )["whiteboard"]
    saved = save_whiteboard(tmp_db, board.id, paths=[_stroke((9, 9)), _stroke((8, 8))])["whiteboard"]
    assert len(saved.page_drawings["page-2"]) == 2
    assert saved.page_drawings["page-1"][0].points[0].x == 1


def test_save_adds_new_page_keys(tmp_db):
    board = create_whiteboard(tmp_db)["whiteboard"]
    saved = save_whiteboard(
        tmp_db, board.id,
        page_drawings={"page-2": [_stroke((4, 4))]},
        page_order=["page-2", "page-1"],
        active_page_key="page-2",
    )["whiteboard"]
    assert saved.page_order == ["page-2", "page-1"]
    assert saved.active_page_key == "page-2"
    assert saved.page_drawings["page-1"] == []


def test_save_unknown_active_key_keeps_previous(tmp_db):
    board = create_whiteboard(tmp_db)["whiteboard"]
    saved = save_whiteboard(tmp_db, board.id, active_page_key="nowhere")["whiteboard"]
    assert saved.active_page_key == "page-1"
    assert saved.active_page_key in saved.page_order


def test_save_empty_preview_clears_it(tmp_db):
    board = create_whiteboard(tmp_db, preview_image=PNG_PREVIEW)["whiteboard"]
    saved = save_whiteboard(tmp_db, board.id, preview_image="")["whiteboard"]
    assert saved.preview_image == ""


def test_list_sorted_by_updated_at(tmp_db):
    with patch("studio.whiteboards.utc_now", side_effect=[
        "2026-02-01T10:00:00.000Z", "2026-02-01T11:00:00.000Z", "2026-02-01T12:00:00.000Z",
    ]):
        first = create_whiteboard(tmp_db, title="First")["whiteboard"]
        create_whiteboard(tmp_db, title="Second")
        save_whiteboard(tmp_db, first.id, title="First again")

    titles = [b["title"] for b in list_whiteboards(tmp_db)]
    assert titles == ["First again", "Second"]


def test_list_returns_summaries(tmp_db):
    create_whiteboard(tmp_db, title="Board", page_drawings={"a": [_stroke((1, 1))], "b": []})
    summary = list_whiteboards(tmp_db)[0]
    assert set(summary) == {
        "id", "title", "author", "createdAt", "updatedAt",
        "pathCount", "pageCount", "activePageKey", "previewImage",
    }
    assert summary["pathCount"] == 1
    assert summary["pageCount"] == 2
