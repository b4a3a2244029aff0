"""Whiteboard operations: list, get, create and save."""
import logging
from collections.abc import Mapping

from studio.errors import NotFoundError, ValidationError
from studio.models import DEFAULT_AUTHOR, DEFAULT_TITLE, Whiteboard
from studio.sanitize import (
    sanitize_data_url_image,
    sanitize_page_key,
    sanitize_string,
)
from studio.schema import (
    parse_page_labels,
    parse_page_order,
    parse_strokes,
    parse_whiteboard,
)
from studio.store import create_id, read_school_db, utc_now, write_school_db

logger = logging.getLogger(__name__)

MAX_WHITEBOARDS = 120


def list_whiteboards(db_path: str) -> list[dict]:
    """Summaries of every board, most recently edited first."""
    db = read_school_db(db_path)
    return [board.summary() for board in db.whiteboards]


def get_whiteboard(db_path: str, whiteboard_id) -> Whiteboard:
    board_id = sanitize_string(whiteboard_id, 80)
    if not board_id:
        raise NotFoundError("Whiteboard not found")
    db = read_school_db(db_path)
    for board in db.whiteboards:
        if board.id == board_id:
            return parse_whiteboard(board)
    raise NotFoundError("Whiteboard not found")


def create_whiteboard(
    db_path: str,
    title=None,
    author=None,
    paths=None,
    page_drawings=None,
    page_order=None,
    page_labels=None,
    active_page_key=None,
    preview_image=None,
) -> dict:
    """Create a board. Without supplied pages it starts with one empty page."""
    now = utc_now()
    db = read_school_db(db_path)
    board = parse_whiteboard({
        "id": create_id("whiteboard"),
        "title": sanitize_string(title, 120) or DEFAULT_TITLE,
        "author": sanitize_string(author, 60) or DEFAULT_AUTHOR,
        "paths": paths if isinstance(paths, list) else [],
        "pageDrawings": page_drawings,
        "pageOrder": page_order,
        "pageLabels": page_labels,
        "activePageKey": active_page_key,
        "previewImage": preview_image,
        "createdAt": now,
        "updatedAt": now,
    })
    db.whiteboards = [board, *db.whiteboards][:MAX_WHITEBOARDS]
    db.updated_at = now
    write_school_db(db_path, db)
    logger.info("Created whiteboard %s (%r)", board.id, board.title)
    return {"whiteboard": board, "summary": board.summary()}


def _merge_page_drawings(existing: Whiteboard, supplied) -> dict:
    drawings = {key: list(strokes) for key, strokes in existing.page_drawings.items()}
    if isinstance(supplied, Mapping):
        for key, strokes in supplied.items():
            safe_key = sanitize_page_key(key)
            if safe_key:
                drawings[safe_key] = parse_strokes(strokes)
    return drawings


def save_whiteboard(
    db_path: str,
    whiteboard_id,
    title=None,
    author=None,
    paths=None,
    page_drawings=None,
    page_order=None,
    page_labels=None,
    active_page_key=None,
    preview_image=None,
) -> dict:
    """Merge the supplied fields over a stored board.

    ``None`` means "not supplied": the stored value is kept. Supplied pages
    replace the stroke lists of the same keys and new keys add pages.
    A supplied ``paths`` list replaces the active page's strokes. An empty
    ``preview_image`` string clears the preview.
    """
    board_id = sanitize_string(whiteboard_id, 80)
    if not board_id:
        raise ValidationError("Whiteboard id is required")

    now = utc_now()
    db = read_school_db(db_path)
    index = next((i for i, board in enumerate(db.whiteboards) if board.id == board_id), None)
    if index is None:
        raise NotFoundError("Whiteboard not found")
    existing = db.whiteboards[index]

    drawings = _merge_page_drawings(existing, page_drawings)
    order = parse_page_order(
        page_order if isinstance(page_order, list) else existing.page_order, drawings
    )
    labels = parse_page_labels(
        page_labels if isinstance(page_labels, Mapping) else existing.page_labels, order
    )
    candidate = sanitize_page_key(active_page_key)
    if candidate in order:
        active = candidate
    elif existing.active_page_key in order:
        active = existing.active_page_key
    else:
        active = order[0]

    if isinstance(paths, list):
        drawings[active] = parse_strokes(paths)

    preview = existing.preview_image
    if isinstance(preview_image, str):
        preview = sanitize_data_url_image(preview_image) if preview_image.strip() else ""

    board = parse_whiteboard({
        "id": existing.id,
        "title": sanitize_string(title, 120) or existing.title or DEFAULT_TITLE,
        "author": sanitize_string(author, 60) or existing.author or DEFAULT_AUTHOR,
        "pageDrawings": {key: [s.to_dict() for s in strokes] for key, strokes in drawings.items()},
        "pageOrder": order,
        "pageLabels": labels,
        "activePageKey": active,
        "previewImage": preview,
        "createdAt": existing.created_at,
        "updatedAt": now,
    })

    db.whiteboards[index] = board
    db.sort_whiteboards()
    db.updated_at = now
    write_school_db(db_path, db)
    logger.info("Saved whiteboard %s (%d pages, %d strokes)", board.id, len(board.page_order), board.path_count)
    return {"whiteboard": board, "summary": board.summary()}
