"""JSON-file storage for the school document.

The whole school (classroom metadata, announcements, assignments,
resources, questions and whiteboards) lives in one JSON file. Reads
normalize the file through the schema; writes normalize again and replace
the file atomically. There is no cross-request locking: two concurrent
read-modify-write cycles resolve as last write wins.
"""
import copy
import json
import logging
import os
import secrets
import tempfile
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from studio.config import DEFAULT_DB_PATH
from studio.models import Whiteboard
from studio.sanitize import sanitize_date, sanitize_number, sanitize_string, sanitize_url
from studio.schema import parse_whiteboard

logger = logging.getLogger(__name__)

SEED_TIMESTAMP = "2026-01-01T00:00:00.000Z"

DEFAULT_CLASSROOM = {
    "name": "Learning Circle",
    "description": (
        "A private class stream for assignments, announcements, shared resources, and questions."
    ),
    "inviteCode": "LEARN-WITH-ME",
    "meetingSchedule": "Flexible schedule. Use announcements for live sessions.",
}

DEFAULT_DB = {
    "classroom": DEFAULT_CLASSROOM,
    "announcements": [
        {
            "id": "announcement-welcome",
            "title": "Welcome to Learning Circle",
            "message": "Start by reading the resources list, then pick one assignment to begin this week.",
            "author": "Instructor",
            "createdAt": SEED_TIMESTAMP,
        },
    ],
    "assignments": [
        {
            "id": "assignment-first-reflection",
            "title": "First Reflection",
            "description": "Write one paragraph about what you want to learn this month.",
            "dueDate": "",
            "points": 10,
            "author": "Instructor",
            "createdAt": SEED_TIMESTAMP,
        },
    ],
    "resources": [
        {
            "id": "resource-community-guide",
            "title": "Community Study Guide",
            "description": "A shared document to track topics and weekly goals.",
            "url": "https://example.com/study-guide",
            "type": "Guide",
            "createdAt": SEED_TIMESTAMP,
        },
    ],
    "questions": [],
    "whiteboards": [],
    "updatedAt": SEED_TIMESTAMP,
}


@dataclass
class SchoolDb:
    classroom: dict = field(default_factory=lambda: dict(DEFAULT_CLASSROOM))
    announcements: list[dict] = field(default_factory=list)
    assignments: list[dict] = field(default_factory=list)
    resources: list[dict] = field(default_factory=list)
    questions: list[dict] = field(default_factory=list)
    whiteboards: list[Whiteboard] = field(default_factory=list)
    updated_at: str = SEED_TIMESTAMP

    def sort_whiteboards(self) -> None:
        self.whiteboards.sort(key=lambda board: board.updated_at, reverse=True)

    def to_dict(self) -> dict:
        return {
            "classroom": dict(self.classroom),
            "announcements": [dict(item) for item in self.announcements],
            "assignments": [dict(item) for item in self.assignments],
            "resources": [dict(item) for item in self.resources],
            "questions": [dict(item) for item in self.questions],
            "whiteboards": [board.to_dict() for board in self.whiteboards],
            "updatedAt": self.updated_at,
        }


def utc_now() -> str:
    """Current UTC time as an ISO string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def create_id(prefix: str) -> str:
    stamp = _base36(int(time.time() * 1000))
    return f"{prefix}-{stamp}-{secrets.token_hex(4)}"


def _base36(number: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    out = ""
    while number:
        number, rem = divmod(number, 36)
        out = digits[rem] + out
    return out or "0"


def _points(value) -> int | float:
    return sanitize_number(value, 0, float("-inf"), float("inf"))


def _parse_items(raw, key: str, parse, keep) -> list[dict]:
    items = raw.get(key)
    if not isinstance(items, list):
        return copy.deepcopy(DEFAULT_DB[key])
    parsed = [parse(item if isinstance(item, dict) else {}) for item in items]
    return [item for item in parsed if keep(item)]


def parse_announcement(item: dict) -> dict:
    return {
        "id": sanitize_string(item.get("id"), 80),
        "title": sanitize_string(item.get("title"), 120),
        "message": sanitize_string(item.get("message"), 1200),
        "author": sanitize_string(item.get("author"), 60),
        "createdAt": sanitize_string(item.get("createdAt"), 40),
    }


def parse_assignment(item: dict) -> dict:
    return {
        "id": sanitize_string(item.get("id"), 80),
        "title": sanitize_string(item.get("title"), 120),
        "description": sanitize_string(item.get("description"), 1200),
        "dueDate": sanitize_date(item.get("dueDate")),
        "points": _points(item.get("points")),
        "author": sanitize_string(item.get("author"), 60),
        "createdAt": sanitize_string(item.get("createdAt"), 40),
    }


def parse_resource(item: dict) -> dict:
    return {
        "id": sanitize_string(item.get("id"), 80),
        "title": sanitize_string(item.get("title"), 120),
        "description": sanitize_string(item.get("description"), 500),
        "url": sanitize_url(item.get("url")),
        "type": sanitize_string(item.get("type"), 40) or "Resource",
        "createdAt": sanitize_string(item.get("createdAt"), 40),
    }


def parse_question(item: dict) -> dict:
    return {
        "id": sanitize_string(item.get("id"), 80),
        "author": sanitize_string(item.get("author"), 60),
        "message": sanitize_string(item.get("message"), 1200),
        "createdAt": sanitize_string(item.get("createdAt"), 40),
    }


def normalize_school_db(raw) -> SchoolDb:
    """Turn arbitrary parsed JSON into a valid ``SchoolDb``."""
    if isinstance(raw, SchoolDb):
        raw = raw.to_dict()
    if not isinstance(raw, dict):
        return normalize_school_db(copy.deepcopy(DEFAULT_DB))

    classroom = dict(DEFAULT_CLASSROOM)
    raw_classroom = raw.get("classroom")
    if isinstance(raw_classroom, dict):
        limits = {"name": 80, "description": 280, "inviteCode": 30, "meetingSchedule": 200}
        for key, limit in limits.items():
            classroom[key] = sanitize_string(raw_classroom.get(key), limit) or classroom[key]

    boards_raw = raw.get("whiteboards")
    boards = []
    if isinstance(boards_raw, list):
        boards = [parse_whiteboard(entry) for entry in boards_raw]
        boards = [board for board in boards if board.id]

    db = SchoolDb(
        classroom=classroom,
        announcements=_parse_items(
            raw, "announcements", parse_announcement,
            lambda item: item["id"] and item["title"] and item["message"],
        ),
        assignments=_parse_items(
            raw, "assignments", parse_assignment,
            lambda item: item["id"] and item["title"],
        ),
        resources=_parse_items(
            raw, "resources", parse_resource,
            lambda item: item["id"] and item["title"] and item["url"],
        ),
        questions=_parse_items(
            raw, "questions", parse_question,
            lambda item: item["id"] and item["author"] and item["message"],
        ),
        whiteboards=boards,
        updated_at=sanitize_string(raw.get("updatedAt"), 40) or SEED_TIMESTAMP,
    )
    db.sort_whiteboards()
    return db


def default_school_db() -> SchoolDb:
    return normalize_school_db(copy.deepcopy(DEFAULT_DB))


def write_school_db(db_path: str, state) -> SchoolDb:
    """Normalize ``state`` and atomically replace the file at ``db_path``."""
    normalized = normalize_school_db(state)
    path = Path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(normalized.to_dict(), fh, indent=2)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return normalized


def read_school_db(db_path: str = DEFAULT_DB_PATH) -> SchoolDb:
    """Load the school document, reseeding when the file is missing or corrupt."""
    try:
        raw = json.loads(Path(db_path).read_text(encoding="utf-8"))
    except FileNotFoundError:
        logger.info("No school database at %s, seeding defaults", db_path)
        return write_school_db(db_path, default_school_db())
    except (OSError, ValueError) as exc:
        logger.warning("Unreadable school database at %s (%s), reseeding", db_path, exc)
        return write_school_db(db_path, default_school_db())
    return normalize_school_db(raw)
