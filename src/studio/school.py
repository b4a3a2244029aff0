"""Classroom stream: announcements, assignments, resources and questions."""
from studio.errors import ValidationError
from studio.sanitize import sanitize_date, sanitize_number, sanitize_string, sanitize_url
from studio.store import create_id, read_school_db, utc_now, write_school_db

MAX_ANNOUNCEMENTS = 60
MAX_ASSIGNMENTS = 120
MAX_RESOURCES = 120
MAX_QUESTIONS = 200


def read_school(db_path: str) -> dict:
    """The school document with whiteboard summaries in place of full boards."""
    db = read_school_db(db_path)
    school = db.to_dict()
    school["whiteboards"] = [board.summary() for board in db.whiteboards]
    return school


def add_announcement(db_path: str, title, message, author=None) -> dict:
    title = sanitize_string(title, 120)
    message = sanitize_string(message, 1200)
    if not title or not message:
        raise ValidationError("Title and message are required")
    now = utc_now()
    db = read_school_db(db_path)
    item = {
        "id": create_id("announcement"),
        "title": title,
        "message": message,
        "author": sanitize_string(author, 60) or "Instructor",
        "createdAt": now,
    }
    db.announcements = [item, *db.announcements][:MAX_ANNOUNCEMENTS]
    db.updated_at = now
    write_school_db(db_path, db)
    return item


def add_assignment(db_path: str, title, description=None, due_date=None, points=None, author=None) -> dict:
    title = sanitize_string(title, 120)
    if not title:
        raise ValidationError("Assignment title is required")
    now = utc_now()
    db = read_school_db(db_path)
    item = {
        "id": create_id("assignment"),
        "title": title,
        "description": sanitize_string(description, 1200),
        "dueDate": sanitize_date(due_date),
        "points": round(sanitize_number(points, 0, 0, float("inf"))),
        "author": sanitize_string(author, 60) or "Instructor",
        "createdAt": now,
    }
    db.assignments = [item, *db.assignments][:MAX_ASSIGNMENTS]
    db.updated_at = now
    write_school_db(db_path, db)
    return item


def add_resource(db_path: str, title, url, description=None, type=None) -> dict:
    title = sanitize_string(title, 120)
    if not title or not sanitize_string(url):
        raise ValidationError("Resource title and URL are required")
    safe_url = sanitize_url(url)
    if not safe_url:
        raise ValidationError("Resource URL must be an http or https link")
    now = utc_now()
    db = read_school_db(db_path)
    item = {
        "id": create_id("resource"),
        "title": title,
        "description": sanitize_string(description, 500),
        "url": safe_url,
        "type": sanitize_string(type, 40) or "Resource",
        "createdAt": now,
    }
    db.resources = [item, *db.resources][:MAX_RESOURCES]
    db.updated_at = now
    write_school_db(db_path, db)
    return item


def add_question(db_path: str, message, author=None) -> dict:
    message = sanitize_string(message, 1200)
    if not message:
        raise ValidationError("Question text is required")
    now = utc_now()
    db = read_school_db(db_path)
    item = {
        "id": create_id("question"),
        "author": sanitize_string(author, 60) or "Member",
        "message": message,
        "createdAt": now,
    }
    db.questions = [item, *db.questions][:MAX_QUESTIONS]
    db.updated_at = now
    write_school_db(db_path, db)
    return item
