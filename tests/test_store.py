# tests/test_store.py
import json
import logging
import re
from pathlib import Path

from studio.store import (
    DEFAULT_DB,
    create_id,
    normalize_school_db,
    read_school_db,
    utc_now,
    write_school_db,
)


def test_read_missing_file_seeds_default(tmp_db):
    db = read_school_db(tmp_db)
    assert db.classroom["name"] == "Learning Circle"
    assert db.announcements[0]["id"] == "announcement-welcome"
    assert db.whiteboards == []
    assert Path(tmp_db).exists()


def test_read_corrupt_file_reseeds(tmp_db, caplog):
    Path(tmp_db).write_text("{not json")
    with caplog.at_level(logging.WARNING, logger="studio.store"):
        db = read_school_db(tmp_db)
    assert db.assignments[0]["id"] == "assignment-first-reflection"
    assert "reseeding" in caplog.text
    assert json.loads(Path(tmp_db).read_text())["classroom"]["inviteCode"] == "LEARN-WITH-ME"


def test_write_then_read_round_trip(tmp_db):
    state = normalize_school_db(DEFAULT_DB)
    state.classroom["name"] = "Evening Study"
    write_school_db(tmp_db, state)
    assert read_school_db(tmp_db).classroom["name"] == "Evening Study"


def test_write_leaves_no_temp_files(tmp_db):
    write_school_db(tmp_db, DEFAULT_DB)
    leftovers = [p for p in Path(tmp_db).parent.iterdir() if p.name != Path(tmp_db).name]
    assert leftovers == []


def test_normalize_drops_incomplete_items():
    db = normalize_school_db({
        "announcements": [{"id": "a1", "title": "Hi"}, {"id": "a2", "title": "Hi", "message": "There"}],
        "resources": [{"id": "r1", "title": "Bad", "url": "javascript:x"}],
        "whiteboards": [{"title": "No id"}, {"id": "wb-1"}],
    })
    assert [a["id"] for a in db.announcements] == ["a2"]
    assert db.resources == []
    assert [b.id for b in db.whiteboards] == ["wb-1"]


def test_normalize_non_dict_gives_default():
    db = normalize_school_db(["nope"])
    assert db.classroom["name"] == "Learning Circle"


def test_create_id_format():
    assert re.fullmatch(r"whiteboard-[0-9a-z]+-[0-9a-f]{8}", create_id("whiteboard"))


def test_utc_now_format():
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", utc_now())
