# tests/test_mastery.py
from datetime import datetime, timedelta, timezone

from studio.mastery import (
    MAX_STRENGTH,
    correct_rate,
    format_timestamp,
    is_due,
    parse_timestamp,
    profile_from_dict,
    update_profile,
)
from studio.models import MasteryProfile

NOW = datetime(2026, 3, 1, 12, 0, 0, 123456, tzinfo=timezone.utc)


def test_first_correct_answer():
    profile = update_profile(MasteryProfile(), True, NOW)
    assert profile.attempts == 1
    assert profile.correct == 1
    assert profile.strength == 1
    assert profile.streak == 1
    assert profile.last_result == "correct"
    assert profile.last_seen == "2026-03-01T12:00:00.123Z"
    assert profile.due_at == "2026-03-01T18:00:00.123Z"


def test_wrong_answer_drops_strength_and_resets_streak():
    profile = MasteryProfile(attempts=4, correct=4, strength=3, streak=4)
    updated = update_profile(profile, False, NOW)
    assert updated.strength == 2
    assert updated.streak == 0
    assert updated.correct == 4
    assert parse_timestamp(updated.due_at) - parse_timestamp(updated.last_seen) == timedelta(days=1)


def test_strength_is_clamped():
    top = update_profile(MasteryProfile(strength=MAX_STRENGTH), True, NOW)
    assert top.strength == MAX_STRENGTH
    assert parse_timestamp(top.due_at) - parse_timestamp(top.last_seen) == timedelta(days=14)
    bottom = update_profile(MasteryProfile(strength=0), False, NOW)
    assert bottom.strength == 0
    assert bottom.due_at == bottom.last_seen


def test_update_does_not_mutate_input():
    profile = MasteryProfile()
    update_profile(profile, True, NOW)
    assert profile.attempts == 0


def test_is_due():
    assert is_due(MasteryProfile(), NOW)
    assert is_due(MasteryProfile(due_at="2026-03-01T11:00:00.000Z"), NOW)
    assert not is_due(MasteryProfile(due_at="2026-03-02T11:00:00.000Z"), NOW)


def test_timestamps():
    assert format_timestamp(NOW) == "2026-03-01T12:00:00.123Z"
    assert parse_timestamp("2026-03-01T12:00:00.123Z") == NOW.replace(microsecond=123000)
    assert parse_timestamp("yesterday") is None
    assert parse_timestamp(None) is None


def test_profile_from_dict_sanitizes():
    profile = profile_from_dict({"attempts": -3, "correct": "many", "strength": 9, "lastResult": ""})
    assert profile.attempts == 0
    assert profile.correct == 0
    assert profile.strength == MAX_STRENGTH
    assert profile.last_result is None
    assert profile_from_dict("junk") == MasteryProfile()


def test_correct_rate():
    assert correct_rate(MasteryProfile()) == 0.0
    assert correct_rate(MasteryProfile(attempts=4, correct=3)) == 0.75
