"""Fixed-ladder spaced repetition for quiz questions."""
from datetime import datetime, timedelta, timezone
from typing import Optional

from studio.models import MasteryProfile

# review delay indexed by strength
INTERVALS = (
    timedelta(0),
    timedelta(hours=6),
    timedelta(days=1),
    timedelta(days=3),
    timedelta(days=7),
    timedelta(days=14),
)
MAX_STRENGTH = len(INTERVALS) - 1


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and a ``Z`` suffix."""
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def parse_timestamp(value) -> Optional[datetime]:
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _truncate_ms(moment: datetime) -> datetime:
    return moment.replace(microsecond=(moment.microsecond // 1000) * 1000)


def profile_from_dict(entry) -> MasteryProfile:
    entry = entry if isinstance(entry, dict) else {}

    def _int(key):
        value = entry.get(key)
        return int(value) if isinstance(value, (int, float)) and not isinstance(value, bool) else 0

    return MasteryProfile(
        attempts=max(0, _int("attempts")),
        correct=max(0, _int("correct")),
        strength=min(MAX_STRENGTH, max(0, _int("strength"))),
        streak=max(0, _int("streak")),
        last_result=entry.get("lastResult") or None,
        last_seen=entry.get("lastSeen") or None,
        due_at=entry.get("dueAt") or None,
    )


def update_profile(profile: MasteryProfile, is_correct: bool, now: Optional[datetime] = None) -> MasteryProfile:
    """Record one graded attempt.

    Args:
        profile: Current mastery profile for the question
        is_correct: Whether the attempt was fully correct
        now: Time of the attempt (defaults to the current UTC time)

    Returns:
        A new profile. Strength moves one rung up or down the ladder and
        ``due_at`` is ``last_seen`` plus the interval for the new strength.
    """
    now = _truncate_ms(now or datetime.now(timezone.utc))
    if is_correct:
        strength = min(MAX_STRENGTH, profile.strength + 1)
    else:
        strength = max(0, profile.strength - 1)

    return MasteryProfile(
        attempts=profile.attempts + 1,
        correct=profile.correct + (1 if is_correct else 0),
        strength=strength,
        streak=profile.streak + 1 if is_correct else 0,
        last_result="correct" if is_correct else "incorrect",
        last_seen=format_timestamp(now),
        due_at=format_timestamp(now + INTERVALS[strength]),
    )


def is_due(profile: MasteryProfile, now: datetime) -> bool:
    due = parse_timestamp(profile.due_at)
    return due is None or due <= now


def correct_rate(profile: MasteryProfile) -> float:
    if profile.attempts == 0:
        return 0.0
    return profile.correct / profile.attempts
