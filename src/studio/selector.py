"""Candidate filtering and weighted question selection.

Each pick scores every candidate::

    weight = weakness + due_boost + difficulty_boost + mode_boost
             + recency_penalty + easy_complexity_penalty + jitter

and floors the result at ``WEIGHT_FLOOR`` so every candidate keeps a
non-zero chance. Selection is a cumulative-weight roulette.
"""
import random
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from studio.bank import QuestionBank
from studio.mastery import is_due, parse_timestamp
from studio.models import MasteryProfile, Question
from studio.progress import MODES

WEIGHT_FLOOR = 0.08
NEW_QUESTION_WEAKNESS = 0.75
DUE_BOOST = 0.65
RECENCY_WINDOW = timedelta(minutes=15)
RECENCY_PENALTY = -0.2
JITTER = 0.2


@dataclass
class QuizSettings:
    mode: str = "adaptive"
    testament: str = "all"
    book_scope: str = "all"
    length: int = 10
    seconds: int = 45
    difficulty: int = 2

    def __post_init__(self):
        if self.mode not in MODES:
            raise ValueError(f"Unknown quiz mode: {self.mode}")
        if self.testament not in ("all", "OT", "NT"):
            raise ValueError(f"Unknown testament scope: {self.testament}")
        self.difficulty = min(5, max(1, int(self.difficulty)))
        self.seconds = max(1, int(self.seconds))
        self.length = max(0, int(self.length))


def _unique(questions: list[Question]) -> list[Question]:
    seen = set()
    result = []
    for q in questions:
        if q.id not in seen:
            seen.add(q.id)
            result.append(q)
    return result


def _is_approachable(question: Question, settings: QuizSettings) -> bool:
    if settings.difficulty == 1:
        if settings.mode in ("adaptive", "book", "explain"):
            return question.type == "mcq" and question.difficulty <= 2 and not question.is_theme_heavy
        return question.type == "mcq" and question.difficulty <= 3
    return question.type != "multi" and question.difficulty <= 3


def filter_questions(bank: QuestionBank, settings: QuizSettings) -> list[Question]:
    """Ordered candidate list for a new session."""
    if settings.mode == "alphabet":
        script = {"OT": "hebrew", "NT": "greek"}.get(settings.testament)
        if script is None:
            return list(bank.alphabet)
        return [q for q in bank.alphabet if script in q.tags]

    in_scope = [
        q for q in bank.questions
        if settings.testament == "all" or q.testament in ("Both", settings.testament)
    ]

    if settings.mode == "book":
        scoped = [
            q for q in in_scope
            if settings.book_scope == "all" or bank.book_of(q) == settings.book_scope
        ]
        ordered = sorted(scoped, key=lambda q: q.difficulty)
    elif settings.mode in ("adaptive", "explain"):
        ordered = list(in_scope)
    else:
        motifs = [q for q in in_scope if q.is_motif]
        crossrefs = [q for q in in_scope if q.is_cross_reference]
        focus = motifs + crossrefs if settings.mode == "motif" else crossrefs + motifs
        focus_ids = {q.id for q in focus}
        ordered = _unique(focus + [q for q in in_scope if q.id not in focus_ids])

    if settings.difficulty <= 2:
        preferred = [q for q in ordered if _is_approachable(q, settings)]
        preferred_ids = {q.id for q in preferred}
        ordered = preferred + [q for q in ordered if q.id not in preferred_ids]
    return ordered


def mode_boost(question: Question, mode: str) -> float:
    cross, motif = question.is_cross_reference, question.is_motif
    if mode == "crossref":
        return 1.3 if cross else 0.8 if motif else 0.0
    if mode == "motif":
        return 1.35 if motif else 0.7 if cross else -0.05
    if mode == "explain":
        return 0.3 if cross or motif else 0.15
    return 0.25 if cross or motif else 0.0


def easy_complexity_penalty(question: Question, baseline: int) -> float:
    """Extra suppression of complex items for sessions started at difficulty 1 or 2."""
    if baseline > 2:
        return 0.0
    easiest = baseline == 1
    penalty = 0.0
    if question.type == "multi":
        penalty -= 1.1 if easiest else 0.7
    if question.type == "text":
        penalty -= 0.45 if easiest else 0.15
    if question.difficulty >= 4:
        penalty -= 1.0 if easiest else 0.35
    if question.is_theme_heavy:
        penalty -= 0.5 if easiest else 0.2
    return penalty


def weakness(profile: MasteryProfile) -> float:
    if profile.attempts == 0:
        return NEW_QUESTION_WEAKNESS
    return max(0.1, 1.15 - profile.correct / profile.attempts)


def due_boost(profile: MasteryProfile, now: datetime) -> float:
    return DUE_BOOST if is_due(profile, now) else 0.0


def difficulty_boost(question: Question, target: float) -> float:
    return max(0.1, 1.2 - abs(question.difficulty - target) * 0.22)


def recency_penalty(profile: MasteryProfile, now: datetime) -> float:
    seen = parse_timestamp(profile.last_seen)
    if seen is not None and now - seen < RECENCY_WINDOW:
        return RECENCY_PENALTY
    return 0.0


def question_weight(question: Question, profile: MasteryProfile, target: float, mode: str,
                    baseline: int, now: datetime, jitter: float = 0.0) -> float:
    weight = (
        weakness(profile)
        + due_boost(profile, now)
        + difficulty_boost(question, target)
        + mode_boost(question, mode)
        + recency_penalty(profile, now)
        + easy_complexity_penalty(question, baseline)
        + jitter
    )
    return max(WEIGHT_FLOOR, weight)


def pick_weighted_question(candidates: list[Question], profiles, target: float, mode: str,
                           baseline: int, rng: Optional[random.Random] = None,
                           now: Optional[datetime] = None) -> Question:
    """Roulette pick over ``candidates``.

    ``profiles`` maps a question id to its ``MasteryProfile`` (anything with
    a ``profile(question_id)`` method, such as ``QuizProgress``).
    """
    if not candidates:
        raise ValueError("No candidates to pick from")
    rng = rng or random.Random()
    now = now or datetime.now(timezone.utc)
    weights = [
        question_weight(q, profiles.profile(q.id), target, mode, baseline, now, rng.random() * JITTER)
        for q in candidates
    ]
    roll = rng.random() * sum(weights)
    for question, weight in zip(candidates, weights):
        roll -= weight
        if roll <= 0:
            return question
    return candidates[-1]
