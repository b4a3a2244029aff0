"""Answer grading for single-choice, free-text, multi-select and explain-why."""
import re
import unicodedata
from dataclasses import dataclass, field
from typing import Optional

from studio.errors import ValidationError
from studio.models import Question

MIN_EXPLANATION_WORDS = 6
MAX_RUBRIC_KEYWORDS = 10
ANSWER_WEIGHT = 0.7
EXPLANATION_WEIGHT = 0.3
EXPLANATION_PASS = 0.45
CONNECTOR_BONUS = 0.15

EXPLANATION_STOPWORDS = frozenset({
    "the", "and", "for", "that", "with", "this", "from", "have", "were", "been", "into",
    "your", "their", "about", "because", "which", "what", "when", "where", "also", "after",
    "before", "most", "very", "does", "did", "through", "under", "over", "them", "then", "than",
})

CONNECTORS = ("because", "therefore", "since", "shows", "fulfills", "echoes", "theme", "motif")


@dataclass
class Grade:
    ratio: float
    correct: bool
    response: str
    correct_answer: str
    base_ratio: Optional[float] = None
    explain_ratio: Optional[float] = None
    explain_hits: list[str] = field(default_factory=list)
    explain_text: Optional[str] = None


class InvalidSubmission(ValidationError):
    """Submission cannot be graded (nothing selected, too short, ...)."""


def normalize_answer(value) -> str:
    if value is None:
        return ""
    text = unicodedata.normalize("NFD", str(value).lower())
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = re.sub(r"[^a-z0-9:\s-]", "", text)
    return re.sub(r"\s+", " ", text).strip()


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def grade_multi(answers, selected) -> tuple[float, bool]:
    """Partial credit: ``(hits - 0.5 * wrong) / len(answers)`` clamped to [0, 1]."""
    answer_set, selected_set = set(answers), set(selected)
    hits = len(selected_set & answer_set)
    wrong = len(selected_set - answer_set)
    missing = len(answer_set - selected_set)
    ratio = _clamp((hits - wrong * 0.5) / max(1, len(answer_set)))
    return ratio, missing == 0 and wrong == 0


def grade_answer(question: Question, response) -> Grade:
    """Grade a response. Raises ``InvalidSubmission`` for an empty one.

    ``response`` is the chosen option for mcq, the typed text for text,
    and an iterable of chosen options for multi.
    """
    if question.type == "mcq":
        if not response:
            raise InvalidSubmission("Pick an option before submitting.")
        correct = response == question.answer
        return Grade(1.0 if correct else 0.0, correct, response, question.correct_answer_text())

    if question.type == "text":
        text = (response or "").strip()
        if not text:
            raise InvalidSubmission("Type your answer before submitting.")
        accepted = {normalize_answer(a) for a in question.answers}
        correct = normalize_answer(text) in accepted
        return Grade(1.0 if correct else 0.0, correct, text, question.correct_answer_text())

    if question.type == "multi":
        selected = list(dict.fromkeys(response or []))
        if not selected:
            raise InvalidSubmission("Select at least one option.")
        ratio, correct = grade_multi(question.answers, selected)
        return Grade(ratio, correct, "; ".join(selected), question.correct_answer_text())

    raise InvalidSubmission("Unsupported question type.")


def derive_rubric_keywords(question: Question) -> list[str]:
    sources = []
    if question.answer:
        sources.append(question.answer)
    sources.extend(question.answers)
    if question.category:
        sources.append(question.category)
    sources.extend(question.tags)
    if question.reference:
        sources.append(question.reference)
    if question.explanation:
        sources.append(question.explanation)

    keywords: list[str] = []
    for source in sources:
        for token in normalize_answer(source).split(" "):
            if len(token) < 3 or token in EXPLANATION_STOPWORDS or token in keywords:
                continue
            keywords.append(token)
    return keywords[:MAX_RUBRIC_KEYWORDS]


def assess_explanation(question: Question, text) -> tuple[float, list[str]]:
    """Score a free-text reason by rubric keyword overlap plus a connector bonus."""
    text = (text or "").strip()
    normalized = normalize_answer(text)
    if len([w for w in normalized.split(" ") if w]) < MIN_EXPLANATION_WORDS:
        raise InvalidSubmission(
            f"Explain-Why mode requires a short reason (at least {MIN_EXPLANATION_WORDS} words)."
        )
    keywords = derive_rubric_keywords(question)
    hits = [term for term in keywords if term in normalized]
    has_connector = any(token in normalized for token in CONNECTORS)
    base = len(hits) / max(2, min(5, len(keywords)))
    return _clamp(base + (CONNECTOR_BONUS if has_connector else 0.0)), hits


def grade_with_explanation(question: Question, response, explanation) -> Grade:
    """Explain-why grading: 70% answer, 30% reason."""
    grade = grade_answer(question, response)
    explain_ratio, hits = assess_explanation(question, explanation)
    base = grade.ratio
    return Grade(
        ratio=_clamp(base * ANSWER_WEIGHT + explain_ratio * EXPLANATION_WEIGHT),
        correct=base >= 0.99 and explain_ratio >= EXPLANATION_PASS,
        response=f"{grade.response} | Why: {explanation.strip()}",
        correct_answer=grade.correct_answer,
        base_ratio=base,
        explain_ratio=explain_ratio,
        explain_hits=hits,
        explain_text=explanation.strip(),
    )


def feedback_message(ratio: float, correct: bool, timed_out: bool = False) -> str:
    if timed_out:
        return "Time expired."
    if correct:
        return "Correct."
    if ratio > 0:
        return "Partially correct."
    return "Incorrect."
