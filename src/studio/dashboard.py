"""Mastery dashboard scoring and statistics."""
from datetime import datetime, timezone
from typing import Optional

from studio.bank import QuestionBank
from studio.mastery import MAX_STRENGTH, is_due
from studio.progress import QuizProgress


def get_mastery_label(score: float) -> str:
    if score >= 85:
        return "MASTERED"
    elif score >= 70:
        return "SOLID"
    elif score >= 50:
        return "GROWING"
    return "NEEDS REVIEW"


def get_mastery_color(score: float) -> str:
    if score >= 85:
        return "green"
    elif score >= 70:
        return "yellow"
    elif score >= 50:
        return "dark_orange"
    return "red"


def overall_accuracy(progress: QuizProgress) -> float:
    attempts = sum(p.attempts for p in progress.questions.values())
    if not attempts:
        return 0.0
    correct = sum(p.correct for p in progress.questions.values())
    return round(correct / attempts * 100, 1)


def get_category_scores(progress: QuizProgress, bank: QuestionBank) -> list[dict]:
    """Accuracy per question category, over attempted questions only."""
    totals: dict[str, list[int]] = {}
    for qid, profile in progress.questions.items():
        question = bank.get(qid)
        if question is None or not profile.attempts:
            continue
        row = totals.setdefault(question.category or "General", [0, 0])
        row[0] += profile.attempts
        row[1] += profile.correct
    results = []
    for category, (attempts, correct) in sorted(totals.items()):
        score = correct / attempts * 100
        results.append({
            "category": category,
            "attempts": attempts,
            "correct": correct,
            "score": round(score, 1),
            "label": get_mastery_label(score),
        })
    return results


def get_weak_categories(progress: QuizProgress, bank: QuestionBank, threshold: float = 70.0) -> list[dict]:
    """Categories scoring below ``threshold``, weakest first."""
    weak = [row for row in get_category_scores(progress, bank) if row["score"] < threshold]
    return sorted(weak, key=lambda row: row["score"])


def get_study_stats(progress: QuizProgress, now: Optional[datetime] = None) -> dict:
    now = now or datetime.now(timezone.utc)
    profiles = list(progress.questions.values())
    return {
        "questions_seen": len(profiles),
        "attempts": sum(p.attempts for p in profiles),
        "accuracy": overall_accuracy(progress),
        "due_now": sum(1 for p in profiles if is_due(p, now)),
        "mastered": sum(1 for p in profiles if p.strength == MAX_STRENGTH),
        "best_streak": max((p.streak for p in profiles), default=0),
        "high_scores": dict(progress.high_scores),
    }
