"""Per-learner quiz progress persisted as one JSON file."""
import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from studio.config import DEFAULT_PROGRESS_PATH
from studio.mastery import profile_from_dict
from studio.models import MasteryProfile
from studio.store import utc_now

logger = logging.getLogger(__name__)

PROGRESS_VERSION = 1
MODES = ("adaptive", "crossref", "motif", "explain", "book", "alphabet")


def _default_high_scores() -> dict[str, int]:
    return {mode: 0 for mode in MODES}


@dataclass
class QuizProgress:
    questions: dict[str, MasteryProfile] = field(default_factory=dict)
    high_scores: dict[str, int] = field(default_factory=_default_high_scores)
    updated_at: Optional[str] = None
    version: int = PROGRESS_VERSION

    def profile(self, question_id: str) -> MasteryProfile:
        return self.questions.get(question_id) or MasteryProfile()

    def high_score(self, mode: str) -> int:
        return self.high_scores.get(mode, 0)

    def record_high_score(self, mode: str, score: int) -> bool:
        """Keep ``score`` if it beats the mode's best. Returns True when it does."""
        if score > self.high_score(mode):
            self.high_scores[mode] = score
            return True
        return False

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "updatedAt": self.updated_at,
            "questions": {qid: p.to_dict() for qid, p in self.questions.items()},
            "highScores": dict(self.high_scores),
        }


def progress_from_dict(raw) -> QuizProgress:
    if not isinstance(raw, dict):
        return QuizProgress()
    questions = raw.get("questions")
    high_scores = _default_high_scores()
    raw_scores = raw.get("highScores")
    if isinstance(raw_scores, dict):
        for mode, score in raw_scores.items():
            if isinstance(score, (int, float)) and not isinstance(score, bool):
                high_scores[str(mode)] = int(score)
    return QuizProgress(
        questions={
            str(qid): profile_from_dict(entry)
            for qid, entry in (questions.items() if isinstance(questions, dict) else [])
        },
        high_scores=high_scores,
        updated_at=raw.get("updatedAt") if isinstance(raw.get("updatedAt"), str) else None,
    )


def load_progress(path: str = DEFAULT_PROGRESS_PATH) -> QuizProgress:
    """Read saved progress. Missing or corrupt files give a fresh record."""
    file_path = Path(path)
    if not file_path.exists():
        return QuizProgress()
    try:
        raw = json.loads(file_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("Resetting unreadable quiz progress at %s: %s", path, exc)
        return QuizProgress()
    if not isinstance(raw, dict):
        logger.warning("Resetting malformed quiz progress at %s", path)
        return QuizProgress()
    return progress_from_dict(raw)


def save_progress(path: str, progress: QuizProgress) -> None:
    progress.updated_at = utc_now()
    file_path = Path(path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=file_path.parent, prefix=".progress-", suffix=".json")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(progress.to_dict(), fh, indent=2)
        os.replace(tmp, file_path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise
