"""Quiz session state machine.

A question moves ``presented -> feedback -> (next) presented`` until the
session length is reached, then ``finished``. The countdown is driven by
``tick()``; the timer is stopped before any transition that changes the
current question so a stale timeout can never grade the next one.
"""
import logging
import random
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Callable, Optional

from studio.bank import QuestionBank
from studio.errors import ValidationError
from studio.grading import (
    Grade,
    InvalidSubmission,
    feedback_message,
    grade_answer,
    grade_with_explanation,
    normalize_answer,
)
from studio.mastery import update_profile
from studio.models import Question, ThemeChain
from studio.progress import QuizProgress, save_progress
from studio.selector import QuizSettings, filter_questions, pick_weighted_question

logger = logging.getLogger(__name__)

PRESENTED = "presented"
FEEDBACK = "feedback"
FINISHED = "finished"

RETAKE_MIN_LENGTH = 5
RETAKE_MAX_LENGTH = 40


@dataclass
class AnswerRecord:
    question_id: str
    prompt: str
    category: str
    response: str
    ratio: float
    correct: bool
    earned: int
    possible: int
    elapsed: float
    correct_answer: str
    reference: str
    explanation: str
    explain_ratio: Optional[float] = None
    explain_text: Optional[str] = None


@dataclass
class SessionSummary:
    mode: str
    score: int
    accuracy: int
    longest_streak: int
    high_score: int
    new_high_score: bool
    misses: list[AnswerRecord]


def question_points(question: Question) -> int:
    return 80 + question.difficulty * 30


def chain_bonus(question: Question) -> int:
    return 25 + question.difficulty * 6


class QuizSession:
    def __init__(
        self,
        settings: QuizSettings,
        bank: QuestionBank,
        progress: QuizProgress,
        progress_path: Optional[str] = None,
        rng: Optional[random.Random] = None,
        custom_questions: Optional[list[Question]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.settings = replace(settings)
        self.bank = bank
        self.progress = progress
        self.progress_path = progress_path
        self.rng = rng or random.Random()
        self.clock = clock or (lambda: datetime.now(timezone.utc))

        self.candidates = filter_questions(bank, self.settings)
        self.retake_pool = list(custom_questions) if custom_questions else None
        self.pool = self._shuffled(self.retake_pool or self.candidates)
        if len(self.pool) < self.settings.length:
            self.settings.length = len(self.pool)

        self.answers: list[AnswerRecord] = []
        self.score = 0
        self.weighted_possible = 0
        self.streak = 0
        self.longest_streak = 0
        self.dynamic_target = float(self.settings.difficulty)
        self.current: Optional[Question] = None
        self.shown = 0
        self.seconds_left = 0.0
        self.timer_running = False
        self.state: Optional[str] = None
        self.feedback = ""
        self.last_grade: Optional[Grade] = None
        self.chain: Optional[ThemeChain] = None
        self.chain_answered = False
        self.last_chain_id: Optional[str] = None
        self.summary: Optional[SessionSummary] = None

    def _shuffled(self, questions: list[Question]) -> list[Question]:
        items = list(questions)
        self.rng.shuffle(items)
        return items

    # -- question flow ----------------------------------------------------

    @property
    def target_difficulty(self) -> float:
        if self.settings.mode != "book":
            return self.dynamic_target
        segment = max(1, self.settings.length // 4)
        return min(5, self.settings.difficulty + len(self.answers) // segment)

    def start(self) -> Optional[Question]:
        if self.settings.length <= 0:
            raise ValidationError(
                "No questions match that setup. Try another book, lower difficulty, or broader testament scope."
            )
        return self._advance()

    def _ensure_pool(self) -> None:
        if not self.pool:
            self.pool = self._shuffled(self.retake_pool or self.candidates)

    def _pick(self) -> Optional[Question]:
        if len(self.answers) >= self.settings.length:
            return None
        self._ensure_pool()
        if not self.pool:
            return None
        question = pick_weighted_question(
            self.pool, self.progress, self.target_difficulty, self.settings.mode,
            self.settings.difficulty, rng=self.rng, now=self.clock(),
        )
        self.pool = [q for q in self.pool if q.id != question.id]
        return question

    def _advance(self) -> Optional[Question]:
        self.stop_timer()
        question = self._pick()
        if question is None:
            self.finish()
            return None
        self.current = question
        self.shown += 1
        self.chain = None
        self.chain_answered = False
        self.feedback = ""
        self.seconds_left = float(self.settings.seconds)
        self.timer_running = True
        self.state = PRESENTED
        return question

    def next_question(self) -> Optional[Question]:
        if self.state != FEEDBACK:
            raise ValidationError("Answer the current question first.")
        return self._advance()

    # -- timer ------------------------------------------------------------

    def stop_timer(self) -> None:
        self.timer_running = False

    def tick(self, seconds: float = 1) -> Optional[Grade]:
        """Advance the countdown. Returns the timeout grade when time runs out."""
        if not self.timer_running or self.state != PRESENTED:
            return None
        self.seconds_left = max(0.0, self.seconds_left - seconds)
        if self.seconds_left > 0:
            return None
        return self._forced("No answer (time)", timed_out=True)

    # -- answering --------------------------------------------------------

    def submit(self, response, explanation: Optional[str] = None) -> Grade:
        """Grade the current question.

        Raises ``InvalidSubmission`` without changing state when the
        response (or, in explain mode, the reason) cannot be graded.
        """
        if self.state != PRESENTED or self.current is None:
            raise ValidationError("No question is waiting for an answer.")
        self.stop_timer()
        try:
            if self.settings.mode == "explain":
                grade = grade_with_explanation(self.current, response, explanation or "")
            else:
                grade = grade_answer(self.current, response)
        except InvalidSubmission:
            self.timer_running = True
            raise
        return self._record(grade)

    def skip(self) -> Grade:
        if self.state != PRESENTED or self.current is None:
            raise ValidationError("No question is waiting for an answer.")
        return self._forced("Skipped")

    def _forced(self, response: str, timed_out: bool = False) -> Grade:
        self.stop_timer()
        grade = Grade(0.0, False, response, self.current.correct_answer_text())
        return self._record(grade, timed_out=timed_out)

    def _record(self, grade: Grade, timed_out: bool = False) -> Grade:
        question = self.current
        possible = question_points(question)
        speed = 0.55 + (self.seconds_left / self.settings.seconds) * 0.45
        earned = round(possible * speed * grade.ratio)
        self.score += earned
        self.weighted_possible += possible

        if grade.correct:
            self.streak += 1
            self.longest_streak = max(self.longest_streak, self.streak)
        else:
            self.streak = 0

        if self.settings.mode != "book":
            if grade.ratio >= 0.99:
                step = 0.35
            elif grade.ratio >= 0.6:
                step = 0.1
            else:
                step = -0.28
            self.dynamic_target = min(5.0, max(1.0, self.dynamic_target + step))

        self.answers.append(AnswerRecord(
            question_id=question.id,
            prompt=question.prompt,
            category=question.category,
            response=grade.response,
            ratio=grade.ratio,
            correct=grade.correct,
            earned=earned,
            possible=possible,
            elapsed=self.settings.seconds - self.seconds_left,
            correct_answer=grade.correct_answer,
            reference=question.reference,
            explanation=question.explanation,
            explain_ratio=grade.explain_ratio,
            explain_text=grade.explain_text,
        ))
        self.progress.questions[question.id] = update_profile(
            self.progress.profile(question.id), grade.correct, self.clock()
        )

        self.last_grade = grade
        self.feedback = feedback_message(grade.ratio, grade.correct, timed_out)
        if self.settings.mode != "alphabet":
            self.chain = self.pick_theme_chain(question)
        self.state = FEEDBACK
        self._save()
        return grade

    # -- theme chains -----------------------------------------------------

    def pick_theme_chain(self, question: Question) -> Optional[ThemeChain]:
        chains = self.bank.theme_chains
        if not chains:
            return None
        pool = [c for c in chains if question.category in c.themes]
        if not pool and question.tags:
            tags = {normalize_answer(t) for t in question.tags}
            pool = [c for c in chains if any(normalize_answer(theme) in tags for theme in c.themes)]
        if not pool:
            pool = [c for c in chains if c.testament in ("Both", question.testament)]
        if not pool:
            pool = list(chains)
        fresh = [c for c in pool if c.id != self.last_chain_id]
        picked = self.rng.choice(fresh or pool)
        self.last_chain_id = picked.id
        return picked

    def answer_chain(self, choice: str) -> int:
        """Answer the follow-up link question. Returns the bonus earned."""
        if self.state != FEEDBACK or self.chain is None or self.chain_answered:
            raise ValidationError("No theme chain is waiting for an answer.")
        self.chain_answered = True
        if choice != self.chain.answer:
            return 0
        bonus = chain_bonus(self.current)
        self.score += bonus
        return bonus

    # -- end of session ---------------------------------------------------

    def finish(self) -> SessionSummary:
        self.stop_timer()
        if self.summary is not None:
            return self.summary
        correct = sum(1 for a in self.answers if a.correct)
        accuracy = round(correct / len(self.answers) * 100) if self.answers else 0
        mode = self.settings.mode
        new_high = self.progress.record_high_score(mode, self.score)
        if new_high:
            self._save()
        self.state = FINISHED
        self.current = None
        self.summary = SessionSummary(
            mode=mode,
            score=self.score,
            accuracy=accuracy,
            longest_streak=self.longest_streak,
            high_score=self.progress.high_score(mode),
            new_high_score=new_high,
            misses=[a for a in self.answers if not a.correct],
        )
        logger.info("Finished %s session: score %d, accuracy %d%%", mode, self.score, accuracy)
        return self.summary

    def missed_questions(self) -> list[Question]:
        seen, result = set(), []
        for record in self.answers:
            if record.correct or record.question_id in seen:
                continue
            question = self.bank.get(record.question_id)
            if question is not None:
                seen.add(question.id)
                result.append(question)
        return result

    def retake_missed(self) -> Optional["QuizSession"]:
        """A new session drawn only from this session's misses."""
        misses = self.missed_questions()
        if not misses:
            return None
        settings = replace(
            self.settings,
            length=min(RETAKE_MAX_LENGTH, max(RETAKE_MIN_LENGTH, len(misses))),
        )
        return QuizSession(
            settings, self.bank, self.progress, progress_path=self.progress_path,
            rng=self.rng, custom_questions=misses, clock=self.clock,
        )

    def _save(self) -> None:
        if self.progress_path:
            save_progress(self.progress_path, self.progress)
