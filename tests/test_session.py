# tests/test_session.py
import random
from datetime import datetime, timezone

import pytest

from studio.bank import QuestionBank, load_questions
from studio.errors import ValidationError
from studio.grading import InvalidSubmission
from studio.models import Question, ThemeChain
from studio.progress import QuizProgress, load_progress
from studio.selector import QuizSettings
from studio.session import FEEDBACK, FINISHED, PRESENTED, QuizSession, chain_bonus, question_points

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _mcq(qid, difficulty=2, category="Gospels", **kwargs):
    return Question(id=qid, prompt=f"{qid}?", type="mcq", category=category, difficulty=difficulty,
                    choices=["A", "B", "C"], answer="A", reference="Ruth 1:16", **kwargs)


def _session(questions, chains=(), progress_path=None, **settings):
    settings.setdefault("seconds", 30)
    bank = QuestionBank(questions=questions, alphabet=[], theme_chains=list(chains))
    return QuizSession(
        QuizSettings(**settings), bank, QuizProgress(), progress_path=progress_path,
        rng=random.Random(11), clock=lambda: NOW,
    )


def test_points():
    assert question_points(_mcq("a", difficulty=3)) == 170
    assert chain_bonus(_mcq("a", difficulty=3)) == 43


def test_length_is_clamped_to_pool():
    session = _session([_mcq("a"), _mcq("b")], length=10)
    assert session.settings.length == 2


def test_start_with_no_candidates_raises():
    session = _session([_mcq("a")], mode="book", book_scope="Obadiah")
    with pytest.raises(ValidationError):
        session.start()


def test_start_presents_a_question():
    session = _session([_mcq("a")], length=1)
    question = session.start()
    assert question.id == "a"
    assert session.state == PRESENTED
    assert session.timer_running
    assert session.seconds_left == 30


def test_speed_scaled_score():
    session = _session([_mcq("a")], length=1)
    session.start()
    session.tick(10)
    grade = session.submit("A")
    assert grade.correct
    # 140 points at 20/30 seconds left
    assert session.score == 119
    assert session.answers[0].elapsed == 10
    assert session.state == FEEDBACK
    assert session.feedback == "Correct."
    assert not session.timer_running


def test_timeout_records_a_miss():
    session = _session([_mcq("a")], length=1)
    session.start()
    assert session.tick(29) is None
    grade = session.tick(1)
    assert grade.response == "No answer (time)"
    assert not grade.correct
    assert session.feedback == "Time expired."
    assert session.answers[0].earned == 0
    assert session.tick(5) is None
    with pytest.raises(ValidationError):
        session.submit("A")


def test_invalid_submission_keeps_question_open():
    session = _session([_mcq("a")], length=1)
    session.start()
    with pytest.raises(InvalidSubmission):
        session.submit("")
    assert session.state == PRESENTED
    assert session.timer_running
    assert session.answers == []
    assert session.submit("A").correct


def test_skip():
    session = _session([_mcq("a")], length=1)
    session.start()
    grade = session.skip()
    assert grade.response == "Skipped"
    assert session.feedback == "Incorrect."
    assert session.progress.profile("a").attempts == 1


def test_next_question_requires_feedback():
    session = _session([_mcq("a"), _mcq("b")], length=2)
    session.start()
    with pytest.raises(ValidationError):
        session.next_question()


def test_dynamic_target_drifts():
    session = _session([_mcq("a"), _mcq("b")], length=2, difficulty=2)
    session.start()
    session.submit("A")
    assert session.target_difficulty == pytest.approx(2.35)
    session.next_question()
    session.submit("C")
    assert session.target_difficulty == pytest.approx(2.07)
    assert session.streak == 0
    assert session.longest_streak == 1


def test_book_mode_steps_difficulty_by_segment():
    questions = [_mcq(f"q{i}", difficulty=1 + i % 5) for i in range(8)]
    session = _session(questions, mode="book", length=8, difficulty=2)
    session.start()
    targets = []
    for _ in range(8):
        targets.append(session.target_difficulty)
        session.skip()
        session.next_question()
    assert targets == [2, 2, 3, 3, 4, 4, 5, 5]
    assert session.state == FINISHED


def test_progress_updates_per_answer():
    session = _session([_mcq("a")], length=1)
    session.start()
    session.submit("A")
    profile = session.progress.profile("a")
    assert profile.correct == 1
    assert profile.strength == 1
    assert profile.last_seen == "2026-03-01T12:00:00.000Z"


def test_theme_chain_bonus():
    chain = ThemeChain(id="c1", themes=["Gospels"], prompt="Link?", options=["X", "Y"], answer="X")
    session = _session([_mcq("a")], chains=[chain], length=1)
    session.start()
    session.submit("A")
    assert session.chain is chain
    before = session.score
    assert session.answer_chain("X") == 37
    assert session.score == before + 37
    with pytest.raises(ValidationError):
        session.answer_chain("X")


def test_wrong_chain_answer_earns_nothing():
    chain = ThemeChain(id="c1", themes=["Gospels"], prompt="Link?", options=["X", "Y"], answer="X")
    session = _session([_mcq("a")], chains=[chain], length=1)
    session.start()
    session.submit("B")
    assert session.answer_chain("Y") == 0


def test_chain_falls_back_by_tag_then_testament():
    by_tag = ThemeChain(id="tag", themes=["Covenant"], prompt="?", options=["X"], answer="X", testament="OT")
    other = ThemeChain(id="other", themes=["Prophets"], prompt="?", options=["X"], answer="X", testament="NT")
    session = _session([_mcq("a")], chains=[by_tag, other], length=1)
    tagged = _mcq("t", category="Torah", tags=["covenant"])
    assert session.pick_theme_chain(tagged) is by_tag
    nt_question = _mcq("n", category="Epistles", testament="NT")
    assert session.pick_theme_chain(nt_question) is other


def test_chain_avoids_immediate_repeat():
    chains = [
        ThemeChain(id=f"c{i}", themes=["Gospels"], prompt="?", options=["X"], answer="X") for i in range(3)
    ]
    session = _session([_mcq("a")], chains=chains, length=1)
    question = _mcq("a")
    picks = [session.pick_theme_chain(question).id for _ in range(10)]
    assert all(a != b for a, b in zip(picks, picks[1:]))


def test_alphabet_mode_has_no_chains():
    chain = ThemeChain(id="c1", themes=["Alphabet"], prompt="?", options=["X"], answer="X")
    letter = _mcq("alphabet-greek-name-1", category="Alphabet", tags=["alphabet", "greek"])
    bank = QuestionBank(questions=[], alphabet=[letter], theme_chains=[chain])
    session = QuizSession(QuizSettings(mode="alphabet", length=1), bank, QuizProgress(), rng=random.Random(1))
    session.start()
    session.submit("A")
    assert session.chain is None


def test_explain_mode_grades_reason():
    passover = next(q for q in load_questions() if q.id == "xr-passover-lamb")
    session = _session([passover], mode="explain", length=1)
    session.start()
    with pytest.raises(InvalidSubmission):
        session.submit("1 Corinthians 5:7", "Paul said so")
    grade = session.submit("1 Corinthians 5:7", "Paul shows the Passover sacrifice fulfills the Exodus pattern")
    assert grade.correct
    assert session.answers[0].explain_ratio == pytest.approx(0.95)


def test_finish_saves_high_score(tmp_progress):
    session = _session([_mcq("a")], progress_path=tmp_progress, length=1)
    session.start()
    session.submit("A")
    assert session.next_question() is None
    summary = session.summary
    assert session.state == FINISHED
    assert summary.score == 140
    assert summary.accuracy == 100
    assert summary.new_high_score
    assert session.finish() is summary

    saved = load_progress(tmp_progress)
    assert saved.high_score("adaptive") == 140
    assert saved.profile("a").attempts == 1


def test_lower_score_is_not_a_new_high(tmp_progress):
    session = _session([_mcq("a")], progress_path=tmp_progress, length=1)
    session.progress.record_high_score("adaptive", 500)
    session.start()
    session.submit("A")
    summary = session.finish()
    assert not summary.new_high_score
    assert summary.high_score == 500


def test_retake_missed():
    session = _session([_mcq("a"), _mcq("b"), _mcq("c")], length=3)
    session.start()
    for _ in range(3):
        if session.current.id == "b":
            session.submit("A")
        else:
            session.skip()
        session.next_question()
    summary = session.finish()
    assert sorted(m.question_id for m in summary.misses) == ["a", "c"]

    retake = session.retake_missed()
    assert retake.settings.length == 2
    assert sorted(q.id for q in retake.pool) == ["a", "c"]
    first = retake.start()
    assert first.id in ("a", "c")


def test_perfect_session_has_no_retake():
    session = _session([_mcq("a")], length=1)
    session.start()
    session.submit("A")
    session.next_question()
    assert session.retake_missed() is None
