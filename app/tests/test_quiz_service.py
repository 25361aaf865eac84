import pytest

from app.core.config import settings
from app.core.errors import (
    AlreadySubmittedError,
    QuizUnavailableError,
    RewardIssuanceError,
    ValidationError,
)
from app.models.challenge_activity import ChallengeActivity
from app.models.quiz import QuizQuestion, QuizSubmission, QuizSubmissionAnswer
from app.services.finalization import RewardStatus
from app.services.quiz import QuizScorer
from app.services.rewards import RewardIssuer


def _selections(db, quiz, picks):
    questions = (
        db.query(QuizQuestion)
        .filter(QuizQuestion.quiz_id == quiz.id)
        .order_by(QuizQuestion.sort_order)
        .all()
    )
    return {q.id: pick for q, pick in zip(questions, picks)}


def test_four_of_five_correct_passes_and_rewards(db, user_id, seed_quiz):
    quiz = seed_quiz()  # key: 1, 2, 3, 4, 1

    result = QuizScorer.submit(db, user_id, quiz.id, _selections(db, quiz, [1, 2, 3, 4, 2]))

    assert result.score_percent == 80
    assert result.correct_count == 4
    assert result.passed
    assert result.reward.reward_status == RewardStatus.ISSUED

    activity = db.query(ChallengeActivity).one()
    assert activity.challenge_id == settings.QUIZ_BONUS_CHALLENGE_ID
    assert activity.activity_type == "bonus_quiz"
    assert activity.status == "approved"
    assert activity.activity_metadata["quiz_id"] == str(quiz.id)
    assert activity.activity_metadata["quiz_submission_id"] == str(result.submission.id)
    assert activity.activity_metadata["score_percent"] == 80

    answers = db.query(QuizSubmissionAnswer).all()
    assert len(answers) == 5
    assert sum(1 for a in answers if a.is_correct) == 4


def test_three_of_five_correct_records_without_reward(db, user_id, seed_quiz):
    quiz = seed_quiz()

    result = QuizScorer.submit(db, user_id, quiz.id, _selections(db, quiz, [1, 2, 3, 1, 2]))

    assert result.score_percent == 60
    assert not result.passed
    assert result.reward.reward_status == RewardStatus.NOT_ELIGIBLE
    submission = db.query(QuizSubmission).one()
    assert submission.score_percent == 60
    assert submission.status == "submitted"
    assert db.query(ChallengeActivity).count() == 0


def test_quiz_is_single_attempt(db, user_id, seed_quiz):
    quiz = seed_quiz()
    picks = _selections(db, quiz, [1, 1, 1, 1, 1])
    QuizScorer.submit(db, user_id, quiz.id, picks)

    view = QuizScorer.get_view(db, user_id, quiz.id)
    assert view.completed
    assert view.submission.score_percent == 40
    assert len(view.recorded) == 5

    with pytest.raises(AlreadySubmittedError):
        QuizScorer.submit(db, user_id, quiz.id, _selections(db, quiz, [1, 2, 3, 4, 1]))

    assert db.query(QuizSubmission).count() == 1


def test_closed_window_rejects_submission(db, user_id, seed_quiz):
    quiz = seed_quiz(window=False)

    with pytest.raises(QuizUnavailableError):
        QuizScorer.submit(db, user_id, quiz.id, _selections(db, quiz, [1, 2, 3, 4, 1]))

    assert db.query(QuizSubmission).count() == 0


def test_every_question_needs_a_valid_selection(db, user_id, seed_quiz):
    quiz = seed_quiz()

    partial = _selections(db, quiz, [1, 2, 3, 4])
    with pytest.raises(ValidationError, match="Answer all questions"):
        QuizScorer.submit(db, user_id, quiz.id, partial)

    out_of_range = _selections(db, quiz, [1, 2, 3, 4, 7])
    with pytest.raises(ValidationError):
        QuizScorer.submit(db, user_id, quiz.id, out_of_range)

    assert db.query(QuizSubmission).count() == 0


def test_duplicate_insert_race_reports_already_submitted(db, user_id, seed_quiz, monkeypatch):
    quiz = seed_quiz()
    QuizScorer.submit(db, user_id, quiz.id, _selections(db, quiz, [1, 2, 3, 4, 1]))

    monkeypatch.setattr(QuizScorer, "find_submission", staticmethod(lambda *args, **kwargs: None))

    with pytest.raises(AlreadySubmittedError):
        QuizScorer.submit(db, user_id, quiz.id, _selections(db, quiz, [1, 2, 3, 4, 1]))

    assert db.query(QuizSubmission).count() == 1
    assert db.query(ChallengeActivity).count() == 1


def test_list_open_flags_completed(db, user_id, seed_quiz):
    open_quiz = seed_quiz()
    seed_quiz(window=False)
    seed_quiz(status="draft")

    QuizScorer.submit(db, user_id, open_quiz.id, _selections(db, open_quiz, [1, 2, 3, 4, 1]))

    rows = QuizScorer.list_open(db, user_id)

    assert len(rows) == 1
    quiz, submission = rows[0]
    assert quiz.id == open_quiz.id
    assert submission.score_percent == 100


def test_reward_failure_keeps_quiz_completed(db, user_id, seed_quiz, monkeypatch):
    quiz = seed_quiz()

    def failing_issue(*args, **kwargs):
        raise RewardIssuanceError("Points could not be awarded")

    monkeypatch.setattr(RewardIssuer, "issue", staticmethod(failing_issue))

    result = QuizScorer.submit(db, user_id, quiz.id, _selections(db, quiz, [1, 2, 3, 4, 1]))

    assert result.score_percent == 100
    assert result.passed
    assert result.reward.reward_status == RewardStatus.PENDING
    assert db.query(QuizSubmission).count() == 1
    assert db.query(QuizSubmissionAnswer).count() == 5
    assert db.query(ChallengeActivity).count() == 0

    assert QuizScorer.get_view(db, user_id, quiz.id).completed
    with pytest.raises(AlreadySubmittedError):
        QuizScorer.submit(db, user_id, quiz.id, _selections(db, quiz, [1, 2, 3, 4, 1]))
