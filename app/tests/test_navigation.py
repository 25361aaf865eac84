import uuid

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from app.core.config import settings
from app.core.errors import (
    CatalogLoadError,
    FinalizationError,
    NavigationError,
    RewardIssuanceError,
    SubmissionLockedError,
    ValidationError,
)
from app.engine.answers import RatingAnswer, SubmissionState, TextAnswer
from app.models.assignment import AssignmentAnswer, AssignmentQuestion, AssignmentSubmission
from app.models.challenge_activity import ChallengeActivity
from app.services.finalization import FinalizationService, RewardStatus
from app.services.answers import AnswerStore
from app.services.navigation import AssignmentNavigator
from app.services.rewards import RewardIssuer

ANSWERS = [
    RatingAnswer(4),
    RatingAnswer(5),
    RatingAnswer(2),
    TextAnswer("Slept eight hours"),
    TextAnswer("Walked with my team"),
    TextAnswer("Drink more water"),
]


def _answer_all(navigator, answers=ANSWERS):
    view = None
    for answer in answers:
        view = navigator.next(answer)
    return view


def test_full_questionnaire_finalizes_and_rewards_once(db, user_id, seed_assignment):
    assignment = seed_assignment()

    navigator = AssignmentNavigator.open(db, user_id, assignment.id)
    assert navigator.state == SubmissionState.IN_PROGRESS

    view = _answer_all(navigator)

    assert view.state == SubmissionState.SUBMITTED
    assert view.read_only
    assert view.finalization.reward_status == RewardStatus.ISSUED

    submission = db.query(AssignmentSubmission).one()
    assert submission.submitted_at is not None
    assert submission.status == "submitted"
    assert submission.current_question_order == 6

    activities = db.query(ChallengeActivity).all()
    assert len(activities) == 1
    assert activities[0].challenge_id == settings.ADMIN_ASSIGNMENT_CHALLENGE_ID
    assert activities[0].activity_metadata["admin_assignment_id"] == str(assignment.id)
    assert activities[0].activity_metadata["submission_id"] == str(submission.id)
    assert activities[0].activity_metadata["title"] == "Weekly Check-in"

    assert db.query(AssignmentAnswer).count() == 6


def test_finalize_again_is_a_noop(db, user_id, seed_assignment):
    assignment = seed_assignment()
    navigator = AssignmentNavigator.open(db, user_id, assignment.id)
    _answer_all(navigator)

    outcome = FinalizationService.finalize_assignment(
        db,
        user_id=user_id,
        assignment=navigator.catalog.assignment,
        submission=navigator.submission,
        last_question_order=6,
    )

    assert outcome.reward_status == RewardStatus.ALREADY_ISSUED
    assert db.query(ChallengeActivity).count() == 1


def test_resume_at_persisted_position_with_answers(db, user_id, seed_assignment):
    assignment = seed_assignment()

    first = AssignmentNavigator.open(db, user_id, assignment.id)
    first.next(RatingAnswer(4))
    first.next(RatingAnswer(5))

    reopened = AssignmentNavigator.open(db, user_id, assignment.id)
    view = reopened.view()

    assert view.position == 2
    assert view.question.question_order == 3
    assert db.query(AssignmentSubmission).count() == 1

    questions = reopened.questions
    assert reopened.answers[questions[0].id] == RatingAnswer(4)
    assert reopened.answers[questions[1].id] == RatingAnswer(5)


def test_opening_repeatedly_keeps_one_submission(db, user_id, seed_assignment):
    assignment = seed_assignment()
    for _ in range(3):
        AssignmentNavigator.open(db, user_id, assignment.id)
    assert db.query(AssignmentSubmission).count() == 1


def test_invalid_answer_blocks_next_without_writing(db, user_id, seed_assignment):
    assignment = seed_assignment()
    navigator = AssignmentNavigator.open(db, user_id, assignment.id)

    with pytest.raises(ValidationError):
        navigator.next(RatingAnswer(9))
    with pytest.raises(ValidationError):
        navigator.next(None)

    assert navigator.index == 0
    assert db.query(AssignmentAnswer).count() == 0


def test_back_saves_best_effort_and_moves(db, user_id, seed_assignment):
    assignment = seed_assignment()
    navigator = AssignmentNavigator.open(db, user_id, assignment.id)
    navigator.next(RatingAnswer(3))

    # invalid answer on back is dropped, navigation still happens
    view = navigator.back(RatingAnswer(42))
    assert view.position == 0
    assert view.current_answer == RatingAnswer(3)

    db.expire_all()
    assert db.query(AssignmentSubmission).one().current_question_order == 1
    assert db.query(AssignmentAnswer).count() == 1


def test_back_on_first_question_is_rejected(db, user_id, seed_assignment):
    assignment = seed_assignment()
    navigator = AssignmentNavigator.open(db, user_id, assignment.id)
    with pytest.raises(NavigationError):
        navigator.back()


def test_submitted_questionnaire_is_read_only(db, user_id, seed_assignment):
    assignment = seed_assignment()
    _answer_all(AssignmentNavigator.open(db, user_id, assignment.id))

    review = AssignmentNavigator.open(db, user_id, assignment.id)
    assert review.read_only

    review.go_to(1)
    view = review.next(RatingAnswer(1))
    assert view.position == 1
    view = review.back(RatingAnswer(1))
    assert view.position == 0

    db.expire_all()
    first_question = review.questions[0]
    stored = db.query(AssignmentAnswer).filter(AssignmentAnswer.question_id == first_question.id).one()
    assert stored.answer_value == 4
    assert view.current_answer == RatingAnswer(4)


def test_stale_position_falls_back_to_first_question(db, user_id, seed_assignment):
    assignment = seed_assignment()
    navigator = AssignmentNavigator.open(db, user_id, assignment.id)
    navigator.submission.current_question_order = 99
    db.commit()

    view = AssignmentNavigator.open(db, user_id, assignment.id).view()
    assert view.position == 0


def test_cannot_skip_ahead_of_persisted_position(db, user_id, seed_assignment):
    assignment = seed_assignment()
    navigator = AssignmentNavigator.open(db, user_id, assignment.id)
    with pytest.raises(NavigationError):
        navigator.go_to(4)
    with pytest.raises(ValidationError):
        navigator.go_to(77)


def test_question_without_options_does_not_crash(db, user_id, seed_assignment):
    assignment = seed_assignment(kinds=("rating", "text"))
    rating_question = (
        db.query(AssignmentQuestion)
        .filter(AssignmentQuestion.admin_assignment_id == assignment.id)
        .order_by(AssignmentQuestion.question_order)
        .first()
    )
    navigator = AssignmentNavigator.open(db, user_id, assignment.id)
    navigator.catalog.options_by_question.pop(rating_question.id)

    assert navigator.view().options == []
    with pytest.raises(ValidationError):
        navigator.next(RatingAnswer(1))


def test_missing_assignment_and_empty_catalog(db, user_id, seed_assignment):
    with pytest.raises(CatalogLoadError):
        AssignmentNavigator.open(db, user_id, uuid.uuid4())

    empty = seed_assignment(kinds=())
    with pytest.raises(CatalogLoadError):
        AssignmentNavigator.open(db, user_id, empty.id)


def test_reward_failure_keeps_submission_final(db, user_id, seed_assignment, monkeypatch):
    assignment = seed_assignment()

    def failing_issue(*args, **kwargs):
        raise RewardIssuanceError("Points could not be awarded")

    monkeypatch.setattr(RewardIssuer, "issue", staticmethod(failing_issue))

    navigator = AssignmentNavigator.open(db, user_id, assignment.id)
    view = _answer_all(navigator)

    assert view.state == SubmissionState.SUBMITTED
    assert view.finalization.reward_status == RewardStatus.PENDING
    assert db.query(AssignmentSubmission).one().submitted_at is not None
    assert db.query(ChallengeActivity).count() == 0


def test_finalization_failure_stays_in_progress_and_can_retry(db, user_id, seed_assignment, monkeypatch):
    assignment = seed_assignment()
    navigator = AssignmentNavigator.open(db, user_id, assignment.id)
    _answer_all(navigator, ANSWERS[:-1])

    real_commit = db.commit
    calls = {"n": 0}

    def flaky_commit():
        calls["n"] += 1
        # first commit saves the answer, second marks the submission final
        if calls["n"] == 2:
            raise OperationalError("UPDATE admin_assignment_submissions", {}, Exception("connection lost"))
        real_commit()

    monkeypatch.setattr(db, "commit", flaky_commit)

    with pytest.raises(FinalizationError):
        navigator.next(ANSWERS[-1])

    assert navigator.state == SubmissionState.IN_PROGRESS
    assert db.query(AssignmentSubmission).one().submitted_at is None
    assert db.query(ChallengeActivity).count() == 0

    monkeypatch.undo()
    view = navigator.next(ANSWERS[-1])
    assert view.state == SubmissionState.SUBMITTED
    assert db.query(ChallengeActivity).count() == 1


def test_answers_stay_locked_when_finalized_from_another_session(engine, db, user_id, seed_assignment):
    assignment = seed_assignment()
    other_db = sessionmaker(autocommit=False, autoflush=False, bind=engine)()

    try:
        stale = AssignmentNavigator.open(other_db, user_id, assignment.id)
        assert stale.state == SubmissionState.IN_PROGRESS

        _answer_all(AssignmentNavigator.open(db, user_id, assignment.id))

        view = stale.next(RatingAnswer(1))

        assert view.read_only
        assert view.position == 0
        assert view.current_answer == RatingAnswer(4)
        assert view.finalization.reward_status == RewardStatus.ALREADY_ISSUED

        question = stale.questions[0]
        with pytest.raises(SubmissionLockedError):
            AnswerStore.save(
                other_db, user_id, assignment.id, question, stale.catalog.options_for(question), RatingAnswer(2)
            )
    finally:
        other_db.close()

    db.expire_all()
    stored = db.query(AssignmentAnswer).filter(AssignmentAnswer.question_id == question.id).one()
    assert stored.answer_value == 4
    assert db.query(AssignmentAnswer).count() == 6
    assert db.query(ChallengeActivity).count() == 1
