# app/services/quiz.py

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import (
    AlreadySubmittedError,
    CatalogLoadError,
    PersistenceError,
    QuizUnavailableError,
    ValidationError,
)
from app.engine.answers import AnswerType, SelectedOptionAnswer, validate_answer
from app.engine.quiz_scoring import grade_quiz, is_within_window, missing_selections
from app.models.quiz import Quiz, QuizSubmission, QuizSubmissionAnswer
from app.services.catalog import CatalogLoader, QuizCatalog
from app.services.finalization import FinalizationOutcome, RewardStatus, issue_reward_softly

logger = logging.getLogger(__name__)


@dataclass
class QuizView:
    catalog: QuizCatalog
    available: bool
    submission: Optional[QuizSubmission] = None
    recorded: Dict[UUID, QuizSubmissionAnswer] = field(default_factory=dict)

    @property
    def completed(self) -> bool:
        # existence of a submission alone locks the quiz
        return self.submission is not None


@dataclass
class QuizResult:
    submission: QuizSubmission
    score_percent: int
    correct_count: int
    total_questions: int
    passed: bool
    reward: FinalizationOutcome


class QuizScorer:
    @staticmethod
    def find_submission(db: Session, user_id: UUID, quiz_id: UUID) -> Optional[QuizSubmission]:
        return (
            db.query(QuizSubmission)
            .filter(QuizSubmission.quiz_id == quiz_id, QuizSubmission.user_id == user_id)
            .first()
        )

    @staticmethod
    def get_view(
        db: Session,
        user_id: UUID,
        quiz_id: UUID,
        now: Optional[datetime] = None,
    ) -> QuizView:
        now = now or datetime.now(timezone.utc)
        catalog = CatalogLoader.load_quiz(db, quiz_id)
        if not catalog.questions:
            raise CatalogLoadError("This quiz has no questions yet")

        try:
            submission = QuizScorer.find_submission(db, user_id, quiz_id)
            recorded: Dict[UUID, QuizSubmissionAnswer] = {}
            if submission:
                rows = (
                    db.query(QuizSubmissionAnswer)
                    .filter(QuizSubmissionAnswer.submission_id == submission.id)
                    .all()
                )
                recorded = {row.question_id: row for row in rows}
        except SQLAlchemyError as exc:
            logger.error(f"Quiz submission lookup failed for {quiz_id}: {exc}")
            raise CatalogLoadError("Could not load quiz.") from exc

        return QuizView(
            catalog=catalog,
            available=is_within_window(catalog.quiz.publish_start, catalog.quiz.publish_end, now),
            submission=submission,
            recorded=recorded,
        )

    @staticmethod
    def list_open(
        db: Session,
        user_id: UUID,
        now: Optional[datetime] = None,
    ) -> List[Tuple[Quiz, Optional[QuizSubmission]]]:
        """Published quizzes whose window contains now, with the user's submission if any."""
        now = now or datetime.now(timezone.utc)
        quizzes = (
            db.query(Quiz)
            .filter(Quiz.status == "published")
            .order_by(Quiz.publish_start)
            .all()
        )
        quizzes = [
            q for q in quizzes
            if q.publish_start is not None
            and q.publish_end is not None
            and is_within_window(q.publish_start, q.publish_end, now)
        ]
        if not quizzes:
            return []

        subs = (
            db.query(QuizSubmission)
            .filter(
                QuizSubmission.user_id == user_id,
                QuizSubmission.quiz_id.in_([q.id for q in quizzes]),
            )
            .all()
        )
        by_quiz = {s.quiz_id: s for s in subs}
        return [(q, by_quiz.get(q.id)) for q in quizzes]

    @staticmethod
    def submit(
        db: Session,
        user_id: UUID,
        quiz_id: UUID,
        selections: Dict[UUID, Optional[int]],
        now: Optional[datetime] = None,
    ) -> QuizResult:
        """
        Grade and record a single-attempt quiz, then reward a passing score.

        Steps:
        1. Reject closed windows and existing submissions
        2. Require a valid selection for every question
        3. Insert the submission with its per-question answers
        4. Issue the reward when score_percent >= passing threshold
        """
        now = now or datetime.now(timezone.utc)
        view = QuizScorer.get_view(db, user_id, quiz_id, now)
        catalog = view.catalog

        # -------------------------------
        # 1. Window + single attempt
        # -------------------------------
        if not view.available:
            raise QuizUnavailableError("This quiz is outside the weekly window.")
        if view.completed:
            raise AlreadySubmittedError("You already submitted this quiz.")

        # -------------------------------
        # 2. Validate selections
        # -------------------------------
        question_ids = [q.id for q in catalog.questions]
        if missing_selections(question_ids, selections):
            raise ValidationError("Answer all questions before submitting.")

        for q in catalog.questions:
            validate_answer(
                AnswerType.SELECTED_OPTION.value,
                SelectedOptionAnswer(option_index=selections[q.id]),
                allowed_values=[o.option_index for o in catalog.options_for(q)],
            )

        grade = grade_quiz(
            {q.id: q.correct_option_index for q in catalog.questions},
            {qid: selections[qid] for qid in question_ids},
            settings.QUIZ_PASSING_SCORE_PERCENT,
        )

        # -------------------------------
        # 3. Submission + answers
        # -------------------------------
        try:
            submission = QuizSubmission(
                quiz_id=quiz_id,
                user_id=user_id,
                status="submitted",
                score_percent=grade.score_percent,
                submitted_at=now,
            )
            db.add(submission)
            db.flush()

            for graded in grade.questions:
                db.add(
                    QuizSubmissionAnswer(
                        submission_id=submission.id,
                        question_id=graded.question_id,
                        selected_option_index=graded.selected_option_index,
                        is_correct=graded.is_correct,
                    )
                )
            db.commit()
            db.refresh(submission)
        except IntegrityError as exc:
            db.rollback()
            logger.warning(f"Duplicate quiz submission for user {user_id} quiz {quiz_id}")
            raise AlreadySubmittedError("You already submitted this quiz.") from exc
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error(f"Quiz submission failed for {quiz_id}: {exc}")
            raise PersistenceError("Could not submit quiz.") from exc

        logger.info(
            f"Quiz {quiz_id} graded for user {user_id}: "
            f"{grade.correct_count}/{grade.total_questions} = {grade.score_percent}%"
        )

        # -------------------------------
        # 4. Reward only if passing
        # -------------------------------
        if grade.passed:
            reward = issue_reward_softly(
                db,
                user_id=user_id,
                challenge_id=settings.QUIZ_BONUS_CHALLENGE_ID,
                source_id=quiz_id,
                activity_type="bonus_quiz",
                metadata={
                    "quiz_id": str(quiz_id),
                    "quiz_submission_id": str(submission.id),
                    "score_percent": grade.score_percent,
                    "passing_score_percent": settings.QUIZ_PASSING_SCORE_PERCENT,
                },
            )
        else:
            reward = FinalizationOutcome(
                submitted=True,
                reward_status=RewardStatus.NOT_ELIGIBLE,
                message=f"No points (needs {settings.QUIZ_PASSING_SCORE_PERCENT}% or higher).",
            )

        return QuizResult(
            submission=submission,
            score_percent=grade.score_percent,
            correct_count=grade.correct_count,
            total_questions=grade.total_questions,
            passed=grade.passed,
            reward=reward,
        )
