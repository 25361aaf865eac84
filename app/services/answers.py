# app/services/answers.py

import logging
from typing import Dict, List
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import PersistenceError, SubmissionLockedError
from app.engine.answers import (
    Answer,
    AnswerType,
    RatingAnswer,
    SubmissionStatus,
    TextAnswer,
    validate_answer,
)
from app.models.assignment import (
    AssignmentAnswer,
    AssignmentQuestion,
    AssignmentQuestionOption,
    AssignmentSubmission,
)

logger = logging.getLogger(__name__)


def to_answer(row: AssignmentAnswer):
    """Rebuild the tagged answer from a stored row; None for unreadable rows."""
    if row.answer_type == AnswerType.RATING.value and row.answer_value is not None:
        return RatingAnswer(value=int(row.answer_value))
    if row.answer_type == AnswerType.TEXT.value:
        return TextAnswer(text=row.answer_text or "")
    return None


class AnswerStore:
    @staticmethod
    def _find(db: Session, user_id: UUID, assignment_id: UUID, question_id: UUID):
        return (
            db.query(AssignmentAnswer)
            .filter(
                AssignmentAnswer.admin_assignment_id == assignment_id,
                AssignmentAnswer.question_id == question_id,
                AssignmentAnswer.user_id == user_id,
            )
            .first()
        )

    @staticmethod
    def _is_locked(db: Session, user_id: UUID, assignment_id: UUID) -> bool:
        finalized = (
            db.query(AssignmentSubmission.id)
            .filter(
                AssignmentSubmission.admin_assignment_id == assignment_id,
                AssignmentSubmission.user_id == user_id,
                or_(
                    AssignmentSubmission.submitted_at.isnot(None),
                    AssignmentSubmission.status.in_(
                        [SubmissionStatus.SUBMITTED.value, SubmissionStatus.APPROVED.value]
                    ),
                ),
            )
            .first()
        )
        return finalized is not None

    @staticmethod
    def load(db: Session, user_id: UUID, assignment_id: UUID) -> Dict[UUID, Answer]:
        """Saved answers keyed by question id, used to pre-populate a resumed run."""
        try:
            rows = (
                db.query(AssignmentAnswer)
                .filter(
                    AssignmentAnswer.admin_assignment_id == assignment_id,
                    AssignmentAnswer.user_id == user_id,
                )
                .all()
            )
        except SQLAlchemyError as exc:
            logger.error(f"Answer load failed for assignment {assignment_id}: {exc}")
            raise PersistenceError("Couldn't load your answers") from exc
        answers: Dict[UUID, Answer] = {}
        for row in rows:
            answer = to_answer(row)
            if answer is not None:
                answers[row.question_id] = answer
        return answers

    @staticmethod
    def save(
        db: Session,
        user_id: UUID,
        assignment_id: UUID,
        question: AssignmentQuestion,
        options: List[AssignmentQuestionOption],
        answer: Answer,
    ) -> Answer:
        """
        Validate then write the one answer row for (user, assignment, question).

        Validation errors are raised before any store access. An existing row
        is overwritten in place; otherwise a new row is inserted. A unique
        constraint catches a concurrent insert, in which case the winner's
        row is overwritten instead. Answers of a finalized submission are
        never written; SubmissionLockedError is raised instead.
        """
        answer = validate_answer(
            question.question_type,
            answer,
            allowed_values=[o.option_value for o in options],
        )

        answer_text = answer.text if isinstance(answer, TextAnswer) else None
        answer_value = answer.value if isinstance(answer, RatingAnswer) else None

        try:
            if AnswerStore._is_locked(db, user_id, assignment_id):
                raise SubmissionLockedError("This assignment was already submitted")

            existing = AnswerStore._find(db, user_id, assignment_id, question.id)
            if existing:
                existing.answer_type = answer.type.value
                existing.answer_text = answer_text
                existing.answer_value = answer_value
                db.commit()
                return answer

            db.add(
                AssignmentAnswer(
                    admin_assignment_id=assignment_id,
                    question_id=question.id,
                    user_id=user_id,
                    answer_type=answer.type.value,
                    answer_text=answer_text,
                    answer_value=answer_value,
                )
            )
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.warning(f"Concurrent answer insert for question {question.id}; overwriting")
            try:
                existing = AnswerStore._find(db, user_id, assignment_id, question.id)
                if existing is None:
                    raise PersistenceError("Couldn't save")
                existing.answer_type = answer.type.value
                existing.answer_text = answer_text
                existing.answer_value = answer_value
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                raise PersistenceError("Couldn't save") from exc
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error(f"Answer save failed for question {question.id}: {exc}")
            raise PersistenceError("Couldn't save") from exc

        return answer
