# app/services/submissions.py

import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import PersistenceError
from app.engine.answers import SubmissionStatus
from app.models.assignment import AssignmentSubmission

logger = logging.getLogger(__name__)


class SubmissionTracker:
    @staticmethod
    def find(db: Session, user_id: UUID, assignment_id: UUID) -> Optional[AssignmentSubmission]:
        return (
            db.query(AssignmentSubmission)
            .filter(
                AssignmentSubmission.admin_assignment_id == assignment_id,
                AssignmentSubmission.user_id == user_id,
            )
            .first()
        )

    @staticmethod
    def get_or_create(
        db: Session,
        user_id: UUID,
        assignment_id: UUID,
        first_question_order: int,
    ) -> AssignmentSubmission:
        """
        Return the single submission for (user, assignment), creating it on
        first view. An existing row is returned untouched.

        The insert is backed by a unique constraint: if a concurrent caller
        created the row between our read and our insert, the IntegrityError is
        swallowed and the winner's row is returned.
        """
        try:
            existing = SubmissionTracker.find(db, user_id, assignment_id)
            if existing:
                return existing

            submission = AssignmentSubmission(
                admin_assignment_id=assignment_id,
                user_id=user_id,
                status=SubmissionStatus.IN_PROGRESS.value,
                started_at=datetime.now(timezone.utc),
                current_question_order=first_question_order,
            )
            db.add(submission)
            db.commit()
            db.refresh(submission)
        except IntegrityError:
            db.rollback()
            logger.warning(
                f"Concurrent submission create for user={user_id} assignment={assignment_id}; reusing existing row"
            )
            winner = SubmissionTracker.find(db, user_id, assignment_id)
            if winner is None:
                raise PersistenceError("Couldn't start assignment")
            return winner
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error(f"Submission create failed: {exc}")
            raise PersistenceError("Couldn't start assignment") from exc

        logger.info(f"Created submission {submission.id} for assignment {assignment_id}")
        return submission

    @staticmethod
    def set_position(db: Session, submission: AssignmentSubmission, question_order: int) -> None:
        try:
            submission.current_question_order = question_order
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error(f"Position update failed for submission {submission.id}: {exc}")
            raise PersistenceError("Couldn't save your place") from exc
