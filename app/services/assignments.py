# app/services/assignments.py

from typing import List, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from app.engine.answers import SubmissionState, state_from_status
from app.models.assignment import AdminAssignment, AssignmentSubmission


class AssignmentListService:
    @staticmethod
    def list_for_user(
        db: Session,
        user_id: UUID,
    ) -> Tuple[List[AdminAssignment], List[AdminAssignment]]:
        """
        Split assignments into (open, completed) for the user.

        Completed ones are listed even if they were unpublished afterwards.
        """
        subs = (
            db.query(AssignmentSubmission)
            .filter(AssignmentSubmission.user_id == user_id)
            .all()
        )
        completed_ids = {
            s.admin_assignment_id
            for s in subs
            if state_from_status(s.status, s.submitted_at) == SubmissionState.SUBMITTED
        }

        completed: List[AdminAssignment] = []
        if completed_ids:
            completed = (
                db.query(AdminAssignment)
                .filter(AdminAssignment.id.in_(list(completed_ids)))
                .order_by(AdminAssignment.created_at.desc())
                .all()
            )

        published = (
            db.query(AdminAssignment)
            .filter(AdminAssignment.status == "published")
            .order_by(AdminAssignment.created_at.desc())
            .all()
        )
        open_rows = [a for a in published if a.id not in completed_ids]

        return open_rows, completed
