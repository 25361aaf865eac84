# app/services/finalization.py

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import FinalizationError, RewardIssuanceError
from app.engine.answers import SubmissionState, SubmissionStatus, state_from_status
from app.models.assignment import AdminAssignment, AssignmentSubmission
from app.services.rewards import RewardIssuer

logger = logging.getLogger(__name__)


class RewardStatus(str, Enum):
    ISSUED = "issued"
    ALREADY_ISSUED = "already_issued"
    PENDING = "pending"  # completed, but the reward write failed
    NOT_ELIGIBLE = "not_eligible"


@dataclass
class FinalizationOutcome:
    submitted: bool
    reward_status: RewardStatus
    message: str
    activity_id: Optional[UUID] = None


def issue_reward_softly(
    db: Session,
    user_id: UUID,
    challenge_id: UUID,
    source_id: UUID,
    activity_type: str,
    metadata: dict,
) -> FinalizationOutcome:
    """
    Issue a reward after the submission is already final.

    A RewardIssuanceError is downgraded to a "reward pending" outcome: the
    assessment stays complete and there is no automatic retry.
    """
    try:
        result = RewardIssuer.issue(
            db,
            user_id=user_id,
            challenge_id=challenge_id,
            source_id=source_id,
            activity_type=activity_type,
            metadata=metadata,
        )
    except RewardIssuanceError as exc:
        logger.error(f"Submitted, but no points for user {user_id} source {source_id}: {exc}")
        return FinalizationOutcome(
            submitted=True,
            reward_status=RewardStatus.PENDING,
            message="Submitted, but points could not be awarded yet.",
        )

    status = RewardStatus.ISSUED if result.created else RewardStatus.ALREADY_ISSUED
    return FinalizationOutcome(
        submitted=True,
        reward_status=status,
        message="Submitted. Points awarded!",
        activity_id=result.activity_id,
    )


class FinalizationService:
    @staticmethod
    def finalize_assignment(
        db: Session,
        user_id: UUID,
        assignment: AdminAssignment,
        submission: AssignmentSubmission,
        last_question_order: int,
    ) -> FinalizationOutcome:
        """
        One-way transition of a questionnaire submission to submitted,
        followed by idempotent reward issuance.

        Calling this on an already finalized submission is a no-op.
        """
        if state_from_status(submission.status, submission.submitted_at) == SubmissionState.SUBMITTED:
            return FinalizationService.describe_finalized(db, user_id, assignment)

        # -------------------------------
        # 1. Mark submission final
        # -------------------------------
        try:
            submission.submitted_at = datetime.now(timezone.utc)
            submission.status = SubmissionStatus.SUBMITTED.value
            submission.current_question_order = last_question_order
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error(f"Finalization failed for submission {submission.id}: {exc}")
            raise FinalizationError("Couldn't submit") from exc

        logger.info(f"Submission {submission.id} finalized for assignment {assignment.id}")

        # -------------------------------
        # 2. Reward (at most once)
        # -------------------------------
        return issue_reward_softly(
            db,
            user_id=user_id,
            challenge_id=settings.ADMIN_ASSIGNMENT_CHALLENGE_ID,
            source_id=assignment.id,
            activity_type="admin_assignment",
            metadata={
                "admin_assignment_id": str(assignment.id),
                "submission_id": str(submission.id),
                "title": assignment.title,
            },
        )

    @staticmethod
    def describe_finalized(
        db: Session,
        user_id: UUID,
        assignment: AdminAssignment,
    ) -> FinalizationOutcome:
        """Outcome for a submission that was finalized earlier. Read only."""
        try:
            existing = RewardIssuer.find(
                db, user_id, settings.ADMIN_ASSIGNMENT_CHALLENGE_ID, assignment.id
            )
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning(f"Reward lookup failed for assignment {assignment.id}: {exc}")
            existing = None

        if existing:
            return FinalizationOutcome(
                submitted=True,
                reward_status=RewardStatus.ALREADY_ISSUED,
                message="Already submitted.",
                activity_id=existing.id,
            )
        return FinalizationOutcome(
            submitted=True,
            reward_status=RewardStatus.PENDING,
            message="Already submitted. Points are pending.",
        )
