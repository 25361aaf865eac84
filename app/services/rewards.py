# app/services/rewards.py

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import RewardIssuanceError
from app.models.challenge_activity import ChallengeActivity

logger = logging.getLogger(__name__)


@dataclass
class RewardResult:
    activity_id: UUID
    created: bool


class RewardIssuer:
    @staticmethod
    def find(db: Session, user_id: UUID, challenge_id: UUID, source_id: UUID):
        return (
            db.query(ChallengeActivity)
            .filter(
                ChallengeActivity.user_id == user_id,
                ChallengeActivity.challenge_id == challenge_id,
                ChallengeActivity.source_id == source_id,
            )
            .first()
        )

    @staticmethod
    def issue(
        db: Session,
        user_id: UUID,
        challenge_id: UUID,
        source_id: UUID,
        activity_type: str,
        metadata: Dict[str, Any],
    ) -> RewardResult:
        """
        Grant the point award for a completed assessment at most once.

        An existing activity for (user, challenge, source) is returned as-is.
        A unique constraint on the same key turns a lost insert race into
        the same "already issued" outcome.
        """
        try:
            existing = RewardIssuer.find(db, user_id, challenge_id, source_id)
            if existing:
                return RewardResult(activity_id=existing.id, created=False)

            activity = ChallengeActivity(
                user_id=user_id,
                challenge_id=challenge_id,
                source_id=source_id,
                activity_type=activity_type,
                status="approved",
                occurred_at=datetime.now(timezone.utc),
                activity_metadata=metadata,
            )
            db.add(activity)
            db.commit()
            db.refresh(activity)
        except IntegrityError as exc:
            db.rollback()
            winner = RewardIssuer.find(db, user_id, challenge_id, source_id)
            if winner is None:
                logger.error(f"Reward insert rejected for source {source_id}: {exc}")
                raise RewardIssuanceError("Points could not be awarded") from exc
            logger.warning(f"Reward for source {source_id} already issued by a concurrent call")
            return RewardResult(activity_id=winner.id, created=False)
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error(f"Reward issuance failed for source {source_id}: {exc}")
            raise RewardIssuanceError("Points could not be awarded") from exc

        logger.info(f"Issued {activity_type} reward {activity.id} to user {user_id}")
        return RewardResult(activity_id=activity.id, created=True)
