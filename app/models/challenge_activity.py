import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, String, UniqueConstraint, Uuid

from app.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChallengeActivity(Base):
    """
    Point award row. Aggregation into the points ledger happens server-side
    and is not handled here.
    """

    __tablename__ = "challenge_activity"
    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "challenge_id",
            "source_id",
            name="uq_challenge_activity_source",
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    user_id = Column(Uuid, nullable=False, index=True)
    challenge_id = Column(Uuid, nullable=False)

    # assessment (assignment / quiz) the award was granted for
    source_id = Column(Uuid, nullable=False)

    activity_type = Column(String(50), nullable=False)

    # approved | pending; reports and review screens filter on it
    status = Column(String(50), nullable=False, default="approved")

    occurred_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    # "metadata" is reserved on declarative classes
    activity_metadata = Column("metadata", JSON, nullable=False, default=dict)
