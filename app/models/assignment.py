import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)

from app.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =========================
# Admin Assignment (Sequential Questionnaire)
# =========================
class AdminAssignment(Base):
    __tablename__ = "admin_assignments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    points = Column(Integer, nullable=False, default=0)

    # draft | published | archived
    status = Column(String(50), nullable=False, default="draft")

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)


class AssignmentQuestion(Base):
    __tablename__ = "admin_assignment_questions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    admin_assignment_id = Column(
        Uuid,
        ForeignKey("admin_assignments.id"),
        nullable=False,
        index=True,
    )

    question_order = Column(Integer, nullable=False)
    question_text = Column(Text, nullable=False)

    # rating | text
    question_type = Column(String(20), nullable=False)


class AssignmentQuestionOption(Base):
    __tablename__ = "admin_assignment_question_options"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    question_id = Column(
        Uuid,
        ForeignKey("admin_assignment_questions.id"),
        nullable=False,
        index=True,
    )

    option_label = Column(String(255), nullable=False)
    option_value = Column(Integer, nullable=False)
    option_order = Column(Integer, nullable=False, default=0)


# =========================
# Submission - one per (user, assignment)
# =========================
class AssignmentSubmission(Base):
    __tablename__ = "admin_assignment_submissions"
    __table_args__ = (
        UniqueConstraint(
            "admin_assignment_id",
            "user_id",
            name="uq_assignment_submission_user",
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    admin_assignment_id = Column(
        Uuid,
        ForeignKey("admin_assignments.id"),
        nullable=False,
    )
    user_id = Column(Uuid, nullable=False, index=True)

    # in_progress | submitted | approved (approved is set by admin review)
    status = Column(String(50), nullable=False, default="in_progress")

    started_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    submitted_at = Column(DateTime(timezone=True), nullable=True)

    current_question_order = Column(Integer, nullable=True)


# =========================
# Answer - one per (user, assignment, question)
# =========================
class AssignmentAnswer(Base):
    __tablename__ = "admin_assignment_answers"
    __table_args__ = (
        UniqueConstraint(
            "admin_assignment_id",
            "question_id",
            "user_id",
            name="uq_assignment_answer_user_question",
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    admin_assignment_id = Column(
        Uuid,
        ForeignKey("admin_assignments.id"),
        nullable=False,
    )
    question_id = Column(
        Uuid,
        ForeignKey("admin_assignment_questions.id"),
        nullable=False,
    )
    user_id = Column(Uuid, nullable=False)

    # rating -> answer_value, text -> answer_text
    answer_type = Column(String(20), nullable=False)
    answer_text = Column(Text, nullable=True)
    answer_value = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)
