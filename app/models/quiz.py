import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
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
# Quiz (Scored Quiz)
# =========================
class Quiz(Base):
    __tablename__ = "quizzes"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    points = Column(Integer, nullable=False, default=0)

    status = Column(String(50), nullable=False, default="draft")

    # weekly availability window; both null means always open
    publish_start = Column(DateTime(timezone=True), nullable=True)
    publish_end = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)


class QuizQuestion(Base):
    __tablename__ = "quiz_questions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    quiz_id = Column(Uuid, ForeignKey("quizzes.id"), nullable=False, index=True)

    sort_order = Column(Integer, nullable=False)
    prompt = Column(Text, nullable=False)
    hint = Column(Text, nullable=True)
    explanation = Column(Text, nullable=True)

    correct_option_index = Column(Integer, nullable=False)


class QuizOption(Base):
    __tablename__ = "quiz_options"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    question_id = Column(Uuid, ForeignKey("quiz_questions.id"), nullable=False, index=True)

    option_index = Column(Integer, nullable=False)
    option_text = Column(Text, nullable=False)


# =========================
# Quiz Submission - single attempt per (user, quiz)
# =========================
class QuizSubmission(Base):
    __tablename__ = "quiz_submissions"
    __table_args__ = (
        UniqueConstraint("quiz_id", "user_id", name="uq_quiz_submission_user"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    quiz_id = Column(Uuid, ForeignKey("quizzes.id"), nullable=False)
    user_id = Column(Uuid, nullable=False, index=True)

    # a quiz submission is written once, already graded
    status = Column(String(50), nullable=False, default="submitted")

    score_percent = Column(Integer, nullable=False)

    started_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    submitted_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)


class QuizSubmissionAnswer(Base):
    __tablename__ = "quiz_submission_answers"
    __table_args__ = (
        UniqueConstraint("submission_id", "question_id", name="uq_quiz_answer_question"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    submission_id = Column(Uuid, ForeignKey("quiz_submissions.id"), nullable=False, index=True)
    question_id = Column(Uuid, ForeignKey("quiz_questions.id"), nullable=False)

    selected_option_index = Column(Integer, nullable=False)
    is_correct = Column(Boolean, nullable=False, default=False)
