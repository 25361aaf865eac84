import uuid
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.base import Base
from app.db.session import get_db
from app.main import app
from app.models.assignment import (
    AdminAssignment,
    AssignmentQuestion,
    AssignmentQuestionOption,
)
from app.models.quiz import Quiz, QuizOption, QuizQuestion


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def _get_db():
        session = TestingSession()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def user_id():
    return uuid.uuid4()


@pytest.fixture
def headers(user_id):
    return {"X-User-Id": str(user_id)}


def make_assignment(db, kinds=("rating", "rating", "rating", "text", "text", "text"), status="published"):
    """Seed an assignment; rating questions get option values 1..5."""
    assignment = AdminAssignment(title="Weekly Check-in", points=50, status=status)
    db.add(assignment)
    db.flush()

    for order, kind in enumerate(kinds, start=1):
        question = AssignmentQuestion(
            admin_assignment_id=assignment.id,
            question_order=order,
            question_text=f"Question {order}",
            question_type=kind,
        )
        db.add(question)
        db.flush()
        if kind == "rating":
            for value in range(1, 6):
                db.add(
                    AssignmentQuestionOption(
                        question_id=question.id,
                        option_label=str(value),
                        option_value=value,
                        option_order=value,
                    )
                )

    db.commit()
    return assignment


def make_quiz(db, correct=(1, 2, 3, 4, 1), window=True, status="published"):
    now = datetime.now(timezone.utc)
    quiz = Quiz(
        title="Nutrition Basics",
        points=25,
        status=status,
        publish_start=now - timedelta(days=1) if window else now - timedelta(days=10),
        publish_end=now + timedelta(days=6) if window else now - timedelta(days=3),
    )
    db.add(quiz)
    db.flush()

    for order, correct_index in enumerate(correct, start=1):
        question = QuizQuestion(
            quiz_id=quiz.id,
            sort_order=order,
            prompt=f"Quiz question {order}",
            explanation=f"Because {correct_index}",
            correct_option_index=correct_index,
        )
        db.add(question)
        db.flush()
        for index in range(1, 5):
            db.add(QuizOption(question_id=question.id, option_index=index, option_text=f"Choice {index}"))

    db.commit()
    return quiz


@pytest.fixture
def seed_assignment(db):
    return lambda **kw: make_assignment(db, **kw)


@pytest.fixture
def seed_quiz(db):
    return lambda **kw: make_quiz(db, **kw)
