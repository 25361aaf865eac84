from typing import List
import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.api.deps import get_current_user_id, parse_uuid
from app.core.config import settings
from app.core.errors import AssessmentError
from app.db.session import get_db
from app.schemas.quiz import (
    QuizDetailResponse,
    QuizOptionOut,
    QuizQuestionOut,
    QuizSubmitRequest,
    QuizSubmitResponse,
    QuizSummary,
)
from app.services.quiz import QuizScorer

router = APIRouter(prefix="/quizzes", tags=["Quizzes"])


# -------------------------------------------------
# GET: Quizzes open this week
# -------------------------------------------------

@router.get("", response_model=List[QuizSummary])
def list_quizzes(
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    rows = QuizScorer.list_open(db, user_id)
    return [
        QuizSummary(
            id=quiz.id,
            title=quiz.title,
            description=quiz.description,
            points=quiz.points,
            publish_start=quiz.publish_start,
            publish_end=quiz.publish_end,
            completed=submission is not None,
            score_percent=submission.score_percent if submission else None,
        )
        for quiz, submission in rows
    ]


# -------------------------------------------------
# GET: Quiz (questions; prior result if completed)
# -------------------------------------------------

@router.get("/{quiz_id}", response_model=QuizDetailResponse)
def get_quiz(
    quiz_id: str,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    try:
        view = QuizScorer.get_view(db, user_id, parse_uuid(quiz_id, "quiz"))
    except AssessmentError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message)

    quiz = view.catalog.quiz
    questions: List[QuizQuestionOut] = []

    for q in view.catalog.questions:
        recorded = view.recorded.get(q.id)
        questions.append(
            QuizQuestionOut(
                id=q.id,
                sort_order=q.sort_order,
                prompt=q.prompt,
                hint=q.hint,
                options=[
                    QuizOptionOut(id=o.id, option_index=o.option_index, option_text=o.option_text)
                    for o in view.catalog.options_for(q)
                ],
                # never reveal the key before the quiz is done
                selected_option_index=recorded.selected_option_index if recorded else None,
                is_correct=recorded.is_correct if recorded else None,
                explanation=q.explanation if view.completed else None,
            )
        )

    score = view.submission.score_percent if view.submission else None

    return QuizDetailResponse(
        id=quiz.id,
        title=quiz.title,
        description=quiz.description,
        points=quiz.points,
        available=view.available,
        completed=view.completed,
        score_percent=score,
        passed=(score >= settings.QUIZ_PASSING_SCORE_PERCENT) if score is not None else None,
        questions=questions,
    )


# -------------------------------------------------
# POST: Submit quiz (single attempt)
# -------------------------------------------------

@router.post("/{quiz_id}/submit", response_model=QuizSubmitResponse)
def submit_quiz(
    quiz_id: str,
    payload: QuizSubmitRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    try:
        result = QuizScorer.submit(
            db,
            user_id=user_id,
            quiz_id=parse_uuid(quiz_id, "quiz"),
            selections=payload.answers,
        )
    except AssessmentError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message)

    return QuizSubmitResponse(
        submission_id=result.submission.id,
        score_percent=result.score_percent,
        correct_count=result.correct_count,
        total_questions=result.total_questions,
        passed=result.passed,
        reward_status=result.reward.reward_status.value,
        message=result.reward.message,
        submitted_at=result.submission.submitted_at,
    )
