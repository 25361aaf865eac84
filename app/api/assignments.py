from typing import Optional
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.api.deps import get_current_user_id, parse_uuid
from app.core.errors import AssessmentError
from app.db.session import get_db
from app.schemas.assignment import (
    AssignmentListResponse,
    AssignmentSummary,
    StepRequest,
    StepResponse,
)
from app.services.assignments import AssignmentListService
from app.services.navigation import AssignmentNavigator

router = APIRouter(prefix="/assignments", tags=["Assignments"])


def _open_navigator(db: Session, user_id: uuid.UUID, assignment_id: str) -> AssignmentNavigator:
    return AssignmentNavigator.open(db, user_id, parse_uuid(assignment_id, "assignment"))


# -------------------------------------------------
# GET: Open / completed assignments
# -------------------------------------------------

@router.get("", response_model=AssignmentListResponse)
def list_assignments(
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    open_rows, completed = AssignmentListService.list_for_user(db, user_id)
    return AssignmentListResponse(
        open=[AssignmentSummary.model_validate(a) for a in open_rows],
        completed=[AssignmentSummary.model_validate(a) for a in completed],
    )


# -------------------------------------------------
# GET: Enter (get-or-create submission, resume)
# -------------------------------------------------

@router.get("/{assignment_id}", response_model=StepResponse)
def enter_assignment(
    assignment_id: str,
    question_order: Optional[int] = Query(None, description="Review a finalized assignment at this question"),
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    try:
        navigator = _open_navigator(db, user_id, assignment_id)
        view = navigator.view()
        if question_order is not None and navigator.read_only:
            view = navigator.go_to(question_order)
    except AssessmentError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message)

    return StepResponse.from_view(view)


# -------------------------------------------------
# POST: Next (validate, save, advance or finalize)
# -------------------------------------------------

@router.post("/{assignment_id}/next", response_model=StepResponse)
def next_question(
    assignment_id: str,
    payload: StepRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    try:
        navigator = _open_navigator(db, user_id, assignment_id)
        if payload.question_order is not None:
            navigator.go_to(payload.question_order)
        answer = payload.answer.to_answer() if payload.answer else None
        view = navigator.next(answer)
    except AssessmentError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message)

    return StepResponse.from_view(view)


# -------------------------------------------------
# POST: Back (best-effort save, retreat)
# -------------------------------------------------

@router.post("/{assignment_id}/back", response_model=StepResponse)
def previous_question(
    assignment_id: str,
    payload: StepRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    try:
        navigator = _open_navigator(db, user_id, assignment_id)
        if payload.question_order is not None:
            navigator.go_to(payload.question_order)
        answer = payload.answer.to_answer() if payload.answer else None
        view = navigator.back(answer)
    except AssessmentError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message)

    return StepResponse.from_view(view)
