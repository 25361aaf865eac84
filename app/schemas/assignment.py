# app/schemas/assignment.py

from typing import Annotated, List, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field

from app.engine.answers import RatingAnswer, TextAnswer
from app.services.navigation import StepView


# =========================
# Requests
# =========================
class RatingAnswerIn(BaseModel):
    type: Literal["rating"]
    value: int

    def to_answer(self) -> RatingAnswer:
        return RatingAnswer(value=self.value)


class TextAnswerIn(BaseModel):
    type: Literal["text"]
    text: str

    def to_answer(self) -> TextAnswer:
        return TextAnswer(text=self.text)


AnswerIn = Annotated[Union[RatingAnswerIn, TextAnswerIn], Field(discriminator="type")]


class StepRequest(BaseModel):
    """Body for next/back: the question the client shows and its answer."""
    question_order: Optional[int] = None
    answer: Optional[AnswerIn] = None


# =========================
# Responses
# =========================
class OptionOut(BaseModel):
    id: UUID
    label: str
    value: int


class QuestionOut(BaseModel):
    id: UUID
    order: int
    text: str
    type: str


class AnswerOut(BaseModel):
    type: str
    value: Optional[int] = None
    text: Optional[str] = None


class FinalizationOut(BaseModel):
    submitted: bool
    reward_status: str
    message: str


class StepResponse(BaseModel):
    assignment_id: UUID
    title: str
    points: int
    submission_id: UUID

    state: str
    position: int
    total_questions: int
    is_last: bool
    read_only: bool

    question: QuestionOut
    options: List[OptionOut]
    current_answer: Optional[AnswerOut] = None

    finalization: Optional[FinalizationOut] = None

    @classmethod
    def from_view(cls, view: StepView) -> "StepResponse":
        answer = view.current_answer
        current = None
        if isinstance(answer, RatingAnswer):
            current = AnswerOut(type=answer.type.value, value=answer.value)
        elif isinstance(answer, TextAnswer):
            current = AnswerOut(type=answer.type.value, text=answer.text)

        finalization = None
        if view.finalization is not None:
            finalization = FinalizationOut(
                submitted=view.finalization.submitted,
                reward_status=view.finalization.reward_status.value,
                message=view.finalization.message,
            )

        return cls(
            assignment_id=view.assignment.id,
            title=view.assignment.title,
            points=view.assignment.points,
            submission_id=view.submission.id,
            state=view.state.value,
            position=view.position,
            total_questions=view.total_questions,
            is_last=view.is_last,
            read_only=view.read_only,
            question=QuestionOut(
                id=view.question.id,
                order=view.question.question_order,
                text=view.question.question_text,
                type=view.question.question_type,
            ),
            options=[
                OptionOut(id=o.id, label=o.option_label, value=o.option_value)
                for o in view.options
            ],
            current_answer=current,
            finalization=finalization,
        )


class AssignmentSummary(BaseModel):
    id: UUID
    title: str
    description: Optional[str] = None
    points: int

    class Config:
        from_attributes = True


class AssignmentListResponse(BaseModel):
    open: List[AssignmentSummary]
    completed: List[AssignmentSummary]
