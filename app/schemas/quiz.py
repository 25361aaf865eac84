# app/schemas/quiz.py

from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel


class QuizSubmitRequest(BaseModel):
    """{"answers": {"<question_id>": <option_index>, ...}}"""
    answers: Dict[UUID, Optional[int]]


class QuizOptionOut(BaseModel):
    id: UUID
    option_index: int
    option_text: str


class QuizQuestionOut(BaseModel):
    id: UUID
    sort_order: int
    prompt: str
    hint: Optional[str] = None
    options: List[QuizOptionOut]

    # only filled in once the quiz is completed
    selected_option_index: Optional[int] = None
    is_correct: Optional[bool] = None
    explanation: Optional[str] = None


class QuizDetailResponse(BaseModel):
    id: UUID
    title: str
    description: Optional[str] = None
    points: int

    available: bool
    completed: bool
    score_percent: Optional[int] = None
    passed: Optional[bool] = None

    questions: List[QuizQuestionOut]


class QuizSubmitResponse(BaseModel):
    submission_id: UUID
    score_percent: int
    correct_count: int
    total_questions: int
    passed: bool
    reward_status: str
    message: str
    submitted_at: datetime


class QuizSummary(BaseModel):
    id: UUID
    title: str
    description: Optional[str] = None
    points: int
    publish_start: Optional[datetime] = None
    publish_end: Optional[datetime] = None
    completed: bool = False
    score_percent: Optional[int] = None
