# app/engine/answers.py

"""
Answer variants and per-type validation for assessments.

Answers are a tagged union: the tag decides which validation rule applies
and which storage column carries the value. Nothing here touches the store.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional, Union

from app.core.errors import ValidationError


class AnswerType(str, Enum):
    """Supported answer tags."""
    RATING = "rating"
    TEXT = "text"
    SELECTED_OPTION = "selected_option"


class SubmissionStatus(str, Enum):
    """Stored status column of a questionnaire submission."""
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    APPROVED = "approved"


class SubmissionState(str, Enum):
    """Navigator state derived from the stored submission."""
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"


@dataclass(frozen=True)
class RatingAnswer:
    value: int
    type: AnswerType = AnswerType.RATING


@dataclass(frozen=True)
class TextAnswer:
    text: str
    type: AnswerType = AnswerType.TEXT


@dataclass(frozen=True)
class SelectedOptionAnswer:
    option_index: int
    type: AnswerType = AnswerType.SELECTED_OPTION


Answer = Union[RatingAnswer, TextAnswer, SelectedOptionAnswer]


def state_from_status(status: Optional[str], submitted_at: Optional[datetime] = None) -> SubmissionState:
    """
    Map a stored submission to navigator state.

    A submitted_at timestamp wins over a stale status column so rows written
    by older clients (timestamp only) still read as finalized.
    """
    if submitted_at is not None:
        return SubmissionState.SUBMITTED
    if status in (SubmissionStatus.SUBMITTED.value, SubmissionStatus.APPROVED.value):
        return SubmissionState.SUBMITTED
    return SubmissionState.IN_PROGRESS


def validate_answer(
    question_type: str,
    answer: Optional[Answer],
    allowed_values: Iterable[int] = (),
) -> Answer:
    """
    Validate an answer against its question and return the normalized value.

    Rules:
    1. An answer must be present
    2. The answer tag must match the question type
    3. Rating values must be one of the question's option values
    4. Text must be non-empty after trimming (returned trimmed)
    5. Selected options must be one of the question's option indices
    """
    if answer is None:
        if question_type == AnswerType.RATING.value:
            raise ValidationError("Please choose a rating to continue.")
        if question_type == AnswerType.TEXT.value:
            raise ValidationError("Please enter a short response to continue.")
        raise ValidationError("Please choose an option to continue.")

    if answer.type.value != question_type:
        raise ValidationError(
            f"Expected a {question_type} answer, got {answer.type.value}."
        )

    allowed = set(allowed_values)

    if isinstance(answer, RatingAnswer):
        if not allowed:
            raise ValidationError("This question has no rating options to choose from.")
        if answer.value not in allowed:
            raise ValidationError(f"Rating {answer.value} is not one of the options.")
        return answer

    if isinstance(answer, TextAnswer):
        text = (answer.text or "").strip()
        if not text:
            raise ValidationError("Please enter a short response to continue.")
        return TextAnswer(text=text)

    if isinstance(answer, SelectedOptionAnswer):
        if answer.option_index not in allowed:
            raise ValidationError(f"Option {answer.option_index} is not one of the choices.")
        return answer

    raise ValidationError("Unsupported answer type.")
