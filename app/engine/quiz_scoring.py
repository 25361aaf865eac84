# app/engine/quiz_scoring.py

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Hashable, List, Mapping, Optional, Sequence


@dataclass
class GradedQuestion:
    question_id: Any
    selected_option_index: int
    correct_option_index: int

    @property
    def is_correct(self) -> bool:
        return self.selected_option_index == self.correct_option_index


@dataclass
class QuizGrade:
    questions: List[GradedQuestion]
    correct_count: int
    total_questions: int
    score_percent: int
    passed: bool


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on the way back)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def score_percent(correct: int, total: int) -> int:
    """
    round(100 * correct / total), halves rounded up.

    Integer arithmetic keeps 12.5 -> 13 instead of Python's banker's rounding.
    """
    if total <= 0:
        return 0
    return (200 * correct + total) // (2 * total)


def is_within_window(
    publish_start: Optional[datetime],
    publish_end: Optional[datetime],
    now: datetime,
) -> bool:
    """start <= now < end; a missing bound means the quiz is always open."""
    if publish_start is None or publish_end is None:
        return True
    now = as_utc(now)
    return as_utc(publish_start) <= now < as_utc(publish_end)


def grade_quiz(
    correct_by_question: Mapping[Hashable, int],
    selections: Mapping[Hashable, int],
    passing_percent: int,
) -> QuizGrade:
    """
    Grade a fully answered quiz.

    Args:
        correct_by_question: question id -> correct option index, in quiz order
        selections: question id -> selected option index
        passing_percent: threshold at or above which the quiz is passed
    """
    graded: List[GradedQuestion] = []
    for question_id, correct_index in correct_by_question.items():
        graded.append(
            GradedQuestion(
                question_id=question_id,
                selected_option_index=selections[question_id],
                correct_option_index=correct_index,
            )
        )

    correct = sum(1 for g in graded if g.is_correct)
    percent = score_percent(correct, len(graded))

    return QuizGrade(
        questions=graded,
        correct_count=correct,
        total_questions=len(graded),
        score_percent=percent,
        passed=percent >= passing_percent,
    )


def missing_selections(question_ids: Sequence[Hashable], selections: Dict[Hashable, Optional[int]]) -> List[Hashable]:
    return [qid for qid in question_ids if selections.get(qid) is None]
