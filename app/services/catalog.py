# app/services/catalog.py

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import CatalogLoadError
from app.models.assignment import (
    AdminAssignment,
    AssignmentQuestion,
    AssignmentQuestionOption,
)
from app.models.quiz import Quiz, QuizOption, QuizQuestion

logger = logging.getLogger(__name__)


@dataclass
class AssignmentCatalog:
    assignment: AdminAssignment
    questions: List[AssignmentQuestion]
    options_by_question: Dict[UUID, List[AssignmentQuestionOption]] = field(default_factory=dict)

    def options_for(self, question: AssignmentQuestion) -> List[AssignmentQuestionOption]:
        # questions without options are valid but unanswerable
        return self.options_by_question.get(question.id, [])

    def index_of_order(self, order: Optional[int]) -> Optional[int]:
        if order is None:
            return None
        for idx, q in enumerate(self.questions):
            if q.question_order == order:
                return idx
        return None

    @property
    def first_order(self) -> int:
        return self.questions[0].question_order if self.questions else 1

    @property
    def last_order(self) -> int:
        return self.questions[-1].question_order if self.questions else 1


@dataclass
class QuizCatalog:
    quiz: Quiz
    questions: List[QuizQuestion]
    options_by_question: Dict[UUID, List[QuizOption]] = field(default_factory=dict)

    def options_for(self, question: QuizQuestion) -> List[QuizOption]:
        return self.options_by_question.get(question.id, [])


class CatalogLoader:
    @staticmethod
    def load_assignment(db: Session, assignment_id: UUID) -> AssignmentCatalog:
        """
        Load an admin assignment with its questions ordered by question_order
        and each question's options ordered by option_order.
        """
        try:
            assignment = (
                db.query(AdminAssignment)
                .filter(AdminAssignment.id == assignment_id)
                .first()
            )
            if not assignment:
                raise CatalogLoadError("Assignment not found")

            questions = (
                db.query(AssignmentQuestion)
                .filter(AssignmentQuestion.admin_assignment_id == assignment_id)
                .order_by(AssignmentQuestion.question_order)
                .all()
            )

            options_map: Dict[UUID, List[AssignmentQuestionOption]] = {}
            question_ids = [q.id for q in questions]
            if question_ids:
                options = (
                    db.query(AssignmentQuestionOption)
                    .filter(AssignmentQuestionOption.question_id.in_(question_ids))
                    .order_by(AssignmentQuestionOption.option_order)
                    .all()
                )
                for opt in options:
                    options_map.setdefault(opt.question_id, []).append(opt)
        except SQLAlchemyError as exc:
            logger.error(f"Assignment catalog load failed for {assignment_id}: {exc}")
            raise CatalogLoadError("Couldn't load assignment") from exc

        return AssignmentCatalog(
            assignment=assignment,
            questions=questions,
            options_by_question=options_map,
        )

    @staticmethod
    def load_quiz(db: Session, quiz_id: UUID) -> QuizCatalog:
        """Load a quiz with questions by sort_order and options by option_index."""
        try:
            quiz = db.query(Quiz).filter(Quiz.id == quiz_id).first()
            if not quiz:
                raise CatalogLoadError("Quiz not found")

            questions = (
                db.query(QuizQuestion)
                .filter(QuizQuestion.quiz_id == quiz_id)
                .order_by(QuizQuestion.sort_order)
                .all()
            )

            options_map: Dict[UUID, List[QuizOption]] = {}
            question_ids = [q.id for q in questions]
            if question_ids:
                options = (
                    db.query(QuizOption)
                    .filter(QuizOption.question_id.in_(question_ids))
                    .order_by(QuizOption.option_index)
                    .all()
                )
                for opt in options:
                    options_map.setdefault(opt.question_id, []).append(opt)
        except SQLAlchemyError as exc:
            logger.error(f"Quiz catalog load failed for {quiz_id}: {exc}")
            raise CatalogLoadError("Could not load quiz") from exc

        return QuizCatalog(quiz=quiz, questions=questions, options_by_question=options_map)
