# app/services/navigation.py

"""
Sequential questionnaire navigator.

States: NOT_STARTED -> IN_PROGRESS(position) -> SUBMITTED (terminal).

Each transition is a sequence of single-row writes. Callers must not fire
a second transition before the first returns; the HTTP layer passes the
question the client is showing so a repeated request lands on the same
answer row and the same next position.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.errors import (
    AssessmentError,
    CatalogLoadError,
    NavigationError,
    SubmissionLockedError,
    ValidationError,
)
from app.engine.answers import Answer, SubmissionState, state_from_status
from app.models.assignment import (
    AdminAssignment,
    AssignmentQuestion,
    AssignmentQuestionOption,
    AssignmentSubmission,
)
from app.services.answers import AnswerStore
from app.services.catalog import AssignmentCatalog, CatalogLoader
from app.services.finalization import FinalizationOutcome, FinalizationService
from app.services.submissions import SubmissionTracker

logger = logging.getLogger(__name__)


@dataclass
class StepView:
    """What the client needs to render the current question."""
    assignment: AdminAssignment
    submission: AssignmentSubmission
    state: SubmissionState
    position: int
    total_questions: int
    question: AssignmentQuestion
    options: List[AssignmentQuestionOption]
    current_answer: Optional[Answer]
    is_last: bool
    read_only: bool
    finalization: Optional[FinalizationOutcome] = None


class AssignmentNavigator:
    def __init__(self, db: Session, user_id: UUID, catalog: AssignmentCatalog):
        self.db = db
        self.user_id = user_id
        self.catalog = catalog

        self.state = SubmissionState.NOT_STARTED
        self.index = 0
        self.submission: Optional[AssignmentSubmission] = None
        self.answers: Dict[UUID, Answer] = {}

    @classmethod
    def open(cls, db: Session, user_id: UUID, assignment_id: UUID) -> "AssignmentNavigator":
        catalog = CatalogLoader.load_assignment(db, assignment_id)
        navigator = cls(db, user_id, catalog)
        navigator.enter()
        return navigator

    # ------------------------------- helpers ----------------------------------
    @property
    def questions(self) -> List[AssignmentQuestion]:
        return self.catalog.questions

    @property
    def current_question(self) -> AssignmentQuestion:
        return self.questions[self.index]

    @property
    def is_last(self) -> bool:
        return self.index == len(self.questions) - 1

    @property
    def read_only(self) -> bool:
        return self.state == SubmissionState.SUBMITTED

    def _require_entered(self) -> None:
        if self.state == SubmissionState.NOT_STARTED or self.submission is None:
            raise NavigationError("Assignment has not been opened")

    def _become_read_only(self) -> None:
        logger.info(f"Submission {self.submission.id} was finalized elsewhere; switching to review")
        self.db.refresh(self.submission)
        self.answers = AnswerStore.load(self.db, self.user_id, self.catalog.assignment.id)
        self.state = SubmissionState.SUBMITTED

    def view(self, finalization: Optional[FinalizationOutcome] = None) -> StepView:
        self._require_entered()
        question = self.current_question
        return StepView(
            assignment=self.catalog.assignment,
            submission=self.submission,
            state=self.state,
            position=self.index,
            total_questions=len(self.questions),
            question=question,
            options=self.catalog.options_for(question),
            current_answer=self.answers.get(question.id),
            is_last=self.is_last,
            read_only=self.read_only,
            finalization=finalization,
        )

    # ----------------------------- transitions --------------------------------
    def enter(self) -> StepView:
        """
        Get-or-create the submission and resume at its stored position.

        A stored position that no longer matches any question falls back to
        the first question.
        """
        if not self.questions:
            raise CatalogLoadError("This assignment has no questions yet")

        self.submission = SubmissionTracker.get_or_create(
            self.db,
            user_id=self.user_id,
            assignment_id=self.catalog.assignment.id,
            first_question_order=self.catalog.first_order,
        )
        self.answers = AnswerStore.load(self.db, self.user_id, self.catalog.assignment.id)

        index = self.catalog.index_of_order(self.submission.current_question_order)
        if index is None:
            logger.warning(
                f"Submission {self.submission.id} points at missing question "
                f"{self.submission.current_question_order}; starting from the first"
            )
            index = 0
        self.index = index

        self.state = state_from_status(self.submission.status, self.submission.submitted_at)
        return self.view()

    def go_to(self, question_order: int) -> StepView:
        """
        Sync with the question the client is showing. No writes.

        While in progress the client may be at or behind the stored position,
        never ahead of it.
        """
        self._require_entered()
        index = self.catalog.index_of_order(question_order)
        if index is None:
            raise ValidationError(f"Unknown question {question_order}")
        if self.state == SubmissionState.IN_PROGRESS and index > self.index:
            raise NavigationError("Answer the current question first")
        self.index = index
        return self.view()

    def next(self, answer: Optional[Answer] = None) -> StepView:
        self._require_entered()

        # read-only review
        if self.read_only:
            if not self.is_last:
                self.index += 1
            return self.view()

        question = self.current_question
        try:
            saved = AnswerStore.save(
                self.db,
                user_id=self.user_id,
                assignment_id=self.catalog.assignment.id,
                question=question,
                options=self.catalog.options_for(question),
                answer=answer,
            )
        except SubmissionLockedError:
            # finalized by another session since enter()
            self._become_read_only()
            return self.view(
                finalization=FinalizationService.describe_finalized(
                    self.db, self.user_id, self.catalog.assignment
                )
            )
        self.answers[question.id] = saved

        if self.is_last:
            outcome = FinalizationService.finalize_assignment(
                self.db,
                user_id=self.user_id,
                assignment=self.catalog.assignment,
                submission=self.submission,
                last_question_order=self.catalog.last_order,
            )
            self.state = SubmissionState.SUBMITTED
            return self.view(finalization=outcome)

        next_order = self.questions[self.index + 1].question_order
        SubmissionTracker.set_position(self.db, self.submission, next_order)
        self.index += 1
        return self.view()

    def back(self, answer: Optional[Answer] = None) -> StepView:
        self._require_entered()
        if self.index == 0:
            raise NavigationError("Already at the first question")

        if self.read_only:
            self.index -= 1
            return self.view()

        if answer is not None:
            question = self.current_question
            try:
                self.answers[question.id] = AnswerStore.save(
                    self.db,
                    user_id=self.user_id,
                    assignment_id=self.catalog.assignment.id,
                    question=question,
                    options=self.catalog.options_for(question),
                    answer=answer,
                )
            except SubmissionLockedError:
                self._become_read_only()
                self.index -= 1
                return self.view()
            except AssessmentError as exc:
                logger.warning(f"Best-effort save on back failed for question {question.id}: {exc}")

        prev_order = self.questions[self.index - 1].question_order
        SubmissionTracker.set_position(self.db, self.submission, prev_order)
        self.index -= 1
        return self.view()
