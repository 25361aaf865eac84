# app/core/errors.py

"""
Error kinds raised by the assessment services.

Each error carries the HTTP status the routers answer with. Messages are
user-facing and end up as the HTTPException detail.
"""


class AssessmentError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class CatalogLoadError(AssessmentError):
    """Assessment or its questions are unavailable."""
    status_code = 404


class ValidationError(AssessmentError):
    """Answer missing or invalid for the question type. Never reaches the store."""
    status_code = 422


class NavigationError(AssessmentError):
    """Transition not allowed from the current state."""
    status_code = 409


class PersistenceError(AssessmentError):
    """An answer, position or submission write failed. Safe to retry."""
    status_code = 503


class FinalizationError(AssessmentError):
    """The submitted-at/status update failed. Submission stays in progress."""
    status_code = 503


class RewardIssuanceError(AssessmentError):
    """Reward check or insert failed after the submission was finalized."""
    status_code = 502


class QuizUnavailableError(AssessmentError):
    status_code = 403


class AlreadySubmittedError(AssessmentError):
    status_code = 409


class SubmissionLockedError(NavigationError):
    """The submission was finalized elsewhere; its answers are read-only."""
