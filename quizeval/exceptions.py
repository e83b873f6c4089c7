"""
quizeval/exceptions.py
Typed exceptions for the evaluation engine

Provides:
- NotFound errors that abort a run before any write
- EvaluationFailed errors for storage failures and timeouts
- Internal consistency and storage-backend errors raised inside a run
- Response-submission validation errors
- State machine misuse
"""
from typing import Optional, Dict, Any


class QuizEvalException(Exception):
    """Base exception for quizeval"""
    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        if status_code:
            self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": False,
            "error": type(self).__name__,
            "message": self.message,
        }


class NotFoundError(QuizEvalException):
    """
    Raised when requested resource doesn't exist.
    """
    status_code = 404

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, self.status_code)


class QuizNotFoundError(NotFoundError):
    """Raised when a quiz id does not resolve to a row."""

    def __init__(self, quiz_id: int):
        self.quiz_id = quiz_id
        super().__init__(f"Quiz {quiz_id} not found")


class InvalidResponseError(QuizEvalException):
    """
    Raised when a submitted response does not fit the quiz.

    Examples:
    - Question belongs to another quiz
    - Option belongs to another question
    """
    status_code = 400

    def __init__(self, message: str = "Invalid response"):
        super().__init__(message, self.status_code)


class MultipleCorrectOptionsError(QuizEvalException):
    """Raised when a second correct option is added to a question."""
    status_code = 409

    def __init__(self, question_id: int):
        self.question_id = question_id
        super().__init__(
            f"Question {question_id} already has a correct option",
            self.status_code
        )


class EvaluationFailedError(QuizEvalException):
    """
    Raised when an evaluation run cannot commit.

    The unit of work has been rolled back in full; the run is safe to retry.
    The message stays generic; the cause is chained and logged.
    """
    status_code = 500

    def __init__(self, quiz_id: int, message: str = "Failed to evaluate quiz"):
        self.quiz_id = quiz_id
        super().__init__(message, self.status_code)


class EvaluationTimeoutError(EvaluationFailedError):
    """Raised when an evaluation run exceeds its time budget."""

    def __init__(self, quiz_id: int, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        super().__init__(
            quiz_id,
            f"Evaluation of quiz {quiz_id} exceeded {timeout_seconds} seconds"
        )


class ClassAggregateMismatchError(QuizEvalException):
    """Raised when the class rows read back differ from the in-memory fold."""
    status_code = 500

    def __init__(self, quiz_id: int):
        self.quiz_id = quiz_id
        super().__init__(
            f"Class statistics read back for quiz {quiz_id} differ from the computed student rows",
            self.status_code
        )


class UnsupportedDialectError(QuizEvalException):
    """Raised when the bound database has no ON CONFLICT upsert."""
    status_code = 500

    def __init__(self, dialect: str):
        self.dialect = dialect
        super().__init__(f"QuizResult upsert not supported on dialect '{dialect}'", self.status_code)


class InvalidTransitionError(QuizEvalException):
    """Raised when an evaluation run attempts an illegal state transition."""

    def __init__(self, from_state: str, to_state: str):
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(f"Invalid evaluation transition {from_state} -> {to_state}")
