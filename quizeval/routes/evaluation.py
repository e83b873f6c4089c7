"""
Quiz Evaluation Routes

Trigger for the evaluation engine and the response-submission path that
feeds it.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from quizeval.config import settings
from quizeval.database import get_db, unit_of_work
from quizeval.exceptions import (
    QuizNotFoundError, EvaluationFailedError, InvalidResponseError
)
from quizeval.schemas.evaluation import (
    EvaluateQuizResponse, ResponseSubmission, ResponseRecorded
)
from quizeval.services.evaluation_service import evaluate_quiz
from quizeval.services.response_service import record_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quizzes", tags=["Evaluation"])


@router.post(
    "/{quiz_id}/evaluate",
    response_model=EvaluateQuizResponse,
    summary="Evaluate a quiz"
)
async def evaluate(
    quiz_id: int,
    db: AsyncSession = Depends(get_db)
):
    """
    Grade every attempt of the quiz and rebuild its statistics.

    - Safe to call repeatedly; each call replaces the previous results
    - 404 when the quiz does not exist
    - 500 with a generic message when the run fails (nothing is written)
    """
    if not settings.FEATURE_EVALUATION_ENGINE:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Evaluation engine feature is disabled"
        )

    try:
        outcome = await evaluate_quiz(quiz_id, db)
    except QuizNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=e.message
        )
    except EvaluationFailedError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to evaluate quiz"
        )

    return EvaluateQuizResponse(
        message="Quiz evaluation completed successfully",
        evaluatedAt=outcome.evaluated_at
    )


@router.put(
    "/{quiz_id}/responses",
    response_model=ResponseRecorded,
    summary="Record a student's answer"
)
async def submit_response(
    quiz_id: int,
    submission: ResponseSubmission,
    db: AsyncSession = Depends(get_db)
):
    """Record or replace one answer. Marks are assigned on the next evaluation."""
    try:
        async with unit_of_work(db):
            attempt = await record_response(
                quiz_id=quiz_id,
                student_id=submission.student_id,
                question_id=submission.question_id,
                selected_option_id=submission.selected_option_id,
                db=db
            )
    except QuizNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    except InvalidResponseError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)

    return ResponseRecorded(
        attempt_id=attempt.id,
        quiz_id=attempt.quiz_id,
        student_id=attempt.student_id,
        question_id=attempt.question_id,
        selected_option_id=attempt.selected_option_id,
        marks_awarded=attempt.marks_awarded
    )
