"""
Response Service

Quiz-taking write path feeding the evaluation engine.

- One attempt per (quiz, student, question); answering again replaces the
  selection and resets ``marks_awarded`` until the next evaluation
- The question must belong to the quiz and the option to the question
- A question may have at most one correct option
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quizeval.exceptions import (
    NotFoundError, QuizNotFoundError, InvalidResponseError, MultipleCorrectOptionsError
)
from quizeval.orm.attempt import QuizAttempt
from quizeval.orm.quiz import Quiz, Question, QuestionOption

logger = logging.getLogger(__name__)


async def add_option(
    question_id: int,
    text: str,
    is_correct: bool,
    db: AsyncSession
) -> QuestionOption:
    """
    Add an answer option to a question.

    Raises:
        NotFoundError: Question does not exist
        MultipleCorrectOptionsError: A correct option already exists
    """
    question = await db.get(Question, question_id)
    if question is None:
        raise NotFoundError(f"Question {question_id} not found")

    if is_correct:
        result = await db.execute(
            select(QuestionOption.id)
            .where(QuestionOption.question_id == question_id)
            .where(QuestionOption.is_correct.is_(True))
        )
        if result.first() is not None:
            raise MultipleCorrectOptionsError(question_id)

    option = QuestionOption(question_id=question_id, text=text, is_correct=is_correct)
    db.add(option)
    await db.flush()
    return option


async def record_response(
    quiz_id: int,
    student_id: int,
    question_id: int,
    selected_option_id: Optional[int],
    db: AsyncSession
) -> QuizAttempt:
    """
    Record (or replace) a student's answer to one question.

    ``selected_option_id=None`` records the question as left blank.
    Does not commit; the caller owns the transaction.
    """
    quiz = await db.get(Quiz, quiz_id)
    if quiz is None:
        raise QuizNotFoundError(quiz_id)

    question = await db.get(Question, question_id)
    if question is None or question.quiz_id != quiz_id:
        raise InvalidResponseError(f"Question {question_id} does not belong to quiz {quiz_id}")

    if selected_option_id is not None:
        option = await db.get(QuestionOption, selected_option_id)
        if option is None or option.question_id != question_id:
            raise InvalidResponseError(
                f"Option {selected_option_id} does not belong to question {question_id}"
            )

    result = await db.execute(
        select(QuizAttempt)
        .where(QuizAttempt.quiz_id == quiz_id)
        .where(QuizAttempt.student_id == student_id)
        .where(QuizAttempt.question_id == question_id)
        .execution_options(populate_existing=True)
    )
    attempt = result.scalar_one_or_none()

    if attempt is None:
        attempt = QuizAttempt(
            quiz_id=quiz_id,
            student_id=student_id,
            question_id=question_id,
            selected_option_id=selected_option_id,
            marks_awarded=0,
        )
        db.add(attempt)
    else:
        attempt.selected_option_id = selected_option_id
        attempt.marks_awarded = 0
        attempt.submitted_at = datetime.utcnow()

    await db.flush()
    logger.debug(
        f"[RESPONSE] quiz={quiz_id} student={student_id} question={question_id} option={selected_option_id}"
    )
    return attempt
