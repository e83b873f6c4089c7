"""
Performance Query Service

Read path over the rows the evaluation engine owns. Nothing here writes.
"""
import logging
from collections import defaultdict
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from quizeval.exceptions import QuizNotFoundError
from quizeval.orm.attempt import QuizAttempt
from quizeval.orm.course import Topic, QuestionType
from quizeval.orm.performance import (
    StudentTopicPerformance, StudentTypePerformance,
    ClassTopicPerformance, ClassTypePerformance
)
from quizeval.orm.quiz import Quiz, Question
from quizeval.orm.quiz_result import QuizResult
from quizeval.services.answer_key import build_answer_key
from quizeval.services.student_aggregator import score_percent

logger = logging.getLogger(__name__)

QUANTIZER_1DP = Decimal("0.1")  # avg_mark


async def _get_quiz(quiz_id: int, db: AsyncSession) -> Quiz:
    quiz = await db.get(Quiz, quiz_id)
    if quiz is None:
        raise QuizNotFoundError(quiz_id)
    return quiz


async def _question_performance(quiz_id: int, db: AsyncSession) -> List[Dict[str, Any]]:
    """
    Attempts and correct answers per question, in question id order.

    An attempt is correct when it selected the keyed option. Blank attempts
    count towards ``total_attempts`` only.
    """
    answer_key = await build_answer_key(quiz_id, db)

    questions = await db.execute(
        select(Question.id, Question.text, Question.score)
        .where(Question.quiz_id == quiz_id)
        .order_by(Question.id.asc())
    )
    attempts = await db.execute(
        select(QuizAttempt.question_id, QuizAttempt.selected_option_id)
        .where(QuizAttempt.quiz_id == quiz_id)
    )

    total_attempts: Dict[int, int] = defaultdict(int)
    correct_answers: Dict[int, int] = defaultdict(int)
    for question_id, selected_option_id in attempts.all():
        total_attempts[question_id] += 1
        if selected_option_id is not None and answer_key.get(question_id) == selected_option_id:
            correct_answers[question_id] += 1

    return [
        {
            "question_id": question_id,
            "text": text,
            "score": score,
            "total_attempts": total_attempts[question_id],
            "correct_answers": correct_answers[question_id],
        }
        for question_id, text, score in questions.all()
    ]


def _average_mark(scores: List[int]) -> str:
    if not scores:
        return str(Decimal("0").quantize(QUANTIZER_1DP))
    mean = Decimal(sum(scores)) / Decimal(len(scores))
    return str(mean.quantize(QUANTIZER_1DP, rounding=ROUND_HALF_UP))


async def get_quiz_summary(quiz_id: int, db: AsyncSession) -> Dict[str, Any]:
    """
    Quiz-level report: question count, total marks, ranked student scores,
    per-question attempt counts and class-wide topic/type performance.

    Students are ranked by score descending, ties broken by student_id.
    ``avg_mark`` is the mean QuizResult score rounded half-up to one
    decimal ("0.0" when nobody has a result).
    """
    quiz = await _get_quiz(quiz_id, db)

    totals = await db.execute(
        select(func.count(Question.id), func.coalesce(func.sum(Question.score), 0))
        .where(Question.quiz_id == quiz_id)
    )
    question_count, total_marks = totals.one()

    results = await db.execute(
        select(QuizResult)
        .where(QuizResult.quiz_id == quiz_id)
        .order_by(QuizResult.score.desc(), QuizResult.student_id.asc())
    )
    ranked = results.scalars().all()

    attempted = await db.execute(
        select(QuizAttempt.student_id, func.count(func.distinct(QuizAttempt.question_id)))
        .where(QuizAttempt.quiz_id == quiz_id)
        .group_by(QuizAttempt.student_id)
    )
    attempted_by_student = {student_id: int(count) for student_id, count in attempted.all()}

    students = [
        {
            "rank": rank,
            "student_id": r.student_id,
            "score": r.score,
            "questions_attempted": attempted_by_student.get(r.student_id, 0),
        }
        for rank, r in enumerate(ranked, start=1)
    ]

    topic_rows = await db.execute(
        select(ClassTopicPerformance, Topic.name)
        .join(Topic, Topic.id == ClassTopicPerformance.topic_id)
        .where(ClassTopicPerformance.quiz_id == quiz_id)
        .order_by(ClassTopicPerformance.topic_id.asc())
    )
    type_rows = await db.execute(
        select(ClassTypePerformance, QuestionType.name)
        .join(QuestionType, QuestionType.id == ClassTypePerformance.type_id)
        .where(ClassTypePerformance.quiz_id == quiz_id)
        .order_by(ClassTypePerformance.type_id.asc())
    )

    return {
        "quiz_id": quiz.id,
        "course_id": quiz.course_id,
        "title": quiz.title,
        "is_evaluated": bool(quiz.is_evaluated),
        "evaluated_at": quiz.evaluated_at,
        "question_count": int(question_count),
        "total_marks": int(total_marks),
        "total_students": len(students),
        "avg_mark": _average_mark([r.score for r in ranked]),
        "students": students,
        "questions": await _question_performance(quiz_id, db),
        "topics": [{**row.to_dict(), "name": name} for row, name in topic_rows.all()],
        "types": [{**row.to_dict(), "name": name} for row, name in type_rows.all()],
    }


async def get_student_quiz_performance(
    quiz_id: int,
    student_id: int,
    db: AsyncSession
) -> Dict[str, Any]:
    """One student's topic and type breakdown for a quiz."""
    await _get_quiz(quiz_id, db)

    topic_rows = await db.execute(
        select(StudentTopicPerformance, Topic.name)
        .join(Topic, Topic.id == StudentTopicPerformance.topic_id)
        .where(StudentTopicPerformance.quiz_id == quiz_id)
        .where(StudentTopicPerformance.student_id == student_id)
        .order_by(StudentTopicPerformance.topic_id.asc())
    )
    type_rows = await db.execute(
        select(StudentTypePerformance, QuestionType.name)
        .join(QuestionType, QuestionType.id == StudentTypePerformance.type_id)
        .where(StudentTypePerformance.quiz_id == quiz_id)
        .where(StudentTypePerformance.student_id == student_id)
        .order_by(StudentTypePerformance.type_id.asc())
    )
    result = await db.execute(
        select(QuizResult.score)
        .where(QuizResult.quiz_id == quiz_id)
        .where(QuizResult.student_id == student_id)
    )

    return {
        "quiz_id": quiz_id,
        "student_id": student_id,
        "score": result.scalar_one_or_none(),
        "topics": [{**row.to_dict(), "name": name} for row, name in topic_rows.all()],
        "types": [{**row.to_dict(), "name": name} for row, name in type_rows.all()],
    }


async def _course_dimension_totals(
    model,
    tag_model,
    tag_column: str,
    course_id: int,
    student_id: int,
    db: AsyncSession
) -> List[Dict[str, Any]]:
    tag_id = getattr(model, tag_column)
    result = await db.execute(
        select(
            tag_id,
            tag_model.name,
            func.sum(model.total_questions),
            func.sum(model.correct_answers),
            func.count(model.quiz_id),
        )
        .join(tag_model, tag_model.id == tag_id)
        .where(model.course_id == course_id)
        .where(model.student_id == student_id)
        .group_by(tag_id, tag_model.name)
        .order_by(tag_id.asc())
    )

    return [
        {
            tag_column: tag,
            "name": name,
            "quizzes": int(quizzes),
            "total_questions": int(total or 0),
            "correct_answers": int(correct or 0),
            "score": score_percent(int(correct or 0), int(total or 0)),
        }
        for tag, name, total, correct, quizzes in result.all()
    ]


async def get_student_course_topics(
    course_id: int,
    student_id: int,
    db: AsyncSession
) -> List[Dict[str, Any]]:
    """
    A student's per-topic performance across every evaluated quiz of a course.

    Totals and corrects are summed over quizzes and the percentage is
    recomputed from the sums, not averaged.
    """
    return await _course_dimension_totals(
        StudentTopicPerformance, Topic, "topic_id", course_id, student_id, db
    )


async def get_student_course_types(
    course_id: int,
    student_id: int,
    db: AsyncSession
) -> List[Dict[str, Any]]:
    """Per-question-type counterpart of get_student_course_topics."""
    return await _course_dimension_totals(
        StudentTypePerformance, QuestionType, "type_id", course_id, student_id, db
    )
