"""
Result Writer

Persists everything one evaluation run derives, inside the caller's
transaction. Nothing here commits.

Replacement semantics:
- Student*/Class* performance rows of the quiz are deleted then re-inserted
- ``quiz_attempts.marks_awarded`` is overwritten for every attempt
- QuizResult is upserted with ON CONFLICT (student_id, quiz_id) DO UPDATE,
  the score is replaced, never added to
- QuizResult rows of students with no remaining attempt are removed
"""
import logging
from datetime import datetime
from typing import Dict, List

from sqlalchemy import delete, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from quizeval.exceptions import UnsupportedDialectError
from quizeval.orm.attempt import QuizAttempt
from quizeval.orm.performance import (
    StudentTopicPerformance, StudentTypePerformance,
    ClassTopicPerformance, ClassTypePerformance
)
from quizeval.orm.quiz import Quiz
from quizeval.orm.quiz_result import QuizResult
from quizeval.services.class_aggregator import ClassAggregate
from quizeval.services.marks_calculator import MarksSheet
from quizeval.services.student_aggregator import StudentAggregate

logger = logging.getLogger(__name__)

_UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


async def clear_derived_rows(quiz_id: int, db: AsyncSession) -> None:
    """Delete every performance row previously derived for the quiz."""
    for model in (
        ClassTopicPerformance,
        ClassTypePerformance,
        StudentTopicPerformance,
        StudentTypePerformance,
    ):
        await db.execute(delete(model).where(model.quiz_id == quiz_id))


def write_student_rows(aggregate: StudentAggregate, db: AsyncSession) -> None:
    db.add_all([
        StudentTopicPerformance(
            student_id=row.student_id,
            course_id=row.course_id,
            topic_id=row.dimension_id,
            quiz_id=row.quiz_id,
            total_questions=row.total_questions,
            correct_answers=row.correct_answers,
            score=row.score,
            evaluated_at=row.evaluated_at,
        )
        for row in aggregate.topic_rows
    ])
    db.add_all([
        StudentTypePerformance(
            student_id=row.student_id,
            course_id=row.course_id,
            type_id=row.dimension_id,
            quiz_id=row.quiz_id,
            total_questions=row.total_questions,
            correct_answers=row.correct_answers,
            score=row.score,
            evaluated_at=row.evaluated_at,
        )
        for row in aggregate.type_rows
    ])


def write_class_rows(aggregate: ClassAggregate, db: AsyncSession) -> None:
    db.add_all([
        ClassTopicPerformance(
            course_id=row.course_id,
            topic_id=row.dimension_id,
            quiz_id=row.quiz_id,
            avg_score=row.avg_score,
            avg_accuracy=row.avg_accuracy,
            evaluated_at=row.evaluated_at,
        )
        for row in aggregate.topic_rows
    ])
    db.add_all([
        ClassTypePerformance(
            course_id=row.course_id,
            type_id=row.dimension_id,
            quiz_id=row.quiz_id,
            avg_score=row.avg_score,
            avg_accuracy=row.avg_accuracy,
            evaluated_at=row.evaluated_at,
        )
        for row in aggregate.type_rows
    ])


async def write_attempt_marks(marks: MarksSheet, db: AsyncSession) -> None:
    """Overwrite marks_awarded for every graded attempt (bulk UPDATE by primary key)."""
    if not marks.attempt_marks:
        return
    await db.execute(
        update(QuizAttempt),
        [
            {"id": attempt_id, "marks_awarded": awarded}
            for attempt_id, awarded in sorted(marks.attempt_marks.items())
        ]
    )


async def upsert_quiz_results(
    quiz_id: int,
    student_totals: Dict[int, int],
    evaluated_at: datetime,
    db: AsyncSession
) -> None:
    """
    Insert or replace one QuizResult per student, then drop results of
    students who no longer have attempts on the quiz.
    """
    dialect = db.get_bind().dialect.name
    insert_fn = _UPSERT_INSERTS.get(dialect)
    if insert_fn is None:
        raise UnsupportedDialectError(dialect)

    if student_totals:
        values: List[dict] = [
            {
                "student_id": student_id,
                "quiz_id": quiz_id,
                "score": total,
                "evaluated_at": evaluated_at,
            }
            for student_id, total in sorted(student_totals.items())
        ]
        stmt = insert_fn(QuizResult).values(values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[QuizResult.student_id, QuizResult.quiz_id],
            set_={
                "score": stmt.excluded.score,
                "evaluated_at": stmt.excluded.evaluated_at,
            }
        )
        await db.execute(stmt)

    stale = delete(QuizResult).where(QuizResult.quiz_id == quiz_id)
    if student_totals:
        stale = stale.where(QuizResult.student_id.not_in(list(student_totals)))
    await db.execute(stale)


def mark_quiz_evaluated(quiz: Quiz, evaluated_at: datetime) -> None:
    quiz.is_evaluated = True
    quiz.evaluated_at = evaluated_at
