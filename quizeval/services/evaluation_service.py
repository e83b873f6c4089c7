"""
Evaluation Service

Grades every attempt of a quiz and rebuilds its performance statistics in
one atomic unit of work.

Design:
- Per-quiz asyncio.Lock serializes runs inside one process (SQLite has no
  row locks); SELECT ... FOR UPDATE on the quiz row serializes runs across
  processes on PostgreSQL. Different quizzes never share a lock.
- Everything is computed in memory before the first write.
- Class statistics are read back from the student rows flushed in the same
  transaction and must match the in-memory fold, otherwise the run fails.
- A run is a pure function of the current attempt set: derived rows are
  replaced, never accumulated, so re-running is always safe.
- Bounded by EVALUATION_TIMEOUT_SECONDS; no automatic retry.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from quizeval.config import settings
from quizeval.database import AsyncSessionLocal, unit_of_work
from quizeval.exceptions import (
    NotFoundError, QuizNotFoundError, EvaluationFailedError, EvaluationTimeoutError,
    ClassAggregateMismatchError
)
from quizeval.orm.quiz import Quiz
from quizeval.services.answer_key import build_answer_key
from quizeval.services.attempt_classifier import load_attempts, classify_attempts
from quizeval.services.class_aggregator import (
    ClassAggregate, ClassPerformanceRow, compute_class_performance, fold_class_performance
)
from quizeval.services.marks_calculator import calculate_marks
from quizeval.services.result_writer import (
    clear_derived_rows, write_student_rows, write_class_rows,
    write_attempt_marks, upsert_quiz_results, mark_quiz_evaluated
)
from quizeval.services.student_aggregator import (
    StudentAggregate, StudentPerformanceRow, aggregate_student_performance
)
from quizeval.state_machines.evaluation_run import EvaluationState, EvaluationStateMachine

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

# One lock per quiz_id
_quiz_locks: Dict[int, asyncio.Lock] = {}
_lock_lock = asyncio.Lock()  # guards _quiz_locks


async def _get_quiz_lock(quiz_id: int) -> asyncio.Lock:
    """Get or create the lock for a specific quiz."""
    async with _lock_lock:
        if quiz_id not in _quiz_locks:
            _quiz_locks[quiz_id] = asyncio.Lock()
        return _quiz_locks[quiz_id]


@dataclass
class EvaluationOutcome:
    quiz_id: int
    course_id: int
    evaluated_at: datetime
    attempts_evaluated: int
    student_totals: Dict[int, int]
    student_topic_rows: List[StudentPerformanceRow]
    student_type_rows: List[StudentPerformanceRow]
    class_topic_rows: List[ClassPerformanceRow]
    class_type_rows: List[ClassPerformanceRow]
    states: List[str] = field(default_factory=list)

    @property
    def students_evaluated(self) -> int:
        return len(self.student_totals)


async def _lock_quiz(quiz_id: int, db: AsyncSession) -> Quiz:
    result = await db.execute(
        select(Quiz)
        .where(Quiz.id == quiz_id)
        .with_for_update()  # Pessimistic locking
        .execution_options(populate_existing=True)
    )
    quiz = result.scalar_one_or_none()
    if quiz is None:
        raise QuizNotFoundError(quiz_id)
    return quiz


def _fold_in_memory(aggregate: StudentAggregate, course_id: int, quiz_id: int, evaluated_at: datetime) -> ClassAggregate:
    def as_tuples(rows: List[StudentPerformanceRow]):
        return [(r.dimension_id, r.score, r.correct_answers, r.total_questions) for r in rows]

    return ClassAggregate(
        topic_rows=fold_class_performance(
            as_tuples(aggregate.topic_rows), course_id=course_id, quiz_id=quiz_id, evaluated_at=evaluated_at
        ),
        type_rows=fold_class_performance(
            as_tuples(aggregate.type_rows), course_id=course_id, quiz_id=quiz_id, evaluated_at=evaluated_at
        ),
    )


async def _run(
    quiz_id: int,
    db: AsyncSession,
    clock: Clock,
    machine: EvaluationStateMachine
) -> EvaluationOutcome:
    machine.transition(EvaluationState.LOADING)

    async with unit_of_work(db):
        quiz = await _lock_quiz(quiz_id, db)
        course_id = quiz.course_id
        evaluated_at = clock()

        answer_key = await build_answer_key(quiz_id, db)
        attempts = await load_attempts(quiz_id, db)
        logger.info(
            f"[EVALUATION LOADED] quiz={quiz_id} attempts={len(attempts)} keyed_questions={len(answer_key)}"
        )

        machine.transition(EvaluationState.CLASSIFYING)
        classified = classify_attempts(attempts, answer_key)

        machine.transition(EvaluationState.AGGREGATING)
        student_aggregate = aggregate_student_performance(
            classified, course_id=course_id, quiz_id=quiz_id, evaluated_at=evaluated_at
        )
        marks = calculate_marks(classified)
        expected_class = _fold_in_memory(student_aggregate, course_id, quiz_id, evaluated_at)

        machine.transition(EvaluationState.WRITING)
        await clear_derived_rows(quiz_id, db)
        write_student_rows(student_aggregate, db)
        await write_attempt_marks(marks, db)
        await upsert_quiz_results(quiz_id, marks.student_totals, evaluated_at, db)
        await db.flush()

        class_aggregate = await compute_class_performance(quiz_id, course_id, evaluated_at, db)
        if (class_aggregate.topic_rows != expected_class.topic_rows
                or class_aggregate.type_rows != expected_class.type_rows):
            raise ClassAggregateMismatchError(quiz_id)
        write_class_rows(class_aggregate, db)

        mark_quiz_evaluated(quiz, evaluated_at)
        await db.flush()

    machine.transition(EvaluationState.COMMITTED)

    return EvaluationOutcome(
        quiz_id=quiz_id,
        course_id=course_id,
        evaluated_at=evaluated_at,
        attempts_evaluated=len(classified),
        student_totals=marks.student_totals,
        student_topic_rows=student_aggregate.topic_rows,
        student_type_rows=student_aggregate.type_rows,
        class_topic_rows=class_aggregate.topic_rows,
        class_type_rows=class_aggregate.type_rows,
        states=machine.path(),
    )


async def _locked_run(
    quiz_id: int,
    db: AsyncSession,
    clock: Clock,
    machine: EvaluationStateMachine
) -> EvaluationOutcome:
    lock = await _get_quiz_lock(quiz_id)
    async with lock:
        return await _run(quiz_id, db, clock, machine)


async def evaluate_quiz(
    quiz_id: int,
    db: AsyncSession,
    clock: Optional[Clock] = None,
    timeout_seconds: Optional[float] = None
) -> EvaluationOutcome:
    """
    Evaluate a quiz end to end.

    Idempotent: evaluating again recomputes everything from the current
    attempts and replaces all previously derived rows.

    Args:
        quiz_id: Quiz to evaluate
        db: Database session; the run commits or rolls back on it
        clock: Supplies the single ``evaluated_at`` of the run
        timeout_seconds: Overrides EVALUATION_TIMEOUT_SECONDS

    Returns:
        EvaluationOutcome of the committed run

    Raises:
        QuizNotFoundError: Quiz does not exist (nothing written)
        EvaluationFailedError: Storage error, invariant violation or timeout
            (everything rolled back)
    """
    clock = clock or datetime.utcnow
    timeout = timeout_seconds if timeout_seconds is not None else settings.EVALUATION_TIMEOUT_SECONDS
    machine = EvaluationStateMachine(quiz_id)

    logger.info(f"[EVALUATION START] quiz={quiz_id} timeout={timeout}s")

    try:
        outcome = await asyncio.wait_for(_locked_run(quiz_id, db, clock, machine), timeout=timeout)
    except asyncio.TimeoutError as e:
        if machine.state != EvaluationState.IDLE:
            machine.fail(e)
        logger.error(f"[EVALUATION TIMEOUT] quiz={quiz_id} after {timeout}s in state {machine.state.value}")
        raise EvaluationTimeoutError(quiz_id, timeout) from e
    except NotFoundError as e:
        machine.fail(e)
        logger.warning(f"[EVALUATION ABORTED] quiz={quiz_id}: {e.message}")
        raise
    except Exception as e:
        if machine.state != EvaluationState.IDLE:
            machine.fail(e)
        logger.exception(f"[EVALUATION FAILED] quiz={quiz_id}: {type(e).__name__}: {e}")
        raise EvaluationFailedError(quiz_id) from e

    logger.info(
        f"[EVALUATION SUCCESS] quiz={quiz_id} students={outcome.students_evaluated} "
        f"attempts={outcome.attempts_evaluated} evaluated_at={outcome.evaluated_at.isoformat()}"
    )
    return outcome


async def evaluate_quiz_isolated(
    quiz_id: int,
    session_factory: Optional[async_sessionmaker] = None,
    clock: Optional[Clock] = None,
    timeout_seconds: Optional[float] = None
) -> EvaluationOutcome:
    """Evaluate a quiz in a session of its own, for callers running evaluations in parallel."""
    session_factory = session_factory or AsyncSessionLocal

    async with session_factory() as session:
        return await evaluate_quiz(quiz_id, session, clock=clock, timeout_seconds=timeout_seconds)
