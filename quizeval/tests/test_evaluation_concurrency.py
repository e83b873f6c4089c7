"""
Concurrency Tests for the Evaluation Service

Same-quiz runs are serialized; every concurrent outcome equals a single run.
Uses a file-backed SQLite database so each run gets its own connection.
"""
import asyncio

import pytest
import pytest_asyncio
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from quizeval.database import build_engine
from quizeval.orm.base import Base
from quizeval.orm.performance import StudentTopicPerformance, ClassTopicPerformance
from quizeval.orm.quiz_result import QuizResult
from quizeval.services import evaluation_service
from quizeval.services.evaluation_service import evaluate_quiz_isolated

from conftest import Seeder, fixed_clock


@pytest_asyncio.fixture
async def file_session_factory(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'concurrency.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


async def _seed_quiz(session_factory, students=4):
    async with session_factory() as db:
        seed = Seeder(db)
        course = await seed.course()
        topic = await seed.topic(course, "Concurrency")
        quiz = await seed.quiz(course)
        q1, o1 = await seed.question(quiz, score=2, topics=[topic])
        q2, o2 = await seed.question(quiz, score=3, topics=[topic])
        for student_id in range(1, students + 1):
            await seed.attempt(quiz, student_id, q1, o1["B"])
            await seed.attempt(quiz, student_id, q2, o2["B" if student_id % 2 else "A"])
        await seed.commit()
        return quiz.id


@pytest.mark.asyncio
async def test_same_quiz_runs_are_serialized_and_do_not_duplicate(file_session_factory):
    quiz_id = await _seed_quiz(file_session_factory)

    outcomes = await asyncio.gather(*[
        evaluate_quiz_isolated(quiz_id, session_factory=file_session_factory, clock=fixed_clock)
        for _ in range(5)
    ])

    assert len({tuple(sorted(o.student_totals.items())) for o in outcomes}) == 1

    async with file_session_factory() as db:
        topic_rows = await db.execute(
            select(func.count()).select_from(StudentTopicPerformance)
            .where(StudentTopicPerformance.quiz_id == quiz_id)
        )
        class_rows = await db.execute(
            select(func.count()).select_from(ClassTopicPerformance)
            .where(ClassTopicPerformance.quiz_id == quiz_id)
        )
        results = await db.execute(
            select(QuizResult.student_id, QuizResult.score)
            .where(QuizResult.quiz_id == quiz_id)
            .order_by(QuizResult.student_id.asc())
        )

        assert topic_rows.scalar_one() == 4
        assert class_rows.scalar_one() == 1
        assert dict(results.all()) == {1: 5, 2: 2, 3: 5, 4: 2}


@pytest.mark.asyncio
async def test_second_run_waits_for_the_quiz_lock(file_session_factory):
    quiz_id = await _seed_quiz(file_session_factory, students=1)
    lock = await evaluation_service._get_quiz_lock(quiz_id)

    await lock.acquire()
    try:
        task = asyncio.create_task(
            evaluate_quiz_isolated(quiz_id, session_factory=file_session_factory, clock=fixed_clock)
        )
        await asyncio.sleep(0.05)
        assert not task.done()
    finally:
        lock.release()

    outcome = await task
    assert outcome.student_totals == {1: 5}


@pytest.mark.asyncio
async def test_locks_are_per_quiz():
    lock_a = await evaluation_service._get_quiz_lock(1)
    lock_b = await evaluation_service._get_quiz_lock(2)

    assert lock_a is await evaluation_service._get_quiz_lock(1)
    assert lock_a is not lock_b


@pytest.mark.asyncio
async def test_held_lock_on_one_quiz_does_not_block_another(file_session_factory):
    quiz_id = await _seed_quiz(file_session_factory, students=1)
    other_lock = await evaluation_service._get_quiz_lock(quiz_id + 1000)

    async with other_lock:
        outcome = await asyncio.wait_for(
            evaluate_quiz_isolated(quiz_id, session_factory=file_session_factory, clock=fixed_clock),
            timeout=10
        )

    assert outcome.quiz_id == quiz_id
