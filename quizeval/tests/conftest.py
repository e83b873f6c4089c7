"""
Shared fixtures for the quizeval test suite.
"""
import asyncio
from datetime import datetime
from typing import AsyncGenerator, Dict, Iterable, Optional, Tuple

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from quizeval.orm.base import Base
from quizeval.orm.attempt import QuizAttempt
from quizeval.orm.course import Course, Topic, QuestionType
from quizeval.orm.quiz import Quiz, Question, QuestionOption, QuestionTopic, QuestionTypeLink
from quizeval.services import evaluation_service

# Test database setup
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

FIXED_NOW = datetime(2025, 3, 1, 10, 0, 0)


def fixed_clock() -> datetime:
    return FIXED_NOW


@pytest.fixture(autouse=True)
def fresh_quiz_locks(monkeypatch):
    """Each test runs on its own event loop; locks must not outlive it."""
    monkeypatch.setattr(evaluation_service, "_quiz_locks", {})
    monkeypatch.setattr(evaluation_service, "_lock_lock", asyncio.Lock())


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session


class Seeder:
    """Builds catalog rows and attempts for a test."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self._course_seq = 0

    async def course(self, name: str = "Algorithms") -> Course:
        self._course_seq += 1
        course = Course(name=name, code=f"CS{100 + self._course_seq}")
        self.db.add(course)
        await self.db.flush()
        return course

    async def topic(self, course: Course, name: str) -> Topic:
        topic = Topic(course_id=course.id, name=name)
        self.db.add(topic)
        await self.db.flush()
        return topic

    async def question_type(self, course: Course, name: str) -> QuestionType:
        question_type = QuestionType(course_id=course.id, name=name)
        self.db.add(question_type)
        await self.db.flush()
        return question_type

    async def quiz(self, course: Course, title: str = "Quiz 1") -> Quiz:
        quiz = Quiz(course_id=course.id, title=title, duration=30)
        self.db.add(quiz)
        await self.db.flush()
        return quiz

    async def question(
        self,
        quiz: Quiz,
        *,
        score: int = 1,
        options: Iterable[str] = ("A", "B", "C", "D"),
        correct: Optional[str] = "B",
        topics: Iterable[Topic] = (),
        types: Iterable[QuestionType] = ()
    ) -> Tuple[Question, Dict[str, QuestionOption]]:
        question = Question(quiz_id=quiz.id, text=f"Question for {quiz.title}", score=score)
        self.db.add(question)
        await self.db.flush()

        by_label = {}
        for label in options:
            option = QuestionOption(question_id=question.id, text=label, is_correct=(label == correct))
            self.db.add(option)
            by_label[label] = option
        for topic in topics:
            self.db.add(QuestionTopic(question_id=question.id, topic_id=topic.id))
        for question_type in types:
            self.db.add(QuestionTypeLink(question_id=question.id, type_id=question_type.id))
        await self.db.flush()

        return question, by_label

    async def attempt(
        self,
        quiz: Quiz,
        student_id: int,
        question: Optional[Question],
        option: Optional[QuestionOption] = None,
        marks_awarded: int = 0
    ) -> QuizAttempt:
        attempt = QuizAttempt(
            quiz_id=quiz.id,
            student_id=student_id,
            question_id=question.id if question is not None else None,
            selected_option_id=option.id if option is not None else None,
            marks_awarded=marks_awarded,
        )
        self.db.add(attempt)
        await self.db.flush()
        return attempt

    async def commit(self) -> None:
        await self.db.commit()


@pytest_asyncio.fixture
async def seed(db_session: AsyncSession) -> Seeder:
    return Seeder(db_session)
