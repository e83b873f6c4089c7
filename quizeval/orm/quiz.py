"""
quizeval/orm/quiz.py

Quiz, its questions, answer options and the question ↔ tag join tables.

Rules the evaluation engine relies on:
- A question carries its own point value (``score``).
- At most one option per question is correct. The partial unique index
  ``uq_question_single_correct`` enforces it in both SQLite and PostgreSQL.
- Question ↔ topic and question ↔ type links are unique per pair.
"""
import enum

from sqlalchemy import (
    Column, Integer, String, Text, Boolean, DateTime, ForeignKey,
    UniqueConstraint, Index, Enum as SQLEnum, text as sql_text
)
from sqlalchemy.orm import relationship

from quizeval.orm.base import Base, BaseModel


class Difficulty(str, enum.Enum):
    EASY = "EASY"
    MEDIUM = "MEDIUM"
    HARD = "HARD"


class Quiz(BaseModel):
    """
    A timed quiz belonging to a course.

    ``is_evaluated`` flips to True at the end of every successful evaluation
    run; ``evaluated_at`` holds the timestamp of the latest one.
    """
    __tablename__ = "quizzes"

    course_id = Column(
        Integer,
        ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    start_time = Column(DateTime, nullable=True)
    end_time = Column(DateTime, nullable=True)
    duration = Column(Integer, nullable=True, comment="Minutes")

    is_evaluated = Column(Boolean, nullable=False, default=False)
    evaluated_at = Column(DateTime, nullable=True)

    course = relationship("Course", back_populates="quizzes")
    questions = relationship(
        "Question",
        back_populates="quiz",
        cascade="all, delete-orphan",
        order_by="Question.id"
    )

    def __repr__(self):
        return f"<Quiz(id={self.id}, title='{self.title}', evaluated={self.is_evaluated})>"


class Question(BaseModel):
    __tablename__ = "questions"

    quiz_id = Column(
        Integer,
        ForeignKey("quizzes.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    text = Column(Text, nullable=False)
    score = Column(Integer, nullable=False, default=1, comment="Points awarded for a correct answer")
    difficulty = Column(
        SQLEnum(Difficulty, name="difficulty"),
        nullable=False,
        default=Difficulty.EASY
    )

    quiz = relationship("Quiz", back_populates="questions")
    options = relationship(
        "QuestionOption",
        back_populates="question",
        cascade="all, delete-orphan",
        order_by="QuestionOption.id"
    )

    def __repr__(self):
        return f"<Question(id={self.id}, quiz_id={self.quiz_id}, score={self.score})>"


class QuestionOption(Base):
    __tablename__ = "question_options"

    id = Column(Integer, primary_key=True, autoincrement=True)
    question_id = Column(
        Integer,
        ForeignKey("questions.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    text = Column(Text, nullable=False)
    is_correct = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index(
            "uq_question_single_correct",
            "question_id",
            unique=True,
            sqlite_where=sql_text("is_correct"),
            postgresql_where=sql_text("is_correct"),
        ),
    )

    question = relationship("Question", back_populates="options")

    def __repr__(self):
        return f"<QuestionOption(id={self.id}, question_id={self.question_id}, correct={self.is_correct})>"


class QuestionTopic(Base):
    __tablename__ = "question_topics"

    id = Column(Integer, primary_key=True, autoincrement=True)
    question_id = Column(
        Integer,
        ForeignKey("questions.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    topic_id = Column(
        Integer,
        ForeignKey("course_topics.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    __table_args__ = (
        UniqueConstraint("question_id", "topic_id", name="uq_question_topic"),
    )


class QuestionTypeLink(Base):
    __tablename__ = "question_types"

    id = Column(Integer, primary_key=True, autoincrement=True)
    question_id = Column(
        Integer,
        ForeignKey("questions.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    type_id = Column(
        Integer,
        ForeignKey("course_types.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    __table_args__ = (
        UniqueConstraint("question_id", "type_id", name="uq_question_type"),
    )
