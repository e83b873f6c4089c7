"""
quizeval/orm/performance.py

Derived performance rows owned by the evaluation engine.

Student level (one row per student × tag × quiz):
- student_topic_performance
- student_type_performance

Class level (one row per tag × quiz, averaged over students):
- class_topic_performance
- class_type_performance

Every row of one evaluation run shares the same ``evaluated_at``. A re-run
deletes the quiz's rows and inserts fresh ones, so the unique constraints
hold across any number of runs.
"""
from decimal import Decimal
from typing import Dict, Any

from sqlalchemy import Column, Integer, Numeric, DateTime, ForeignKey, UniqueConstraint, CheckConstraint

from quizeval.orm.base import Base

QUANTIZER_2DP = Decimal("0.01")     # avg_score
QUANTIZER_4DP = Decimal("0.0001")   # avg_accuracy


class StudentTopicPerformance(Base):
    __tablename__ = "student_topic_performance"

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(Integer, nullable=False, index=True)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    topic_id = Column(Integer, ForeignKey("course_topics.id", ondelete="CASCADE"), nullable=False, index=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)

    total_questions = Column(Integer, nullable=False, default=0)
    correct_answers = Column(Integer, nullable=False, default=0)
    score = Column(Integer, nullable=False, default=0, comment="Percentage 0-100")
    evaluated_at = Column(DateTime, nullable=False)

    __table_args__ = (
        UniqueConstraint("student_id", "quiz_id", "topic_id", name="uq_student_topic_quiz"),
        CheckConstraint("correct_answers <= total_questions", name="chk_student_topic_correct"),
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "student_id": self.student_id,
            "course_id": self.course_id,
            "topic_id": self.topic_id,
            "quiz_id": self.quiz_id,
            "total_questions": self.total_questions,
            "correct_answers": self.correct_answers,
            "score": self.score,
            "evaluated_at": self.evaluated_at.isoformat() if self.evaluated_at else None,
        }


class StudentTypePerformance(Base):
    __tablename__ = "student_type_performance"

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(Integer, nullable=False, index=True)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    type_id = Column(Integer, ForeignKey("course_types.id", ondelete="CASCADE"), nullable=False, index=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)

    total_questions = Column(Integer, nullable=False, default=0)
    correct_answers = Column(Integer, nullable=False, default=0)
    score = Column(Integer, nullable=False, default=0, comment="Percentage 0-100")
    evaluated_at = Column(DateTime, nullable=False)

    __table_args__ = (
        UniqueConstraint("student_id", "quiz_id", "type_id", name="uq_student_type_quiz"),
        CheckConstraint("correct_answers <= total_questions", name="chk_student_type_correct"),
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "student_id": self.student_id,
            "course_id": self.course_id,
            "type_id": self.type_id,
            "quiz_id": self.quiz_id,
            "total_questions": self.total_questions,
            "correct_answers": self.correct_answers,
            "score": self.score,
            "evaluated_at": self.evaluated_at.isoformat() if self.evaluated_at else None,
        }


class ClassTopicPerformance(Base):
    __tablename__ = "class_topic_performance"

    id = Column(Integer, primary_key=True, autoincrement=True)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    topic_id = Column(Integer, ForeignKey("course_topics.id", ondelete="CASCADE"), nullable=False, index=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)

    avg_score = Column(Numeric(6, 2), nullable=False, default=0)
    avg_accuracy = Column(Numeric(6, 4), nullable=False, default=0)
    evaluated_at = Column(DateTime, nullable=False)

    __table_args__ = (
        UniqueConstraint("quiz_id", "topic_id", name="uq_class_topic_quiz"),
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "course_id": self.course_id,
            "topic_id": self.topic_id,
            "quiz_id": self.quiz_id,
            "avg_score": str(Decimal(str(self.avg_score)).quantize(QUANTIZER_2DP)),
            "avg_accuracy": str(Decimal(str(self.avg_accuracy)).quantize(QUANTIZER_4DP)),
            "evaluated_at": self.evaluated_at.isoformat() if self.evaluated_at else None,
        }


class ClassTypePerformance(Base):
    __tablename__ = "class_type_performance"

    id = Column(Integer, primary_key=True, autoincrement=True)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    type_id = Column(Integer, ForeignKey("course_types.id", ondelete="CASCADE"), nullable=False, index=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)

    avg_score = Column(Numeric(6, 2), nullable=False, default=0)
    avg_accuracy = Column(Numeric(6, 4), nullable=False, default=0)
    evaluated_at = Column(DateTime, nullable=False)

    __table_args__ = (
        UniqueConstraint("quiz_id", "type_id", name="uq_class_type_quiz"),
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "course_id": self.course_id,
            "type_id": self.type_id,
            "quiz_id": self.quiz_id,
            "avg_score": str(Decimal(str(self.avg_score)).quantize(QUANTIZER_2DP)),
            "avg_accuracy": str(Decimal(str(self.avg_accuracy)).quantize(QUANTIZER_4DP)),
            "evaluated_at": self.evaluated_at.isoformat() if self.evaluated_at else None,
        }
