"""
quizeval/orm/attempt.py

QuizAttempt - one student's recorded answer to one question of one quiz.

This is the raw fact table of the evaluation engine:
- Written during the quiz-taking phase (one row per student × question)
- ``selected_option_id`` is NULL when the student left the question blank
- ``marks_awarded`` is the only column the evaluation engine writes; it is
  overwritten on every run, never incremented
- ``question_id`` / ``selected_option_id`` are SET NULL if the referenced
  row is deleted, the engine then grades the attempt as incorrect
"""
from datetime import datetime

from sqlalchemy import Column, Integer, DateTime, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import relationship

from quizeval.orm.base import Base


class QuizAttempt(Base):
    __tablename__ = "quiz_attempts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    quiz_id = Column(
        Integer,
        ForeignKey("quizzes.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    student_id = Column(Integer, nullable=False, index=True)
    question_id = Column(
        Integer,
        ForeignKey("questions.id", ondelete="SET NULL"),
        nullable=True
    )
    selected_option_id = Column(
        Integer,
        ForeignKey("question_options.id", ondelete="SET NULL"),
        nullable=True
    )
    marks_awarded = Column(Integer, nullable=False, default=0)
    submitted_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("quiz_id", "student_id", "question_id", name="uq_attempt_student_question"),
        Index("ix_quiz_attempts_quiz_student", "quiz_id", "student_id"),
    )

    question = relationship("Question")

    def __repr__(self):
        return (
            f"<QuizAttempt(id={self.id}, quiz_id={self.quiz_id}, student_id={self.student_id}, "
            f"question_id={self.question_id}, selected={self.selected_option_id})>"
        )
