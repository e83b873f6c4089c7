"""
quizeval/orm/quiz_result.py

QuizResult - total points a student scored on a quiz.

Unique per (student_id, quiz_id). The evaluation engine upserts it: a
re-run replaces ``score`` with the freshly computed total.
"""
from datetime import datetime

from sqlalchemy import Column, Integer, DateTime, ForeignKey, UniqueConstraint

from quizeval.orm.base import Base


class QuizResult(Base):
    __tablename__ = "quiz_results"

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(Integer, nullable=False, index=True)
    quiz_id = Column(
        Integer,
        ForeignKey("quizzes.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    score = Column(Integer, nullable=False, default=0)
    evaluated_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("student_id", "quiz_id", name="uq_quiz_result_student_quiz"),
    )

    def __repr__(self):
        return f"<QuizResult(student_id={self.student_id}, quiz_id={self.quiz_id}, score={self.score})>"
