"""
quizeval/orm/course.py

Course and its two tag dimensions.

A course owns a set of topics and a set of question types. Questions of the
course's quizzes are tagged with any number of each; the evaluation engine
reports performance along both axes independently.
"""
from sqlalchemy import Column, Integer, String, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from quizeval.orm.base import Base, BaseModel


class Course(BaseModel):
    __tablename__ = "courses"

    name = Column(String(100), nullable=False)
    code = Column(String(100), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)

    topics = relationship("Topic", back_populates="course", cascade="all, delete-orphan")
    question_types = relationship("QuestionType", back_populates="course", cascade="all, delete-orphan")
    quizzes = relationship("Quiz", back_populates="course")

    def __repr__(self):
        return f"<Course(id={self.id}, code='{self.code}')>"


class Topic(Base):
    """Course-scoped topic tag (e.g. "Recursion", "Sorting")."""
    __tablename__ = "course_topics"

    id = Column(Integer, primary_key=True, autoincrement=True)
    course_id = Column(
        Integer,
        ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    name = Column(String(100), nullable=False)

    __table_args__ = (
        UniqueConstraint("course_id", "name", name="uq_course_topic_name"),
    )

    course = relationship("Course", back_populates="topics")

    def __repr__(self):
        return f"<Topic(id={self.id}, name='{self.name}')>"


class QuestionType(Base):
    """Course-scoped question type tag (e.g. "Conceptual", "Numerical")."""
    __tablename__ = "course_types"

    id = Column(Integer, primary_key=True, autoincrement=True)
    course_id = Column(
        Integer,
        ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    name = Column(String(100), nullable=False)

    __table_args__ = (
        UniqueConstraint("course_id", "name", name="uq_course_type_name"),
    )

    course = relationship("Course", back_populates="question_types")

    def __repr__(self):
        return f"<QuestionType(id={self.id}, name='{self.name}')>"
