from .base import Base

# Catalog
from .course import Course, Topic, QuestionType
from .quiz import Quiz, Question, QuestionOption, QuestionTopic, QuestionTypeLink, Difficulty

# Raw facts
from .attempt import QuizAttempt

# Derived by the evaluation engine
from .performance import (
    StudentTopicPerformance,
    StudentTypePerformance,
    ClassTopicPerformance,
    ClassTypePerformance,
)
from .quiz_result import QuizResult

__all__ = [
    "Base",
    "Course",
    "Topic",
    "QuestionType",
    "Quiz",
    "Question",
    "QuestionOption",
    "QuestionTopic",
    "QuestionTypeLink",
    "Difficulty",
    "QuizAttempt",
    "StudentTopicPerformance",
    "StudentTypePerformance",
    "ClassTopicPerformance",
    "ClassTypePerformance",
    "QuizResult",
]
