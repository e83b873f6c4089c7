"""
quizeval/schemas/evaluation.py
Pydantic schemas for the evaluation and performance endpoints
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class EvaluateQuizResponse(BaseModel):
    """Response of the evaluation trigger"""
    message: str
    evaluatedAt: datetime

    class Config:
        json_schema_extra = {
            "example": {
                "message": "Quiz evaluation completed successfully",
                "evaluatedAt": "2025-03-01T10:30:00"
            }
        }


class ResponseSubmission(BaseModel):
    """A student's answer to one question; null option means left blank"""
    student_id: int
    question_id: int
    selected_option_id: Optional[int] = None


class ResponseRecorded(BaseModel):
    attempt_id: int
    quiz_id: int
    student_id: int
    question_id: int
    selected_option_id: Optional[int] = None
    marks_awarded: int


class RankedStudent(BaseModel):
    rank: int
    student_id: int
    score: int
    questions_attempted: int = 0


class QuestionPerformance(BaseModel):
    """Attempts and correct answers on one question"""
    question_id: int
    text: str
    score: int
    total_attempts: int
    correct_answers: int


class ClassDimensionPerformance(BaseModel):
    """Class-wide row; averages are decimal strings (2dp score, 4dp accuracy)"""
    course_id: int
    quiz_id: int
    topic_id: Optional[int] = None
    type_id: Optional[int] = None
    name: str
    avg_score: str
    avg_accuracy: str
    evaluated_at: Optional[str] = None


class StudentDimensionPerformance(BaseModel):
    student_id: int
    course_id: int
    quiz_id: int
    topic_id: Optional[int] = None
    type_id: Optional[int] = None
    name: str
    total_questions: int
    correct_answers: int
    score: int
    evaluated_at: Optional[str] = None


class QuizResultResponse(BaseModel):
    quiz_id: int
    course_id: int
    title: str
    is_evaluated: bool
    evaluated_at: Optional[datetime] = None
    question_count: int
    total_marks: int
    total_students: int = 0
    avg_mark: str = "0.0"
    students: List[RankedStudent] = Field(default_factory=list)
    questions: List[QuestionPerformance] = Field(default_factory=list)
    topics: List[ClassDimensionPerformance] = Field(default_factory=list)
    types: List[ClassDimensionPerformance] = Field(default_factory=list)


class StudentQuizPerformanceResponse(BaseModel):
    quiz_id: int
    student_id: int
    score: Optional[int] = None
    topics: List[StudentDimensionPerformance] = Field(default_factory=list)
    types: List[StudentDimensionPerformance] = Field(default_factory=list)


class CourseTopicPerformance(BaseModel):
    """Per-topic totals summed over every evaluated quiz of a course"""
    topic_id: int
    name: str
    quizzes: int
    total_questions: int
    correct_answers: int
    score: int


class CourseTopicsResponse(BaseModel):
    course_id: int
    student_id: int
    topics: List[CourseTopicPerformance] = Field(default_factory=list)


class CourseTypePerformance(BaseModel):
    type_id: int
    name: str
    quizzes: int
    total_questions: int
    correct_answers: int
    score: int


class CourseTypesResponse(BaseModel):
    course_id: int
    student_id: int
    types: List[CourseTypePerformance] = Field(default_factory=list)
