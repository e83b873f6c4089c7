"""
Performance Routes

Read-only views over evaluated quizzes.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from quizeval.database import get_db
from quizeval.exceptions import QuizNotFoundError
from quizeval.schemas.evaluation import (
    QuizResultResponse, StudentQuizPerformanceResponse, CourseTopicsResponse, CourseTypesResponse
)
from quizeval.services.performance_query_service import (
    get_quiz_summary, get_student_quiz_performance,
    get_student_course_topics, get_student_course_types
)

router = APIRouter(tags=["Performance"])


@router.get("/quizzes/{quiz_id}/result", response_model=QuizResultResponse)
async def quiz_result(
    quiz_id: int,
    db: AsyncSession = Depends(get_db)
):
    """Question count, total marks, ranked students and class statistics."""
    try:
        summary = await get_quiz_summary(quiz_id, db)
    except QuizNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    return QuizResultResponse(**summary)


@router.get(
    "/students/{student_id}/quizzes/{quiz_id}/performance",
    response_model=StudentQuizPerformanceResponse
)
async def student_quiz_performance(
    student_id: int,
    quiz_id: int,
    db: AsyncSession = Depends(get_db)
):
    try:
        performance = await get_student_quiz_performance(quiz_id, student_id, db)
    except QuizNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    return StudentQuizPerformanceResponse(**performance)


@router.get(
    "/courses/{course_id}/students/{student_id}/topics",
    response_model=CourseTopicsResponse
)
async def student_course_topics(
    course_id: int,
    student_id: int,
    db: AsyncSession = Depends(get_db)
):
    topics = await get_student_course_topics(course_id, student_id, db)
    return CourseTopicsResponse(course_id=course_id, student_id=student_id, topics=topics)


@router.get(
    "/courses/{course_id}/students/{student_id}/types",
    response_model=CourseTypesResponse
)
async def student_course_types(
    course_id: int,
    student_id: int,
    db: AsyncSession = Depends(get_db)
):
    types = await get_student_course_types(course_id, student_id, db)
    return CourseTypesResponse(course_id=course_id, student_id=student_id, types=types)
