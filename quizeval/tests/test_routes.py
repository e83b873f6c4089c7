"""
API Tests for the evaluation and performance routes
"""
from datetime import datetime
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from quizeval.config import settings
from quizeval.database import get_db
from quizeval.exceptions import EvaluationFailedError
from quizeval.main import app


@pytest_asyncio.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def graded_quiz(seed):
    course = await seed.course()
    topic = await seed.topic(course, "Recursion")
    kind = await seed.question_type(course, "Conceptual")
    quiz = await seed.quiz(course, "Weekly 1")
    question, opts = await seed.question(quiz, score=5, topics=[topic], types=[kind])
    await seed.attempt(quiz, 1, question, opts["B"])
    await seed.attempt(quiz, 2, question, opts["A"])
    await seed.commit()
    return {
        "course": course, "topic": topic, "kind": kind,
        "quiz": quiz, "question": question, "options": opts,
    }


class TestEvaluateEndpoint:

    @pytest.mark.asyncio
    async def test_evaluate_returns_message_and_timestamp(self, client, graded_quiz):
        quiz = graded_quiz["quiz"]

        response = await client.post(f"/api/quizzes/{quiz.id}/evaluate")

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Quiz evaluation completed successfully"
        assert isinstance(datetime.fromisoformat(data["evaluatedAt"]), datetime)

    @pytest.mark.asyncio
    async def test_evaluate_twice_is_safe(self, client, graded_quiz):
        quiz = graded_quiz["quiz"]

        first = await client.post(f"/api/quizzes/{quiz.id}/evaluate")
        second = await client.post(f"/api/quizzes/{quiz.id}/evaluate")
        result = await client.get(f"/api/quizzes/{quiz.id}/result")

        assert first.status_code == second.status_code == 200
        assert [(s["student_id"], s["score"]) for s in result.json()["students"]] == [(1, 5), (2, 0)]

    @pytest.mark.asyncio
    async def test_unknown_quiz_is_404(self, client):
        response = await client.post("/api/quizzes/999/evaluate")

        assert response.status_code == 404
        data = response.json()
        assert data["success"] is False
        assert data["message"] == "Quiz 999 not found"

    @pytest.mark.asyncio
    async def test_failure_is_500_with_generic_message(self, client, graded_quiz):
        quiz = graded_quiz["quiz"]

        with patch(
            "quizeval.routes.evaluation.evaluate_quiz",
            new=AsyncMock(side_effect=EvaluationFailedError(quiz.id))
        ):
            response = await client.post(f"/api/quizzes/{quiz.id}/evaluate")

        assert response.status_code == 500
        assert response.json()["message"] == "Failed to evaluate quiz"

    @pytest.mark.asyncio
    async def test_disabled_engine_is_403(self, client, graded_quiz):
        quiz = graded_quiz["quiz"]

        with patch.object(settings, "FEATURE_EVALUATION_ENGINE", False):
            response = await client.post(f"/api/quizzes/{quiz.id}/evaluate")

        assert response.status_code == 403


class TestResponseEndpoint:

    @pytest.mark.asyncio
    async def test_submit_and_replace(self, client, graded_quiz):
        quiz = graded_quiz["quiz"]
        question = graded_quiz["question"]
        opts = graded_quiz["options"]

        response = await client.put(
            f"/api/quizzes/{quiz.id}/responses",
            json={"student_id": 2, "question_id": question.id, "selected_option_id": opts["B"].id}
        )
        assert response.status_code == 200
        assert response.json()["selected_option_id"] == opts["B"].id

        await client.post(f"/api/quizzes/{quiz.id}/evaluate")
        result = await client.get(f"/api/quizzes/{quiz.id}/result")
        assert [(s["student_id"], s["score"]) for s in result.json()["students"]] == [(1, 5), (2, 5)]

    @pytest.mark.asyncio
    async def test_foreign_option_is_400(self, client, graded_quiz, seed):
        quiz = graded_quiz["quiz"]
        question = graded_quiz["question"]
        _, other_opts = await seed.question(quiz)
        await seed.commit()

        response = await client.put(
            f"/api/quizzes/{quiz.id}/responses",
            json={"student_id": 3, "question_id": question.id, "selected_option_id": other_opts["A"].id}
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_quiz_is_404(self, client):
        response = await client.put(
            "/api/quizzes/999/responses",
            json={"student_id": 3, "question_id": 1}
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_missing_fields_is_422(self, client, graded_quiz):
        quiz = graded_quiz["quiz"]

        response = await client.put(f"/api/quizzes/{quiz.id}/responses", json={"student_id": 3})

        assert response.status_code == 422
        assert response.json()["success"] is False


class TestPerformanceEndpoints:

    @pytest.mark.asyncio
    async def test_quiz_result(self, client, graded_quiz):
        quiz = graded_quiz["quiz"]
        await client.post(f"/api/quizzes/{quiz.id}/evaluate")

        response = await client.get(f"/api/quizzes/{quiz.id}/result")

        assert response.status_code == 200
        data = response.json()
        assert data["question_count"] == 1
        assert data["total_marks"] == 5
        assert data["is_evaluated"] is True
        assert data["topics"][0]["name"] == "Recursion"
        assert data["topics"][0]["avg_score"] == "50.00"
        assert data["topics"][0]["avg_accuracy"] == "0.5000"
        assert data["types"][0]["name"] == "Conceptual"
        assert data["total_students"] == 2
        assert data["avg_mark"] == "2.5"
        assert [(s["student_id"], s["questions_attempted"]) for s in data["students"]] == [(1, 1), (2, 1)]
        assert [(q["question_id"], q["total_attempts"], q["correct_answers"]) for q in data["questions"]] == [
            (graded_quiz["question"].id, 2, 1)
        ]

    @pytest.mark.asyncio
    async def test_quiz_result_unknown_quiz(self, client):
        response = await client.get("/api/quizzes/999/result")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_student_performance(self, client, graded_quiz):
        quiz = graded_quiz["quiz"]
        await client.post(f"/api/quizzes/{quiz.id}/evaluate")

        response = await client.get(f"/api/students/1/quizzes/{quiz.id}/performance")

        assert response.status_code == 200
        data = response.json()
        assert data["score"] == 5
        assert data["topics"][0]["score"] == 100
        assert data["types"][0]["correct_answers"] == 1

    @pytest.mark.asyncio
    async def test_course_topics(self, client, graded_quiz):
        quiz = graded_quiz["quiz"]
        course = graded_quiz["course"]
        await client.post(f"/api/quizzes/{quiz.id}/evaluate")

        response = await client.get(f"/api/courses/{course.id}/students/2/topics")

        assert response.status_code == 200
        topics = response.json()["topics"]
        assert [(t["name"], t["total_questions"], t["correct_answers"], t["score"]) for t in topics] == [
            ("Recursion", 1, 0, 0)
        ]

    @pytest.mark.asyncio
    async def test_course_types(self, client, graded_quiz):
        quiz = graded_quiz["quiz"]
        course = graded_quiz["course"]
        await client.post(f"/api/quizzes/{quiz.id}/evaluate")

        response = await client.get(f"/api/courses/{course.id}/students/1/types")

        assert response.status_code == 200
        data = response.json()
        assert data["student_id"] == 1
        assert [(t["type_id"], t["name"], t["quizzes"], t["score"]) for t in data["types"]] == [
            (graded_quiz["kind"].id, "Conceptual", 1, 100)
        ]


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
