"""
Unit Tests for the Answer Key Index
"""
import pytest
from sqlalchemy.exc import IntegrityError

from quizeval.orm.quiz import QuestionOption
from quizeval.services.answer_key import build_answer_key


@pytest.mark.asyncio
async def test_maps_each_question_to_its_correct_option(seed):
    course = await seed.course()
    quiz = await seed.quiz(course)
    q1, q1_opts = await seed.question(quiz, correct="B")
    q2, q2_opts = await seed.question(quiz, correct="D")

    key = await build_answer_key(quiz.id, seed.db)

    assert key == {q1.id: q1_opts["B"].id, q2.id: q2_opts["D"].id}


@pytest.mark.asyncio
async def test_question_without_correct_option_is_absent(seed):
    course = await seed.course()
    quiz = await seed.quiz(course)
    keyed, opts = await seed.question(quiz, correct="A")
    unkeyed, _ = await seed.question(quiz, correct=None)

    key = await build_answer_key(quiz.id, seed.db)

    assert key == {keyed.id: opts["A"].id}
    assert unkeyed.id not in key


@pytest.mark.asyncio
async def test_only_questions_of_the_quiz_are_indexed(seed):
    course = await seed.course()
    quiz = await seed.quiz(course, "Quiz 1")
    other = await seed.quiz(course, "Quiz 2")
    mine, _ = await seed.question(quiz)
    theirs, _ = await seed.question(other)

    key = await build_answer_key(quiz.id, seed.db)

    assert mine.id in key
    assert theirs.id not in key


@pytest.mark.asyncio
async def test_empty_quiz_yields_empty_key(seed):
    course = await seed.course()
    quiz = await seed.quiz(course)

    assert await build_answer_key(quiz.id, seed.db) == {}


@pytest.mark.asyncio
async def test_second_correct_option_rejected_by_partial_unique_index(seed):
    course = await seed.course()
    quiz = await seed.quiz(course)
    question, _ = await seed.question(quiz, correct="B")

    seed.db.add(QuestionOption(question_id=question.id, text="E", is_correct=True))
    with pytest.raises(IntegrityError):
        await seed.db.flush()
