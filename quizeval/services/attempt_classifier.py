"""
Attempt Classifier

Loads the raw attempts of a quiz together with their question's score and
tags, then decides correctness for each one.

Topic and type tags are loaded as two separate lookups rather than joined
into the attempt query: an inner join against both tag tables would multiply
every attempt by (#topics × #types) and silently drop untagged questions.

A single attempt yields one DimensionRecord per topic and one per type it
belongs to. Topic and type are orthogonal axes over the same attempt set.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quizeval.orm.attempt import QuizAttempt
from quizeval.orm.quiz import Question, QuestionTopic, QuestionTypeLink

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AttemptRecord:
    """One raw attempt joined with what the engine needs to grade it."""
    attempt_id: int
    student_id: int
    question_id: Optional[int]
    selected_option_id: Optional[int]
    question_score: int = 0
    question_exists: bool = True
    topic_ids: Tuple[int, ...] = ()
    type_ids: Tuple[int, ...] = ()


@dataclass(frozen=True)
class DimensionRecord:
    student_id: int
    dimension_id: int
    is_correct: bool


@dataclass(frozen=True)
class ClassifiedAttempt:
    attempt_id: int
    student_id: int
    question_id: Optional[int]
    question_score: int
    is_correct: bool
    topic_ids: Tuple[int, ...] = ()
    type_ids: Tuple[int, ...] = ()

    def topic_records(self) -> Iterator[DimensionRecord]:
        for topic_id in self.topic_ids:
            yield DimensionRecord(self.student_id, topic_id, self.is_correct)

    def type_records(self) -> Iterator[DimensionRecord]:
        for type_id in self.type_ids:
            yield DimensionRecord(self.student_id, type_id, self.is_correct)


async def _load_tag_map(model, column, quiz_id: int, db: AsyncSession) -> Dict[int, Tuple[int, ...]]:
    result = await db.execute(
        select(model.question_id, column)
        .join(Question, Question.id == model.question_id)
        .where(Question.quiz_id == quiz_id)
        .order_by(model.question_id.asc(), column.asc())
    )
    tags: Dict[int, List[int]] = defaultdict(list)
    for question_id, tag_id in result.all():
        tags[question_id].append(tag_id)
    return {question_id: tuple(ids) for question_id, ids in tags.items()}


async def load_attempts(quiz_id: int, db: AsyncSession) -> List[AttemptRecord]:
    """
    Load every attempt of the quiz, ordered by (student_id, attempt id).

    Attempts whose question row is gone (deleted, or moved to another quiz)
    are returned with ``question_exists=False`` and a score of 0.
    """
    topic_map = await _load_tag_map(QuestionTopic, QuestionTopic.topic_id, quiz_id, db)
    type_map = await _load_tag_map(QuestionTypeLink, QuestionTypeLink.type_id, quiz_id, db)

    result = await db.execute(
        select(
            QuizAttempt.id,
            QuizAttempt.student_id,
            QuizAttempt.question_id,
            QuizAttempt.selected_option_id,
            Question.id,
            Question.score,
        )
        .outerjoin(
            Question,
            (Question.id == QuizAttempt.question_id) & (Question.quiz_id == QuizAttempt.quiz_id)
        )
        .where(QuizAttempt.quiz_id == quiz_id)
        .order_by(QuizAttempt.student_id.asc(), QuizAttempt.id.asc())
    )

    records = []
    for attempt_id, student_id, question_id, selected_option_id, joined_question_id, score in result.all():
        exists = joined_question_id is not None
        records.append(AttemptRecord(
            attempt_id=attempt_id,
            student_id=student_id,
            question_id=question_id,
            selected_option_id=selected_option_id,
            question_score=int(score or 0) if exists else 0,
            question_exists=exists,
            topic_ids=topic_map.get(question_id, ()) if exists else (),
            type_ids=type_map.get(question_id, ()) if exists else (),
        ))

    return records


def is_attempt_correct(attempt: AttemptRecord, answer_key: Dict[int, int]) -> bool:
    """Correct only when the selection equals the question's keyed option."""
    if not attempt.question_exists or attempt.selected_option_id is None:
        return False
    correct_option_id = answer_key.get(attempt.question_id)
    if correct_option_id is None:
        return False
    return attempt.selected_option_id == correct_option_id


def classify_attempts(
    attempts: List[AttemptRecord],
    answer_key: Dict[int, int]
) -> List[ClassifiedAttempt]:
    """Grade every attempt against the answer key. Input order is preserved."""
    classified = []
    unkeyed = set()
    orphaned = 0

    for attempt in attempts:
        if not attempt.question_exists:
            orphaned += 1
        elif attempt.question_id not in answer_key:
            unkeyed.add(attempt.question_id)

        classified.append(ClassifiedAttempt(
            attempt_id=attempt.attempt_id,
            student_id=attempt.student_id,
            question_id=attempt.question_id,
            question_score=attempt.question_score,
            is_correct=is_attempt_correct(attempt, answer_key),
            topic_ids=attempt.topic_ids,
            type_ids=attempt.type_ids,
        ))

    if unkeyed:
        logger.warning(
            f"[CLASSIFY] questions without a correct option graded as incorrect: {sorted(unkeyed)}"
        )
    if orphaned:
        logger.warning(f"[CLASSIFY] {orphaned} attempts reference a missing question")

    return classified
