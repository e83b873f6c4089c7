"""
Class Aggregator

Second aggregation pass: averages the per-student rows of a quiz into
class-wide rows per topic and per type.

``compute_class_performance`` reads the student rows back through the
session that wrote them, so it must run after those rows were flushed in the
same transaction. It never consults any cache.

Uses Decimal for all arithmetic:
- avg_score     = mean(score) over students, 2dp, half-up
- avg_accuracy  = mean(correct / total) over students, 4dp, half-up
"""
import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quizeval.orm.performance import (
    StudentTopicPerformance, StudentTypePerformance,
    QUANTIZER_2DP, QUANTIZER_4DP
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClassPerformanceRow:
    course_id: int
    quiz_id: int
    dimension_id: int
    avg_score: Decimal
    avg_accuracy: Decimal
    student_count: int
    evaluated_at: datetime


@dataclass
class ClassAggregate:
    topic_rows: List[ClassPerformanceRow]
    type_rows: List[ClassPerformanceRow]


def fold_class_performance(
    rows: Iterable[Tuple[int, int, int, int]],
    *,
    course_id: int,
    quiz_id: int,
    evaluated_at: datetime
) -> List[ClassPerformanceRow]:
    """
    Average student rows per dimension.

    Each input row is ``(dimension_id, score, correct_answers, total_questions)``.
    Only dimensions present in the input produce a class row. A row with
    ``total_questions == 0`` contributes an accuracy of 0.
    """
    score_sums: Dict[int, Decimal] = defaultdict(Decimal)
    accuracy_sums: Dict[int, Decimal] = defaultdict(Decimal)
    counts: Dict[int, int] = defaultdict(int)

    for dimension_id, score, correct, total in rows:
        score_sums[dimension_id] += Decimal(score)
        if total:
            accuracy_sums[dimension_id] += Decimal(correct) / Decimal(total)
        else:
            accuracy_sums[dimension_id] += Decimal(0)
        counts[dimension_id] += 1

    class_rows = []
    for dimension_id in sorted(counts):
        n = Decimal(counts[dimension_id])
        class_rows.append(ClassPerformanceRow(
            course_id=course_id,
            quiz_id=quiz_id,
            dimension_id=dimension_id,
            avg_score=(score_sums[dimension_id] / n).quantize(QUANTIZER_2DP, rounding=ROUND_HALF_UP),
            avg_accuracy=(accuracy_sums[dimension_id] / n).quantize(QUANTIZER_4DP, rounding=ROUND_HALF_UP),
            student_count=counts[dimension_id],
            evaluated_at=evaluated_at,
        ))

    return class_rows


async def compute_class_performance(
    quiz_id: int,
    course_id: int,
    evaluated_at: datetime,
    db: AsyncSession
) -> ClassAggregate:
    """
    Read the quiz's student rows as visible in the current transaction and
    fold them into class rows.
    """
    topic_result = await db.execute(
        select(
            StudentTopicPerformance.topic_id,
            StudentTopicPerformance.score,
            StudentTopicPerformance.correct_answers,
            StudentTopicPerformance.total_questions,
        )
        .where(StudentTopicPerformance.quiz_id == quiz_id)
        .order_by(StudentTopicPerformance.topic_id.asc(), StudentTopicPerformance.student_id.asc())
    )
    type_result = await db.execute(
        select(
            StudentTypePerformance.type_id,
            StudentTypePerformance.score,
            StudentTypePerformance.correct_answers,
            StudentTypePerformance.total_questions,
        )
        .where(StudentTypePerformance.quiz_id == quiz_id)
        .order_by(StudentTypePerformance.type_id.asc(), StudentTypePerformance.student_id.asc())
    )

    aggregate = ClassAggregate(
        topic_rows=fold_class_performance(
            topic_result.all(), course_id=course_id, quiz_id=quiz_id, evaluated_at=evaluated_at
        ),
        type_rows=fold_class_performance(
            type_result.all(), course_id=course_id, quiz_id=quiz_id, evaluated_at=evaluated_at
        ),
    )

    logger.info(
        f"[CLASS AGGREGATE] quiz={quiz_id} topics={len(aggregate.topic_rows)} "
        f"types={len(aggregate.type_rows)}"
    )
    return aggregate
