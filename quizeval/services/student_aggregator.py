"""
Student Aggregator

Folds classified attempts into per-student tallies along two independent
axes: (student, topic) and (student, type).

Attempts are partitioned by student first and each partition is folded on
its own, since a student's tallies depend only on that student's attempts.
Output is sorted by (student_id, dimension_id) and never depends on dict
iteration order.
"""
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Tuple

from quizeval.services.attempt_classifier import ClassifiedAttempt, DimensionRecord

TOPIC = "topic"
TYPE = "type"


@dataclass
class Tally:
    total: int = 0
    correct: int = 0

    def add(self, is_correct: bool) -> None:
        self.total += 1
        if is_correct:
            self.correct += 1


@dataclass(frozen=True)
class StudentPerformanceRow:
    student_id: int
    course_id: int
    quiz_id: int
    dimension: str
    dimension_id: int
    total_questions: int
    correct_answers: int
    score: int
    evaluated_at: datetime


@dataclass
class StudentAggregate:
    topic_rows: List[StudentPerformanceRow]
    type_rows: List[StudentPerformanceRow]

    @property
    def student_ids(self) -> List[int]:
        return sorted({row.student_id for row in self.topic_rows + self.type_rows})


def score_percent(correct: int, total: int) -> int:
    """round(100 * correct / total), half-up; 0 when there is nothing to score."""
    if total <= 0:
        return 0
    ratio = Decimal(100) * Decimal(correct) / Decimal(total)
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def partition_by_student(classified: Iterable[ClassifiedAttempt]) -> Dict[int, List[ClassifiedAttempt]]:
    partitions: Dict[int, List[ClassifiedAttempt]] = defaultdict(list)
    for attempt in classified:
        partitions[attempt.student_id].append(attempt)
    return partitions


def fold_dimension(records: Iterable[DimensionRecord]) -> Dict[int, Tally]:
    """Tally records of one student along one dimension."""
    tallies: Dict[int, Tally] = defaultdict(Tally)
    for record in records:
        tallies[record.dimension_id].add(record.is_correct)
    return tallies


def _fold_student(attempts: List[ClassifiedAttempt]) -> Tuple[Dict[int, Tally], Dict[int, Tally]]:
    topic_tallies = fold_dimension(r for a in attempts for r in a.topic_records())
    type_tallies = fold_dimension(r for a in attempts for r in a.type_records())
    return topic_tallies, type_tallies


def _rows_for(
    student_id: int,
    tallies: Dict[int, Tally],
    dimension: str,
    course_id: int,
    quiz_id: int,
    evaluated_at: datetime
) -> List[StudentPerformanceRow]:
    return [
        StudentPerformanceRow(
            student_id=student_id,
            course_id=course_id,
            quiz_id=quiz_id,
            dimension=dimension,
            dimension_id=dimension_id,
            total_questions=tally.total,
            correct_answers=tally.correct,
            score=score_percent(tally.correct, tally.total),
            evaluated_at=evaluated_at,
        )
        for dimension_id, tally in sorted(tallies.items())
        if tally.total > 0
    ]


def aggregate_student_performance(
    classified: Iterable[ClassifiedAttempt],
    *,
    course_id: int,
    quiz_id: int,
    evaluated_at: datetime
) -> StudentAggregate:
    """
    Build StudentTopicPerformance / StudentTypePerformance rows for a quiz.

    One row per non-empty (student, topic) and (student, type) group, every
    row stamped with the same ``evaluated_at``.
    """
    topic_rows: List[StudentPerformanceRow] = []
    type_rows: List[StudentPerformanceRow] = []

    partitions = partition_by_student(classified)
    for student_id in sorted(partitions):
        topic_tallies, type_tallies = _fold_student(partitions[student_id])
        topic_rows.extend(_rows_for(student_id, topic_tallies, TOPIC, course_id, quiz_id, evaluated_at))
        type_rows.extend(_rows_for(student_id, type_tallies, TYPE, course_id, quiz_id, evaluated_at))

    return StudentAggregate(topic_rows=topic_rows, type_rows=type_rows)
