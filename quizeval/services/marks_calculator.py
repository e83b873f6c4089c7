"""
Marks Calculator

Awards each attempt its question's points when correct, 0 otherwise, and
sums the awards per student into the quiz total.

The result is a complete replacement set: the writer overwrites every
``marks_awarded`` and every QuizResult score with these values.
"""
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable

from quizeval.services.attempt_classifier import ClassifiedAttempt


@dataclass
class MarksSheet:
    attempt_marks: Dict[int, int] = field(default_factory=dict)
    student_totals: Dict[int, int] = field(default_factory=dict)

    @property
    def total_awarded(self) -> int:
        return sum(self.student_totals.values())


def marks_for(attempt: ClassifiedAttempt) -> int:
    return attempt.question_score if attempt.is_correct else 0


def calculate_marks(classified: Iterable[ClassifiedAttempt]) -> MarksSheet:
    """
    Compute per-attempt marks and per-student totals.

    Every student with at least one attempt gets a total, 0 included, so a
    student who answered everything wrong still receives a QuizResult.
    """
    attempt_marks: Dict[int, int] = {}
    totals: Dict[int, int] = defaultdict(int)

    for attempt in classified:
        awarded = marks_for(attempt)
        attempt_marks[attempt.attempt_id] = awarded
        totals[attempt.student_id] += awarded

    return MarksSheet(
        attempt_marks=attempt_marks,
        student_totals={student_id: totals[student_id] for student_id in sorted(totals)},
    )
