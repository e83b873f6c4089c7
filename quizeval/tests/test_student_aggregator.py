"""
Unit Tests for the Student Aggregator
"""
from datetime import datetime

from quizeval.services.attempt_classifier import ClassifiedAttempt
from quizeval.services.student_aggregator import (
    TOPIC, TYPE, aggregate_student_performance, score_percent
)

NOW = datetime(2025, 3, 1, 10, 0, 0)


def _attempt(attempt_id, student_id, is_correct, topic_ids=(), type_ids=(), score=1):
    return ClassifiedAttempt(
        attempt_id=attempt_id,
        student_id=student_id,
        question_id=attempt_id,
        question_score=score,
        is_correct=is_correct,
        topic_ids=topic_ids,
        type_ids=type_ids,
    )


def _aggregate(classified):
    return aggregate_student_performance(classified, course_id=1, quiz_id=2, evaluated_at=NOW)


class TestScorePercent:

    def test_full_marks(self):
        assert score_percent(1, 1) == 100

    def test_zero_total_never_divides(self):
        assert score_percent(0, 0) == 0

    def test_rounds_half_up(self):
        # 1/8 = 12.5%
        assert score_percent(1, 8) == 13
        # 2/3 = 66.67%
        assert score_percent(2, 3) == 67
        # 1/3 = 33.33%
        assert score_percent(1, 3) == 33


class TestAggregateStudentPerformance:

    def test_single_correct_attempt(self):
        result = _aggregate([_attempt(1, 1, True, topic_ids=(5,))])

        assert len(result.topic_rows) == 1
        row = result.topic_rows[0]
        assert row.dimension == TOPIC
        assert (row.student_id, row.dimension_id) == (1, 5)
        assert (row.total_questions, row.correct_answers, row.score) == (1, 1, 100)
        assert row.course_id == 1
        assert row.quiz_id == 2
        assert row.evaluated_at == NOW

    def test_topic_and_type_axes_are_independent(self):
        result = _aggregate([
            _attempt(1, 1, True, topic_ids=(5,), type_ids=(9,)),
            _attempt(2, 1, False, topic_ids=(6,), type_ids=(9,)),
        ])

        topic = {r.dimension_id: (r.total_questions, r.correct_answers) for r in result.topic_rows}
        types = {r.dimension_id: (r.total_questions, r.correct_answers) for r in result.type_rows}
        assert topic == {5: (1, 1), 6: (1, 0)}
        assert types == {9: (2, 1)}
        assert all(r.dimension == TYPE for r in result.type_rows)

    def test_multi_tagged_attempt_counts_once_per_tag(self):
        result = _aggregate([_attempt(1, 1, True, topic_ids=(5, 6))])

        assert [(r.dimension_id, r.total_questions) for r in result.topic_rows] == [(5, 1), (6, 1)]

    def test_untagged_attempts_produce_no_rows(self):
        result = _aggregate([_attempt(1, 1, True)])

        assert result.topic_rows == []
        assert result.type_rows == []

    def test_students_do_not_leak_into_each_other(self):
        result = _aggregate([
            _attempt(1, 2, False, topic_ids=(5,)),
            _attempt(2, 1, True, topic_ids=(5,)),
            _attempt(3, 2, True, topic_ids=(5,)),
        ])

        rows = [(r.student_id, r.total_questions, r.correct_answers, r.score) for r in result.topic_rows]
        assert rows == [(1, 1, 1, 100), (2, 2, 1, 50)]
        assert result.student_ids == [1, 2]

    def test_output_is_sorted_regardless_of_input_order(self):
        forward = [
            _attempt(1, 1, True, topic_ids=(7,)),
            _attempt(2, 1, True, topic_ids=(3,)),
            _attempt(3, 2, False, topic_ids=(3,)),
        ]

        assert _aggregate(forward) == _aggregate(list(reversed(forward)))
        keys = [(r.student_id, r.dimension_id) for r in _aggregate(forward).topic_rows]
        assert keys == sorted(keys)

    def test_correct_never_exceeds_total(self):
        result = _aggregate([
            _attempt(i, i % 3, i % 2 == 0, topic_ids=(i % 4,), type_ids=(i % 2,))
            for i in range(1, 40)
        ])

        for row in result.topic_rows + result.type_rows:
            assert 0 <= row.correct_answers <= row.total_questions
            assert 0 <= row.score <= 100
