"""
Unit Tests for the Marks Calculator
"""
from quizeval.services.attempt_classifier import ClassifiedAttempt
from quizeval.services.marks_calculator import calculate_marks, marks_for


def _attempt(attempt_id, student_id, is_correct, score):
    return ClassifiedAttempt(
        attempt_id=attempt_id,
        student_id=student_id,
        question_id=attempt_id,
        question_score=score,
        is_correct=is_correct,
    )


def test_correct_attempt_earns_question_score():
    assert marks_for(_attempt(1, 1, True, 5)) == 5


def test_incorrect_attempt_earns_nothing():
    assert marks_for(_attempt(1, 1, False, 5)) == 0


def test_totals_sum_per_student():
    sheet = calculate_marks([
        _attempt(1, 1, True, 5),
        _attempt(2, 1, True, 3),
        _attempt(3, 2, True, 5),
        _attempt(4, 2, False, 3),
    ])

    assert sheet.attempt_marks == {1: 5, 2: 3, 3: 5, 4: 0}
    assert sheet.student_totals == {1: 8, 2: 5}
    assert sheet.total_awarded == 13


def test_student_with_only_wrong_answers_gets_zero_total():
    sheet = calculate_marks([_attempt(1, 7, False, 4)])

    assert sheet.student_totals == {7: 0}


def test_conservation_between_attempts_and_totals():
    classified = [_attempt(i, i % 5, i % 3 == 0, i % 4 + 1) for i in range(1, 50)]

    sheet = calculate_marks(classified)

    assert sum(sheet.attempt_marks.values()) == sheet.total_awarded
    for student_id, total in sheet.student_totals.items():
        assert total == sum(marks_for(a) for a in classified if a.student_id == student_id)


def test_no_attempts():
    sheet = calculate_marks([])

    assert sheet.attempt_marks == {}
    assert sheet.student_totals == {}
    assert sheet.total_awarded == 0
