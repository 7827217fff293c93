"""
Unit tests for exam question validation, scoring and timing.
"""

from datetime import datetime, timedelta

import pytest

from academy.api import ApiError
from academy.services.exams import (
    clean_answers, clean_questions, is_overtime, letter_grade, remaining_seconds,
    score_answers, tab_warning,
)

QUESTIONS = [
    {"question_text": "2 + 2", "options": ["3", "4"], "correct_option_index": 1},
    {"question_text": "Capital of Pakistan", "options": ["Lahore", "Islamabad", "Karachi"],
     "correct_option_index": 1},
    {"question_text": "H2O is", "options": ["Water", "Salt"], "correct_option_index": 0},
    {"question_text": "Largest planet", "options": ["Mars", "Jupiter"], "correct_option_index": 1},
]


class TestCleanQuestions:
    def test_accepts_valid_questions(self):
        cleaned = clean_questions([{"question_text": "  Q1 ", "options": ["a", " b "],
                                    "correct_option_index": 0}])
        assert cleaned == [{"question_text": "Q1", "options": ["a", "b"], "correct_option_index": 0}]

    def test_needs_at_least_one_question(self):
        with pytest.raises(ApiError):
            clean_questions([])

    @pytest.mark.parametrize("question", [
        {"question_text": "", "options": ["a", "b"], "correct_option_index": 0},
        {"question_text": "Q", "options": ["only one"], "correct_option_index": 0},
        {"question_text": "Q", "options": ["a", ""], "correct_option_index": 0},
        {"question_text": "Q", "options": ["a", "b"], "correct_option_index": 2},
        {"question_text": "Q", "options": ["a", "b"], "correct_option_index": True},
        {"question_text": "Q", "options": ["a", "b"]},
    ])
    def test_rejects_bad_question(self, question):
        with pytest.raises(ApiError) as exc:
            clean_questions([question])
        assert exc.value.status == 400
        assert "question_1" in exc.value.errors


class TestScoring:
    def test_one_mark_per_correct_answer(self):
        result = score_answers(QUESTIONS, [1, 1, 1, -1])
        assert result.score == 2
        assert result.total_marks == 4
        assert result.percentage == 50.0
        assert result.grade == "D"
        assert result.is_passed

    def test_all_wrong_fails(self):
        result = score_answers(QUESTIONS, [0, 0, 1, 0])
        assert result.score == 0
        assert result.grade == "F"
        assert not result.is_passed

    @pytest.mark.parametrize("pct,grade", [
        (100, "A+"), (90, "A+"), (89.99, "A"), (80, "A"), (70, "B"), (60, "C"),
        (50, "D"), (49.99, "F"), (0, "F"),
    ])
    def test_grade_bands(self, pct, grade):
        assert letter_grade(pct) == grade

    def test_answers_padded_and_sanitised(self):
        assert clean_answers([1, "x", None], 4) == [1, -1, -1, -1]
        assert clean_answers(None, 2) == [-1, -1]
        assert clean_answers([0, 1, 1, 0, 1], 3) == [0, 1, 1]

    def test_answers_must_be_list(self):
        with pytest.raises(ApiError):
            clean_answers({"0": 1}, 2)


class TestTiming:
    started = datetime(2026, 5, 1, 9, 0, 0)

    def test_remaining_counts_down_from_start(self):
        now = self.started + timedelta(minutes=10)
        assert remaining_seconds(30, self.started, now) == 20 * 60

    def test_remaining_never_negative(self):
        now = self.started + timedelta(hours=2)
        assert remaining_seconds(30, self.started, now) == 0

    def test_grace_period(self):
        assert not is_overtime(30, self.started, self.started + timedelta(minutes=30, seconds=30), 30)
        assert is_overtime(30, self.started, self.started + timedelta(minutes=30, seconds=31), 30)

    def test_tab_switch_warning_levels(self):
        assert tab_warning(1, 3) == "monitored"
        assert tab_warning(2, 3) == "monitored"
        assert tab_warning(3, 3) == "reported"
