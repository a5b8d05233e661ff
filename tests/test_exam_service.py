"""Tests for scoring, review rows and performance bands."""

from exam_prep_cbt.models.question_model import MockTest
from exam_prep_cbt.models.result_model import Result
from exam_prep_cbt.services.exam_service import (
    build_review,
    calculate_percentage,
    performance_band,
    score_answers,
)


class TestScoreAnswers:
    """Tests for score_answers."""

    def test_one_correct_one_unanswered(self, two_question_test):
        """Q1 correct and Q2 unanswered gives half marks."""
        result = score_answers(two_question_test, {"q1": "A"})
        assert result.correct_answers == 1
        assert result.wrong_answers == 0
        assert result.unanswered == 1
        assert result.total_marks == 8
        assert result.obtained_marks == 4
        assert result.negative_marks_total == 0
        assert result.percentage == 50

    def test_both_wrong_without_negative_marking(self, two_question_test):
        """Wrong answers with zero negative marks score nothing."""
        result = score_answers(two_question_test, {"q1": "B", "q2": "A"})
        assert result.wrong_answers == 2
        assert result.obtained_marks == 0
        assert result.percentage == 0

    def test_negative_marks_are_subtracted_and_totalled(self, sample_test):
        """One correct and one wrong answer with 1 negative mark."""
        result = score_answers(sample_test, {"q1": "B", "q2": "C"})
        assert result.obtained_marks == 3
        assert result.negative_marks_total == 1
        assert result.percentage == 38  # 3/8 = 37.5 → 38

    def test_obtained_marks_clamped_at_zero(self, sample_test):
        """All wrong with negative marking never goes below zero."""
        result = score_answers(sample_test, {"q1": "A", "q2": "B"})
        assert result.obtained_marks == 0
        assert result.negative_marks_total == 2
        assert result.percentage == 0

    def test_empty_selection_counts_as_unanswered(self, sample_test):
        """An empty string in the answer sheet is not a wrong answer."""
        result = score_answers(sample_test, {"q1": ""})
        assert result.unanswered == 2
        assert result.wrong_answers == 0

    def test_test_without_questions_gives_zero_result(self):
        """A test with no questions returns an all-zero result."""
        test = MockTest.model_validate({"id": "empty", "title": "Empty"})
        result = score_answers(test, {})
        assert result == Result()

    def test_time_taken_is_recorded(self, two_question_test):
        """time_taken_seconds is copied into the result."""
        assert score_answers(two_question_test, {}, 125).time_taken_seconds == 125

    def test_fractional_negative_marks(self):
        """Fractional negative marks such as 0.25 are supported."""
        test = MockTest.model_validate({
            "id": "t",
            "negativeMarking": 0.25,
            "questions": [
                {"id": f"q{i}", "options": [{"key": "A"}, {"key": "B"}], "correctOptionKey": "A"}
                for i in range(4)
            ],
        })
        result = score_answers(test, {"q0": "A", "q1": "B"})
        assert result.obtained_marks == 3.75
        assert result.negative_marks_total == 0.25
        assert result.percentage == 23  # 3.75/16 = 23.4


class TestCalculatePercentage:
    """Tests for calculate_percentage."""

    def test_rounds_half_up(self):
        assert calculate_percentage(1, 8) == 13  # 12.5

    def test_zero_total(self):
        assert calculate_percentage(0, 0) == 0


class TestBuildReview:
    """Tests for build_review."""

    def test_rows_follow_question_order(self, sample_test):
        """Review keeps the question order and marks correctness."""
        rows = build_review(sample_test, {"q1": "B", "q2": "D"})
        assert [r["question_id"] for r in rows] == ["q1", "q2"]
        assert rows[0]["is_correct"] is True
        assert rows[0]["explanation"] == "기본 덧셈"
        assert rows[1]["is_correct"] is False
        assert rows[1]["selected"] == "D"
        assert rows[1]["correct"] == "A"

    def test_unanswered_row(self, sample_test):
        rows = build_review(sample_test, {})
        assert rows[0]["selected"] is None
        assert rows[0]["is_correct"] is False


class TestPerformanceBand:
    """Tests for performance_band."""

    def test_band_boundaries(self):
        assert performance_band(100) == "good"
        assert performance_band(70) == "good"
        assert performance_band(69) == "average"
        assert performance_band(40) == "average"
        assert performance_band(39) == "poor"
        assert performance_band(0) == "poor"
