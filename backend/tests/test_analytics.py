"""Tests for per-word analytics and trends."""

from datetime import UTC, datetime, timedelta

from speakquest.core.analytics import (
    calculate_improvement_rate,
    calculate_trend,
    compute_word_analytics,
    trend_label,
)
from speakquest.models.evaluation import Grade
from speakquest.models.progress import Attempt

T0 = datetime(2025, 3, 1, tzinfo=UTC)

C, N, I = Grade.CORRECT, Grade.NEAR_CORRECT, Grade.INCORRECT


def _history(*items: tuple[Grade, int | None, int | None]) -> list[Attempt]:
    """Build a history from (grade, similarity, clarity) tuples, one minute apart."""
    return [
        Attempt(
            timestamp=T0 + timedelta(minutes=i),
            grade=grade,
            similarity_score=similarity,
            clarity_score=clarity,
        )
        for i, (grade, similarity, clarity) in enumerate(items)
    ]


def _grades(*grades: Grade) -> list[Attempt]:
    return _history(*((g, 50, None) for g in grades))


def test_empty_history():
    analytics = compute_word_analytics([])
    assert analytics.total_attempts == 0
    assert analytics.accuracy_rate == 0
    assert analytics.avg_clarity is None
    assert analytics.trend is None
    assert analytics.improvement_rate is None


def test_rates_and_ranges():
    history = _history(
        (C, 100, 90),
        (N, 80, 70),
        (I, 40, None),
    )
    analytics = compute_word_analytics(history)

    assert analytics.total_attempts == 3
    assert analytics.accuracy_rate == 33
    assert analytics.near_correct_rate == 33
    assert analytics.avg_clarity == 80
    assert analytics.best_clarity == 90
    assert analytics.worst_clarity == 70
    assert analytics.avg_similarity == 73
    assert analytics.best_similarity == 100
    assert analytics.worst_similarity == 40


def test_missing_clarity_is_excluded_not_zero():
    analytics = compute_word_analytics(_history((C, 100, None), (C, 100, 60)))
    assert analytics.avg_clarity == 60


def test_accuracy_rounds_half_up():
    # 1 / 8 = 12.5%
    analytics = compute_word_analytics(_grades(C, I, I, I, I, I, I, I))
    assert analytics.accuracy_rate == 13


class TestTrend:
    def test_needs_three_attempts(self):
        assert calculate_trend(_grades(I, C)) is None

    def test_improving(self):
        assert calculate_trend(_grades(I, I, C, C)) == "improving"

    def test_declining(self):
        assert calculate_trend(_grades(C, C, C, I, I)) == "declining"

    def test_stable(self):
        assert calculate_trend(_grades(N, N, N)) == "stable"

    def test_uses_last_five_only(self):
        # Early failures fall outside the window
        history = _grades(I, I, I, I, C, C, C, C, C)
        assert calculate_trend(history) == "stable"

    def test_odd_window_puts_middle_in_first_half(self):
        # first [N, N, N] = 2.0, second [N, C] = 2.5
        assert calculate_trend(_grades(N, N, N, N, C)) == "improving"


class TestImprovementRate:
    def test_needs_four_attempts(self):
        assert calculate_improvement_rate(_history((I, 50, None), (C, 100, None), (C, 100, None))) is None

    def test_positive(self):
        history = _history((I, 50, None), (I, 50, None), (C, 100, None), (C, 100, None))
        assert calculate_improvement_rate(history) == 100

    def test_negative(self):
        history = _history((C, 100, None), (C, 100, None), (N, 80, None), (N, 80, None))
        assert calculate_improvement_rate(history) == -20

    def test_zero_baseline_is_none(self):
        history = _history((I, 0, None), (I, 0, None), (C, 100, None), (C, 100, None))
        assert calculate_improvement_rate(history) is None

    def test_odd_length_midpoint_floors(self):
        # midpoint 2: first [60, 60], second [60, 90, 90] -> 80
        history = _history(
            (I, 60, None), (I, 60, None), (I, 60, None), (C, 90, None), (C, 90, None)
        )
        assert calculate_improvement_rate(history) == 33


def test_trend_labels():
    assert trend_label("improving") == "Improving"
    assert trend_label("declining") == "Needs Attention"
    assert trend_label("stable") == "Stable"
    assert trend_label(None) == "No Trend"
