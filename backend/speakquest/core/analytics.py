"""Per-word analytics derived from an attempt history.

Nothing here is stored: analytics are recomputed from the bounded history on
every read, so they always agree with what the ledger holds.
"""

from collections.abc import Sequence

from speakquest.models.evaluation import Grade
from speakquest.models.progress import Attempt, WordAnalytics
from speakquest.utils.rounding import round_half_up

TREND_WINDOW = 5
TREND_MIN_ATTEMPTS = 3
TREND_THRESHOLD = 0.3
IMPROVEMENT_MIN_ATTEMPTS = 4

_GRADE_POINTS = {
    Grade.CORRECT: 3,
    Grade.NEAR_CORRECT: 2,
    Grade.INCORRECT: 1,
}

_TREND_LABELS = {
    "improving": "Improving",
    "declining": "Needs Attention",
    "stable": "Stable",
}


def compute_word_analytics(attempt_history: Sequence[Attempt]) -> WordAnalytics:
    """Calculate accuracy, score ranges, trend and improvement for one word."""
    if not attempt_history:
        return WordAnalytics()

    total = len(attempt_history)
    correct_count = sum(1 for a in attempt_history if a.grade == Grade.CORRECT)
    near_correct_count = sum(1 for a in attempt_history if a.grade == Grade.NEAR_CORRECT)

    clarity = [a.clarity_score for a in attempt_history if a.clarity_score is not None]
    similarity = [a.similarity_score for a in attempt_history if a.similarity_score is not None]

    return WordAnalytics(
        total_attempts=total,
        accuracy_rate=round_half_up(correct_count / total * 100),
        near_correct_rate=round_half_up(near_correct_count / total * 100),
        avg_clarity=_rounded_mean(clarity),
        avg_similarity=_rounded_mean(similarity),
        best_clarity=max(clarity) if clarity else None,
        worst_clarity=min(clarity) if clarity else None,
        best_similarity=max(similarity) if similarity else None,
        worst_similarity=min(similarity) if similarity else None,
        trend=calculate_trend(attempt_history),
        improvement_rate=calculate_improvement_rate(attempt_history),
    )


def calculate_trend(attempt_history: Sequence[Attempt]) -> str | None:
    """Compare the two halves of the last five grades.

    Returns "improving", "declining", "stable", or None with fewer than three
    attempts.
    """
    if len(attempt_history) < TREND_MIN_ATTEMPTS:
        return None

    points = [_GRADE_POINTS[a.grade] for a in attempt_history[-TREND_WINDOW:]]
    split = (len(points) + 1) // 2
    first, second = points[:split], points[split:]

    diff = sum(second) / len(second) - sum(first) / len(first)
    if diff > TREND_THRESHOLD:
        return "improving"
    if diff < -TREND_THRESHOLD:
        return "declining"
    return "stable"


def calculate_improvement_rate(attempt_history: Sequence[Attempt]) -> int | None:
    """Percentage change in mean similarity between the first and second half."""
    if len(attempt_history) < IMPROVEMENT_MIN_ATTEMPTS:
        return None

    midpoint = len(attempt_history) // 2
    first = [a.similarity_score for a in attempt_history[:midpoint] if a.similarity_score is not None]
    second = [a.similarity_score for a in attempt_history[midpoint:] if a.similarity_score is not None]
    if not first or not second:
        return None

    first_avg = sum(first) / len(first)
    second_avg = sum(second) / len(second)
    if first_avg == 0:
        return None

    return round_half_up((second_avg - first_avg) / first_avg * 100)


def trend_label(trend: str | None) -> str:
    return _TREND_LABELS.get(trend or "", "No Trend")


def _rounded_mean(values: list[int]) -> int | None:
    if not values:
        return None
    return round_half_up(sum(values) / len(values))
