"""Practice focus suggestions: which words need the most attention."""

from collections.abc import Mapping

from speakquest.core.analytics import compute_word_analytics
from speakquest.models.progress import PracticeSuggestion, WordProgress

MAX_REASONS = 2


def score_word(word: str, progress: WordProgress) -> PracticeSuggestion | None:
    """Compute the priority of one word, or None if it needs no extra practice.

    Each weakness adds to the priority; the reasons keep the order of the
    checks below.
    """
    if not progress.attempt_history:
        return None

    analytics = compute_word_analytics(progress.attempt_history)
    priority = 0
    reasons: list[str] = []

    if analytics.accuracy_rate < 50:
        priority += (50 - analytics.accuracy_rate) * 2
        reasons.append("low accuracy")

    if analytics.avg_clarity is not None and analytics.avg_clarity < 60:
        priority += 60 - analytics.avg_clarity
        reasons.append("low clarity")

    if analytics.avg_similarity is not None and analytics.avg_similarity < 70:
        priority += 70 - analytics.avg_similarity
        reasons.append("low similarity")

    if analytics.trend == "declining":
        priority += 30
        reasons.append("declining performance")

    if progress.incorrect_attempts >= 3:
        priority += progress.incorrect_attempts * 5
        reasons.append("multiple mistakes")

    if analytics.improvement_rate is not None and analytics.improvement_rate < 0:
        priority += abs(analytics.improvement_rate)
        reasons.append("not improving")

    if priority <= 0:
        return None

    return PracticeSuggestion(
        word=word,
        priority_score=priority,
        reasons=reasons[:MAX_REASONS],
        analytics=analytics,
    )


def suggest_practice_focus(
    progress: Mapping[str, WordProgress], limit: int = 3
) -> list[PracticeSuggestion]:
    """Rank practiced words by priority, highest first, and keep the top ``limit``."""
    suggestions = []
    for word, word_progress in progress.items():
        suggestion = score_word(word, word_progress)
        if suggestion is not None:
            suggestions.append(suggestion)

    # sorted() is stable, so ties keep insertion order
    suggestions = sorted(suggestions, key=lambda s: s.priority_score, reverse=True)
    return suggestions[:max(0, limit)]


def format_suggestion_reason(reasons: list[str]) -> str:
    if not reasons:
        return "needs practice"
    if len(reasons) == 1:
        return reasons[0]
    return f"{reasons[0]} and {reasons[1]}"
