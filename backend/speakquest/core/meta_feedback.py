"""Cross-word aggregates for the session overview."""

from collections.abc import Mapping, Sequence

from speakquest.models.evaluation import Grade
from speakquest.models.progress import (
    MetaFeedbackOverview,
    Misinterpretation,
    TaggedAttempt,
    TrendSummary,
    WordProgress,
)
from speakquest.utils.rounding import round_half_up

RECENT_WINDOW = 10
PATTERN_WINDOW = 20
TREND_CHANGE_THRESHOLD = 5


def get_all_attempts(progress: Mapping[str, WordProgress]) -> list[TaggedAttempt]:
    """Every stored attempt tagged with its word, most recent first."""
    attempts = [
        TaggedAttempt(
            word=word,
            timestamp=attempt.timestamp,
            grade=attempt.grade,
            clarity_score=attempt.clarity_score,
            similarity_score=attempt.similarity_score,
        )
        for word, stats in progress.items()
        for attempt in stats.attempt_history
    ]
    attempts.sort(key=lambda a: a.timestamp, reverse=True)
    return attempts


def get_last_n_attempts(progress: Mapping[str, WordProgress], n: int = RECENT_WINDOW) -> list[TaggedAttempt]:
    return get_all_attempts(progress)[:n]


def get_clarity_trend(progress: Mapping[str, WordProgress]) -> TrendSummary:
    scores = [a.clarity_score for a in get_last_n_attempts(progress) if a.clarity_score is not None]
    return _score_trend(scores, "Clarity")


def get_similarity_trend(progress: Mapping[str, WordProgress]) -> TrendSummary:
    scores = [
        a.similarity_score for a in get_last_n_attempts(progress) if a.similarity_score is not None
    ]
    return _score_trend(scores, "Similarity")


def _score_trend(recent_first: list[int], label: str) -> TrendSummary:
    """Compare the older and newer halves of a most-recent-first score list."""
    if len(recent_first) < 2:
        return TrendSummary(trend="insufficient", change=0, message="Not enough data")

    scores = recent_first[::-1]
    split = (len(scores) + 1) // 2
    first, second = scores[:split], scores[split:]
    change = sum(second) / len(second) - sum(first) / len(first)
    rounded = round_half_up(change)

    if change > TREND_CHANGE_THRESHOLD:
        return TrendSummary(
            trend="improving", change=rounded, message=f"{label} improved by {rounded}%"
        )
    if change < -TREND_CHANGE_THRESHOLD:
        return TrendSummary(
            trend="declining", change=rounded, message=f"{label} declined by {abs(rounded)}%"
        )
    return TrendSummary(trend="stable", change=rounded, message=f"{label} remains stable")


def get_most_common_misinterpretation(
    progress: Mapping[str, WordProgress], word_list: Sequence[str] | None = None
) -> Misinterpretation:
    """The configured word with the highest share of incorrect attempts."""
    candidates = [
        (word, stats.incorrect_attempts / (stats.attempts or 1), stats.incorrect_attempts)
        for word, stats in progress.items()
        if (word_list is None or word in word_list) and stats.incorrect_attempts > 0
    ]
    if not candidates:
        return Misinterpretation(word=None, rate=0, message="No common mistakes detected")

    word, rate, count = max(candidates, key=lambda c: c[1])
    plural = "" if count == 1 else "s"
    return Misinterpretation(
        word=word,
        rate=round_half_up(rate * 100),
        count=count,
        message=f'"{word}" has {count} mistake{plural}',
    )


def get_ai_pattern_summary(progress: Mapping[str, WordProgress]) -> str:
    """One sentence describing how the transcription provider tends to hear the user."""
    recent = get_last_n_attempts(progress, PATTERN_WINDOW)
    patterns = []

    if recent:
        total = len(recent)
        incorrect_rate = sum(1 for a in recent if a.grade == Grade.INCORRECT) / total
        if incorrect_rate > 0.3:
            patterns.append("AI frequently misinterprets your pronunciation")

        near_rate = sum(1 for a in recent if a.grade == Grade.NEAR_CORRECT) / total
        if near_rate > 0.4:
            patterns.append("AI often hears your speech as close but not exact")

        clarity = [a.clarity_score for a in recent if a.clarity_score is not None]
        if clarity and sum(clarity) / len(clarity) < 60:
            patterns.append("AI detects lower clarity in your speech")

    if not patterns:
        return "AI patterns are consistent with your speech"
    return "; ".join(patterns)


def build_overview(
    progress: Mapping[str, WordProgress], word_list: Sequence[str] | None = None
) -> MetaFeedbackOverview:
    return MetaFeedbackOverview(
        recent_attempts=get_last_n_attempts(progress),
        clarity_trend=get_clarity_trend(progress),
        similarity_trend=get_similarity_trend(progress),
        most_common_misinterpretation=get_most_common_misinterpretation(progress, word_list),
        ai_pattern_summary=get_ai_pattern_summary(progress),
    )
