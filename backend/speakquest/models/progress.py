"""Progress tracking models.

``Attempt`` and ``WordProgress`` are persisted, so they serialize with
camelCase keys (``incorrectAttempts``, ``attemptHistory``...) to stay
readable by clients that stored progress in that layout.
"""

import logging
from datetime import UTC, datetime
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    computed_field,
    field_validator,
)
from pydantic.alias_generators import to_camel

from speakquest.models.evaluation import Grade

logger = logging.getLogger(__name__)

_datetime_adapter = TypeAdapter(datetime)


def _ensure_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class Attempt(BaseModel):
    """A single graded attempt. Never modified once recorded."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    timestamp: datetime
    grade: Grade
    clarity_score: int | None = Field(default=None, ge=0, le=100)
    similarity_score: int | None = Field(default=None, ge=0, le=100)

    @field_validator("timestamp")
    @classmethod
    def _aware_timestamp(cls, value: datetime) -> datetime:
        return _ensure_aware(value)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_correct(self) -> bool:
        return self.grade == Grade.CORRECT


class WordProgress(BaseModel):
    """Mutable per-word aggregate, created on the first attempt for a word."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    attempts: int = 0
    incorrect_attempts: int = 0
    consecutive_correct: int = 0
    in_review: bool = False
    last_attempted: datetime | None = None
    last_grade: Grade | None = None
    attempt_history: list[Attempt] = []
    clarity_scores: list[int] = []
    similarity_scores: list[int] = []

    @classmethod
    def from_stored(
        cls,
        raw: Any,
        history_limit: int = 20,
        buffer_limit: int = 10,
    ) -> "WordProgress":
        """Build a record from persisted JSON, replacing bad fields with safe defaults.

        Stored data may be hand-edited or written by an older client, so each
        field is checked on its own instead of rejecting the whole record.
        """
        if isinstance(raw, WordProgress):
            return raw.model_copy(deep=True)
        if not isinstance(raw, dict):
            return cls()

        history: list[Attempt] = []
        raw_history = raw.get("attemptHistory", raw.get("attempt_history"))
        if isinstance(raw_history, list):
            for item in raw_history:
                try:
                    history.append(Attempt.model_validate(item))
                except ValidationError:
                    logger.debug("Dropping malformed attempt record: %r", item)
        history = history[-history_limit:]

        attempts = _as_count(raw.get("attempts"))
        incorrect = _as_count(raw.get("incorrectAttempts", raw.get("incorrect_attempts")))

        return cls(
            attempts=max(attempts, incorrect, len(history)),
            incorrect_attempts=incorrect,
            consecutive_correct=_as_count(
                raw.get("consecutiveCorrect", raw.get("consecutive_correct"))
            ),
            in_review=raw.get("inReview", raw.get("in_review")) is True,
            last_attempted=_as_datetime(raw.get("lastAttempted", raw.get("last_attempted"))),
            last_grade=_as_grade(raw.get("lastGrade", raw.get("last_grade"))),
            attempt_history=history,
            clarity_scores=_as_scores(raw.get("clarityScores", raw.get("clarity_scores")))[-buffer_limit:],
            similarity_scores=_as_scores(
                raw.get("similarityScores", raw.get("similarity_scores"))
            )[-buffer_limit:],
        )

    def to_stored(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


def _as_count(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return max(0, value)
    if isinstance(value, float) and value.is_integer():
        return max(0, int(value))
    return 0


def _as_datetime(value: Any) -> datetime | None:
    if value is None:
        return None
    try:
        return _ensure_aware(_datetime_adapter.validate_python(value))
    except ValidationError:
        return None


def _as_grade(value: Any) -> Grade | None:
    try:
        return Grade(value)
    except ValueError:
        return None


def _as_scores(value: Any) -> list[int]:
    if not isinstance(value, list):
        return []
    return [
        int(v) for v in value
        if isinstance(v, (int, float)) and not isinstance(v, bool) and 0 <= v <= 100
    ]


class WordAnalytics(BaseModel):
    """Derived per-word statistics. Computed on read, never stored."""

    total_attempts: int = 0
    accuracy_rate: int = 0
    near_correct_rate: int = 0
    avg_clarity: int | None = None
    avg_similarity: int | None = None
    best_clarity: int | None = None
    worst_clarity: int | None = None
    best_similarity: int | None = None
    worst_similarity: int | None = None
    trend: str | None = None  # "improving", "stable", "declining"
    improvement_rate: int | None = None


class PracticeSuggestion(BaseModel):
    """A word recommended for extra practice."""

    word: str
    priority_score: int
    reasons: list[str]
    analytics: WordAnalytics


class RecordResult(BaseModel):
    """Result of recording an attempt.

    ``persisted`` is False when the store rejected the write; ``progress`` is
    still the updated record so the caller can show it.
    """

    word: str
    progress: WordProgress
    persisted: bool = True
    warning: str | None = None


class TrendSummary(BaseModel):
    trend: str  # "improving", "stable", "declining", "insufficient"
    change: int
    message: str


class Misinterpretation(BaseModel):
    word: str | None
    rate: int
    count: int = 0
    message: str


class TaggedAttempt(BaseModel):
    """An attempt annotated with the word it belongs to."""

    word: str
    timestamp: datetime
    grade: Grade
    clarity_score: int | None = None
    similarity_score: int | None = None


class MetaFeedbackOverview(BaseModel):
    """Cross-word summary shown on the session overview."""

    recent_attempts: list[TaggedAttempt]
    clarity_trend: TrendSummary
    similarity_trend: TrendSummary
    most_common_misinterpretation: Misinterpretation
    ai_pattern_summary: str
