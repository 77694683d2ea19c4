"""Attempt ledger, the single writer of per-word progress.

Every graded attempt goes through ``record_attempt``, which appends to the
word's bounded history, updates the score buffers and applies the review
state machine as one read-modify-write against the injected store.
Store failures never break an evaluation: reads degrade to an empty map and
failed writes are reported on the returned ``RecordResult``.
"""

import asyncio
import logging
from collections.abc import Callable, Sequence
from datetime import UTC, datetime

from speakquest.core import meta_feedback
from speakquest.core.exceptions import ProgressCorruptError, ProgressStoreError
from speakquest.core.practice_focus import suggest_practice_focus
from speakquest.core.review_scheduler import (
    MASTERY_THRESHOLD,
    REVIEW_THRESHOLD,
    ReviewState,
    apply_grade,
    describe_transition,
)
from speakquest.models.evaluation import EvaluationResult
from speakquest.models.progress import (
    Attempt,
    MetaFeedbackOverview,
    PracticeSuggestion,
    RecordResult,
    WordProgress,
)
from speakquest.services.progress_store import ProgressStore

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 20
SCORE_BUFFER_LIMIT = 10

_EPOCH = datetime.min.replace(tzinfo=UTC)

_UNREADABLE_WARNING = "Progress storage is unavailable; this attempt was not saved."
_WRITE_WARNING = "Progress could not be saved; this attempt will not appear in your history."


def _utcnow() -> datetime:
    return datetime.now(UTC)


class AttemptLedger:
    """Records attempts and answers progress queries over a ProgressStore."""

    def __init__(
        self,
        store: ProgressStore,
        word_list: Sequence[str] | None = None,
        review_threshold: int = REVIEW_THRESHOLD,
        mastery_threshold: int = MASTERY_THRESHOLD,
        history_limit: int = HISTORY_LIMIT,
        buffer_limit: int = SCORE_BUFFER_LIMIT,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.word_list = list(word_list) if word_list is not None else None
        self.review_threshold = review_threshold
        self.mastery_threshold = mastery_threshold
        self.history_limit = history_limit
        self.buffer_limit = buffer_limit
        self._clock = clock
        # The store holds one map, so writes to different words still conflict
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_progress(self) -> dict[str, WordProgress]:
        """Load the whole progress map (empty if the store cannot be read)."""
        progress, _ = await self._load()
        return progress

    async def get_word_stats(self, word: str) -> WordProgress:
        progress = await self.get_progress()
        return progress.get(word) or WordProgress()

    async def get_attempt_history(self, word: str) -> list[Attempt]:
        """Attempts for ``word``, oldest first."""
        stats = await self.get_word_stats(word)
        return list(stats.attempt_history)

    async def get_review_queue(self, word_list: Sequence[str] | None = None) -> list[str]:
        """Words flagged for review, most mistakes first, then most recent.

        Only words in the configured practice list are returned, so renamed or
        removed words drop out of the queue without deleting their history.
        """
        allowed = word_list if word_list is not None else self.word_list
        progress = await self.get_progress()

        flagged = [
            (word, stats)
            for word, stats in progress.items()
            if stats.in_review and (allowed is None or word in allowed)
        ]
        flagged.sort(
            key=lambda item: (item[1].incorrect_attempts, item[1].last_attempted or _EPOCH),
            reverse=True,
        )
        return [word for word, _ in flagged]

    async def get_practice_focus_suggestions(self, limit: int = 3) -> list[PracticeSuggestion]:
        return suggest_practice_focus(await self.get_progress(), limit)

    async def get_overview(self) -> MetaFeedbackOverview:
        progress = await self.get_progress()
        return meta_feedback.build_overview(progress, self.word_list)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def record_attempt(self, word: str, evaluation: EvaluationResult) -> RecordResult:
        """Append an attempt for ``word`` and persist the updated record."""
        async with self._lock:
            progress, writable = await self._load()
            current = progress.get(word) or WordProgress()
            updated = self._apply_attempt(word, current, evaluation)
            progress[word] = updated

            if not writable:
                return RecordResult(
                    word=word, progress=updated, persisted=False, warning=_UNREADABLE_WARNING
                )

            persisted = await self._save(progress)

        return RecordResult(
            word=word,
            progress=updated,
            persisted=persisted,
            warning=None if persisted else _WRITE_WARNING,
        )

    async def remove_from_review(self, word: str) -> RecordResult | None:
        """Manually take a word out of the review queue. None if never practiced."""
        async with self._lock:
            progress, writable = await self._load()
            current = progress.get(word)
            if current is None:
                return None

            updated = current.model_copy(update={"in_review": False})
            progress[word] = updated
            persisted = writable and await self._save(progress)

        if current.in_review:
            logger.info("Word %r removed from review manually", word)
        return RecordResult(
            word=word,
            progress=updated,
            persisted=persisted,
            warning=None if persisted else _WRITE_WARNING,
        )

    async def clear_progress(self) -> bool:
        """Delete every word's progress. Returns False if the store refused."""
        async with self._lock:
            try:
                await self.store.clear()
            except ProgressStoreError as e:
                logger.warning("Could not clear progress: %s", e)
                return False
        logger.info("All progress cleared")
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _apply_attempt(
        self, word: str, current: WordProgress, evaluation: EvaluationResult
    ) -> WordProgress:
        timestamp = self._clock()
        # Keep history timestamps non-decreasing even if the clock steps back
        previous = [t for t in (current.last_attempted,) if t is not None]
        if current.attempt_history:
            previous.append(current.attempt_history[-1].timestamp)
        if previous and timestamp < max(previous):
            timestamp = max(previous)

        attempt = Attempt(
            timestamp=timestamp,
            grade=evaluation.grade,
            clarity_score=evaluation.clarity_score,
            similarity_score=evaluation.similarity_score,
        )

        before = ReviewState(
            incorrect_attempts=current.incorrect_attempts,
            consecutive_correct=current.consecutive_correct,
            in_review=current.in_review,
        )
        after = apply_grade(
            before, evaluation.grade, self.review_threshold, self.mastery_threshold
        )
        transition = describe_transition(before, after)
        if transition == "entered_review":
            logger.info("Word %r entered review after %d mistakes", word, after.incorrect_attempts)
        elif transition == "mastered":
            logger.info("Word %r mastered, leaving review", word)

        clarity_scores = list(current.clarity_scores)
        if evaluation.clarity_score is not None:
            clarity_scores.append(evaluation.clarity_score)
        similarity_scores = list(current.similarity_scores)
        if evaluation.similarity_score is not None:
            similarity_scores.append(evaluation.similarity_score)

        return current.model_copy(
            update={
                "attempts": current.attempts + 1,
                "incorrect_attempts": after.incorrect_attempts,
                "consecutive_correct": after.consecutive_correct,
                "in_review": after.in_review,
                "last_attempted": timestamp,
                "last_grade": evaluation.grade,
                "attempt_history": [*current.attempt_history, attempt][-self.history_limit:],
                "clarity_scores": clarity_scores[-self.buffer_limit:],
                "similarity_scores": similarity_scores[-self.buffer_limit:],
            }
        )

    async def _load(self) -> tuple[dict[str, WordProgress], bool]:
        """Return (progress, writable).

        A corrupt payload loads as empty but may be overwritten; an unreachable
        store is not written to, so a transient outage cannot wipe history.
        """
        try:
            raw = await self.store.load()
        except ProgressCorruptError as e:
            logger.warning("Stored progress is corrupt, starting fresh: %s", e)
            return {}, True
        except ProgressStoreError as e:
            logger.warning("Could not read progress: %s", e)
            return {}, False

        progress: dict[str, WordProgress] = {}
        for word, record in raw.items():
            if not isinstance(record, dict):
                logger.warning("Ignoring malformed progress entry for %r", word)
                continue
            progress[word] = WordProgress.from_stored(
                record, self.history_limit, self.buffer_limit
            )
        return progress, True

    async def _save(self, progress: dict[str, WordProgress]) -> bool:
        try:
            await self.store.save({word: p.to_stored() for word, p in progress.items()})
        except ProgressStoreError as e:
            logger.warning("Could not save progress: %s", e)
            return False
        return True
