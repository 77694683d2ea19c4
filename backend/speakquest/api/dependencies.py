"""Shared API dependencies."""

from typing import Annotated

from fastapi import Depends

from speakquest.config import settings
from speakquest.core.attempt_ledger import AttemptLedger
from speakquest.services.progress_store import create_progress_store
from speakquest.services.transcription_service import (
    TranscriptionService,
    transcription_service,
)

_ledger: AttemptLedger | None = None


async def get_ledger() -> AttemptLedger:
    """Process-wide ledger, built on first use from PROGRESS_BACKEND."""
    global _ledger
    if _ledger is None:
        store = await create_progress_store(settings)
        _ledger = AttemptLedger(
            store,
            word_list=settings.word_list,
            review_threshold=settings.review_threshold,
            mastery_threshold=settings.mastery_threshold,
            history_limit=settings.history_limit,
            buffer_limit=settings.score_buffer_limit,
        )
    return _ledger


def reset_ledger() -> None:
    """Drop the cached ledger so the next request rebuilds it."""
    global _ledger
    _ledger = None


def get_transcription_service() -> TranscriptionService:
    return transcription_service


def get_word_list() -> list[str]:
    return list(settings.word_list)


Ledger = Annotated[AttemptLedger, Depends(get_ledger)]
Transcriber = Annotated[TranscriptionService, Depends(get_transcription_service)]
WordList = Annotated[list[str], Depends(get_word_list)]
