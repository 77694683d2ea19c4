"""Speech endpoints: transcribe a recording and grade it against a target word."""

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Form, HTTPException, Request, UploadFile

from speakquest.api.dependencies import Ledger, Transcriber
from speakquest.config import settings
from speakquest.core.analytics import compute_word_analytics
from speakquest.core.circuit_breaker import CircuitBreakerOpen
from speakquest.core.exceptions import TranscriptionError
from speakquest.core.feedback import (
    SILENCE_FEEDBACK,
    CoachingMode,
    coaching_feedback,
    extract_expected_text,
    generate_feedback,
    matches_expected,
)
from speakquest.core.grading import evaluate_transcription
from speakquest.core.insights import generate_insights
from speakquest.middleware.rate_limiter import VOICE_LIMIT, limiter
from speakquest.models.envelope import success_response
from speakquest.models.evaluation import (
    AnalyzeResponse,
    EvaluationResult,
    ScoreRequest,
    TranscriptionMetadata,
    TranscriptionResponse,
)
from speakquest.models.progress import Attempt

logger = logging.getLogger(__name__)

router = APIRouter()


async def _read_audio(audio: UploadFile) -> bytes:
    # Browsers report a variety of audio/* types for recordings, so accept them all
    if audio.content_type and not audio.content_type.startswith("audio/"):
        raise HTTPException(
            status_code=400,
            detail=f"Invalid file type {audio.content_type}. Only audio files are allowed.",
        )

    content = await audio.read()
    if not content:
        raise HTTPException(status_code=400, detail="No audio file provided")

    max_bytes = settings.max_upload_size_mb * 1024 * 1024
    if len(content) > max_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size is {settings.max_upload_size_mb}MB",
        )
    return content


async def _transcribe(
    transcriber: Transcriber, content: bytes, filename: str, prompt: str | None
) -> TranscriptionResponse:
    if not transcriber.is_configured:
        raise HTTPException(status_code=503, detail="Transcription API key not configured")

    try:
        return await transcriber.transcribe_audio(content, filename, prompt=prompt)
    except CircuitBreakerOpen as e:
        logger.warning("Transcription skipped: %s", e)
        raise HTTPException(status_code=503, detail="Transcription temporarily unavailable")
    except TranscriptionError as e:
        logger.error(f"Transcription failed: {e}")
        detail = str(e) if settings.dev_mode else "Transcription failed"
        raise HTTPException(status_code=502, detail=detail)


async def _evaluation_payload(
    ledger: Ledger,
    word: str,
    evaluation: EvaluationResult,
    metadata: TranscriptionMetadata | None,
    coaching_mode: CoachingMode,
    record: bool,
) -> dict:
    warning = None
    if record:
        recorded = await ledger.record_attempt(word, evaluation)
        progress = recorded.progress
        history = list(progress.attempt_history)
        warning = recorded.warning
    else:
        progress = await ledger.get_word_stats(word)
        # Explain against the history as if this attempt had been recorded
        history = [
            *progress.attempt_history,
            Attempt(
                timestamp=datetime.now(UTC),
                grade=evaluation.grade,
                clarity_score=evaluation.clarity_score,
                similarity_score=evaluation.similarity_score,
            ),
        ]

    return success_response(
        {
            "evaluation": evaluation.model_dump(mode="json"),
            "progress": progress.model_dump(mode="json"),
            "analytics": compute_word_analytics(history).model_dump(),
            "insights": generate_insights(evaluation, history, metadata),
            "coaching": coaching_feedback(
                coaching_mode,
                evaluation.grade,
                evaluation.clarity_score,
                evaluation.similarity_score,
            ),
            "recorded": record and warning is None,
        },
        warning=warning,
    )


@router.post("/analyze")
@limiter.limit(VOICE_LIMIT)
async def analyze_speech(
    request: Request,
    audio: UploadFile,
    transcriber: Transcriber,
    prompt: str = Form(""),
) -> dict:
    """Transcribe a recording and loosely check it against the prompt's target text."""
    content = await _read_audio(audio)
    result = await _transcribe(transcriber, content, audio.filename or "recording.webm", prompt)
    expected = extract_expected_text(prompt)

    if not result.transcript:
        body = AnalyzeResponse(
            transcription="",
            feedback=SILENCE_FEEDBACK,
            matches=False,
            expected_text=expected,
            metadata=result.metadata,
        )
    else:
        matches = matches_expected(result.transcript, expected) if expected else None
        body = AnalyzeResponse(
            transcription=result.transcript,
            feedback=generate_feedback(matches, expected),
            matches=matches,
            expected_text=expected,
            metadata=result.metadata,
        )
    return success_response(body.model_dump())


@router.post("/evaluate")
@limiter.limit(VOICE_LIMIT)
async def evaluate_speech(
    request: Request,
    audio: UploadFile,
    ledger: Ledger,
    transcriber: Transcriber,
    target_word: str = Form(..., min_length=1),
    coaching_mode: CoachingMode = Form(CoachingMode.SUPPORTIVE),
    record: bool = Form(True),
) -> dict:
    """Transcribe, grade and record one pronunciation attempt."""
    content = await _read_audio(audio)
    result = await _transcribe(
        transcriber,
        content,
        audio.filename or "recording.webm",
        prompt=f"Say the word: '{target_word}'",
    )
    evaluation = evaluate_transcription(result.transcript, target_word, result.metadata)
    logger.debug(
        "Evaluated %r: heard %r, similarity %d, grade %s",
        target_word, result.transcript, evaluation.similarity_score, evaluation.grade.value,
    )
    return await _evaluation_payload(
        ledger, target_word, evaluation, result.metadata, coaching_mode, record
    )


@router.post("/score")
async def score_transcription(
    body: ScoreRequest,
    ledger: Ledger,
    record: bool = False,
    coaching_mode: CoachingMode = CoachingMode.SUPPORTIVE,
) -> dict:
    """Grade text that was already transcribed elsewhere."""
    metadata = TranscriptionMetadata(avg_logprob=body.avg_logprob)
    evaluation = evaluate_transcription(body.transcription, body.target_word, metadata)
    return await _evaluation_payload(
        ledger, body.target_word, evaluation, metadata, coaching_mode, record
    )
