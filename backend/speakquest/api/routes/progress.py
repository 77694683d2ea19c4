"""Progress tracking endpoints."""

from fastapi import APIRouter, HTTPException, Query

from speakquest.api.dependencies import Ledger
from speakquest.core.analytics import compute_word_analytics, trend_label
from speakquest.core.grading import determine_grade
from speakquest.core.insights import generate_word_summary_insight
from speakquest.core.practice_focus import format_suggestion_reason
from speakquest.models.envelope import success_response
from speakquest.models.evaluation import EvaluationResult

router = APIRouter()


@router.get("")
async def get_progress(ledger: Ledger) -> dict:
    """Get every practiced word's progress record."""
    progress = await ledger.get_progress()
    return success_response(
        {word: stats.model_dump(mode="json") for word, stats in progress.items()}
    )


@router.delete("")
async def clear_progress(ledger: Ledger) -> dict:
    """Erase all progress."""
    if not await ledger.clear_progress():
        raise HTTPException(status_code=503, detail="Progress storage is unavailable")
    return success_response({"cleared": True})


@router.get("/review-queue")
async def get_review_queue(ledger: Ledger) -> dict:
    """Words flagged for remediation, most urgent first."""
    words = await ledger.get_review_queue()
    return success_response({"words": words, "count": len(words)})


@router.get("/focus")
async def get_practice_focus(
    ledger: Ledger,
    limit: int = Query(3, ge=1, le=50),
) -> dict:
    """Words that would benefit most from extra practice."""
    suggestions = await ledger.get_practice_focus_suggestions(limit)
    return success_response({
        "suggestions": [
            {**s.model_dump(), "summary": format_suggestion_reason(s.reasons)}
            for s in suggestions
        ]
    })


@router.get("/overview")
async def get_overview(ledger: Ledger) -> dict:
    """Cross-word trends and patterns."""
    overview = await ledger.get_overview()
    return success_response(overview.model_dump(mode="json"))


@router.get("/words/{word}")
async def get_word_stats(word: str, ledger: Ledger) -> dict:
    """Progress, analytics and a summary line for one word."""
    stats = await ledger.get_word_stats(word)
    analytics = compute_word_analytics(stats.attempt_history)
    return success_response({
        "word": word,
        "progress": stats.model_dump(mode="json"),
        "analytics": analytics.model_dump(),
        "trend_label": trend_label(analytics.trend),
        "summary": generate_word_summary_insight(stats.attempt_history),
    })


@router.get("/words/{word}/history")
async def get_attempt_history(word: str, ledger: Ledger) -> dict:
    history = await ledger.get_attempt_history(word)
    return success_response({
        "word": word,
        "attempts": [a.model_dump(mode="json") for a in history],
    })


@router.post("/words/{word}/attempts")
async def record_attempt(word: str, evaluation: EvaluationResult, ledger: Ledger) -> dict:
    """Record an evaluation produced by a client that graded locally.

    The grade is recomputed from the similarity score so a client cannot
    store a verdict that contradicts its own score.
    """
    evaluation = evaluation.model_copy(
        update={"grade": determine_grade(evaluation.similarity_score)}
    )
    result = await ledger.record_attempt(word, evaluation)
    return success_response(
        {
            "word": word,
            "progress": result.progress.model_dump(mode="json"),
            "persisted": result.persisted,
        },
        warning=result.warning,
    )


@router.delete("/words/{word}/review")
async def remove_from_review(word: str, ledger: Ledger) -> dict:
    """Mark a word as mastered without further attempts."""
    result = await ledger.remove_from_review(word)
    if result is None:
        raise HTTPException(status_code=404, detail=f"No progress recorded for '{word}'")
    return success_response(
        {"word": word, "progress": result.progress.model_dump(mode="json")},
        warning=result.warning,
    )
