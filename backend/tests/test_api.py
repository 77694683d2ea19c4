"""HTTP API tests for speech, progress, words and system endpoints.

The ledger runs on an in-memory store and the transcription client is a
mock, so nothing leaves the process.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from speakquest.api.dependencies import get_ledger, get_transcription_service
from speakquest.config import DEFAULT_WORD_LIST, settings
from speakquest.core.attempt_ledger import AttemptLedger
from speakquest.core.circuit_breaker import CircuitBreaker, CircuitBreakerOpen
from speakquest.core.exceptions import (
    ProgressReadError,
    ProgressWriteError,
    TranscriptionError,
)
from speakquest.core.feedback import SILENCE_FEEDBACK
from speakquest.main import app
from speakquest.models.evaluation import TranscriptionMetadata, TranscriptionResponse
from speakquest.services.progress_store import InMemoryProgressStore


def _heard(text: str, avg_logprob: float | None = -0.2) -> TranscriptionResponse:
    return TranscriptionResponse(
        transcript=text,
        model="gpt-4o-transcribe",
        metadata=TranscriptionMetadata(avg_logprob=avg_logprob),
    )


@pytest.fixture
def transcriber():
    service = MagicMock()
    service.is_configured = True
    service.breaker = CircuitBreaker("transcription")
    service.transcribe_audio = AsyncMock(return_value=_heard("Squirrel."))
    return service


@pytest_asyncio.fixture
async def client(ledger: AttemptLedger, transcriber):
    app.dependency_overrides[get_ledger] = lambda: ledger
    app.dependency_overrides[get_transcription_service] = lambda: transcriber
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def wav_upload(wav_fixture):
    return {"audio": ("recording.wav", wav_fixture.read_bytes(), "audio/wav")}


async def _score(client: AsyncClient, transcription: str, target: str, record: bool = True):
    return await client.post(
        "/api/v1/speech/score",
        params={"record": str(record).lower()},
        json={"transcription": transcription, "target_word": target, "avg_logprob": -0.2},
    )


# ---------------------------------------------------------------------------
# Health / system
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["services"]["transcription"] == "ok"


async def test_readiness_ok(client: AsyncClient):
    response = await client.get("/health/ready")
    assert response.status_code == 200
    assert response.json()["services"] == {"progress_store": "ok", "transcription": "ok"}


async def test_readiness_degraded_when_store_unreadable(client: AsyncClient, ledger: AttemptLedger):
    ledger.store = MagicMock()
    ledger.store.load = AsyncMock(side_effect=ProgressReadError("down"))

    response = await client.get("/health/ready")

    assert response.status_code == 503
    assert response.json()["services"]["progress_store"] == "unavailable"


async def test_version_and_request_id(client: AsyncClient):
    response = await client.get("/api/v1/version")
    assert response.json()["api_prefix"] == "/api/v1"
    assert response.headers["x-request-id"]

    echoed = await client.get("/", headers={"X-Request-ID": "abc123"})
    assert echoed.headers["x-request-id"] == "abc123"


# ---------------------------------------------------------------------------
# Speech
# ---------------------------------------------------------------------------


async def test_score_without_recording(client: AsyncClient):
    response = await _score(client, "squirel", "squirrel", record=False)

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "success"
    evaluation = body["data"]["evaluation"]
    assert evaluation["grade"] == "near-correct"
    assert evaluation["similarity_score"] == 88
    assert evaluation["clarity_score"] == 89
    assert evaluation["top_alternative"] == "squirel"
    assert body["data"]["recorded"] is False
    assert body["data"]["progress"]["attempts"] == 0
    assert body["data"]["analytics"]["total_attempts"] == 1


async def test_score_with_recording(client: AsyncClient, store: InMemoryProgressStore):
    response = await _score(client, "Strength.", "strength")

    data = response.json()["data"]
    assert data["evaluation"]["grade"] == "correct"
    assert data["recorded"] is True
    assert data["progress"]["attempts"] == 1
    assert "strength" in await store.load()


async def test_score_validation_error(client: AsyncClient):
    response = await client.post("/api/v1/speech/score", json={"transcription": "rural"})

    assert response.status_code == 422
    body = response.json()
    assert body["status"] == "error"
    assert body["errors"][0]["code"] == "VALIDATION_ERROR"
    assert body["errors"][0]["field"] == "target_word"


async def test_evaluate_records_attempt(client: AsyncClient, transcriber, wav_upload):
    response = await client.post(
        "/api/v1/speech/evaluate", files=wav_upload, data={"target_word": "squirrel"}
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["evaluation"]["grade"] == "correct"
    assert data["evaluation"]["transcription"] == "Squirrel."
    assert data["progress"]["attempts"] == 1
    assert data["coaching"]["headline"].startswith("Excellent!")

    call = transcriber.transcribe_audio.call_args
    assert call.args[1] == "recording.wav"
    assert call.kwargs["prompt"] == "Say the word: 'squirrel'"


async def test_evaluate_coaching_mode(client: AsyncClient, transcriber, wav_upload):
    transcriber.transcribe_audio.return_value = _heard("dog")
    response = await client.post(
        "/api/v1/speech/evaluate",
        files=wav_upload,
        data={"target_word": "squirrel", "coaching_mode": "minimal"},
    )

    data = response.json()["data"]
    assert data["evaluation"]["grade"] == "incorrect"
    assert data["coaching"]["headline"] == "✗"
    assert data["insights"]


async def test_evaluate_rejects_non_audio(client: AsyncClient):
    response = await client.post(
        "/api/v1/speech/evaluate",
        files={"audio": ("notes.txt", b"hello", "text/plain")},
        data={"target_word": "rural"},
    )

    assert response.status_code == 400
    assert response.json()["errors"][0]["code"] == "BAD_REQUEST"


async def test_evaluate_rejects_large_upload(client: AsyncClient, wav_upload, monkeypatch):
    monkeypatch.setattr(settings, "max_upload_size_mb", 0)

    response = await client.post(
        "/api/v1/speech/evaluate", files=wav_upload, data={"target_word": "rural"}
    )

    assert response.status_code == 413


async def test_evaluate_without_api_key(client: AsyncClient, transcriber, wav_upload):
    transcriber.is_configured = False

    response = await client.post(
        "/api/v1/speech/evaluate", files=wav_upload, data={"target_word": "rural"}
    )

    assert response.status_code == 503
    transcriber.transcribe_audio.assert_not_called()


async def test_evaluate_provider_failure(client: AsyncClient, transcriber, wav_upload):
    transcriber.transcribe_audio.side_effect = TranscriptionError("all models failed")

    response = await client.post(
        "/api/v1/speech/evaluate", files=wav_upload, data={"target_word": "rural"}
    )

    assert response.status_code == 502
    assert response.json()["errors"][0]["code"] == "PROVIDER_ERROR"


async def test_evaluate_circuit_open(client: AsyncClient, transcriber, wav_upload):
    transcriber.transcribe_audio.side_effect = CircuitBreakerOpen("transcription", 30)

    response = await client.post(
        "/api/v1/speech/evaluate", files=wav_upload, data={"target_word": "rural"}
    )

    assert response.status_code == 503


async def test_evaluate_reports_save_failure(client: AsyncClient, ledger: AttemptLedger, wav_upload):
    ledger.store = InMemoryProgressStore()
    ledger.store.save = AsyncMock(side_effect=ProgressWriteError("disk full"))

    response = await client.post(
        "/api/v1/speech/evaluate", files=wav_upload, data={"target_word": "squirrel"}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["data"]["recorded"] is False
    assert body["data"]["evaluation"]["grade"] == "correct"
    assert "could not be saved" in body["meta"]["warning"]


async def test_analyze_matches_prompt(client: AsyncClient, transcriber, wav_upload):
    transcriber.transcribe_audio.return_value = _heard("Rabbit!")

    response = await client.post(
        "/api/v1/speech/analyze", files=wav_upload, data={"prompt": "Say the word: 'rabbit'"}
    )

    data = response.json()["data"]
    assert data["matches"] is True
    assert data["expected_text"] == "rabbit"
    assert data["transcription"] == "Rabbit!"


async def test_analyze_silence(client: AsyncClient, transcriber, wav_upload):
    transcriber.transcribe_audio.return_value = _heard("", avg_logprob=None)

    response = await client.post("/api/v1/speech/analyze", files=wav_upload)

    data = response.json()["data"]
    assert data["feedback"] == SILENCE_FEEDBACK
    assert data["matches"] is False


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------


async def test_review_queue_flow(client: AsyncClient):
    for _ in range(2):
        await _score(client, "dog", "squirrel")

    queue = (await client.get("/api/v1/progress/review-queue")).json()["data"]
    assert queue == {"words": ["squirrel"], "count": 1}

    removed = await client.delete("/api/v1/progress/words/squirrel/review")
    assert removed.status_code == 200
    assert removed.json()["data"]["progress"]["in_review"] is False

    queue = (await client.get("/api/v1/progress/review-queue")).json()["data"]
    assert queue["count"] == 0


async def test_remove_unknown_word_from_review(client: AsyncClient):
    response = await client.delete("/api/v1/progress/words/rural/review")
    assert response.status_code == 404
    assert response.json()["errors"][0]["code"] == "NOT_FOUND"


async def test_record_client_graded_attempt(client: AsyncClient):
    response = await client.post(
        "/api/v1/progress/words/rural/attempts",
        json={"grade": "near-correct", "similarity_score": 80, "clarity_score": 65},
    )

    data = response.json()["data"]
    assert data["persisted"] is True
    assert data["progress"]["last_grade"] == "near-correct"
    assert data["progress"]["consecutive_correct"] == 1


async def test_recorded_grade_follows_similarity_score(client: AsyncClient, store: InMemoryProgressStore):
    response = await client.post(
        "/api/v1/progress/words/rural/attempts",
        json={"grade": "correct", "similarity_score": 5},
    )

    data = response.json()["data"]
    assert response.status_code == 200
    assert data["progress"]["last_grade"] == "incorrect"
    assert data["progress"]["incorrect_attempts"] == 1
    stored = (await store.load())["rural"]
    assert stored["attemptHistory"][-1]["grade"] == "incorrect"


async def test_score_rejects_empty_target(client: AsyncClient, store: InMemoryProgressStore):
    response = await _score(client, "rural", "")

    assert response.status_code == 422
    assert response.json()["errors"][0]["field"] == "target_word"
    assert await store.load() == {}


async def test_word_stats_and_history(client: AsyncClient):
    await _score(client, "dog", "rural")
    await _score(client, "rural", "rural")

    stats = (await client.get("/api/v1/progress/words/rural")).json()["data"]
    assert stats["progress"]["attempts"] == 2
    assert stats["analytics"]["accuracy_rate"] == 50
    assert stats["trend_label"] == "No Trend"
    assert stats["summary"] == "You're improving with this word! Keep it up."

    history = (await client.get("/api/v1/progress/words/rural/history")).json()["data"]
    assert [a["grade"] for a in history["attempts"]] == ["incorrect", "correct"]


async def test_practice_focus(client: AsyncClient):
    for _ in range(3):
        await _score(client, "dog", "strength")
    await _score(client, "squirel", "squirrel")

    response = await client.get("/api/v1/progress/focus", params={"limit": 1})

    suggestions = response.json()["data"]["suggestions"]
    assert len(suggestions) == 1
    assert suggestions[0]["word"] == "strength"
    assert suggestions[0]["summary"] == "low accuracy and low similarity"


async def test_practice_focus_limit_validated(client: AsyncClient):
    response = await client.get("/api/v1/progress/focus", params={"limit": 0})
    assert response.status_code == 422


async def test_overview(client: AsyncClient):
    await _score(client, "dog", "rural")

    data = (await client.get("/api/v1/progress/overview")).json()["data"]
    assert len(data["recent_attempts"]) == 1
    assert data["most_common_misinterpretation"]["word"] == "rural"
    assert data["clarity_trend"]["trend"] == "insufficient"


async def test_get_and_clear_progress(client: AsyncClient):
    await _score(client, "rural", "rural")
    assert "rural" in (await client.get("/api/v1/progress")).json()["data"]

    cleared = await client.delete("/api/v1/progress")
    assert cleared.json()["data"] == {"cleared": True}
    assert (await client.get("/api/v1/progress")).json()["data"] == {}


# ---------------------------------------------------------------------------
# Words
# ---------------------------------------------------------------------------


async def test_list_words(client: AsyncClient):
    data = (await client.get("/api/v1/words")).json()["data"]
    assert data["count"] == len(settings.word_list)


async def test_next_word_wraps(client: AsyncClient):
    last = len(settings.word_list) - 1
    data = (await client.get("/api/v1/words/next", params={"index": last})).json()["data"]
    assert data == {"word": settings.word_list[0], "index": 0}


async def test_random_word(client: AsyncClient):
    data = (await client.get("/api/v1/words/random")).json()["data"]
    assert data["word"] in settings.word_list


async def test_word_by_index(client: AsyncClient):
    response = await client.get("/api/v1/words/0")
    assert response.json()["data"]["word"] == settings.word_list[0]

    missing = await client.get(f"/api/v1/words/{len(DEFAULT_WORD_LIST) + 50}")
    assert missing.status_code == 404
