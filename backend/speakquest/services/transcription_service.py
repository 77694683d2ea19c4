"""
Client for an OpenAI-compatible speech-to-text API.

Models are tried in order with ``verbose_json`` so segment log-probabilities
come back for the clarity score. If all of them fail, one last plain-text
request is made without metadata. The evaluation core never retries; network
retries and the circuit breaker live here.
"""

import logging

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from speakquest.config import Settings, settings
from speakquest.core.circuit_breaker import CircuitBreaker
from speakquest.core.exceptions import TranscriptionError
from speakquest.models.evaluation import TranscriptionMetadata, TranscriptionResponse

logger = logging.getLogger(__name__)

_LOCALHOST_PREFIXES = ("http://localhost", "http://127.0.0.1", "http://0.0.0.0")

_MIME_TYPES = {
    "webm": "audio/webm",
    "opus": "audio/opus",
    "ogg": "audio/ogg",
    "mp3": "audio/mpeg",
    "mp4": "audio/mp4",
    "m4a": "audio/mp4",
    "wav": "audio/wav",
    "flac": "audio/flac",
}


class TranscriptionService:
    """Transcribes recordings and extracts confidence metadata."""

    def __init__(self, config: Settings = settings, breaker: CircuitBreaker | None = None) -> None:
        self.base_url = config.transcription_url.rstrip("/")
        self.api_key = config.openai_api_key or None
        self.models = list(config.transcription_models)
        self.fallback_model = config.transcription_fallback_model
        self.timeout = config.transcription_timeout_seconds
        self.breaker = breaker or CircuitBreaker(
            "transcription",
            failure_threshold=config.circuit_breaker_failure_threshold,
            cooldown_seconds=config.circuit_breaker_cooldown_seconds,
        )

        # Local whisper servers don't need auth
        self._needs_auth = not self.base_url.startswith(_LOCALHOST_PREFIXES)

        if self._needs_auth and not self.api_key:
            logger.warning("Transcription URL is remote but no API key is configured")

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key) or not self._needs_auth

    async def transcribe_audio(
        self,
        audio: bytes,
        filename: str,
        prompt: str | None = None,
    ) -> TranscriptionResponse:
        """
        Transcribe a recording.

        Args:
            audio: Raw audio bytes
            filename: Original filename (used to determine content type)
            prompt: Optional context prompt passed to the model

        Returns:
            TranscriptionResponse; ``metadata`` is None when only the
            plain-text fallback succeeded

        Raises:
            TranscriptionError: If every model and the text fallback failed
            CircuitBreakerOpen: If the provider has been failing and is cooling down
        """
        return await self.breaker.call(
            lambda: self._transcribe_with_fallback(audio, filename, prompt)
        )

    async def _transcribe_with_fallback(
        self, audio: bytes, filename: str, prompt: str | None
    ) -> TranscriptionResponse:
        for model in self.models:
            try:
                return await self._call_api(audio, filename, model, "verbose_json", prompt)
            except (httpx.HTTPError, ValueError) as e:
                logger.info("Transcription with %s failed, trying next option: %s", model, e)

        try:
            return await self._call_api(audio, filename, self.fallback_model, "text", prompt)
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Transcription failed after all fallbacks: {e}")
            raise TranscriptionError(f"Transcription failed: {e}") from e

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(min=1, max=10),
        retry=retry_if_exception_type((httpx.ConnectError, httpx.TimeoutException)),
        reraise=True,
    )
    async def _call_api(
        self,
        audio: bytes,
        filename: str,
        model: str,
        response_format: str,
        prompt: str | None,
    ) -> TranscriptionResponse:
        files = {"file": (filename, audio, self._get_content_type(filename))}
        data = {"model": model, "response_format": response_format}
        if prompt:
            data["prompt"] = prompt

        headers: dict[str, str] = {}
        if self._needs_auth and self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout, connect=5.0)
        ) as client:
            response = await client.post(
                f"{self.base_url}/audio/transcriptions",
                files=files,
                data=data,
                headers=headers,
            )
            response.raise_for_status()

            if response_format == "text":
                return TranscriptionResponse(transcript=response.text.strip(), model=model)

            result = response.json()
            if isinstance(result, str):
                return TranscriptionResponse(transcript=result.strip(), model=model)
            return TranscriptionResponse(
                transcript=(result.get("text") or "").strip(),
                model=model,
                metadata=parse_verbose_metadata(result),
            )

    def _get_content_type(self, filename: str) -> str:
        """Map filename extension to MIME type."""
        ext = filename.lower().rsplit(".", 1)[-1]
        return _MIME_TYPES.get(ext, "audio/webm")


def parse_verbose_metadata(result: dict) -> TranscriptionMetadata:
    """Summarise a verbose_json payload.

    ``avg_logprob`` is the mean of the segment values (a segment without one
    counts as 0). Compression ratio and no-speech probability use the
    top-level value when present, else the worst segment.
    """
    segments = [s for s in result.get("segments") or [] if isinstance(s, dict)]

    avg_logprob = None
    if segments:
        avg_logprob = sum(s.get("avg_logprob") or 0 for s in segments) / len(segments)

    return TranscriptionMetadata(
        avg_logprob=avg_logprob,
        language=result.get("language"),
        duration=result.get("duration"),
        compression_ratio=_top_level_or_max(result, segments, "compression_ratio"),
        no_speech_prob=_top_level_or_max(result, segments, "no_speech_prob"),
        segments=segments,
    )


def _top_level_or_max(result: dict, segments: list[dict], key: str) -> float | None:
    if result.get(key) is not None:
        return result[key]
    values = [s[key] for s in segments if isinstance(s.get(key), (int, float))]
    return max(values) if values else None


# Singleton instance
transcription_service = TranscriptionService()
