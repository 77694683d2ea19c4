"""Application configuration."""

from pydantic import model_validator
from pydantic_settings import BaseSettings

_PROGRESS_BACKENDS = {"memory", "file", "redis"}

DEFAULT_WORD_LIST = [
    "market",
    "project",
    "concept",
    "different",
    "system",
    "analysis",
    "strategy",
    "colleague",
    "algorithm",
    "specific",
    "thrilled",
    "strength",
    "squirrel",
    "rural",
    "entrepreneur",
    "rice",
    "right",
    "ship",
    "Krish",
    "Kamala",
]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Development mode: exposes docs and detailed error messages
    dev_mode: bool = True

    # CORS
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "https://localhost:3000",
    ]

    # Transcription provider (OpenAI-compatible API)
    openai_api_key: str = ""
    transcription_url: str = "https://api.openai.com/v1"
    transcription_models: list[str] = ["gpt-4o-transcribe", "whisper-1"]
    transcription_fallback_model: str = "whisper-1"
    transcription_timeout_seconds: float = 60.0

    # Circuit Breaker (for the transcription provider)
    circuit_breaker_failure_threshold: int = 3
    circuit_breaker_cooldown_seconds: int = 60

    # Rate Limiting
    rate_limit_voice: int = 20  # per client per minute

    # File uploads
    max_upload_size_mb: int = 25

    # Progress storage
    progress_backend: str = "file"
    progress_file: str = "storage/progress.json"
    progress_key: str = "speakbetter_progress"
    redis_url: str = "redis://localhost:6379/0"

    # Practice words (matched case-sensitively)
    word_list: list[str] = DEFAULT_WORD_LIST

    # Review queue
    review_threshold: int = 2  # mistakes before a word enters review
    mastery_threshold: int = 2  # consecutive passes before it leaves
    history_limit: int = 20
    score_buffer_limit: int = 10

    # Logging
    log_level: str = "info"

    @model_validator(mode="after")
    def _validate_progress(self) -> "Settings":
        if self.progress_backend not in _PROGRESS_BACKENDS:
            raise ValueError(
                f"PROGRESS_BACKEND must be one of {sorted(_PROGRESS_BACKENDS)}"
            )
        if self.review_threshold < 1 or self.mastery_threshold < 1:
            raise ValueError("REVIEW_THRESHOLD and MASTERY_THRESHOLD must be positive")
        if self.history_limit < 1 or self.score_buffer_limit < 1:
            raise ValueError("HISTORY_LIMIT and SCORE_BUFFER_LIMIT must be positive")
        return self

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
