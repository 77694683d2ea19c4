"""Evaluation and transcription models."""

from enum import Enum

from pydantic import BaseModel, Field, computed_field


class Grade(str, Enum):
    CORRECT = "correct"
    NEAR_CORRECT = "near-correct"
    INCORRECT = "incorrect"


class TranscriptionMetadata(BaseModel):
    """Confidence metadata returned by the provider in verbose_json mode."""

    avg_logprob: float | None = None
    language: str | None = None
    duration: float | None = None
    compression_ratio: float | None = None
    no_speech_prob: float | None = None
    segments: list[dict] = []


class TranscriptionResponse(BaseModel):
    """Provider transcription plus optional metadata."""

    transcript: str
    model: str | None = None
    metadata: TranscriptionMetadata | None = None


class EvaluationResult(BaseModel):
    """Outcome of comparing one transcription against its target word.

    ``is_correct`` is derived from ``grade`` and kept for consumers that only
    understand a pass/fail flag.
    """

    grade: Grade
    similarity_score: int = Field(ge=0, le=100)
    clarity_score: int | None = Field(default=None, ge=0, le=100)
    transcription: str = ""
    expected: str = ""
    top_alternative: str | None = None
    feedback: str = ""

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_correct(self) -> bool:
        return self.grade == Grade.CORRECT


class ScoreRequest(BaseModel):
    """Evaluate an already-transcribed utterance."""

    transcription: str = ""
    target_word: str = Field(min_length=1)
    avg_logprob: float | None = None


class AnalyzeResponse(BaseModel):
    """Lenient transcription check for prompt-style exercises."""

    transcription: str
    feedback: str
    matches: bool | None
    expected_text: str | None
    metadata: TranscriptionMetadata | None = None
