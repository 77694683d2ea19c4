"""Shared test fixtures for SpeakQuest backend tests."""

import math
import struct
import wave
from datetime import UTC, datetime, timedelta

import pytest

from speakquest.core.attempt_ledger import AttemptLedger
from speakquest.middleware.rate_limiter import limiter
from speakquest.services.progress_store import InMemoryProgressStore

WORDS = ["squirrel", "strength", "rural", "Krish"]

T0 = datetime(2025, 3, 1, 12, 0, tzinfo=UTC)


class StepClock:
    """Deterministic clock that advances one minute per reading."""

    def __init__(self, start: datetime = T0, step: timedelta = timedelta(minutes=1)):
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now += self.step
        return current


@pytest.fixture(autouse=True)
def _disable_rate_limits():
    limiter.enabled = False
    yield
    limiter.enabled = True


@pytest.fixture
def store() -> InMemoryProgressStore:
    return InMemoryProgressStore()


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def ledger(store: InMemoryProgressStore, clock: StepClock) -> AttemptLedger:
    return AttemptLedger(store, word_list=WORDS, clock=clock)


@pytest.fixture
def wav_fixture(tmp_path):
    """Generate a minimal valid WAV file (100ms of 440Hz sine, 16kHz mono)."""
    filepath = tmp_path / "test_audio_short.wav"
    sample_rate = 16000
    duration = 0.1  # 100ms
    n_samples = int(sample_rate * duration)

    with wave.open(str(filepath), "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)  # 16-bit
        wf.setframerate(sample_rate)
        for i in range(n_samples):
            sample = int(32767 * math.sin(2 * math.pi * 440 * i / sample_rate))
            wf.writeframes(struct.pack("<h", sample))

    return filepath


@pytest.fixture
def webm_fixture(tmp_path):
    """Create a minimal file with WebM magic bytes (EBML header)."""
    filepath = tmp_path / "test_audio.webm"
    # WebM files start with the EBML magic bytes: 0x1A45DFA3
    webm_header = b"\x1a\x45\xdf\xa3" + b"\x00" * 96
    filepath.write_bytes(webm_header)
    return filepath
