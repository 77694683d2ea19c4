"""Prompt parsing, lenient matching and feedback wording.

Message selection takes an optional ``random.Random`` so callers (and tests)
can make the choice reproducible.
"""

import math
import random
import re
from enum import Enum

from speakquest.core.similarity import normalize_text
from speakquest.models.evaluation import Grade

_QUOTED_RE = re.compile(r"""['"]([^'"]+)['"]""")
_AFTER_COLON_RE = re.compile(r":\s*(.+)$")

KEY_WORD_MIN_LENGTH = 3
KEY_WORD_MATCH_RATIO = 0.8

_POSITIVE_FEEDBACK = [
    "Great job! You said that perfectly!",
    "Excellent! Your pronunciation is spot on!",
    "Perfect! You got it right!",
    "Wonderful! You said it correctly!",
    "Amazing! That was exactly right!",
]

_ENCOURAGING_FEEDBACK = [
    "Good try!{expected} Let's try again!",
    "Not quite right.{expected} Keep practicing!",
    "Close! But the word was different.{expected} You can do it!",
    "Almost there! The word didn't quite match.{expected} Try again!",
]

NEUTRAL_FEEDBACK = "Good try! Keep practicing!"
SILENCE_FEEDBACK = "I couldn't hear anything. Please try speaking louder!"


def extract_expected_text(prompt: str | None) -> str | None:
    """Pull the target out of prompts like ``Say the word: 'Rabbit'``.

    Quoted text wins; otherwise whatever follows the first colon.
    """
    if not prompt:
        return None
    match = _QUOTED_RE.search(prompt)
    if match:
        return match.group(1).strip()
    match = _AFTER_COLON_RE.search(prompt)
    if match:
        return match.group(1).strip()
    return None


def matches_expected(transcription: str | None, expected: str | None) -> bool:
    """Lenient yes/no match used for free-form prompts and sentences."""
    if not transcription or not expected:
        return False

    heard = normalize_text(transcription)
    target = normalize_text(expected)

    if heard == target:
        return True
    if target in heard or heard in target:
        return True

    target_words = target.split()
    heard_words = heard.split()

    if len(target_words) == 1:
        return target_words[0] in heard_words

    key_words = [w for w in target_words if len(w) >= KEY_WORD_MIN_LENGTH]
    found = [
        w for w in key_words
        if any(h == w or w in h or h in w for h in heard_words)
    ]
    return len(found) >= math.ceil(len(key_words) * KEY_WORD_MATCH_RATIO)


def generate_feedback(
    matches: bool | None,
    expected: str | None = None,
    rng: random.Random | None = None,
) -> str:
    """Pick an encouragement line for a match result (None means unknown)."""
    if matches is None:
        return NEUTRAL_FEEDBACK

    rng = rng or random.Random()
    if matches:
        return rng.choice(_POSITIVE_FEEDBACK)

    expected_msg = f' The expected word was "{expected}".' if expected else ""
    return rng.choice(_ENCOURAGING_FEEDBACK).format(expected=expected_msg)


class CoachingMode(str, Enum):
    SUPPORTIVE = "supportive"
    ANALYTICAL = "analytical"
    MINIMAL = "minimal"


def coaching_feedback(
    mode: CoachingMode,
    grade: Grade,
    clarity_score: int | None,
    similarity_score: int,
) -> dict[str, str | None]:
    """Headline, clarity and similarity sentences in the chosen coaching style."""
    clarity_text = "N/A" if clarity_score is None else str(clarity_score)

    if mode == CoachingMode.ANALYTICAL:
        headlines = {
            Grade.CORRECT: (
                f"Grade: Correct | Clarity: {clarity_text}% | Similarity: {similarity_score}%"
            ),
            Grade.NEAR_CORRECT: (
                f"Grade: Near-Correct | Clarity: {clarity_text}% | "
                f"Similarity: {similarity_score}% | Deviation: {100 - similarity_score}%"
            ),
            Grade.INCORRECT: (
                f"Grade: Incorrect | Clarity: {clarity_text}% | "
                f"Similarity: {similarity_score}% | Required: 90%+"
            ),
        }
        clarity = (
            None if clarity_score is None
            else f"Clarity Score: {clarity_score}% (Threshold: 70% for optimal recognition)"
        )
        similarity = f"Similarity Score: {similarity_score}% (Target: 90%+)"

    elif mode == CoachingMode.MINIMAL:
        headlines = {Grade.CORRECT: "✓", Grade.NEAR_CORRECT: "≈", Grade.INCORRECT: "✗"}
        clarity = None if clarity_score is None else f"{clarity_score}%"
        similarity = f"{similarity_score}%"

    else:
        headlines = {
            Grade.CORRECT: "Excellent! Your pronunciation was clear and accurate.",
            Grade.NEAR_CORRECT: (
                "Great progress! You're very close, just a small adjustment needed."
            ),
            Grade.INCORRECT: "No worries! Every attempt helps you improve. Let's try again.",
        }
        clarity = None if clarity_score is None else _supportive_clarity(clarity_score)
        if similarity_score >= 90:
            similarity = "Your pronunciation matches perfectly!"
        elif similarity_score >= 70:
            similarity = "You're getting closer to the target pronunciation!"
        else:
            similarity = "Focus on the key sounds in this word."

    return {"headline": headlines[grade], "clarity": clarity, "similarity": similarity}


def _supportive_clarity(score: int) -> str:
    if score >= 70:
        return "Your speech clarity is strong!"
    if score >= 50:
        return "Your clarity is improving. Keep practicing!"
    return "Try speaking a bit louder or closer to the microphone."
