"""Text normalization and similarity scoring between a transcription and its target.

The transcription provider returns free text ("Strength.", "  the squirrel ")
so both sides are canonicalised before comparing. The score is an
edit-distance ratio with a bonus when one string embeds the other, which
rewards answers wrapped in filler words.
"""

import re

from speakquest.utils.rounding import round_half_up

# ASCII word characters only, so accented letters are dropped like punctuation
_NON_WORD_RE = re.compile(r"[^\w\s]", re.ASCII)
_WHITESPACE_RE = re.compile(r"\s+")

CONTAINMENT_BONUS = 10


def normalize_text(text: str | None) -> str:
    """Lower-case, strip punctuation, collapse whitespace and trim."""
    if not text:
        return ""
    text = text.lower()
    text = _NON_WORD_RE.sub("", text)
    text = _WHITESPACE_RE.sub(" ", text)
    return text.strip()


def levenshtein_distance(a: str, b: str) -> int:
    """Classic edit distance with unit cost substitution, insertion and deletion."""
    if not a:
        return len(b)
    if not b:
        return len(a)

    # Single rolling row over the shorter string
    if len(a) < len(b):
        a, b = b, a

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i] + [0] * len(b)
        for j, cb in enumerate(b, start=1):
            if ca == cb:
                current[j] = previous[j - 1]
            else:
                current[j] = min(
                    previous[j - 1] + 1,  # substitution
                    current[j - 1] + 1,   # insertion
                    previous[j] + 1,      # deletion
                )
        previous = current
    return previous[-1]


def compute_similarity_score(transcription: str | None, target: str | None) -> int:
    """Score how close a transcription is to the target, from 0 to 100.

    Args:
        transcription: Raw text returned by the transcription provider
        target: The word or phrase the user was asked to say

    Returns:
        Integer similarity score. 0 when either input is missing, 100 when the
        normalized strings are equal.
    """
    if not transcription or not target:
        return 0

    normalized_trans = normalize_text(transcription)
    normalized_target = normalize_text(target)

    if normalized_trans == normalized_target:
        return 100

    distance = levenshtein_distance(normalized_trans, normalized_target)
    max_length = max(len(normalized_trans), len(normalized_target))
    if max_length == 0:
        return 100

    similarity = (max_length - distance) / max_length * 100

    if normalized_target in normalized_trans or normalized_trans in normalized_target:
        similarity = min(100.0, similarity + CONTAINMENT_BONUS)

    return max(0, round_half_up(similarity))


def is_close_match(transcription: str | None, target: str | None) -> bool:
    """True when the transcription lands in the near-correct band (70-89)."""
    score = compute_similarity_score(transcription, target)
    return 70 <= score < 90
