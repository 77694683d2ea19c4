"""Grading policy and clarity estimation.

The grade is a function of the similarity score alone. Clarity comes from the
provider's confidence and is shown to the user, but a noisy microphone must
never turn a correct pronunciation into a mistake, so it stays out of grading.
"""

from speakquest.core.similarity import compute_similarity_score, normalize_text
from speakquest.models.evaluation import EvaluationResult, Grade, TranscriptionMetadata
from speakquest.utils.rounding import round_half_up

CORRECT_THRESHOLD = 90
NEAR_CORRECT_THRESHOLD = 70

_GRADE_FEEDBACK = {
    Grade.CORRECT: "Excellent pronunciation!",
    Grade.NEAR_CORRECT: "Close! Keep practicing to perfect it.",
    Grade.INCORRECT: "Not quite right. Try again!",
}


def determine_grade(similarity_score: int) -> Grade:
    """Map a 0-100 similarity score to a grade."""
    if similarity_score >= CORRECT_THRESHOLD:
        return Grade.CORRECT
    if similarity_score >= NEAR_CORRECT_THRESHOLD:
        return Grade.NEAR_CORRECT
    return Grade.INCORRECT


def compute_clarity_score(avg_logprob: float | None) -> int | None:
    """Map the provider's average log-probability to a 0-100 clarity score.

    Log-probabilities sit roughly in [-1, 0]; -0.1 or better maps to 100 and
    -1.0 to 0. Returns None when the provider gave no confidence data, which
    is not the same as a clarity of 0.
    """
    if avg_logprob is None:
        return None
    clamped = max(-1.0, min(0.0, avg_logprob))
    normalized = max(0.0, min(1.0, (clamped + 1) / 0.9))
    return round_half_up(normalized * 100)


def evaluate_transcription(
    transcription: str | None,
    target: str,
    metadata: TranscriptionMetadata | None = None,
) -> EvaluationResult:
    """Grade a transcription against the target word."""
    transcription = (transcription or "").strip()
    similarity_score = compute_similarity_score(transcription, target)
    grade = determine_grade(similarity_score)
    clarity_score = compute_clarity_score(metadata.avg_logprob if metadata else None)

    # Only surface what was heard when it is genuinely a different word
    top_alternative = None
    if (
        transcription
        and similarity_score < CORRECT_THRESHOLD
        and normalize_text(transcription) != normalize_text(target)
    ):
        top_alternative = transcription

    return EvaluationResult(
        grade=grade,
        similarity_score=similarity_score,
        clarity_score=clarity_score,
        transcription=transcription,
        expected=target,
        top_alternative=top_alternative,
        feedback=_GRADE_FEEDBACK[grade],
    )
