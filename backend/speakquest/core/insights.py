"""Human-readable explanations of how an attempt was heard and graded."""

from collections.abc import Sequence

from speakquest.core.similarity import normalize_text
from speakquest.models.evaluation import EvaluationResult, Grade, TranscriptionMetadata
from speakquest.models.progress import Attempt

MAX_INSIGHTS = 3


def generate_insights(
    result: EvaluationResult,
    attempt_history: Sequence[Attempt] = (),
    metadata: TranscriptionMetadata | None = None,
) -> list[str]:
    """Explain an evaluation using its scores, provider metadata and recent history.

    Args:
        result: The evaluation being explained
        attempt_history: The word's history, including this attempt as the last item
        metadata: Provider metadata for this attempt, if any

    Returns:
        Up to three distinct insight sentences, most relevant first
    """
    insights: list[str] = []
    clarity = result.clarity_score
    similarity = result.similarity_score

    if clarity is not None:
        if clarity < 50:
            insights.append("Your audio was unclear; try speaking louder or closer to the mic.")
        elif clarity < 70 and similarity >= 70:
            insights.append(
                "Your pronunciation was close, but the audio clarity was low. "
                "Try speaking more clearly or reducing background noise."
            )

    if 70 <= similarity < 90:
        heard = normalize_text(result.transcription)
        expected = normalize_text(result.expected)
        if len(heard) < len(expected) - 2:
            insights.append(
                "The final part of the word was unclear, so the transcriber heard a shorter version."
            )
        elif len(heard) > len(expected) + 2:
            insights.append("The transcriber heard extra sounds. Try pronouncing the word more precisely.")
        else:
            insights.append("Close! The pronunciation was similar but not quite exact. Keep practicing!")
    elif similarity < 70:
        insights.append(
            "The transcriber heard something different from the expected word. "
            "Try focusing on the key sounds."
        )

    if similarity >= 90 and clarity is not None and clarity < 70:
        insights.append(
            "Your pronunciation was correct, but the audio quality was low. "
            "Try speaking closer to the microphone."
        )

    if metadata is not None:
        if metadata.no_speech_prob is not None and metadata.no_speech_prob > 0.3:
            insights.append(
                "The transcriber detected unclear speech. "
                "Make sure you're speaking clearly into the microphone."
            )
        if metadata.compression_ratio is not None and metadata.compression_ratio > 2.5:
            insights.append(
                "Background noise may have affected the recording. Try a quieter environment."
            )

    if len(attempt_history) >= 3:
        insights.extend(_history_insights(attempt_history[-3:]))

    if result.grade == Grade.CORRECT:
        if len(attempt_history) > 1 and attempt_history[-2].grade != Grade.CORRECT:
            insights.append("Great improvement! You got it right this time.")
    elif result.grade == Grade.NEAR_CORRECT:
        insights.append("You're very close! Small adjustments will get you there.")

    # dict.fromkeys keeps first-seen order
    return list(dict.fromkeys(insights))[:MAX_INSIGHTS]


def _history_insights(recent: Sequence[Attempt]) -> list[str]:
    insights = []
    clarity = [a.clarity_score for a in recent if a.clarity_score is not None]
    similarity = [a.similarity_score for a in recent if a.similarity_score is not None]

    if len(clarity) >= 2 and clarity[-1] - clarity[0] < -10:
        insights.append(
            "Your audio clarity has been decreasing. Check your microphone or speaking distance."
        )

    if sum(1 for s in similarity if s < 70) >= 2:
        insights.append(
            "You've had difficulty with this word recently. Try breaking it down into syllables."
        )

    if sum(1 for c in clarity if c < 50) >= 2:
        insights.append(
            "Your audio has been consistently unclear. "
            "Try adjusting your microphone or speaking environment."
        )
    return insights


def generate_word_summary_insight(attempt_history: Sequence[Attempt]) -> str | None:
    """One-line summary of how a word is going overall."""
    if not attempt_history:
        return None

    total = len(attempt_history)
    accuracy = sum(1 for a in attempt_history if a.grade == Grade.CORRECT) / total * 100
    recent = [a.grade for a in attempt_history[-3:]]

    if total >= 3 and all(g == Grade.CORRECT for g in recent):
        return "You've mastered this word! Great consistency."
    if recent[-1] == Grade.CORRECT and recent[0] != Grade.CORRECT:
        return "You're improving with this word! Keep it up."
    if accuracy < 30:
        return "This word is challenging. Focus on the key sounds."
    if accuracy < 60:
        return "You're making progress. A bit more practice will help."
    return None
