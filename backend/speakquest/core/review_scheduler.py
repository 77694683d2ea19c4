"""Review queue state machine.

Each word carries three values: how many attempts were graded incorrect,
the current run of passing attempts, and whether the word sits in the review
queue.

  incorrect     -> mistakes += 1, streak = 0, enter review once
                   mistakes >= review_threshold
  near-correct  -> streak += 1 (never leaves review by itself)
  correct       -> streak += 1, leave review once streak >= mastery_threshold

A near-correct attempt still counts towards the streak, so "near-correct then
correct" clears review while "correct then near-correct" does not: only a
correct attempt can perform the clearing.
"""

from dataclasses import dataclass, replace

from speakquest.models.evaluation import Grade

REVIEW_THRESHOLD = 2
MASTERY_THRESHOLD = 2


@dataclass(frozen=True)
class ReviewState:
    incorrect_attempts: int = 0
    consecutive_correct: int = 0
    in_review: bool = False


def apply_grade(
    state: ReviewState,
    grade: Grade,
    review_threshold: int = REVIEW_THRESHOLD,
    mastery_threshold: int = MASTERY_THRESHOLD,
) -> ReviewState:
    """Return the state after one more attempt graded ``grade``."""
    if grade == Grade.INCORRECT:
        incorrect = state.incorrect_attempts + 1
        return ReviewState(
            incorrect_attempts=incorrect,
            consecutive_correct=0,
            in_review=state.in_review or incorrect >= review_threshold,
        )

    streak = state.consecutive_correct + 1
    in_review = state.in_review
    if in_review and grade == Grade.CORRECT and streak >= mastery_threshold:
        in_review = False
    return replace(state, consecutive_correct=streak, in_review=in_review)


def describe_transition(before: ReviewState, after: ReviewState) -> str | None:
    """Name the review-queue change between two states, if any."""
    if not before.in_review and after.in_review:
        return "entered_review"
    if before.in_review and not after.in_review:
        return "mastered"
    return None
