"""Tests for the review queue state machine."""

from functools import reduce

from speakquest.core.review_scheduler import ReviewState, apply_grade, describe_transition
from speakquest.models.evaluation import Grade

C, N, I = Grade.CORRECT, Grade.NEAR_CORRECT, Grade.INCORRECT


def _run(*grades: Grade, start: ReviewState | None = None) -> ReviewState:
    return reduce(apply_grade, grades, start or ReviewState())


def test_initial_state():
    state = ReviewState()
    assert state.incorrect_attempts == 0
    assert state.consecutive_correct == 0
    assert state.in_review is False


def test_single_mistake_does_not_enter_review():
    state = _run(I)
    assert state.incorrect_attempts == 1
    assert state.in_review is False


def test_second_mistake_enters_review():
    state = _run(I, I)
    assert state.incorrect_attempts == 2
    assert state.in_review is True


def test_mistakes_need_not_be_consecutive():
    assert _run(I, C, I).in_review is True


def test_incorrect_resets_streak():
    state = _run(C, C, I)
    assert state.consecutive_correct == 0


def test_two_correct_clear_review():
    state = _run(I, I, C, C)
    assert state.in_review is False
    assert state.consecutive_correct == 2
    # Mistake count is lifetime, not reset by mastery
    assert state.incorrect_attempts == 2


def test_one_correct_is_not_enough():
    assert _run(I, I, C).in_review is True


def test_near_correct_then_correct_clears_review():
    state = _run(I, I, N, C)
    assert state.in_review is False


def test_correct_then_near_correct_stays_in_review():
    state = _run(I, I, C, N)
    assert state.consecutive_correct == 2
    assert state.in_review is True


def test_near_correct_alone_never_clears():
    state = _run(I, I, N, N, N, N)
    assert state.consecutive_correct == 4
    assert state.in_review is True


def test_stays_in_review_after_further_mistakes():
    assert _run(I, I, I).in_review is True


def test_re_entering_review_after_mastery():
    state = _run(I, I, C, C, I)
    # Lifetime count is already past the threshold
    assert state.incorrect_attempts == 3
    assert state.in_review is True


def test_custom_thresholds():
    state = ReviewState()
    state = apply_grade(state, I, review_threshold=1)
    assert state.in_review is True
    for _ in range(2):
        state = apply_grade(state, C, mastery_threshold=3)
    assert state.in_review is True
    state = apply_grade(state, C, mastery_threshold=3)
    assert state.in_review is False


def test_state_is_not_mutated():
    before = ReviewState()
    apply_grade(before, I)
    assert before == ReviewState()


class TestDescribeTransition:
    def test_entered_review(self):
        assert describe_transition(_run(I), _run(I, I)) == "entered_review"

    def test_mastered(self):
        assert describe_transition(_run(I, I, C), _run(I, I, C, C)) == "mastered"

    def test_no_change(self):
        assert describe_transition(ReviewState(), _run(C)) is None


def test_correct_near_incorrect_resets_streak_in_review():
    state = _run(I, I, C, N, I)
    assert state.consecutive_correct == 0
    assert state.in_review is True
