"""Practice word list navigation.

Words are identified by their exact spelling in the configured list;
"Krish" and "krish" are different entries.
"""

import random
from collections.abc import Sequence


def get_next_word(word_list: Sequence[str], current_index: int = -1) -> tuple[str, int]:
    """Return the word after ``current_index`` and its index, wrapping around."""
    if not word_list:
        raise ValueError("word list is empty")
    next_index = (current_index + 1) % len(word_list)
    return word_list[next_index], next_index


def get_word_by_index(word_list: Sequence[str], index: int) -> str | None:
    if 0 <= index < len(word_list):
        return word_list[index]
    return None


def get_random_word(word_list: Sequence[str], rng: random.Random | None = None) -> str:
    if not word_list:
        raise ValueError("word list is empty")
    return (rng or random.Random()).choice(list(word_list))
