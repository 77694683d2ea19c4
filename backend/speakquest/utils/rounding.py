"""Rounding helper shared by the scoring and analytics modules."""

import math


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going towards +infinity.

    Python's built-in ``round`` uses banker's rounding (``round(87.5) == 88``
    but ``round(88.5) == 88``). Scores are stored as integers and must not
    depend on the parity of the neighbouring value, so ``x.5`` always goes up:
    ``88.5 -> 89`` and ``-2.5 -> -2``.
    """
    return int(math.floor(value + 0.5))
