"""Quorum policy: how many signatures a voter set needs.

The policy is ``ceil(voters * ratio)`` with a default ratio of one half, so a
four-member team is satisfied by two signatures. Ties count as approval; this
is not a strict "more than half" rule.
"""

from __future__ import annotations

import math
from fractions import Fraction

DEFAULT_RATIO = 0.5


def required_count(voter_set_size: int, ratio: float = DEFAULT_RATIO) -> int:
    """Return the number of signatures needed for ``voter_set_size`` voters.

    Raises:
        ValueError: If the size is negative or the ratio is outside ``(0, 1]``.
    """

    if voter_set_size < 0:
        raise ValueError("Voter set size cannot be negative")
    if not 0 < ratio <= 1:
        raise ValueError("Quorum ratio must be in (0, 1]")
    # Fraction keeps ceil exact for ratios like 0.1 that floats cannot represent.
    return math.ceil(voter_set_size * Fraction(str(ratio)))


def is_approved(
    signature_count: int, voter_set_size: int, ratio: float = DEFAULT_RATIO
) -> bool:
    """Return ``True`` when ``signature_count`` meets the required count."""

    return signature_count >= required_count(voter_set_size, ratio)
