"""Numeric helpers for percentages displayed to users."""

from __future__ import annotations

import math


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (2.5 -> 3, not 2)."""
    return int(math.floor(value + 0.5))


def percentage(part: float, whole: float) -> int:
    """Return ``part / whole`` as a rounded percentage, or 0 when ``whole`` is 0."""
    if not whole:
        return 0
    return round_half_up(part / whole * 100)
