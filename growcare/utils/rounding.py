"""Rounding helpers shared by the frequency and lead-time math."""

from __future__ import annotations

import math


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from negative infinity (2.5 -> 3, -4.5 -> -4)."""
    return math.floor(value + 0.5)
