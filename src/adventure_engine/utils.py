"""Shared numeric helpers for the combat engine."""
from __future__ import annotations

import math


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def finite_or(value, fallback: float) -> float:
    """Return value if it is a finite number, otherwise fallback.

    Handles the common pattern where stats arrive from JSON columns as None,
    NaN or infinities and must not leak into a formula.
    """
    if value is None:
        return fallback
    try:
        number = float(value)
    except (TypeError, ValueError):
        return fallback
    if not math.isfinite(number):
        return fallback
    return number
