"""Random draws for combat. Every draw goes through an injected source.

Only ``random()`` is required of the source, so ``random.Random(seed)`` works
as well as a scripted sequence in tests.
"""
from __future__ import annotations

import math
from typing import Protocol


class RandomSource(Protocol):
    def random(self) -> float: ...


def roll_unit(rng: RandomSource) -> float:
    """A uniform float in [0, 1). Out-of-range values from custom sources are clamped."""
    value = rng.random()
    if not math.isfinite(value):
        return 0.0
    return min(max(value, 0.0), 0.999999999)


def roll_between(low: int, high: int, rng: RandomSource) -> int:
    """Uniform integer in [low, high]. Swapped bounds are tolerated."""
    if high < low:
        low, high = high, low
    return math.floor(roll_unit(rng) * (high - low + 1)) + low


def roll_chance(chance: float, rng: RandomSource) -> tuple[bool, float]:
    """Bernoulli trial. Returns (success, roll) so the roll can be logged."""
    roll = roll_unit(rng)
    return roll < chance, roll
