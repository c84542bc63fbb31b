"""Post-combat penalties for fleeing or being knocked out. Pure calculations, no I/O."""
from __future__ import annotations

import math

from adventure_engine.models.rewards import FleeOutcome, FleePenalty
from adventure_engine.rules import FleeRules
from adventure_engine.utils import clamp, finite_or


def defeat_escape_chance(evasion: float, rules: FleeRules) -> float:
    """Chance that a defeated combatant still crawls away before the final blow."""
    chance = rules.base_flee_chance + max(0.0, finite_or(evasion, 0)) * rules.flee_chance_per_evasion
    return clamp(chance, rules.min_flee_chance, rules.max_flee_chance)


def determine_escape(roll: float, flee_chance: float, rules: FleeRules) -> FleeOutcome:
    """Grade a flee roll.

    Rolls at or above the flee chance fail outright. Successful rolls are
    normalised against the chance: the top band escapes cleanly, the rest
    get away wounded.
    """
    if flee_chance <= 0 or roll >= flee_chance:
        return FleeOutcome.KNOCKOUT
    if roll / flee_chance >= rules.high_success_threshold:
        return FleeOutcome.CLEAN_ESCAPE
    return FleeOutcome.WOUNDED_ESCAPE


def calculate_penalty(
    outcome: FleeOutcome,
    current_hp: int,
    max_hp: int,
    current_gold: int,
    rules: FleeRules,
) -> FleePenalty:
    """HP left and gold lost after an escape or a knockout.

    Escaping never restores HP: the remaining HP is capped at what the
    combatant had when the fight ended.
    """
    recovery_cost: int | None = None
    if outcome is FleeOutcome.CLEAN_ESCAPE:
        remaining = max(1, math.floor(max_hp * rules.high_success_hp_percent))
        remaining = max(1, min(current_hp, remaining))
        gold_loss = rules.gold_loss_minor
    elif outcome is FleeOutcome.WOUNDED_ESCAPE:
        remaining = max(1, min(current_hp, rules.partial_success_hp))
        gold_loss = rules.gold_loss_moderate
    else:
        remaining = 0
        gold_loss = rules.gold_loss_severe
        # One turn per point of max HP to recover
        recovery_cost = max_hp

    return FleePenalty(
        outcome=outcome,
        remaining_hp=remaining,
        gold_lost=math.floor(max(0, current_gold) * gold_loss),
        recovery_cost=recovery_cost,
    )
