"""Combat math. Pure functions, no I/O, no randomness."""
from __future__ import annotations

import math
from typing import TypeVar

from adventure_engine.rules import CombatRules, FleeRules
from adventure_engine.utils import clamp, finite_or

T = TypeVar("T")


def hit_chance(accuracy: float, target_dodge: float, target_evasion: float, rules: CombatRules) -> float:
    """Chance that a standard attack connects.

    Accuracy is weighed against the target's avoidance (dodge plus half of
    evasion). The result is bounded to [min_hit_chance, 1], so an attacker
    facing no avoidance always hits and nobody is ever unhittable.
    """
    acc = max(0.0, finite_or(accuracy, 0))
    avoidance = max(0.0, finite_or(target_dodge, 0)) + max(0.0, finite_or(target_evasion, 0)) / 2
    if acc + avoidance <= 0:
        return rules.base_hit_chance
    return clamp(acc / (acc + avoidance), rules.min_hit_chance, 1.0)


def defence_reduction(defence: float) -> float:
    """Fraction of damage absorbed by defence, with diminishing returns."""
    safe = max(0.0, finite_or(defence, 0))
    return safe / (safe + 100)


def attack_bonus_damage(attack: float, rules: CombatRules) -> int:
    return math.floor(max(0.0, finite_or(attack, 0)) * rules.attack_damage_ratio)


def total_crit_chance(crit_chance: float) -> float:
    return clamp(finite_or(crit_chance, 0), 0.0, 1.0)


def crit_multiplier(crit_damage: float, rules: CombatRules) -> float:
    return max(1.0, finite_or(crit_damage, rules.crit_multiplier))


def calculate_final_damage(
    raw_damage: int,
    defence: float,
    is_crit: bool,
    crit_damage: float,
    rules: CombatRules,
) -> tuple[int, int, float]:
    """Apply defence then the critical multiplier.

    Returns (final_damage, reduction, multiplier). Damage never drops below
    ``min_damage``.
    """
    raw = max(0, raw_damage)
    reduction = math.floor(raw * defence_reduction(defence))
    damage = max(rules.min_damage, raw - reduction)
    multiplier = crit_multiplier(crit_damage, rules) if is_crit else 1.0
    if is_crit:
        damage = max(rules.min_damage, math.floor(damage * multiplier))
    return damage, reduction, multiplier


def spell_damage(base_damage: int, magic_defence: float, rules: CombatRules) -> tuple[int, int]:
    """Spells always land but are softened by magic defence. Returns (damage, mitigated)."""
    mitigated = math.floor(max(0, base_damage) * defence_reduction(magic_defence))
    return max(rules.min_damage, base_damage - mitigated), mitigated


def flee_chance(hp: int, max_hp: int, own_speed: float, enemy_speed: float, rules: FleeRules) -> float:
    """Chance to escape. Wounded and faster combatants get away more easily."""
    hp_fraction = clamp(hp / max_hp, 0.0, 1.0) if max_hp > 0 else 0.0
    chance = (
        rules.base_flee_chance
        + (1 - hp_fraction) * rules.wounded_flee_bonus
        + (finite_or(own_speed, 0) - finite_or(enemy_speed, 0)) * rules.flee_chance_per_speed
    )
    return clamp(chance, rules.min_flee_chance, rules.max_flee_chance)


def determine_turn_order(combatants: list[tuple[T, float]]) -> list[T]:
    """Sort combatants by speed, highest first.

    Ties keep the order given, so the first combatant listed wins them.

    Args:
        combatants: list of (actor, speed)
    Returns:
        list of actors in acting order
    """
    ordered = sorted(combatants, key=lambda c: c[1], reverse=True)
    return [actor for actor, _ in ordered]
