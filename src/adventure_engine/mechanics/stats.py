"""Stat resolution. Pure functions that turn gear, prefixes and events into combat stats."""
from __future__ import annotations

import math
from typing import Iterable

from adventure_engine.errors import InvalidCombatInput
from adventure_engine.models.combatant import (
    AttackStyle,
    CombatantStats,
    DamageType,
    ItemStats,
    MobTemplate,
    PlayerAttributes,
    StatMultipliers,
    ZoneModifiers,
)
from adventure_engine.rules import DEFAULT_RULES, RulesConfig
from adventure_engine.utils import finite_or

_ITEM_FIELDS = tuple(ItemStats.model_fields)
_FRACTIONAL_ITEM_FIELDS = frozenset({"crit_chance", "crit_damage"})

# Events can weaken mobs, but never below a tenth of their base
MIN_EVENT_MULTIPLIER = 0.1


def sum_item_stats(items: Iterable[ItemStats]) -> ItemStats:
    """Add up the bonuses of every equipped item."""
    totals: dict[str, float] = {name: 0 for name in _ITEM_FIELDS}
    for item in items:
        for name in _ITEM_FIELDS:
            totals[name] += finite_or(getattr(item, name), 0)
    return ItemStats.model_validate({
        name: value if name in _FRACTIONAL_ITEM_FIELDS else int(value)
        for name, value in totals.items()
    })


def _scale(value: float, multiplier: float | None, minimum: int) -> int:
    if multiplier is None:
        return int(value)
    return max(minimum, math.floor(value * finite_or(multiplier, 1)))


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _weapon_power(bonus: ItemStats, style: AttackStyle) -> int:
    if style is AttackStyle.RANGED:
        return bonus.ranged_power
    if style is AttackStyle.MAGIC:
        return bonus.magic_power
    return bonus.attack


def resolve_stats(
    base: CombatantStats,
    bonuses: Iterable[ItemStats] = (),
    prefix_multipliers: StatMultipliers | None = None,
    event_modifiers: ZoneModifiers | None = None,
    attack_style: AttackStyle | None = None,
    rules: RulesConfig = DEFAULT_RULES,
) -> CombatantStats:
    """Merge base stats, equipment, prefix multipliers and world events.

    Additive equipment bonuses are summed first. The weapon power that counts
    toward ``attack`` depends on the attack style, which defaults from the
    damage type. Prefix multipliers then scale hp, attack, defences, avoidance
    and the damage range; accuracy and the crit values are never multiplied.
    Crit values left unset on ``base`` start from the rules' base crit
    chance and multiplier before gear is added. World events scale hp and
    damage last. The result is a fresh object; ``base`` is not modified.
    """
    if attack_style is None:
        attack_style = AttackStyle.MAGIC if base.damage_type is DamageType.MAGIC else AttackStyle.MELEE
    bonus = sum_item_stats(bonuses)

    max_hp = base.max_hp + bonus.health
    hp = base.hp + bonus.health
    attack = base.attack + _weapon_power(bonus, attack_style)
    defence = base.defence + bonus.armor
    magic_defence = base.magic_defence + bonus.magic_defence
    dodge = base.dodge + bonus.dodge
    evasion = base.evasion + bonus.evasion
    damage_min = base.damage_min
    damage_max = base.damage_max
    crit_chance = base.crit_chance if "crit_chance" in base.model_fields_set else rules.combat.crit_chance
    crit_damage = base.crit_damage if "crit_damage" in base.model_fields_set else rules.combat.crit_multiplier

    if prefix_multipliers is not None:
        m = prefix_multipliers
        max_hp = _scale(max_hp, m.hp, 1)
        hp = _scale(hp, m.hp, 0)
        attack = _scale(attack, m.attack, 0)
        defence = _scale(defence, m.defence, 0)
        magic_defence = _scale(magic_defence, m.magic_defence, 0)
        dodge = _scale(dodge, m.evasion, 0) if m.evasion is not None else dodge
        evasion = _scale(evasion, m.evasion, 0) if m.evasion is not None else evasion
        damage_min = _scale(damage_min, m.damage_min, 1)
        damage_max = _scale(damage_max, m.damage_max, 1)

    if event_modifiers is not None:
        hp_mult = max(MIN_EVENT_MULTIPLIER, finite_or(event_modifiers.mob_hp_multiplier, 1))
        dmg_mult = max(MIN_EVENT_MULTIPLIER, finite_or(event_modifiers.mob_damage_multiplier, 1))
        if hp_mult != 1:
            max_hp = max(1, _round_half_up(max_hp * hp_mult))
            hp = max(0, _round_half_up(hp * hp_mult))
        if dmg_mult != 1:
            damage_min = max(1, _round_half_up(damage_min * dmg_mult))
            damage_max = max(1, _round_half_up(damage_max * dmg_mult))

    return CombatantStats(
        hp=max(0, min(hp, max_hp)),
        max_hp=max_hp,
        attack=attack,
        accuracy=base.accuracy + bonus.accuracy,
        defence=defence,
        magic_defence=magic_defence,
        dodge=dodge,
        evasion=evasion,
        damage_min=damage_min,
        damage_max=max(damage_min, damage_max),
        speed=base.speed,
        crit_chance=crit_chance + bonus.crit_chance,
        crit_damage=crit_damage + bonus.crit_damage,
        damage_type=base.damage_type,
    )


def build_player_stats(
    current_hp: int,
    max_hp: int,
    attack_style: AttackStyle,
    skill_level: int,
    attributes: PlayerAttributes,
    equipment: Iterable[ItemStats] = (),
    rules: RulesConfig = DEFAULT_RULES,
) -> CombatantStats:
    """Build a player's combat stats from attack skill, attributes and gear."""
    gear = sum_item_stats(equipment)
    char = rules.character

    if attack_style is AttackStyle.RANGED:
        attribute_damage = attributes.dexterity * char.ranged_damage_per_dexterity
        accuracy_from_dex = math.floor(attributes.dexterity * char.accuracy_per_dexterity)
    elif attack_style is AttackStyle.MAGIC:
        attribute_damage = attributes.intelligence * char.magic_damage_per_intelligence
        accuracy_from_dex = 0
    else:
        attribute_damage = attributes.strength * char.melee_damage_per_strength
        accuracy_from_dex = 0

    total_attack = skill_level + _weapon_power(gear, attack_style) + math.floor(attribute_damage)

    return CombatantStats(
        hp=max(0, min(current_hp, max_hp)),
        max_hp=max_hp,
        attack=total_attack,
        accuracy=skill_level // 2 + gear.accuracy + accuracy_from_dex,
        defence=gear.armor,
        magic_defence=gear.magic_defence,
        dodge=gear.dodge,
        evasion=attributes.evasion + gear.evasion,
        damage_min=1 + total_attack // 5,
        damage_max=5 + total_attack // 2,
        speed=attributes.evasion // char.evasion_to_speed_divisor,
        crit_chance=rules.combat.crit_chance + gear.crit_chance,
        crit_damage=rules.combat.crit_multiplier + gear.crit_damage,
        damage_type=DamageType.MAGIC if attack_style is AttackStyle.MAGIC else DamageType.PHYSICAL,
    )


def mob_to_combatant_stats(
    mob: MobTemplate,
    current_hp: int | None = None,
    rules: RulesConfig = DEFAULT_RULES,
) -> CombatantStats:
    """Convert a mob template. A mob's evasion acts as dodge."""
    hp = mob.hp if current_hp is None else max(0, min(current_hp, mob.hp))
    return CombatantStats(
        hp=hp,
        max_hp=mob.hp,
        attack=mob.attack,
        accuracy=mob.accuracy,
        defence=mob.defence,
        magic_defence=mob.magic_defence,
        dodge=mob.evasion,
        evasion=0,
        damage_min=mob.damage_min,
        damage_max=mob.damage_max,
        speed=mob.speed,
        crit_chance=rules.combat.crit_chance,
        crit_damage=rules.combat.crit_multiplier,
        damage_type=mob.damage_type,
    )


def validate_stats(stats: CombatantStats, label: str = "combatant") -> None:
    """Reject stats that cannot describe a living combatant."""
    numbers = {
        name: getattr(stats, name)
        for name in ("hp", "max_hp", "attack", "accuracy", "defence", "magic_defence",
                     "dodge", "evasion", "damage_min", "damage_max", "speed",
                     "crit_chance", "crit_damage")
    }
    for name, value in numbers.items():
        if not math.isfinite(value):
            raise InvalidCombatInput(f"{label}: {name} must be finite, got {value}", field=name)
    if stats.max_hp <= 0:
        raise InvalidCombatInput(f"{label}: max_hp must be positive, got {stats.max_hp}", field="max_hp")
    if stats.hp < 0 or stats.hp > stats.max_hp:
        raise InvalidCombatInput(
            f"{label}: hp {stats.hp} outside [0, {stats.max_hp}]", field="hp",
        )
    if stats.damage_min < 0:
        raise InvalidCombatInput(f"{label}: damage_min must not be negative", field="damage_min")
    if stats.damage_min > stats.damage_max:
        raise InvalidCombatInput(
            f"{label}: damage_min {stats.damage_min} exceeds damage_max {stats.damage_max}",
            field="damage_min",
        )
