"""Timed buffs and debuffs.

Effects never touch the stored ``CombatantStats``. They are folded in each
time stats are read, so removing an effect restores the base value exactly.
"""
from __future__ import annotations

from adventure_engine.models.combat import ActiveEffect, AppliedEffect, CombatActor, CombatState
from adventure_engine.models.combatant import CombatantStats
from adventure_engine.models.spells import EffectStat, SpellAction
from adventure_engine.utils import clamp

POTION_SICKNESS = EffectStat.POTION_SICKNESS.value

# Stats an effect may shift. "attack" moves both ends of the damage range.
MODIFIABLE_STATS = frozenset(s.value for s in EffectStat if s is not EffectStat.POTION_SICKNESS)


def apply_effects(state: CombatState, spell: SpellAction, caster: CombatActor) -> list[AppliedEffect]:
    """Start every effect carried by a spell.

    Buffs (modifier >= 0) land on the caster, debuffs on the opponent.
    """
    applied: list[AppliedEffect] = []
    for effect in spell.effects:
        target = caster if effect.modifier >= 0 else caster.opponent
        stat = effect.stat.value
        state.active_effects.append(ActiveEffect(
            name=spell.name,
            target=target,
            stat=stat,
            modifier=effect.modifier,
            remaining_rounds=effect.duration,
        ))
        applied.append(AppliedEffect(
            stat=stat, modifier=effect.modifier, duration=effect.duration, target=target,
        ))
    return applied


def tick_and_expire(state: CombatState) -> tuple[list[ActiveEffect], list[ActiveEffect]]:
    """Advance every effect by one round. Returns (still_active, expired)."""
    still_active: list[ActiveEffect] = []
    expired: list[ActiveEffect] = []
    for effect in state.active_effects:
        effect.remaining_rounds -= 1
        if effect.remaining_rounds <= 0:
            expired.append(effect)
        else:
            still_active.append(effect)
    state.active_effects = still_active
    return still_active, expired


def has_effect(effects: list[ActiveEffect], target: CombatActor, stat: str) -> bool:
    return any(e.target is target and e.stat == stat for e in effects)


def effective_stats(base: CombatantStats, effects: list[ActiveEffect], target: CombatActor) -> CombatantStats:
    totals: dict[str, float] = {}
    for effect in effects:
        if effect.target is not target or effect.stat not in MODIFIABLE_STATS:
            continue
        totals[effect.stat] = totals.get(effect.stat, 0) + effect.modifier

    if not totals:
        return base

    attack_shift = totals.get("attack", 0)
    damage_min = max(1, int(base.damage_min + attack_shift + totals.get("damage_min", 0)))
    damage_max = max(damage_min, int(base.damage_max + attack_shift + totals.get("damage_max", 0)))

    return base.model_copy(update={
        "accuracy": base.accuracy + totals.get("accuracy", 0),
        "defence": max(0, int(base.defence + totals.get("defence", 0))),
        "magic_defence": max(0, int(base.magic_defence + totals.get("magic_defence", 0))),
        "dodge": max(0, base.dodge + totals.get("dodge", 0)),
        "evasion": max(0, base.evasion + totals.get("evasion", 0)),
        "speed": int(base.speed + totals.get("speed", 0)),
        "crit_chance": clamp(base.crit_chance + totals.get("crit_chance", 0), 0.0, 1.0),
        "damage_min": damage_min,
        "damage_max": damage_max,
    })
