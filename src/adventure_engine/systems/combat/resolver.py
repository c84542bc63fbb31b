"""Resolution of a single combatant's turn."""
from __future__ import annotations

import logging

from adventure_engine.mechanics.combat_math import (
    attack_bonus_damage,
    calculate_final_damage,
    flee_chance,
    hit_chance,
    spell_damage,
    total_crit_chance,
)
from adventure_engine.mechanics.dice import RandomSource, roll_between, roll_chance
from adventure_engine.mechanics.effects import POTION_SICKNESS, apply_effects, effective_stats, has_effect
from adventure_engine.models.combat import (
    ActionKind,
    ActiveEffect,
    AppliedEffect,
    CombatActor,
    CombatConfig,
    CombatLogEntry,
    CombatOutcome,
    CombatState,
    PotionConsumed,
)
from adventure_engine.models.combatant import Combatant, CombatantStats, DamageType
from adventure_engine.models.spells import SpellAction
from adventure_engine.rules import RulesConfig

logger = logging.getLogger(__name__)


def _outcome_for_knockout(winner: CombatActor) -> CombatOutcome:
    return CombatOutcome.VICTORY if winner is CombatActor.COMBATANT_A else CombatOutcome.DEFEAT


class ActionResolver:
    """Decides and resolves what one combatant does on its turn.

    Combatant A may drink a potion or try to flee before anything else.
    Otherwise a spell scheduled for the round replaces the standard attack.
    """

    def __init__(self, rules: RulesConfig):
        self.rules = rules

    def take_turn(
        self,
        state: CombatState,
        actor: CombatActor,
        combatants: dict[CombatActor, Combatant],
        config: CombatConfig,
        rng: RandomSource,
    ) -> CombatLogEntry:
        me = combatants[actor]
        foe = combatants[actor.opponent]
        my_stats = effective_stats(me.stats, state.active_effects, actor)
        foe_stats = effective_stats(foe.stats, state.active_effects, actor.opponent)

        if actor is CombatActor.COMBATANT_A:
            entry = self.try_auto_potion(state, me, config)
            if entry is not None:
                return entry
            if self._wants_to_flee(state, config):
                return self.attempt_flee(state, me, my_stats, foe_stats, rng)

        spell = me.spells.spell_at(state.round) if me.spells is not None else None
        if spell is not None:
            return self.cast_spell(state, actor, spell, me, foe, foe_stats)
        return self.attack(state, actor, me, foe, my_stats, foe_stats, rng)

    # -- Standard attack --

    def attack(
        self,
        state: CombatState,
        actor: CombatActor,
        attacker: Combatant,
        defender: Combatant,
        attacker_stats: CombatantStats,
        defender_stats: CombatantStats,
        rng: RandomSource,
    ) -> CombatLogEntry:
        rules = self.rules.combat
        target = actor.opponent
        chance = hit_chance(attacker_stats.accuracy, defender_stats.dodge, defender_stats.evasion, rules)
        hits, roll = roll_chance(chance, rng)
        common = dict(
            round=state.round,
            actor=actor,
            actor_name=attacker.name,
            action=ActionKind.ATTACK,
            roll=roll,
            hit_chance=chance,
            attack_modifier=attacker_stats.attack,
            accuracy_modifier=attacker_stats.accuracy,
            target_dodge=defender_stats.dodge,
            target_evasion=defender_stats.evasion,
        )

        if not hits:
            entry = CombatLogEntry(
                **common,
                evaded=True,
                damage=0,
                message=f"{defender.name} evades {attacker.name}'s attack!",
                **state.hp_snapshot(),
            )
            state.log.append(entry)
            return entry

        raw_damage = roll_between(attacker_stats.damage_min, attacker_stats.damage_max, rng)
        raw_damage += attack_bonus_damage(attacker_stats.attack, rules)
        crit, _ = roll_chance(total_crit_chance(attacker_stats.crit_chance), rng)
        magic = attacker_stats.damage_type is DamageType.MAGIC
        defence = defender_stats.magic_defence if magic else defender_stats.defence
        damage, reduction, multiplier = calculate_final_damage(
            raw_damage, defence, crit, attacker_stats.crit_damage, rules,
        )
        state.set_hp(target, state.hp(target) - damage)

        message = f"{attacker.name} strikes {defender.name} for {damage} damage!"
        if crit:
            message += " CRITICAL HIT!"
        knockout = self._check_knockout(state, target, actor)
        if knockout is not None:
            message += f" {defender.name} falls defeated!"

        entry = CombatLogEntry(
            **common,
            evaded=False,
            raw_damage=raw_damage,
            damage=damage,
            target_defence=None if magic else defender_stats.defence,
            target_magic_defence=defender_stats.magic_defence if magic else None,
            armor_reduction=None if magic else reduction,
            magic_defence_reduction=reduction if magic else None,
            is_critical=crit,
            crit_multiplier=multiplier if crit else None,
            knockout=knockout,
            message=message,
            **state.hp_snapshot(),
        )
        state.log.append(entry)
        return entry

    # -- Spells --

    def cast_spell(
        self,
        state: CombatState,
        caster: CombatActor,
        spell: SpellAction,
        me: Combatant,
        foe: Combatant,
        foe_stats: CombatantStats,
    ) -> CombatLogEntry:
        target = caster.opponent
        damage = 0
        mitigated: int | None = None
        heal = 0

        if spell.damage:
            damage, mitigated = spell_damage(spell.damage, foe_stats.magic_defence, self.rules.combat)
            state.set_hp(target, state.hp(target) - damage)

        if spell.heal:
            before = state.hp(caster)
            state.set_hp(caster, before + spell.heal)
            heal = state.hp(caster) - before

        applied: list[AppliedEffect] = apply_effects(state, spell, caster) if spell.effects else []

        message = f"{me.name} casts {spell.name}"
        if damage > 0:
            message += f" for {damage} damage"
        message += "!"
        if heal > 0:
            message += f" Heals {heal} HP."
        if applied:
            desc = "; ".join(
                f"{e.stat} {'+' if e.modifier > 0 else ''}{e.modifier:g}, {e.duration} rds" for e in applied
            )
            message += f" ({desc})"

        knockout = self._check_knockout(state, target, caster)
        if knockout is not None:
            message += f" {foe.name} falls defeated!"
        else:
            knockout = self._check_knockout(state, caster, target)
            if knockout is not None:
                message += f" {me.name} falls defeated!"

        entry = CombatLogEntry(
            round=state.round,
            actor=caster,
            actor_name=me.name,
            action=ActionKind.SPELL,
            spell_name=spell.name,
            raw_damage=spell.damage or None,
            damage=damage if damage > 0 else None,
            target_magic_defence=foe_stats.magic_defence if spell.damage else None,
            magic_defence_reduction=mitigated,
            heal_amount=heal if heal > 0 else None,
            effects_applied=applied or None,
            knockout=knockout,
            message=message,
            **state.hp_snapshot(),
        )
        state.log.append(entry)
        return entry

    # -- Flee --

    def _wants_to_flee(self, state: CombatState, config: CombatConfig) -> bool:
        if not config.allow_flee:
            return False
        max_hp = state.max_hp(CombatActor.COMBATANT_A)
        return state.hp(CombatActor.COMBATANT_A) / max_hp < config.flee_hp_threshold

    def attempt_flee(
        self,
        state: CombatState,
        me: Combatant,
        my_stats: CombatantStats,
        foe_stats: CombatantStats,
        rng: RandomSource,
    ) -> CombatLogEntry:
        actor = CombatActor.COMBATANT_A
        chance = flee_chance(state.hp(actor), state.max_hp(actor), my_stats.speed, foe_stats.speed, self.rules.flee)
        escaped, roll = roll_chance(chance, rng)
        if escaped:
            state.outcome = CombatOutcome.FLED
            message = f"{me.name} flees from combat!"
        else:
            message = f"{me.name} tries to flee but is cut off!"

        entry = CombatLogEntry(
            round=state.round,
            actor=actor,
            actor_name=me.name,
            action=ActionKind.FLEE,
            roll=roll,
            flee_chance=chance,
            fled=escaped,
            message=message,
            **state.hp_snapshot(),
        )
        state.log.append(entry)
        return entry

    # -- Potions --

    def try_auto_potion(self, state: CombatState, me: Combatant, config: CombatConfig) -> CombatLogEntry | None:
        """Drink the weakest potion that covers the deficit, or the strongest if none does."""
        threshold = config.auto_potion_threshold
        actor = CombatActor.COMBATANT_A
        if threshold <= 0 or not state.potions:
            return None

        max_hp = state.max_hp(actor)
        if state.hp(actor) / max_hp * 100 >= threshold:
            return None
        if has_effect(state.active_effects, actor, POTION_SICKNESS):
            return None

        deficit = int(max_hp * threshold / 100) - state.hp(actor)
        state.potions.sort(key=lambda p: p.heal_amount)
        chosen = next((i for i, p in enumerate(state.potions) if p.heal_amount >= deficit), len(state.potions) - 1)
        potion = state.potions.pop(chosen)

        before = state.hp(actor)
        state.set_hp(actor, before + potion.heal_amount)
        healed = state.hp(actor) - before
        state.potions_consumed.append(PotionConsumed(
            template_id=potion.template_id, name=potion.name, heal_amount=healed, round=state.round,
        ))

        duration = self.rules.potions.auto_potion_sickness_duration
        state.active_effects.append(ActiveEffect(
            name="Potion Sickness", target=actor, stat=POTION_SICKNESS, modifier=0, remaining_rounds=duration,
        ))

        entry = CombatLogEntry(
            round=state.round,
            actor=actor,
            actor_name=me.name,
            action=ActionKind.POTION,
            spell_name=potion.name,
            heal_amount=healed,
            effects_applied=[AppliedEffect(stat=POTION_SICKNESS, modifier=0, duration=duration, target=actor)],
            message=f"{me.name} drinks a {potion.name}! +{healed} HP",
            **state.hp_snapshot(),
        )
        state.log.append(entry)
        return entry

    def _check_knockout(self, state: CombatState, target: CombatActor, attacker: CombatActor) -> CombatActor | None:
        if state.hp(target) > 0:
            return None
        state.outcome = _outcome_for_knockout(attacker)
        logger.debug("Round %d: %s knocked out", state.round, target.value)
        return target
