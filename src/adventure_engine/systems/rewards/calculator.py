"""Post-combat rewards: loot, XP, durability wear and flee/knockout penalties."""
from __future__ import annotations

import logging
import math

from adventure_engine.mechanics.dice import RandomSource, roll_between, roll_chance, roll_unit
from adventure_engine.mechanics.durability import degrade_equipment
from adventure_engine.mechanics.flee import calculate_penalty, defeat_escape_chance, determine_escape
from adventure_engine.mechanics.leveling import apply_character_xp, apply_xp_gain
from adventure_engine.models.combat import ActionKind, CombatActor, CombatLogEntry, CombatOutcome, CombatResult
from adventure_engine.models.rewards import (
    DropTableEntry,
    FleeOutcome,
    FleePenalty,
    LootDrop,
    RewardContext,
    Rewards,
)
from adventure_engine.rules import RulesConfig
from adventure_engine.utils import clamp, finite_or

logger = logging.getLogger(__name__)


def count_hits_taken(result: CombatResult) -> int:
    """Number of actions in which combatant B dealt damage to combatant A."""
    return sum(
        1 for e in result.log
        if e.actor is CombatActor.COMBATANT_B
        and e.action in (ActionKind.ATTACK, ActionKind.SPELL)
        and (e.damage or 0) > 0
    )


def _last_successful_flee(result: CombatResult) -> CombatLogEntry | None:
    for entry in reversed(result.log):
        if entry.action is ActionKind.FLEE and entry.fled:
            return entry
    return None


class RewardCalculator:
    def __init__(self, rules: RulesConfig):
        self.rules = rules

    def calculate(self, result: CombatResult, context: RewardContext, rng: RandomSource) -> Rewards:
        """Work out everything a fight grants or costs combatant A.

        Only a victory drops loot. A flight may still pay a share of the XP
        reward, set by ``fled_xp_fraction``. A defeat rolls one escape check
        against the player's evasion. Equipment wears on every outcome.
        """
        rewards = Rewards()
        outcome = result.outcome

        if outcome is CombatOutcome.VICTORY:
            rewards.loot = self.roll_loot(context, rng)
            rewards.xp = math.floor(context.xp_reward * self._event_xp_multiplier(context))
        elif outcome is CombatOutcome.FLED:
            rewards.xp = math.floor(
                context.xp_reward * self._event_xp_multiplier(context) * context.fled_xp_fraction
            )
            rewards.penalty = self._flee_penalty(result, context)
        elif outcome is CombatOutcome.DEFEAT:
            rewards.penalty = self._defeat_penalty(result, context, rng)

        if rewards.xp > 0:
            self._grant_xp(rewards, context)

        rewards.durability_lost = degrade_equipment(
            context.equipment, count_hits_taken(result), self.rules.durability,
        )

        logger.info(
            "Rewards for %s: %d XP, %d loot drops, %d items worn",
            outcome.value, rewards.xp, len(rewards.loot), len(rewards.durability_lost),
        )
        return rewards

    def roll_loot(self, context: RewardContext, rng: RandomSource) -> list[LootDrop]:
        drops: list[LootDrop] = []
        for entry in context.drop_table:
            chance = self.drop_chance(entry, context)
            dropped, _ = roll_chance(chance, rng)
            if not dropped:
                continue
            quantity = roll_between(entry.min_quantity, entry.max_quantity, rng)
            if quantity > 0:
                drops.append(LootDrop(item_template_id=entry.item_template_id, quantity=quantity))
        return drops

    @staticmethod
    def drop_chance(entry: DropTableEntry, context: RewardContext) -> float:
        chance = (
            entry.drop_chance
            * finite_or(context.drop_chance_multiplier, 1.0)
            * finite_or(context.event_drop_multiplier, 1.0)
        )
        return clamp(chance, 0.0, 1.0)

    def _grant_xp(self, rewards: Rewards, context: RewardContext) -> None:
        credited = rewards.xp
        if context.skill is not None:
            skill = context.skill
            rewards.skill_xp = apply_xp_gain(
                skill.xp, skill.level, skill.window_xp, rewards.xp, skill.skill_type, self.rules.skills,
            )
            credited = rewards.skill_xp.xp_after_efficiency
            if rewards.skill_xp.leveled_up:
                logger.info("%s reached level %d", skill.skill_type.value, rewards.skill_xp.new_level)
        rewards.character_xp = apply_character_xp(context.character, credited, self.rules.character)

    @staticmethod
    def _event_xp_multiplier(context: RewardContext) -> float:
        return max(0.0, finite_or(context.event_xp_multiplier, 1.0))

    def _flee_penalty(self, result: CombatResult, context: RewardContext) -> FleePenalty:
        entry = _last_successful_flee(result)
        if entry is None or entry.roll is None or entry.flee_chance is None:
            escape = FleeOutcome.WOUNDED_ESCAPE
        else:
            escape = determine_escape(entry.roll, entry.flee_chance, self.rules.flee)
        return calculate_penalty(
            escape,
            result.combatant_a_hp_remaining,
            result.combatant_a_max_hp,
            context.current_gold,
            self.rules.flee,
        )

    def _defeat_penalty(self, result: CombatResult, context: RewardContext, rng: RandomSource) -> FleePenalty:
        """Roll whether a defeated player slips away or is knocked out.

        An escape after defeat is graded like a flight but measured against
        max HP, since the fight itself left nothing to keep.
        """
        chance = defeat_escape_chance(context.evasion, self.rules.flee)
        roll = roll_unit(rng)
        escape = determine_escape(roll, chance, self.rules.flee)
        logger.debug("Defeat escape roll %.3f vs %.3f: %s", roll, chance, escape.value)
        return calculate_penalty(
            escape,
            result.combatant_a_max_hp,
            result.combatant_a_max_hp,
            context.current_gold,
            self.rules.flee,
        )
