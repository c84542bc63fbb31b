"""Combat engine: runs one fight between two combatants to completion."""
from __future__ import annotations

import logging
import random

from adventure_engine.errors import InvalidCombatInput
from adventure_engine.mechanics.combat_math import determine_turn_order
from adventure_engine.mechanics.dice import RandomSource
from adventure_engine.mechanics.effects import effective_stats, tick_and_expire
from adventure_engine.mechanics.stats import validate_stats
from adventure_engine.models.combat import (
    ActionKind,
    CombatActor,
    CombatConfig,
    CombatLogEntry,
    CombatOutcome,
    CombatResult,
    CombatState,
    ExpiredEffect,
)
from adventure_engine.models.combatant import Combatant
from adventure_engine.models.rewards import RewardContext
from adventure_engine.rules import DEFAULT_RULES, RulesConfig
from adventure_engine.systems.combat.resolver import ActionResolver
from adventure_engine.systems.rewards.calculator import RewardCalculator

logger = logging.getLogger(__name__)

_ROUND_CAP_OUTCOMES = (CombatOutcome.DEFEAT, CombatOutcome.DRAW)


class CombatEngine:
    """Runs turn-based fights.

    The engine holds no state between fights; everything mutable lives in a
    ``CombatState`` created per call to :meth:`run`. Randomness comes only
    from the ``rng`` argument, so a seeded source replays a fight exactly.
    """

    def __init__(self, rules: RulesConfig = DEFAULT_RULES):
        self.rules = rules
        self.resolver = ActionResolver(rules)
        self.rewards = RewardCalculator(rules)

    def run(
        self,
        combatant_a: Combatant,
        combatant_b: Combatant,
        config: CombatConfig | None = None,
        rng: RandomSource | None = None,
        reward_context: RewardContext | None = None,
    ) -> CombatResult:
        config = config or CombatConfig()
        rng = rng if rng is not None else random.Random()
        max_rounds = self._validate(combatant_a, combatant_b, config)

        combatants = {
            CombatActor.COMBATANT_A: combatant_a,
            CombatActor.COMBATANT_B: combatant_b,
        }
        state = CombatState(
            combatant_a_hp=combatant_a.stats.hp,
            combatant_a_max_hp=combatant_a.stats.max_hp,
            combatant_b_hp=combatant_b.stats.hp,
            combatant_b_max_hp=combatant_b.stats.max_hp,
            potions=sorted(config.potions, key=lambda p: p.heal_amount),
        )
        logger.info(
            "Combat start: %s (%d/%d HP) vs %s (%d/%d HP), max %d rounds",
            combatant_a.name, state.combatant_a_hp, state.combatant_a_max_hp,
            combatant_b.name, state.combatant_b_hp, state.combatant_b_max_hp, max_rounds,
        )

        if state.combatant_a_hp <= 0:
            state.outcome = CombatOutcome.DEFEAT
        elif state.combatant_b_hp <= 0:
            state.outcome = CombatOutcome.VICTORY

        while state.outcome is None and state.round < max_rounds:
            state.round += 1
            self._play_round(state, combatants, config, rng)

        round_cap_reached = state.outcome is None
        if round_cap_reached:
            self._end_at_round_cap(state, combatant_a, config)

        result = CombatResult(
            outcome=state.outcome,
            log=state.log,
            combatant_a_max_hp=state.combatant_a_max_hp,
            combatant_b_max_hp=state.combatant_b_max_hp,
            combatant_a_hp_remaining=state.combatant_a_hp,
            combatant_b_hp_remaining=state.combatant_b_hp,
            rounds=state.round,
            round_cap_reached=round_cap_reached,
            potions_consumed=state.potions_consumed,
        )
        logger.info(
            "Combat end: %s after %d rounds (%s %d HP, %s %d HP)",
            result.outcome.value, result.rounds,
            combatant_a.name, result.combatant_a_hp_remaining,
            combatant_b.name, result.combatant_b_hp_remaining,
        )

        if reward_context is not None:
            result.rewards = self.rewards.calculate(result, reward_context, rng)
        return result

    def _validate(self, combatant_a: Combatant, combatant_b: Combatant, config: CombatConfig) -> int:
        validate_stats(combatant_a.stats, "combatant_a")
        validate_stats(combatant_b.stats, "combatant_b")
        max_rounds = config.max_rounds if config.max_rounds is not None else self.rules.combat.max_rounds
        if max_rounds < 1:
            raise InvalidCombatInput(f"max_rounds must be at least 1, got {max_rounds}", field="max_rounds")
        if config.round_cap_outcome not in _ROUND_CAP_OUTCOMES:
            raise InvalidCombatInput(
                f"round_cap_outcome must be defeat or draw, got {config.round_cap_outcome.value}",
                field="round_cap_outcome",
            )
        return max_rounds

    def _play_round(
        self,
        state: CombatState,
        combatants: dict[CombatActor, Combatant],
        config: CombatConfig,
        rng: RandomSource,
    ) -> None:
        order = determine_turn_order([
            (actor, effective_stats(c.stats, state.active_effects, actor).speed)
            for actor, c in combatants.items()
        ])
        logger.debug(
            "Round %d: order %s, HP %d vs %d",
            state.round, [a.value for a in order], state.combatant_a_hp, state.combatant_b_hp,
        )

        for actor in order:
            if state.hp(actor) <= 0:
                continue
            self.resolver.take_turn(state, actor, combatants, config, rng)
            if state.outcome is not None:
                return

        _, expired = tick_and_expire(state)
        if expired:
            # Attribute the entry to A only when every expired effect was on A
            actor = (
                CombatActor.COMBATANT_A
                if all(e.target is CombatActor.COMBATANT_A for e in expired)
                else CombatActor.COMBATANT_B
            )
            names = ", ".join(dict.fromkeys(e.name for e in expired))
            state.log.append(CombatLogEntry(
                round=state.round,
                actor=actor,
                actor_name=combatants[actor].name,
                action=ActionKind.EXPIRE,
                effects_expired=[ExpiredEffect(name=e.name, target=e.target) for e in expired],
                message=f"{names} wore off.",
                **state.hp_snapshot(),
            ))

    def _end_at_round_cap(self, state: CombatState, combatant_a: Combatant, config: CombatConfig) -> None:
        state.outcome = config.round_cap_outcome
        logger.warning(
            "Combat hit the round cap after %d rounds; resolving as %s", state.round, state.outcome.value,
        )
        state.log.append(CombatLogEntry(
            round=state.round,
            actor=CombatActor.COMBATANT_A,
            actor_name=combatant_a.name,
            action=ActionKind.TIMEOUT,
            round_cap_reached=True,
            message=f"The fight drags on too long. Combat ends in a {state.outcome.value}.",
            **state.hp_snapshot(),
        ))
