"""Tests for src/adventure_engine/systems/combat/engine.py and resolver.py."""
from __future__ import annotations

import random

import pytest

from adventure_engine.errors import InvalidCombatInput
from adventure_engine.mechanics.prefixes import MobPrefix, apply_mob_prefix
from adventure_engine.mechanics.stats import build_player_stats
from adventure_engine.models.combat import (
    ActionKind,
    CombatActor,
    CombatConfig,
    CombatOutcome,
    CombatPotion,
)
from adventure_engine.models.combatant import AttackStyle, Combatant, DamageType, ItemStats, PlayerAttributes
from adventure_engine.models.rewards import RewardContext
from adventure_engine.models.spells import FixedSpells, SpellAction, SpellEffect
from adventure_engine.rules import rules_from_dict
from adventure_engine.systems.combat.engine import CombatEngine

A = CombatActor.COMBATANT_A
B = CombatActor.COMBATANT_B


def _player() -> Combatant:
    stats = build_player_stats(
        120, 120, AttackStyle.MELEE, 10,
        PlayerAttributes(strength=6, evasion=4),
        [ItemStats(attack=6, accuracy=4), ItemStats(armor=12, dodge=2)],
    )
    return Combatant(id="player", name="Adventurer", stats=stats)


class TestBasicFight:
    def test_certain_hit_wins_in_one_round(self, engine, make_combatant):
        a = make_combatant("Hero", hp=100, attack=20, accuracy=1.0)
        b = make_combatant("Rat", hp=10, dodge=0, evasion=0, defence=0)
        result = engine.run(a, b, rng=random.Random(5))
        assert result.outcome is CombatOutcome.VICTORY
        assert result.rounds == 1
        assert len(result.log) == 1
        entry = result.log[0]
        assert entry.hit_chance == 1.0
        assert entry.damage == 11
        assert entry.knockout is B
        assert result.combatant_b_hp_remaining == 0

    def test_miss_logs_evaded_without_damage(self, engine, make_combatant, scripted):
        a = make_combatant("Hero")
        b = make_combatant("Rat")
        result = engine.run(a, b, CombatConfig(max_rounds=1), scripted([0.9, 0.9]))
        first = result.log[0]
        assert first.evaded is True
        assert first.damage == 0
        assert first.hit_chance == pytest.approx(0.7)
        assert first.roll == 0.9
        assert first.raw_damage is None

    def test_draw_order_hit_damage_crit(self, engine, make_combatant, scripted):
        a = make_combatant("Hero", accuracy=1.0, damage_min=10, damage_max=20, crit_chance=0.5, crit_damage=2.0)
        b = make_combatant("Ogre", hp=200)
        rng = scripted([0.0, 0.5, 0.0], fallback=0.99)
        result = engine.run(a, b, CombatConfig(max_rounds=1), rng)
        hit = result.log[0]
        assert hit.raw_damage == 15
        assert hit.damage == 30
        assert hit.is_critical
        assert hit.crit_multiplier == 2.0
        assert hit.combatant_b_hp_after == 170
        # three draws for the hit, one for B's miss
        assert rng.calls == 4

    def test_physical_damage_uses_defence(self, engine, make_combatant, scripted):
        a = make_combatant("Hero", accuracy=1.0, damage_min=20, damage_max=20)
        b = make_combatant("Knight", hp=200, defence=100, magic_defence=0)
        result = engine.run(a, b, CombatConfig(max_rounds=1), scripted([], fallback=0.99))
        hit = result.log[0]
        assert hit.damage == 10
        assert hit.armor_reduction == 10
        assert hit.target_defence == 100
        assert hit.magic_defence_reduction is None

    def test_magic_damage_uses_magic_defence(self, engine, make_combatant, scripted):
        a = make_combatant("Mage", accuracy=1.0, damage_min=20, damage_max=20, damage_type=DamageType.MAGIC)
        b = make_combatant("Knight", hp=200, defence=1000, magic_defence=0)
        result = engine.run(a, b, CombatConfig(max_rounds=1), scripted([], fallback=0.99))
        hit = result.log[0]
        assert hit.damage == 20
        assert hit.magic_defence_reduction == 0
        assert hit.armor_reduction is None

    def test_faster_combatant_acts_first(self, engine, make_combatant):
        a = make_combatant("Hero", hp=100, speed=1)
        b = make_combatant("Wolf", accuracy=1.0, damage_min=200, damage_max=200, speed=10)
        result = engine.run(a, b, rng=random.Random(1))
        assert result.outcome is CombatOutcome.DEFEAT
        assert [e.actor for e in result.log] == [B]
        assert result.log[0].knockout is A

    def test_ties_go_to_combatant_a(self, engine, make_combatant):
        a = make_combatant("Hero", accuracy=1.0, damage_min=200, damage_max=200, speed=3)
        b = make_combatant("Wolf", accuracy=1.0, damage_min=200, damage_max=200, speed=3)
        result = engine.run(a, b, rng=random.Random(1))
        assert result.outcome is CombatOutcome.VICTORY
        assert [e.actor for e in result.log] == [A]


class TestRoundCap:
    def _stalemate(self, make_combatant):
        return make_combatant("Hero", hp=1000), make_combatant("Wall", hp=1000)

    def test_cap_defaults_to_defeat(self, engine, make_combatant, scripted):
        a, b = self._stalemate(make_combatant)
        result = engine.run(a, b, CombatConfig(max_rounds=3), scripted([], fallback=0.99))
        assert result.outcome is CombatOutcome.DEFEAT
        assert result.round_cap_reached
        assert result.rounds == 3
        assert len(result.log) == 7
        assert len(result.actions) == 6
        timeout = result.log[-1]
        assert timeout.action is ActionKind.TIMEOUT
        assert timeout.round_cap_reached
        assert timeout.round == 3

    def test_cap_can_resolve_as_draw(self, engine, make_combatant, scripted):
        a, b = self._stalemate(make_combatant)
        config = CombatConfig(max_rounds=2, round_cap_outcome=CombatOutcome.DRAW)
        result = engine.run(a, b, config, scripted([], fallback=0.99))
        assert result.outcome is CombatOutcome.DRAW

    def test_cap_from_rules(self, make_combatant, scripted):
        a, b = self._stalemate(make_combatant)
        engine = CombatEngine(rules_from_dict({"combat": {"max_rounds": 2}}))
        result = engine.run(a, b, rng=scripted([], fallback=0.99))
        assert result.rounds == 2
        assert result.round_cap_reached

    def test_knockout_on_last_round_is_not_a_timeout(self, engine, make_combatant, scripted):
        a = make_combatant("Hero", accuracy=1.0, damage_min=5, damage_max=5)
        b = make_combatant("Rat", hp=10)
        result = engine.run(a, b, CombatConfig(max_rounds=2), scripted([], fallback=0.99))
        assert result.outcome is CombatOutcome.VICTORY
        assert result.rounds == 2
        assert not result.round_cap_reached
        assert all(e.action is not ActionKind.TIMEOUT for e in result.log)

    def test_one_round_short_hits_the_cap(self, engine, make_combatant, scripted):
        a = make_combatant("Hero", accuracy=1.0, damage_min=5, damage_max=5)
        b = make_combatant("Rat", hp=10)
        result = engine.run(a, b, CombatConfig(max_rounds=1), scripted([], fallback=0.99))
        assert result.round_cap_reached
        assert result.combatant_b_hp_remaining == 5


class TestValidation:
    @pytest.mark.parametrize("max_rounds", [0, -1])
    def test_non_positive_max_rounds(self, engine, make_combatant, max_rounds):
        with pytest.raises(InvalidCombatInput) as exc_info:
            engine.run(make_combatant(), make_combatant(), CombatConfig(max_rounds=max_rounds))
        assert exc_info.value.field == "max_rounds"

    def test_hp_above_max(self, engine, make_combatant):
        with pytest.raises(InvalidCombatInput):
            engine.run(make_combatant(hp=150, max_hp=100), make_combatant())

    def test_inverted_damage_range(self, engine, make_combatant):
        with pytest.raises(InvalidCombatInput):
            engine.run(make_combatant(), make_combatant(damage_min=9, damage_max=3))

    def test_victory_is_not_a_round_cap_outcome(self, engine, make_combatant):
        with pytest.raises(InvalidCombatInput):
            engine.run(make_combatant(), make_combatant(), CombatConfig(round_cap_outcome=CombatOutcome.VICTORY))

    def test_already_down_combatant(self, engine, make_combatant):
        result = engine.run(make_combatant(hp=0), make_combatant(), rng=random.Random(1))
        assert result.outcome is CombatOutcome.DEFEAT
        assert result.log == []


class TestFlee:
    def test_successful_flee(self, engine, make_combatant, scripted):
        a = make_combatant("Hero", hp=10)
        b = make_combatant("Troll")
        result = engine.run(a, b, CombatConfig(allow_flee=True), scripted([0.1]))
        assert result.outcome is CombatOutcome.FLED
        [entry] = result.log
        assert entry.action is ActionKind.FLEE
        assert entry.fled is True
        assert entry.flee_chance == pytest.approx(0.66)

    def test_failed_flee_consumes_turn(self, engine, make_combatant, scripted):
        a = make_combatant("Hero", hp=10)
        b = make_combatant("Troll")
        result = engine.run(a, b, CombatConfig(allow_flee=True, max_rounds=1), scripted([0.9], fallback=0.99))
        assert [e.action for e in result.log] == [ActionKind.FLEE, ActionKind.ATTACK, ActionKind.TIMEOUT]
        assert result.log[0].fled is False
        assert result.log[1].actor is B

    def test_no_flee_unless_allowed(self, engine, make_combatant, scripted):
        a = make_combatant("Hero", hp=10)
        b = make_combatant("Troll")
        result = engine.run(a, b, CombatConfig(max_rounds=1), scripted([], fallback=0.99))
        assert result.log[0].action is ActionKind.ATTACK

    def test_no_flee_above_threshold(self, engine, make_combatant, scripted):
        a = make_combatant("Hero", hp=30)
        b = make_combatant("Troll")
        result = engine.run(a, b, CombatConfig(allow_flee=True, max_rounds=1), scripted([], fallback=0.99))
        assert result.log[0].action is ActionKind.ATTACK


class TestSpells:
    def test_spell_ignores_accuracy_and_dodge(self, engine, make_combatant, scripted):
        a = make_combatant("Hero", hp=50, dodge=1000)
        b = make_combatant("Shaman", speed=5, spells=FixedSpells(actions=[
            SpellAction(round=1, name="Firebolt", damage=10),
        ]))
        result = engine.run(a, b, CombatConfig(max_rounds=1), scripted([], fallback=0.99))
        cast = result.log[0]
        assert cast.action is ActionKind.SPELL
        assert cast.spell_name == "Firebolt"
        assert cast.damage == 10
        assert cast.roll is None
        assert cast.combatant_a_hp_after == 40

    def test_spell_mitigated_by_magic_defence(self, engine, make_combatant, scripted):
        a = make_combatant("Hero", magic_defence=100)
        b = make_combatant("Shaman", speed=5, spells=FixedSpells(actions=[
            SpellAction(round=1, name="Firebolt", damage=10),
        ]))
        result = engine.run(a, b, CombatConfig(max_rounds=1), scripted([], fallback=0.99))
        assert result.log[0].damage == 5
        assert result.log[0].magic_defence_reduction == 5

    def test_heal_capped_at_max_hp(self, engine, make_combatant, scripted):
        b = make_combatant("Dryad", hp=95, max_hp=100, speed=5, spells=FixedSpells(actions=[
            SpellAction(round=1, name="Heal Self", heal=20),
        ]))
        result = engine.run(make_combatant("Hero"), b, CombatConfig(max_rounds=1), scripted([], fallback=0.99))
        assert result.log[0].heal_amount == 5
        assert result.log[0].combatant_b_hp_after == 100

    def test_spell_knockout(self, engine, make_combatant):
        b = make_combatant("Lich", speed=5, spells=FixedSpells(actions=[
            SpellAction(round=1, name="Doom", damage=500),
        ]))
        result = engine.run(make_combatant("Hero"), b, rng=random.Random(1))
        assert result.outcome is CombatOutcome.DEFEAT
        assert result.log[0].knockout is A

    def test_debuff_applies_and_expires(self, engine, make_combatant, scripted):
        a = make_combatant("Hero", accuracy=10)
        b = make_combatant("Pixie", dodge=10, speed=5, spells=FixedSpells(actions=[
            SpellAction(round=1, name="Confusion", effects=[SpellEffect(stat="accuracy", modifier=-5, duration=1)]),
        ]))
        result = engine.run(a, b, CombatConfig(max_rounds=2), scripted([], fallback=0.99))
        kinds = [e.action for e in result.log]
        assert kinds == [
            ActionKind.SPELL, ActionKind.ATTACK, ActionKind.EXPIRE,
            ActionKind.ATTACK, ActionKind.ATTACK, ActionKind.TIMEOUT,
        ]
        assert result.log[0].effects_applied[0].target is A
        # Debuffed during round 1 only
        assert result.log[1].accuracy_modifier == 5
        assert result.log[1].hit_chance == pytest.approx(1 / 3)
        expire = result.log[2]
        assert expire.round == 1
        assert [e.name for e in expire.effects_expired] == ["Confusion"]
        assert expire.actor is A
        assert result.log[4].hit_chance == pytest.approx(0.5)

    def test_procedural_prefix_spell_fires(self, engine, goblin_template, make_combatant):
        goblin = apply_mob_prefix(goblin_template, MobPrefix.SHAMAN).to_combatant()
        a = make_combatant("Tank", hp=10_000, max_hp=10_000)
        result = engine.run(a, goblin, CombatConfig(max_rounds=3), random.Random(1))
        assert any(e.spell_name == "Shamanic Bolt" and e.round == 3 for e in result.log)


class TestAutoPotion:
    POTIONS = [
        CombatPotion(template_id="p10", name="Tiny Potion", heal_amount=10),
        CombatPotion(template_id="p60", name="Large Potion", heal_amount=60),
        CombatPotion(template_id="p40", name="Medium Potion", heal_amount=40),
    ]

    def test_drinks_smallest_potion_covering_deficit(self, engine, make_combatant, scripted):
        a = make_combatant("Hero", hp=20)
        config = CombatConfig(max_rounds=1, auto_potion_threshold=50, potions=self.POTIONS)
        result = engine.run(a, make_combatant("Troll"), config, scripted([], fallback=0.99))
        drink = result.log[0]
        assert drink.action is ActionKind.POTION
        assert drink.heal_amount == 40
        assert drink.combatant_a_hp_after == 60
        assert [p.template_id for p in result.potions_consumed] == ["p40"]

    def test_strongest_when_none_covers(self, engine, make_combatant, scripted):
        a = make_combatant("Hero", hp=10)
        config = CombatConfig(max_rounds=1, auto_potion_threshold=90, potions=self.POTIONS[:2])
        result = engine.run(a, make_combatant("Troll"), config, scripted([], fallback=0.99))
        assert result.potions_consumed[0].template_id == "p60"

    def test_sickness_blocks_next_potion(self, engine, make_combatant, scripted):
        a = make_combatant("Hero", hp=20)
        potions = [CombatPotion(template_id="p10", name="Tiny Potion", heal_amount=10)] * 2
        config = CombatConfig(max_rounds=2, auto_potion_threshold=50, potions=potions)
        result = engine.run(a, make_combatant("Troll"), config, scripted([], fallback=0.99))
        assert [e.action for e in result.actions if e.actor is A] == [ActionKind.POTION, ActionKind.ATTACK]
        assert len(result.potions_consumed) == 1

    def test_disabled_by_default(self, engine, make_combatant, scripted):
        a = make_combatant("Hero", hp=5)
        config = CombatConfig(max_rounds=1, potions=self.POTIONS)
        result = engine.run(a, make_combatant("Troll"), config, scripted([], fallback=0.99))
        assert result.potions_consumed == []


class TestProperties:
    SEEDS = range(25)

    def _fight(self, engine, goblin_template, seed):
        goblin = apply_mob_prefix(goblin_template, MobPrefix.FEROCIOUS).to_combatant()
        return engine.run(_player(), goblin, rng=random.Random(seed))

    @pytest.mark.parametrize("seed", SEEDS)
    def test_hp_stays_in_bounds(self, engine, goblin_template, seed):
        result = self._fight(engine, goblin_template, seed)
        for entry in result.log:
            assert 0 <= entry.combatant_a_hp_after <= result.combatant_a_max_hp
            assert 0 <= entry.combatant_b_hp_after <= result.combatant_b_max_hp

    @pytest.mark.parametrize("seed", SEEDS)
    def test_one_entry_per_action(self, engine, goblin_template, seed):
        result = self._fight(engine, goblin_template, seed)
        rounds = [e.round for e in result.log]
        assert rounds == sorted(rounds)
        per_round = [sum(1 for e in result.actions if e.round == r) for r in range(1, result.rounds + 1)]
        assert all(count == 2 for count in per_round[:-1])
        assert per_round[-1] in (1, 2)

    @pytest.mark.parametrize("seed", [0, 7, 99])
    def test_deterministic_for_a_seed(self, engine, goblin_template, seed):
        first = self._fight(engine, goblin_template, seed)
        second = self._fight(engine, goblin_template, seed)
        assert first.model_dump() == second.model_dump()

    def test_inputs_untouched(self, engine, make_combatant):
        a = make_combatant("Hero", accuracy=5)
        b = make_combatant("Pixie", speed=5, spells=FixedSpells(actions=[
            SpellAction(round=1, name="Confusion", effects=[SpellEffect(stat="accuracy", modifier=-5, duration=3)]),
        ]))
        before = (a.model_dump(), b.model_dump())
        engine.run(a, b, CombatConfig(max_rounds=5), random.Random(3))
        assert (a.model_dump(), b.model_dump()) == before


class TestRewardsWiring:
    def test_rewards_only_with_context(self, engine, make_combatant):
        a = make_combatant("Hero", attack=20, accuracy=1.0)
        b = make_combatant("Rat", hp=10)
        assert engine.run(a, b, rng=random.Random(1)).rewards is None
        result = engine.run(a, b, rng=random.Random(1), reward_context=RewardContext(xp_reward=12))
        assert result.rewards is not None
        assert result.rewards.xp == 12
