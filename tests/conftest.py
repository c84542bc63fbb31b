"""Shared fixtures for the adventure engine test suite."""
from __future__ import annotations

import random
from typing import Any, Callable

import pytest

from adventure_engine.models.combatant import Combatant, CombatantStats, MobTemplate
from adventure_engine.models.rewards import DropTableEntry
from adventure_engine.models.spells import SpellAction
from adventure_engine.rules import DEFAULT_RULES, RulesConfig
from adventure_engine.systems.combat.engine import CombatEngine


class ScriptedRandom:
    """Random source that replays a fixed list of values.

    Once the script runs out it keeps returning ``fallback``; without a
    fallback an exhausted script fails the test.
    """

    def __init__(self, values: list[float], fallback: float | None = None):
        self.values = list(values)
        self.fallback = fallback
        self.calls = 0

    def random(self) -> float:
        self.calls += 1
        if self.values:
            return self.values.pop(0)
        if self.fallback is None:
            raise AssertionError(f"ScriptedRandom exhausted after {self.calls - 1} draws")
        return self.fallback


@pytest.fixture
def scripted() -> Callable[..., ScriptedRandom]:
    return ScriptedRandom


@pytest.fixture
def seeded_rng() -> random.Random:
    return random.Random(42)


@pytest.fixture
def rules() -> RulesConfig:
    return DEFAULT_RULES


@pytest.fixture
def engine() -> CombatEngine:
    return CombatEngine()


@pytest.fixture
def make_combatant() -> Callable[..., Combatant]:
    def _make(name: str = "Fighter", spells: Any = None, **stats: Any) -> Combatant:
        stats.setdefault("hp", 100)
        stats.setdefault("max_hp", max(100, stats["hp"]))
        stats.setdefault("crit_chance", 0.0)
        return Combatant(
            id=name.lower().replace(" ", "_"),
            name=name,
            stats=CombatantStats(**stats),
            spells=spells,
        )
    return _make


@pytest.fixture
def goblin_template() -> MobTemplate:
    return MobTemplate(
        id="goblin",
        name="Goblin",
        zone_id="cave_entrance",
        level=3,
        hp=40,
        attack=10,
        accuracy=9,
        defence=10,
        magic_defence=7,
        evasion=10,
        damage_min=10,
        damage_max=20,
        speed=4,
        xp_reward=30,
        spell_pattern=[
            SpellAction(round=4, name="Fire Bolt", damage=8),
            SpellAction(round=2, name="Hex", effects=[{"stat": "accuracy", "modifier": -3, "duration": 2}]),
        ],
        drop_table=[
            DropTableEntry(item_template_id="goblin_ear", drop_chance=0.5),
            DropTableEntry(item_template_id="copper_coin", drop_chance=1.0, min_quantity=2, max_quantity=5),
        ],
    )
