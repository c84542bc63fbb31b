"""Tests for src/adventure_engine/models/spells.py."""
from __future__ import annotations

import pytest
from pydantic import TypeAdapter

from adventure_engine.models.spells import (
    DamageFormula,
    FixedSpells,
    ProceduralSpells,
    SpellAction,
    SpellSource,
    SpellTemplate,
)


def _procedural(start: int = 3, interval: int = 3, formula: DamageFormula = DamageFormula.AVG,
                multiplier: float = 1.0, low: int = 4, high: int = 9) -> ProceduralSpells:
    return ProceduralSpells(
        template=SpellTemplate(
            start_round=start, interval=interval, damage_formula=formula,
            damage_multiplier=multiplier, action_name="Bolt",
        ),
        damage_min=low,
        damage_max=high,
    )


class TestFixedSpells:
    def test_lookup_by_round(self):
        spells = FixedSpells(actions=[SpellAction(round=2, name="Hex"), SpellAction(round=4, name="Bolt")])
        assert spells.spell_at(2).name == "Hex"
        assert spells.spell_at(3) is None

    def test_first_entry_for_a_round_wins(self):
        spells = FixedSpells(actions=[SpellAction(round=2, name="First"), SpellAction(round=2, name="Second")])
        assert spells.spell_at(2).name == "First"


class TestProceduralSpells:
    @pytest.mark.parametrize("round_number, casts", [
        (1, False), (2, False), (3, True), (4, False), (6, True), (9, True), (10, False),
    ])
    def test_cadence(self, round_number, casts):
        assert _procedural().casts_on(round_number) is casts

    @pytest.mark.parametrize("start, interval", [(0, 3), (3, 0), (-1, 2), (2, -2)])
    def test_non_positive_never_casts(self, start, interval):
        spells = _procedural(start=start, interval=interval)
        assert not any(spells.casts_on(r) for r in range(1, 20))

    @pytest.mark.parametrize("formula, multiplier, expected", [
        (DamageFormula.AVG, 1.0, 6),
        (DamageFormula.MIN, 1.0, 4),
        (DamageFormula.MAX, 0.9, 8),
        (DamageFormula.AVG, 1.2, 7),
        (DamageFormula.MIN, 0.01, 1),
    ])
    def test_damage(self, formula, multiplier, expected):
        assert _procedural(formula=formula, multiplier=multiplier).damage == expected

    def test_spell_at_builds_action(self):
        action = _procedural().spell_at(6)
        assert action.name == "Bolt"
        assert action.round == 6
        assert action.damage == 6
        assert _procedural().spell_at(5) is None


class TestSpellSource:
    def test_discriminated_by_kind(self):
        adapter = TypeAdapter(SpellSource)
        fixed = adapter.validate_python({"kind": "fixed", "actions": [{"round": 1, "name": "Hex"}]})
        assert isinstance(fixed, FixedSpells)
        procedural = adapter.validate_python({
            "kind": "procedural",
            "template": {"start_round": 2, "interval": 2, "action_name": "Burst"},
            "damage_min": 1,
            "damage_max": 3,
        })
        assert isinstance(procedural, ProceduralSpells)
