"""Spell data and the two ways a combatant can carry a spell pattern."""
from __future__ import annotations

import math
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class DamageFormula(str, Enum):
    AVG = "avg"
    MIN = "min"
    MAX = "max"


class EffectStat(str, Enum):
    """Stats a timed effect may shift. Potion sickness only marks a cooldown."""

    ATTACK = "attack"
    ACCURACY = "accuracy"
    DEFENCE = "defence"
    MAGIC_DEFENCE = "magic_defence"
    DODGE = "dodge"
    EVASION = "evasion"
    SPEED = "speed"
    CRIT_CHANCE = "crit_chance"
    DAMAGE_MIN = "damage_min"
    DAMAGE_MAX = "damage_max"
    POTION_SICKNESS = "potion_sickness"


class SpellEffect(BaseModel):
    model_config = ConfigDict(frozen=True)

    stat: EffectStat
    modifier: float
    duration: int = Field(ge=1)


class SpellAction(BaseModel):
    model_config = ConfigDict(frozen=True)

    round: int
    name: str
    damage: Optional[int] = None
    heal: Optional[int] = None
    effects: list[SpellEffect] = Field(default_factory=list)


class SpellTemplate(BaseModel):
    model_config = ConfigDict(frozen=True)

    start_round: int
    interval: int
    damage_formula: DamageFormula = DamageFormula.AVG
    damage_multiplier: float = 1.0
    action_name: str


class FixedSpells(BaseModel):
    """An explicit list of casts keyed by round. The first entry for a round wins."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["fixed"] = "fixed"
    actions: list[SpellAction] = Field(default_factory=list)

    def spell_at(self, round_number: int) -> SpellAction | None:
        for action in self.actions:
            if action.round == round_number:
                return action
        return None


class ProceduralSpells(BaseModel):
    """Casts generated from a template on a repeating cadence."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["procedural"] = "procedural"
    template: SpellTemplate
    damage_min: int
    damage_max: int

    @property
    def damage(self) -> int:
        if self.template.damage_formula == DamageFormula.MIN:
            base = self.damage_min
        elif self.template.damage_formula == DamageFormula.MAX:
            base = self.damage_max
        else:
            base = (self.damage_min + self.damage_max) // 2
        return max(1, math.floor(base * self.template.damage_multiplier))

    def casts_on(self, round_number: int) -> bool:
        t = self.template
        if t.interval <= 0 or t.start_round <= 0:
            return False
        return round_number >= t.start_round and (round_number - t.start_round) % t.interval == 0

    def spell_at(self, round_number: int) -> SpellAction | None:
        if not self.casts_on(round_number):
            return None
        return SpellAction(round=round_number, name=self.template.action_name, damage=self.damage)


SpellSource = Annotated[Union[FixedSpells, ProceduralSpells], Field(discriminator="kind")]
