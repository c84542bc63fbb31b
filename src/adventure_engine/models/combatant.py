from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from adventure_engine.models.rewards import DropTableEntry
from adventure_engine.models.spells import SpellAction, SpellSource


class DamageType(str, Enum):
    PHYSICAL = "physical"
    MAGIC = "magic"


class AttackStyle(str, Enum):
    MELEE = "melee"
    RANGED = "ranged"
    MAGIC = "magic"


class CombatantStats(BaseModel):
    """Resolved stats, fixed for the duration of one combat."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    hp: int
    max_hp: int
    attack: int = 0
    accuracy: float = 0
    defence: int = 0
    magic_defence: int = 0
    dodge: float = 0
    evasion: float = 0
    damage_min: int = 1
    damage_max: int = 1
    speed: int = 0
    crit_chance: float = 0.05
    crit_damage: float = 1.5
    damage_type: DamageType = DamageType.PHYSICAL


class ItemStats(BaseModel):
    """Additive bonuses contributed by one piece of equipment."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    attack: int = 0
    ranged_power: int = 0
    magic_power: int = 0
    accuracy: int = 0
    armor: int = 0
    magic_defence: int = 0
    health: int = 0
    dodge: int = 0
    evasion: int = 0
    crit_chance: float = 0
    crit_damage: float = 0


class PlayerAttributes(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    vitality: int = 0
    strength: int = 0
    dexterity: int = 0
    intelligence: int = 0
    evasion: int = 0


class StatMultipliers(BaseModel):
    """Multipliers applied to a mob's base stats. Absent entries mean x1."""

    model_config = ConfigDict(frozen=True)

    hp: Optional[float] = None
    attack: Optional[float] = None
    defence: Optional[float] = None
    magic_defence: Optional[float] = None
    evasion: Optional[float] = None
    damage_min: Optional[float] = None
    damage_max: Optional[float] = None


class ZoneModifiers(BaseModel):
    """World-event multipliers on mob stats in the zone a fight happens in.

    Event drop and XP bonuses belong to the reward step and are passed in
    ``RewardContext``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    mob_hp_multiplier: float = 1.0
    mob_damage_multiplier: float = 1.0


class MobTemplate(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    zone_id: str = ""
    level: int = 1
    hp: int
    attack: int = 0
    accuracy: int = 0
    defence: int = 0
    magic_defence: int = 0
    evasion: int = 0
    damage_min: int = 1
    damage_max: int = 1
    speed: int = 0
    xp_reward: int = 0
    damage_type: DamageType = DamageType.PHYSICAL
    spell_pattern: list[SpellAction] = Field(default_factory=list)
    drop_table: list[DropTableEntry] = Field(default_factory=list)


class Combatant(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    stats: CombatantStats
    spells: Optional[SpellSource] = None
