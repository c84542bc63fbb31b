"""Balance constants for combat, progression and penalties.

All tunable values live in one immutable ``RulesConfig`` that is handed to the
engine at construction. ``DEFAULT_RULES`` holds the live game balance; a TOML
file can override any subset of it::

    [combat]
    min_damage = 2

    [skills]
    daily_cap_combat = 10000
"""
from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from adventure_engine.errors import InvalidCombatInput


class _Rules(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class CombatRules(_Rules):
    # Fallback hit chance when neither side has accuracy or avoidance
    base_hit_chance: float = Field(0.7, gt=0, le=1)
    min_hit_chance: float = Field(0.05, gt=0, le=1)
    crit_chance: float = Field(0.05, ge=0, le=1)
    crit_multiplier: float = Field(1.5, ge=1)
    min_damage: int = Field(1, ge=1)
    # Share of the attack stat added on top of the weapon damage roll
    attack_damage_ratio: float = Field(0.5, ge=0)
    max_rounds: int = Field(100, ge=1)


class SkillRules(_Rules):
    xp_base: int = Field(100, gt=0)
    xp_exponent: float = Field(1.5, gt=0)
    max_level: int = Field(100, ge=1)
    xp_window_hours: int = Field(3, ge=1, le=24)
    daily_cap_combat: int = Field(20_000, gt=0)
    daily_cap_gathering: int = Field(30_000, gt=0)
    daily_cap_processing: int = Field(30_000, gt=0)
    daily_cap_crafting: int = Field(30_000, gt=0)
    efficiency_decay_power: float = Field(2.0, gt=0)

    @property
    def windows_per_day(self) -> int:
        return max(1, 24 // self.xp_window_hours)


class CharacterRules(_Rules):
    # Character XP earned per point of skill XP credited
    xp_ratio: float = Field(0.3, gt=0, le=1)
    xp_base: int = Field(100, gt=0)
    xp_exponent: float = Field(1.5, gt=0)
    max_level: int = Field(100, ge=1)
    attribute_points_per_level: int = Field(1, ge=0)
    melee_damage_per_strength: float = 1.0
    ranged_damage_per_dexterity: float = 1.0
    magic_damage_per_intelligence: float = 1.0
    accuracy_per_dexterity: float = 0.5
    evasion_to_speed_divisor: int = Field(2, ge=1)


class FleeRules(_Rules):
    base_flee_chance: float = Field(0.3, ge=0, le=1)
    min_flee_chance: float = Field(0.05, ge=0, le=1)
    max_flee_chance: float = Field(0.95, ge=0, le=1)
    # Added in full when HP is at 0, scaled linearly by missing HP fraction
    wounded_flee_bonus: float = Field(0.4, ge=0)
    flee_chance_per_speed: float = 0.02
    # Escape chance after a knockout blow grows with the evasion attribute
    flee_chance_per_evasion: float = Field(0.01, ge=0)
    high_success_threshold: float = Field(0.8, ge=0, le=1)
    high_success_hp_percent: float = Field(0.25, ge=0, le=1)
    partial_success_hp: int = Field(1, ge=1)
    gold_loss_minor: float = Field(0.05, ge=0, le=1)
    gold_loss_moderate: float = Field(0.15, ge=0, le=1)
    gold_loss_severe: float = Field(0.3, ge=0, le=1)


class DurabilityRules(_Rules):
    combat_degradation: int = Field(1, ge=0)
    decay_per_hit: float = Field(0.25, ge=0)
    warning_threshold: float = Field(0.25, gt=0, lt=1)


class PotionRules(_Rules):
    auto_potion_sickness_duration: int = Field(3, ge=1)


class RulesConfig(_Rules):
    combat: CombatRules = Field(default_factory=CombatRules)
    skills: SkillRules = Field(default_factory=SkillRules)
    character: CharacterRules = Field(default_factory=CharacterRules)
    flee: FleeRules = Field(default_factory=FleeRules)
    durability: DurabilityRules = Field(default_factory=DurabilityRules)
    potions: PotionRules = Field(default_factory=PotionRules)


DEFAULT_RULES = RulesConfig()


def _merge(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def rules_from_dict(overrides: dict[str, Any], base: RulesConfig = DEFAULT_RULES) -> RulesConfig:
    """Build a RulesConfig from partial overrides layered on ``base``."""
    try:
        return RulesConfig.model_validate(_merge(base.model_dump(), overrides))
    except ValidationError as exc:
        raise InvalidCombatInput(f"Invalid rules: {exc}") from exc


def load_rules(path: str | Path, base: RulesConfig = DEFAULT_RULES) -> RulesConfig:
    """Load a TOML rules override file."""
    filepath = Path(path)
    try:
        with open(filepath, "rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError as exc:
        raise InvalidCombatInput(f"Rules file not found: {filepath}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise InvalidCombatInput(f"Rules file {filepath} is not valid TOML: {exc}") from exc
    return rules_from_dict(data, base)
