"""Mob prefix variants. Pure data plus the function that applies one to a mob."""
from __future__ import annotations

import math
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict

from adventure_engine.mechanics.stats import mob_to_combatant_stats, resolve_stats
from adventure_engine.models.combatant import Combatant, MobTemplate, StatMultipliers, ZoneModifiers
from adventure_engine.models.spells import DamageFormula, FixedSpells, ProceduralSpells, SpellTemplate
from adventure_engine.rules import DEFAULT_RULES, RulesConfig

# Spawn weight of an unprefixed mob, on the same scale as MobPrefixDefinition.weight
NO_PREFIX_WEIGHT = 100


class MobPrefix(str, Enum):
    WEAK = "weak"
    FRAIL = "frail"
    TOUGH = "tough"
    GIGANTIC = "gigantic"
    SWIFT = "swift"
    FEROCIOUS = "ferocious"
    SHAMAN = "shaman"
    VENOMOUS = "venomous"
    ANCIENT = "ancient"
    SPECTRAL = "spectral"


class MobPrefixDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: MobPrefix
    display_name: str
    description: str
    weight: int
    stat_multipliers: StatMultipliers
    xp_multiplier: float
    drop_chance_multiplier: float
    spell_template: Optional[SpellTemplate] = None


MOB_PREFIX_DEFINITIONS: dict[MobPrefix, MobPrefixDefinition] = {
    MobPrefix.WEAK: MobPrefixDefinition(
        key=MobPrefix.WEAK,
        display_name="Weak",
        description="Underfed and fragile, but still dangerous in numbers.",
        weight=15,
        stat_multipliers=StatMultipliers(hp=0.6, attack=0.8, defence=0.7, damage_min=0.7, damage_max=0.7),
        xp_multiplier=0.6,
        drop_chance_multiplier=0.8,
    ),
    MobPrefix.FRAIL: MobPrefixDefinition(
        key=MobPrefix.FRAIL,
        display_name="Frail",
        description="Brittle and clumsy, with poor defences and dodging.",
        weight=8,
        stat_multipliers=StatMultipliers(hp=0.8, defence=0.5, evasion=0.5),
        xp_multiplier=0.9,
        drop_chance_multiplier=1.0,
    ),
    MobPrefix.TOUGH: MobPrefixDefinition(
        key=MobPrefix.TOUGH,
        display_name="Tough",
        description="Hardened hide and resilience make it harder to bring down.",
        weight=8,
        stat_multipliers=StatMultipliers(hp=1.5, defence=1.3, damage_min=1.1, damage_max=1.1),
        xp_multiplier=1.3,
        drop_chance_multiplier=1.2,
    ),
    MobPrefix.GIGANTIC: MobPrefixDefinition(
        key=MobPrefix.GIGANTIC,
        display_name="Gigantic",
        description="Massive and relentless, though too large to evade well.",
        weight=4,
        stat_multipliers=StatMultipliers(hp=2.0, defence=1.2, evasion=0.5, damage_min=1.3, damage_max=1.3),
        xp_multiplier=1.6,
        drop_chance_multiplier=1.3,
    ),
    MobPrefix.SWIFT: MobPrefixDefinition(
        key=MobPrefix.SWIFT,
        display_name="Swift",
        description="Fast and elusive, trading resilience for mobility.",
        weight=6,
        stat_multipliers=StatMultipliers(hp=0.8, defence=0.8, evasion=2.0, damage_min=0.95, damage_max=0.95),
        xp_multiplier=1.2,
        drop_chance_multiplier=1.0,
    ),
    MobPrefix.FEROCIOUS: MobPrefixDefinition(
        key=MobPrefix.FEROCIOUS,
        display_name="Ferocious",
        description="Aggressive and vicious, hitting far above its base threat.",
        weight=5,
        stat_multipliers=StatMultipliers(hp=1.2, attack=1.4, defence=0.9, damage_min=1.4, damage_max=1.4),
        xp_multiplier=1.4,
        drop_chance_multiplier=1.2,
    ),
    MobPrefix.SHAMAN: MobPrefixDefinition(
        key=MobPrefix.SHAMAN,
        display_name="Shaman",
        description="Mystic variant that channels periodic spell bursts.",
        weight=3,
        stat_multipliers=StatMultipliers(attack=0.8, defence=0.8, damage_min=0.8, damage_max=0.8),
        xp_multiplier=1.5,
        drop_chance_multiplier=1.3,
        spell_template=SpellTemplate(
            start_round=3, interval=3, damage_formula=DamageFormula.AVG,
            damage_multiplier=1.2, action_name="Shamanic Bolt",
        ),
    ),
    MobPrefix.VENOMOUS: MobPrefixDefinition(
        key=MobPrefix.VENOMOUS,
        display_name="Venomous",
        description="Carries toxic attacks that strike on a repeating cadence.",
        weight=4,
        stat_multipliers=StatMultipliers(hp=1.1),
        xp_multiplier=1.3,
        drop_chance_multiplier=1.2,
        spell_template=SpellTemplate(
            start_round=2, interval=4, damage_formula=DamageFormula.MAX,
            damage_multiplier=0.9, action_name="Venom Spit",
        ),
    ),
    MobPrefix.ANCIENT: MobPrefixDefinition(
        key=MobPrefix.ANCIENT,
        display_name="Ancient",
        description="A rare elder specimen with power in every stat.",
        weight=1,
        stat_multipliers=StatMultipliers(
            hp=1.5, attack=1.3, defence=1.3, evasion=1.3, damage_min=1.3, damage_max=1.3,
        ),
        xp_multiplier=2.0,
        drop_chance_multiplier=2.0,
    ),
    MobPrefix.SPECTRAL: MobPrefixDefinition(
        key=MobPrefix.SPECTRAL,
        display_name="Spectral",
        description="Ghostlike and hard to hit, casting rapidly from round 2.",
        weight=2,
        stat_multipliers=StatMultipliers(hp=0.7, defence=0.5, evasion=3.0, damage_min=0.6, damage_max=0.6),
        xp_multiplier=1.7,
        drop_chance_multiplier=1.5,
        spell_template=SpellTemplate(
            start_round=2, interval=2, damage_formula=DamageFormula.AVG,
            damage_multiplier=0.8, action_name="Spectral Burst",
        ),
    ),
}


def get_prefix_definition(prefix: MobPrefix | str | None) -> MobPrefixDefinition | None:
    """Look up a prefix. Unknown keys and None mean no prefix."""
    if not prefix:
        return None
    try:
        return MOB_PREFIX_DEFINITIONS[MobPrefix(prefix)]
    except ValueError:
        return None


def all_prefixes() -> list[MobPrefixDefinition]:
    return list(MOB_PREFIX_DEFINITIONS.values())


class PrefixedMob(BaseModel):
    """A mob template with its spawn variant resolved."""

    model_config = ConfigDict(frozen=True)

    mob: MobTemplate
    prefix: Optional[MobPrefix] = None
    display_name: str
    xp_reward: int
    drop_chance_multiplier: float = 1.0
    stat_multipliers: Optional[StatMultipliers] = None
    spell_template: Optional[SpellTemplate] = None

    def to_combatant(
        self,
        event_modifiers: ZoneModifiers | None = None,
        current_hp: int | None = None,
        rules: RulesConfig = DEFAULT_RULES,
    ) -> Combatant:
        """Resolve final stats and the spell source for this spawn."""
        stats = resolve_stats(
            mob_to_combatant_stats(self.mob, rules=rules),
            prefix_multipliers=self.stat_multipliers,
            event_modifiers=event_modifiers,
            rules=rules,
        )
        if current_hp is not None:
            stats = stats.model_copy(update={"hp": max(0, min(current_hp, stats.max_hp))})

        if self.spell_template is not None:
            spells = ProceduralSpells(
                template=self.spell_template,
                damage_min=stats.damage_min,
                damage_max=stats.damage_max,
            )
        else:
            ordered = sorted((s for s in self.mob.spell_pattern if s.round > 0), key=lambda s: s.round)
            spells = FixedSpells(actions=ordered)

        return Combatant(id=self.mob.id, name=self.display_name, stats=stats, spells=spells)


def apply_mob_prefix(mob: MobTemplate, prefix: MobPrefix | str | None) -> PrefixedMob:
    """Attach a prefix variant to a mob.

    A prefix with a spell template replaces the mob's fixed spell list with a
    procedural one. XP is scaled here; drop chances are scaled when loot is
    rolled.
    """
    definition = get_prefix_definition(prefix)
    if definition is None:
        return PrefixedMob(mob=mob, display_name=mob.name, xp_reward=mob.xp_reward)

    xp_reward = max(1, math.floor(mob.xp_reward * definition.xp_multiplier))
    return PrefixedMob(
        mob=mob,
        prefix=definition.key,
        display_name=f"{definition.display_name} {mob.name}",
        xp_reward=xp_reward,
        drop_chance_multiplier=definition.drop_chance_multiplier,
        stat_multipliers=definition.stat_multipliers,
        spell_template=definition.spell_template,
    )
