from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SkillType(str, Enum):
    MELEE = "melee"
    RANGED = "ranged"
    MAGIC = "magic"
    MINING = "mining"
    FORAGING = "foraging"
    WOODCUTTING = "woodcutting"
    REFINING = "refining"
    TANNING = "tanning"
    WEAVING = "weaving"
    WEAPONSMITHING = "weaponsmithing"
    ARMORSMITHING = "armorsmithing"
    LEATHERWORKING = "leatherworking"
    TAILORING = "tailoring"
    ALCHEMY = "alchemy"


class SkillCategory(str, Enum):
    COMBAT = "combat"
    GATHERING = "gathering"
    PROCESSING = "processing"
    CRAFTING = "crafting"


SKILL_CATEGORIES: dict[SkillType, SkillCategory] = {
    SkillType.MELEE: SkillCategory.COMBAT,
    SkillType.RANGED: SkillCategory.COMBAT,
    SkillType.MAGIC: SkillCategory.COMBAT,
    SkillType.MINING: SkillCategory.GATHERING,
    SkillType.FORAGING: SkillCategory.GATHERING,
    SkillType.WOODCUTTING: SkillCategory.GATHERING,
    SkillType.REFINING: SkillCategory.PROCESSING,
    SkillType.TANNING: SkillCategory.PROCESSING,
    SkillType.WEAVING: SkillCategory.PROCESSING,
    SkillType.WEAPONSMITHING: SkillCategory.CRAFTING,
    SkillType.ARMORSMITHING: SkillCategory.CRAFTING,
    SkillType.LEATHERWORKING: SkillCategory.CRAFTING,
    SkillType.TAILORING: SkillCategory.CRAFTING,
    SkillType.ALCHEMY: SkillCategory.CRAFTING,
}


class DropTableEntry(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    item_template_id: str
    drop_chance: float = Field(ge=0)
    min_quantity: int = 1
    max_quantity: int = 1


class LootDrop(BaseModel):
    item_template_id: str
    quantity: int


class EquippedItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    item_id: str
    name: str = ""
    item_type: str = "weapon"
    current_durability: int
    max_durability: int

    @property
    def has_durability(self) -> bool:
        return self.item_type in ("weapon", "armor")


class DurabilityLoss(BaseModel):
    item_id: str
    item_name: str = ""
    amount: int
    new_durability: int
    max_durability: int
    is_broken: bool = False
    crossed_warning_threshold: bool = False


class SkillProgress(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    skill_type: SkillType
    xp: int = 0
    level: int = 1
    # XP already credited in the current efficiency window
    window_xp: int = 0


class CharacterProgress(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    xp: int = 0
    level: int = 1
    attribute_points: int = 0


class SkillXpResult(BaseModel):
    xp_gained: int
    xp_after_efficiency: int
    efficiency: float
    leveled_up: bool
    new_level: int
    at_daily_cap: bool
    new_total_xp: int = 0
    new_window_xp: int = 0
    levels_gained: int = 0


class CharacterXpResult(BaseModel):
    xp_gained: int
    xp_after: int
    level_before: int
    level_after: int
    attribute_points_after: int

    @property
    def leveled_up(self) -> bool:
        return self.level_after > self.level_before


class FleeOutcome(str, Enum):
    CLEAN_ESCAPE = "clean_escape"
    WOUNDED_ESCAPE = "wounded_escape"
    KNOCKOUT = "knockout"


class FleePenalty(BaseModel):
    outcome: FleeOutcome
    remaining_hp: int
    gold_lost: int
    recovery_cost: Optional[int] = None


class RewardContext(BaseModel):
    """Everything the reward step needs that the fight itself does not produce."""

    xp_reward: int = 0
    drop_table: list[DropTableEntry] = Field(default_factory=list)
    skill: Optional[SkillProgress] = None
    character: CharacterProgress = Field(default_factory=CharacterProgress)
    drop_chance_multiplier: float = 1.0
    event_drop_multiplier: float = 1.0
    event_xp_multiplier: float = 1.0
    equipment: list[EquippedItem] = Field(default_factory=list)
    current_gold: int = 0
    # Combatant A's evasion attribute, which drives the escape roll after a defeat
    evasion: int = Field(0, ge=0)
    # Share of the XP reward still granted when the player flees
    fled_xp_fraction: float = Field(0.0, ge=0, le=1)


class Rewards(BaseModel):
    xp: int = 0
    loot: list[LootDrop] = Field(default_factory=list)
    skill_xp: Optional[SkillXpResult] = None
    character_xp: Optional[CharacterXpResult] = None
    durability_lost: list[DurabilityLoss] = Field(default_factory=list)
    penalty: Optional[FleePenalty] = None
