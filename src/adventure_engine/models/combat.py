from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from adventure_engine.models.combatant import AttackStyle
from adventure_engine.models.rewards import Rewards


class CombatActor(str, Enum):
    COMBATANT_A = "combatantA"
    COMBATANT_B = "combatantB"

    @property
    def opponent(self) -> CombatActor:
        if self is CombatActor.COMBATANT_A:
            return CombatActor.COMBATANT_B
        return CombatActor.COMBATANT_A


class ActionKind(str, Enum):
    ATTACK = "attack"
    SPELL = "spell"
    DEFEND = "defend"
    FLEE = "flee"
    POTION = "potion"
    # Bookkeeping entries, not actions taken by a combatant
    EXPIRE = "expire"
    TIMEOUT = "timeout"


COMBATANT_ACTIONS = frozenset({
    ActionKind.ATTACK, ActionKind.SPELL, ActionKind.DEFEND, ActionKind.FLEE, ActionKind.POTION,
})


class CombatOutcome(str, Enum):
    VICTORY = "victory"
    DEFEAT = "defeat"
    FLED = "fled"
    DRAW = "draw"


class CombatPotion(BaseModel):
    model_config = ConfigDict(frozen=True)

    template_id: str
    name: str
    heal_amount: int = Field(gt=0)


class PotionConsumed(BaseModel):
    template_id: str
    name: str
    heal_amount: int
    round: int


class CombatConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    attack_skill: AttackStyle = AttackStyle.MELEE
    allow_flee: bool = False
    max_rounds: Optional[int] = None
    # Combatant A tries to flee once its HP fraction drops below this
    flee_hp_threshold: float = Field(0.25, ge=0, le=1)
    round_cap_outcome: CombatOutcome = CombatOutcome.DEFEAT
    # Percent of max HP below which combatant A drinks a potion; 0 disables
    auto_potion_threshold: float = Field(0, ge=0, le=100)
    potions: list[CombatPotion] = Field(default_factory=list)


class AppliedEffect(BaseModel):
    stat: str
    modifier: float
    duration: int
    target: CombatActor


class ExpiredEffect(BaseModel):
    name: str
    target: CombatActor


class CombatLogEntry(BaseModel):
    round: int
    actor: CombatActor
    actor_name: str
    action: ActionKind
    message: str
    roll: Optional[float] = None
    hit_chance: Optional[float] = None
    evaded: Optional[bool] = None
    attack_modifier: Optional[int] = None
    accuracy_modifier: Optional[float] = None
    target_dodge: Optional[float] = None
    target_evasion: Optional[float] = None
    target_defence: Optional[int] = None
    target_magic_defence: Optional[int] = None
    raw_damage: Optional[int] = None
    damage: Optional[int] = None
    armor_reduction: Optional[int] = None
    magic_defence_reduction: Optional[int] = None
    is_critical: Optional[bool] = None
    crit_multiplier: Optional[float] = None
    heal_amount: Optional[int] = None
    spell_name: Optional[str] = None
    effects_applied: Optional[list[AppliedEffect]] = None
    effects_expired: Optional[list[ExpiredEffect]] = None
    flee_chance: Optional[float] = None
    fled: Optional[bool] = None
    knockout: Optional[CombatActor] = None
    round_cap_reached: bool = False
    combatant_a_hp_after: int
    combatant_b_hp_after: int


class CombatResult(BaseModel):
    outcome: CombatOutcome
    log: list[CombatLogEntry]
    combatant_a_max_hp: int
    combatant_b_max_hp: int
    combatant_a_hp_remaining: int
    combatant_b_hp_remaining: int
    rounds: int
    round_cap_reached: bool = False
    potions_consumed: list[PotionConsumed] = Field(default_factory=list)
    rewards: Optional[Rewards] = None

    @property
    def actions(self) -> list[CombatLogEntry]:
        return [e for e in self.log if e.action in COMBATANT_ACTIONS]


@dataclass
class ActiveEffect:
    name: str
    target: CombatActor
    stat: str
    modifier: float
    remaining_rounds: int


@dataclass
class CombatState:
    """Mutable state owned by a single combat invocation."""

    combatant_a_hp: int
    combatant_a_max_hp: int
    combatant_b_hp: int
    combatant_b_max_hp: int
    round: int = 0
    log: list[CombatLogEntry] = field(default_factory=list)
    outcome: CombatOutcome | None = None
    active_effects: list[ActiveEffect] = field(default_factory=list)
    potions: list[CombatPotion] = field(default_factory=list)
    potions_consumed: list[PotionConsumed] = field(default_factory=list)

    def hp(self, actor: CombatActor) -> int:
        if actor is CombatActor.COMBATANT_A:
            return self.combatant_a_hp
        return self.combatant_b_hp

    def max_hp(self, actor: CombatActor) -> int:
        if actor is CombatActor.COMBATANT_A:
            return self.combatant_a_max_hp
        return self.combatant_b_max_hp

    def set_hp(self, actor: CombatActor, value: int) -> None:
        value = max(0, min(self.max_hp(actor), value))
        if actor is CombatActor.COMBATANT_A:
            self.combatant_a_hp = value
        else:
            self.combatant_b_hp = value

    def hp_snapshot(self) -> dict[str, int]:
        return {
            "combatant_a_hp_after": max(0, self.combatant_a_hp),
            "combatant_b_hp_after": max(0, self.combatant_b_hp),
        }
