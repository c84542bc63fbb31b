"""XP curves, efficiency and level-up mechanics. Pure math, no I/O."""
from __future__ import annotations

import math

from adventure_engine.models.rewards import (
    SKILL_CATEGORIES,
    CharacterProgress,
    CharacterXpResult,
    SkillCategory,
    SkillType,
    SkillXpResult,
)
from adventure_engine.rules import CharacterRules, SkillRules


def xp_for_level(level: int, base: int, exponent: float) -> int:
    """Total XP required to reach the given level. Level 1 needs none."""
    if level <= 1:
        return 0
    return math.floor(base * math.pow(level, exponent))


def level_for_xp(total_xp: int, base: int, exponent: float, max_level: int) -> int:
    """Determine level from total XP. Several thresholds may be crossed at once."""
    if total_xp <= 0:
        return 1
    level = 1
    while level < max_level and xp_for_level(level + 1, base, exponent) <= total_xp:
        level += 1
    return level


def skill_xp_for_level(level: int, rules: SkillRules) -> int:
    return xp_for_level(level, rules.xp_base, rules.xp_exponent)


def skill_level_for_xp(total_xp: int, rules: SkillRules) -> int:
    return level_for_xp(total_xp, rules.xp_base, rules.xp_exponent, rules.max_level)


def xp_to_next_level(current_xp: int, current_level: int, rules: SkillRules) -> int:
    if current_level >= rules.max_level:
        return 0
    return max(0, skill_xp_for_level(current_level + 1, rules) - current_xp)


def skill_category(skill_type: SkillType) -> SkillCategory:
    return SKILL_CATEGORIES.get(skill_type, SkillCategory.COMBAT)


def window_cap(skill_type: SkillType, rules: SkillRules) -> int:
    """XP cap for one efficiency window (the daily cap split across the day's windows)."""
    daily = {
        SkillCategory.COMBAT: rules.daily_cap_combat,
        SkillCategory.GATHERING: rules.daily_cap_gathering,
        SkillCategory.PROCESSING: rules.daily_cap_processing,
        SkillCategory.CRAFTING: rules.daily_cap_crafting,
    }[skill_category(skill_type)]
    return max(1, daily // rules.windows_per_day)


def efficiency_for(window_xp: float, cap: float, category: SkillCategory, decay_power: float) -> float:
    """XP efficiency in [0, 1] for a given amount of XP already earned this window.

    Combat skills are all-or-nothing: full credit until the cap, then none.
    Every other category tapers smoothly toward zero as the cap approaches.
    """
    if cap <= 0 or window_xp >= cap:
        return 0.0
    if category is SkillCategory.COMBAT:
        return 1.0
    ratio = max(0.0, window_xp) / cap
    return max(0.0, 1 - math.pow(ratio, decay_power))


def calculate_efficiency(window_xp: int, skill_type: SkillType, rules: SkillRules) -> float:
    return efficiency_for(
        window_xp, window_cap(skill_type, rules), skill_category(skill_type), rules.efficiency_decay_power,
    )


def apply_xp_gain(
    current_xp: int,
    current_level: int,
    window_xp: int,
    raw_xp: int,
    skill_type: SkillType,
    rules: SkillRules,
) -> SkillXpResult:
    """Credit raw XP to a skill after efficiency, cascading level-ups."""
    raw = max(0, raw_xp)
    efficiency = calculate_efficiency(window_xp, skill_type, rules)
    xp_after = math.floor(raw * efficiency)

    new_total = current_xp + xp_after
    new_level = max(current_level, skill_level_for_xp(new_total, rules))
    new_window = window_xp + xp_after

    return SkillXpResult(
        xp_gained=raw,
        xp_after_efficiency=xp_after,
        efficiency=efficiency,
        leveled_up=new_level > current_level,
        new_level=new_level,
        at_daily_cap=calculate_efficiency(new_window, skill_type, rules) == 0,
        new_total_xp=new_total,
        new_window_xp=new_window,
        levels_gained=new_level - current_level,
    )


def calculate_character_xp_gain(skill_xp: int, rules: CharacterRules) -> int:
    return math.floor(max(0, skill_xp) * rules.xp_ratio)


def character_level_for_xp(total_xp: int, rules: CharacterRules) -> int:
    return level_for_xp(total_xp, rules.xp_base, rules.xp_exponent, rules.max_level)


def apply_character_xp(progress: CharacterProgress, skill_xp: int, rules: CharacterRules) -> CharacterXpResult:
    """Convert credited skill XP into character XP; each level gained grants attribute points."""
    gain = calculate_character_xp_gain(skill_xp, rules)
    xp_after = progress.xp + gain
    level_after = max(progress.level, character_level_for_xp(xp_after, rules))
    levels = level_after - progress.level
    return CharacterXpResult(
        xp_gained=gain,
        xp_after=xp_after,
        level_before=progress.level,
        level_after=level_after,
        attribute_points_after=progress.attribute_points + levels * rules.attribute_points_per_level,
    )
