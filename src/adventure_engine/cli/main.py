"""Typer CLI application."""
from __future__ import annotations

import logging
import random
from pathlib import Path
from typing import Optional

import typer
from rich.markup import escape

from adventure_engine.cli.combat_display import CombatDisplay
from adventure_engine.content.loader import get_mob
from adventure_engine.errors import InvalidCombatInput
from adventure_engine.mechanics.prefixes import MobPrefix, all_prefixes, apply_mob_prefix
from adventure_engine.mechanics.stats import build_player_stats
from adventure_engine.models.combat import CombatConfig, CombatPotion
from adventure_engine.models.combatant import AttackStyle, Combatant, ItemStats, PlayerAttributes
from adventure_engine.models.rewards import EquippedItem, RewardContext, SkillProgress, SkillType
from adventure_engine.rules import DEFAULT_RULES, RulesConfig, load_rules
from adventure_engine.systems.combat.engine import CombatEngine

app = typer.Typer(
    name="adventure-engine",
    help="Simulate turn-based fights with the adventure combat engine",
    no_args_is_help=True,
)

# Gear and attributes of the sample player in simulations
_SAMPLE_WEAPON = ItemStats(attack=6, ranged_power=6, magic_power=6, accuracy=4, crit_chance=0.02)
_SAMPLE_ARMOR = ItemStats(armor=12, magic_defence=6, health=10, dodge=2)
_SAMPLE_ATTRIBUTES = PlayerAttributes(vitality=5, strength=6, dexterity=6, intelligence=6, evasion=4)


def sample_player(style: AttackStyle, level: int, rules: RulesConfig = DEFAULT_RULES) -> Combatant:
    max_hp = 100 + _SAMPLE_ATTRIBUTES.vitality * 5 + _SAMPLE_ARMOR.health
    stats = build_player_stats(
        current_hp=max_hp,
        max_hp=max_hp,
        attack_style=style,
        skill_level=level,
        attributes=_SAMPLE_ATTRIBUTES,
        equipment=[_SAMPLE_WEAPON, _SAMPLE_ARMOR],
        rules=rules,
    )
    return Combatant(id="player", name="Adventurer", stats=stats)


@app.command()
def simulate(
    mob_id: str = typer.Argument(..., help="Mob id from content/mobs"),
    prefix: Optional[str] = typer.Option(None, "--prefix", "-p", help="Mob prefix variant"),
    seed: Optional[int] = typer.Option(None, "--seed", "-s", help="Seed for a reproducible fight"),
    max_rounds: Optional[int] = typer.Option(None, "--max-rounds", help="Round cap"),
    allow_flee: bool = typer.Option(False, "--allow-flee", help="Let the player flee at low HP"),
    style: AttackStyle = typer.Option(AttackStyle.MELEE, "--style", help="Player attack style"),
    level: int = typer.Option(10, "--level", help="Player attack skill level"),
    potions: int = typer.Option(0, "--potions", help="Healing potions carried"),
    rules_path: Optional[Path] = typer.Option(None, "--rules", help="TOML file overriding balance rules"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log engine internals"),
) -> None:
    """Run one fight of a sample player against a mob and print the log."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    display = CombatDisplay()

    try:
        if prefix is not None and prefix not in {p.value for p in MobPrefix}:
            raise InvalidCombatInput(
                f"Unknown prefix {prefix!r}. Available: {', '.join(p.value for p in MobPrefix)}",
                field="prefix",
            )
        rules = load_rules(rules_path) if rules_path else DEFAULT_RULES
        mob = get_mob(mob_id)
        prefixed = apply_mob_prefix(mob, prefix)
        enemy = prefixed.to_combatant(rules=rules)
        player = sample_player(style, level, rules)

        config = CombatConfig(
            attack_skill=style,
            allow_flee=allow_flee,
            max_rounds=max_rounds,
            auto_potion_threshold=30 if potions > 0 else 0,
            potions=[
                CombatPotion(template_id="minor_healing_potion", name="Minor Healing Potion", heal_amount=25)
                for _ in range(potions)
            ],
        )
        context = RewardContext(
            xp_reward=prefixed.xp_reward,
            drop_table=mob.drop_table,
            skill=SkillProgress(skill_type=SkillType(style.value), xp=0, level=1),
            drop_chance_multiplier=prefixed.drop_chance_multiplier,
            equipment=[
                EquippedItem(item_id="sample_weapon", name="Iron Sword", item_type="weapon",
                             current_durability=100, max_durability=100),
                EquippedItem(item_id="sample_armor", name="Leather Armor", item_type="armor",
                             current_durability=80, max_durability=80),
            ],
            current_gold=100,
            evasion=_SAMPLE_ATTRIBUTES.evasion,
        )

        engine = CombatEngine(rules)
        display.show_combat_start(player, enemy)
        result = engine.run(player, enemy, config, random.Random(seed), reward_context=context)
    except InvalidCombatInput as exc:
        display.console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=1)

    display.show_log(result)
    display.show_result(result, player.name, enemy.name)


@app.command()
def prefixes() -> None:
    """List mob prefix variants with their spawn odds and modifiers."""
    CombatDisplay().show_prefix_table(all_prefixes())


if __name__ == "__main__":
    app()
