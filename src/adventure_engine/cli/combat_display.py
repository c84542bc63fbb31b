"""Rich rendering of combat logs, results and prefix data."""
from __future__ import annotations

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from adventure_engine.mechanics.prefixes import NO_PREFIX_WEIGHT, MobPrefixDefinition
from adventure_engine.models.combat import ActionKind, CombatActor, CombatLogEntry, CombatOutcome, CombatResult
from adventure_engine.models.combatant import Combatant, StatMultipliers
from adventure_engine.models.rewards import Rewards

console = Console()

_OUTCOME_STYLES = {
    CombatOutcome.VICTORY: ("[bold green]Victory![/bold green]", "green"),
    CombatOutcome.DEFEAT: ("[bold red]Defeat...[/bold red]", "red"),
    CombatOutcome.FLED: ("[bold yellow]Escaped![/bold yellow]", "yellow"),
    CombatOutcome.DRAW: ("[bold]Draw[/bold]", "white"),
}


def hp_bar(current: int, maximum: int, width: int = 12) -> str:
    pct = max(0.0, current / maximum) if maximum > 0 else 0.0
    filled = int(pct * width)
    if pct > 0.5:
        color = "green"
    elif pct > 0.25:
        color = "yellow"
    else:
        color = "red"
    return f"[{color}]{'█' * filled}[/{color}][dim]{'░' * (width - filled)}[/dim]"


class CombatDisplay:
    def __init__(self, output: Console | None = None) -> None:
        self.console = output or console

    def show_combat_start(self, player: Combatant, enemy: Combatant) -> None:
        player_name = escape(f"{player.name:<18}")
        enemy_name = escape(f"{enemy.name:<18}")
        content = Text.from_markup(
            f"[bold red]COMBAT![/bold red]\n\n"
            f"  [green]{player_name}[/green] {hp_bar(player.stats.hp, player.stats.max_hp)} "
            f"{player.stats.hp}/{player.stats.max_hp}\n"
            f"  [red]{enemy_name}[/red] {hp_bar(enemy.stats.hp, enemy.stats.max_hp)} "
            f"{enemy.stats.hp}/{enemy.stats.max_hp}"
        )
        self.console.print(Panel(content, border_style="red", box=box.HEAVY))

    def show_log(self, result: CombatResult) -> None:
        current_round = 0
        for entry in result.log:
            if entry.round != current_round:
                current_round = entry.round
                self.console.print(f"\n[bold]--- Round {current_round} ---[/bold]")
            self.console.print(f"  {self.describe(entry)}")

    @staticmethod
    def describe(entry: CombatLogEntry) -> str:
        """One line of markup for a log entry."""
        color = "green" if entry.actor is CombatActor.COMBATANT_A else "red"
        message = escape(entry.message)
        hp = f"[dim]({entry.combatant_a_hp_after} vs {entry.combatant_b_hp_after})[/dim]"
        if entry.action is ActionKind.ATTACK and entry.evaded:
            return f"[dim]{message} (roll {entry.roll:.2f} vs {entry.hit_chance:.0%})[/dim]"
        if entry.action is ActionKind.ATTACK:
            crit = " [bold yellow]CRIT[/bold yellow]" if entry.is_critical else ""
            return f"[{color}]{message}[/{color}]{crit} {hp}"
        if entry.action is ActionKind.SPELL:
            return f"[magenta]{message}[/magenta] {hp}"
        if entry.action is ActionKind.FLEE:
            return f"[yellow]{message}[/yellow] [dim](roll {entry.roll:.2f} vs {entry.flee_chance:.0%})[/dim]"
        if entry.action is ActionKind.POTION:
            return f"[cyan]{message}[/cyan] {hp}"
        if entry.action is ActionKind.TIMEOUT:
            return f"[bold dark_orange]{message}[/bold dark_orange]"
        return f"[dim]{message}[/dim]"

    def show_result(self, result: CombatResult, player_name: str, enemy_name: str) -> None:
        label, border = _OUTCOME_STYLES[result.outcome]
        content = f"{label}\n\nRounds: {result.rounds}"
        content += f"\n{escape(player_name)}: {result.combatant_a_hp_remaining}/{result.combatant_a_max_hp} HP"
        content += f"\n{escape(enemy_name)}: {result.combatant_b_hp_remaining}/{result.combatant_b_max_hp} HP"
        if result.round_cap_reached:
            content += "\n[dark_orange]Round cap reached.[/dark_orange]"
        if result.potions_consumed:
            names = ", ".join(escape(p.name) for p in result.potions_consumed)
            content += f"\nPotions used: {names}"
        if result.rewards is not None:
            content += self._rewards_text(result.rewards)
        self.console.print(Panel(content, border_style=border, box=box.HEAVY))

    @staticmethod
    def _rewards_text(rewards: Rewards) -> str:
        lines: list[str] = []
        if rewards.xp:
            lines.append(f"XP Gained: {rewards.xp}")
        if rewards.skill_xp is not None:
            skill = rewards.skill_xp
            line = f"Skill XP: +{skill.xp_after_efficiency} ({skill.efficiency:.0%} efficiency)"
            if skill.leveled_up:
                line += f" [bold green]Level {skill.new_level}![/bold green]"
            lines.append(line)
        if rewards.character_xp is not None and rewards.character_xp.leveled_up:
            lines.append(f"[bold green]Character level {rewards.character_xp.level_after}![/bold green]")
        if rewards.loot:
            lines.append("Loot: " + ", ".join(f"{d.quantity}x {escape(d.item_template_id)}" for d in rewards.loot))
        if rewards.penalty is not None:
            p = rewards.penalty
            lines.append(f"[dim]{p.outcome.value.replace('_', ' ')}: {p.remaining_hp} HP left, "
                         f"lost {p.gold_lost} gold[/dim]")
        for loss in rewards.durability_lost:
            note = ""
            if loss.is_broken:
                note = " [bold red]BROKEN[/bold red]"
            elif loss.crossed_warning_threshold:
                note = " [dark_orange]worn[/dark_orange]"
            lines.append(f"{escape(loss.item_name or loss.item_id)}: -{loss.amount} durability "
                         f"({loss.new_durability}/{loss.max_durability}){note}")
        if not lines:
            return ""
        return "\n\n" + "\n".join(lines)

    def show_prefix_table(self, definitions: list[MobPrefixDefinition]) -> None:
        total_weight = NO_PREFIX_WEIGHT + sum(d.weight for d in definitions)
        table = Table(title="Mob Prefixes", box=box.ROUNDED)
        table.add_column("Prefix", style="bold")
        table.add_column("Spawn", justify="right")
        table.add_column("Stats")
        table.add_column("XP", justify="right")
        table.add_column("Drops", justify="right")
        table.add_column("Spell")
        for d in definitions:
            spell = ""
            if d.spell_template is not None:
                t = d.spell_template
                spell = f"{t.action_name} (r{t.start_round}, every {t.interval})"
            table.add_row(
                d.display_name,
                f"{d.weight / total_weight:.1%}",
                format_multipliers(d.stat_multipliers),
                f"x{d.xp_multiplier:g}",
                f"x{d.drop_chance_multiplier:g}",
                spell,
            )
        self.console.print(table)


def format_multipliers(multipliers: StatMultipliers) -> str:
    parts = [
        f"{name} x{value:g}"
        for name, value in multipliers.model_dump().items()
        if value is not None
    ]
    return ", ".join(parts) or "-"
