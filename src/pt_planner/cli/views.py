"""
CLI view formatters using Rich for pretty console output.

Handles table formatting of plans, settings and progress.
"""

from rich.console import Console
from rich.table import Table

from ..core.config import PTGenerationConfig
from ..core.metrics import RadarAxis
from ..core.models import EquipmentSnapshot, MovementRuleSnapshot, Profile, Progress, StoredDailyPlan
from ..core.movements.registry import get_movement

console = Console()

_TAG_STYLE: dict[str, str] = {
    "available": "green",
    "undertrained": "magenta",
    "rotation": "cyan",
}


def _fmt_tags(tags: tuple[str, ...]) -> str:
    return " ".join(f"[{_TAG_STYLE.get(t, 'white')}]{t}[/{_TAG_STYLE.get(t, 'white')}]" for t in tags)


def format_plan_table(plan: StoredDailyPlan, display_name: str | None = None) -> Table:
    """
    Create a Rich table displaying one day's plan.

    Args:
        plan: Stored plan to display
        display_name: Optional user name for the title

    Returns:
        Rich Table object
    """
    title = f"Plan for {plan.date}"
    if display_name:
        title += f" · {display_name}"
    table = Table(title=title, caption=f"seed {plan.seed} · rerolls {plan.reroll_count}")

    table.add_column("#", justify="right", style="dim", width=3)
    table.add_column("Movement", style="bold")
    table.add_column("Step", style="cyan")
    table.add_column("Tier", style="magenta")
    table.add_column("Tags")
    table.add_column("Note", style="dim")

    for i, item in enumerate(plan.items, 1):
        table.add_row(
            str(i),
            get_movement(item.movement_id).display_name,
            item.step_id,
            item.tier,
            _fmt_tags(item.reason_tags),
            item.note or "-",
        )

    return table


def print_plan(plan: StoredDailyPlan, display_name: str | None = None) -> None:
    """Print a plan table, its locked suggestions and an empty-plan hint."""
    console.print(format_plan_table(plan, display_name))

    if not plan.items:
        print_warning("Not enough candidates: check equipment and prerequisites.")

    if plan.locked_suggestions:
        console.print("\n[bold]Locked suggestions[/bold]")
        for s in plan.locked_suggestions:
            name = get_movement(s.movement_id).display_name
            console.print(f"  [dim]{name} ({s.step_id}, {s.tier}): {s.reason}[/dim]")


def format_config_table(config: PTGenerationConfig) -> Table:
    table = Table(title="Generation config")
    table.add_column("Option", style="cyan")
    table.add_column("Value", justify="right")
    for key, value in config.to_dict().items():
        table.add_row(key, str(value).lower() if isinstance(value, bool) else str(value))
    return table


def format_progress_table(progress: Progress) -> Table:
    table = Table(title="Progress")
    table.add_column("Slug", style="cyan")
    table.add_column("Step", justify="right")
    table.add_column("Tier", style="magenta")
    table.add_column("Score", justify="right")
    table.add_column("Updated", style="dim")
    for entry in progress.movements:
        table.add_row(
            entry.slug,
            str(entry.step_no),
            entry.tier,
            f"{entry.score:.2f}" if entry.score is not None else "-",
            entry.updated_at,
        )
    return table


def print_settings(equipment: EquipmentSnapshot, rules: MovementRuleSnapshot) -> None:
    """Print equipment and unlock rule settings."""
    console.print(f"Pull-up bar:       {'yes' if equipment.has_pullup_bar else 'no'}")
    console.print(f"Wall space:        {'yes' if equipment.has_wall_space else 'no'}")
    console.print(f"Bridge depends on: {rules.bridge_depends_on}")


def print_profile(profile: Profile) -> None:
    console.print(f"[bold]{profile.display_name}[/bold] [dim](updated {profile.updated_at})[/dim]")


def print_radar(axes: list[RadarAxis], width: int = 20) -> None:
    """
    Print the six radar axes as horizontal bars.

    Each bar is scaled so a score of 10 fills ``width`` cells.
    """
    for axis in axes:
        filled = round(axis.score / 10 * width)
        bar = "█" * filled + "·" * (width - filled)
        if axis.locked:
            label = f"[dim]locked{': ' + axis.lock_reason if axis.lock_reason else ''}[/dim]"
        else:
            label = f"step {axis.step_no} {axis.tier}"
        console.print(f"  {axis.slug:<8} [green]{bar}[/green] {axis.score:5.2f}  {label}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]{message}[/green]")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]Error: {message}[/red]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]Warning: {message}[/yellow]")

