"""Settings and progress commands: config, progress, equipment, log, radar, profile."""

from dataclasses import replace
from datetime import datetime, timezone
from typing import Annotated, Optional

import typer

from ...core.config import DEFAULT_USER_ID, resolve_generation_config
from ...core.metrics import MOVEMENT_TO_SLUG, SLUG_TO_MOVEMENT, to_score
from ...core.models import EquipmentSnapshot, MovementProgress, MovementRuleSnapshot
from ...io.kv_store import StoreError
from ...io.plan_store import (
    load_generation_config,
    load_profile,
    load_progress,
    load_settings,
    record_session,
    save_generation_config,
    save_profile,
    save_progress,
    save_settings,
)
from ...io.serializers import ValidationError, build_radar_axes, validate_tier
from .. import views
from ..app import DateOption, StorePathOption, UserOption, app, get_store, resolve_date

MovementArgument = Annotated[
    str,
    typer.Argument(help="Movement ID or slug: pushup, squat, pullup, leg-raise, bridge, handstand-pushup"),
]


def _movement_id_or_exit(value: str) -> str:
    """Accept a movement ID (leg-raise) or its radar slug (legraise)."""
    if value in MOVEMENT_TO_SLUG:
        return value
    if value in SLUG_TO_MOVEMENT:
        return SLUG_TO_MOVEMENT[value]
    views.print_error(f"Unknown movement '{value}'. Valid IDs: {', '.join(MOVEMENT_TO_SLUG)}")
    raise typer.Exit(1)


@app.command()
def config(
    user_id: UserOption = DEFAULT_USER_ID,
    store_path: StorePathOption = None,
    max_movements: Annotated[
        Optional[int],
        typer.Option("--max", "-m", help="Movements per day (1-6)"),
    ] = None,
    same_category: Annotated[
        Optional[bool],
        typer.Option("--same-category/--one-per-category", help="Allow two movements of one category"),
    ] = None,
    min_rest: Annotated[
        Optional[int],
        typer.Option("--min-rest", help="Minimum rest days per movement"),
    ] = None,
    undertrained: Annotated[
        Optional[bool],
        typer.Option("--prefer-undertrained/--no-prefer-undertrained", help="Boost low-score movements"),
    ] = None,
    rotation_days: Annotated[
        Optional[int],
        typer.Option("--rotation-days", help="Penalize movements trained within N days (0 = off)"),
    ] = None,
    suggestions: Annotated[
        Optional[bool],
        typer.Option("--suggestions/--no-suggestions", help="List excluded movements with their lock reason"),
    ] = None,
) -> None:
    """
    Show or update the generation config.

    Options not given keep their stored value.  Changes apply to plans
    generated afterwards; reroll to refresh today's plan.
    """
    store = get_store(store_path)
    current = load_generation_config(store, user_id)

    changes = {
        "daily_max_movements": max_movements,
        "allow_same_category_twice": same_category,
        "min_rest_days_per_movement": min_rest,
        "prefer_undertrained": undertrained,
        "prefer_rotation_days": rotation_days,
        "include_locked_as_suggestions": suggestions,
    }
    if any(v is not None for v in changes.values()):
        try:
            current = resolve_generation_config(changes, base=current)
            save_generation_config(store, user_id, current)
        except (ValueError, StoreError) as e:
            views.print_error(str(e))
            raise typer.Exit(1)
        views.print_success("Config updated.")

    views.console.print(views.format_config_table(current))


@app.command()
def progress(
    movement: Annotated[
        Optional[str],
        typer.Argument(help="Movement to update (omit to show all)"),
    ] = None,
    user_id: UserOption = DEFAULT_USER_ID,
    store_path: StorePathOption = None,
    step: Annotated[
        Optional[int],
        typer.Option("--step", "-s", help="Current step (0-10, 0 = not started)"),
    ] = None,
    tier: Annotated[
        Optional[str],
        typer.Option("--tier", "-t", help="BEGINNER, INTERMEDIATE or ADVANCED"),
    ] = None,
    score: Annotated[
        Optional[float],
        typer.Option("--score", help="Explicit 0-10 score (overrides step/tier score)"),
    ] = None,
) -> None:
    """
    Show or update movement progress.

    Examples:

      pt-planner progress pushup --step 6 --tier INTERMEDIATE
      pt-planner progress hspu --step 2
    """
    store = get_store(store_path)
    current = load_progress(store, user_id)

    if movement is not None:
        slug = MOVEMENT_TO_SLUG[_movement_id_or_exit(movement)]
        entry = next(m for m in current.movements if m.slug == slug)
        try:
            new_step = entry.step_no if step is None else step
            new_tier = entry.tier if tier is None else validate_tier(tier.upper())
            if score is None and (new_step, new_tier) != (entry.step_no, entry.tier):
                # Stored score follows step/tier unless given explicitly
                score = to_score(new_step, new_tier) if new_step >= 1 else 0.0
            updated = MovementProgress(
                slug=slug,
                step_no=new_step,
                tier=new_tier,
                score=entry.score if score is None else score,
                updated_at=datetime.now(timezone.utc).isoformat(),
            )
            current.movements = [updated if m.slug == slug else m for m in current.movements]
            current = save_progress(store, user_id, current)
        except (ValueError, ValidationError, StoreError) as e:
            views.print_error(str(e))
            raise typer.Exit(1)
        views.print_success(f"Updated {slug}: step {updated.step_no} {updated.tier}")

    views.console.print(views.format_progress_table(current))


@app.command()
def equipment(
    user_id: UserOption = DEFAULT_USER_ID,
    store_path: StorePathOption = None,
    pullup_bar: Annotated[
        Optional[bool],
        typer.Option("--pullup-bar/--no-pullup-bar", help="Pull-up bar available"),
    ] = None,
    wall_space: Annotated[
        Optional[bool],
        typer.Option("--wall-space/--no-wall-space", help="Free wall for handstand work"),
    ] = None,
    bridge_rule: Annotated[
        Optional[str],
        typer.Option("--bridge-rule", help="any-step5 (default) or none"),
    ] = None,
) -> None:
    """Show or update available equipment and unlock rules."""
    store = get_store(store_path)
    equip, rules = load_settings(store, user_id)

    if pullup_bar is not None or wall_space is not None or bridge_rule is not None:
        try:
            equip = EquipmentSnapshot(
                has_pullup_bar=equip.has_pullup_bar if pullup_bar is None else pullup_bar,
                has_wall_space=equip.has_wall_space if wall_space is None else wall_space,
            )
            if bridge_rule is not None:
                rules = MovementRuleSnapshot(bridge_depends_on=bridge_rule)  # type: ignore[arg-type]
            save_settings(store, user_id, equip, rules)
        except (ValueError, StoreError) as e:
            views.print_error(str(e))
            raise typer.Exit(1)
        views.print_success("Settings updated.")

    views.print_settings(equip, rules)


@app.command()
def log(
    movement: MovementArgument,
    user_id: UserOption = DEFAULT_USER_ID,
    store_path: StorePathOption = None,
    date: DateOption = None,
) -> None:
    """
    Record a training session for a movement.

    The rest check uses the latest logged date of each movement.
    """
    movement_id = _movement_id_or_exit(movement)
    store = get_store(store_path)
    try:
        session_date = resolve_date(date)
        sessions = record_session(store, user_id, movement_id, session_date)
    except (ValidationError, StoreError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    views.print_success(f"Logged {movement_id} on {session_date} (last: {sessions[movement_id]})")


@app.command()
def radar(
    user_id: UserOption = DEFAULT_USER_ID,
    store_path: StorePathOption = None,
) -> None:
    """Show the six-movement progress radar as bars."""
    store = get_store(store_path)
    _, rules = load_settings(store, user_id)
    views.print_radar(build_radar_axes(load_progress(store, user_id), rules))


@app.command()
def profile(
    user_id: UserOption = DEFAULT_USER_ID,
    store_path: StorePathOption = None,
    name: Annotated[
        Optional[str],
        typer.Option("--name", "-n", help="Display name (blank resets to Guest)"),
    ] = None,
) -> None:
    """Show or update the display name."""
    store = get_store(store_path)
    current = load_profile(store, user_id)

    if name is not None:
        try:
            current = save_profile(
                store,
                user_id,
                replace(current, display_name=name, updated_at=datetime.now(timezone.utc).isoformat()),
            )
        except StoreError as e:
            views.print_error(str(e))
            raise typer.Exit(1)
        views.print_success("Profile updated.")

    views.print_profile(current)


