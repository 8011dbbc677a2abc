"""Daily plan commands: today, reroll, explain."""

import json
from typing import Annotated

import typer

from ...core.config import DEFAULT_USER_ID
from ...core.planner import explain_daily_plan, plan_seed
from ...io.kv_store import StoreError
from ...io.plan_store import (
    get_or_create_daily_plan,
    load_plan_context,
    load_profile,
    load_stored_daily_plan,
    reroll_daily_plan,
)
from ...io.serializers import ValidationError, safe_display_name, stored_plan_to_dict
from .. import views
from ..app import DateOption, StorePathOption, UserOption, app, get_store, resolve_date

JsonOption = Annotated[
    bool,
    typer.Option("--json", "-j", help="Output as JSON for machine processing"),
]


def _date_or_exit(value: str | None) -> str:
    try:
        return resolve_date(value)
    except ValidationError as e:
        views.print_error(str(e))
        raise typer.Exit(1)


@app.command()
def today(
    user_id: UserOption = DEFAULT_USER_ID,
    store_path: StorePathOption = None,
    date: DateOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Show today's plan, generating it on first use.

    The plan is stored, so repeated calls on the same date show the same
    movements until you reroll.
    """
    date = _date_or_exit(date)
    store = get_store(store_path)

    try:
        plan = get_or_create_daily_plan(store, user_id, date)
    except StoreError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if json_out:
        print(json.dumps(stored_plan_to_dict(plan), indent=2))
        return

    views.print_plan(plan, safe_display_name(load_profile(store, user_id)))


@app.command()
def reroll(
    user_id: UserOption = DEFAULT_USER_ID,
    store_path: StorePathOption = None,
    date: DateOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Regenerate the day's plan with the next seed.

    Each reroll uses seed <date>#<n>, so the sequence of rerolls for a date
    is reproducible.
    """
    date = _date_or_exit(date)
    store = get_store(store_path)

    try:
        plan = reroll_daily_plan(store, user_id, date)
    except StoreError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if json_out:
        print(json.dumps(stored_plan_to_dict(plan), indent=2))
        return

    views.print_success(f"Rerolled ({plan.reroll_count}).")
    views.print_plan(plan, safe_display_name(load_profile(store, user_id)))


@app.command()
def explain(
    user_id: UserOption = DEFAULT_USER_ID,
    store_path: StorePathOption = None,
    date: DateOption = None,
) -> None:
    """
    Explain how each movement was ranked for the day's plan.

    Uses the seed of the stored plan when there is one, so the breakdown
    matches what `today` shows.
    """
    date = _date_or_exit(date)
    store = get_store(store_path)

    stored = load_stored_daily_plan(store, user_id, date)
    seed = stored.seed if stored is not None and stored.seed else plan_seed(date, 0)
    views.console.print(explain_daily_plan(date, load_plan_context(store, user_id), seed=seed))
