"""Shared Typer app object, shared option types, and store utility."""

from datetime import date as _date
from pathlib import Path
from typing import Annotated, Optional

import typer

from ..io.kv_store import JsonFileStore, KeyValueStore, get_default_store
from ..io.serializers import validate_date

# Shared --user option type used across all commands
UserOption = Annotated[
    str,
    typer.Option("--user", "-u", help="User ID whose plan and settings to use"),
]

StorePathOption = Annotated[
    Optional[Path],
    typer.Option(
        "--store-path",
        "-p",
        help="Path to the JSON store (default: $PT_PLANNER_STORE or ~/.pt-planner/store.json)",
    ),
]

DateOption = Annotated[
    Optional[str],
    typer.Option("--date", "-d", help="Plan date YYYY-MM-DD (default: today)"),
]

app = typer.Typer(
    name="pt-planner",
    help="Daily bodyweight training planner: picks today's movements from your progress.",
    no_args_is_help=True,
)


def get_store(store_path: Path | None) -> KeyValueStore:
    """Get the store at store_path, or the one selected by the environment."""
    if store_path is None:
        return get_default_store()
    return JsonFileStore(store_path)


def resolve_date(value: str | None) -> str:
    """
    Return value as a validated ISO date, or today's date.

    Raises:
        ValidationError: If value is not a valid YYYY-MM-DD date
    """
    if value is None:
        return _date.today().isoformat()
    return validate_date(value)


