"""
CLI entry point using Typer.

Provides commands for daily plan management:
- today: Show (and on first use generate) the day's plan
- reroll: Regenerate the day's plan with the next seed
- explain: Show how each movement was ranked
- config: Show or update the generation config
- progress: Show or update movement progress
- equipment: Show or update equipment and unlock rules
- log: Record a training session
- radar: Show the progress radar
- profile: Show or update the display name
"""

import logging
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler

from .app import app

# Importing the command modules registers their commands on app
from .commands import plan, settings  # noqa: F401


@app.callback()
def main_callback(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log ranking and storage details"),
    ] = False,
) -> None:
    """
    Daily bodyweight training planner.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


if __name__ == "__main__":
    app()
