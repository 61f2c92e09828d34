"""Backfill command implementation."""

from typing import Optional

import typer

from ..errors import PulseReaderError
from ..pipeline.trigger import run_backfill
from .run import console, fail, print_summary
from .state import get_state


def backfill_command(
    ctx: typer.Context,
    token: Optional[str] = typer.Option(
        None,
        "--token",
        "-t",
        help="Service token authorizing the run",
        envvar="PULSEREADER_TRIGGER_TOKEN",
    ),
    limit: int = typer.Option(50, "--limit", "-l", help="Maximum articles to analyse", min=1),
) -> None:
    """Run AI analysis over stored articles that have no sentiment yet."""
    state = get_state(ctx)
    try:
        summary = run_backfill(state.settings(), token, limit)
    except PulseReaderError as e:
        fail(e)
    except KeyboardInterrupt:
        console.print("\n[yellow]Backfill interrupted by user[/yellow]")
        raise typer.Exit(130)

    print_summary(summary, title="Backfill Summary")
