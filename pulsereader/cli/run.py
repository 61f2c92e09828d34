"""Run command implementation."""

import json
from typing import Optional

import pendulum
import typer
from rich.console import Console
from rich.table import Table

from ..errors import PulseReaderError
from ..models import RunSummary
from ..pipeline.trigger import run_fetch_job
from .state import get_state

console = Console(stderr=True)


def print_summary(summary: RunSummary, title: str = "Run Summary") -> None:
    """Emit the summary as JSON on stdout and as a table on the console."""
    typer.echo(json.dumps(summary.to_response(), indent=2))

    table = Table(title=title)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="bold")

    table.add_row("Sources processed", str(summary.processed))
    table.add_row("Succeeded", f"[green]{summary.succeeded}[/green]")
    table.add_row("Failed", f"[red]{summary.failed}[/red]" if summary.failed else "0")
    table.add_row("Sources skipped", str(summary.skipped_sources))
    table.add_row("Articles created", str(summary.articles_created))
    table.add_row("Duplicates skipped", str(summary.duplicates_skipped))
    ai = summary.ai_analysis
    table.add_row(
        "AI analysis",
        f"{ai.successful}/{ai.attempted} ok, {ai.failed} failed, {ai.skipped} skipped",
    )
    table.add_row("Operations", str(summary.total_operations))
    table.add_row("More work", "yes" if summary.has_more_work else "no")

    console.print(table)

    for error in summary.errors:
        console.print(f"[red]✗ {error.source_name}: {error.error}[/red]")
    for skipped in summary.skipped_articles:
        console.print(
            f"[yellow]⚠️  {skipped.source_name}: {skipped.skipped_count} articles left for the next run[/yellow]"
        )


def fail(error: PulseReaderError) -> None:
    """Print the structured error body and exit non-zero."""
    body = {
        "error": str(error),
        "code": error.code,
        "timestamp": pendulum.now("UTC").to_iso8601_string(),
    }
    typer.echo(json.dumps(body))
    console.print(f"[red]❌ {error}[/red]")
    raise typer.Exit(1)


def run_command(
    ctx: typer.Context,
    token: Optional[str] = typer.Option(
        None,
        "--token",
        "-t",
        help="Service token authorizing the run",
        envvar="PULSEREADER_TRIGGER_TOKEN",
    ),
) -> None:
    """Fetch, store and enrich the next slice of sources."""
    state = get_state(ctx)
    try:
        settings = state.settings()
        summary = run_fetch_job(settings, token)
    except PulseReaderError as e:
        fail(e)
    except KeyboardInterrupt:
        console.print("\n[yellow]Run interrupted by user[/yellow]")
        raise typer.Exit(130)

    # Partial failures are reported in the summary, not the exit code
    print_summary(summary)
