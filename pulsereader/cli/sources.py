"""Sources management commands."""

import asyncio
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from ..config import SourceConfig, load_sources, save_sources
from ..db import PostgresSourceRegistry, get_connection
from ..errors import ConfigurationError, PulseReaderError
from ..ingestion import FeedFetcher
from ..models import Source
from .state import get_state

console = Console()
sources_app = typer.Typer(help="Manage RSS sources")


def _load(ctx: typer.Context) -> List[SourceConfig]:
    try:
        return load_sources(get_state(ctx).sources_path)
    except ConfigurationError as e:
        console.print(f"[red]{e}. Run 'pulsereader init' first.[/red]")
        raise typer.Exit(1)


@sources_app.command("list")
def sources_list(ctx: typer.Context) -> None:
    """List all configured sources."""
    sources = _load(ctx)

    if not sources:
        console.print("[yellow]No sources configured.[/yellow]")
        return

    table = Table(title="Configured Sources")
    table.add_column("Name", style="cyan")
    table.add_column("Enabled", style="yellow")
    table.add_column("URL", style="blue")

    for source in sources:
        table.add_row(
            source.name,
            "✓" if source.enabled else "✗",
            source.url,
        )

    console.print(table)


@sources_app.command("add")
def sources_add(
    ctx: typer.Context,
    name: str = typer.Option(..., "--name", "-n", help="Source name"),
    url: str = typer.Option(..., "--url", "-u", help="RSS feed URL"),
) -> None:
    """Add a new RSS source."""
    state = get_state(ctx)
    try:
        sources = load_sources(state.sources_path)
    except ConfigurationError:
        sources = []

    if any(s.url == url for s in sources):
        console.print(f"[red]A source with URL {url} already exists.[/red]")
        raise typer.Exit(1)

    sources.append(SourceConfig(name=name, url=url, enabled=True))
    save_sources(sources, state.sources_path)

    console.print(f"[green]✅ Added source: {name}[/green]")
    console.print("[dim]Run 'pulsereader sources sync' to load it into the database.[/dim]")


@sources_app.command("remove")
def sources_remove(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Source name to remove"),
) -> None:
    """Remove a source from sources.yaml and stop fetching it."""
    sources = _load(ctx)

    remaining = [s for s in sources if s.name != name]
    if len(remaining) == len(sources):
        console.print(f"[red]Source '{name}' not found.[/red]")
        raise typer.Exit(1)

    removed = [s for s in sources if s.name == name]
    save_sources(remaining, get_state(ctx).sources_path)
    console.print(f"[green]✅ Removed source: {name}[/green]")

    # Stored articles keep their source row; it is only deactivated
    try:
        with get_connection(get_state(ctx).settings().database) as conn:
            registry = PostgresSourceRegistry(conn)
            for source in removed:
                registry.set_active(source.url, False)
        console.print("[dim]Deactivated in database.[/dim]")
    except PulseReaderError as e:
        console.print(f"[yellow]⚠️  Could not update database: {e}[/yellow]")


@sources_app.command("sync")
def sources_sync(ctx: typer.Context) -> None:
    """Load sources.yaml into the database, deactivating sources no longer listed."""
    sources = _load(ctx)

    try:
        with get_connection(get_state(ctx).settings().database) as conn:
            registry = PostgresSourceRegistry(conn)
            synced = registry.sync_sources(sources)
            stale = [s for s in registry.list_sources() if s.is_active and s.url not in synced]
            for source in stale:
                registry.set_active(source.url, False)
    except PulseReaderError as e:
        console.print(f"[red]❌ Sync failed: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]✅ Synced {len(synced)} sources[/green]")
    if stale:
        console.print(f"[yellow]Deactivated {len(stale)} sources missing from sources.yaml[/yellow]")


@sources_app.command("test")
def sources_test(
    ctx: typer.Context,
    name: Optional[str] = typer.Argument(None, help="Source name to test (or test all)"),
) -> None:
    """Fetch and parse feeds without storing anything."""
    sources = _load(ctx)

    if name:
        sources = [s for s in sources if s.name == name]
        if not sources:
            console.print(f"[red]Source '{name}' not found.[/red]")
            raise typer.Exit(1)

    fetcher = FeedFetcher(timeout=10.0)

    async def check_all() -> None:
        for config in sources:
            if not config.enabled:
                console.print(f"[yellow]⚠️  {config.name}: Disabled[/yellow]")
                continue

            result = await fetcher.fetch_feed(Source(name=config.name, url=config.url))
            if result.success:
                console.print(f"[green]✅ {config.name}: OK ({result.item_count} items)[/green]")
            else:
                console.print(f"[red]❌ {config.name}: Failed - {result.error}[/red]")

    asyncio.run(check_all())
