"""Init command implementation."""

from typing import List

import typer
from rich.console import Console
from rich.panel import Panel

from ..config import ConfigModel, SourceConfig, load_settings, load_sources, save_config, save_sources
from ..db import PostgresSourceRegistry, get_connection, init_database, validate_connection
from ..errors import PulseReaderError
from .state import get_state

console = Console()


def create_default_sources() -> List[SourceConfig]:
    """Create default news sources."""
    return [
        SourceConfig(
            name="Wyborcza - Najważniejsze",
            url="https://rss.gazeta.pl/pub/rss/najnowsze_wyborcza.xml",
        ),
        SourceConfig(
            name="Rzeczpospolita - Główne",
            url="https://www.rp.pl/rss_main",
        ),
        SourceConfig(
            name="BBC News - World",
            url="http://feeds.bbci.co.uk/news/world/rss.xml",
        ),
        SourceConfig(
            name="Reuters - World News",
            url="https://feeds.reuters.com/Reuters/worldNews",
        ),
        SourceConfig(
            name="The Guardian - World",
            url="https://www.theguardian.com/world/rss",
        ),
    ]


def init_command(
    ctx: typer.Context,
    db_host: str = typer.Option("localhost", "--db-host", help="Postgres host"),
    db_port: int = typer.Option(5432, "--db-port", help="Postgres port"),
    db_name: str = typer.Option("pulsereader", "--db-name", help="Database name"),
    db_user: str = typer.Option("pulsereader", "--db-user", help="Database user"),
    seed_sources: bool = typer.Option(
        True,
        "--seed-sources/--no-seed-sources",
        help="Seed default news sources",
    ),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing config.yaml"),
) -> None:
    """Initialize PulseReader configuration and database."""
    console.print(Panel.fit("📰 PulseReader - Initialization", style="bold blue"))

    state = get_state(ctx)
    config_path = state.config_path
    sources_path = state.sources_path

    if config_path.exists() and not force:
        console.print(f"[yellow]⚠️  Keeping existing config: {config_path} (use --force to overwrite)[/yellow]")
    else:
        config = ConfigModel(
            postgres={
                "host": db_host,
                "port": db_port,
                "database": db_name,
                "user": db_user,
                "password_env": "PULSEREADER_DB_PASSWORD",
            },
        )
        save_config(config, config_path)
        console.print(f"✅ Created config: {config_path}")

    sources = create_default_sources() if seed_sources else []
    if sources_path.exists() and not force:
        console.print(f"[yellow]⚠️  Keeping existing sources: {sources_path}[/yellow]")
    else:
        save_sources(sources, sources_path)
        console.print(f"✅ Created sources: {sources_path} (seeded with {len(sources)} sources)")

    try:
        settings = load_settings(config_path)
    except PulseReaderError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(1)

    # Validate database connection
    console.print("\n[bold]Testing database connection...[/bold]")
    if not validate_connection(settings.database):
        console.print(
            "[red]❌ Database connection failed![/red]\n"
            "Please ensure Postgres is running and credentials are correct.\n"
            "Set the password via environment variable: [bold]export PULSEREADER_DB_PASSWORD=your_password[/bold]"
        )
        raise typer.Exit(1)

    console.print("✅ Database connection successful")

    # Initialize database schema and load the sources into it
    console.print("\n[bold]Initializing database schema...[/bold]")
    try:
        init_database(settings.database)
        console.print("✅ Database schema initialized")

        if sources_path.exists():
            with get_connection(settings.database) as conn:
                synced = PostgresSourceRegistry(conn).sync_sources(load_sources(sources_path))
            console.print(f"✅ Synced {len(synced)} sources")
    except PulseReaderError as e:
        console.print(f"[red]❌ Failed to initialize database: {e}[/red]")
        raise typer.Exit(1)

    console.print(
        Panel(
            f"[green]✅ PulseReader initialized successfully![/green]\n\n"
            f"Configuration: {config_path}\n"
            f"Sources: {sources_path}\n\n"
            f"Next steps:\n"
            f"1. Set database password: [bold]export PULSEREADER_DB_PASSWORD=your_password[/bold]\n"
            f"2. Set trigger token: [bold]export PULSEREADER_SERVICE_TOKEN=your_token[/bold]\n"
            f"3. Optionally set AI key: [bold]export OPENROUTER_API_KEY=your_key[/bold]\n"
            f"4. Run: [bold]pulsereader run --token $PULSEREADER_SERVICE_TOKEN[/bold]",
            style="green",
        )
    )
