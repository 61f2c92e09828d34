"""Main CLI application."""

from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()

from ..config import default_config_path
from ..logging_config import setup_logging
from .backfill import backfill_command
from .init import init_command
from .run import run_command
from .sources import sources_app
from .state import CliState

app = typer.Typer(
    name="pulsereader",
    help="PulseReader - budgeted RSS ingestion with AI sentiment and topics",
    no_args_is_help=True,
)


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config.yaml",
        envvar="PULSEREADER_CONFIG",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Configure logging and remember the global options."""
    setup_logging(verbose=verbose)
    ctx.obj = CliState(config_path=config or default_config_path(), verbose=verbose)


# Register commands
app.command("init")(init_command)
app.command("run")(run_command)
app.command("backfill")(backfill_command)
app.add_typer(sources_app, name="sources", help="Manage RSS sources")


if __name__ == "__main__":
    app()
