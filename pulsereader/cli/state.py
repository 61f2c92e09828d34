"""Options shared by every command."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import typer

from ..config import Settings, default_config_path, load_settings, sources_path_for
from ..logging_config import setup_logging


@dataclass
class CliState:
    """Global options collected by the app callback."""

    config_path: Path
    verbose: bool = False
    _settings: Optional[Settings] = field(default=None, init=False, repr=False)

    @property
    def sources_path(self) -> Path:
        return sources_path_for(self.config_path)

    def settings(self) -> Settings:
        """Resolve settings once and switch on file logging if configured."""
        if self._settings is None:
            self._settings = load_settings(self.config_path)
            if self._settings.log_dir is not None:
                setup_logging(
                    verbose=self.verbose,
                    log_dir=self._settings.log_dir,
                    retention_days=self._settings.log_retention_days,
                )
        return self._settings


def get_state(ctx: typer.Context) -> CliState:
    """State set by the app callback, or defaults when a command runs standalone."""
    if isinstance(ctx.obj, CliState):
        return ctx.obj
    return CliState(config_path=default_config_path())
