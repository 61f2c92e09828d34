"""Configuration loader."""

import logging
import os
from pathlib import Path
from typing import List, Mapping, Optional

import yaml
from pydantic import ValidationError

from ..errors import ConfigurationError
from .models import ConfigModel, DatabaseSettings, LLMSettings, Settings, SourceConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".config" / "pulsereader"


def default_config_path() -> Path:
    """Get the default config file path."""
    return DEFAULT_CONFIG_DIR / "config.yaml"


def sources_path_for(config_path: Path) -> Path:
    """sources.yaml lives next to config.yaml."""
    return config_path.parent / "sources.yaml"


def load_config(config_path: Path) -> ConfigModel:
    """Load configuration from YAML file."""
    if not config_path.exists():
        raise ConfigurationError(f"Config file not found: {config_path}")

    try:
        with open(config_path) as f:
            config_data = yaml.safe_load(f)

        if config_data is None:
            config_data = {}

        return ConfigModel(**config_data)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in config file: {e}")
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}")


def load_sources(sources_path: Path) -> List[SourceConfig]:
    """Load sources from YAML file."""
    if not sources_path.exists():
        raise ConfigurationError(f"Sources file not found: {sources_path}")

    try:
        with open(sources_path) as f:
            sources_data = yaml.safe_load(f)

        if sources_data is None or "sources" not in sources_data:
            return []

        sources = []
        for source_data in sources_data["sources"]:
            try:
                sources.append(SourceConfig(**source_data))
            except ValidationError as e:
                logger.warning("Skipping invalid source %s: %s", source_data.get("name", "unknown"), e)

        return sources
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in sources file: {e}")


def save_config(config: ConfigModel, config_path: Path) -> None:
    """Save configuration to YAML file."""
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w") as f:
        yaml.dump(config.model_dump(), f, default_flow_style=False, sort_keys=False)


def save_sources(sources: List[SourceConfig], sources_path: Path) -> None:
    """Save sources to YAML file."""
    sources_path.parent.mkdir(parents=True, exist_ok=True)

    sources_data = {"sources": [s.model_dump() for s in sources]}

    with open(sources_path, "w") as f:
        yaml.dump(sources_data, f, default_flow_style=False, sort_keys=False)


def _from_env(environ: Mapping[str, str], name: Optional[str]) -> Optional[str]:
    if not name:
        return None
    value = environ.get(name)
    return value or None


def resolve_settings(
    config: ConfigModel,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """
    Resolve secrets from the environment and freeze the result.

    Each secret is looked up exactly once, here. An explicit value in the
    config file is used only when its environment variable is unset.
    """
    if environ is None:
        environ = os.environ

    pg = config.postgres
    password = _from_env(environ, pg.password_env) or pg.password or ""

    llm = config.llm
    api_key = _from_env(environ, llm.api_key_env) or llm.api_key

    auth = config.auth
    log_dir = Path(config.logging.log_dir).expanduser() if config.logging.log_dir else None

    return Settings(
        database=DatabaseSettings(
            host=pg.host,
            port=pg.port,
            database=pg.database,
            user=pg.user,
            password=password,
        ),
        pipeline=config.pipeline,
        llm=LLMSettings(
            model=llm.model,
            base_url=llm.base_url,
            api_key=api_key,
            timeout=llm.timeout,
            max_topics=llm.max_topics,
        ),
        service_token=_from_env(environ, auth.service_token_env),
        client_token=_from_env(environ, auth.client_token_env),
        log_dir=log_dir,
        log_retention_days=config.logging.retention_days,
    )


def load_settings(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Load the config file and resolve it into Settings."""
    if config_path is None:
        config_path = default_config_path()
    return resolve_settings(load_config(config_path), environ)
