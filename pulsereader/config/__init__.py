"""Configuration management for PulseReader."""

from .loader import (
    default_config_path,
    load_config,
    load_settings,
    load_sources,
    resolve_settings,
    save_config,
    save_sources,
    sources_path_for,
)
from .models import (
    ConfigModel,
    DatabaseSettings,
    LLMSettings,
    PipelineConfig,
    Settings,
    SourceConfig,
)

__all__ = [
    "ConfigModel",
    "DatabaseSettings",
    "LLMSettings",
    "PipelineConfig",
    "Settings",
    "SourceConfig",
    "default_config_path",
    "load_config",
    "load_settings",
    "load_sources",
    "resolve_settings",
    "save_config",
    "save_sources",
    "sources_path_for",
]
