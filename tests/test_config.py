"""Tests for configuration loading and resolution."""
import pytest
import yaml

from pulsereader.config import (
    ConfigModel,
    SourceConfig,
    load_config,
    load_settings,
    load_sources,
    resolve_settings,
    save_config,
    save_sources,
    sources_path_for,
)
from pulsereader.errors import ConfigurationError


def test_defaults():
    config = ConfigModel()

    assert config.pipeline.operation_budget == 45
    assert config.pipeline.max_sources_per_run == 1
    assert config.pipeline.batch_size == 20
    assert config.llm.base_url == "https://openrouter.ai/api/v1"


def test_load_config_round_trip(tmp_path):
    path = tmp_path / "config.yaml"
    config = ConfigModel(pipeline={"operation_budget": 100, "max_sources_per_run": 3})
    save_config(config, path)

    loaded = load_config(path)

    assert loaded.pipeline.operation_budget == 100
    assert loaded.pipeline.max_sources_per_run == 3


def test_missing_config_raises(tmp_path):
    with pytest.raises(ConfigurationError):
        load_config(tmp_path / "absent.yaml")


def test_invalid_values_raise(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({"pipeline": {"batch_size": 0}}))

    with pytest.raises(ConfigurationError):
        load_config(path)


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("")

    assert load_config(path).pipeline.operation_budget == 45


def test_resolve_reads_secrets_from_environment():
    config = ConfigModel(postgres={"password_env": "DB_PW", "password": "from-file"})
    environ = {
        "DB_PW": "from-env",
        "OPENROUTER_API_KEY": "sk-test",
        "PULSEREADER_SERVICE_TOKEN": "service",
        "PULSEREADER_CLIENT_TOKEN": "client",
    }

    settings = resolve_settings(config, environ)

    assert settings.database.password == "from-env"
    assert settings.llm.api_key == "sk-test"
    assert settings.enrichment_enabled
    assert settings.service_token == "service"
    assert settings.client_token == "client"


def test_resolve_without_environment():
    settings = resolve_settings(ConfigModel(postgres={"password": "from-file"}), {})

    assert settings.database.password == "from-file"
    assert settings.llm.api_key is None
    assert not settings.enrichment_enabled
    assert settings.service_token is None


def test_settings_are_frozen():
    settings = resolve_settings(ConfigModel(), {})

    with pytest.raises(Exception):
        settings.service_token = "changed"


def test_load_settings(tmp_path):
    path = tmp_path / "config.yaml"
    save_config(ConfigModel(logging={"log_dir": str(tmp_path / "logs")}), path)

    settings = load_settings(path, environ={"PULSEREADER_SERVICE_TOKEN": "t"})

    assert settings.service_token == "t"
    assert settings.log_dir == tmp_path / "logs"


def test_sources_file(tmp_path):
    path = sources_path_for(tmp_path / "config.yaml")
    save_sources([SourceConfig(name="A", url="https://a.example.com/rss")], path)
    data = yaml.safe_load(path.read_text())
    data["sources"].append({"name": "Broken"})
    path.write_text(yaml.safe_dump(data))

    sources = load_sources(path)

    assert path.name == "sources.yaml"
    assert [s.name for s in sources] == ["A"]
    assert sources[0].enabled
