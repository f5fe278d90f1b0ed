"""Tests for configuration loading and validation."""

from pathlib import Path

import pytest
import yaml

from switchboard.config import Config
from switchboard.exceptions import ConfigurationError

_ENV_VARS = (
    "SWITCHBOARD_TOKEN", "TOKEN",
    "SWITCHBOARD_APPLICATION_ID", "CLIENT_ID",
    "SWITCHBOARD_GUILD_ID", "GUILD_ID",
    "SWITCHBOARD_API_URL", "SWITCHBOARD_GATEWAY_URL",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    # setenv first so monkeypatch restores the var even if load_dotenv sets it
    for name in _ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


def _config(tmp_path, settings=None) -> Config:
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    if settings is not None:
        (config_dir / "settings.yaml").write_text(yaml.safe_dump(settings))
    return Config(config_dir=config_dir)


class TestValidate:

    def test_missing_credentials_raise_with_names(self, tmp_path):
        config = _config(tmp_path)
        with pytest.raises(ConfigurationError) as exc_info:
            config.validate()
        assert exc_info.value.missing == ["SWITCHBOARD_TOKEN", "SWITCHBOARD_APPLICATION_ID"]
        assert "SWITCHBOARD_TOKEN" in str(exc_info.value)

    def test_missing_application_id_only(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SWITCHBOARD_TOKEN", "secret")
        config = _config(tmp_path)
        with pytest.raises(ConfigurationError) as exc_info:
            config.validate()
        assert exc_info.value.missing == ["SWITCHBOARD_APPLICATION_ID"]

    def test_legacy_env_names_are_accepted(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TOKEN", "secret")
        monkeypatch.setenv("CLIENT_ID", "123")
        monkeypatch.setenv("GUILD_ID", "456")
        config = _config(tmp_path)
        config.validate()
        assert config.auth_token == "secret"
        assert config.application_id == "123"
        assert config.restricted_scope_id == "456"

    def test_dotenv_file_is_loaded(self, tmp_path, monkeypatch):
        config_dir = tmp_path / "config"
        config_dir.mkdir()
        (config_dir / ".env").write_text(
            "SWITCHBOARD_TOKEN=from-dotenv\nSWITCHBOARD_APPLICATION_ID=789\n"
        )
        config = Config(config_dir=config_dir)
        config.validate()
        assert config.auth_token == "from-dotenv"
        assert config.application_id == "789"


class TestProperties:

    def test_global_scope_by_default(self, tmp_path):
        assert _config(tmp_path).restricted_scope_id is None

    def test_guild_from_settings(self, tmp_path):
        config = _config(tmp_path, {"guild_id": 42})
        assert config.restricted_scope_id == "42"

    def test_default_handler_dirs(self, tmp_path):
        config = _config(tmp_path)
        assert config.commands_dir == tmp_path / "handlers" / "commands"
        assert config.components_dir == tmp_path / "handlers" / "components"

    def test_handler_settings(self, tmp_path):
        config = _config(tmp_path, {
            "handlers": {
                "commands_dir": "/srv/cmds",
                "components_dir": "/srv/comps",
                "disabled": ["debug"],
                "strict_duplicates": True,
            },
        })
        assert config.commands_dir == Path("/srv/cmds")
        assert config.components_dir == Path("/srv/comps")
        assert config.disabled_handlers == ["debug"]
        assert config.strict_duplicates is True

    def test_relative_handler_dirs_resolve_from_project_root(self, tmp_path, monkeypatch):
        monkeypatch.chdir("/")
        config = _config(tmp_path, {
            "handlers": {"commands_dir": "handlers/commands", "components_dir": "extra/comps"},
            "log_dir": "var/logs",
        })
        assert config.commands_dir == tmp_path / "handlers" / "commands"
        assert config.components_dir == tmp_path / "extra" / "comps"
        assert config.log_dir == tmp_path / "var" / "logs"

    def test_empty_sections_fall_back_to_defaults(self, tmp_path, monkeypatch):
        config_dir = tmp_path / "config"
        config_dir.mkdir()
        (config_dir / "settings.yaml").write_text("handlers:\npresence:\nlogging:\n")
        monkeypatch.setenv("SWITCHBOARD_TOKEN", "t")
        monkeypatch.setenv("SWITCHBOARD_APPLICATION_ID", "1")
        config = Config(config_dir=config_dir)

        config.validate()
        assert config.commands_dir == tmp_path / "handlers" / "commands"
        assert config.disabled_handlers == []
        assert config.strict_duplicates is False
        assert config.presence_text == "/help"
        assert config.logging_level == "INFO"
        assert config.logging_subsystem_levels == {}

    def test_disabled_handlers_ignores_bad_type(self, tmp_path):
        config = _config(tmp_path, {"handlers": {"disabled": "debug"}})
        assert config.disabled_handlers == []

    def test_api_url_env_overrides_settings(self, tmp_path, monkeypatch):
        config = _config(tmp_path, {"api_base_url": "https://a.example/api/"})
        assert config.api_base_url == "https://a.example/api"
        monkeypatch.setenv("SWITCHBOARD_API_URL", "https://b.example/api")
        assert config.api_base_url == "https://b.example/api"

    def test_defaults(self, tmp_path):
        config = _config(tmp_path)
        assert config.api_base_url == "https://discord.com/api/v10"
        assert config.presence_text == "/help"
        assert config.request_timeout == 30.0
        assert config.strict_duplicates is False
        assert config.logging_level == "INFO"
        assert config.log_dir == tmp_path / "logs"

    def test_invalid_request_timeout_falls_back(self, tmp_path):
        config = _config(tmp_path, {"request_timeout": "soon"})
        assert config.request_timeout == 30.0
