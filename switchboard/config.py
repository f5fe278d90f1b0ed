"""Configuration management for switchboard.

Loads YAML settings (settings.yaml) and environment variables (.env)
into a typed Config object. Credentials come from the environment;
everything else may be set in settings.yaml, with environment
variables taking precedence where both are supported.

Key classes:
    Config: Central configuration manager.

Key functions:
    get_config: Singleton accessor for the global Config instance.
"""

import os
from pathlib import Path
from typing import List, Optional

import structlog
import yaml
from dotenv import load_dotenv

from .exceptions import ConfigurationError

logger = structlog.get_logger("switchboard.bot")

# (canonical env var, legacy alias) pairs for each credential
_TOKEN_ENV = ("SWITCHBOARD_TOKEN", "TOKEN")
_APPLICATION_ID_ENV = ("SWITCHBOARD_APPLICATION_ID", "CLIENT_ID")
_GUILD_ID_ENV = ("SWITCHBOARD_GUILD_ID", "GUILD_ID")


def _first_env(names) -> str:
    for name in names:
        value = os.environ.get(name, "").strip()
        if value:
            return value
    return ""


class Config:
    """Central configuration manager for switchboard.

    Loads settings.yaml and .env from the config directory. Provides
    typed property accessors for the handler directories, remote API,
    gateway, presence and logging. Read-only after __init__.

    Args:
        config_dir: Path to the config directory. Defaults to
            ``<repo_root>/config/``.
    """

    def __init__(self, config_dir: Optional[Path] = None):
        if config_dir is None:
            config_dir = Path(__file__).parent.parent / "config"
        self.config_dir = Path(config_dir)

        env_file = self.config_dir / ".env"
        if env_file.exists():
            load_dotenv(env_file)

        self.settings = self._load_yaml("settings.yaml")

    def _project_path(self, configured) -> Path:
        """Resolve a configured path; relative paths are taken from the project root."""
        path = Path(configured).expanduser()
        if not path.is_absolute():
            path = self.config_dir.parent / path
        return path

    def _load_yaml(self, filename: str) -> dict:
        """Load a YAML configuration file."""
        filepath = self.config_dir / filename
        if filepath.exists():
            with open(filepath, "r") as f:
                return yaml.safe_load(f) or {}
        return {}

    def validate(self):
        """Validate required settings at startup.

        Raises:
            ConfigurationError: If the auth token or application id is
                missing. The message names every missing setting.
        """
        missing = []
        if not self.auth_token:
            missing.append(_TOKEN_ENV[0])
        if not self.application_id:
            missing.append(_APPLICATION_ID_ENV[0])
        if missing:
            raise ConfigurationError(
                "Missing required configuration: " + ", ".join(missing)
                + " (set them in the environment or config/.env)",
                missing=missing,
            )

        if not self.gateway_url:
            logger.warning(
                "config_no_gateway_url",
                hint="Set gateway_url in settings.yaml or SWITCHBOARD_GATEWAY_URL",
            )

        disabled = (self.settings.get("handlers") or {}).get("disabled")
        if disabled is not None and not isinstance(disabled, list):
            logger.error(
                "config_invalid_value",
                key="handlers.disabled",
                type=type(disabled).__name__,
            )

    # Credentials and registration scope
    @property
    def auth_token(self) -> str:
        """Bot credential for both the gateway and the REST API."""
        return _first_env(_TOKEN_ENV)

    @property
    def application_id(self) -> str:
        """Application identifier used in registration routes."""
        return _first_env(_APPLICATION_ID_ENV) or str(
            self.settings.get("application_id") or ""
        )

    @property
    def restricted_scope_id(self) -> Optional[str]:
        """Guild to register commands in. None means register globally."""
        value = _first_env(_GUILD_ID_ENV) or str(self.settings.get("guild_id") or "")
        return value or None

    # Remote endpoints
    @property
    def api_base_url(self) -> str:
        """REST API base URL. Env var SWITCHBOARD_API_URL takes precedence."""
        url = os.environ.get("SWITCHBOARD_API_URL") or self.settings.get(
            "api_base_url", "https://discord.com/api/v10"
        )
        return url.rstrip("/")

    @property
    def gateway_url(self) -> str:
        """WebSocket URL of the gateway relay. Env var SWITCHBOARD_GATEWAY_URL wins."""
        return os.environ.get("SWITCHBOARD_GATEWAY_URL") or self.settings.get(
            "gateway_url", ""
        )

    @property
    def request_timeout(self) -> float:
        """Total timeout in seconds for REST calls (default 30)."""
        val = self.settings.get("request_timeout", 30)
        try:
            return float(val)
        except (ValueError, TypeError):
            logger.warning("config_invalid_request_timeout", value=val)
            return 30.0

    @property
    def presence_text(self) -> str:
        """Activity text shown once the bot is ready (default "/help")."""
        return (self.settings.get("presence") or {}).get("text", "/help")

    # Handler sources
    @property
    def commands_dir(self) -> Path:
        """Directory scanned for command handler files."""
        configured = (self.settings.get("handlers") or {}).get("commands_dir")
        if configured:
            return self._project_path(configured)
        return self.config_dir.parent / "handlers" / "commands"

    @property
    def components_dir(self) -> Path:
        """Directory scanned for component handler files."""
        configured = (self.settings.get("handlers") or {}).get("components_dir")
        if configured:
            return self._project_path(configured)
        return self.config_dir.parent / "handlers" / "components"

    @property
    def disabled_handlers(self) -> List[str]:
        """Handler file stems to skip during loading."""
        disabled = (self.settings.get("handlers") or {}).get("disabled", [])
        if not isinstance(disabled, list):
            return []
        return [str(name) for name in disabled]

    @property
    def strict_duplicates(self) -> bool:
        """Treat duplicate handler identities as a fatal error (default False)."""
        return bool((self.settings.get("handlers") or {}).get("strict_duplicates", False))

    @property
    def shutdown_grace_period(self) -> float:
        """Seconds to wait for in-flight handlers on shutdown (default 5)."""
        return float(self.settings.get("shutdown_grace_period", 5))

    # Logging
    @property
    def log_dir(self) -> Path:
        """Get log directory path."""
        configured = self.settings.get("log_dir")
        if configured:
            return self._project_path(configured)
        return self.config_dir.parent / "logs"

    @property
    def logging_level(self) -> str:
        """Global log level (default INFO). Controls console and combined file."""
        log_config = self.settings.get("logging") or {}
        return log_config.get("level", "INFO")

    @property
    def logging_subsystem_levels(self) -> dict:
        """Per-subsystem log level overrides. E.g. {"router": "DEBUG"}."""
        log_config = self.settings.get("logging") or {}
        return log_config.get("subsystem_levels") or {}

    @property
    def logging_max_file_size_mb(self) -> int:
        """Max size per log file in MB before rotation (default 10)."""
        log_config = self.settings.get("logging") or {}
        return log_config.get("max_file_size_mb", 10)

    @property
    def logging_backup_count(self) -> int:
        """Number of rotated log files to keep (default 5)."""
        log_config = self.settings.get("logging") or {}
        return log_config.get("backup_count", 5)


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config
