"""Configuration management for switchboard.

Loads YAML settings (settings.yaml) and environment variables (.env)
into a Config object. Property getters provide safe access with
defaults for the handler directories, command publishing defaults,
gateway intents and logging.

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

from .constants import (
    DEFAULT_CLIENT_INTENTS,
    DEFAULT_COMMAND_PERMISSIONS,
    DEFAULT_DM_PERMISSION,
)
from .exceptions import ConfigurationError

logger = structlog.get_logger("switchboard.config")


class Config:
    """Central configuration manager for switchboard.

    Loads settings.yaml and .env from the config directory. Read-only
    after __init__.

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

    def _load_yaml(self, filename: str) -> dict:
        """Load a YAML configuration file."""
        filepath = self.config_dir / filename
        if filepath.exists():
            with open(filepath, "r") as f:
                data = yaml.safe_load(f) or {}
            if not isinstance(data, dict):
                raise ConfigurationError(
                    f"{filename} must contain a mapping", setting_name=filename
                )
            return data
        return {}

    def validate(self) -> None:
        """Validate settings required to start.

        Raises:
            ConfigurationError: The Discord token is missing or a
                setting has the wrong type.
        """
        if not self.discord_token:
            raise ConfigurationError(
                "DISCORD_TOKEN is not set", setting_name="DISCORD_TOKEN"
            )

        intents = self.settings.get("intents")
        if intents is not None and not isinstance(intents, list):
            raise ConfigurationError(
                "intents must be a list of flag names", setting_name="intents"
            )

        perms = self._section("commands").get("default_member_permissions")
        if perms is not None and (not isinstance(perms, int) or perms < 0):
            raise ConfigurationError(
                "commands.default_member_permissions must be a non-negative integer",
                setting_name="commands.default_member_permissions",
            )

    def _section(self, name: str) -> dict:
        section = self.settings.get(name, {})
        if not isinstance(section, dict):
            logger.error("config_section_invalid_type", section=name, type=type(section).__name__)
            return {}
        return section

    @property
    def discord_token(self) -> str:
        """Bot token from the DISCORD_TOKEN environment variable."""
        return os.environ.get("DISCORD_TOKEN", "")

    # --- Handler sources ---

    def _handlers_dir(self, key: str, default: str) -> Path:
        configured = self._section("handlers").get(key)
        if not configured:
            return self.config_dir.parent / "handlers" / default
        path = Path(configured).expanduser()
        # Relative paths are relative to the install directory, not the cwd
        if not path.is_absolute():
            path = self.config_dir.parent / path
        return path

    @property
    def commands_dir(self) -> Path:
        """Directory of command handler modules."""
        return self._handlers_dir("commands_dir", "commands")

    @property
    def components_dir(self) -> Path:
        """Directory of component handler modules."""
        return self._handlers_dir("components_dir", "components")

    @property
    def events_dir(self) -> Path:
        """Directory of event listener modules."""
        return self._handlers_dir("events_dir", "events")

    # --- Command publishing ---

    @property
    def default_member_permissions(self) -> Optional[int]:
        """Permission bitfield required by commands that set none (default MANAGE_GUILD)."""
        return self._section("commands").get("default_member_permissions", DEFAULT_COMMAND_PERMISSIONS)

    @property
    def dm_permission(self) -> bool:
        """Whether commands that do not say otherwise are usable in DMs."""
        return self._section("commands").get("dm_permission", DEFAULT_DM_PERMISSION)

    # --- Gateway ---

    @property
    def intents(self) -> List[str]:
        """discord.Intents flag names to enable."""
        intents = self.settings.get("intents")
        if not isinstance(intents, list) or not intents:
            return list(DEFAULT_CLIENT_INTENTS)
        return [str(name) for name in intents]

    # --- Logging ---

    @property
    def log_dir(self) -> Path:
        """Get log directory path."""
        configured = self.settings.get("log_dir")
        if not configured:
            return self.config_dir.parent / "logs"
        path = Path(configured).expanduser()
        if not path.is_absolute():
            path = self.config_dir.parent / path
        return path

    @property
    def logging_level(self) -> str:
        """Global log level (default INFO). Controls console and combined file."""
        return self._section("logging").get("level", "INFO")

    @property
    def logging_subsystem_levels(self) -> dict:
        """Per-subsystem log level overrides. E.g. {"dispatch": "DEBUG"}."""
        return self._section("logging").get("subsystem_levels", {})

    @property
    def logging_max_file_size_mb(self) -> int:
        """Max size per log file in MB before rotation (default 10)."""
        return self._section("logging").get("max_file_size_mb", 10)

    @property
    def logging_backup_count(self) -> int:
        """Number of rotated log files to keep (default 5)."""
        return self._section("logging").get("backup_count", 5)


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config
