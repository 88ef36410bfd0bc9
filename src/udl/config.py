"""Persisted credential and URL configuration."""

import json
import logging
import os
from pathlib import Path

from udl.constants import CONFIG_DIR_ENV, CONFIG_DIR_NAME, CONFIG_FILE_NAME
from udl.errors import ConfigError

logger = logging.getLogger(__name__)


def default_config_dir() -> Path:
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        return Path(override)

    xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg_config_home) if xdg_config_home else Path.home() / ".config"
    return base / CONFIG_DIR_NAME


class ConfigStore:
    """Handle the stored key and URL."""

    def __init__(self, config_dir: Path | None = None):
        self.config_dir = Path(config_dir) if config_dir is not None else default_config_dir()
        self.config_file = self.config_dir / CONFIG_FILE_NAME
        self.key = None
        self.url = None

    def load(self):
        """
        Read the stored configuration, if any.

        Returns:
            self for method chaining
        """
        try:
            data = json.loads(self.config_file.read_text(encoding="utf-8"))
        except FileNotFoundError:
            logger.debug("No config file at %s", self.config_file)
            return self
        except (OSError, ValueError) as exc:
            raise ConfigError(f"Failed to load config from {self.config_file}: {exc}") from exc

        if not isinstance(data, dict):
            raise ConfigError(f"Config file {self.config_file} does not hold a JSON object")

        self.key = data.get("key")
        self.url = data.get("url")
        return self

    def save(self, *, key: str, url: str):
        """Persist ``key`` and ``url``, replacing previous values."""
        self.key = key
        self.url = url
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            self.config_file.write_text(
                json.dumps({"key": self.key, "url": self.url}), encoding="utf-8"
            )
        except OSError as exc:
            raise ConfigError(f"Failed to save config to {self.config_file}: {exc}") from exc


def resolve_credentials(
    url: str | None, key: str | None, store: ConfigStore
) -> tuple[str, str]:
    """
    Combine per-invocation values with stored ones; the former win.

    Returns:
        Tuple of (url, key)
    """
    key = key or store.key
    url = url or store.url
    if not key:
        raise ConfigError("No key saved or provided as --key flag")
    if not url:
        raise ConfigError("No url saved or provided as --url flag")
    return url, key
