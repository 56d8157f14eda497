"""Client settings management for pasvftp.

Provides ClientSettings dataclass with environment overrides and
SettingsManager for JSON persistence.
"""

import json
import logging
import os
from dataclasses import dataclass, asdict, replace
from pathlib import Path
from typing import Mapping, Optional

from pasvftp.config.paths import get_settings_path
from pasvftp.utils.logging import resolve_level
from pasvftp.utils.validators import (
    validate_port,
    validate_timeout,
    validate_transfer_mode,
)

logger = logging.getLogger("pasvftp.settings")

# Environment variables consulted by ClientSettings.with_env_overrides
ENV_HOST = "FTP_HOST"
ENV_PORT = "FTP_PORT"
ENV_USER = "FTP_USER"
ENV_PASSWORD = "FTP_PASSWORD"
ENV_MODE = "FTP_MODE"
ENV_TIMEOUT = "FTP_TIMEOUT"
ENV_LOG_LEVEL = "FTP_LOG_LEVEL"


@dataclass
class ClientSettings:
    """Connection defaults that persist between runs."""

    host: str = ""
    port: int = 21
    username: str = "anonymous"
    transfer_mode: str = "I"
    timeout: float = 0
    log_level: str = "INFO"

    def __post_init__(self):
        """Validate settings after initialization."""
        is_valid, error = validate_port(self.port)
        if not is_valid:
            raise ValueError(error)
        is_valid, error = validate_timeout(self.timeout)
        if not is_valid:
            raise ValueError(error)
        is_valid, error = validate_transfer_mode(self.transfer_mode)
        if not is_valid:
            raise ValueError(error)
        resolve_level(self.log_level)
        self.port = int(self.port)
        self.timeout = float(self.timeout)
        self.transfer_mode = self.transfer_mode.strip().upper()
        self.log_level = str(self.log_level).strip().upper()

    @property
    def address(self) -> str:
        """Server address in "host:port" form."""
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{host}:{self.port}"

    def to_dict(self) -> dict:
        """Convert settings to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "ClientSettings":
        """Create settings from dictionary, ignoring unknown keys."""
        valid_fields = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in data.items() if k in valid_fields}
        return cls(**filtered)

    def with_env_overrides(self, environ: Optional[Mapping[str, str]] = None) -> "ClientSettings":
        """
        Return a copy with FTP_* environment variables applied.

        Args:
            environ: Mapping to read from (default os.environ)

        Returns:
            New ClientSettings instance

        Raises:
            ValueError: If an environment value is invalid
        """
        environ = os.environ if environ is None else environ
        overrides = {}

        if environ.get(ENV_HOST):
            overrides["host"] = environ[ENV_HOST]
        if environ.get(ENV_PORT):
            overrides["port"] = environ[ENV_PORT]
        if environ.get(ENV_USER):
            overrides["username"] = environ[ENV_USER]
        if environ.get(ENV_MODE):
            overrides["transfer_mode"] = environ[ENV_MODE]
        if environ.get(ENV_TIMEOUT):
            overrides["timeout"] = environ[ENV_TIMEOUT]
        if environ.get(ENV_LOG_LEVEL):
            overrides["log_level"] = environ[ENV_LOG_LEVEL].upper()

        return replace(self, **overrides)


class SettingsManager:
    """Manages client settings persistence."""

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize settings manager.

        Args:
            config_path: Optional custom path, defaults to platform standard
        """
        self._config_path = config_path or get_settings_path()
        self._settings: Optional[ClientSettings] = None

    @property
    def config_path(self) -> Path:
        """Path to settings file."""
        return self._config_path

    def load(self) -> ClientSettings:
        """
        Load settings from disk.

        Returns:
            ClientSettings instance (defaults if file not found)
        """
        if self._config_path.exists():
            try:
                with open(self._config_path, "r", encoding="utf-8") as f:
                    data = json.load(f)
                self._settings = ClientSettings.from_dict(data)
            except (json.JSONDecodeError, IOError, ValueError, TypeError) as e:
                logger.warning(f"Ignoring unreadable settings file {self._config_path}: {e}")
                self._settings = ClientSettings()
        else:
            self._settings = ClientSettings()

        return self._settings

    def save(self, settings: ClientSettings) -> None:
        """
        Persist settings to disk.

        Args:
            settings: Settings to save
        """
        self._settings = settings

        # Ensure parent directory exists
        self._config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(self._config_path, "w", encoding="utf-8") as f:
            json.dump(settings.to_dict(), f, indent=2)

    def reset(self) -> ClientSettings:
        """
        Reset to default settings.

        Returns:
            Default ClientSettings instance
        """
        self._settings = ClientSettings()

        if self._config_path.exists():
            self._config_path.unlink()

        return self._settings

    def update(self, **kwargs) -> ClientSettings:
        """
        Update specific settings fields.

        Args:
            **kwargs: Field names and new values

        Returns:
            Updated ClientSettings instance
        """
        if self._settings is None:
            self.load()

        known = {k: v for k, v in kwargs.items() if hasattr(self._settings, k)}
        self._settings = replace(self._settings, **known)

        self.save(self._settings)
        return self._settings
