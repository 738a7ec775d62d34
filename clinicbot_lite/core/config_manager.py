"""Configuration management for the clinicbot_lite scheduling engine."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Hard upper bound on standard-pattern occurrences per generate() call
MAX_OCCURRENCES_LIMIT = 365


def parse_env_file(path: Path) -> dict[str, str]:
    """Parse a .env file and return key-value pairs.

    Args:
        path: Path to .env file

    Returns:
        Dictionary of key-value pairs from the .env file.
        Empty dict if file doesn't exist or cannot be read.

    Note:
        - Skips empty lines and comments (lines starting with #)
        - Strips quotes (both single and double) from values
        - Handles KEY=VALUE format with optional whitespace
    """
    if not path.exists():
        return {}

    result: dict[str, str] = {}

    try:
        content = path.read_text(encoding="utf-8")

        for raw_line in content.splitlines():
            line = raw_line.strip()

            if not line or line.startswith("#"):
                continue

            if "=" not in line:
                continue

            key, val = line.split("=", 1)
            key = key.strip()
            val = val.strip().strip('"').strip("'")

            if key:
                result[key] = val

    except OSError:
        logger.debug(
            "Failed to read .env file (continuing): %s",
            str(path),
            exc_info=True,
        )

    return result


def _env_int(name: str) -> int | None:
    raw = os.environ.get(name)
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        logger.warning("Invalid %s=%r; ignoring", name, raw)
        return None


def _env_float(name: str) -> float | None:
    raw = os.environ.get(name)
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        logger.warning("Invalid %s=%r; ignoring", name, raw)
        return None


class ConfigManager:
    """Manages engine configuration from environment variables and .env files."""

    def __init__(self, env_file_path: Path | None = None):
        """Initialize configuration manager.

        Args:
            env_file_path: Optional path to .env file (defaults to .env in current directory)
        """
        self.env_file_path = env_file_path or Path.cwd() / ".env"

    def load_env_file(self) -> list[str]:
        """Load .env file and set environment variables.

        Only sets variables that are not already in the environment.

        Returns:
            List of environment variable keys that were loaded from .env file
        """
        if not self.env_file_path.exists():
            logger.debug("No .env file found at %s", self.env_file_path)
            return []

        parsed = parse_env_file(self.env_file_path)

        set_keys = []
        for key, val in parsed.items():
            if key not in os.environ:
                os.environ[key] = val
                set_keys.append(key)

        if set_keys:
            logger.debug("Loaded .env defaults for keys: %s", ", ".join(set_keys))

        return set_keys

    def build_config_from_env(self) -> dict[str, Any]:
        """Build configuration dictionary from environment variables.

        Recognizes:
        - CLINICBOT_MAX_OCCURRENCES -> 'max_occurrences_per_rule' (int)
        - CLINICBOT_WORKING_CALENDAR_URL -> 'working_calendar_url'
        - CLINICBOT_WORKING_CALENDAR_TOKEN -> 'working_calendar_token'
        - CLINICBOT_WORKING_CALENDAR_TIMEOUT -> 'working_calendar_timeout_seconds' (float)
        - CLINICBOT_WORKING_CALENDAR_CONCURRENCY -> 'working_calendar_concurrency' (int)
        - CLINICBOT_SETTINGS_CACHE_TTL -> 'settings_cache_ttl_seconds' (int)
        - CLINICBOT_LOG_LEVEL -> 'log_level'

        Returns:
            Configuration dictionary accepted by EngineConfig.from_settings
        """
        cfg: dict[str, Any] = {}

        max_occurrences = _env_int("CLINICBOT_MAX_OCCURRENCES")
        if max_occurrences is not None:
            cfg["max_occurrences_per_rule"] = max_occurrences

        url = os.environ.get("CLINICBOT_WORKING_CALENDAR_URL")
        if url:
            cfg["working_calendar_url"] = url.rstrip("/")

        token = os.environ.get("CLINICBOT_WORKING_CALENDAR_TOKEN")
        if token:
            cfg["working_calendar_token"] = token

        timeout = _env_float("CLINICBOT_WORKING_CALENDAR_TIMEOUT")
        if timeout is not None:
            cfg["working_calendar_timeout_seconds"] = timeout

        concurrency = _env_int("CLINICBOT_WORKING_CALENDAR_CONCURRENCY")
        if concurrency is not None:
            cfg["working_calendar_concurrency"] = concurrency

        cache_ttl = _env_int("CLINICBOT_SETTINGS_CACHE_TTL")
        if cache_ttl is not None:
            cfg["settings_cache_ttl_seconds"] = cache_ttl

        log_level = os.environ.get("CLINICBOT_LOG_LEVEL")
        if log_level:
            cfg["log_level"] = log_level.upper()

        return cfg

    def load_full_config(self) -> dict[str, Any]:
        """Load .env file and build configuration from environment.

        Returns:
            Configuration dictionary
        """
        self.load_env_file()
        return self.build_config_from_env()


def get_config_value(config: Any, key: str, default: Any = None) -> Any:
    """Get configuration value supporting both dict and dataclass-like objects.

    Args:
        config: Configuration object (dict or object with attributes)
        key: Configuration key to retrieve
        default: Default value if key not found

    Returns:
        Configuration value or default
    """
    if isinstance(config, dict):
        return config.get(key, default)
    return getattr(config, key, default)


@dataclass
class EngineConfig:
    """Configuration for recurrence expansion and working-day lookups.

    Consolidates all engine settings with explicit defaults.
    """

    max_occurrences_per_rule: int = MAX_OCCURRENCES_LIMIT

    # Working-calendar lookups
    working_calendar_url: str | None = None
    working_calendar_token: str | None = None
    working_calendar_timeout_seconds: float = 5.0
    working_calendar_concurrency: int = 4
    settings_cache_ttl_seconds: int = 300

    @classmethod
    def from_settings(cls, settings: Any) -> EngineConfig:
        """Extract engine configuration from a settings dict or object.

        Args:
            settings: Configuration object or dict with engine settings

        Returns:
            EngineConfig with values from settings or defaults
        """
        defaults = cls()
        return cls(
            max_occurrences_per_rule=get_config_value(
                settings, "max_occurrences_per_rule", defaults.max_occurrences_per_rule
            ),
            working_calendar_url=get_config_value(
                settings, "working_calendar_url", defaults.working_calendar_url
            ),
            working_calendar_token=get_config_value(
                settings, "working_calendar_token", defaults.working_calendar_token
            ),
            working_calendar_timeout_seconds=get_config_value(
                settings,
                "working_calendar_timeout_seconds",
                defaults.working_calendar_timeout_seconds,
            ),
            working_calendar_concurrency=get_config_value(
                settings, "working_calendar_concurrency", defaults.working_calendar_concurrency
            ),
            settings_cache_ttl_seconds=get_config_value(
                settings, "settings_cache_ttl_seconds", defaults.settings_cache_ttl_seconds
            ),
        )

    @classmethod
    def from_env(cls, env_file_path: Path | None = None) -> EngineConfig:
        """Build a validated config from .env defaults and the environment."""
        config = cls.from_settings(ConfigManager(env_file_path).load_full_config())
        config.validate()
        return config

    def validate(self) -> None:
        """Check value ranges.

        Raises:
            ConfigurationError: If any value is outside its valid range
        """
        if not 1 <= self.max_occurrences_per_rule <= MAX_OCCURRENCES_LIMIT:
            raise ConfigurationError(
                f"max_occurrences_per_rule must be between 1 and {MAX_OCCURRENCES_LIMIT}, "
                f"got {self.max_occurrences_per_rule}"
            )
        if self.working_calendar_concurrency < 1:
            raise ConfigurationError(
                f"working_calendar_concurrency must be >= 1, "
                f"got {self.working_calendar_concurrency}"
            )
        if self.working_calendar_timeout_seconds <= 0:
            raise ConfigurationError(
                f"working_calendar_timeout_seconds must be > 0, "
                f"got {self.working_calendar_timeout_seconds}"
            )
        if self.settings_cache_ttl_seconds < 0:
            raise ConfigurationError(
                f"settings_cache_ttl_seconds must be >= 0, got {self.settings_cache_ttl_seconds}"
            )

    @property
    def occurrence_cap(self) -> int:
        """Effective occurrence cap, never above the hard limit."""
        return max(1, min(self.max_occurrences_per_rule, MAX_OCCURRENCES_LIMIT))


DEFAULT_ENGINE_CONFIG = EngineConfig()
