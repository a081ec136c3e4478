"""Configuration management for ics_ingest."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

from ics_ingest.core.timezone_utils import DEFAULT_CANONICAL_TIMEZONE, normalize_timezone_name

logger = logging.getLogger(__name__)

# Input validation limits
# These limits prevent resource exhaustion from oversized calendar data
MAX_ICS_SIZE_BYTES = 50 * 1024 * 1024  # 50MB limit
MAX_ICS_SIZE_WARNING = 10 * 1024 * 1024  # 10MB warning threshold
MAX_EVENT_TITLE_LENGTH = 200  # ~20 words - reasonable event title


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
    except OSError:
        logger.debug("Failed to read .env file (continuing): %s", str(path), exc_info=True)
        return result

    for raw_line in content.splitlines():
        line = raw_line.strip()

        # Skip empty lines and comments
        if not line or line.startswith("#"):
            continue

        if "=" not in line:
            continue

        key, val = line.split("=", 1)
        key = key.strip()
        val = val.strip().strip('"').strip("'")

        if key:
            result[key] = val

    return result


class IngestSettings(BaseModel):
    """Settings consumed by the ICS ingestion pipeline."""

    canonical_timezone: str = Field(
        default=DEFAULT_CANONICAL_TIMEZONE,
        description="Zone all output dates and clock times are expressed in",
    )
    max_ics_size_bytes: int = Field(default=MAX_ICS_SIZE_BYTES, gt=0)
    max_ics_size_warning_bytes: int = Field(default=MAX_ICS_SIZE_WARNING, gt=0)
    max_title_length: int = Field(default=MAX_EVENT_TITLE_LENGTH, gt=0)

    @field_validator("canonical_timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        iana_tz = normalize_timezone_name(value)
        if iana_tz is None:
            raise ValueError(f"Unknown canonical timezone: {value!r}")
        return iana_tz


class ConfigManager:
    """Manages ingestion configuration from environment variables and .env files."""

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

        set_keys = []
        for key, val in parse_env_file(self.env_file_path).items():
            if key not in os.environ:
                os.environ[key] = val
                set_keys.append(key)

        if set_keys:
            logger.debug("Loaded .env defaults for keys: %s", ", ".join(set_keys))

        return set_keys

    def build_config_from_env(self) -> dict[str, Any]:
        """Build configuration dictionary from environment variables.

        Recognizes:
        - ICS_INGEST_CANONICAL_TIMEZONE -> 'canonical_timezone'
        - ICS_INGEST_MAX_ICS_SIZE_BYTES -> 'max_ics_size_bytes' (int)
        - ICS_INGEST_MAX_TITLE_LENGTH -> 'max_title_length' (int)

        Returns:
            Configuration dictionary compatible with IngestSettings
        """
        cfg: dict[str, Any] = {}

        canonical_tz = os.environ.get("ICS_INGEST_CANONICAL_TIMEZONE")
        if canonical_tz:
            if normalize_timezone_name(canonical_tz) is None:
                logger.warning("Invalid ICS_INGEST_CANONICAL_TIMEZONE=%r; ignoring", canonical_tz)
            else:
                cfg["canonical_timezone"] = canonical_tz

        for env_key, cfg_key in (
            ("ICS_INGEST_MAX_ICS_SIZE_BYTES", "max_ics_size_bytes"),
            ("ICS_INGEST_MAX_TITLE_LENGTH", "max_title_length"),
        ):
            raw = os.environ.get(env_key)
            if not raw:
                continue
            try:
                value = int(raw)
            except ValueError:
                logger.warning("Invalid %s=%r; ignoring", env_key, raw)
                continue
            if value <= 0:
                logger.warning("Invalid %s=%r; ignoring", env_key, raw)
                continue
            cfg[cfg_key] = value

        return cfg

    def load_full_config(self) -> dict[str, Any]:
        """Load .env file and build configuration from environment.

        Returns:
            Configuration dictionary
        """
        self.load_env_file()
        return self.build_config_from_env()

    def load_settings(self) -> IngestSettings:
        """Load configuration and validate it into IngestSettings."""
        return IngestSettings.model_validate(self.load_full_config())


def get_config_value(config: Any, key: str, default: Any = None) -> Any:
    """Get configuration value supporting both dict and attribute-style objects.

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
