"""
Runtime configuration for the auto-publish service.

Two kinds of settings live in different places:

- Process settings (scheduler timing, logging, API roots, table names) come
  from ``config/settings.yaml``, with a few environment overrides for
  deployments.  See :class:`Settings`.
- Integration credentials (Airtable, Instagram) are rows in the
  ``integration_settings`` table so editors can change them without a
  restart.  Only their key names are defined here.

Supabase credentials are plain environment variables, checked at startup by
:func:`validate_env`.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

from autopublish.exceptions import ConfigurationError

load_dotenv()

PROJECT_ROOT = Path(__file__).resolve().parent.parent

logger = logging.getLogger(__name__)


# ===========================================================================
# INTEGRATION SETTING KEYS
# Values live in the ``integration_settings`` table, not in this file.
# ===========================================================================

AIRTABLE_PROVIDER = "airtable"
AIRTABLE_SETTING_KEYS: Dict[str, str] = {
    "api_key": "api_key",
    "base_id": "base_id",
    "table_name": "articles_table",
}

INSTAGRAM_PROVIDER = "instagram"
INSTAGRAM_SETTING_KEYS: Dict[str, str] = {
    "access_token": "access_token",
    "account_id": "business_account_id",
}


# ===========================================================================
# GLOBAL SETTINGS
# ===========================================================================

# Logical table name -> physical table name.
DEFAULT_TABLES: Dict[str, str] = {
    "articles": "articles",
    "integration_settings": "integration_settings",
    "logs": "scheduler_logs",
}


@dataclass
class Settings:
    """
    Process-wide settings.

    Defaults match ``config/settings.yaml``.  Use :meth:`from_yaml` (or
    :func:`get_settings`) rather than constructing this directly, except
    in tests.

    Raises:
        ConfigurationError: If the scheduler interval is not positive or
            the initial delay is negative.
    """

    # Scheduler
    interval_seconds: float = 60.0
    initial_delay_seconds: float = 5.0

    # Logging
    log_level: str = "INFO"
    log_dir: str = "logs"
    log_to_supabase: bool = False

    # External services
    airtable_api_url: str = "https://api.airtable.com/v0"
    instagram_api_url: str = "https://graph.facebook.com/v19.0"
    http_timeout_seconds: float = 30.0

    # Storage tables
    tables: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_TABLES))

    def __post_init__(self) -> None:
        if self.interval_seconds <= 0:
            raise ConfigurationError(
                f"interval_seconds must be positive, got {self.interval_seconds}"
            )
        if self.initial_delay_seconds < 0:
            raise ConfigurationError(
                f"initial_delay_seconds cannot be negative, got {self.initial_delay_seconds}"
            )

    @classmethod
    def from_yaml(cls, path: Optional[Path] = None) -> "Settings":
        """
        Build settings from *path*, then apply environment overrides.

        A missing file is not an error; defaults are used.

        Args:
            path: YAML file, ``config/settings.yaml`` under the project
                root by default.

        Raises:
            ConfigurationError: If the YAML file exists but cannot be parsed,
                or an override has an invalid value.
        """
        path = path or PROJECT_ROOT / "config" / "settings.yaml"

        data: Dict[str, Any] = {}
        if path.exists():
            try:
                with open(path, "r", encoding="utf-8") as fh:
                    data = yaml.safe_load(fh) or {}
            except yaml.YAMLError as exc:
                raise ConfigurationError(
                    f"Failed to parse settings YAML at {path}: {exc}"
                ) from exc
        else:
            logger.debug("No settings file at %s, using defaults", path)

        scheduler = data.get("scheduler", {}) or {}
        logging_data = data.get("logging", {}) or {}
        services = data.get("services", {}) or {}

        # -----------------------------------------------------------------
        # Storage tables (YAML merged over defaults)
        # -----------------------------------------------------------------
        tables = dict(DEFAULT_TABLES)
        tables.update(data.get("tables", {}) or {})

        values: Dict[str, Any] = {
            "interval_seconds": scheduler.get("interval_seconds", 60.0),
            "initial_delay_seconds": scheduler.get("initial_delay_seconds", 5.0),
            "log_level": logging_data.get("level", "INFO"),
            "log_dir": logging_data.get("dir", "logs"),
            "log_to_supabase": logging_data.get("to_supabase", False),
            "airtable_api_url": services.get("airtable_api_url", "https://api.airtable.com/v0"),
            "instagram_api_url": services.get("instagram_api_url", "https://graph.facebook.com/v19.0"),
            "http_timeout_seconds": services.get("http_timeout_seconds", 30.0),
        }

        # -----------------------------------------------------------------
        # Environment variable overrides
        # -----------------------------------------------------------------
        env_overrides = {
            "SCHEDULER_INTERVAL_SECONDS": ("interval_seconds", float),
            "SCHEDULER_INITIAL_DELAY_SECONDS": ("initial_delay_seconds", float),
            "HTTP_TIMEOUT_SECONDS": ("http_timeout_seconds", float),
            "LOG_LEVEL": ("log_level", str),
            "LOG_DIR": ("log_dir", str),
        }
        for env_key, (attr_name, cast_fn) in env_overrides.items():
            env_val = os.environ.get(env_key)
            if env_val is not None:
                try:
                    values[attr_name] = cast_fn(env_val)
                except (ValueError, TypeError) as exc:
                    raise ConfigurationError(
                        f"Invalid value for env var {env_key}='{env_val}': {exc}"
                    ) from exc

        return cls(tables=tables, **values)


# ===========================================================================
# CACHED SETTINGS
# ===========================================================================

_settings_instance: Optional[Settings] = None


def get_settings() -> Settings:
    """Load :class:`Settings` once and return the cached instance."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings.from_yaml()
    return _settings_instance


def reset_settings() -> None:
    """Forget the cached settings so the next :func:`get_settings` reloads."""
    global _settings_instance
    _settings_instance = None


# ===========================================================================
# STARTUP CHECKS
# ===========================================================================

REQUIRED_ENV_VARS: List[str] = [
    "SUPABASE_URL",
    "SUPABASE_SERVICE_KEY",
]


def validate_env(strict: bool = True) -> Dict[str, bool]:
    """
    Check the Supabase connection variables before anything connects.

    Airtable and Instagram credentials are not checked here: they are
    read from the ``integration_settings`` table at push time and both
    integrations are optional.

    Args:
        strict: If ``True``, raise ``ConfigurationError`` when any required
            variable is missing. If ``False``, return the status dict
            without raising.

    Returns:
        Dict mapping each required variable name to whether it is set.

    Raises:
        ConfigurationError: If ``strict`` and a required variable is missing.
    """
    status: Dict[str, bool] = {}
    missing: List[str] = []

    for var in REQUIRED_ENV_VARS:
        present = bool(os.environ.get(var))
        status[var] = present
        if not present:
            missing.append(var)

    if strict and missing:
        raise ConfigurationError(
            f"Missing required environment variables: {missing}. "
            f"Copy .env.example to .env and fill in the values."
        )

    return status
