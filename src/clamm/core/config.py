"""
clamm Engine Configuration

All settings are read from environment variables once, at import time.
Pools take explicit constructor arguments; these values are only defaults.
"""

from __future__ import annotations

import logging
import os

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


def _get_bool(env_var: str, default: str = "0") -> bool:
    return os.getenv(env_var, default).strip() == "1"


def _get_int(env_var: str, default: int) -> int:
    raw = os.getenv(env_var, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{env_var} must be an integer, got {raw!r}") from exc


ENVIRONMENT = os.getenv("CLAMM_ENVIRONMENT", "development")

# Logging
LOG_LEVEL = os.getenv("CLAMM_LOG_LEVEL", "INFO").upper()
LOG_JSON = _get_bool("CLAMM_LOG_JSON")
LOG_FILE = os.getenv("CLAMM_LOG_FILE", "").strip() or None

# Pool defaults
DEFAULT_TICK_SPACING = _get_int("CLAMM_DEFAULT_TICK_SPACING", 1)
ENFORCE_MAX_LIQUIDITY_PER_TICK = _get_bool("CLAMM_ENFORCE_MAX_LIQUIDITY_PER_TICK")

# Largest spacing the engine accepts (matches the bound on tick_spacing in
# deployed concentrated liquidity factories)
MAX_TICK_SPACING = 16384

_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def validate_tick_spacing(tick_spacing: int) -> int:
    """Return tick_spacing if usable, otherwise raise ConfigurationError."""
    if not isinstance(tick_spacing, int) or isinstance(tick_spacing, bool):
        raise ConfigurationError(f"tick_spacing must be an int, got {tick_spacing!r}")
    if tick_spacing <= 0 or tick_spacing > MAX_TICK_SPACING:
        raise ConfigurationError(
            f"tick_spacing must be in [1, {MAX_TICK_SPACING}], got {tick_spacing}"
        )
    return tick_spacing


def validate_config() -> None:
    """Validate the environment-derived settings.

    Raises:
        ConfigurationError: If any setting is out of range
    """
    if LOG_LEVEL not in _VALID_LOG_LEVELS:
        raise ConfigurationError(
            f"CLAMM_LOG_LEVEL must be one of {', '.join(_VALID_LOG_LEVELS)}, got {LOG_LEVEL!r}"
        )
    validate_tick_spacing(DEFAULT_TICK_SPACING)
    logger.debug(
        "Configuration validated",
        extra={
            "event": "config.validated",
            "environment": ENVIRONMENT,
            "default_tick_spacing": DEFAULT_TICK_SPACING,
        },
    )
