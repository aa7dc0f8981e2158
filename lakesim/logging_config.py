"""Logging setup for hosts embedding the simulation.

Every system logs through its module logger, so a host can quiet the chatty
ones (behavior transitions at DEBUG fire every tick) while keeping, say, the
capture engine verbose. Per-system levels come from ``configure_logging`` or
from ``LAKESIM_SYSTEM_LOG_LEVELS``, written as ``capture=DEBUG,behavior=WARNING``.
"""

from __future__ import annotations

import logging
import os
from typing import Dict, Mapping

from lakesim.exceptions import ConfigurationError

DEFAULT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
DEFAULT_DATEFMT = "%Y-%m-%d %H:%M:%S"
LOG_LEVEL_ENV_VAR = "LAKESIM_LOG_LEVEL"
SYSTEM_LEVELS_ENV_VAR = "LAKESIM_SYSTEM_LOG_LEVELS"

PACKAGE_LOGGER = "lakesim"

# Short system name -> module logger
SYSTEM_LOGGERS: Dict[str, str] = {
    "engine": "lakesim.simulation.engine",
    "schooling": "lakesim.systems.schooling",
    "behavior": "lakesim.systems.behavior",
    "food_chain": "lakesim.systems.food_chain",
    "capture": "lakesim.systems.capture",
    "cleanup": "lakesim.systems.cleanup",
}


def _resolve_level(raw: str) -> int:
    level = logging.getLevelName(raw.strip().upper())
    if not isinstance(level, int):
        raise ConfigurationError(f"Unknown log level: {raw!r}")
    return level


def _check_system(name: str) -> str:
    if name not in SYSTEM_LOGGERS:
        raise ConfigurationError(f"Unknown system {name!r}; expected one of {sorted(SYSTEM_LOGGERS)}")
    return name


def parse_system_levels(text: str) -> Dict[str, int]:
    """Parse ``name=LEVEL`` pairs separated by commas.

    Raises:
        ConfigurationError: On an unknown system, an unknown level or a pair
            without ``=``.
    """
    levels: Dict[str, int] = {}
    for item in text.split(","):
        item = item.strip()
        if not item:
            continue
        name, sep, raw_level = item.partition("=")
        if not sep:
            raise ConfigurationError(f"Expected system=LEVEL, got {item!r}")
        name = _check_system(name.strip())
        levels[name] = _resolve_level(raw_level)
    return levels


def configure_logging(
    *,
    level: str | None = None,
    system_levels: Mapping[str, str] | None = None,
    format: str = DEFAULT_FORMAT,
    datefmt: str = DEFAULT_DATEFMT,
) -> logging.Logger:
    """Configure the package logger and any per-system overrides.

    Args:
        level: Package-wide level. Falls back to ``LAKESIM_LOG_LEVEL`` or INFO.
        system_levels: Per-system levels keyed by the names in
            ``SYSTEM_LOGGERS``. Merged over ``LAKESIM_SYSTEM_LOG_LEVELS``,
            explicit entries winning.
        format: Log format string.
        datefmt: Date format string.

    Returns:
        The package logger (``lakesim``).

    Raises:
        ConfigurationError: On an unknown level or system name.
    """
    raw_level = level if level is not None else os.getenv(LOG_LEVEL_ENV_VAR)
    resolved_level = _resolve_level(raw_level or "INFO")
    logging.basicConfig(level=resolved_level, format=format, datefmt=datefmt)

    sim_logger = logging.getLogger(PACKAGE_LOGGER)
    sim_logger.setLevel(resolved_level)

    overrides = parse_system_levels(os.getenv(SYSTEM_LEVELS_ENV_VAR, ""))
    for name, raw in (system_levels or {}).items():
        overrides[_check_system(name)] = _resolve_level(raw)

    # Systems without an override follow the package level
    for name, logger_name in SYSTEM_LOGGERS.items():
        logging.getLogger(logger_name).setLevel(overrides.get(name, logging.NOTSET))

    named = ", ".join(f"{k}={logging.getLevelName(v)}" for k, v in sorted(overrides.items()))
    sim_logger.debug(f"Logging configured at {logging.getLevelName(resolved_level)}; overrides: {named or 'none'}")
    return sim_logger
