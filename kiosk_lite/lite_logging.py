"""
Central logging configuration for kiosk_lite.

Suppresses verbose debug logs from third-party libraries while keeping the
fetcher and scheduler diagnostics that matter on a small kiosk device.
"""

import logging
import os
from typing import Optional

# Third-party loggers that are chatty at DEBUG/INFO
NOISY_LOGGERS: dict[str, int] = {
    "aiohttp.access": logging.WARNING,
    "aiohttp.server": logging.WARNING,
    "aiohttp.web": logging.INFO,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "asyncio": logging.WARNING,
    "charset_normalizer": logging.WARNING,
    "icalendar": logging.INFO,
}

DEBUG_ENV_VALUES = frozenset({"1", "true", "yes", "on"})


def env_debug_enabled() -> bool:
    """True when KIOSK_DEBUG holds one of DEBUG_ENV_VALUES (case-insensitive)."""
    return os.getenv("KIOSK_DEBUG", "").strip().lower() in DEBUG_ENV_VALUES


KIOSK_MODULES = [
    "kiosk_lite",
    "kiosk_lite.server",
    "kiosk_lite.state",
    "kiosk_lite.fetchers",
]


def configure_lite_logging(debug_mode: bool = False, force_debug: Optional[bool] = None) -> None:
    """
    Configure logging levels for kiosk_lite.

    Args:
        debug_mode: Whether to enable debug logging for kiosk_lite modules
        force_debug: Override debug mode setting (None to use env var detection)

    Environment Variables:
        KIOSK_DEBUG: Set to '1', 'true', 'yes' or 'on' to force debug logging
        KIOSK_LOG_LEVEL: Override root log level (DEBUG, INFO, WARNING, ERROR)
    """
    env_debug = env_debug_enabled()
    env_log_level = os.getenv("KIOSK_LOG_LEVEL", "").upper()

    if force_debug is not None:
        final_debug = force_debug
    elif env_debug:
        final_debug = True
    else:
        final_debug = debug_mode

    root_level = logging.DEBUG if final_debug else logging.INFO
    if env_log_level in ("DEBUG", "INFO", "WARNING", "ERROR"):
        root_level = getattr(logging, env_log_level)

    # Don't use basicConfig(force=True); keep the colorlog handler from __init__.
    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)
    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setLevel(root_level)
        handler.setFormatter(
            logging.Formatter("[%(asctime)s] %(levelname)s - %(name)s - %(message)s")
        )
        root_logger.addHandler(handler)

    logger_config = dict(NOISY_LOGGERS)
    kiosk_level = logging.DEBUG if final_debug else logging.INFO
    for module in KIOSK_MODULES:
        logger_config[module] = kiosk_level

    for logger_name, level in logger_config.items():
        logging.getLogger(logger_name).setLevel(level)

    if final_debug:
        root_logger.info("Debug logging enabled for kiosk_lite modules")
    else:
        root_logger.info("Production logging configuration applied")


def get_logging_status() -> dict[str, str]:
    """
    Get current logging configuration status.

    Returns:
        Dictionary mapping logger names to their current levels
    """
    status = {"root": logging.getLevelName(logging.getLogger().level)}
    for logger_name in ("kiosk_lite", "aiohttp.access", "httpx", "asyncio"):
        status[logger_name] = logging.getLevelName(logging.getLogger(logger_name).level)
    return status
