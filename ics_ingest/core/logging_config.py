"""
Central logging configuration for ics_ingest.

Keeps third-party ICS parsing chatter out of the console while leaving
ingestion anomalies (logged at WARNING) visible.
"""

import logging
import os
import sys
from typing import Optional

import colorlog

# Loggers owned by this package
INGEST_LOGGERS = (
    "ics_ingest",
    "ics_ingest.calendar.ics_parser",
    "ics_ingest.calendar.event_builder",
    "ics_ingest.calendar.recurrence_reconciler",
    "ics_ingest.calendar.event_validator",
)

# Third-party libraries that generate excessive debug logs
NOISY_LOGGERS = {
    "icalendar": logging.WARNING,
    "dateutil": logging.WARNING,
}


def _env_debug_enabled() -> bool:
    return os.getenv("ICS_INGEST_DEBUG", "").strip().lower() in ("1", "true", "yes", "on")


def install_console_handler() -> bool:
    """Attach a colored stderr handler to the root logger.

    Only installs a handler if the root logger has none, to avoid duplicate output.

    Returns:
        True if a handler was installed
    """
    root = logging.getLogger()
    if root.handlers:
        return False

    handler = logging.StreamHandler(stream=sys.stderr)
    # HH:MM:SS  LEVEL   logger.name: message
    fmt = "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s %(name)s: %(message)s"
    log_colors = {
        "DEBUG": "cyan",
        "INFO": "green",
        "WARNING": "yellow",
        "ERROR": "red",
        "CRITICAL": "bold_red",
    }
    handler.setFormatter(colorlog.ColoredFormatter(fmt, datefmt="%H:%M:%S", log_colors=log_colors))
    root.addHandler(handler)
    return True


def configure_ingest_logging(
    debug_mode: bool = False,
    force_debug: Optional[bool] = None,
    install_handler: bool = True,
) -> None:
    """
    Configure console output and logger levels for ics_ingest.

    Call once at application startup.

    Args:
        debug_mode: Whether to enable debug logging for ics_ingest modules
        force_debug: Override debug mode setting (None to use env var detection)
        install_handler: Attach a colored console handler when the root logger has none

    Environment Variables:
        ICS_INGEST_DEBUG: Set to '1', 'true', 'yes' to force debug logging
        ICS_INGEST_LOG_LEVEL: Override root log level (DEBUG, INFO, WARNING, ERROR)
    """
    if force_debug is not None:
        final_debug = force_debug
    elif _env_debug_enabled():
        final_debug = True
    else:
        final_debug = debug_mode

    root_level = logging.DEBUG if final_debug else logging.INFO
    env_log_level = os.getenv("ICS_INGEST_LOG_LEVEL", "").upper()
    if env_log_level in ("DEBUG", "INFO", "WARNING", "ERROR"):
        root_level = getattr(logging, env_log_level)

    if install_handler:
        install_console_handler()
    logging.getLogger().setLevel(root_level)

    logger_config: dict[str, int] = dict(NOISY_LOGGERS)
    ingest_level = logging.DEBUG if final_debug else logging.INFO
    for module in INGEST_LOGGERS:
        logger_config[module] = ingest_level

    for logger_name, level in logger_config.items():
        logging.getLogger(logger_name).setLevel(level)

    logging.getLogger(__name__).debug(
        "ics_ingest logging configured (debug=%s, root=%s)",
        final_debug,
        logging.getLevelName(root_level),
    )


def get_logging_status() -> dict[str, str]:
    """
    Get current logging configuration status.

    Returns:
        Dictionary mapping logger names to their current levels
    """
    status = {"root": logging.getLevelName(logging.getLogger().level)}
    for logger_name in ("ics_ingest", *NOISY_LOGGERS):
        status[logger_name] = logging.getLevelName(logging.getLogger(logger_name).level)
    return status
