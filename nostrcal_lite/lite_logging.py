"""
Central logging configuration for nostrcal_lite.

Keeps third-party libraries quiet while leaving nostrcal_lite's own fallbacks
(dropped records, timezone fallbacks, cache failures) visible, and tags log
records with the id of the refresh batch being processed.
"""

import contextvars
import logging
import os
import uuid
from typing import Optional

_refresh_id: contextvars.ContextVar[str] = contextvars.ContextVar("nostrcal_refresh_id", default="-")

LITE_MODULES = [
    "nostrcal_lite",
    "nostrcal_lite.records",
    "nostrcal_lite.temporal",
    "nostrcal_lite.recurrence",
    "nostrcal_lite.geo",
    "nostrcal_lite.export",
    "nostrcal_lite.domain",
]


def new_refresh_id() -> str:
    """Start a refresh batch: generate an id and bind it to the current context."""
    refresh_id = uuid.uuid4().hex[:8]
    _refresh_id.set(refresh_id)
    return refresh_id


def get_refresh_id() -> str:
    return _refresh_id.get()


class RefreshIdFilter(logging.Filter):
    """Add the current refresh batch id to all log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Add refresh id to log record.

        Args:
            record: Log record to enhance

        Returns:
            True to allow record to be logged
        """
        record.refresh_id = get_refresh_id()
        return True


def configure_lite_logging(
    debug_mode: bool = False,
    force_debug: Optional[bool] = None,
    log_level: Optional[str] = None,
) -> None:
    """
    Configure logging levels for nostrcal_lite.

    Args:
        debug_mode: Whether to enable debug logging for nostrcal_lite modules
        force_debug: Override debug mode setting (None to use env var detection)
        log_level: Explicit root level name; takes precedence over NOSTRCAL_LOG_LEVEL

    Environment Variables:
        NOSTRCAL_DEBUG: Set to '1', 'true', 'yes' to force debug logging
        NOSTRCAL_LOG_LEVEL: Override root log level (DEBUG, INFO, WARNING, ERROR)
    """
    env_debug = os.getenv("NOSTRCAL_DEBUG", "").lower() in ("1", "true", "yes")
    requested_level = (log_level or os.getenv("NOSTRCAL_LOG_LEVEL", "")).upper()

    if force_debug is not None:
        final_debug = force_debug
    elif env_debug:
        final_debug = True
    else:
        final_debug = debug_mode

    root_level = logging.DEBUG if final_debug else logging.INFO
    if requested_level in ("DEBUG", "INFO", "WARNING", "ERROR"):
        root_level = getattr(logging, requested_level)

    # Don't use force=True so the colorlog handler from __init__ survives
    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)

    refresh_filter = RefreshIdFilter()
    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setLevel(root_level)
        handler.setFormatter(
            logging.Formatter("[%(asctime)s] [%(refresh_id)s] %(levelname)s - %(name)s - %(message)s")
        )
        handler.addFilter(refresh_filter)
        root_logger.addHandler(handler)
    else:
        for existing_handler in root_logger.handlers:
            if not any(isinstance(f, RefreshIdFilter) for f in existing_handler.filters):
                existing_handler.addFilter(refresh_filter)

    logger_config: dict[str, int] = {
        "asyncio": logging.WARNING,
        "icalendar": logging.INFO,
    }

    lite_level = logging.DEBUG if final_debug else root_level
    for module in LITE_MODULES:
        logger_config[module] = lite_level

    for logger_name, level in logger_config.items():
        logging.getLogger(logger_name).setLevel(level)

    if final_debug:
        root_logger.info("Debug logging enabled for nostrcal_lite modules")
    else:
        root_logger.debug("Production logging configuration applied")


def get_logging_status() -> dict[str, str]:
    """
    Get current logging configuration status.

    Returns:
        Dictionary mapping logger names to their current levels
    """
    status = {"root": logging.getLevelName(logging.getLogger().level)}
    for logger_name in ["nostrcal_lite", "asyncio", "icalendar"]:
        status[logger_name] = logging.getLevelName(logging.getLogger(logger_name).level)
    return status
