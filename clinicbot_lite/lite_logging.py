"""
Central logging configuration for clinicbot_lite.

Quiets chatty third-party libraries (httpx, asyncio) while keeping the
engine's own diagnostics available.
"""

import logging
import os
from typing import Optional

ENGINE_LOGGERS = [
    "clinicbot_lite",
    "clinicbot_lite.domain.instance_generator",
    "clinicbot_lite.domain.expansion",
    "clinicbot_lite.domain.date_bucket",
    "clinicbot_lite.working_calendar.service",
    "clinicbot_lite.working_calendar.working_day_filter",
]

SUPPRESSED_LOGGERS = [
    "httpx",
    "httpcore",
    "asyncio",
]


def configure_lite_logging(debug_mode: bool = False, force_debug: Optional[bool] = None) -> None:
    """
    Configure logging levels for clinicbot_lite.

    Args:
        debug_mode: Whether to enable debug logging for clinicbot_lite modules
        force_debug: Override debug mode setting (None to use env var detection)

    Environment Variables:
        CLINICBOT_DEBUG: Set to '1', 'true', 'yes' to force debug logging
        CLINICBOT_LOG_LEVEL: Override root log level (DEBUG, INFO, WARNING, ERROR)
    """
    env_debug = os.getenv("CLINICBOT_DEBUG", "").lower() in ("1", "true", "yes")
    env_log_level = os.getenv("CLINICBOT_LOG_LEVEL", "").upper()

    if force_debug is not None:
        final_debug = force_debug
    elif env_debug:
        final_debug = True
    else:
        final_debug = debug_mode

    root_level = logging.DEBUG if final_debug else logging.INFO
    if env_log_level in ("DEBUG", "INFO", "WARNING", "ERROR"):
        root_level = getattr(logging, env_log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)

    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setLevel(root_level)
        handler.setFormatter(
            logging.Formatter("[%(asctime)s] %(levelname)s - %(name)s - %(message)s")
        )
        root_logger.addHandler(handler)

    logger_config: dict[str, int] = {name: logging.WARNING for name in SUPPRESSED_LOGGERS}

    engine_level = logging.DEBUG if final_debug else logging.INFO
    for module in ENGINE_LOGGERS:
        logger_config[module] = engine_level

    for logger_name, level in logger_config.items():
        logging.getLogger(logger_name).setLevel(level)

    if final_debug:
        root_logger.info(
            "Debug logging enabled for clinicbot_lite modules. Third-party debug logs suppressed."
        )
    else:
        root_logger.debug("Production logging configuration applied.")


def reset_logging_to_debug() -> None:
    """Reset the root and suppressed loggers to DEBUG for troubleshooting."""
    logging.getLogger().setLevel(logging.DEBUG)

    for logger_name in SUPPRESSED_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.DEBUG)

    logging.getLogger().info("All loggers reset to DEBUG level for troubleshooting")


def get_logging_status() -> dict[str, str]:
    """
    Get current logging configuration status.

    Returns:
        Dictionary mapping logger names to their current levels
    """
    status = {"root": logging.getLevelName(logging.getLogger().level)}

    for logger_name in ["clinicbot_lite", *SUPPRESSED_LOGGERS]:
        status[logger_name] = logging.getLevelName(logging.getLogger(logger_name).level)

    return status
