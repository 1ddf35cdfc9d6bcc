"""Logging setup for the FIT viewer."""

import logging

from fitview import config
from fitview.exceptions import ConfigurationError

LEVEL_NAMES = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def configure_logging(level: str | None = None, log_file: str | None = None) -> None:
    """
    Configure root logging with the application format.

    Args:
        level: Level name, defaults to config.LOG_LEVEL
        log_file: Optional log file path, defaults to config.LOG_FILE

    Raises:
        ConfigurationError: If the level name is unknown
    """
    level_name = (level or config.LOG_LEVEL).upper()
    if level_name not in LEVEL_NAMES:
        raise ConfigurationError(f"Unknown log level: {level_name}", config_key="FFV_LOG_LEVEL")

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    log_file = log_file or config.LOG_FILE
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level_name),
        format=config.LOG_FORMAT,
        handlers=handlers,
        force=True,
    )
