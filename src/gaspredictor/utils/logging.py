"""
Logging configuration for Gas Predictor.

Console output goes through Rich (or a plain/JSON formatter), with optional
file output for production deployments.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    from gaspredictor.config.settings import Settings

ROOT_LOGGER_NAME = "gaspredictor"


class FileFormatter(logging.Formatter):
    """Formatter for file logs - clean and parseable."""

    def __init__(self) -> None:
        super().__init__(fmt="%(asctime)s [%(levelname)-8s] %(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S")


# Map string level names to logging constants
LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def _parse_level(level: str | int) -> int:
    """
    Parse logging level from string or int.

    Args:
        level: Logging level as string (DEBUG, INFO, etc.) or int

    Returns:
        Logging level constant (INFO if the name is unknown)
    """
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        level_upper = level.upper()
        if level_upper in LEVEL_MAP:
            return LEVEL_MAP[level_upper]
    return logging.INFO


def setup_logging(
    level: str | int = logging.INFO,
    log_file: str | Path | None = None,
    json_format: bool = False,
    file_mode: str = "a",
    console: Console | None = None,
    console_enabled: bool = True,
    use_rich: bool = True,
) -> logging.Logger:
    """
    Setup logging configuration for Gas Predictor.

    Args:
        level: Logging level as string (DEBUG, INFO, etc.) or int (default: INFO)
        log_file: Optional file path to write logs to (default: None, console only)
        json_format: Emit one JSON object per line on the console (log aggregation)
        file_mode: File mode for file handler - 'a' for append, 'w' for overwrite
        console: Optional Rich Console instance to use
        console_enabled: Whether to enable console logging
        use_rich: Whether to use RichHandler for the console (ignored with json_format)

    Returns:
        The package root logger
    """
    from gaspredictor.observability.structured_logging import HumanReadableFormatter, StructuredFormatter

    logger = logging.getLogger(ROOT_LOGGER_NAME)

    # Only clear handlers from this specific logger, not root or child loggers
    logger.handlers.clear()

    level_int = _parse_level(level)
    logger.setLevel(level_int)

    if console_enabled:
        handler: logging.Handler
        if json_format:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(StructuredFormatter())
        elif use_rich:
            handler = RichHandler(
                console=console or Console(stderr=True),
                show_time=True,
                show_path=False,
                markup=False,
                rich_tracebacks=True,
                log_time_format="[%X]",
            )
        else:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(HumanReadableFormatter())
        handler.setLevel(level_int)
        logger.addHandler(handler)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, mode=file_mode)
        # File captures everything the logger lets through
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(FileFormatter())
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger


def setup_logging_from_settings(settings: Settings, console: Any | None = None) -> logging.Logger:
    """
    Setup logging from loaded settings.

    Production defaults to JSON lines; other environments get Rich output.
    """
    log = settings.logging
    return setup_logging(
        level=log.level,
        log_file=log.file,
        json_format=log.json_format,
        console=console,
        use_rich=log.console_type == "rich",
    )


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name (default: "gaspredictor")

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
