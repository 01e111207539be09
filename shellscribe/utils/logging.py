"""
Logging utilities for ShellScribe.

Log records go to stderr so that streamed completions written to stdout
are never interleaved with diagnostics. A file handler can be added from
the settings.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional, Union

from shellscribe.config.settings import settings

PACKAGE_LOGGER = "shellscribe"
LEVEL_NAMES = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class LogFormatter(logging.Formatter):
    """Formatter that colours the level name with ANSI codes."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
        "RESET": "\033[0m",
    }

    def __init__(self, use_colors: bool = True):
        super().__init__(
            fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        if self.use_colors and levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.COLORS['RESET']}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


def setup_logging(
    log_level: str = "WARNING",
    log_file: Optional[Union[str, Path]] = None,
    use_colors: bool = True,
) -> logging.Logger:
    """
    Configure the package logger.

    Args:
        log_level (str): Logging level name; unknown names fall back to WARNING.
        log_file (Optional[Union[str, Path]]): Optional path of a log file.
        use_colors (bool): Whether to colour console output.

    Returns:
        logging.Logger: The configured ``shellscribe`` logger.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    requested = (log_level or "WARNING").upper()
    if requested not in LEVEL_NAMES:
        requested = "WARNING"
    level = getattr(logging, requested)
    logger.setLevel(level)
    logger.propagate = False

    # Request/response chatter from the HTTP stack stays hidden unless asked for
    third_party_level = logging.DEBUG if level == logging.DEBUG else logging.WARNING
    logging.getLogger("openai").setLevel(third_party_level)
    logging.getLogger("httpx").setLevel(third_party_level)

    from shellscribe.executor import platform_utils

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(
        LogFormatter(use_colors=use_colors and platform_utils.supports_ansi_colors())
    )
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        os.makedirs(log_path.parent, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(LogFormatter(use_colors=False))
        logger.addHandler(file_handler)

    logger.debug(f"Logging initialized at level {requested}")
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger below the package logger."""
    return logging.getLogger(f"{PACKAGE_LOGGER}.{name}" if name else PACKAGE_LOGGER)


def initialize_logging(debug: bool = False) -> logging.Logger:
    """
    Configure logging from the application settings.

    Args:
        debug (bool): Force DEBUG level regardless of the configured level.

    Returns:
        logging.Logger: The configured package logger.
    """
    debug = debug or settings.get("advanced", "debug_mode", False)
    level = "DEBUG" if debug else settings.get("advanced", "log_level", "WARNING")
    return setup_logging(log_level=level, log_file=settings.get_log_file_path())
