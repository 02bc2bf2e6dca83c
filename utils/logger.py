import logging
import sys
from pathlib import Path
from typing import Iterable, Optional, TextIO

DEFAULT_FORMAT = "[%(asctime)s] %(levelname)s [%(name)s] %(message)s"

# Loggers of the analysis packages, configured together by the CLI
PACKAGE_LOGGERS = ("analyzers", "core", "processor", "utils", "visualization")


def setup_logger(
    name: str = "layout_analyzer",
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    format_string: Optional[str] = None,
    stream: Optional[TextIO] = None
) -> logging.Logger:
    """
    Set up a logger with console and optional file output.

    Args:
        name: Name of the logger
        level: Logging level (e.g., logging.INFO)
        log_file: Optional path to log file
        format_string: Optional custom format string
        stream: Console stream, stdout when omitted

    Returns:
        logging.Logger: Configured logger
    """
    if format_string is None:
        format_string = DEFAULT_FORMAT

    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Replace handlers so repeated setup does not duplicate output
    logger.handlers = []

    formatter = logging.Formatter(format_string)

    console_handler = logging.StreamHandler(stream or sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path, encoding='utf-8')
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def setup_package_loggers(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    names: Iterable[str] = PACKAGE_LOGGERS,
    stream: Optional[TextIO] = None
) -> None:
    """Configure the module loggers of every analysis package at once."""
    for name in names:
        setup_logger(name, level=level, log_file=log_file, stream=stream)
        logging.getLogger(name).propagate = False


def get_logger(name: str) -> logging.Logger:
    """
    Get an existing logger or create a new one.

    Args:
        name: Name of the logger

    Returns:
        logging.Logger: Logger instance
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        logger = setup_logger(name)

    return logger
