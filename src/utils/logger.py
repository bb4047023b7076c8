"""Logging utilities for the knowledge graph tools."""

import logging
import sys
from pathlib import Path
from typing import Optional

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logger(
    name: str,
    log_level: str = "INFO",
    log_format: str = DEFAULT_FORMAT,
    log_file: Optional[str] = None,
    overwrite: bool = False,
) -> logging.Logger:
    """
    Set up a logger with console and optional file output.

    Module loggers below ``name`` (created with logging.getLogger(__name__))
    propagate to the handlers installed here.

    Args:
        name: Logger name, usually a package name such as "src.knowledge_graph"
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log message format
        log_file: Optional path to log file
        overwrite: If True, overwrite log file instead of appending (default: False)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, log_level.upper()))

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    formatter = logging.Formatter(log_format)

    # Console goes to stderr so command output on stdout stays parseable
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.DEBUG)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        mode = "w" if overwrite else "a"
        file_handler = logging.FileHandler(log_file, mode=mode, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
