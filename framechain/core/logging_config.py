"""
FrameChain Logging Configuration

Namespaced logging for pipelines, gateway calls and the API server.
"""

import logging
import os
import sys
from enum import Enum
from pathlib import Path
from typing import Optional

ROOT_LOGGER_NAME = "framechain"


class LogLevel(Enum):
    """Log level enumeration."""
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL

    @classmethod
    def from_name(cls, name: Optional[str], default: "LogLevel" = None) -> "LogLevel":
        """Resolve a level from its name, e.g. from FRAMECHAIN_LOG_LEVEL."""
        if not name:
            return default or cls.INFO
        try:
            return cls[name.strip().upper()]
        except KeyError:
            return default or cls.INFO


DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
VERBOSE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(funcName)s | %(message)s"

_loggers: dict = {}
_initialized: bool = False


def setup_logging(
    level: LogLevel = None,
    log_file: Optional[Path] = None,
    verbose: bool = False,
    console_output: bool = True
) -> None:
    """
    Configure the framechain logger tree.

    Args:
        level: Minimum level; defaults to FRAMECHAIN_LOG_LEVEL or INFO
        log_file: Optional path to a log file
        verbose: Include line numbers and function names
        console_output: Emit to stdout
    """
    global _initialized

    if level is None:
        level = LogLevel.from_name(os.getenv("FRAMECHAIN_LOG_LEVEL"))

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(level.value)
    root_logger.handlers.clear()

    formatter = logging.Formatter(
        VERBOSE_FORMAT if verbose else DEFAULT_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level.value)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(level.value)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    _initialized = True
    root_logger.debug(f"Logging initialized - Level: {level.name}, Verbose: {verbose}")


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger under the framechain namespace.

    Args:
        name: Component name, e.g. "pipelines.frames"

    Returns:
        Configured logger instance
    """
    if not _initialized:
        setup_logging()

    full_name = name if name.startswith(ROOT_LOGGER_NAME) else f"{ROOT_LOGGER_NAME}.{name}"

    if full_name not in _loggers:
        _loggers[full_name] = logging.getLogger(full_name)

    return _loggers[full_name]
