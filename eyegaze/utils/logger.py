"""
Logging configuration for the gaze engine

Every module logs through ``logging.getLogger(__name__)``; configuring the
``eyegaze`` logger here routes the whole package, including records emitted
from the background refit thread.
"""

import logging
import sys
from pathlib import Path
from datetime import datetime
from typing import Optional, TextIO, Union


DETAILED_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(threadName)s] %(filename)s:%(lineno)d - %(message)s'
SIMPLE_FORMAT = '%(levelname)s: %(message)s'


def _resolve_level(level: Union[str, int]) -> int:
    if isinstance(level, int):
        return level
    return getattr(logging, str(level).upper(), logging.INFO)


def setup_logger(
    name: str = "eyegaze",
    log_level: Union[str, int] = "INFO",
    log_dir: Optional[str] = None,
    log_file: Optional[str] = None,
    console_output: bool = True,
    stream: Optional[TextIO] = None
) -> logging.Logger:
    """
    Setup logger with console and file handlers

    Args:
        name: Logger name
        log_level: Logging level name or number; unknown names fall back to INFO
        log_dir: Directory for log files; 'logs' when only log_file is given
        log_file: Log file name (default: 'eyegaze_YYYYMMDD.log')
        console_output: Whether to log to the console
        stream: Console stream (default: stdout)

    Returns:
        Configured logger instance
    """
    level = _resolve_level(log_level)
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Re-running setup replaces handlers instead of duplicating output
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if console_output:
        console_handler = logging.StreamHandler(stream or sys.stdout)
        console_handler.setLevel(max(level, logging.INFO))
        console_handler.setFormatter(logging.Formatter(SIMPLE_FORMAT))
        logger.addHandler(console_handler)

    if log_dir or log_file:
        log_directory = Path(log_dir) if log_dir else Path("logs")
        log_directory.mkdir(parents=True, exist_ok=True)
        if not log_file:
            log_file = f"eyegaze_{datetime.now().strftime('%Y%m%d')}.log"
        log_path = log_directory / log_file

        file_handler = logging.FileHandler(log_path, mode='a', encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(DETAILED_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
        logger.addHandler(file_handler)

        logger.info(f"Logging to file: {log_path}")

    return logger


def setup_from_config(logging_config, level_override: Optional[str] = None) -> logging.Logger:
    """Configure the package logger from a LoggingConfig section"""
    return setup_logger(
        name="eyegaze",
        log_level=level_override or logging_config.level,
        log_dir=logging_config.log_directory,
        log_file=logging_config.log_file,
        console_output=logging_config.console_output
    )


def get_logger(name: str = "eyegaze") -> logging.Logger:
    """Get an existing logger instance"""
    return logging.getLogger(name)
