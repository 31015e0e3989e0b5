"""
Logging setup for the call bridge.

Every module logs through the ``call_bridge`` logger. It writes to stdout and,
unless turned off with LOG_FILE_OUTPUT, to a rotating UTF-8 file under LOG_DIR
(default ``logs/``). The ``websockets`` library logs each frame of the OpenAI
socket at DEBUG, so it is held at WARNING unless the bridge itself runs at DEBUG.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

from call_bridge.config.constants import LOGGER_NAME

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FILENAME = "call_bridge.log"
MAX_LOG_SIZE = 10 * 1024 * 1024  # 10 MB
BACKUP_COUNT = 5

_FALSE_VALUES = {"0", "false", "no", "off"}


def _file_output_enabled() -> bool:
    return os.getenv("LOG_FILE_OUTPUT", "true").strip().lower() not in _FALSE_VALUES


def _build_file_handler(log_dir: Path, formatter: logging.Formatter) -> RotatingFileHandler:
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_dir / LOG_FILENAME,
        maxBytes=MAX_LOG_SIZE,
        backupCount=BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setFormatter(formatter)
    return handler


def configure_logging(
    level: Optional[str] = None,
    log_dir: Optional[Union[str, Path]] = None,
    file_output: Optional[bool] = None,
) -> logging.Logger:
    """
    (Re)configure the ``call_bridge`` logger.

    Args:
        level: Level name; LOG_LEVEL or INFO when omitted
        log_dir: Directory for the rotating log file; LOG_DIR or ``logs``
        file_output: Whether to log to a file; LOG_FILE_OUTPUT when omitted

    Returns:
        logging.Logger: The configured logger
    """
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    numeric_level = getattr(logging, level_name, logging.INFO)
    if file_output is None:
        file_output = _file_output_enabled()
    log_dir = Path(log_dir or os.getenv("LOG_DIR", "logs"))

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(numeric_level)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    file_error = None
    if file_output:
        try:
            logger.addHandler(_build_file_handler(log_dir, formatter))
        except OSError as e:
            file_error = e

    logger.propagate = False
    logging.getLogger("websockets").setLevel(
        logging.DEBUG if numeric_level <= logging.DEBUG else logging.WARNING
    )

    if file_error is not None:
        logger.warning(f"Could not set up file logging in {log_dir}: {file_error}")
    logger.info(f"Logging configured at {logging.getLevelName(numeric_level)}")
    return logger
