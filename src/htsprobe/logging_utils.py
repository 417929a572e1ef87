"""Logging setup shared by the htsprobe CLI and library callers."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

LOGGER_NAME = "htsprobe"
DEFAULT_LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s]: %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _coerce_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level}")
    return resolved


def _add_file_handler(logger: logging.Logger, log_file: Union[str, Path], formatter) -> None:
    log_path = Path(log_file).resolve()
    for handler in logger.handlers:
        if isinstance(handler, logging.FileHandler) and Path(handler.baseFilename) == log_path:
            return
    log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_path)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)


def setup_logging(
    level: Union[int, str] = logging.WARNING,
    *,
    log_file: Optional[Union[str, Path]] = None,
    reconfigure: bool = False,
) -> logging.Logger:
    """
    Attach a stderr handler (and optionally a file handler) to the ``htsprobe`` logger.

    Repeated calls only adjust the level and add a missing file handler unless
    ``reconfigure`` is set, in which case existing handlers are replaced.
    """
    logger = logging.getLogger(LOGGER_NAME)
    formatter = logging.Formatter(fmt=DEFAULT_LOG_FORMAT, datefmt=DEFAULT_DATE_FORMAT)

    if reconfigure:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

    if not logger.handlers:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(formatter)
        logger.addHandler(stream_handler)

    if log_file is not None:
        _add_file_handler(logger, log_file, formatter)

    logger.setLevel(_coerce_level(level))
    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
