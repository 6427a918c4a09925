#!/usr/bin/env python3
"""Logging setup for the docview viewer.

The launcher owns the root logger and calls :func:`setup_logging`.  An
application embedding the viewer usually has its own root configuration and
should call :func:`attach_viewer_handler` instead, which only touches the
``docview_project`` logger tree.
"""

import logging
import os
import sys
from typing import Iterable, Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

PACKAGE_LOGGER = "docview_project"

# httpx/httpcore log every request line at INFO and every socket event at DEBUG.
NOISY_LOGGERS = ("httpx", "httpcore", "asyncio")


def _file_handler(log_file: str, formatter: logging.Formatter) -> logging.Handler:
    log_dir = os.path.dirname(log_file)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setFormatter(formatter)
    return handler


def quiet_libraries(names: Iterable[str] = NOISY_LOGGERS, level: int = logging.WARNING) -> None:
    for name in names:
        logging.getLogger(name).setLevel(level)


def setup_logging(log_level: int = logging.INFO,
                  log_file: Optional[str] = None) -> None:
    """Configure the root logger for the standalone viewer.

    Args:
        log_level: Level for the root logger (default: logging.INFO)
        log_file: Optional path to a log file. If None, logs to console only.

    """
    formatter = logging.Formatter(LOG_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Replace whatever a previous call installed
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        root_logger.addHandler(_file_handler(log_file, formatter))

    if log_level > logging.DEBUG:
        quiet_libraries()

    root_logger.debug("Logging initialized (level=%s, file=%s)",
                      logging.getLevelName(log_level), log_file)


def attach_viewer_handler(log_file: str, log_level: int = logging.DEBUG) -> logging.Handler:
    """Mirror the viewer's own records into *log_file*; root is left alone.

    Returns the handler so the host can remove it again.
    """
    handler = _file_handler(log_file, logging.Formatter(LOG_FORMAT))
    handler.setLevel(log_level)
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    if package_logger.level == logging.NOTSET or package_logger.level > log_level:
        package_logger.setLevel(log_level)
    package_logger.addHandler(handler)
    return handler
