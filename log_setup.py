"""Logging for liked-sync.

Every logger from get_logger() prints bare INFO messages to the console and
writes DEBUG records, tagged with the logger name, to two files under LOG_DIR:
latest.log for the current run and liked_sync.log, rotated at midnight.
"""

import logging
import os
from logging.handlers import TimedRotatingFileHandler

DIR = os.path.dirname(os.path.abspath(__file__))
LOG_DIR = os.environ.get("LIKED_SYNC_LOG_DIR", os.path.join(DIR, "logs"))

LATEST_LOG = os.path.join(LOG_DIR, "latest.log")
DAILY_LOG = os.path.join(LOG_DIR, "liked_sync.log")
DAILY_BACKUPS = 7

FILE_FORMAT = "%(asctime)s [%(name)s] %(levelname)-5s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# One handler per file, shared by every logger.
_file_handlers = []


def _rotated_name(name):
    # liked_sync.log.2026-10-17 -> liked_sync.2026-10-17.log
    return name.replace(".log.", ".") + ".log"


def _shared_file_handlers():
    if not _file_handlers:
        os.makedirs(LOG_DIR, exist_ok=True)
        daily = TimedRotatingFileHandler(DAILY_LOG, when="midnight", backupCount=DAILY_BACKUPS, encoding="utf-8")
        daily.namer = _rotated_name
        formatter = logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT)
        for handler in (logging.FileHandler(LATEST_LOG, mode="a", encoding="utf-8"), daily):
            handler.setLevel(logging.DEBUG)
            handler.setFormatter(formatter)
            _file_handlers.append(handler)
    return _file_handlers


def get_logger(name):
    """Return the named logger, attaching console and file handlers on first use."""
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG)
    console = logging.StreamHandler()
    console.setLevel(logging.INFO)
    console.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(console)
    for handler in _shared_file_handlers():
        logger.addHandler(handler)
    return logger


def set_console_level(level):
    """Change the console threshold of every logger created by get_logger()."""
    for logger in logging.Logger.manager.loggerDict.values():
        if not isinstance(logger, logging.Logger):
            continue
        for handler in logger.handlers:
            if type(handler) is logging.StreamHandler:
                handler.setLevel(level)


def reset_latest():
    """Truncate latest.log at the start of a run."""
    os.makedirs(LOG_DIR, exist_ok=True)
    with open(LATEST_LOG, "w", encoding="utf-8"):
        pass
