"""Logging configuration for modpack-sync.

Log files are stored in the platform log directory, e.g.
~/.local/state/modpack-sync/log/modpack-sync.log on Linux.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import platformdirs

from .constants import APP_AUTHOR, APP_NAME, LOG_FILE

LOGGER_NAME = "modpack_sync"


def default_log_path() -> Path:
    return Path(platformdirs.user_log_dir(APP_NAME, APP_AUTHOR)) / LOG_FILE


def setup_logging(verbose: bool = False, log_file: Optional[Path] = None) -> logging.Logger:
    """Configure package-wide logging.

    The file handler always logs DEBUG and above. A console handler is added
    only in verbose mode, so normal CLI output stays clean.

    Args:
        verbose: If True, also log to stderr at DEBUG level
        log_file: Log file path. If None, uses the platform log directory.

    Returns:
        The package logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)

    # Clear any existing handlers
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)

    log_file = Path(log_file) if log_file else default_log_path()
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
    except OSError:
        # Read-only home or similar; carry on without a log file
        file_handler = None
    if file_handler is not None:
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        logger.addHandler(file_handler)

    if verbose:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(logging.Formatter("%(levelname)s - %(name)s - %(message)s"))
        logger.addHandler(console_handler)

    return logger
