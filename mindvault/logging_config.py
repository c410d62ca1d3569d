"""
Logging setup for mindvault.

By default only warnings from the "mindvault" loggers reach the terminal
(skipped files, corrupt state). Debug output is opt-in via --verbose or
MINDVAULT_VERBOSE=1. Every command also appends INFO records to an
operations log in the memory root.
"""

import logging
import os
import sys
import warnings
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOGGER_NAME = "mindvault"
OPS_LOG_FILENAME = "mindvault-ops.log"
OPS_LOG_MAX_BYTES = 1_000_000
OPS_LOG_BACKUPS = 3

_DEBUG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_OPS_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
_OPS_HANDLER_NAME = "mindvault-ops"


def configure_quiet_mode(quiet: bool = True):
    """
    Keep routine output off the terminal.

    Args:
        quiet: If True, hide Python warnings and anything below WARNING
            from mindvault's own loggers.
    """
    if not quiet:
        return
    warnings.filterwarnings("ignore")
    logging.getLogger(LOGGER_NAME).setLevel(logging.WARNING)


def _stderr_handler_installed(logger: logging.Logger) -> bool:
    return any(
        isinstance(h, logging.StreamHandler) and h.stream is sys.stderr
        for h in logger.handlers
    )


def enable_debug_mode():
    """Send DEBUG and above to stderr."""
    warnings.filterwarnings("default")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    if not _stderr_handler_installed(root_logger):
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(_DEBUG_FORMAT, datefmt="%H:%M:%S"))
        root_logger.addHandler(handler)

    logging.getLogger(LOGGER_NAME).setLevel(logging.DEBUG)


def _current_ops_handler(logger: logging.Logger, log_path: Path) -> Optional[logging.Handler]:
    """The ops handler already writing to `log_path`, detaching any for other roots."""
    target = os.path.abspath(log_path)
    current = None
    for h in list(logger.handlers):
        if h.get_name() != _OPS_HANDLER_NAME:
            continue
        if current is None and getattr(h, "baseFilename", None) == target:
            current = h
        else:
            logger.removeHandler(h)
            h.close()
    return current


def configure_ops_log(root) -> RotatingFileHandler:
    """Attach a rotating operations log at <root>/mindvault-ops.log.

    The handler records INFO and above regardless of quiet mode, so the
    mindvault logger is lowered to INFO if it was set higher. Calling this
    again for the same root returns the handler already attached; a
    handler left over from another root is closed.
    """
    log_path = Path(root) / OPS_LOG_FILENAME
    logger = logging.getLogger(LOGGER_NAME)
    existing = _current_ops_handler(logger, log_path)
    if existing is not None:
        return existing
    log_path.parent.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(
        str(log_path),
        maxBytes=OPS_LOG_MAX_BYTES,
        backupCount=OPS_LOG_BACKUPS,
        encoding="utf-8",
    )
    handler.set_name(_OPS_HANDLER_NAME)
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(_OPS_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    logger.addHandler(handler)
    if logger.level == logging.NOTSET or logger.level > logging.INFO:
        logger.setLevel(logging.INFO)
    return handler
