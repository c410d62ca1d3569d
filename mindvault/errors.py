"""
Crash reporting for the mindvault CLI.

Unexpected exceptions are appended with their traceback to an error log
in the memory root; the user only sees a one-line message.
"""

import os
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .config import get_default_root

ERROR_LOG_FILENAME = "mindvault-errors.log"
_SEPARATOR = "=" * 60


def error_log_path(root: Optional[Path] = None) -> Path:
    """<root>/mindvault-errors.log, defaulting to the configured memory root."""
    return (root or get_default_root()) / ERROR_LOG_FILENAME


def format_crash(exc: BaseException, context: str = "") -> str:
    """One log entry: separator, UTC timestamp, context, traceback."""
    header = f"[{datetime.now(timezone.utc).isoformat()}]"
    if context:
        header += f" {context}"
    body = "".join(traceback.format_exception(exc))
    return f"\n{_SEPARATOR}\n{header}\n{body}"


def log_exception(exc: BaseException, context: str = "", root: Optional[Path] = None) -> Path:
    """
    Append an exception and its traceback to the error log.

    The file is created owner-readable only. Failure to write is ignored.

    Returns:
        Path of the error log
    """
    log_path = error_log_path(root)
    entry = format_crash(exc, context)
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(log_path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o600)
        with os.fdopen(fd, "a", encoding="utf-8") as f:
            f.write(entry)
    except OSError:
        pass  # nowhere left to report to
    return log_path
