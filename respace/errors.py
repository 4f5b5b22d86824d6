"""
Exceptions and error logging for respace.

Logs full stack traces for debugging while the CLI shows clean messages.
"""

import os
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


class RespaceError(Exception):
    """Base class for respace errors."""


class PersistenceError(RespaceError):
    """Saving the review snapshot failed (I/O or serialization)."""


class CorruptDataError(RespaceError):
    """The stored snapshot could not be parsed."""


ERROR_LOG_FILENAME = "respace-errors.log"


def _error_log_path(store_path: Optional[Path] = None) -> Path:
    """Resolve error log path: the given store, RESPACE_STORE_PATH, or ./.respace."""
    if store_path is not None:
        return Path(store_path) / ERROR_LOG_FILENAME
    store = os.environ.get("RESPACE_STORE_PATH")
    if store:
        return Path(store) / ERROR_LOG_FILENAME
    return Path.cwd() / ".respace" / ERROR_LOG_FILENAME


def log_exception(exc: Exception, context: str = "", store_path: Optional[Path] = None) -> Path:
    """
    Log exception with full traceback to file.

    Args:
        exc: The exception that occurred
        context: Optional context string (e.g., command name)
        store_path: Store directory to log into (the vault's ``.respace``)

    Returns:
        Path to the error log file
    """
    log_path = _error_log_path(store_path)
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(log_path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o600)
        with os.fdopen(fd, "a") as f:
            f.write(f"\n{'='*60}\n")
            f.write(f"[{timestamp}]")
            if context:
                f.write(f" {context}")
            f.write("\n")
            f.write("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
    except OSError:
        pass  # Can't write error log; don't crash over it
    return log_path
