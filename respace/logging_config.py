"""
Logging configuration for respace.

Quiet by default for better CLI output; debug and the ops log are opt-in.
"""

import logging
import sys
import warnings


def configure_quiet_mode(quiet: bool = True):
    """
    Configure logging to suppress verbose output.

    Args:
        quiet: If True, only warnings and errors from respace reach stderr.
            If False, show everything.
    """
    respace_logger = logging.getLogger("respace")
    if quiet:
        # Suppress Python warnings (including deprecation warnings)
        warnings.filterwarnings("ignore")
        if respace_logger.level == logging.NOTSET:
            respace_logger.setLevel(logging.WARNING)
    else:
        warnings.filterwarnings("default")
        respace_logger.setLevel(logging.NOTSET)


def enable_debug_mode():
    """Enable debug-level logging to stderr."""
    # Re-enable warnings
    warnings.filterwarnings("default")

    # Configure root logger for debug output
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Add stderr handler if not already present
    if not any(isinstance(h, logging.StreamHandler) and h.stream == sys.stderr
               for h in root_logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%H:%M:%S"
        ))
        root_logger.addHandler(handler)

    logging.getLogger("respace").setLevel(logging.DEBUG)


def configure_ops_log(store_path):
    """Configure a persistent operations log for a review store.

    Writes to {store_path}/respace-ops.log using a rotating file handler
    (1MB max, 3 backups). Always active regardless of --verbose.
    Returns the handler so it can be removed on close().
    """
    from logging.handlers import RotatingFileHandler
    from pathlib import Path

    store_path = Path(store_path)
    store_path.mkdir(parents=True, exist_ok=True)
    log_path = store_path / "respace-ops.log"
    handler = RotatingFileHandler(
        str(log_path),
        maxBytes=1_000_000,
        backupCount=3,
    )
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))

    respace_logger = logging.getLogger("respace")
    respace_logger.addHandler(handler)
    # Ensure respace logger allows INFO through even in quiet mode
    if respace_logger.level == logging.NOTSET or respace_logger.level > logging.INFO:
        respace_logger.setLevel(logging.INFO)

    return handler
