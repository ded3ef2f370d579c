"""
Logging configuration for daypage.

Quiet by default for CLI use; debug output and a persistent operations
log are opt-in / per-store.
"""

import logging
import sys
import warnings


def configure_quiet_mode(quiet: bool = True):
    """
    Keep the CLI output clean.

    Args:
        quiet: If True, only warnings and errors from daypage reach stderr
            and Python warnings are hidden. If False, show everything.
    """
    if quiet:
        warnings.filterwarnings("ignore")
        logging.getLogger("daypage").setLevel(logging.WARNING)
    else:
        warnings.filterwarnings("default")
        logging.getLogger("daypage").setLevel(logging.NOTSET)


def enable_debug_mode():
    """Enable debug-level logging to stderr."""
    # Re-enable warnings
    warnings.filterwarnings("default")

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

    logging.getLogger("daypage").setLevel(logging.DEBUG)


def configure_ops_log(store_path):
    """Configure a persistent operations log for a store.

    Writes to {store_path}/daypage-ops.log using a rotating file handler
    (1MB max, 3 backups). Always active regardless of --verbose.
    Returns the handler so it can be removed on close(), or None if the
    log file cannot be opened.
    """
    from logging.handlers import RotatingFileHandler
    from pathlib import Path

    log_path = Path(store_path) / "daypage-ops.log"
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            str(log_path),
            maxBytes=1_000_000,
            backupCount=3,
        )
    except OSError:
        return None
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))

    daypage_logger = logging.getLogger("daypage")
    daypage_logger.addHandler(handler)
    # Ensure the daypage logger lets INFO through even in quiet mode
    if daypage_logger.level == logging.NOTSET or daypage_logger.level > logging.INFO:
        daypage_logger.setLevel(logging.INFO)

    return handler
