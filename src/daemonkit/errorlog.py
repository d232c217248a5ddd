# ABOUTME: Append-only error log for failures caught inside a running daemon
# ABOUTME: Entries are tagged with a timestamp and the reporting process id

import logging
from pathlib import Path

ERROR_LOG_FORMAT = "[%(asctime)s] [%(process)d] %(message)s"
ERROR_LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Package logger every daemonkit module logs beneath.
package_logger = logging.getLogger("daemonkit")


def attach_error_log(error_log: Path) -> logging.FileHandler:
    """Route ERROR records of the daemonkit loggers into error_log.

    Args:
        error_log: File to append to; never truncated

    Returns:
        The installed handler, for detach_error_log()
    """
    handler = logging.FileHandler(error_log, mode="a", encoding="utf-8")
    handler.setLevel(logging.ERROR)
    handler.setFormatter(logging.Formatter(ERROR_LOG_FORMAT, datefmt=ERROR_LOG_DATEFMT))
    package_logger.addHandler(handler)
    return handler


def detach_error_log(handler: logging.Handler) -> None:
    """Remove a handler installed by attach_error_log() and close it."""
    package_logger.removeHandler(handler)
    handler.close()
