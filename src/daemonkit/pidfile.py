# ABOUTME: PID file read/write/remove plus the null-signal liveness probe
# ABOUTME: Writes happen under an exclusive flock; reads are lock-free

import fcntl
import logging
import os
from pathlib import Path
from typing import Optional

from .exceptions import (
    FailureGetPidFileError,
    FailureOpenPidFileError,
    FailureWritePidFileError,
)

logger = logging.getLogger(__name__)


def read_pid(pid_path: Path) -> Optional[int]:
    """Read the recorded pid.

    Args:
        pid_path: Path to the PID file

    Returns:
        The pid, or None if the file does not exist

    Raises:
        FailureGetPidFileError: The file exists but holds no usable pid
    """
    try:
        content = pid_path.read_text().strip()
    except FileNotFoundError:
        return None
    except OSError as e:
        raise FailureGetPidFileError(f"Failure read pid file {pid_path}: {e}") from e

    try:
        pid = int(content)
    except ValueError:
        raise FailureGetPidFileError(f"Failure get pid from file {pid_path}: {content!r}") from None
    if pid <= 0:
        raise FailureGetPidFileError(f"Failure get pid from file {pid_path}: {content!r}")
    return pid


def probe_liveness(pid: int) -> bool:
    """Check whether pid refers to a live process without signalling it."""
    # kill(0, ...) and kill(-n, ...) address process groups
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
        return True
    except ProcessLookupError:
        return False
    except PermissionError:
        # Exists, but owned by someone else
        return True


def write_pid_exclusive(pid_path: Path, pid: int) -> None:
    """Persist pid to pid_path while holding an exclusive advisory lock.

    Raises:
        FailureOpenPidFileError: The file cannot be opened for writing
        FailureWritePidFileError: Locking or writing did not complete
    """
    try:
        handle = open(pid_path, "w")
    except OSError as e:
        raise FailureOpenPidFileError(f"Failure open pid file {pid_path}: {e}") from e

    with handle:
        try:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
            try:
                handle.write(str(pid))
                handle.flush()
            finally:
                fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
        except OSError as e:
            raise FailureWritePidFileError(f"Failure write pid to file {pid_path}: {e}") from e

    logger.debug(f"Wrote pid {pid} to {pid_path}")


def remove_pid_file(pid_path: Path) -> None:
    """Remove the PID file; a missing file is not an error."""
    try:
        pid_path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not remove pid file {pid_path}: {e}")
