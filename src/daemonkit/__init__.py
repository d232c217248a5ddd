# ABOUTME: daemonkit - supervised background daemons with a bounded worker pool
# ABOUTME: Public API: BaseDaemon, ForkResult and the daemon error types

from .daemon import BaseDaemon, ForkResult
from .config import DaemonConfig
from .pool import ChildSlot, ProcessPool
from .state import Parent, Worker, DaemonRole
from .exceptions import (
    DaemonError,
    InvalidOptionError,
    DaemonAlreadyRunError,
    DaemonNotActiveError,
    FailureForkProcessError,
    FailureGetPidError,
    FailureGetPidFileError,
    FailureOpenPidFileError,
    FailureWritePidFileError,
    FailureStopError,
)

__version__ = "0.1.0"

__all__ = [
    "BaseDaemon",
    "ForkResult",
    "DaemonConfig",
    "ChildSlot",
    "ProcessPool",
    "Parent",
    "Worker",
    "DaemonRole",
    "DaemonError",
    "InvalidOptionError",
    "DaemonAlreadyRunError",
    "DaemonNotActiveError",
    "FailureForkProcessError",
    "FailureGetPidError",
    "FailureGetPidFileError",
    "FailureOpenPidFileError",
    "FailureWritePidFileError",
    "FailureStopError",
]
