# ABOUTME: Exception hierarchy for daemon lifecycle failures
# ABOUTME: Each error kind maps to one way start/stop/fork can fail


class DaemonError(Exception):
    """Base class for every daemonkit failure."""
    pass


class InvalidOptionError(DaemonError):
    """Raised when a daemon is constructed with an unknown or bad option."""
    pass


class DaemonAlreadyRunError(DaemonError):
    """Raised by start() when a live instance already owns the PID file."""
    pass


class DaemonNotActiveError(DaemonError):
    """Raised by stop() when no live instance is recorded."""
    pass


class FailureForkProcessError(DaemonError):
    """Raised when the OS refuses to create a new process."""
    pass


class FailureGetPidError(DaemonError):
    """Raised when the daemon cannot obtain its own process id."""
    pass


class FailureStopError(DaemonError):
    """Raised when the target process survives the stop protocol."""
    pass


class PidFileError(DaemonError):
    """Base class for PID file failures."""
    pass


class FailureGetPidFileError(PidFileError):
    """Raised when an existing PID file cannot be read or parsed."""
    pass


class FailureOpenPidFileError(PidFileError):
    """Raised when the PID file cannot be opened for writing."""
    pass


class FailureWritePidFileError(PidFileError):
    """Raised when the PID file write does not complete under lock."""
    pass
