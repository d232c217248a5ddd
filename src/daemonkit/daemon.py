# ABOUTME: Daemon lifecycle: detach, PID file claim, main loop, worker forking, shutdown
# ABOUTME: Subclass BaseDaemon and implement process() to get a supervised background daemon

import logging
import os
import signal
import sys
import time
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .config import DaemonConfig, default_daemon_name, ensure_runtime_dir
from .errorlog import attach_error_log
from .exceptions import (
    DaemonAlreadyRunError,
    DaemonNotActiveError,
    FailureForkProcessError,
    FailureGetPidError,
    FailureStopError,
)
from .pidfile import probe_liveness, read_pid, remove_pid_file, write_pid_exclusive
from .pool import ProcessPool
from .signals import SignalController
from .state import DaemonRole, ProcessState, Worker

logger = logging.getLogger(__name__)


class ForkResult(Enum):
    """Outcome of BaseDaemon.fork_child()."""

    NOT_CREATED = "not_created"
    WORKER = "worker"
    PARENT = "parent"


class BaseDaemon(ABC):
    """Base class for a supervised background daemon.

    Subclasses implement process(), which is called once per main-loop
    iteration. From inside process() the parent may call fork_child() to
    add a worker to its pool; the worker continues running the same loop.

    Lifecycle of start():
    - refuse to start if the PID file names a live process
    - fork once; the launching process exits
    - write the PID file, become session leader, silence stdio
    - install SIGTERM/SIGCHLD handlers and loop until a stop is requested
    - run after_stop(), remove the PID file (parent only) and exit

    Options (mapping passed to the constructor):
        runtime_dir: Directory for the PID file and error log (required)
        daemonize: Detach and loop (default True)
        name: Display name (default derived from the class path)
        dir_permissions: Mode for a newly created runtime_dir (default 0o775)
        pool_size: Maximum number of workers (default 0)
        exit_status: Exit status of every daemon process (default 0)
    """

    # Fixed sleep between rounds of the shutdown and stop loops, in seconds.
    poll_interval: float = 1.0

    def __init__(self, options: Optional[Mapping[str, Any]] = None):
        """Initialize BaseDaemon.

        Args:
            options: Daemon options, see the class docstring

        Raises:
            InvalidOptionError: Unknown option or missing runtime_dir
        """
        self.config = DaemonConfig.from_options(options, default_daemon_name(type(self)))
        ensure_runtime_dir(self.config)
        self._state = ProcessState.parent(self.config.pool_size)
        self._signals = SignalController(self._state, poll_interval=self.poll_interval)
        self._forked = False
        self._error_log_handler: Optional[logging.Handler] = None

    @abstractmethod
    def process(self) -> None:
        """Do one unit of work. Called repeatedly until the daemon stops."""

    def after_stop(self) -> None:
        """Hook run once the main loop has exited."""

    # -- accessors ---------------------------------------------------------

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def runtime_dir(self) -> Path:
        return self.config.runtime_dir

    @property
    def daemonize(self) -> bool:
        return self.config.daemonize

    @property
    def dir_permissions(self) -> int:
        return self.config.dir_permissions

    @property
    def exit_status(self) -> int:
        return self.config.exit_status

    @property
    def pool_size(self) -> int:
        """Maximum number of workers this process may hold (0 in a worker)."""
        return self._state.pool.capacity

    @property
    def pool(self) -> ProcessPool:
        return self._state.pool

    @property
    def pid(self) -> int:
        return self._state.pid

    @property
    def pid_file(self) -> Path:
        return self.config.pid_file

    @property
    def error_log(self) -> Path:
        return self.config.error_log

    @property
    def role(self) -> DaemonRole:
        return self._state.role

    @property
    def is_parent(self) -> bool:
        return self._state.is_parent

    @property
    def serial_number(self) -> Optional[int]:
        role = self._state.role
        return role.serial_number if isinstance(role, Worker) else None

    def is_stop_process(self) -> bool:
        return self._state.stop_requested

    def dispatch(self) -> None:
        """Run deferred signal effects now.

        The main loop calls this after every process(); long-running
        process() implementations may call it at their own safe points.
        """
        self._signals.dispatch()

    # -- external control --------------------------------------------------

    def is_active(self) -> bool:
        """Return True if the PID file names a live process.

        Raises:
            FailureGetPidFileError: The PID file exists but is unreadable
        """
        pid = read_pid(self.pid_file)
        if pid is None:
            return False
        self._state.pid = pid
        return probe_liveness(pid)

    def status(self) -> Dict[str, Any]:
        """Get daemon status.

        Returns:
            Dict with 'running' bool and, when running, 'pid' int
        """
        if self.is_active():
            return {"running": True, "pid": self.pid}
        return {"running": False}

    def start(self) -> None:
        """Start the daemon.

        Raises:
            DaemonAlreadyRunError: A live instance owns the PID file
            FailureForkProcessError: The detaching fork failed
            FailureGetPidError: The daemon could not determine its pid
            FailureOpenPidFileError: The PID file could not be opened
            FailureWritePidFileError: The PID file could not be written
        """
        if self.is_active():
            raise DaemonAlreadyRunError(f"Daemon `{self.name}` already run with pid {self.pid}")

        if not self.daemonize:
            self.process()
            self.after_stop()
            self.end()
            return

        if self._fork() > 0:
            # Launching process
            self.end()
            return
        self._forked = True

        pid = os.getpid()
        if not pid:
            raise FailureGetPidError("Failure get pid")
        self._state.pid = pid
        write_pid_exclusive(self.pid_file, pid)

        self._set_main_process()
        self._error_log_handler = attach_error_log(self.error_log)
        self._signals.install()
        logger.info(f"Daemon {self.name} started with pid {pid}")

        self._run()

        self.after_stop()
        if self.is_parent:
            remove_pid_file(self.pid_file)
            logger.info(f"Daemon {self.name} stopped")
        self.end()

    def stop(self, attempts: int = 0) -> bool:
        """Stop the running daemon from another process.

        Args:
            attempts: Signal rounds before giving up, 0 for unlimited

        Raises:
            DaemonNotActiveError: No live daemon is recorded in the PID file
            FailureStopError: The daemon process did not exit
        """
        if not self.is_active():
            raise DaemonNotActiveError(f"Daemon {self.name} not active")
        if self.stop_pid(self.pid, attempts):
            return True
        raise FailureStopError(f"Failure stop daemon {self.name}, pid: {self.pid}")

    def restart(self) -> None:
        """Stop the running daemon, then start a new one."""
        self.stop()
        self.start()

    def stop_pid(self, pid: int, attempts: int = 0) -> bool:
        """Send SIGTERM to pid until it exits.

        Each round checks liveness, signals, then sleeps poll_interval.

        Args:
            pid: Target process
            attempts: Maximum number of rounds, 0 for unlimited

        Returns:
            True once the process is gone, False if it outlived every round
        """
        if pid <= 0:
            return False

        rounds = 0
        while not attempts or rounds < attempts:
            if not probe_liveness(pid):
                return True
            rounds += 1
            try:
                os.kill(pid, signal.SIGTERM)
            except ProcessLookupError:
                return True
            except PermissionError as e:
                logger.error(f"Not allowed to signal pid {pid}: {e}")
                return False
            time.sleep(self.poll_interval)

        return not probe_liveness(pid)

    # -- workers -----------------------------------------------------------

    def fork_child(self) -> ForkResult:
        """Fork a worker into the next free pool slot.

        Only the parent of a daemonized instance with pool_size > 0 forks,
        and never once a stop has been requested.

        Returns:
            WORKER in the new process, PARENT in the parent once the worker
            is registered, NOT_CREATED when nothing was forked

        Raises:
            FailureForkProcessError: The OS refused to fork
        """
        if not (self.daemonize and self.is_parent and self.pool_size > 0):
            return ForkResult.NOT_CREATED
        if self.is_stop_process():
            return ForkResult.NOT_CREATED

        serial_number = self.pool.next_free_serial_number()
        if serial_number is None:
            return ForkResult.NOT_CREATED

        pid = self._fork()
        if pid == 0:
            self._state = ProcessState.worker(serial_number, os.getpid())
            self._signals.reset(self._state)
            self._forked = True
            return ForkResult.WORKER

        if not self.pool.register(serial_number, pid):
            logger.error(f"Failure register worker {serial_number} with pid {pid}")
            return ForkResult.NOT_CREATED
        logger.info(f"Started worker {serial_number} with pid {pid}")
        return ForkResult.PARENT

    # -- internals ---------------------------------------------------------

    def _fork(self) -> int:
        # Unflushed output would be written twice.
        sys.stdout.flush()
        sys.stderr.flush()
        try:
            return os.fork()
        except OSError as e:
            raise FailureForkProcessError(f"Failure fork process: {e}") from e

    def _set_main_process(self) -> None:
        """Detach from the controlling terminal and point stdio at /dev/null."""
        os.setsid()
        devnull = os.open(os.devnull, os.O_RDWR)
        try:
            for fd in (0, 1, 2):
                os.dup2(devnull, fd)
        finally:
            if devnull > 2:
                os.close(devnull)

    def _run(self) -> None:
        while not self.is_stop_process():
            try:
                self.process()
            except Exception:
                logger.exception(f"Failure in {self.name} process()")
            self._signals.dispatch()

    def end(self) -> None:
        """Terminate the current process with the configured exit status."""
        if self._forked:
            # Forked copies must not run the launcher's atexit handlers.
            logging.shutdown()
            os._exit(self.exit_status)
        sys.exit(self.exit_status)
