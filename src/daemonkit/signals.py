# ABOUTME: Deferred SIGTERM/SIGCHLD handling for the daemon main loop
# ABOUTME: Handlers only raise flags; dispatch() performs reaping and shutdown

import logging
import os
import signal
import time
from typing import Any, Dict

from .state import ProcessState

logger = logging.getLogger(__name__)

HANDLED_SIGNALS = (signal.SIGTERM, signal.SIGCHLD)


class SignalController:
    """Turns asynchronous signal delivery into synchronous state transitions.

    The installed handlers never touch the pool or send signals themselves.
    They record that something happened, and dispatch() carries out the
    effect from the main loop at an iteration boundary:

    - SIGTERM in the parent kills and reaps every worker, then requests stop
    - SIGTERM in a worker requests stop immediately
    - SIGCHLD reaps every exited child without blocking
    """

    def __init__(self, state: ProcessState, poll_interval: float = 1.0):
        """Initialize SignalController.

        Args:
            state: State of the current process
            poll_interval: Seconds to sleep between shutdown rounds
        """
        self.state = state
        self.poll_interval = poll_interval
        self._terminate_pending = False
        self._children_pending = False
        self._previous: Dict[int, Any] = {}

    def install(self) -> None:
        """Register handlers for SIGTERM and SIGCHLD."""
        for signum in HANDLED_SIGNALS:
            self._previous[signum] = signal.signal(signum, self._handle)

    def restore(self) -> None:
        """Put back the handlers that were active before install()."""
        for signum, handler in self._previous.items():
            signal.signal(signum, handler)
        self._previous.clear()

    def reset(self, state: ProcessState) -> None:
        """Rebind to a new process state, dropping anything still pending.

        Called in a freshly forked worker so that events recorded by the
        parent do not leak into the child.
        """
        self.state = state
        self._terminate_pending = False
        self._children_pending = False

    def _handle(self, signum: int, frame: Any) -> None:
        if signum == signal.SIGTERM:
            self._terminate_pending = True
        elif signum == signal.SIGCHLD:
            self._children_pending = True

    @property
    def pending(self) -> bool:
        return self._terminate_pending or self._children_pending

    def dispatch(self) -> None:
        """Run the deferred effects of every signal received so far."""
        if self._children_pending:
            self._children_pending = False
            self.reap_children()

        if self._terminate_pending:
            self._terminate_pending = False
            self.terminate()

    def terminate(self) -> None:
        """Stop the current process, draining its workers first if parent."""
        if self.state.is_parent:
            self.shutdown_children()
        self.state.stop_requested = True

    def reap_children(self) -> int:
        """Collect every exited child without blocking.

        Returns:
            Number of tracked children removed from the pool
        """
        pool = self.state.pool
        removed = 0
        while True:
            try:
                pid, status = os.waitpid(-1, os.WNOHANG)
            except ChildProcessError:
                # No children at all: nothing tracked can still be alive.
                for slot in pool.all_occupied():
                    logger.warning(f"Worker {slot.serial_number} (pid {slot.pid}) vanished without being reaped")
                    pool.remove(slot.pid)
                    removed += 1
                break

            if pid == 0:
                break

            slot = pool.remove(pid)
            if slot is None:
                logger.debug(f"Reaped untracked child {pid}")
                continue
            removed += 1
            logger.info(
                f"Worker {slot.serial_number} (pid {pid}) exited with code "
                f"{os.waitstatus_to_exitcode(status)}"
            )
        return removed

    def shutdown_children(self) -> None:
        """Terminate and reap every tracked worker.

        Blocks until the pool is empty. There is no attempt limit: the parent
        must not exit while any of its workers is still running.
        """
        pool = self.state.pool
        rounds = 0
        while not pool.is_empty():
            rounds += 1
            for slot in pool.all_occupied():
                try:
                    os.kill(slot.pid, signal.SIGTERM)
                except ProcessLookupError:
                    pass  # already gone, waiting to be reaped
                except OSError as e:
                    logger.error(f"Failure to signal worker {slot.serial_number} (pid {slot.pid}): {e}")
            time.sleep(self.poll_interval)
            self.reap_children()

        if rounds:
            logger.info(f"All workers stopped after {rounds} round(s)")
