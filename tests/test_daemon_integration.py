#!/usr/bin/env python3
# ABOUTME: End-to-end tests that launch a real detached daemon in a subprocess
# ABOUTME: Verifies PID file claim, worker pool shutdown on SIGTERM and the error log

import os
import signal
import subprocess
import sys
import textwrap
import time
from pathlib import Path

import pytest

from daemonkit import BaseDaemon

SRC_DIR = Path(__file__).resolve().parents[1] / "src"

DAEMON_SCRIPT = textwrap.dedent(
    """
    import sys
    import time

    from daemonkit import BaseDaemon, ForkResult


    class SleepyDaemon(BaseDaemon):
        poll_interval = 0.1

        def process(self):
            if self.is_parent and self.fork_child() is ForkResult.WORKER:
                return
            time.sleep(0.05)
            if self.is_parent and self.config.exit_status == 7:
                raise RuntimeError("tick exploded")


    if __name__ == "__main__":
        SleepyDaemon({
            "runtime_dir": sys.argv[1],
            "name": "sleepy",
            "pool_size": int(sys.argv[2]),
            "exit_status": int(sys.argv[3]),
        }).start()
    """
)


class SleepyClient(BaseDaemon):
    """Controller-side view of the daemon started by DAEMON_SCRIPT."""

    poll_interval = 0.1

    def process(self):
        pass


def wait_for(predicate, timeout=10.0):
    """Poll predicate until it holds; a half-written PID file counts as not yet."""
    from daemonkit.exceptions import FailureGetPidFileError

    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        try:
            if predicate():
                return True
        except FailureGetPidFileError:
            pass
        time.sleep(0.05)
    return False


class TestDetachedDaemon:
    """Tests running the full start/stop protocol against a real process."""

    @pytest.fixture(autouse=True)
    def setup(self, tmp_path):
        self.runtime_dir = tmp_path
        self.script = tmp_path / "sleepy_daemon.py"
        self.script.write_text(DAEMON_SCRIPT)
        self.client = SleepyClient({"runtime_dir": str(tmp_path), "name": "sleepy"})

        yield

        # Kill any leftover daemon (but never ourselves)
        pid_file = self.client.pid_file
        if pid_file.exists():
            try:
                pid = int(pid_file.read_text().strip())
                if pid != os.getpid():
                    os.kill(pid, signal.SIGKILL)
            except (ValueError, ProcessLookupError, OSError):
                pass

    def launch(self, pool_size=0, exit_status=0):
        env = dict(os.environ)
        env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(SRC_DIR), env.get("PYTHONPATH")]))
        launcher = subprocess.Popen(
            [sys.executable, str(self.script), str(self.runtime_dir), str(pool_size), str(exit_status)],
            env=env,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
        assert launcher.wait(timeout=10) == exit_status
        assert wait_for(self.client.is_active), "daemon never wrote a live pid"
        return self.client.pid

    def test_start_writes_pid_file_and_stop_removes_it(self):
        pid = self.launch(pool_size=2)

        assert pid != os.getpid()
        assert self.client.status() == {"running": True, "pid": pid}

        # The result is not asserted: if nothing reaps the orphaned daemon its
        # zombie keeps answering the liveness probe.
        self.client.stop_pid(pid, attempts=50)

        assert wait_for(lambda: not self.client.pid_file.exists())

    def test_second_start_is_refused(self):
        from daemonkit.exceptions import DaemonAlreadyRunError

        pid = self.launch()
        try:
            with pytest.raises(DaemonAlreadyRunError):
                self.client.start()
        finally:
            self.client.stop_pid(pid, attempts=50)
        assert wait_for(lambda: not self.client.pid_file.exists())

    def test_process_errors_reach_error_log(self):
        pid = self.launch(exit_status=7)

        assert wait_for(lambda: self.client.error_log.exists() and "tick exploded" in self.client.error_log.read_text())
        self.client.stop_pid(pid, attempts=50)
        assert wait_for(lambda: not self.client.pid_file.exists())

        first_line = self.client.error_log.read_text().splitlines()[0]
        assert f"[{pid}] Failure in sleepy process()" in first_line
