#!/usr/bin/env python3
# ABOUTME: Example single-process daemon that appends a counter line every second
# ABOUTME: Run with: daemonkit start counter_daemon:CounterDaemon --runtime-dir /tmp/counter

import time
from pathlib import Path

from daemonkit import BaseDaemon


class CounterDaemon(BaseDaemon):
    """Writes ten ticks per process() call, checking for stop between ticks."""

    def process(self) -> None:
        log_path = Path(self.runtime_dir) / "counter.log"
        for i in range(10):
            if self.is_stop_process():
                break
            with open(log_path, "a") as f:
                f.write(f"{time.time():.3f} : daemonize={int(self.daemonize)} : {i}\n")
            time.sleep(1)
            self.dispatch()


if __name__ == "__main__":
    import sys

    CounterDaemon({"runtime_dir": sys.argv[1] if len(sys.argv) > 1 else "/tmp/counter"}).start()
