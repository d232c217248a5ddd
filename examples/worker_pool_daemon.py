#!/usr/bin/env python3
# ABOUTME: Example daemon keeping a pool of workers busy with CPU-bound bursts
# ABOUTME: Workers fail now and then so the failures show up in the error log

import math
import random
import time

from daemonkit import BaseDaemon, ForkResult


class WorkerPoolDaemon(BaseDaemon):
    """Parent refills the pool each iteration; workers crunch numbers."""

    def process(self) -> None:
        if self.is_parent:
            if self.pool.occupied_count() < self.pool_size:
                if self.fork_child() is ForkResult.WORKER:
                    return
            time.sleep(1)
            return

        total = 0.0
        for i in range(3000):
            total += math.sqrt(abs(i * random.randint(1000, 10000) - random.randint(1000, 10000)))
        if random.randint(1, 100) >= 99:
            raise RuntimeError(f"worker {self.serial_number} hit a random failure")
        time.sleep(0.1)


if __name__ == "__main__":
    import sys

    runtime_dir = sys.argv[1] if len(sys.argv) > 1 else "/tmp/worker-pool"
    WorkerPoolDaemon({"runtime_dir": runtime_dir, "pool_size": 4}).start()
