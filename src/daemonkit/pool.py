# ABOUTME: Bounded worker-process table with reusable serial numbers
# ABOUTME: Maps child pids to slots; lowest free serial number is handed out first

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChildSlot:
    """A worker process occupying one slot of the pool.

    Attributes:
        serial_number: Slot index in [0, capacity), fixed for the worker's life
        pid: Process id returned by fork in the parent
    """

    serial_number: int
    pid: int


class ProcessPool:
    """Fixed-capacity table of live worker processes.

    The pool lives in a single process's memory. After a fork each process
    has its own copy, so the parent tracks its children here and a worker
    gets an empty zero-capacity pool.
    """

    def __init__(self, capacity: int = 0):
        """Initialize ProcessPool.

        Args:
            capacity: Maximum number of simultaneously tracked workers
        """
        if capacity < 0:
            raise ValueError(f"capacity must be >= 0, got {capacity}")
        self._capacity = capacity
        self._slots: List[Optional[ChildSlot]] = [None] * capacity
        self._by_pid: Dict[int, ChildSlot] = {}

    @property
    def capacity(self) -> int:
        return self._capacity

    def next_free_serial_number(self) -> Optional[int]:
        """Return the lowest unoccupied serial number, or None if full."""
        for serial_number, slot in enumerate(self._slots):
            if slot is None:
                return serial_number
        return None

    def register(self, serial_number: int, pid: int) -> bool:
        """Occupy a slot with a freshly forked child.

        Args:
            serial_number: Slot to occupy
            pid: Child process id

        Returns:
            True if the slot was taken, False if it is out of range,
            already occupied, or the pid is already tracked
        """
        if not 0 <= serial_number < self._capacity:
            logger.warning(f"Serial number {serial_number} outside pool of {self._capacity}")
            return False
        if self._slots[serial_number] is not None or pid in self._by_pid:
            logger.warning(f"Refusing to register pid {pid} in occupied slot {serial_number}")
            return False

        slot = ChildSlot(serial_number=serial_number, pid=pid)
        self._slots[serial_number] = slot
        self._by_pid[pid] = slot
        return True

    def remove(self, pid: int) -> Optional[ChildSlot]:
        """Free the slot held by pid.

        Returns:
            The removed ChildSlot, or None if pid is not tracked
        """
        slot = self._by_pid.pop(pid, None)
        if slot is None:
            return None
        self._slots[slot.serial_number] = None
        return slot

    def occupied_count(self) -> int:
        return len(self._by_pid)

    def all_occupied(self) -> List[ChildSlot]:
        """Snapshot of occupied slots, safe to iterate while removing."""
        return list(self._by_pid.values())

    def pids(self) -> List[int]:
        return list(self._by_pid)

    def is_empty(self) -> bool:
        return not self._by_pid

    def __len__(self) -> int:
        return len(self._by_pid)

    def __contains__(self, pid: object) -> bool:
        return pid in self._by_pid
