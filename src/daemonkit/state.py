# ABOUTME: Process role variants and the per-process mutable daemon state
# ABOUTME: A forked worker receives a fresh ProcessState instead of sharing the parent's

from dataclasses import dataclass, field
from typing import Union

from .pool import ProcessPool


@dataclass(frozen=True)
class Parent:
    """The supervising process that owns the PID file and the pool."""


@dataclass(frozen=True)
class Worker:
    """A forked worker process.

    Attributes:
        serial_number: Pool slot assigned at fork time
    """

    serial_number: int


DaemonRole = Union[Parent, Worker]


@dataclass
class ProcessState:
    """Everything that differs between the parent and each of its workers.

    Attributes:
        role: Parent or Worker(serial_number)
        pool: Children tracked by this process (always empty for a worker)
        pid: This process's id once known, 0 before that
        stop_requested: Set when the main loop must exit at the next boundary
    """

    role: DaemonRole
    pool: ProcessPool = field(default_factory=ProcessPool)
    pid: int = 0
    stop_requested: bool = False

    @classmethod
    def parent(cls, capacity: int) -> "ProcessState":
        return cls(role=Parent(), pool=ProcessPool(capacity))

    @classmethod
    def worker(cls, serial_number: int, pid: int) -> "ProcessState":
        # Workers never spawn grandchildren.
        return cls(role=Worker(serial_number), pool=ProcessPool(0), pid=pid)

    @property
    def is_parent(self) -> bool:
        return isinstance(self.role, Parent)
