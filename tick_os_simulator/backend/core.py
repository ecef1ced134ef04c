"""
Core data structures for the tick simulator.
Includes the process record and the sentinel-headed process queue.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from fractions import Fraction
from typing import Dict, Iterator, List, Optional

from .errors import AllocationFailure, InvariantViolation


SENTINEL_PID = -1


class ProcessState(Enum):
    """Process states in the system."""
    DEAD = "DEAD"
    RUNNING = "RUNNING"
    READY = "READY"

    @property
    def label(self) -> str:
        """Short label used by the console output."""
        return _STATE_LABELS[self]


_STATE_LABELS = {
    ProcessState.DEAD: "-",
    ProcessState.RUNNING: "RUNNING",
    ProcessState.READY: "ready",
}


@dataclass(frozen=True)
class ProcessSnapshot:
    """What the reporting sink sees of one record at the end of a tick."""
    pid: int
    cycles_done: int
    total_runtime: int
    cycles_waited: int
    state: ProcessState

    def as_dict(self) -> Dict[str, object]:
        return {
            "pid": self.pid,
            "cycles_done": self.cycles_done,
            "total_runtime": self.total_runtime,
            "cycles_waited": self.cycles_waited,
            "state": self.state.value,
        }


@dataclass
class ProcessRecord:
    """Per-job state: identity, counters and lifecycle state."""
    pid: int
    total_runtime: int
    arrival_tick: int = 0
    cycles_done: int = 0
    cycles_waited: int = 0
    cycles_todo: int = None
    state: ProcessState = ProcessState.READY

    def __post_init__(self):
        self.cycles_todo = self.total_runtime if self.cycles_todo is None else self.cycles_todo

    @property
    def is_sentinel(self) -> bool:
        return self.pid == SENTINEL_PID

    def response_ratio(self) -> Fraction:
        """(waited + total runtime) / total runtime, kept exact for tie-breaks."""
        return Fraction(self.cycles_waited + self.total_runtime, self.total_runtime)

    def snapshot(self) -> ProcessSnapshot:
        return ProcessSnapshot(
            pid=self.pid,
            cycles_done=self.cycles_done,
            total_runtime=self.cycles_done + self.cycles_todo,
            cycles_waited=self.cycles_waited,
            state=self.state,
        )


class ProcessQueue:
    """Ordered process collection observed and mutated by the policies.

    Records are kept in admission order behind a sentinel head that carries
    no job data and stays DEAD forever. The queue never reorders records;
    only policies change their ``state`` and only the driver changes their
    counters.
    """

    def __init__(self, capacity: Optional[int] = None):
        self._head = ProcessRecord(pid=SENTINEL_PID, total_runtime=0, state=ProcessState.DEAD)
        self._items: List[ProcessRecord] = [self._head]
        self._pid_map: Dict[int, ProcessRecord] = {}
        self.capacity = capacity

    @property
    def head(self) -> ProcessRecord:
        return self._head

    def admit(self, pid: int, total_runtime: int, arrival_tick: int = 0) -> ProcessRecord:
        """Append a new READY record at the tail."""
        if pid in self._pid_map or pid == SENTINEL_PID:
            raise InvariantViolation(f"pid {pid} admitted twice")
        if self.capacity is not None and len(self) >= self.capacity:
            raise AllocationFailure(
                f"cannot admit pid {pid}: process store is full ({self.capacity} records)"
            )
        try:
            record = ProcessRecord(pid=pid, total_runtime=total_runtime, arrival_tick=arrival_tick)
            self._items.append(record)
        except MemoryError as e:
            raise AllocationFailure(f"cannot admit pid {pid}: out of memory") from e
        self._pid_map[pid] = record
        return record

    def iterate(self) -> Iterator[ProcessRecord]:
        """Traverse the records in insertion order, skipping the sentinel."""
        return iter(self._items[1:])

    def __iter__(self) -> Iterator[ProcessRecord]:
        return self.iterate()

    def __len__(self) -> int:
        return len(self._items) - 1

    def find(self, pid: int) -> Optional[ProcessRecord]:
        return self._pid_map.get(pid)

    def running(self) -> Optional[ProcessRecord]:
        """The RUNNING record, or None. Does not check for duplicates."""
        for record in self.iterate():
            if record.state is ProcessState.RUNNING:
                return record
        return None

    def ready(self) -> List[ProcessRecord]:
        return [r for r in self.iterate() if r.state is ProcessState.READY]

    def is_empty_of_work(self) -> bool:
        return not any(r.state is not ProcessState.DEAD for r in self.iterate())

    def snapshot(self) -> List[ProcessSnapshot]:
        return [r.snapshot() for r in self.iterate()]

    def clear(self) -> None:
        """Release every record except the sentinel."""
        del self._items[1:]
        self._pid_map.clear()
