"""
Scheduling policies: Round Robin, FCFS, SPN, SRT and HRRN.

Every policy is called once per tick with the process queue, after that
tick's arrivals were admitted and before the execution pass. A policy only
ever flips ``state`` fields: it may demote the RUNNING record and promote one
READY record. Ties are broken by ascending pid, which is admission order.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import deque
from typing import Deque, Dict, Optional, Type

from .core import ProcessQueue, ProcessRecord, ProcessState
from .errors import UnknownPolicyError


class Scheduler:
    """Policy keys accepted on the command line."""
    RR = "RR"
    FCFS = "FCFS"
    SPN = "SPN"
    SRT = "SRT"
    HRRN = "HRRN"


class SchedulingPolicy(ABC):
    """Abstract base class for all scheduling policies."""

    key: str = ""
    name: str = ""
    preemptive: bool = False

    @abstractmethod
    def select(self, queue: ProcessQueue) -> None:
        """Pick at most one RUNNING process for the coming tick."""

    @staticmethod
    def _demote(record: ProcessRecord) -> None:
        # A finished record is marked DEAD by the driver, never by a policy.
        if record.cycles_todo > 0:
            record.state = ProcessState.READY

    @staticmethod
    def _promote(record: ProcessRecord) -> None:
        record.state = ProcessState.RUNNING

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class RoundRobinScheduler(SchedulingPolicy):
    """Round Robin with a one-tick slice.

    The policy keeps its own rotation of pids. Records admitted since the last
    call join the rotation first, then the process that just used its slice
    rejoins at the end, so the head of the rotation is always the READY
    process that has waited longest since it last ran.
    """

    key = Scheduler.RR
    name = "Round Robin"
    preemptive = True

    def __init__(self):
        self._queue: Optional[ProcessQueue] = None
        self._rotation: Deque[int] = deque()
        self._known: set = set()

    def _is_stale(self, queue: ProcessQueue) -> bool:
        # Every known READY pid waits in the rotation; anything else means a
        # new or cleared queue.
        if queue is not self._queue:
            return True
        return any(
            r.state is ProcessState.READY and r.pid in self._known and r.pid not in self._rotation
            for r in queue.iterate()
        )

    def _sync(self, queue: ProcessQueue) -> None:
        if self._is_stale(queue):
            self._queue = queue
            self._rotation.clear()
            self._known.clear()
        for record in queue.iterate():
            if record.pid not in self._known and record.state is ProcessState.READY:
                self._known.add(record.pid)
                self._rotation.append(record.pid)

    def select(self, queue: ProcessQueue) -> None:
        if queue.is_empty_of_work():
            return
        self._sync(queue)

        current = queue.running()
        if current is not None:
            self._demote(current)
            if current.state is ProcessState.READY:
                self._known.add(current.pid)
                self._rotation.append(current.pid)

        while self._rotation:
            pid = self._rotation.popleft()
            record = queue.find(pid)
            if record is None or record.state is not ProcessState.READY:
                self._known.discard(pid)
                continue
            self._promote(record)
            return


class FCFSScheduler(SchedulingPolicy):
    """First Come First Serve scheduler implementation."""

    key = Scheduler.FCFS
    name = "First Come First Serve"

    def select(self, queue: ProcessQueue) -> None:
        if queue.running() is not None:
            return
        ready = queue.ready()
        if ready:
            self._promote(min(ready, key=lambda r: (r.arrival_tick, r.pid)))


class SPNScheduler(SchedulingPolicy):
    """Shortest Process Next: non-preemptive, shortest total runtime wins."""

    key = Scheduler.SPN
    name = "Shortest Process Next"

    def select(self, queue: ProcessQueue) -> None:
        if queue.running() is not None:
            return
        ready = queue.ready()
        if ready:
            self._promote(min(ready, key=lambda r: (r.cycles_done + r.cycles_todo, r.pid)))


class SRTScheduler(SchedulingPolicy):
    """Shortest Remaining Time (preemptive SPN) scheduler."""

    key = Scheduler.SRT
    name = "Shortest Remaining Time Next"
    preemptive = True

    def select(self, queue: ProcessQueue) -> None:
        ready = queue.ready()
        if not ready:
            return
        best = min(ready, key=lambda r: (r.cycles_todo, r.pid))
        current = queue.running()
        if current is None:
            self._promote(best)
        elif best.cycles_todo < current.cycles_todo:
            # Preempt only on strictly shorter remaining time
            self._demote(current)
            self._promote(best)


class HRRNScheduler(SchedulingPolicy):
    """Highest Response Ratio Next: non-preemptive aging of short jobs."""

    key = Scheduler.HRRN
    name = "Highest Response Ratio Next"

    def select(self, queue: ProcessQueue) -> None:
        if queue.running() is not None:
            return
        ready = queue.ready()
        if ready:
            self._promote(min(ready, key=lambda r: (-r.response_ratio(), r.pid)))


ALGORITHMS: Dict[str, Type[SchedulingPolicy]] = {
    Scheduler.RR: RoundRobinScheduler,
    Scheduler.FCFS: FCFSScheduler,
    Scheduler.SPN: SPNScheduler,
    Scheduler.SRT: SRTScheduler,
    Scheduler.HRRN: HRRNScheduler,
}


def get_policy(name: str) -> SchedulingPolicy:
    """Build a fresh policy from its key ("SRT") or display name."""
    cls: Optional[Type[SchedulingPolicy]] = ALGORITHMS.get(name.upper())
    if cls is None:
        for candidate in ALGORITHMS.values():
            if candidate.name.lower() == name.lower():
                cls = candidate
                break
    if cls is None:
        raise UnknownPolicyError(f"unknown scheduling policy {name!r}; choose from {', '.join(ALGORITHMS)}")
    return cls()
