from __future__ import annotations

from typing import Callable, Dict, List, Optional, Sequence
from dataclasses import dataclass, field
from enum import Enum
import warnings

from .core import ProcessQueue, ProcessSnapshot, ProcessState
from .errors import DegenerateSchedulingWarning, InvariantViolation, SimulationError, TickLimitExceeded
from .invariants import capture, check_queue, verify_policy_step
from .schedulers import ALGORITHMS, SchedulingPolicy, get_policy
from .utils import Reporter
from .workload import Workload, arrivals_by_tick


IDLE_WARNING = "No RUNNING process selected, despite ready processes being available!"


class DriverState(Enum):
    AWAITING_ARRIVALS = "AWAITING_ARRIVALS"
    TICKING = "TICKING"
    FINISHED = "FINISHED"


@dataclass
class TickRecord:
    tick: int
    running_pid: Optional[int]
    snapshots: List[ProcessSnapshot]
    warning: Optional[str] = None


@dataclass
class RunResult:
    policy_key: str
    policy_name: str
    ticks: List[TickRecord]
    arrival_ticks: Dict[int, int]
    completion_ticks: Dict[int, int]
    first_run_ticks: Dict[int, int]
    waited: Dict[int, int]
    warning_count: int = 0

    @property
    def total_ticks(self) -> int:
        return len(self.ticks)

    @property
    def timeline(self) -> List[Optional[int]]:
        """pid executed during each tick, None for idle ticks."""
        return [t.running_pid for t in self.ticks]

    def running_at(self, tick: int) -> Optional[int]:
        return self.ticks[tick].running_pid


@dataclass
class SimulationDriver:
    """Runs one scheduling policy over one workload, a tick at a time.

    Each tick admits the jobs arriving at that tick, lets the policy choose
    the RUNNING process, credits one tick of execution or waiting to every
    live record and hands the resulting snapshot to the reporter. The run
    finishes once no record is READY or RUNNING and no arrival is pending.
    """

    workload: Workload
    policy: SchedulingPolicy
    reporter: Reporter = field(default_factory=Reporter)
    max_ticks: Optional[int] = None
    capacity: Optional[int] = None
    check_invariants: bool = True

    def __post_init__(self) -> None:
        self.queue = ProcessQueue(capacity=self.capacity)
        self.tick = 0
        self.state = DriverState.AWAITING_ARRIVALS if self.workload else DriverState.FINISHED
        self.history: List[TickRecord] = []
        self._arrivals = arrivals_by_tick(self.workload)
        self._last_arrival = max(self._arrivals) if self._arrivals else -1
        self._next_pid = 0
        self._arrival_ticks: Dict[int, int] = {}
        self._completion_ticks: Dict[int, int] = {}
        self._first_run_ticks: Dict[int, int] = {}
        self._warnings = 0
        self._started = False

    def _admit_arrivals(self, tick: int) -> None:
        for index in self._arrivals.get(tick, []):
            job = self.workload[index]
            pid = self._next_pid
            self.queue.admit(pid, job.total_runtime, arrival_tick=tick)
            self._arrival_ticks[pid] = tick
            self._next_pid += 1

    def _execute(self, tick: int) -> None:
        """Credit one tick to every live record and retire finished ones."""
        nrunning = 0
        for record in self.queue.iterate():
            if record.state is ProcessState.RUNNING:
                nrunning += 1
                if nrunning > 1:
                    raise InvariantViolation(f"tick {tick}: more than one RUNNING process")
                if record.cycles_done + record.cycles_todo != record.total_runtime or record.cycles_todo <= 0:
                    raise InvariantViolation(
                        f"tick {tick}: RUNNING pid {record.pid} has done={record.cycles_done} "
                        f"todo={record.cycles_todo} for a runtime of {record.total_runtime}"
                    )
                record.cycles_done += 1
                record.cycles_todo -= 1
                self._first_run_ticks.setdefault(record.pid, tick)
                if record.cycles_todo == 0:
                    record.state = ProcessState.DEAD
                    self._completion_ticks[record.pid] = tick
            elif record.state is ProcessState.READY:
                if record.cycles_todo <= 0:
                    raise InvariantViolation(f"tick {tick}: READY pid {record.pid} has nothing left to run")
                record.cycles_waited += 1
            elif record.cycles_todo != 0:
                raise InvariantViolation(f"tick {tick}: DEAD pid {record.pid} has {record.cycles_todo} cycles left")

    def step(self) -> TickRecord:
        """Advance the simulation by exactly one tick."""
        if self.state is DriverState.FINISHED:
            raise SimulationError(f"{self.policy.name}: run already finished")
        if self.max_ticks is not None and self.tick >= self.max_ticks:
            raise TickLimitExceeded(f"{self.policy.name}: no result after {self.max_ticks} ticks")
        if not self._started:
            self._started = True
            self.reporter.on_run_start(self.policy)

        tick = self.tick
        self._admit_arrivals(tick)
        if not self.queue.is_empty_of_work():
            self.state = DriverState.TICKING

        before = capture(self.queue)
        self.policy.select(self.queue)
        verify_policy_step(self.policy.name, before, self.queue)

        running = self.queue.running()
        warning = None
        if running is None and self.queue.ready():
            warning = IDLE_WARNING
            self._warnings += 1
            warnings.warn(f"{self.policy.name}, tick {tick}: {warning}", DegenerateSchedulingWarning, stacklevel=2)
            self.reporter.on_warning(tick, warning)

        self._execute(tick)
        if self.check_invariants:
            check_queue(self.queue)

        record = TickRecord(
            tick=tick,
            running_pid=running.pid if running is not None else None,
            snapshots=self.queue.snapshot(),
            warning=warning,
        )
        self.history.append(record)
        self.reporter.on_tick(tick, record.snapshots)

        self.tick += 1
        if self.queue.is_empty_of_work():
            if self.tick > self._last_arrival:
                self.state = DriverState.FINISHED
            else:
                self.state = DriverState.AWAITING_ARRIVALS
        return record

    def result(self) -> RunResult:
        return RunResult(
            policy_key=self.policy.key,
            policy_name=self.policy.name,
            ticks=list(self.history),
            arrival_ticks=dict(self._arrival_ticks),
            completion_ticks=dict(self._completion_ticks),
            first_run_ticks=dict(self._first_run_ticks),
            waited={r.pid: r.cycles_waited for r in self.queue.iterate()},
            warning_count=self._warnings,
        )

    def run(self) -> RunResult:
        """Tick until the run is FINISHED, then release the queue."""
        if not self._started:
            self._started = True
            self.reporter.on_run_start(self.policy)
        while self.state is not DriverState.FINISHED:
            self.step()
        result = self.result()
        self.queue.clear()
        self.reporter.on_run_end(result)
        return result


def run_all(
    workload: Workload,
    policies: Optional[Sequence[str]] = None,
    reporter: Optional[Reporter] = None,
    between_runs: Optional[Callable[[], None]] = None,
    max_ticks: Optional[int] = None,
    capacity: Optional[int] = None,
    check_invariants: bool = True,
) -> List[RunResult]:
    """Run every requested policy once, back to back, each on a fresh queue.

    Any SimulationError propagates and aborts the remaining runs.
    """
    keys = list(policies) if policies else list(ALGORITHMS)
    # Resolve every name up front so a typo fails before the first run.
    built = [get_policy(key) for key in keys]
    results: List[RunResult] = []
    for i, policy in enumerate(built):
        driver = SimulationDriver(
            workload=workload,
            policy=policy,
            reporter=reporter or Reporter(),
            max_ticks=max_ticks,
            capacity=capacity,
            check_invariants=check_invariants,
        )
        results.append(driver.run())
        if between_runs is not None and i != len(built) - 1:
            between_runs()
    return results
