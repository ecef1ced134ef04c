from tick_os_simulator.backend.core import ProcessQueue, ProcessState
from tick_os_simulator.backend.utils import Reporter


def make_queue(*runtimes, states=None):
    """Build a queue of READY records with pids 0..n-1 and optional states."""
    q = ProcessQueue()
    for pid, runtime in enumerate(runtimes):
        q.admit(pid, runtime, arrival_tick=pid)
    for pid, state in (states or {}).items():
        q.find(pid).state = state
    return q


def states(queue):
    return {r.pid: r.state for r in queue.iterate()}


def running_pids(queue):
    return [r.pid for r in queue.iterate() if r.state is ProcessState.RUNNING]


class InvariantProbe(Reporter):
    """Checks the per-tick properties on every snapshot it receives."""

    def __init__(self):
        self.ticks = 0

    def on_tick(self, tick, snapshots):
        assert tick == self.ticks
        self.ticks += 1
        assert sum(1 for s in snapshots if s.state is ProcessState.RUNNING) <= 1
        for s in snapshots:
            assert 0 <= s.cycles_done <= s.total_runtime
            if s.state is ProcessState.DEAD:
                assert s.cycles_done == s.total_runtime
            else:
                assert s.cycles_done < s.total_runtime
