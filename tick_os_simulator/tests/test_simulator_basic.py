import pytest

from tick_os_simulator.backend.core import ProcessState
from tick_os_simulator.backend.errors import (
    AllocationFailure,
    DegenerateSchedulingWarning,
    InvariantViolation,
    PolicyContractError,
    SimulationError,
    TickLimitExceeded,
    UnknownPolicyError,
)
from tick_os_simulator.backend.schedulers import ALGORITHMS, FCFSScheduler, SchedulingPolicy, get_policy
from tick_os_simulator.backend.simulator import DriverState, SimulationDriver, run_all
from tick_os_simulator.backend.utils import Reporter
from tick_os_simulator.backend.workload import make_workload

from .helpers import InvariantProbe


def run_policy(key, workload, **kwargs):
    return SimulationDriver(workload=workload, policy=get_policy(key), **kwargs).run()


class LazyPolicy(SchedulingPolicy):
    """Leaves the processor idle for the first `idle_ticks` calls, then acts like FCFS."""

    key = "LAZY"
    name = "Lazy"

    def __init__(self, idle_ticks=None):
        self.idle_ticks = idle_ticks
        self.calls = 0

    def select(self, queue):
        self.calls += 1
        if self.idle_ticks is None or self.calls <= self.idle_ticks:
            return
        FCFSScheduler().select(queue)


class GreedyPolicy(SchedulingPolicy):
    key = "GREEDY"
    name = "Greedy"

    def select(self, queue):
        for record in queue.ready():
            record.state = ProcessState.RUNNING


class CheatingPolicy(SchedulingPolicy):
    key = "CHEAT"
    name = "Cheat"

    def select(self, queue):
        FCFSScheduler().select(queue)
        for record in queue.ready():
            record.cycles_waited = 0


def test_fcfs_sample_timeline(sample_workload):
    result = run_policy("FCFS", sample_workload)
    assert result.timeline == [0] * 3 + [1] * 7 + [2] + [3] * 5
    assert result.total_ticks == 16
    assert result.completion_ticks == {0: 2, 1: 9, 2: 10, 3: 15}


def test_spn_and_hrrn_match_fcfs_on_sample(sample_workload):
    fcfs = run_policy("FCFS", sample_workload)
    assert run_policy("SPN", sample_workload).timeline == fcfs.timeline
    assert run_policy("HRRN", sample_workload).timeline == fcfs.timeline


def test_srt_sample_preempts_at_tick_four(sample_workload):
    result = run_policy("SRT", sample_workload)
    assert result.running_at(3) == 1
    assert result.running_at(4) == 2
    assert result.timeline == [0, 0, 0, 1, 2, 1, 1, 1, 1, 1, 1, 3, 3, 3, 3, 3]
    tick4 = {s.pid: s.state for s in result.ticks[4].snapshots}
    assert tick4[1] is ProcessState.READY
    assert tick4[2] is ProcessState.DEAD


def test_round_robin_sample_timeline(sample_workload):
    result = run_policy("RR", sample_workload)
    assert result.timeline == [0, 0, 1, 0, 1, 2, 1, 3, 1, 3, 1, 3, 1, 3, 1, 3]


def test_round_robin_alternates_two_jobs(two_job_workload):
    result = run_policy("RR", two_job_workload)
    assert result.timeline == [0, 1, 0, 1, 0, 1]
    assert max(result.completion_ticks.values()) < 6
    for a, b in zip(result.timeline[1:], result.timeline[2:]):
        assert a != b


@pytest.mark.parametrize("key", list(ALGORITHMS))
def test_single_job_drains_in_its_runtime(key):
    result = run_policy(key, make_workload([(0, 4)]))
    assert result.total_ticks == 4
    assert result.timeline == [0, 0, 0, 0]
    assert result.waited == {0: 0}


@pytest.mark.parametrize("key", list(ALGORITHMS))
@pytest.mark.parametrize("pairs", [
    [(0, 3), (2, 7), (4, 1), (6, 5)],
    [(0, 1), (0, 1), (0, 1)],
    [(3, 2), (3, 5), (4, 1), (10, 2)],
    [(0, 6), (1, 2), (1, 2), (2, 1), (5, 3), (5, 3)],
])
def test_invariants_hold_every_tick(key, pairs):
    probe = InvariantProbe()
    workload = make_workload(pairs)
    result = run_policy(key, workload, reporter=probe)
    assert probe.ticks == result.total_ticks
    # every job finishes and every tick with work uses the processor
    assert sorted(result.completion_ticks) == list(range(len(pairs)))
    busy = sum(1 for pid in result.timeline if pid is not None)
    assert busy == sum(runtime for _, runtime in pairs)
    for record in result.ticks:
        if record.running_pid is not None:
            done = next(s for s in record.snapshots if s.pid == record.running_pid)
            assert done.cycles_done >= 1


def test_pids_follow_admission_order():
    result = run_policy("FCFS", make_workload([(5, 1), (0, 2)]))
    # the job arriving first gets pid 0
    assert result.arrival_ticks == {0: 0, 1: 5}


def test_idle_ticks_before_first_arrival():
    driver = SimulationDriver(workload=make_workload([(3, 2)]), policy=get_policy("FCFS"))
    assert driver.state is DriverState.AWAITING_ARRIVALS
    for _ in range(3):
        record = driver.step()
        assert record.snapshots == []
        assert driver.state is DriverState.AWAITING_ARRIVALS
    driver.step()
    assert driver.state is DriverState.TICKING
    driver.step()
    assert driver.state is DriverState.FINISHED
    assert driver.result().timeline == [None, None, None, 0, 0]


def test_gap_between_arrivals_does_not_end_the_run():
    result = run_policy("SRT", make_workload([(0, 1), (4, 1)]))
    assert result.timeline == [0, None, None, None, 1]
    assert result.completion_ticks == {0: 0, 1: 4}


def test_empty_workload_finishes_immediately():
    driver = SimulationDriver(workload=(), policy=get_policy("RR"))
    assert driver.state is DriverState.FINISHED
    assert driver.run().total_ticks == 0


def test_step_after_finish_is_an_error():
    driver = SimulationDriver(workload=make_workload([(0, 1)]), policy=get_policy("RR"))
    driver.run()
    with pytest.raises(SimulationError):
        driver.step()


def test_queue_is_cleared_after_run(sample_workload):
    driver = SimulationDriver(workload=sample_workload, policy=get_policy("HRRN"))
    result = driver.run()
    assert len(driver.queue) == 0
    assert result.waited == {0: 0, 1: 1, 2: 6, 3: 5}


def test_degenerate_scheduling_warns_and_continues():
    driver = SimulationDriver(workload=make_workload([(0, 2)]), policy=LazyPolicy(idle_ticks=2))
    with pytest.warns(DegenerateSchedulingWarning):
        result = driver.run()
    assert result.warning_count == 2
    assert result.timeline == [None, None, 0, 0]
    assert result.waited == {0: 2}
    assert [t.warning is not None for t in result.ticks] == [True, True, False, False]


@pytest.mark.filterwarnings("ignore::tick_os_simulator.backend.errors.DegenerateSchedulingWarning")
def test_tick_limit_aborts_a_stalled_run():
    driver = SimulationDriver(workload=make_workload([(0, 2)]), policy=LazyPolicy(), max_ticks=10)
    with pytest.raises(TickLimitExceeded):
        driver.run()
    assert driver.tick == 10


def test_two_running_processes_abort_the_run():
    driver = SimulationDriver(workload=make_workload([(0, 2), (0, 2)]), policy=GreedyPolicy())
    with pytest.raises(PolicyContractError):
        driver.run()


def test_counter_tampering_aborts_the_run():
    driver = SimulationDriver(workload=make_workload([(0, 2), (0, 2)]), policy=CheatingPolicy())
    with pytest.raises(InvariantViolation, match="counters"):
        driver.run()


def test_allocation_failure_is_fatal(sample_workload):
    with pytest.raises(AllocationFailure):
        run_policy("FCFS", sample_workload, capacity=2)


class RecordingReporter(Reporter):
    def __init__(self):
        self.events = []

    def on_run_start(self, policy):
        self.events.append(("start", policy.key))

    def on_tick(self, tick, snapshots):
        self.events.append(("tick", tick, len(snapshots)))

    def on_run_end(self, result):
        self.events.append(("end", result.policy_key, result.total_ticks))


class TestRunAll:
    """Test running every registered policy back to back."""

    def test_runs_every_policy_in_order(self, sample_workload):
        results = run_all(sample_workload)
        assert [r.policy_key for r in results] == list(ALGORITHMS)
        # every policy here keeps the processor busy, so makespans agree
        assert {r.total_ticks for r in results} == {16}

    def test_runs_are_independent(self, sample_workload):
        first = run_all(sample_workload, policies=["SRT"])[0]
        again = run_all(sample_workload, policies=["RR", "SRT"])[1]
        assert first.timeline == again.timeline
        assert first.waited == again.waited

    def test_reporter_sees_each_run(self, two_job_workload):
        reporter = RecordingReporter()
        run_all(two_job_workload, policies=["FCFS", "RR"], reporter=reporter)
        starts = [e for e in reporter.events if e[0] == "start"]
        ends = [e for e in reporter.events if e[0] == "end"]
        assert starts == [("start", "FCFS"), ("start", "RR")]
        assert ends == [("end", "FCFS", 6), ("end", "RR", 6)]
        assert reporter.events[1] == ("tick", 0, 1)
        assert reporter.events[2] == ("tick", 1, 2)

    def test_between_runs_hook(self, two_job_workload):
        calls = []
        run_all(two_job_workload, between_runs=lambda: calls.append(1))
        assert len(calls) == len(ALGORITHMS) - 1

    def test_unknown_policy_fails_before_running(self, two_job_workload):
        reporter = RecordingReporter()
        with pytest.raises(UnknownPolicyError):
            run_all(two_job_workload, policies=["FCFS", "nope"], reporter=reporter)
        assert reporter.events == []

    def test_fatal_error_aborts_remaining_runs(self, sample_workload):
        reporter = RecordingReporter()
        with pytest.raises(AllocationFailure):
            run_all(sample_workload, reporter=reporter, capacity=1)
        assert [e for e in reporter.events if e[0] == "start"] == [("start", "RR")]
