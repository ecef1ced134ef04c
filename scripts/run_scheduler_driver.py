from __future__ import annotations
import os, sys
SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_ROOT = os.path.abspath(os.path.join(SCRIPT_DIR, os.pardir))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from tick_os_simulator.backend.schedulers import get_policy
from tick_os_simulator.backend.simulator import DriverState, SimulationDriver
from tick_os_simulator.backend.utils import compute_turnaround_times, compute_waiting_times
from tick_os_simulator.backend.workload import make_workload


def make_jobs():
    return make_workload([
        (0, 8),
        (0, 7),
        (0, 6),
        (1, 1),
        (1, 1),
        (2, 2),
        (5, 1),
        (6, 1),
    ])


def run(policy_key: str = "SRT"):
    driver = SimulationDriver(workload=make_jobs(), policy=get_policy(policy_key))
    # drive tick by tick instead of driver.run() so the switches are visible
    previous = None
    while driver.state is not DriverState.FINISHED:
        record = driver.step()
        if record.running_pid != previous:
            print(f'tick {record.tick:3d}: switch {previous} -> {record.running_pid}')
            previous = record.running_pid
    result = driver.run()
    print('Completed:', len(result.completion_ticks), 'in', result.total_ticks, 'ticks')
    waiting = compute_waiting_times(result)
    turnaround = compute_turnaround_times(result)
    for pid in sorted(result.completion_ticks):
        print(f'PID {pid}: waiting={waiting[pid]}, turnaround={turnaround[pid]}, completion={result.completion_ticks[pid]}')


if __name__ == '__main__':
    run(sys.argv[1] if len(sys.argv) > 1 else "SRT")
