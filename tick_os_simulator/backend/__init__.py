"""
Simulation backend: process queue, scheduling policies and the tick driver.
"""

from .core import ProcessQueue, ProcessRecord, ProcessSnapshot, ProcessState
from .errors import (
    AllocationFailure,
    DegenerateSchedulingWarning,
    InvariantViolation,
    PolicyContractError,
    SimulationError,
    TickLimitExceeded,
    UnknownPolicyError,
    WorkloadError,
)
from .schedulers import ALGORITHMS, SchedulingPolicy, get_policy
from .simulator import DriverState, RunResult, SimulationDriver, run_all
from .workload import DEFAULT_WORKLOAD, Job, make_workload

__all__ = [
    'ALGORITHMS', 'AllocationFailure', 'DEFAULT_WORKLOAD', 'DegenerateSchedulingWarning',
    'DriverState', 'InvariantViolation', 'Job', 'PolicyContractError', 'ProcessQueue',
    'ProcessRecord', 'ProcessSnapshot', 'ProcessState', 'RunResult', 'SchedulingPolicy',
    'SimulationDriver', 'SimulationError', 'TickLimitExceeded', 'UnknownPolicyError',
    'WorkloadError', 'get_policy', 'make_workload', 'run_all',
]
