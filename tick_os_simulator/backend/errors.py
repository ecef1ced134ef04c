"""
Error and warning types raised by the tick simulator.
"""

from __future__ import annotations


class SimulationError(Exception):
    """Base class for every fatal simulation error."""


class AllocationFailure(SimulationError):
    """The process store could not grow to admit a new record."""


class InvariantViolation(SimulationError, AssertionError):
    """A state-machine invariant was broken. Always a programming defect."""


class PolicyContractError(InvariantViolation):
    """A scheduling policy changed something its select() call may not touch."""

    def __init__(self, policy: str, message: str):
        super().__init__(f"{policy}: {message}")
        self.policy = policy


class TickLimitExceeded(SimulationError):
    pass


class WorkloadError(SimulationError, ValueError):
    """Invalid workload input (bad arrival tick or runtime)."""


class UnknownPolicyError(SimulationError, KeyError):
    pass


class DegenerateSchedulingWarning(RuntimeWarning):
    """Ready processes exist but the policy left the processor idle."""
