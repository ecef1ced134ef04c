"""
Invariant checks shared by the simulation driver and the test suite.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

from .core import ProcessQueue, ProcessRecord, ProcessState
from .errors import InvariantViolation, PolicyContractError


MAX_STATE_CHANGES = 2


def check_record(record: ProcessRecord) -> None:
    """Raise InvariantViolation if a single record is inconsistent."""
    if record.cycles_done < 0 or record.cycles_todo < 0 or record.cycles_waited < 0:
        raise InvariantViolation(f"pid {record.pid}: negative counter")
    if record.cycles_done + record.cycles_todo != record.total_runtime:
        raise InvariantViolation(
            f"pid {record.pid}: done {record.cycles_done} + todo {record.cycles_todo} "
            f"!= total runtime {record.total_runtime}"
        )
    if record.state is ProcessState.DEAD and record.cycles_todo != 0:
        raise InvariantViolation(f"pid {record.pid}: DEAD with {record.cycles_todo} cycles left")
    if record.state is not ProcessState.DEAD and record.cycles_todo == 0:
        raise InvariantViolation(f"pid {record.pid}: {record.state.value} with no cycles left")


def check_queue(queue: ProcessQueue) -> None:
    """Check every record plus the queue-wide invariants."""
    head = queue.head
    if head.state is not ProcessState.DEAD:
        raise InvariantViolation(f"sentinel head is {head.state.value}")
    running = 0
    for record in queue.iterate():
        check_record(record)
        if record.state is ProcessState.RUNNING:
            running += 1
    if running > 1:
        raise InvariantViolation(f"{running} RUNNING processes, at most one allowed")


@dataclass(frozen=True)
class QueueImage:
    """States and counters of every record, taken right before select()."""
    head_state: ProcessState
    states: Dict[int, ProcessState]
    counters: Dict[int, Tuple[int, int, int, int]]


def capture(queue: ProcessQueue) -> QueueImage:
    return QueueImage(
        head_state=queue.head.state,
        states={r.pid: r.state for r in queue.iterate()},
        counters={
            r.pid: (r.cycles_done, r.cycles_waited, r.cycles_todo, r.total_runtime)
            for r in queue.iterate()
        },
    )


def verify_policy_step(policy_name: str, before: QueueImage, queue: ProcessQueue) -> None:
    """Compare the queue with its pre-select image and enforce the policy contract.

    A policy may change the state of at most two records (the one it demotes
    and the one it promotes), never touches counters, never revives a DEAD
    record and never leaves more than one record RUNNING.
    """
    if queue.head.state is not before.head_state:
        raise PolicyContractError(policy_name, "changed the sentinel head")
    pids = [r.pid for r in queue.iterate()]
    if pids != list(before.states):
        raise PolicyContractError(policy_name, "added, removed or reordered records")

    changed = 0
    running = 0
    for record in queue.iterate():
        counters = (record.cycles_done, record.cycles_waited, record.cycles_todo, record.total_runtime)
        if counters != before.counters[record.pid]:
            raise PolicyContractError(policy_name, f"modified counters of pid {record.pid}")
        old = before.states[record.pid]
        if record.state is not old:
            if old is ProcessState.DEAD:
                raise PolicyContractError(policy_name, f"revived DEAD pid {record.pid}")
            if record.state is ProcessState.DEAD:
                raise PolicyContractError(policy_name, f"killed pid {record.pid}")
            changed += 1
        if record.state is ProcessState.RUNNING:
            running += 1

    if changed > MAX_STATE_CHANGES:
        raise PolicyContractError(policy_name, f"changed the state of {changed} records")
    if running > 1:
        raise PolicyContractError(policy_name, f"left {running} processes RUNNING")
