from __future__ import annotations

from typing import Callable, List, Optional, Tuple
from dataclasses import dataclass, field

from .schedulers import ALGORITHMS
from .simulator import RunResult, run_all
from .utils import Reporter
from .workload import DEFAULT_WORKLOAD, Workload


def press_enter_to_continue() -> None:
    input("\nPress Enter for next algorithm.\n")


@dataclass
class SimulationConfig:
    policies: Tuple[str, ...] = field(default_factory=lambda: tuple(ALGORITHMS))
    max_ticks: Optional[int] = None
    capacity: Optional[int] = None
    check_invariants: bool = True
    pause_between_runs: bool = False


class OSKernel:
    """Runs a workload under every configured policy.

    This wraps `run_all` so the command line, the interactive terminal and
    the tests share one way of turning a config into results.
    """

    def __init__(self, config: SimulationConfig | None = None, pause: Callable[[], None] = press_enter_to_continue):
        self.config = config or SimulationConfig()
        self._pause = pause

    def run(self, workload: Workload = DEFAULT_WORKLOAD, reporter: Optional[Reporter] = None) -> List[RunResult]:
        return run_all(
            workload,
            policies=self.config.policies,
            reporter=reporter,
            between_runs=self._pause if self.config.pause_between_runs else None,
            max_ticks=self.config.max_ticks,
            capacity=self.config.capacity,
            check_invariants=self.config.check_invariants,
        )
