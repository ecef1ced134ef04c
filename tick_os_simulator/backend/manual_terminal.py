from __future__ import annotations

import shlex
import sys
from typing import List, Optional, Sequence, TextIO
from colorama import Fore, Style, init as colorama_init

from .core import ProcessSnapshot, ProcessState
from .errors import SimulationError
from .schedulers import ALGORITHMS, SchedulingPolicy, get_policy
from .simulator import DriverState, RunResult, SimulationDriver, run_all
from .utils import Reporter, summarize_runs
from .visualizer import plot_gantt
from .workload import DEFAULT_WORKLOAD, Job, make_workload


HEADER = "PID (R: done/(done+todo), W: waited): STATE"

_STATE_COLORS = {
    ProcessState.RUNNING: Fore.GREEN,
    ProcessState.READY: Fore.YELLOW,
    ProcessState.DEAD: Style.DIM,
}


def format_snapshot(snap: ProcessSnapshot, color: bool = False) -> str:
    text = (f"{snap.pid} (R: {snap.cycles_done}/{snap.total_runtime}, "
            f"W: {snap.cycles_waited}): {snap.state.label:>8}")
    if color:
        return _STATE_COLORS[snap.state] + text + Style.RESET_ALL
    return text


def format_tick(tick: int, snapshots: Sequence[ProcessSnapshot], color: bool = False) -> str:
    return f"Tick {tick:2d}: " + "\t".join(format_snapshot(s, color) for s in snapshots)


class ConsoleReporter(Reporter):
    """Prints one line per tick in the classic simulator layout."""

    def __init__(self, stream: Optional[TextIO] = None, color: bool = True) -> None:
        self.stream = stream or sys.stdout
        self.color = color
        if color:
            colorama_init()

    def _write(self, text: str) -> None:
        self.stream.write(text + "\n")

    def on_run_start(self, policy: SchedulingPolicy) -> None:
        title = f"Simulation for {policy.name}:"
        self._write(Style.BRIGHT + title + Style.RESET_ALL if self.color else title)

    def on_tick(self, tick: int, snapshots: Sequence[ProcessSnapshot]) -> None:
        self._write(format_tick(tick, snapshots, self.color))

    def on_warning(self, tick: int, message: str) -> None:
        text = f"Warning: {message}"
        self._write(Fore.RED + text + Style.RESET_ALL if self.color else text)

    def on_run_end(self, result: RunResult) -> None:
        self._write("")


class ManualTerminal:
    def __init__(self) -> None:
        colorama_init(autoreset=True)
        self.jobs: List[Job] = []
        self.driver: Optional[SimulationDriver] = None
        self.last_results: List[RunResult] = []
        self.reporter = ConsoleReporter(color=True)

    def prompt(self) -> None:
        print(Fore.CYAN + "Tick scheduler terminal. Type 'help' for commands.")
        while True:
            try:
                raw = input(Fore.GREEN + "> ")
            except (EOFError, KeyboardInterrupt):
                print()
                break
            if not raw.strip():
                continue
            self.handle_command(raw)

    def handle_command(self, raw: str) -> None:
        try:
            parts = shlex.split(raw)
        except ValueError as e:
            print(Fore.RED + f"Parse error: {e}")
            return
        if not parts:
            return
        cmd, *args = parts
        cmd = cmd.lower()
        if cmd == "help":
            self._help()
        elif cmd == "add":
            self._add(args)
        elif cmd == "list":
            self._list()
        elif cmd == "default":
            self.jobs = list(DEFAULT_WORKLOAD)
            self.driver = None
            self._list()
        elif cmd == "run":
            self._run(args)
        elif cmd == "step":
            self._step(args)
        elif cmd == "stats":
            self._stats()
        elif cmd == "reset":
            self.jobs = []
            self.driver = None
            self.last_results = []
            print(Fore.CYAN + "Workload cleared")
        elif cmd == "exit" or cmd == "quit":
            raise SystemExit(0)
        else:
            print(Fore.YELLOW + "Unknown command. Type 'help'.")

    def _help(self) -> None:
        print("Commands:")
        print("  add <arrival> <runtime>")
        print("  default                 load the built-in four-job workload")
        print("  list")
        print(f"  run [policy ...] [--out path]   policies: {' '.join(ALGORITHMS)}")
        print("  step <policy> [n=1]     advance a single policy tick by tick")
        print("  stats")
        print("  reset")
        print("  exit")

    def _add(self, args: List[str]) -> None:
        if len(args) != 2:
            print(Fore.RED + "Usage: add <arrival> <runtime>")
            return
        try:
            job = make_workload([args])[0]
        except SimulationError as e:
            print(Fore.RED + str(e))
            return
        self.jobs.append(job)
        self.driver = None
        print(Fore.CYAN + f"Job {len(self.jobs) - 1} added: arrival={job.arrival_tick}, runtime={job.total_runtime}")

    def _list(self) -> None:
        if not self.jobs:
            print("No jobs yet")
            return
        for i, job in enumerate(self.jobs):
            print(f"{i}: arrival={job.arrival_tick}, runtime={job.total_runtime}")

    def _run(self, args: List[str]) -> None:
        out_path: Optional[str] = None
        policies: List[str] = []
        it = iter(args)
        for token in it:
            if token == "--out":
                out_path = next(it, None)
            else:
                policies.append(token)
        try:
            self.last_results = run_all(tuple(self.jobs), policies=policies or None, reporter=self.reporter)
        except SimulationError as e:
            print(Fore.RED + f"Simulation aborted: {e}")
            return
        self._stats()
        if out_path:
            plot_gantt(self.last_results, out_path)
            print(Fore.CYAN + f"Saved plot to {out_path}")

    def _step(self, args: List[str]) -> None:
        if not args:
            print(Fore.RED + "Usage: step <policy> [n]")
            return
        try:
            count = int(args[1]) if len(args) > 1 else 1
            policy = get_policy(args[0])
        except ValueError:
            print(Fore.RED + "Invalid tick count")
            return
        except SimulationError as e:
            print(Fore.RED + str(e))
            return
        if self.driver is None or self.driver.policy.key != policy.key or self.driver.state is DriverState.FINISHED:
            self.driver = SimulationDriver(workload=tuple(self.jobs), policy=policy, reporter=self.reporter)
        try:
            for _ in range(count):
                if self.driver.state is DriverState.FINISHED:
                    break
                self.driver.step()
        except SimulationError as e:
            print(Fore.RED + f"Simulation aborted: {e}")
            self.driver = None
            return
        if self.driver.state is DriverState.FINISHED:
            self.last_results = [self.driver.run()]
            print(Fore.CYAN + f"{policy.name} finished after {self.driver.tick} ticks")

    def _stats(self) -> None:
        if not self.last_results:
            print("No simulation yet")
            return
        print(Style.BRIGHT + summarize_runs(self.last_results).to_string(float_format=lambda v: f"{v:.2f}"))


def main() -> None:
    ManualTerminal().prompt()


if __name__ == "__main__":
    main()
