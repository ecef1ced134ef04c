from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence
import csv
import json

import pandas as pd

from .core import ProcessSnapshot

if TYPE_CHECKING:
    from .schedulers import SchedulingPolicy
    from .simulator import RunResult


class Reporter:
    """Reporting sink. Receives one ordered snapshot per tick; does nothing by default."""

    def on_run_start(self, policy: "SchedulingPolicy") -> None:
        pass

    def on_tick(self, tick: int, snapshots: Sequence[ProcessSnapshot]) -> None:
        pass

    def on_warning(self, tick: int, message: str) -> None:
        pass

    def on_run_end(self, result: "RunResult") -> None:
        pass


class MultiReporter(Reporter):
    def __init__(self, *reporters: Reporter) -> None:
        self.reporters = [r for r in reporters if r is not None]

    def on_run_start(self, policy: "SchedulingPolicy") -> None:
        for r in self.reporters:
            r.on_run_start(policy)

    def on_tick(self, tick: int, snapshots: Sequence[ProcessSnapshot]) -> None:
        for r in self.reporters:
            r.on_tick(tick, snapshots)

    def on_warning(self, tick: int, message: str) -> None:
        for r in self.reporters:
            r.on_warning(tick, message)

    def on_run_end(self, result: "RunResult") -> None:
        for r in self.reporters:
            r.on_run_end(result)


class TickLogger(Reporter):
    """Keeps every per-tick snapshot and warning in memory for export."""

    def __init__(self) -> None:
        self.current_policy: Optional[str] = None
        self.ticks: List[Dict[str, Any]] = []
        self.warnings: List[Dict[str, Any]] = []
        self.runs: List[Dict[str, Any]] = []

    def on_run_start(self, policy: "SchedulingPolicy") -> None:
        self.current_policy = policy.key

    def on_tick(self, tick: int, snapshots: Sequence[ProcessSnapshot]) -> None:
        for snap in snapshots:
            row = {"policy": self.current_policy, "tick": tick}
            row.update(snap.as_dict())
            self.ticks.append(row)

    def on_warning(self, tick: int, message: str) -> None:
        self.warnings.append({
            "policy": self.current_policy,
            "tick": tick,
            "message": message,
        })

    def on_run_end(self, result: "RunResult") -> None:
        self.runs.append({
            "policy": result.policy_key,
            "name": result.policy_name,
            "total_ticks": result.total_ticks,
            "timeline": result.timeline,
        })

    def export_json(self, path: str) -> None:
        data = {
            "runs": self.runs,
            "ticks": self.ticks,
            "warnings": self.warnings,
        }
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

    def export_csv(self, base_path_no_ext: str) -> None:
        with open(f"{base_path_no_ext}_ticks.csv", "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(
                f, fieldnames=["policy", "tick", "pid", "cycles_done", "total_runtime", "cycles_waited", "state"]
            )
            writer.writeheader()
            for row in self.ticks:
                writer.writerow(row)
        with open(f"{base_path_no_ext}_warnings.csv", "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=["policy", "tick", "message"])
            writer.writeheader()
            for row in self.warnings:
                writer.writerow(row)


def compute_waiting_times(result: "RunResult") -> Dict[int, int]:
    return {pid: result.waited[pid] for pid in result.completion_ticks}


def compute_turnaround_times(result: "RunResult") -> Dict[int, int]:
    # A job completing during tick t has used ticks arrival..t inclusive.
    return {
        pid: done + 1 - result.arrival_ticks[pid]
        for pid, done in result.completion_ticks.items()
    }


def compute_response_times(result: "RunResult") -> Dict[int, int]:
    return {pid: first - result.arrival_ticks[pid] for pid, first in result.first_run_ticks.items()}


def compute_avg(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def compute_throughput(result: "RunResult") -> float:
    if result.total_ticks <= 0:
        return 0.0
    return len(result.completion_ticks) / result.total_ticks


def summarize_run(result: "RunResult") -> Dict[str, Any]:
    return {
        "policy": result.policy_key,
        "name": result.policy_name,
        "total_ticks": result.total_ticks,
        "completed": len(result.completion_ticks),
        "avg_waiting": compute_avg(list(compute_waiting_times(result).values())),
        "avg_turnaround": compute_avg(list(compute_turnaround_times(result).values())),
        "avg_response": compute_avg(list(compute_response_times(result).values())),
        "throughput": compute_throughput(result),
        "warnings": result.warning_count,
    }


def summarize_runs(results: Sequence["RunResult"]) -> pd.DataFrame:
    """Comparison table with one row per policy run, indexed by policy key."""
    rows = [summarize_run(r) for r in results]
    columns = ["policy", "name", "total_ticks", "completed", "avg_waiting",
               "avg_turnaround", "avg_response", "throughput", "warnings"]
    return pd.DataFrame(rows, columns=columns).set_index("policy")
