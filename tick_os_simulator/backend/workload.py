from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Iterable, List, NamedTuple, Sequence, Tuple

from .errors import WorkloadError


class Job(NamedTuple):
    arrival_tick: int
    total_runtime: int


Workload = Tuple[Job, ...]

# Arrival/runtime table used when no workload is given.
DEFAULT_WORKLOAD: Workload = (
    Job(arrival_tick=0, total_runtime=3),
    Job(arrival_tick=2, total_runtime=7),
    Job(arrival_tick=4, total_runtime=1),
    Job(arrival_tick=6, total_runtime=5),
)


def _as_int(value, what: str, index: int) -> int:
    if isinstance(value, bool):
        raise WorkloadError(f"job {index}: {what} must be an integer, got {value!r}")
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        raise WorkloadError(f"job {index}: {what} must be an integer, got {value!r}") from None
    if isinstance(value, float) and number != value:
        raise WorkloadError(f"job {index}: {what} must be a whole number of ticks, got {value!r}")
    return number


def make_workload(pairs: Iterable[Sequence]) -> Workload:
    """Validate (arrival_tick, total_runtime) pairs and freeze them into a Workload."""
    jobs: List[Job] = []
    for i, pair in enumerate(pairs):
        if len(pair) != 2:
            raise WorkloadError(f"job {i}: expected (arrival, runtime), got {pair!r}")
        arrival = _as_int(pair[0], "arrival tick", i)
        runtime = _as_int(pair[1], "runtime", i)
        if arrival < 0:
            raise WorkloadError(f"job {i}: arrival tick must be >= 0, got {arrival}")
        if runtime < 1:
            raise WorkloadError(f"job {i}: runtime must be >= 1, got {runtime}")
        jobs.append(Job(arrival, runtime))
    return tuple(jobs)


def parse_job(text: str) -> Job:
    """Parse an ``ARRIVAL:RUNTIME`` pair as given on the command line."""
    parts = text.replace(",", ":").split(":")
    if len(parts) != 2:
        raise WorkloadError(f"expected ARRIVAL:RUNTIME, got {text!r}")
    return make_workload([parts])[0]


def load_workload(path: str) -> Workload:
    """Load a workload from a CSV (``arrival,runtime`` header) or JSON file."""
    p = Path(path)
    if not p.exists():
        raise WorkloadError(f"workload file not found: {path}")
    if p.suffix.lower() == ".json":
        with open(p, encoding="utf-8") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise WorkloadError(f"{path}: invalid JSON ({e})") from e
        if isinstance(data, dict):
            data = data.get("jobs", [])
        rows = []
        for item in data:
            if isinstance(item, dict):
                rows.append((item.get("arrival"), item.get("runtime")))
            elif isinstance(item, (list, tuple)):
                rows.append(tuple(item))
            else:
                raise WorkloadError(f"{path}: cannot read job from {item!r}")
        return make_workload(rows)

    with open(p, newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        missing = {"arrival", "runtime"} - set(reader.fieldnames or [])
        if missing:
            raise WorkloadError(f"{path}: missing columns {sorted(missing)}")
        return make_workload((row["arrival"], row["runtime"]) for row in reader)


def arrivals_by_tick(workload: Workload) -> dict:
    """Map each arrival tick to the job indices arriving then, in workload order."""
    by_tick: dict = {}
    for index, job in enumerate(workload):
        by_tick.setdefault(job.arrival_tick, []).append(index)
    return by_tick
