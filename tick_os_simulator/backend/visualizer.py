from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple
import os
import matplotlib.pyplot as plt

from .simulator import RunResult


def ensure_dir(path: str) -> None:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)


def timeline_segments(result: RunResult) -> List[Tuple[int, int, int]]:
    """Collapse the per-tick timeline into (pid, start, length) segments."""
    segments: List[Tuple[int, int, int]] = []
    for tick, pid in enumerate(result.timeline):
        if pid is None:
            continue
        if segments and segments[-1][0] == pid and segments[-1][1] + segments[-1][2] == tick:
            last = segments[-1]
            segments[-1] = (pid, last[1], last[2] + 1)
        else:
            segments.append((pid, tick, 1))
    return segments


def _draw(ax, result: RunResult) -> None:
    pids = sorted(result.arrival_ticks)
    y_positions: Dict[int, int] = {pid: i for i, pid in enumerate(pids)}
    cmap = plt.get_cmap("tab10")

    # Waiting spans in light grey, execution on top
    for pid in pids:
        end = result.completion_ticks.get(pid, result.total_ticks - 1) + 1
        start = result.arrival_ticks[pid]
        ax.barh(y_positions[pid], end - start, left=start, color="#dddddd", edgecolor="none")

    for pid, start, length in timeline_segments(result):
        ax.barh(y_positions[pid], length, left=start, color=cmap(pid % 10), edgecolor="black", alpha=0.9)

    for record in result.ticks:
        if record.warning:
            ax.axvline(record.tick + 0.5, color="#cc0000", linestyle="--", alpha=0.6)

    ax.set_yticks([y_positions[pid] for pid in pids])
    ax.set_yticklabels([f"P{pid}" for pid in pids])
    ax.set_xlim(0, max(1, result.total_ticks))
    ax.set_xlabel("Tick")
    ax.set_title(result.policy_name)
    ax.grid(True, axis="x", linestyle=":", alpha=0.5)


def plot_gantt(results: Sequence[RunResult] | RunResult, out_path: Optional[str] = None) -> None:
    if isinstance(results, RunResult):
        results = [results]
    if not results:
        return
    fig, axes = plt.subplots(len(results), 1, figsize=(12, 2.0 + 1.6 * len(results)), squeeze=False)
    for ax, result in zip(axes[:, 0], results):
        _draw(ax, result)
    fig.tight_layout()

    if out_path:
        ensure_dir(out_path)
        fig.savefig(out_path, dpi=150)
        plt.close(fig)
    else:
        plt.show()
