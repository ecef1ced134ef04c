from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from colorama import Fore, Style, init as colorama_init

from tick_os_simulator.backend.errors import SimulationError
from tick_os_simulator.backend.manual_terminal import HEADER, ConsoleReporter
from tick_os_simulator.backend.os_kernel import OSKernel, SimulationConfig
from tick_os_simulator.backend.schedulers import ALGORITHMS
from tick_os_simulator.backend.utils import MultiReporter, TickLogger, summarize_runs
from tick_os_simulator.backend.visualizer import plot_gantt
from tick_os_simulator.backend.workload import DEFAULT_WORKLOAD, load_workload, make_workload, parse_job


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Discrete-time CPU scheduling simulator")
    p.add_argument("--policy", action="append", choices=list(ALGORITHMS), default=None,
                   help="Policy to run (repeatable, default: all in order)")
    p.add_argument("--job", action="append", default=None, metavar="ARRIVAL:RUNTIME",
                   help="Add a job (repeatable); overrides the built-in workload")
    p.add_argument("--workload", type=str, default=None, help="CSV (arrival,runtime) or JSON workload file")
    p.add_argument("--max-ticks", type=int, default=None, help="Abort a run that takes longer than this")
    p.add_argument("--capacity", type=int, default=None, help="Maximum number of process records per run")
    p.add_argument("--pause", action="store_true", help="Wait for Enter between algorithms")
    p.add_argument("--quiet", action="store_true", help="Do not print per-tick lines")
    p.add_argument("--no-color", action="store_true")
    p.add_argument("--json-out", type=str, default=None, help="Write the tick log as JSON")
    p.add_argument("--csv-out", type=str, default=None, help="Base path for tick log CSV files")
    p.add_argument("--summary-out", type=str, default=None, help="Write the policy comparison as CSV")
    p.add_argument("--plot-out", type=str, default=None, help="Save a Gantt chart of every run")
    return p.parse_args(argv)


def build_workload(args: argparse.Namespace):
    if args.workload:
        return load_workload(args.workload)
    if args.job:
        return make_workload(parse_job(j) for j in args.job)
    return DEFAULT_WORKLOAD


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    color = not args.no_color and sys.stdout.isatty()
    colorama_init()

    config = SimulationConfig(
        policies=tuple(args.policy) if args.policy else tuple(ALGORITHMS),
        max_ticks=args.max_ticks,
        capacity=args.capacity,
        pause_between_runs=args.pause,
    )
    tick_log = TickLogger()
    console = None if args.quiet else ConsoleReporter(color=color)
    reporter = MultiReporter(console, tick_log)

    try:
        workload = build_workload(args)
        if console is not None:
            print(HEADER + "\n")
        results = OSKernel(config).run(workload, reporter=reporter)
    except SimulationError as e:
        print(Fore.RED + f"Fatal error, bailing: {e}" + Style.RESET_ALL, file=sys.stderr)
        return 1

    summary = summarize_runs(results)
    print(summary.to_string(float_format=lambda v: f"{v:.2f}"))

    if args.json_out:
        tick_log.export_json(args.json_out)
        print(f"Tick log written to {args.json_out}")
    if args.csv_out:
        tick_log.export_csv(args.csv_out)
        print(f"Tick log CSVs written with base {args.csv_out}")
    if args.summary_out:
        summary.to_csv(args.summary_out)
        print(f"Summary written to {args.summary_out}")
    if args.plot_out:
        plot_gantt(results, args.plot_out)
        print(f"Saved plot to {args.plot_out}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
