from __future__ import annotations

import argparse
import dataclasses
import logging
import time
from pathlib import Path
from typing import List, Optional, Sequence

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from .algorithms import ALGORITHMS, compare_algorithms, run_algorithm
from .config import SimulationConfig, load_config, parse_quanta, parse_queue_spec
from .errors import SchedulerError
from .gantt import build_rich_gantt, render_gantt, render_timeline
from .models import CONTEXT_SWITCH, IDLE, Process, ScheduleResult
from .workload_io import load_workload_with_config, sample_workload

logger = logging.getLogger(__name__)

ALGORITHM_TITLES = {
    "rr": "Round Robin",
    "priority": "Non-Preemptive Priority",
    "priority-preemptive": "Preemptive Priority",
    "mlq": "Multilevel Queue",
    "mlfq": "Multilevel Feedback Queue",
}


def _add_simulation_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--workload",
        "-w",
        default=None,
        help="Path to JSON or CSV workload file (default: built-in five-process sample).",
    )
    parser.add_argument(
        "--config",
        "-c",
        default=None,
        help="JSON file with simulation settings; command-line options override it.",
    )
    parser.add_argument(
        "--quantum",
        "-q",
        type=int,
        default=None,
        help="Time quantum for round robin (default: 4).",
    )
    parser.add_argument(
        "--overhead",
        type=int,
        default=None,
        help="Context switch overhead in time units (default: 0).",
    )
    parser.add_argument(
        "--no-aging",
        action="store_true",
        help="Disable aging for the priority and feedback queue policies.",
    )
    parser.add_argument(
        "--aging-interval",
        type=int,
        default=None,
        help="Priority aging interval (default: 5).",
    )
    parser.add_argument(
        "--levels",
        type=int,
        default=None,
        help="Number of MLFQ levels (default: 3).",
    )
    parser.add_argument(
        "--quanta",
        default=None,
        help="Comma-separated MLFQ quanta, one per level (default: 2,4,8,...).",
    )
    parser.add_argument(
        "--aging-threshold",
        type=int,
        default=None,
        help="MLFQ aging threshold (default: 10).",
    )
    parser.add_argument(
        "--queues",
        default=None,
        help="Multilevel queue layout, e.g. rr:2,rr:4,fcfs,fcfs (the default).",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="count",
        default=0,
        help="Log scheduling decisions (-v for a summary, -vv for every event).",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="schedsim",
        description="CPU scheduling simulator (Round Robin, Priority, Multilevel Queue, MLFQ).",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run one scheduling algorithm on a workload.")
    run_parser.add_argument(
        "--algorithm",
        "-a",
        required=True,
        help=f"Algorithm to use ({', '.join(ALGORITHMS)}).",
    )
    _add_simulation_options(run_parser)
    run_parser.add_argument(
        "--step",
        action="store_true",
        help="Show a simple time-stepped simulation in the terminal.",
    )
    run_parser.add_argument(
        "--step-delay",
        type=float,
        default=0.3,
        help="Seconds to wait between steps when --step is used (default: 0.3).",
    )
    run_parser.add_argument(
        "--plain",
        action="store_true",
        help="Draw the Gantt chart as plain text instead of a colored panel.",
    )

    compare_parser = subparsers.add_parser(
        "compare",
        help="Run several algorithms on the same workload and compare their metrics.",
    )
    compare_parser.add_argument(
        "--algorithms",
        "-a",
        nargs="+",
        default=list(ALGORITHMS),
        help=f"Algorithms to compare (default: {' '.join(ALGORITHMS)}).",
    )
    _add_simulation_options(compare_parser)

    menu_parser = subparsers.add_parser(
        "menu",
        help="Interactive menu to pick an algorithm at runtime.",
    )
    _add_simulation_options(menu_parser)

    return parser


def configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _load_inputs(args: argparse.Namespace) -> tuple[List[Process], SimulationConfig]:
    """
    Resolve the workload and the effective configuration: embedded workload
    config, then --config file, then individual command-line options.
    """
    config = SimulationConfig()
    if args.workload:
        processes, embedded = load_workload_with_config(Path(args.workload))
        if embedded is not None:
            config = embedded
    else:
        processes = sample_workload()

    if args.config:
        config = load_config(Path(args.config))

    overrides = {}
    if args.quantum is not None:
        overrides["quantum"] = args.quantum
    if args.overhead is not None:
        overrides["context_switch_overhead"] = args.overhead
    if args.no_aging:
        overrides["aging"] = False
    if args.aging_interval is not None:
        overrides["aging_interval"] = args.aging_interval
    if args.levels is not None:
        overrides["mlfq_levels"] = args.levels
    if args.quanta is not None:
        overrides["mlfq_quanta"] = parse_quanta(args.quanta)
    if args.aging_threshold is not None:
        overrides["mlfq_aging_threshold"] = args.aging_threshold
    if args.queues is not None:
        overrides["mlq_queues"] = parse_queue_spec(args.queues)

    config = dataclasses.replace(config, **overrides).validate()
    logger.info("Loaded %d processes; config %s", len(processes), config)
    return processes, config


def _print_result(result: ScheduleResult, console: Console, plain: bool = False) -> None:
    console.print(f"[bold]Algorithm:[/bold] {result.algorithm}")
    if result.quantum is not None:
        console.print(f"[bold]Quantum:[/bold] {result.quantum}")

    console.print()

    if plain:
        console.print(render_gantt(result.slices), markup=False, highlight=False)
    else:
        panel, time_marks = build_rich_gantt(result.slices)
        console.print(panel)
        if time_marks:
            console.print(time_marks, highlight=False)
    console.print(f"[dim]{render_timeline(result.timeline)}[/dim]")

    console.print()

    headers = [
        "PID",
        "Name",
        "Arrive",
        "Burst",
        "Priority",
        "Start",
        "Complete",
        "Wait",
        "Turnaround",
        "Response",
    ]

    proc_table = Table(title="Per-process metrics", box=box.SIMPLE_HEAVY)
    for h in headers:
        justify = "center" if h in {"PID", "Name", "Priority"} else "right"
        proc_table.add_column(h, justify=justify)

    for p in result.processes:
        proc_table.add_row(
            str(p.pid),
            p.name,
            str(p.arrival_time),
            str(p.burst_time),
            str(p.initial_priority) if p.priority == p.initial_priority else f"{p.initial_priority}->{p.priority}",
            str(p.start_time),
            str(p.completion_time),
            str(p.waiting_time),
            str(p.turnaround_time),
            str(p.response_time),
        )

    console.print(proc_table)
    console.print()

    m = result.metrics
    sys_table = Table(title="Aggregate metrics", box=box.SIMPLE_HEAVY)
    sys_table.add_column("Metric")
    sys_table.add_column("Value", justify="right")

    sys_table.add_row("Avg waiting", f"{m.average_waiting_time:.2f}")
    sys_table.add_row("Avg turnaround", f"{m.average_turnaround_time:.2f}")
    sys_table.add_row("Avg response", f"{m.average_response_time:.2f}")
    sys_table.add_row("CPU utilization", f"{m.cpu_utilization:.1f}%")
    sys_table.add_row("Throughput (proc/time)", f"{m.throughput:.3f}")
    sys_table.add_row("Context switches", str(m.total_context_switches))
    sys_table.add_row("Total time", str(m.total_time))

    console.print(sys_table)


def _print_comparison(results: Sequence[ScheduleResult], console: Console, title: str) -> None:
    summary_table = Table(title=title, box=box.SIMPLE_HEAVY)
    summary_table.add_column("Algorithm")
    summary_table.add_column("Avg waiting", justify="right")
    summary_table.add_column("Avg turnaround", justify="right")
    summary_table.add_column("Avg response", justify="right")
    summary_table.add_column("CPU %", justify="right")
    summary_table.add_column("Switches", justify="right")

    for result in results:
        m = result.metrics
        summary_table.add_row(
            result.algorithm,
            f"{m.average_waiting_time:.2f}",
            f"{m.average_turnaround_time:.2f}",
            f"{m.average_response_time:.2f}",
            f"{m.cpu_utilization:.2f}",
            str(m.total_context_switches),
        )

    console.print(summary_table)


def _animate_result(result: ScheduleResult, delay: float, console: Console) -> None:
    """
    Simple time-stepped textual replay of a finished run.
    """
    if not result.timeline:
        console.print("[red]No execution to animate.[/red]")
        return

    console.print(f"[bold]Simulating {result.algorithm}[/bold] (duration {len(result.timeline)} time units)")
    console.print("[dim]Press Ctrl+C to skip animation.[/dim]")

    streak = 0
    previous = None
    for t, label in enumerate(result.timeline):
        streak = streak + 1 if label == previous else 1
        previous = label
        if label == IDLE:
            msg = f"t={t:2d}: [dim]idle[/dim]"
        elif label == CONTEXT_SWITCH:
            msg = f"t={t:2d}: [yellow]context switch[/yellow]"
        else:
            msg = f"t={t:2d}: {label} [green]{'#' * streak}[/green]"
        console.print(msg)
        time.sleep(delay)


def _ask_int(prompt: str, default: int, console: Console) -> int:
    raw = input(f"{prompt} [{default}]: ").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        console.print("[red]Invalid number; using default.[/red]")
        return default


def _interactive_menu(processes: List[Process], config: SimulationConfig) -> None:
    console = Console()
    alg_choices = list(ALGORITHMS)

    while True:
        console.print("\n[bold cyan]CPU Scheduler Simulator[/bold cyan] [dim](q to quit)[/dim]")
        console.print(f"[bold]Workload:[/bold] [green]{len(processes)} processes[/green]")
        console.print("[bold]Select a scheduling algorithm:[/bold]")
        for idx, alg in enumerate(alg_choices, start=1):
            console.print(f"  [yellow]{idx}[/yellow]. [white]{ALGORITHM_TITLES[alg]}[/white]")
        compare_idx = len(alg_choices) + 1
        console.print(f"  [yellow]{compare_idx}[/yellow]. [white]Compare all algorithms[/white]")

        choice = input(f"Choice [1-{compare_idx} or q]: ").strip().lower()
        if choice in {"q", "quit", "exit", "0"}:
            return

        try:
            alg_idx = int(choice) - 1
        except ValueError:
            console.print("[red]Invalid selection.[/red]")
            continue

        if alg_idx == compare_idx - 1:
            try:
                results = compare_algorithms(alg_choices, processes, config)
                _print_comparison(results, console, "Algorithm comparison")
            except SchedulerError as exc:
                console.print(f"[red]Error: {escape(str(exc))}[/red]")
            continue

        if not 0 <= alg_idx < len(alg_choices):
            console.print("[red]Invalid selection.[/red]")
            continue

        alg = alg_choices[alg_idx]
        run_config = config
        if alg == "rr":
            run_config = dataclasses.replace(config, quantum=_ask_int("Time quantum", config.quantum, console))
        elif alg == "mlfq":
            levels = _ask_int("Number of queues", config.mlfq_levels, console)
            if levels != config.mlfq_levels:
                run_config = dataclasses.replace(config, mlfq_levels=levels, mlfq_quanta=None)

        try:
            result = run_algorithm(alg, processes, run_config)
            _print_result(result, console)
        except SchedulerError as exc:
            console.print(f"[red]Error: {escape(str(exc))}[/red]")
            continue

        console.print("[dim]Run complete. Press Enter to return to menu...[/dim]")
        input()


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.verbose)
    console = Console()

    try:
        processes, config = _load_inputs(args)

        if args.command == "run":
            result = run_algorithm(args.algorithm, processes, config)
            if args.step:
                try:
                    _animate_result(result, args.step_delay, console)
                except KeyboardInterrupt:
                    console.print("[yellow]Animation skipped.[/yellow]")
            _print_result(result, console, plain=args.plain)
            return 0

        if args.command == "compare":
            results = compare_algorithms(args.algorithms, processes, config)
            _print_comparison(results, console, "Algorithm comparison")
            return 0

        if args.command == "menu":
            _interactive_menu(processes, config)
            return 0
    except (OSError, ValueError, SchedulerError) as exc:
        console.print(f"[red]Error: {escape(str(exc))}[/red]")
        return 1

    parser.error(f"Unknown command: {args.command}")
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
