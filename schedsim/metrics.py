from __future__ import annotations

from typing import Iterable, List

from .models import Process, ProcessState, ScheduledSlice, SchedulingMetrics


def compute_scheduling_metrics(processes: Iterable[Process], context_switches: int = 0) -> SchedulingMetrics:
    """
    Aggregate metrics over the terminated processes of a run.

    The elapsed span runs from the earliest arrival to the latest completion
    among terminated processes. Every ratio degrades to 0 when nothing has
    terminated or the span is empty.
    """
    finished = [p for p in processes if p.state is ProcessState.TERMINATED]

    if not finished:
        return SchedulingMetrics(total_context_switches=context_switches)

    n = len(finished)
    total_time = max(p.completion_time for p in finished) - min(p.arrival_time for p in finished)
    busy_time = sum(p.burst_time for p in finished)

    return SchedulingMetrics(
        average_waiting_time=sum(p.waiting_time for p in finished) / n,
        average_turnaround_time=sum(p.turnaround_time for p in finished) / n,
        average_response_time=sum(p.response_time for p in finished) / n,
        cpu_utilization=busy_time / total_time * 100.0 if total_time > 0 else 0.0,
        throughput=n / total_time if total_time > 0 else 0.0,
        total_context_switches=context_switches,
        total_time=total_time,
    )


def merge_slices(slices: List[ScheduledSlice]) -> List[ScheduledSlice]:
    """
    Collapse back-to-back slices of the same process into one, for display.
    """
    merged: List[ScheduledSlice] = []
    for sl in sorted(slices, key=lambda s: (s.start_time, s.end_time)):
        if merged and merged[-1].label == sl.label and merged[-1].end_time == sl.start_time:
            merged[-1] = ScheduledSlice(merged[-1].label, merged[-1].start_time, sl.end_time)
        else:
            merged.append(sl)
    return merged


def dispatch_counts(slices: Iterable[ScheduledSlice]) -> dict:
    """
    Number of execution slices each process received.
    """
    counts: dict[str, int] = {}
    for sl in slices:
        counts[sl.label] = counts.get(sl.label, 0) + 1
    return counts
