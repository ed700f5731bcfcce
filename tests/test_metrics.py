from schedsim.metrics import compute_scheduling_metrics, dispatch_counts, merge_slices
from schedsim.models import Process, ScheduledSlice


def _finished(pid, arrival, burst, start, completion, waiting):
    p = Process(pid, arrival_time=arrival, burst_time=burst)
    p.admit()
    p.add_waiting_time(waiting)
    p.dispatch(start)
    p.execute(burst)
    p.terminate(completion)
    return p


def test_metrics_without_terminated_processes():
    m = compute_scheduling_metrics([Process(1, arrival_time=0, burst_time=3)], context_switches=2)
    assert m.average_waiting_time == 0
    assert m.average_turnaround_time == 0
    assert m.cpu_utilization == 0
    assert m.throughput == 0
    assert m.total_time == 0
    assert m.total_context_switches == 2


def test_metrics_ignore_unfinished_processes():
    done = _finished(1, arrival=0, burst=4, start=0, completion=4, waiting=0)
    pending = Process(2, arrival_time=1, burst_time=10)
    m = compute_scheduling_metrics([done, pending])
    assert m.average_turnaround_time == 4
    assert m.total_time == 4


def test_metrics_averages_and_ratios():
    processes = [
        _finished(1, arrival=0, burst=3, start=0, completion=3, waiting=0),
        _finished(2, arrival=1, burst=2, start=3, completion=5, waiting=2),
        _finished(3, arrival=8, burst=2, start=8, completion=10, waiting=0),
    ]
    m = compute_scheduling_metrics(processes, context_switches=1)
    assert m.average_waiting_time == 2 / 3
    assert m.average_turnaround_time == (3 + 4 + 2) / 3
    assert m.average_response_time == 2 / 3
    assert m.total_time == 10
    assert m.cpu_utilization == 70.0
    assert m.throughput == 0.3
    assert m.total_context_switches == 1


def test_merge_slices_joins_back_to_back_runs():
    slices = [
        ScheduledSlice("A", 0, 2),
        ScheduledSlice("A", 2, 4),
        ScheduledSlice("B", 4, 5),
        ScheduledSlice("A", 6, 7),
    ]
    assert merge_slices(slices) == [
        ScheduledSlice("A", 0, 4),
        ScheduledSlice("B", 4, 5),
        ScheduledSlice("A", 6, 7),
    ]
    assert dispatch_counts(slices) == {"A": 3, "B": 1}
