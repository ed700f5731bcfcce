from rich.panel import Panel

from schedsim.gantt import build_rich_gantt, render_gantt, render_timeline
from schedsim.models import ScheduledSlice


def test_render_gantt_marks_gaps():
    chart = render_gantt([ScheduledSlice("A", 0, 2), ScheduledSlice("A", 2, 3), ScheduledSlice("B", 5, 8)])
    lines = chart.splitlines()
    assert lines[0] == "Gantt Chart:"
    assert lines[1] == "|===..===|"
    assert lines[2] == " A    B"
    assert lines[3] == "0  3 5  8"


def test_render_gantt_time_marks_line_up_with_bar():
    chart = render_gantt([ScheduledSlice("Long", 0, 12), ScheduledSlice("B", 12, 15)])
    bar, marks = chart.splitlines()[1], chart.splitlines()[3]
    assert marks == "0" + " " * 10 + "12 15"
    # Each mark ends under the last unit of the slice it closes.
    assert bar[marks.index("12") + 1] == "="
    assert len(marks) == len(bar) - 1


def test_render_gantt_drops_colliding_marks():
    chart = render_gantt([ScheduledSlice("A", 0, 9), ScheduledSlice("B", 9, 10), ScheduledSlice("C", 10, 14)])
    assert chart.splitlines()[3] == "0        9   14"


def test_render_gantt_empty():
    assert render_gantt([]) == "(no execution)"


def test_render_timeline():
    assert render_timeline(["A", "A", "CS", "Bob", "IDLE"]) == "AAxB-"


def test_build_rich_gantt():
    panel, marks = build_rich_gantt([ScheduledSlice("A", 0, 2), ScheduledSlice("B", 3, 5)])
    assert isinstance(panel, Panel)
    assert marks == " 0 2  5"

    panel, marks = build_rich_gantt([])
    assert marks == ""
