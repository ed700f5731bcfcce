from __future__ import annotations

from typing import Dict, List, Tuple

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .metrics import merge_slices
from .models import CONTEXT_SWITCH, IDLE, ScheduledSlice


def _segments(slices: List[ScheduledSlice]) -> List[Tuple[str, int, int]]:
    # (label, start, end) with "" for the gaps between slices, from time 0.
    segments = []
    last_time = 0
    for sl in merge_slices(slices):
        if sl.start_time > last_time:
            segments.append(("", last_time, sl.start_time))
        segments.append((sl.label, sl.start_time, sl.end_time))
        last_time = sl.end_time
    return segments


def _time_marks(segments: List[Tuple[str, int, int]], offset: int) -> str:
    """
    Boundary times, each right-aligned so its last digit sits at column
    ``offset + t``. A mark that would run into the previous one is left out.
    """
    marks = ""
    points = [0] + [end for _, _, end in segments]
    for t in points:
        text = str(t)
        start = offset + t - len(text) + 1
        if marks and start < len(marks) + 1:
            continue
        marks = marks.ljust(max(start, 0)) + text
    return marks


def render_gantt(slices: List[ScheduledSlice]) -> str:
    """
    Plain-text Gantt chart. Gaps between slices (idle time or context-switch
    overhead) are drawn as dots.
    """
    if not slices:
        return "(no execution)"

    segments = _segments(slices)
    line = "|"
    labels = " "
    for label, start, end in segments:
        width = end - start
        line += ("=" if label else ".") * width
        labels += label[:width].ljust(width)
    line += "|"

    return "\n".join(
        [
            "Gantt Chart:",
            line,
            labels.rstrip(),
            _time_marks(segments, offset=0),
        ]
    )


def render_timeline(timeline: List[str]) -> str:
    """
    One character per time unit: first letter of the occupant, ``-`` for
    idle time, ``x`` for context-switch overhead.
    """
    chars = []
    for label in timeline:
        if label == IDLE:
            chars.append("-")
        elif label == CONTEXT_SWITCH:
            chars.append("x")
        else:
            chars.append(label[:1])
    return "".join(chars)


def build_rich_gantt(slices: List[ScheduledSlice]) -> Tuple[Panel, str]:
    """
    Build a Rich Panel containing a colored Gantt chart, plus a line of time
    marks aligned with the panel's bar when printed directly below it.
    """
    if not slices:
        panel = Panel("No execution", title="Gantt Chart")
        return panel, ""

    colors = ["red", "green", "yellow", "blue", "magenta", "cyan"]
    label_to_color: Dict[str, str] = {}

    def label_color(label: str) -> str:
        if label not in label_to_color:
            idx = len(label_to_color) % len(colors)
            label_to_color[label] = colors[idx]
        return label_to_color[label]

    segments = _segments(slices)
    timeline = Text()
    labels = Text()
    for label, start, end in segments:
        width = end - start
        if not label:
            timeline.append("." * width, style="dim")
            labels.append(" " * width)
            continue
        timeline.append(" " * width, style=f"on {label_color(label)}")
        labels.append(label[:width].ljust(width), style="bold")

    table = Table.grid(padding=(0, 0))
    table.add_row(timeline)
    table.add_row(labels)

    # The panel border and its one-column padding put unit k at column k + 2.
    panel = Panel.fit(table, title="Gantt Chart")
    return panel, _time_marks(segments, offset=1)
