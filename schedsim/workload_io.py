from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any, List, Mapping, Optional, Tuple

from .config import SimulationConfig
from .errors import InvalidProcessError
from .models import Process


def load_workload(path: str | Path) -> List[Process]:
    """
    Load a workload from a JSON or CSV file into a list of Process objects.
    """
    processes, _ = load_workload_with_config(path)
    return processes


def load_workload_with_config(path: str | Path) -> Tuple[List[Process], Optional[SimulationConfig]]:
    """
    Like ``load_workload``, but also return the ``config`` object embedded in
    a JSON workload of the form ``{"config": {...}, "processes": [...]}``.
    """
    path = Path(path)
    suffix = path.suffix.lower()

    if suffix == ".json":
        return _load_json(path)
    if suffix == ".csv":
        return _load_csv(path), None

    raise ValueError(f"Unsupported workload format: {suffix} (use .json or .csv)")


def sample_workload() -> List[Process]:
    """
    The five-process demo set used when no workload file is given.
    """
    return [
        Process(1, "P1", arrival_time=0, burst_time=10, priority=2),
        Process(2, "P2", arrival_time=1, burst_time=5, priority=1),
        Process(3, "P3", arrival_time=2, burst_time=8, priority=3),
        Process(4, "P4", arrival_time=3, burst_time=4, priority=2),
        Process(5, "P5", arrival_time=4, burst_time=6, priority=1),
    ]


def _load_json(path: Path) -> Tuple[List[Process], Optional[SimulationConfig]]:
    with path.open("r", encoding="utf-8") as f:
        raw = json.load(f)

    config = None
    if isinstance(raw, Mapping):
        if "config" in raw:
            config = SimulationConfig.from_mapping(raw["config"])
        raw = raw.get("processes")

    if not isinstance(raw, list):
        raise ValueError("JSON workload must be a list of process objects")

    return _build_processes(raw), config


def _load_csv(path: Path) -> List[Process]:
    with path.open("r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        return _build_processes(list(reader))


def _build_processes(entries: List[Any]) -> List[Process]:
    processes: List[Process] = []
    seen: set[int] = set()
    for entry in entries:
        process = _process_from_mapping(entry)
        if process.pid in seen:
            raise ValueError(f"Duplicate pid {process.pid} in workload")
        seen.add(process.pid)
        processes.append(process)
    return processes


def _process_from_mapping(mapping) -> Process:
    try:
        pid = int(mapping["pid"])
        arrival_time = int(mapping["arrival_time"])
        burst_time = int(mapping["burst_time"])
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError(f"Invalid process entry: {mapping!r}") from exc

    try:
        priority_val = mapping.get("priority")
        priority = int(priority_val) if priority_val not in (None, "") else 0
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid priority in process entry: {mapping!r}") from exc

    name = mapping.get("name") or ""

    try:
        return Process(
            pid=pid,
            name=str(name),
            arrival_time=arrival_time,
            burst_time=burst_time,
            priority=priority,
        )
    except InvalidProcessError as exc:
        raise ValueError(f"Invalid process entry: {mapping!r} ({exc})") from exc
