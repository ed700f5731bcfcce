from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, List, Mapping, Optional

from .errors import ConfigurationError
from .models import QueueAlgorithm, QueueConfig


@dataclass
class SimulationConfig:
    """
    Every knob the policies accept, with the defaults of the classic demo.

    ``aging`` and ``aging_interval`` drive the priority policies;
    the ``mlfq_*`` fields the feedback queue; ``mlq_queues`` the multilevel
    queue (None means the default four-queue layout).
    """

    quantum: int = 4
    context_switch_overhead: int = 0
    aging: bool = True
    aging_interval: int = 5
    mlfq_levels: int = 3
    mlfq_quanta: Optional[List[int]] = None
    mlfq_aging_threshold: int = 10
    mlq_queues: Optional[List[QueueConfig]] = field(default=None)

    def validate(self) -> "SimulationConfig":
        if self.quantum < 1:
            raise ConfigurationError(f"quantum must be at least 1 (got {self.quantum})")
        if self.context_switch_overhead < 0:
            raise ConfigurationError(
                f"context switch overhead must be non-negative (got {self.context_switch_overhead})"
            )
        if self.aging and self.aging_interval < 1:
            raise ConfigurationError(f"aging interval must be at least 1 (got {self.aging_interval})")
        if self.mlfq_levels < 1:
            raise ConfigurationError(f"MLFQ needs at least one level (got {self.mlfq_levels})")
        if self.aging and self.mlfq_aging_threshold < 1:
            raise ConfigurationError(
                f"MLFQ aging threshold must be at least 1 (got {self.mlfq_aging_threshold})"
            )
        if self.mlfq_quanta is not None:
            if len(self.mlfq_quanta) != self.mlfq_levels:
                raise ConfigurationError(
                    f"{len(self.mlfq_quanta)} MLFQ quanta given for {self.mlfq_levels} levels"
                )
            if any(q < 1 for q in self.mlfq_quanta):
                raise ConfigurationError(f"MLFQ quanta must all be at least 1 (got {self.mlfq_quanta})")
        if self.mlq_queues is not None:
            for q in self.mlq_queues:
                if q.algorithm is QueueAlgorithm.ROUND_ROBIN and q.quantum < 1:
                    raise ConfigurationError(f"queue {q.level}: round robin quantum must be at least 1")
        return self

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "SimulationConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(mapping) - known
        if unknown:
            raise ConfigurationError(f"Unknown config keys: {sorted(unknown)}")

        values = dict(mapping)
        quanta = values.get("mlfq_quanta")
        if isinstance(quanta, str):
            values["mlfq_quanta"] = parse_quanta(quanta)
        queues = values.get("mlq_queues")
        if isinstance(queues, str):
            values["mlq_queues"] = parse_queue_spec(queues)
        elif queues is not None:
            values["mlq_queues"] = [_queue_from_mapping(q) for q in queues]

        try:
            config = cls(**values)
        except TypeError as exc:
            raise ConfigurationError(f"Invalid config: {exc}") from exc
        return config.validate()


def load_config(path: str | Path) -> SimulationConfig:
    """
    Load a SimulationConfig from a JSON object file.
    """
    path = Path(path)
    with path.open("r", encoding="utf-8") as f:
        raw = json.load(f)

    if not isinstance(raw, Mapping):
        raise ConfigurationError("JSON config must be an object")
    return SimulationConfig.from_mapping(raw)


def parse_quanta(text: str) -> List[int]:
    """
    Parse ``"2,4,8"`` into a list of quanta.
    """
    try:
        return [int(part) for part in text.split(",") if part.strip()]
    except ValueError as exc:
        raise ConfigurationError(f"Invalid quanta list: {text!r}") from exc


def parse_queue_spec(text: str) -> List[QueueConfig]:
    """
    Parse a multilevel queue layout such as ``"rr:2,rr:4,fcfs"``.

    Queues are numbered 0, 1, 2, ... in the order given.
    """
    queues: List[QueueConfig] = []
    for level, part in enumerate(p.strip() for p in text.split(",") if p.strip()):
        name, _, quantum = part.partition(":")
        try:
            algorithm = QueueAlgorithm(name.lower())
        except ValueError as exc:
            raise ConfigurationError(f"Unknown queue algorithm {name!r} (use rr or fcfs)") from exc

        if algorithm is QueueAlgorithm.ROUND_ROBIN:
            if not quantum:
                raise ConfigurationError(f"Round robin queue {level} needs a quantum, e.g. rr:4")
            try:
                queues.append(QueueConfig(level, algorithm, int(quantum)))
            except ValueError as exc:
                raise ConfigurationError(f"Invalid quantum in {part!r}") from exc
        else:
            queues.append(QueueConfig(level, algorithm, 0))

    if not queues:
        raise ConfigurationError("Queue layout is empty")
    return queues


def _queue_from_mapping(mapping: Mapping[str, Any]) -> QueueConfig:
    try:
        level = int(mapping["level"])
        algorithm = QueueAlgorithm(str(mapping.get("algorithm", "fcfs")).lower())
        quantum = int(mapping.get("quantum", 4))
    except (KeyError, TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid queue entry: {mapping!r}") from exc
    return QueueConfig(level, algorithm, quantum)
