"""
Discrete-time simulation engine shared by every scheduling policy.

A ``Simulation`` owns the process roster, the clock, the context-switch
counter and the execution timeline. It is parameterized by a policy object
that drives the run through the engine's services: admission, dispatch,
slice execution, waiting-time accrual, idle advance and termination.
Processes are addressed by their stable index in the roster.
"""

from __future__ import annotations

import copy
import logging
from collections import deque
from typing import Deque, Iterable, List, Optional, Protocol, Tuple

from .errors import ConfigurationError, SchedulerError
from .metrics import compute_scheduling_metrics
from .models import (
    CONTEXT_SWITCH,
    IDLE,
    Process,
    ProcessState,
    ScheduledSlice,
    ScheduleResult,
    SchedulingMetrics,
)

logger = logging.getLogger(__name__)


class SchedulingPolicy(Protocol):
    """
    A scheduling algorithm that runs a whole simulation to completion.
    """

    @property
    def name(self) -> str:
        ...  # pragma: no cover

    @property
    def quantum(self) -> Optional[int]:
        ...  # pragma: no cover

    def run(self, sim: "Simulation") -> None:
        ...  # pragma: no cover


class ReadyQueues:
    """
    FIFO ready queues indexed by level, holding roster indices.

    Each process carries a single membership tag: the level it is queued at,
    or None. Only the methods of this class write the tag, so a process can
    never sit in two queues or twice in one queue.
    """

    def __init__(self, levels: int, size: int) -> None:
        self._queues: List[Deque[int]] = [deque() for _ in range(levels)]
        self._membership: List[Optional[int]] = [None] * size

    def __bool__(self) -> bool:
        return any(self._queues)

    @property
    def levels(self) -> int:
        return len(self._queues)

    def level_of(self, index: int) -> Optional[int]:
        return self._membership[index]

    def is_queued(self, index: int) -> bool:
        return self._membership[index] is not None

    def snapshot(self, level: int) -> List[int]:
        return list(self._queues[level])

    def enqueue(self, index: int, level: int) -> bool:
        """
        Append ``index`` at the tail of ``level``. Returns False, leaving the
        queues untouched, if the process is already queued somewhere.
        """
        if self._membership[index] is not None:
            return False
        self._queues[level].append(index)
        self._membership[index] = level
        return True

    def remove(self, index: int) -> None:
        level = self._membership[index]
        if level is None:
            return
        self._queues[level].remove(index)
        self._membership[index] = None

    def move(self, index: int, level: int) -> None:
        self.remove(index)
        self.enqueue(index, level)

    def pop_next(self) -> Optional[Tuple[int, int]]:
        """
        Dequeue the head of the lowest-numbered non-empty level and return
        ``(level, index)``, or None if every level is empty.
        """
        for level, queue in enumerate(self._queues):
            if queue:
                index = queue.popleft()
                self._membership[index] = None
                return level, index
        return None


class Simulation:
    def __init__(self, policy: SchedulingPolicy, context_switch_overhead: int = 0) -> None:
        if context_switch_overhead < 0:
            raise ConfigurationError(
                f"context_switch_overhead must be non-negative (got {context_switch_overhead})"
            )
        self.policy = policy
        self.context_switch_overhead = context_switch_overhead
        self.processes: List[Process] = []
        self.clock = 0
        self.context_switches = 0
        # Last process to hold the CPU; cleared only by an idle advance.
        self.current: Optional[int] = None
        self.timeline: List[str] = []
        self.slices: List[ScheduledSlice] = []

    def add_process(self, process: Process) -> int:
        self.processes.append(process)
        return len(self.processes) - 1

    def add_processes(self, processes: Iterable[Process]) -> None:
        for p in processes:
            self.add_process(p)

    def schedule(self) -> ScheduleResult:
        """
        Run the policy over the registered processes until all terminate.
        """
        self.clock = 0
        self.context_switches = 0
        self.current = None
        self.timeline = []
        self.slices = []
        for p in self.processes:
            p.reset()

        logger.info("Running %s on %d processes", self.policy.name, len(self.processes))
        self.policy.run(self)

        unfinished = [p.pid for p in self.processes if p.state is not ProcessState.TERMINATED]
        if unfinished:
            raise SchedulerError(f"{self.policy.name} stopped with unfinished processes: {unfinished}")

        return self.result()

    def result(self) -> ScheduleResult:
        """
        Snapshot of the run so far. Process records are copied, so a later
        ``schedule()`` on this simulation leaves the returned result intact.
        """
        return ScheduleResult(
            algorithm=self.policy.name,
            quantum=self.policy.quantum,
            processes=[copy.copy(p) for p in self.processes],
            timeline=list(self.timeline),
            slices=list(self.slices),
            metrics=self.calculate_metrics(),
        )

    def calculate_metrics(self) -> SchedulingMetrics:
        return compute_scheduling_metrics(self.processes, self.context_switches)

    # -- services used by policies -------------------------------------------

    def all_terminated(self) -> bool:
        return all(p.state is ProcessState.TERMINATED for p in self.processes)

    def ready_indices(self) -> List[int]:
        return [i for i, p in enumerate(self.processes) if p.state is ProcessState.READY]

    def running(self) -> Optional[int]:
        if self.current is not None and self.processes[self.current].state is ProcessState.RUNNING:
            return self.current
        return None

    def admit_arrivals(self) -> List[int]:
        """
        Move every NEW process that has arrived by now to READY.
        """
        admitted = []
        for i, p in enumerate(self.processes):
            if p.state is ProcessState.NEW and p.arrival_time <= self.clock:
                p.admit()
                admitted.append(i)
        if admitted:
            logger.debug("t=%d admitted %s", self.clock, [self.processes[i].label for i in admitted])
        return admitted

    def context_switch(self, prev: Optional[int], nxt: Optional[int]) -> None:
        """
        Hand the CPU from ``prev`` to ``nxt``. Only a change between two
        distinct processes counts as a switch and costs overhead.
        """
        if prev is not None and self.processes[prev].state is ProcessState.RUNNING:
            self.processes[prev].preempt(self.clock)

        if prev is not None and nxt is not None and prev != nxt:
            self.context_switches += 1
            logger.debug(
                "t=%d context switch %s -> %s",
                self.clock,
                self.processes[prev].label,
                self.processes[nxt].label,
            )
            if self.context_switch_overhead:
                self.timeline.extend([CONTEXT_SWITCH] * self.context_switch_overhead)
                self._advance(self.context_switch_overhead, running=nxt)

        if nxt is not None:
            self.processes[nxt].dispatch(self.clock)
        self.current = nxt

    def run_slice(self, index: int, quantum: int) -> int:
        """
        Execute the running process for up to ``quantum`` units.
        """
        p = self.processes[index]
        start = self.clock
        used = p.execute(quantum)
        self.timeline.extend([p.label] * used)
        self.slices.append(ScheduledSlice(label=p.label, start_time=start, end_time=start + used))
        self._advance(used, running=index)
        return used

    def preempt(self, index: int) -> None:
        self.processes[index].preempt(self.clock)

    def terminate(self, index: int) -> None:
        p = self.processes[index]
        p.terminate(self.clock)
        logger.debug(
            "t=%d %s terminated (wait=%d, turnaround=%d, response=%d)",
            self.clock,
            p.label,
            p.waiting_time,
            p.turnaround_time,
            p.response_time,
        )

    def idle_until_next_arrival(self) -> bool:
        """
        Jump the clock to the next arrival, recording the gap as idle time.
        Returns False when no process is left to arrive.
        """
        pending = [p.arrival_time for p in self.processes if p.state is ProcessState.NEW]
        if not pending:
            return False

        gap = min(pending) - self.clock
        if gap > 0:
            logger.debug("t=%d idle for %d units", self.clock, gap)
            self.timeline.extend([IDLE] * gap)
            self._advance(gap)
        self.current = None
        return True

    def _advance(self, span: int, running: Optional[int] = None) -> None:
        # Processes arriving inside the span are admitted at its end and
        # credited with the part of the span after their arrival.
        start = self.clock
        self.clock += span
        for i, p in enumerate(self.processes):
            if i == running:
                continue
            if p.state is ProcessState.READY:
                p.add_waiting_time(span)
            elif p.state is ProcessState.NEW and p.arrival_time <= self.clock:
                p.admit()
                p.add_waiting_time(self.clock - max(p.arrival_time, start))
