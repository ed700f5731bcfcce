from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from .config import SimulationConfig
from .engine import ReadyQueues, SchedulingPolicy, Simulation
from .errors import ConfigurationError
from .models import Process, QueueAlgorithm, QueueConfig, ScheduleResult

logger = logging.getLogger(__name__)


def _enqueue_ready(
    sim: Simulation,
    queues: ReadyQueues,
    level_for: Callable[[int], int],
    skip: Optional[int] = None,
) -> None:
    # Roster order; processes already queued are left where they are.
    for index in sim.ready_indices():
        if index != skip:
            queues.enqueue(index, level_for(index))


def _log_queues(sim: Simulation, queues: ReadyQueues) -> None:
    if logger.isEnabledFor(logging.DEBUG):
        contents = [
            [sim.processes[i].label for i in queues.snapshot(level)] for level in range(queues.levels)
        ]
        logger.debug("t=%d ready queues %s", sim.clock, contents)


class RoundRobinPolicy:
    """
    Round Robin: one FIFO ready queue, every dispatch gets a fixed quantum.
    """

    def __init__(self, quantum: int = 4) -> None:
        if quantum < 1:
            raise ConfigurationError(f"Round Robin requires a positive quantum (got {quantum})")
        self.quantum = quantum

    @property
    def name(self) -> str:
        return f"Round Robin (Quantum={self.quantum})"

    def run(self, sim: Simulation) -> None:
        queue = ReadyQueues(1, len(sim.processes))

        while not sim.all_terminated():
            sim.admit_arrivals()
            _enqueue_ready(sim, queue, lambda i: 0)

            picked = queue.pop_next()
            if picked is None:
                if not sim.idle_until_next_arrival():
                    break
                continue

            _, index = picked
            sim.context_switch(sim.current, index)
            sim.run_slice(index, self.quantum)

            if sim.processes[index].is_complete:
                sim.terminate(index)
                continue

            # Arrivals during the slice go ahead of the preempted process.
            sim.preempt(index)
            sim.admit_arrivals()
            _enqueue_ready(sim, queue, lambda i: 0, skip=index)
            queue.enqueue(index, 0)


class PriorityPolicy:
    """
    Priority scheduling, lower number wins, ties go to the earlier arrival
    and then to registration order.

    Non-preemptive: the selected process runs its whole remaining burst.
    Preemptive: the choice is revisited before every time unit, and the
    running process only yields to a strictly better priority. Time spent
    on context-switch overhead triggers a fresh selection as well.

    With aging, every multiple of ``aging_interval`` is an aging boundary:
    a READY process that has waited at least ``aging_interval`` since it
    last held the CPU gains one priority point per boundary, never going
    below 0. Boundaries crossed by a long burst or an idle jump are all
    evaluated before the next selection.
    """

    quantum = None

    def __init__(self, preemptive: bool, aging: bool = True, aging_interval: int = 5) -> None:
        if aging and aging_interval < 1:
            raise ConfigurationError(f"aging interval must be at least 1 (got {aging_interval})")
        self.preemptive = preemptive
        self.aging = aging
        self.aging_interval = aging_interval
        self._next_aging = aging_interval

    @property
    def name(self) -> str:
        mode = "Preemptive" if self.preemptive else "Non-Preemptive"
        return f"{mode} Priority" + (" with Aging" if self.aging else "")

    def run(self, sim: Simulation) -> None:
        self._next_aging = self.aging_interval
        if self.preemptive:
            self._run_preemptive(sim)
        else:
            self._run_non_preemptive(sim)

    def _rank(self, sim: Simulation, index: int, running: Optional[int] = None):
        p = sim.processes[index]
        return (p.priority, 0 if index == running else 1, p.arrival_time, index)

    def _apply_aging(self, sim: Simulation) -> None:
        if not self.aging:
            return
        while self._next_aging <= sim.clock:
            boundary = self._next_aging
            for index in sim.ready_indices():
                p = sim.processes[index]
                if p.priority > 0 and boundary - p.last_scheduled_time >= self.aging_interval:
                    p.priority -= 1
                    logger.debug("t=%d aged %s to priority %d", boundary, p.label, p.priority)
            self._next_aging += self.aging_interval

    def _run_non_preemptive(self, sim: Simulation) -> None:
        while not sim.all_terminated():
            sim.admit_arrivals()
            self._apply_aging(sim)

            candidates = sim.ready_indices()
            if not candidates:
                if not sim.idle_until_next_arrival():
                    break
                continue

            index = min(candidates, key=lambda i: self._rank(sim, i))
            sim.context_switch(sim.current, index)
            sim.run_slice(index, sim.processes[index].remaining_time)
            sim.terminate(index)

    def _run_preemptive(self, sim: Simulation) -> None:
        while not sim.all_terminated():
            sim.admit_arrivals()
            self._apply_aging(sim)

            running = sim.running()
            candidates = sim.ready_indices()
            if running is not None:
                candidates.append(running)
            if not candidates:
                if not sim.idle_until_next_arrival():
                    break
                continue

            index = min(candidates, key=lambda i: self._rank(sim, i, running))
            if index != running:
                switched_at = sim.clock
                sim.context_switch(sim.current, index)
                if sim.clock != switched_at:
                    # Overhead moved the clock; arrivals and aging may
                    # change the choice before the first unit runs.
                    continue

            sim.run_slice(index, 1)
            if sim.processes[index].is_complete:
                sim.terminate(index)


def default_queues() -> List[QueueConfig]:
    return [
        QueueConfig(0, QueueAlgorithm.ROUND_ROBIN, 2),
        QueueConfig(1, QueueAlgorithm.ROUND_ROBIN, 4),
        QueueConfig(2, QueueAlgorithm.FCFS, 0),
        QueueConfig(3, QueueAlgorithm.FCFS, 0),
    ]


class MultilevelQueuePolicy:
    """
    Multilevel Queue: permanent queue per process, strict priority across
    queues, each queue running its own FCFS or Round Robin discipline.

    A process goes to the first queue (in level order) whose level is at
    least its priority, or to the last queue if its priority exceeds them
    all. Lower queues can starve; there is no aging.
    """

    quantum = None

    def __init__(self, queues: Optional[Iterable[QueueConfig]] = None) -> None:
        self._configs: Dict[int, QueueConfig] = {}
        self.assignments: Dict[int, int] = {}
        for config in queues or []:
            self.add_queue(config)

    @property
    def name(self) -> str:
        return f"Multilevel Queue ({len(self._configs)} queues)"

    @property
    def queues(self) -> List[QueueConfig]:
        return [self._configs[level] for level in sorted(self._configs)]

    def add_queue(self, config: QueueConfig) -> None:
        """
        Configure the queue at ``config.level``, replacing any existing one.
        """
        if config.algorithm is QueueAlgorithm.ROUND_ROBIN and config.quantum < 1:
            raise ConfigurationError(
                f"queue {config.level}: round robin quantum must be at least 1 (got {config.quantum})"
            )
        self._configs[config.level] = config

    def queue_for(self, priority: int) -> int:
        """
        Position (in level order) of the queue a process with ``priority``
        belongs to.
        """
        configs = self.queues
        if not configs:
            raise ConfigurationError("Multilevel queue has no queues configured")
        for position, config in enumerate(configs):
            if priority <= config.level:
                return position
        return len(configs) - 1

    def run(self, sim: Simulation) -> None:
        configs = self.queues
        if not configs:
            raise ConfigurationError("Multilevel queue has no queues configured")

        queues = ReadyQueues(len(configs), len(sim.processes))
        assigned: Dict[int, int] = {}

        def level_for(index: int) -> int:
            if index not in assigned:
                assigned[index] = self.queue_for(sim.processes[index].priority)
                logger.debug(
                    "%s assigned to queue %d", sim.processes[index].label, configs[assigned[index]].level
                )
            return assigned[index]

        while not sim.all_terminated():
            sim.admit_arrivals()
            _enqueue_ready(sim, queues, level_for)
            _log_queues(sim, queues)

            picked = queues.pop_next()
            if picked is None:
                if not sim.idle_until_next_arrival():
                    break
                continue

            position, index = picked
            config = configs[position]
            sim.context_switch(sim.current, index)

            if config.algorithm is QueueAlgorithm.FCFS:
                sim.run_slice(index, sim.processes[index].remaining_time)
            else:
                sim.run_slice(index, config.quantum)

            if sim.processes[index].is_complete:
                sim.terminate(index)
                continue

            sim.preempt(index)
            sim.admit_arrivals()
            _enqueue_ready(sim, queues, level_for, skip=index)
            queues.enqueue(index, position)

        self.assignments = {sim.processes[i].pid: configs[pos].level for i, pos in assigned.items()}


@dataclass
class LevelChange:
    time: int
    pid: int
    from_level: int
    to_level: int
    reason: str


class MultilevelFeedbackQueuePolicy:
    """
    Multilevel Feedback Queue.

    Every process starts at level 0. Using a whole quantum without finishing
    demotes a process one level (down to ``levels - 1``). Aging is the only
    way back up: a check runs on the first scheduling cycle at or after each
    multiple of ``aging_threshold``, and any READY process that has spent at
    least ``aging_threshold`` units READY at its current level moves up one.
    Every level change restarts that residence count.
    """

    def __init__(
        self,
        levels: int = 3,
        aging: bool = True,
        aging_threshold: int = 10,
        quanta: Optional[Sequence[int]] = None,
    ) -> None:
        if levels < 1:
            raise ConfigurationError(f"MLFQ needs at least one level (got {levels})")
        if aging and aging_threshold < 1:
            raise ConfigurationError(f"aging threshold must be at least 1 (got {aging_threshold})")
        self.levels = levels
        self.aging = aging
        self.aging_threshold = aging_threshold
        self.quanta: List[int] = [2 * 2**level for level in range(levels)]
        if quanta is not None:
            if len(quanta) != levels:
                raise ConfigurationError(f"{len(quanta)} quanta given for {levels} levels")
            for level, q in enumerate(quanta):
                self.set_quantum(level, q)

        self.history: List[LevelChange] = []
        self._levels: Dict[int, int] = {}

    @property
    def name(self) -> str:
        return f"Multilevel Feedback Queue ({self.levels} levels)" + (" with Aging" if self.aging else "")

    @property
    def quantum(self) -> int:
        return self.quanta[0]

    def set_quantum(self, level: int, quantum: int) -> None:
        if not 0 <= level < self.levels:
            raise ConfigurationError(f"queue index {level} out of range 0..{self.levels - 1}")
        if quantum < 1:
            raise ConfigurationError(f"quantum must be at least 1 (got {quantum})")
        self.quanta[level] = quantum

    def level_of(self, pid: int) -> int:
        return self._levels[pid]

    def run(self, sim: Simulation) -> None:
        n = len(sim.processes)
        queues = ReadyQueues(self.levels, n)
        level = [0] * n
        # waiting_time at the moment a process entered its current level
        entered = [0] * n
        next_check = self.aging_threshold
        self.history = []

        def change_level(index: int, new_level: int, reason: str) -> None:
            p = sim.processes[index]
            self.history.append(LevelChange(sim.clock, p.pid, level[index], new_level, reason))
            logger.debug("t=%d %s %s: Q%d -> Q%d", sim.clock, reason, p.label, level[index], new_level)
            level[index] = new_level
            entered[index] = p.waiting_time

        while not sim.all_terminated():
            sim.admit_arrivals()

            if self.aging and sim.clock >= next_check:
                for index in sim.ready_indices():
                    p = sim.processes[index]
                    if level[index] > 0 and p.waiting_time - entered[index] >= self.aging_threshold:
                        change_level(index, level[index] - 1, "promote")
                        if queues.is_queued(index):
                            queues.move(index, level[index])
                next_check = (sim.clock // self.aging_threshold + 1) * self.aging_threshold

            _enqueue_ready(sim, queues, lambda i: level[i])
            _log_queues(sim, queues)

            picked = queues.pop_next()
            if picked is None:
                if not sim.idle_until_next_arrival():
                    break
                continue

            current_level, index = picked
            quantum = self.quanta[current_level]
            sim.context_switch(sim.current, index)
            used = sim.run_slice(index, quantum)

            if sim.processes[index].is_complete:
                sim.terminate(index)
                continue

            sim.preempt(index)
            if used == quantum and level[index] < self.levels - 1:
                change_level(index, level[index] + 1, "demote")

            sim.admit_arrivals()
            _enqueue_ready(sim, queues, lambda i: level[i], skip=index)
            queues.enqueue(index, level[index])

        self._levels = {sim.processes[i].pid: level[i] for i in range(n)}


def _build_rr(config: SimulationConfig) -> SchedulingPolicy:
    return RoundRobinPolicy(config.quantum)


def _build_priority(config: SimulationConfig) -> SchedulingPolicy:
    return PriorityPolicy(False, config.aging, config.aging_interval)


def _build_priority_preemptive(config: SimulationConfig) -> SchedulingPolicy:
    return PriorityPolicy(True, config.aging, config.aging_interval)


def _build_mlq(config: SimulationConfig) -> SchedulingPolicy:
    return MultilevelQueuePolicy(config.mlq_queues or default_queues())


def _build_mlfq(config: SimulationConfig) -> SchedulingPolicy:
    return MultilevelFeedbackQueuePolicy(
        levels=config.mlfq_levels,
        aging=config.aging,
        aging_threshold=config.mlfq_aging_threshold,
        quanta=config.mlfq_quanta,
    )


ALGORITHMS: Dict[str, Callable[[SimulationConfig], SchedulingPolicy]] = {
    "rr": _build_rr,
    "priority": _build_priority,
    "priority-preemptive": _build_priority_preemptive,
    "mlq": _build_mlq,
    "mlfq": _build_mlfq,
}


def build_policy(name: str, config: Optional[SimulationConfig] = None) -> SchedulingPolicy:
    name = name.lower()
    if name not in ALGORITHMS:
        raise ConfigurationError(f"Unknown algorithm '{name}' (choose from {', '.join(ALGORITHMS)})")
    config = (config or SimulationConfig()).validate()
    return ALGORITHMS[name](config)


def run_algorithm(
    name: str,
    processes: Iterable[Process],
    config: Optional[SimulationConfig] = None,
) -> ScheduleResult:
    """
    Run one algorithm on fresh copies of ``processes``; the caller's records
    are never touched, so the same workload can be reused for every policy.
    """
    config = (config or SimulationConfig()).validate()
    policy = build_policy(name, config)

    sim = Simulation(policy, context_switch_overhead=config.context_switch_overhead)
    sim.add_processes(p.clone() for p in processes)
    result = sim.schedule()

    logger.info(
        "%s finished at t=%d: avg wait %.2f, avg turnaround %.2f, %d context switches",
        result.algorithm,
        sim.clock,
        result.metrics.average_waiting_time,
        result.metrics.average_turnaround_time,
        result.metrics.total_context_switches,
    )
    return result


def compare_algorithms(
    names: Iterable[str],
    processes: Sequence[Process],
    config: Optional[SimulationConfig] = None,
) -> List[ScheduleResult]:
    return [run_algorithm(name, processes, config) for name in names]
