from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .errors import InvalidProcessError, InvalidStateError

IDLE = "IDLE"
CONTEXT_SWITCH = "CS"


class ProcessState(Enum):
    NEW = "NEW"
    READY = "READY"
    RUNNING = "RUNNING"
    # Never entered: processes are pure CPU bursts.
    WAITING = "WAITING"
    TERMINATED = "TERMINATED"


@dataclass
class Process:
    """
    A simulated process: its inputs plus the timing state a run fills in.

    Lower ``priority`` values are more urgent. Everything after ``priority``
    is owned by the simulation that the process is registered with and is
    restored by ``reset()``.
    """

    pid: int
    name: str = ""
    arrival_time: int = 0
    burst_time: int = 1
    priority: int = 0

    remaining_time: int = field(init=False)
    state: ProcessState = field(init=False, default=ProcessState.NEW)
    start_time: int = field(init=False, default=-1)
    completion_time: int = field(init=False, default=-1)
    waiting_time: int = field(init=False, default=0)
    turnaround_time: int = field(init=False, default=0)
    response_time: int = field(init=False, default=0)
    last_scheduled_time: int = field(init=False)
    first_run: bool = field(init=False, default=True)
    initial_priority: int = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.burst_time < 1:
            raise InvalidProcessError(
                f"Process {self.pid}: burst_time must be at least 1 (got {self.burst_time})"
            )
        if self.arrival_time < 0:
            raise InvalidProcessError(
                f"Process {self.pid}: arrival_time must be non-negative (got {self.arrival_time})"
            )
        if not self.name:
            self.name = f"P{self.pid}"
        self.initial_priority = self.priority
        self.reset()

    @property
    def label(self) -> str:
        return self.name

    @property
    def is_complete(self) -> bool:
        return self.remaining_time == 0

    def admit(self) -> None:
        self.state = ProcessState.READY

    def dispatch(self, clock: int) -> None:
        """
        Give the CPU to this process. The first dispatch fixes ``start_time``.
        """
        if self.state is ProcessState.TERMINATED:
            raise InvalidStateError(f"Process {self.pid} is terminated and cannot run")
        self.state = ProcessState.RUNNING
        self.last_scheduled_time = clock
        if self.first_run:
            self.start_time = clock
            self.first_run = False

    def preempt(self, clock: int) -> None:
        if self.state is not ProcessState.RUNNING:
            raise InvalidStateError(f"Process {self.pid} is {self.state.value}, not RUNNING")
        self.state = ProcessState.READY
        self.last_scheduled_time = clock

    def execute(self, quantum: int) -> int:
        """
        Run for up to ``quantum`` units and return the time actually consumed.
        """
        if self.state is not ProcessState.RUNNING:
            raise InvalidStateError(f"Process {self.pid} is {self.state.value}, not RUNNING")
        if quantum <= 0:
            raise ValueError(f"quantum must be positive (got {quantum})")
        used = min(quantum, self.remaining_time)
        self.remaining_time -= used
        return used

    def add_waiting_time(self, amount: int) -> None:
        self.waiting_time += amount

    def terminate(self, clock: int) -> None:
        if self.state is ProcessState.TERMINATED:
            raise InvalidStateError(f"Process {self.pid} already terminated")
        self.state = ProcessState.TERMINATED
        self.completion_time = clock
        self.turnaround_time = self.completion_time - self.arrival_time
        self.response_time = self.start_time - self.arrival_time

    def reset(self) -> None:
        self.priority = self.initial_priority
        self.remaining_time = self.burst_time
        self.state = ProcessState.NEW
        self.start_time = -1
        self.completion_time = -1
        self.waiting_time = 0
        self.turnaround_time = 0
        self.response_time = 0
        self.last_scheduled_time = self.arrival_time
        self.first_run = True

    def clone(self) -> "Process":
        """
        Return a fresh, never-run copy with the same inputs.
        """
        return Process(
            pid=self.pid,
            name=self.name,
            arrival_time=self.arrival_time,
            burst_time=self.burst_time,
            priority=self.initial_priority,
        )


@dataclass
class ScheduledSlice:
    """
    One contiguous slice of execution for a process in the Gantt chart.
    """

    label: str
    start_time: int
    end_time: int


@dataclass
class SchedulingMetrics:
    average_waiting_time: float = 0.0
    average_turnaround_time: float = 0.0
    average_response_time: float = 0.0
    cpu_utilization: float = 0.0
    throughput: float = 0.0
    total_context_switches: int = 0
    total_time: int = 0


class QueueAlgorithm(Enum):
    FCFS = "fcfs"
    ROUND_ROBIN = "rr"


@dataclass
class QueueConfig:
    """
    One queue of a multilevel queue scheduler. ``quantum`` only matters for
    round robin queues.
    """

    level: int
    algorithm: QueueAlgorithm = QueueAlgorithm.FCFS
    quantum: int = 4


@dataclass
class ScheduleResult:
    algorithm: str
    quantum: Optional[int] = None
    processes: List[Process] = field(default_factory=list)
    timeline: List[str] = field(default_factory=list)
    slices: List[ScheduledSlice] = field(default_factory=list)
    metrics: SchedulingMetrics = field(default_factory=SchedulingMetrics)
