"""
CPU scheduling simulator.

Runs Round Robin, Priority (preemptive and non-preemptive, with aging),
Multilevel Queue and Multilevel Feedback Queue policies over synthetic
processes in discrete time, and reports per-process and aggregate metrics.
"""

from .algorithms import (
    ALGORITHMS,
    MultilevelFeedbackQueuePolicy,
    MultilevelQueuePolicy,
    PriorityPolicy,
    RoundRobinPolicy,
    compare_algorithms,
    run_algorithm,
)
from .config import SimulationConfig
from .engine import Simulation
from .models import Process, ProcessState, QueueAlgorithm, QueueConfig, ScheduleResult, SchedulingMetrics

__all__ = [
    "ALGORITHMS",
    "MultilevelFeedbackQueuePolicy",
    "MultilevelQueuePolicy",
    "PriorityPolicy",
    "Process",
    "ProcessState",
    "QueueAlgorithm",
    "QueueConfig",
    "RoundRobinPolicy",
    "ScheduleResult",
    "SchedulingMetrics",
    "Simulation",
    "SimulationConfig",
    "compare_algorithms",
    "run_algorithm",
]
