from __future__ import annotations


class SchedulerError(Exception):
    """Base class for every error raised by the simulator."""


class ConfigurationError(SchedulerError, ValueError):
    """A policy or simulation was configured with unusable values."""


class InvalidProcessError(SchedulerError, ValueError):
    """A process descriptor violates its construction contract."""


class InvalidStateError(SchedulerError, RuntimeError):
    """A lifecycle operation was attempted from the wrong state."""
