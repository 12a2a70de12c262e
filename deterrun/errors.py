"""Exception hierarchy for the experiment engine.

Two families live here. ``AttemptError`` subclasses describe why a single
attempt produced no usable measurement; the runner logs them and moves on.
``SetupError`` and ``ReportWriteError`` are fatal and end the whole run.
"""

from __future__ import annotations

__all__ = [
    "DeterrunError",
    "SetupError",
    "ReportWriteError",
    "AttemptError",
    "LaunchError",
    "AttemptTimeout",
    "InvalidMeasurement",
    "MonitorError",
]


class DeterrunError(Exception):
    """Base class for every error raised by the engine."""


class SetupError(DeterrunError):
    """Hosts file, output directory, driver build or initial kill failed."""


class ReportWriteError(DeterrunError):
    """A report or latency file could not be opened, written or synced."""


class AttemptError(DeterrunError):
    """One attempt for one configuration failed; retry policy applies."""


class LaunchError(AttemptError):
    """The driver executable could not be spawned."""


class AttemptTimeout(AttemptError):
    """No measurement arrived before the deadline."""

    def __init__(self, deadline_s: float) -> None:
        super().__init__(f"timed out after {deadline_s:g}s waiting for a measurement")
        self.deadline_s = deadline_s


class InvalidMeasurement(AttemptError):
    """The monitor returned degenerate or non-finite statistics."""


class MonitorError(AttemptError):
    """The monitor callable raised instead of returning statistics."""
