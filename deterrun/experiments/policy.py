"""Measurement validation and the retry policy applied per configuration."""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass

from deterrun.errors import InvalidMeasurement
from deterrun.models import RunStats

EPSILON = 1e-7

LATENCY_FIELDS = ("min_time", "max_time", "avg_time")
NUMERIC_FIELDS = LATENCY_FIELDS + ("std_dev", "rate")


def is_zero(value: float) -> bool:
    return abs(value) < EPSILON


def _is_number(value: object) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def validate_stats(stats: RunStats) -> RunStats:
    """Return ``stats`` unchanged, or raise if it cannot be used.

    Raises:
        InvalidMeasurement: A field is not a number, a latency field is
            (near) zero or not finite, or the rate is NaN or infinite.
    """
    if not isinstance(stats, RunStats):
        raise InvalidMeasurement(f"monitor returned {type(stats).__name__}, not RunStats")
    non_numeric = [name for name in NUMERIC_FIELDS if not _is_number(getattr(stats, name))]
    if non_numeric:
        raise InvalidMeasurement(f"non-numeric {', '.join(non_numeric)} in {stats}")
    latencies = [getattr(stats, name) for name in LATENCY_FIELDS]
    if (
        any(is_zero(t) or not math.isfinite(t) for t in latencies)
        or not math.isfinite(stats.rate)
    ):
        raise InvalidMeasurement(f"unable to get good data: {stats}")
    return stats


@dataclass(frozen=True)
class RetryPolicy:
    """How many attempts a configuration gets.

    Fields:
        max_attempts: Upper bound on attempts per configuration.
        stop_on_first_success: Stop as soon as one attempt is valid; when
            False every attempt runs and all valid ones are averaged.
    """

    max_attempts: int = 1
    stop_on_first_success: bool = True

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")
