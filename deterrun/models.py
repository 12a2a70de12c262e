"""Core data structures for deploy2deter experiments.

This module defines:
    TestConfig -- immutable parameters of one experiment instance.
    RunStats   -- one aggregate measurement produced by the monitor.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Sequence

APPS = ("stamp", "sign", "vote")


@dataclass(frozen=True)
class TestConfig:
    """Parameters for one run of the driver.

    Fields:
        nmachs: Number of physical machines.
        hpn: Hosts per node (physical machine).
        bf: Branching factor of the tree.
        rate: Milliseconds between client messages; 0 or negative never sends.
        rounds: Number of rounds to run.
        failures: Percentage of failing nodes.
        rfail: Root failures.
        ffail: Follower failures.
        test_connect: Run the connectivity test instead of the application.
        app: Application mode, one of ``APPS``.

    Failure counts are not checked against ``nmachs``; that is up to the
    caller building the matrix.
    """

    __test__ = False  # keep pytest from collecting this as a test class

    nmachs: int
    hpn: int
    bf: int
    rate: int
    rounds: int
    failures: int = 0
    rfail: int = 0
    ffail: int = 0
    test_connect: bool = False
    app: str = "stamp"

    def __post_init__(self) -> None:
        for name in ("nmachs", "hpn", "bf", "rounds"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        for name in ("failures", "rfail", "ffail"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative, got {getattr(self, name)}")
        if self.app not in APPS:
            raise ValueError(f"Unknown app {self.app!r}; expected one of {APPS}")

    @staticmethod
    def csv_header() -> list[str]:
        return [f.name for f in fields(TestConfig)]

    def csv_row(self) -> list[str]:
        row = []
        for f in fields(self):
            value = getattr(self, f.name)
            row.append(str(value).lower() if isinstance(value, bool) else str(value))
        return row


@dataclass(frozen=True)
class RunStats:
    """Aggregate measurement for one run as reported by the monitor.

    Times are round latencies in seconds, ``rate`` is rounds per second and
    ``times`` holds the per-client latencies in client order.
    """

    min_time: float
    max_time: float
    avg_time: float
    std_dev: float
    rate: float
    times: tuple[float, ...] = field(default_factory=tuple)

    @staticmethod
    def csv_header() -> list[str]:
        return ["min", "max", "avg", "stddev", "throughput"]

    def csv_row(self) -> list[str]:
        return [
            repr(self.min_time),
            repr(self.max_time),
            repr(self.avg_time),
            repr(self.std_dev),
            repr(self.rate),
        ]

    def times_csv(self) -> str:
        lines = ["client,latency"]
        lines.extend(f"{i},{t!r}" for i, t in enumerate(self.times))
        return "\n".join(lines) + "\n"

    @classmethod
    def average(cls, runs: Sequence["RunStats"]) -> "RunStats":
        """Field-wise mean of ``runs``.

        Latency sequences of different runs cannot be lined up element-wise,
        so ``times`` is copied from the first run.
        """
        if not runs:
            raise ValueError("cannot average an empty sequence of RunStats")
        n = len(runs)
        return cls(
            min_time=sum(r.min_time for r in runs) / n,
            max_time=sum(r.max_time for r in runs) / n,
            avg_time=sum(r.avg_time for r in runs) / n,
            std_dev=sum(r.std_dev for r in runs) / n,
            rate=sum(r.rate for r in runs) / n,
            times=tuple(runs[0].times),
        )
