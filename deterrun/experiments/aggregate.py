"""Folding attempts into one summary per configuration, and across the matrix."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from deterrun.models import RunStats, TestConfig


def summarize(runs: Sequence[RunStats]) -> Optional[RunStats]:
    """Average the successful attempts of one configuration; None when there are none."""
    if not runs:
        return None
    return RunStats.average(runs)


@dataclass
class MatrixRow:
    index: int
    config: TestConfig
    summary: RunStats


@dataclass
class MatrixResults:
    """Everything one matrix produced, in matrix order.

    ``rows`` holds the configurations that were written to the report and
    ``skipped`` the indices of those with no valid attempt.
    """

    name: str
    total: int
    rows: List[MatrixRow] = field(default_factory=list)
    skipped: List[int] = field(default_factory=list)

    def add(self, index: int, config: TestConfig, summary: RunStats) -> None:
        self.rows.append(MatrixRow(index, config, summary))

    def skip(self, index: int) -> None:
        self.skipped.append(index)

    @property
    def written(self) -> int:
        return len(self.rows)

    @property
    def complete(self) -> bool:
        return not self.skipped and self.written == self.total
