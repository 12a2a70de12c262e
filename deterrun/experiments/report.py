"""Append-only CSV report with a companion latency file per written row.

The header goes out as soon as the report is opened and every row is
flushed and fsynced before the next configuration starts, so an interrupted
run loses at most the configuration that was in flight.
"""

from __future__ import annotations

import csv
import logging
import os
from pathlib import Path
from typing import IO, Optional

from deterrun.errors import ReportWriteError
from deterrun.models import RunStats, TestConfig

logger = logging.getLogger("deterrun.report")


def _stem(name: str) -> str:
    return name[: -len(".csv")] if name.endswith(".csv") else name


def report_path(output_dir: str | Path, name: str) -> Path:
    return Path(output_dir) / f"{_stem(name)}.csv"


def latency_path(output_dir: str | Path, name: str, index: int) -> Path:
    return Path(output_dir) / f"client_latency_{_stem(name)}_{index}.csv"


def report_header() -> list[str]:
    return TestConfig.csv_header() + RunStats.csv_header()


def _sync(f: IO) -> None:
    f.flush()
    os.fsync(f.fileno())


class ReportWriter:
    """Owns the report file of one matrix."""

    def __init__(self, output_dir: str | Path, name: str):
        self.output_dir = Path(output_dir)
        self.name = name
        self.path = report_path(output_dir, name)
        self._file: Optional[IO[str]] = None
        self._writer = None

    def open(self) -> "ReportWriter":
        try:
            self._file = open(self.path, "w", newline="", encoding="utf-8")
            self._writer = csv.writer(self._file)
            self._writer.writerow(report_header())
            _sync(self._file)
        except OSError as e:
            raise ReportWriteError(f"error opening test file {self.path}: {e}") from e
        return self

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None
            self._writer = None

    def __enter__(self) -> "ReportWriter":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def write_row(self, index: int, config: TestConfig, stats: RunStats) -> Path:
        """Append one row, sync it, then write that configuration's latency file.

        Returns the latency file path.
        """
        if self._file is None:
            raise ReportWriteError(f"report {self.path} is not open")
        try:
            self._writer.writerow(config.csv_row() + stats.csv_row())
            _sync(self._file)
        except OSError as e:
            raise ReportWriteError(f"error writing data to test file {self.path}: {e}") from e

        path = latency_path(self.output_dir, self.name, index)
        try:
            with open(path, "w", newline="", encoding="utf-8") as cl:
                cl.write(stats.times_csv())
                _sync(cl)
        except OSError as e:
            raise ReportWriteError(f"error writing client latencies to {path}: {e}") from e
        logger.debug("Wrote row %d of %s and %s", index, self.path, path)
        return path
