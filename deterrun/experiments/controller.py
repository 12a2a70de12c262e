"""Deadline-bounded measurement for a single attempt.

The monitor blocks until the driver's log stream says the run is over and
has no timeout of its own, so it runs on a daemon thread that drops its
outcome into a one-slot queue. The controller waits on that queue for at
most the deadline. Whichever comes first decides the attempt; a monitor
that finishes late writes into a queue nobody reads any more.

The driver is killed in a ``finally`` block, so it is dead before
``run_attempt`` returns or raises, whatever happened.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from typing import Callable, Optional

from deterrun.config import DEADLINE_S, WARMUP_S
from deterrun.errors import AttemptTimeout, MonitorError
from deterrun.experiments.policy import validate_stats
from deterrun.models import RunStats, TestConfig
from deterrun.monitor import Monitor

logger = logging.getLogger("deterrun.controller")


class DeadlineController:
    """Runs one attempt: start, warm up, race the monitor against the deadline, kill."""

    def __init__(
        self,
        launcher,
        monitor: Monitor,
        warmup_s: float = WARMUP_S,
        deadline_s: float = DEADLINE_S,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.launcher = launcher
        self.monitor = monitor
        self.warmup_s = warmup_s
        self.deadline_s = deadline_s
        self._sleep = sleep

    def run_attempt(self, config: TestConfig) -> RunStats:
        """Return a validated measurement for ``config``.

        Raises:
            LaunchError: The driver did not start (nothing to kill).
            AttemptTimeout: The deadline passed first.
            MonitorError: The monitor raised.
            InvalidMeasurement: The monitor returned unusable statistics.
        """
        handle = None
        try:
            handle = self.launcher.start(config)
            # give it a while to start up
            if self.warmup_s > 0:
                self._sleep(self.warmup_s)
            stats = self._wait_for_monitor(config.bf)
        finally:
            self.launcher.kill(handle)
        logger.info("TEST COMPLETE: %s", stats)
        return validate_stats(stats)

    def _wait_for_monitor(self, bf: int) -> RunStats:
        done: "queue.Queue[tuple[Optional[RunStats], Optional[BaseException]]]" = queue.Queue(
            maxsize=1
        )

        def watch() -> None:
            try:
                outcome = (self.monitor(bf), None)
            except BaseException as e:  # SystemExit included
                outcome = (None, e)
            done.put_nowait(outcome)

        threading.Thread(target=watch, name="deterrun-monitor", daemon=True).start()
        try:
            stats, error = done.get(timeout=self.deadline_s)
        except queue.Empty:
            raise AttemptTimeout(self.deadline_s) from None
        if error is not None:
            raise MonitorError(f"monitor failed: {error}") from error
        return stats
