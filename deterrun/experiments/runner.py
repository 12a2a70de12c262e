from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from deterrun.config import RunContext
from deterrun.errors import AttemptError
from deterrun.experiments.aggregate import MatrixResults, summarize
from deterrun.experiments.controller import DeadlineController
from deterrun.experiments.policy import RetryPolicy
from deterrun.experiments.report import ReportWriter
from deterrun.launcher import ProcessLauncher
from deterrun.models import RunStats, TestConfig
from deterrun.monitor import Monitor

logger = logging.getLogger("deterrun.runner")


class ExperimentRunner:
    """Runs matrices one configuration at a time and persists each row as it lands.

    Attempt failures (``AttemptError``) are logged and retried under
    ``policy``. Anything else, ``ReportWriteError`` included, propagates out
    of ``run`` after the cleanup for the current attempt.
    """

    def __init__(
        self,
        controller: DeadlineController,
        output_dir: str | Path,
        policy: Optional[RetryPolicy] = None,
        cleanup: Optional[Callable[[], object]] = None,
    ):
        self.controller = controller
        self.output_dir = Path(output_dir)
        self.policy = policy or RetryPolicy()
        self._cleanup = cleanup

    @classmethod
    def from_context(
        cls, context: RunContext, monitor: Monitor, policy: Optional[RetryPolicy] = None
    ) -> "ExperimentRunner":
        launcher = ProcessLauncher(context)
        controller = DeadlineController(
            launcher,
            monitor,
            warmup_s=context.timing.warmup_s,
            deadline_s=context.timing.deadline_s,
        )
        return cls(controller, context.output_path, policy=policy, cleanup=launcher.cleanup)

    def run(self, name: str, configs: Sequence[TestConfig]) -> MatrixResults:
        results = MatrixResults(name=name, total=len(configs))
        with ReportWriter(self.output_dir, name) as writer:
            logger.info("Matrix %s: %d configurations -> %s", name, len(configs), writer.path)
            for idx, cfg in enumerate(configs):
                logger.info("(%d/%d) Running: %s", idx + 1, len(configs), cfg)
                summary = summarize(self._run_attempts(idx, cfg))
                if summary is None:
                    logger.warning("unable to get any data for test %d: %s", idx, cfg)
                    results.skip(idx)
                    continue
                writer.write_row(idx, cfg, summary)
                results.add(idx, cfg, summary)
        logger.info(
            "Matrix %s done: %d/%d rows written, skipped=%s",
            name,
            results.written,
            results.total,
            results.skipped,
        )
        return results

    def _run_attempts(self, idx: int, cfg: TestConfig) -> List[RunStats]:
        runs: List[RunStats] = []
        for attempt in range(self.policy.max_attempts):
            try:
                stats = self.controller.run_attempt(cfg)
            except AttemptError as e:
                logger.warning(
                    "Error for test %d attempt %d/%d (%s): %s",
                    idx,
                    attempt + 1,
                    self.policy.max_attempts,
                    cfg,
                    e,
                )
                stats = None
            finally:
                self.cleanup()
            if stats is not None:
                runs.append(stats)
                if self.policy.stop_on_first_success:
                    break
        return runs

    def cleanup(self) -> None:
        if self._cleanup is not None:
            self._cleanup()
