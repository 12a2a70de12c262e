"""Starting, killing and cleaning up the deploy2deter driver."""

from __future__ import annotations

import logging
import subprocess
from contextlib import suppress
from typing import List, Optional

from deterrun.config import RunContext
from deterrun.errors import LaunchError
from deterrun.models import TestConfig

logger = logging.getLogger("deterrun.launcher")

# Seconds to wait for a killed driver to be reaped.
REAP_TIMEOUT_S = 5.0


def go_bool(value: bool) -> str:
    """Render a boolean the way Go's flag package expects it."""
    return "true" if value else "false"


def build_args(config: TestConfig, context: RunContext) -> List[str]:
    """Full argument vector for one attempt of ``config``.

    The driver matches flags by name, so every flag is always present and
    always in the same order.
    """
    return [
        *context.command,
        f"-nmachs={config.nmachs}",
        f"-hpn={config.hpn}",
        "-nmsgs=-1",
        f"-bf={config.bf}",
        f"-rate={config.rate}",
        f"-rounds={config.rounds}",
        f"-debug={go_bool(context.debug)}",
        f"-failures={config.failures}",
        f"-rfail={config.rfail}",
        f"-ffail={config.ffail}",
        f"-test_connect={go_bool(config.test_connect)}",
        f"-app={config.app}",
        f"-user={context.user}",
        f"-host={context.host}",
        f"-nloggers={context.loggers}",
    ]


def kill_args(context: RunContext) -> List[str]:
    return [*context.command, "-kill=true", f"-nmachs={context.machines}", f"-user={context.user}"]


class ProcessLauncher:
    """Owns the driver process for the duration of one attempt.

    The driver writes straight to our stdout/stderr so the operator can
    follow it; nothing is captured.
    """

    def __init__(self, context: RunContext):
        self.context = context

    def start(self, config: TestConfig) -> subprocess.Popen:
        args = build_args(config, self.context)
        logger.info("RUNNING TEST: %s", args)
        logger.info("FAILURES PERCENT: %d", config.failures)
        try:
            return subprocess.Popen(args, cwd=self.context.deploy_dir)
        except OSError as e:
            raise LaunchError(f"cannot start {args[0]!r}: {e}") from e

    def kill(self, handle: Optional[subprocess.Popen]) -> None:
        """Kill ``handle`` and reap it; safe for None, repeated calls and exited processes."""
        if handle is None:
            return
        if handle.poll() is None:
            with suppress(ProcessLookupError):
                handle.kill()
        try:
            handle.wait(timeout=REAP_TIMEOUT_S)
        except subprocess.TimeoutExpired:
            logger.warning("driver pid %s did not exit %.0fs after kill", handle.pid, REAP_TIMEOUT_S)

    def cleanup(self) -> bool:
        """Kill every driver instance on the testbed, including children we never saw.

        Returns True when the kill command ran and exited cleanly.
        """
        args = kill_args(self.context)
        logger.info("KILLING REMAINING PROCESSES")
        try:
            result = subprocess.run(args, cwd=self.context.deploy_dir)
        except OSError as e:
            logger.warning("cleanup command %s failed to start: %s", args, e)
            return False
        if result.returncode != 0:
            logger.warning("cleanup command exited with %d", result.returncode)
            return False
        return True
