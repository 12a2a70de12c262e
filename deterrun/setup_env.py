"""One-off setup before any test runs: hosts file, output directory, driver build.

Every failure here is fatal and surfaces as ``SetupError``.
"""

from __future__ import annotations

import logging
import os
import subprocess

from deterrun.config import RunContext
from deterrun.errors import SetupError
from deterrun.launcher import go_bool

logger = logging.getLogger("deterrun.setup")

HOST_DOMAIN = "SAFER.isi.deterlab.net"
HOST_IP_PREFIX = "10.255.0."


def generate_hosts_file(path: str, project: str, num_servers: int) -> str:
    """Write ``server-<i>.<project>.<domain>\\t<ip>`` for every server, replacing ``path``."""
    if os.path.exists(path):
        logger.info("Hosts file %s already exists. Erasing ...", path)
    try:
        with open(path, "w", encoding="utf-8") as f:
            for i in range(num_servers):
                f.write(f"server-{i}.{project}.{HOST_DOMAIN}\t{HOST_IP_PREFIX}{i + 1}\n")
    except OSError as e:
        raise SetupError(f"could not create hosts file {path}: {e}") from e
    logger.info("Created hosts file description (%d hosts)", num_servers)
    return path


def make_output_dir(path: str) -> str:
    try:
        os.makedirs(path, exist_ok=True)
    except OSError as e:
        raise SetupError(f"failed to make test directory {path}: {e}") from e
    return path


def build_driver(context: RunContext) -> None:
    if not context.build_command:
        logger.info("No build command configured, using the driver as is")
        return
    cmd = list(context.build_command)
    logger.info("Building driver: %s", cmd)
    try:
        result = subprocess.run(cmd, cwd=context.deploy_dir)
    except OSError as e:
        raise SetupError(f"error building driver: {e}") from e
    if result.returncode != 0:
        raise SetupError(f"error building driver: {cmd} exited with {result.returncode}")


def initial_kill(context: RunContext) -> None:
    """Stop leftovers from earlier runs; also tells the driver whether to rebuild helpers."""
    build = f"-build={go_bool(context.build)}"
    logger.info("KILLING REMAINING PROCESSES")
    logger.info("Building is %s", build)
    cmd = [
        *context.command,
        "-kill=true",
        build,
        f"-nmachs={context.machines}",
        f"-user={context.user}",
        f"-host={context.host}",
    ]
    try:
        result = subprocess.run(cmd, cwd=context.deploy_dir)
    except OSError as e:
        raise SetupError(f"couldn't run driver {cmd}: {e}") from e
    if result.returncode != 0:
        raise SetupError(f"couldn't run driver {cmd}: exit status {result.returncode}")


def prepare(context: RunContext) -> None:
    """Run every setup step in order."""
    generate_hosts_file(context.hosts_path, context.project, context.machines + context.loggers)
    make_output_dir(context.output_path)
    build_driver(context)
    initial_kill(context)
