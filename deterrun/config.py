"""YAML configuration and the immutable run context built from it.

The context replaces process-wide flags: everything the launcher and the
controller need about the cluster and the driver is read once here and then
passed around explicitly.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Tuple

import yaml

from deterrun.experiments.policy import RetryPolicy
from deterrun.matrix import build_matrix, pin_fields
from deterrun.models import TestConfig

# Seconds the driver gets to set up its topology before we wait on the monitor.
WARMUP_S = 30.0
# Hard limit on waiting for one measurement.
DEADLINE_S = 300.0


@dataclass(frozen=True)
class Timing:
    warmup_s: float = WARMUP_S
    deadline_s: float = DEADLINE_S

    def __post_init__(self) -> None:
        if self.warmup_s < 0:
            raise ValueError(f"warmup_s must be non-negative, got {self.warmup_s}")
        if self.deadline_s <= 0:
            raise ValueError(f"deadline_s must be positive, got {self.deadline_s}")


@dataclass(frozen=True)
class RunContext:
    """Settings shared by every attempt of a run.

    Fields:
        command: Argument prefix that starts the driver.
        deploy_dir: Working directory for the driver and its build.
        user: Login on the testbed machines.
        host: Testbed gateway host.
        project: Testbed project name, used for the hosts file.
        machines: Number of machines running the servers.
        loggers: Number of logger machines.
        debug: Forwarded as ``-debug``.
        build: Whether the driver rebuilds its helpers (``-build``).
        build_command: Command that builds the driver; empty skips the build.
        hosts_file: Hosts file path, relative to ``deploy_dir``.
        output_dir: Report directory, relative to ``deploy_dir``.
        timing: Warm-up and deadline.
    """

    command: Tuple[str, ...] = ("./deploy2deter",)
    deploy_dir: str = "deploy2deter"
    user: str = "ineiti"
    host: str = "users.deterlab.net"
    project: str = "Dissent-CS"
    machines: int = 3
    loggers: int = 3
    debug: bool = True
    build: bool = True
    build_command: Tuple[str, ...] = ("go", "build", "-v")
    hosts_file: str = "hosts.txt"
    output_dir: str = "test_data"
    timing: Timing = field(default_factory=Timing)

    def resolve(self, path: str) -> str:
        """Interpret ``path`` relative to ``deploy_dir`` unless it is absolute."""
        if os.path.isabs(path):
            return path
        return os.path.join(self.deploy_dir, path)

    @property
    def hosts_path(self) -> str:
        return self.resolve(self.hosts_file)

    @property
    def output_path(self) -> str:
        return self.resolve(self.output_dir)


def load_config(config_file: str = "config.yaml") -> dict:
    """Load configuration from YAML file."""
    with open(config_file, "r", encoding="utf-8") as file:
        config = yaml.safe_load(file)
    return config or {}


_TRUE = ("true", "yes", "on", "1")
_FALSE = ("false", "no", "off", "0")


def parse_bool(value: Any, name: str) -> bool:
    """Accept YAML booleans and their quoted spellings; reject anything else."""
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError(f"{name} must be true or false, got {value!r}")


def _as_tuple(value: Any) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return tuple(value.split())
    return tuple(str(v) for v in value)


def context_from_config(
    config: Mapping[str, Any], overrides: Mapping[str, Any] | None = None
) -> RunContext:
    """Build the run context from the ``deploy``, ``cluster`` and ``timing`` sections.

    ``overrides`` come from the command line; keys set to ``None`` are ignored.
    """
    deploy = config.get("deploy") or {}
    cluster = config.get("cluster") or {}
    timing_cfg = config.get("timing") or {}
    defaults = RunContext()

    values: Dict[str, Any] = {
        "command": _as_tuple(deploy.get("command", defaults.command)),
        "deploy_dir": str(deploy.get("dir", defaults.deploy_dir)),
        "build_command": _as_tuple(deploy.get("build_command", defaults.build_command)),
        "hosts_file": str(deploy.get("hosts_file", defaults.hosts_file)),
        "output_dir": str(deploy.get("output_dir", defaults.output_dir)),
        "user": str(cluster.get("user", defaults.user)),
        "host": str(cluster.get("host", defaults.host)),
        "project": str(cluster.get("project", defaults.project)),
        "machines": int(cluster.get("machines", defaults.machines)),
        "loggers": int(cluster.get("loggers", defaults.loggers)),
        "debug": parse_bool(cluster.get("debug", defaults.debug), "cluster.debug"),
        "build": parse_bool(cluster.get("build", defaults.build), "cluster.build"),
    }
    for key, value in (overrides or {}).items():
        if value is not None:
            values[key] = value
    if not values["command"]:
        raise ValueError("deploy.command must not be empty")

    timing = Timing(
        warmup_s=float(timing_cfg.get("warmup_s", WARMUP_S)),
        deadline_s=float(timing_cfg.get("deadline_s", DEADLINE_S)),
    )
    return RunContext(timing=timing, **values)


def policy_from_config(config: Mapping[str, Any]) -> RetryPolicy:
    retry = config.get("retry") or {}
    return RetryPolicy(
        max_attempts=int(retry.get("max_attempts", 1)),
        stop_on_first_success=parse_bool(
            retry.get("stop_on_first_success", True), "retry.stop_on_first_success"
        ),
    )


def plan_from_config(
    config: Mapping[str, Any], machines: int
) -> List[Tuple[str, List[TestConfig]]]:
    """Turn the ``runs`` list into ``(report name, matrix)`` pairs, in order.

    Each entry names a report and a matrix kind; ``params`` go to the
    generator and ``pin`` forces fields on every configuration afterwards.
    """
    runs = config.get("runs") or []
    plan: List[Tuple[str, List[TestConfig]]] = []
    for i, entry in enumerate(runs):
        name = entry.get("name")
        kind = entry.get("matrix")
        if not name or not kind:
            raise ValueError(f"runs[{i}] needs both 'name' and 'matrix'")
        try:
            configs = build_matrix(kind, machines=machines, **(entry.get("params") or {}))
        except TypeError as e:
            raise ValueError(f"runs[{i}] ({name}): bad params for matrix {kind!r}: {e}") from e
        pin = entry.get("pin") or {}
        if pin:
            configs = pin_fields(configs, **pin)
        plan.append((str(name), configs))
    return plan
