"""Pytest configuration, shared fixtures & custom summary hook.

Also ensures the repository root is on sys.path so 'import deterrun.*' works
without installing the package.
"""

from __future__ import annotations

import sys
import textwrap
from pathlib import Path

import pytest

# Ensure project root is on sys.path so 'import deterrun.*' works
_root = Path(__file__).resolve().parents[1]
if str(_root) not in sys.path:
    sys.path.insert(0, str(_root))

from deterrun.config import RunContext, Timing  # noqa: E402
from deterrun.models import RunStats, TestConfig  # noqa: E402

FAKE_DRIVER = textwrap.dedent(
    """
    import sys
    import time

    with open("calls.txt", "a", encoding="utf-8") as f:
        f.write(" ".join(sys.argv[1:]) + "\\n")
    if "-kill=true" in sys.argv:
        sys.exit(0)
    time.sleep(60)
    """
)


@pytest.fixture
def driver_script(tmp_path: Path) -> Path:
    """A stand-in for deploy2deter: logs its arguments, exits on -kill, else sleeps."""
    path = tmp_path / "fake_driver.py"
    path.write_text(FAKE_DRIVER, encoding="utf-8")
    return path


@pytest.fixture
def context(tmp_path: Path, driver_script: Path) -> RunContext:
    return RunContext(
        command=(sys.executable, str(driver_script)),
        deploy_dir=str(tmp_path),
        user="tester",
        host="gw.example.net",
        project="Proj",
        machines=2,
        loggers=1,
        build_command=(),
        timing=Timing(warmup_s=0.0, deadline_s=5.0),
    )


@pytest.fixture
def good_stats() -> RunStats:
    return RunStats(
        min_time=0.5, max_time=1.5, avg_time=1.0, std_dev=0.2, rate=12.5, times=(0.9, 1.1)
    )


@pytest.fixture
def small_config() -> TestConfig:
    return TestConfig(nmachs=2, hpn=1, bf=2, rate=30, rounds=5)


def pytest_terminal_summary(
    terminalreporter: pytest.TerminalReporter,
    exitstatus: int,
    config: pytest.Config,
) -> None:  # noqa: D401
    """Append a compact custom summary at the end of test session."""
    stats = terminalreporter.stats
    collected = terminalreporter._numcollected  # type: ignore[attr-defined]
    passed = len(stats.get("passed", []))
    failed = len(stats.get("failed", []))
    errors = len(stats.get("error", []))
    skipped = len(stats.get("skipped", []))

    terminalreporter.section("Custom summary", sep="=")
    terminalreporter.write_line(
        "Collected: "
        f"{collected} | Passed: {passed} | Failed: {failed} | "
        f"Errors: {errors} | Skipped: {skipped}"
    )
    if failed:
        terminalreporter.write_line("Failed tests:")
        for rep in stats["failed"]:
            terminalreporter.write_line(f"  - {rep.nodeid}")
