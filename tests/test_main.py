"""End-to-end runs of main() against the stand-in driver."""

from __future__ import annotations

import csv
import sys
from pathlib import Path

import pytest
import yaml

import main as cli

MONITOR_MODULE = """
import os
import time

from deterrun.models import RunStats


def good(bf):
    return RunStats(0.5, 1.5, 1.0, 0.2, 12.5, (0.9, 1.1))


def zero(bf):
    return RunStats(0.0, 0.0, 0.0, 0.0, 0.0)


def _driver_running():
    with open(os.environ["E2E_CALLS"], encoding="utf-8") as f:
        lines = f.read().splitlines()
    starts = sum(1 for line in lines if line.startswith("-nmachs="))
    cleanups = sum(1 for line in lines if line.startswith("-kill=true -nmachs="))
    return starts > cleanups


def started(bf):
    # wait for the driver to log its arguments before measuring
    deadline = time.monotonic() + 4
    while not _driver_running() and time.monotonic() < deadline:
        time.sleep(0.05)
    return good(bf)
"""


@pytest.fixture
def write_config(tmp_path: Path, driver_script: Path, monkeypatch):
    (tmp_path / "e2e_monitor.py").write_text(MONITOR_MODULE, encoding="utf-8")
    monkeypatch.syspath_prepend(str(tmp_path))
    monkeypatch.setenv("E2E_CALLS", str(tmp_path / "calls.txt"))

    def _write(monitor: str = "e2e_monitor:good", **extra) -> str:
        config = {
            "log_level": "DEBUG",
            "monitor": monitor,
            "deploy": {
                "dir": str(tmp_path),
                "command": [sys.executable, str(driver_script)],
                "build_command": [],
            },
            "cluster": {"user": "tester", "host": "gw.example.net", "machines": 2, "loggers": 1},
            "timing": {"warmup_s": 0, "deadline_s": 5},
            "runs": [{"name": "hosts_run", "matrix": "hosts"}],
        }
        config.update(extra)
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump(config), encoding="utf-8")
        return str(path)

    return _write


def _report(tmp_path: Path, name: str) -> list[dict[str, str]]:
    with (tmp_path / "test_data" / f"{name}.csv").open(newline="", encoding="utf-8") as f:
        return list(csv.DictReader(f))


def test_full_run_writes_report(tmp_path: Path, write_config):
    assert cli.main(["--config", write_config("e2e_monitor:started")]) == cli.EXIT_OK

    rows = _report(tmp_path, "hosts_run")
    assert [r["hpn"] for r in rows] == ["1", "2"]
    assert all(r["nmachs"] == "2" for r in rows)
    assert (tmp_path / "test_data" / "client_latency_hosts_run_1.csv").exists()
    assert len((tmp_path / "hosts.txt").read_text(encoding="utf-8").splitlines()) == 3

    calls = (tmp_path / "calls.txt").read_text(encoding="utf-8").splitlines()
    assert calls[0].startswith("-kill=true -build=true")
    assert sum(1 for c in calls if c.startswith("-nmachs=2")) == 2


def test_cli_overrides(tmp_path: Path, write_config):
    path = write_config()
    assert cli.main(["--config", path, "--machines", "4", "--nobuild"]) == cli.EXIT_OK
    assert all(r["nmachs"] == "4" for r in _report(tmp_path, "hosts_run"))
    calls = (tmp_path / "calls.txt").read_text(encoding="utf-8").splitlines()
    assert calls[0].startswith("-kill=true -build=false -nmachs=4")


def test_plot_after_run(tmp_path: Path, write_config):
    path = write_config(plot=True, plot_x="bf")
    assert cli.main(["--config", path]) == cli.EXIT_OK
    assert (tmp_path / "test_data" / "hosts_run_bf.png").exists()


def test_bad_plot_column_fails_before_setup(tmp_path: Path, write_config):
    path = write_config(plot=True, plot_x="throughput")
    assert cli.main(["--config", path]) == cli.EXIT_FATAL
    assert not (tmp_path / "hosts.txt").exists()
    assert not (tmp_path / "calls.txt").exists()


def test_plot_failure_does_not_stop_later_matrices(tmp_path: Path, write_config, monkeypatch):
    def broken_plot(path, x="hpn", out_path=None):
        raise ValueError("cannot draw")

    monkeypatch.setattr(cli, "plot_report", broken_plot)
    runs = [{"name": "first", "matrix": "hosts"}, {"name": "second", "matrix": "hosts"}]
    assert cli.main(["--config", write_config(plot=True, runs=runs)]) == cli.EXIT_OK
    assert len(_report(tmp_path, "first")) == 2
    assert len(_report(tmp_path, "second")) == 2


def test_bad_measurements_are_partial(tmp_path: Path, write_config):
    assert cli.main(["--config", write_config("e2e_monitor:zero")]) == cli.EXIT_PARTIAL
    assert _report(tmp_path, "hosts_run") == []


@pytest.mark.parametrize(
    "extra",
    [
        {"monitor": "e2e_monitor:absent"},
        {"runs": []},
        {"runs": [{"name": "x", "matrix": "nope"}]},
        {"timing": {"deadline_s": 0}},
    ],
)
def test_fatal_configurations(write_config, extra):
    assert cli.main(["--config", write_config(**extra)]) == cli.EXIT_FATAL


def test_failing_initial_kill_is_fatal(tmp_path: Path, write_config):
    broken = tmp_path / "broken.py"
    broken.write_text("raise SystemExit(1)\n", encoding="utf-8")
    deploy = {"dir": str(tmp_path), "command": [sys.executable, str(broken)], "build_command": []}
    assert cli.main(["--config", write_config(deploy=deploy)]) == cli.EXIT_FATAL
    assert not (tmp_path / "test_data" / "hosts_run.csv").exists()


def test_missing_config_file(tmp_path: Path):
    assert cli.main(["--config", str(tmp_path / "absent.yaml")]) == cli.EXIT_FATAL
