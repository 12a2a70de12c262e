from pathlib import Path

import pytest

from deterrun.errors import SetupError
from deterrun.monitor import load_monitor

MODULE = """
from deterrun.models import RunStats

NOT_CALLABLE = 42


def monitor(bf):
    return RunStats(0.1 * bf, 0.3 * bf, 0.2 * bf, 0.01, 4.0)
"""


@pytest.fixture
def monitor_module(tmp_path: Path, monkeypatch) -> str:
    (tmp_path / "my_monitor_mod.py").write_text(MODULE, encoding="utf-8")
    monkeypatch.syspath_prepend(str(tmp_path))
    return "my_monitor_mod"


def test_load_monitor(monitor_module):
    monitor = load_monitor(f"{monitor_module}:monitor")
    assert monitor(2).avg_time == pytest.approx(0.4)


@pytest.mark.parametrize(
    "path",
    ["", "no_colon_here", ":monitor", "mod:", "surely_missing_module_xyz:monitor"],
)
def test_load_monitor_bad_paths(path):
    with pytest.raises(SetupError):
        load_monitor(path)


def test_load_monitor_missing_or_non_callable(monitor_module):
    with pytest.raises(SetupError):
        load_monitor(f"{monitor_module}:absent")
    with pytest.raises(SetupError):
        load_monitor(f"{monitor_module}:NOT_CALLABLE")
