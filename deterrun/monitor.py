"""Loading the live-metrics monitor.

A monitor is any callable ``monitor(bf) -> RunStats`` that blocks until the
driver's log stream signals the end of the run. It has no timeout of its
own; the controller bounds it. The callable is named in the config as
``"package.module:function"``.
"""

from __future__ import annotations

import importlib
from typing import Callable

from deterrun.errors import SetupError
from deterrun.models import RunStats

Monitor = Callable[[int], RunStats]


def load_monitor(path: str) -> Monitor:
    """Import the monitor named by ``path``.

    Raises:
        SetupError: The path is malformed, the module cannot be imported or
            the attribute is missing or not callable.
    """
    module_name, sep, attr = (path or "").partition(":")
    if not sep or not module_name or not attr:
        raise SetupError(f"monitor must look like 'module:callable', got {path!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise SetupError(f"cannot import monitor module {module_name!r}: {e}") from e
    monitor = getattr(module, attr, None)
    if monitor is None or not callable(monitor):
        raise SetupError(f"{module_name!r} has no callable {attr!r}")
    return monitor
