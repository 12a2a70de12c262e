"""Experiment runner for the deploy2deter distributed test driver.

Exports the basic data structures and matrix generators.
"""

from deterrun.matrix import build_matrix, cross_product, geometric_sweep, linear_sweep  # noqa: F401
from deterrun.models import RunStats, TestConfig  # noqa: F401

__all__ = [
    "RunStats",
    "TestConfig",
    "build_matrix",
    "cross_product",
    "geometric_sweep",
    "linear_sweep",
]
