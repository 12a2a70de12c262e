"""Test matrix generators.

Every generator is a pure function returning a fresh ``list[TestConfig]``.
Nothing here reads globals: the machine count and everything else arrive as
arguments, so the same call always yields the same matrix.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Callable, Dict, Iterable, List

from deterrun.models import TestConfig

# Rounds per run used by the sweeps unless the caller asks otherwise.
DEFAULT_ROUNDS = 5

SWEEPABLE_FIELDS = ("nmachs", "hpn", "bf", "rate", "rounds", "failures", "rfail", "ffail")


def _check_field(name: str) -> None:
    if name not in SWEEPABLE_FIELDS:
        raise ValueError(f"Cannot sweep field {name!r}; expected one of {SWEEPABLE_FIELDS}")


def linear_sweep(
    field_name: str, low: int, high: int, step: int, base: TestConfig
) -> List[TestConfig]:
    """Step ``field_name`` from ``low`` to ``high`` inclusive by ``step``."""
    _check_field(field_name)
    if step <= 0:
        raise ValueError(f"step must be positive, got {step}")
    configs: List[TestConfig] = []
    value = low
    while value <= high:
        configs.append(replace(base, **{field_name: value}))
        value += step
    return configs


def geometric_sweep(
    field_name: str, low: int, high: int, mult: int, base: TestConfig
) -> List[TestConfig]:
    """Step ``field_name`` from ``low`` to ``high`` inclusive, multiplying by ``mult``.

    Raises:
        ValueError: If ``mult <= 1`` or ``low <= 0``; either would never reach ``high``.
    """
    _check_field(field_name)
    if mult <= 1:
        raise ValueError(f"mult must be greater than 1, got {mult}")
    if low <= 0:
        raise ValueError(f"low must be positive for a geometric sweep, got {low}")
    configs: List[TestConfig] = []
    value = low
    while value <= high:
        configs.append(replace(base, **{field_name: value}))
        value *= mult
    return configs


def cross_product(
    nmachs: Iterable[int],
    hpns: Iterable[int],
    bfs: Iterable[int],
    rates: Iterable[int],
    rounds: int = DEFAULT_ROUNDS,
    failures: int = 0,
    app: str = "stamp",
) -> List[TestConfig]:
    """Full Cartesian product, nested machines -> hpn -> bf -> rate."""
    hpns, bfs, rates = list(hpns), list(bfs), list(rates)
    configs: List[TestConfig] = []
    for nmach in nmachs:
        for hpn in hpns:
            for bf in bfs:
                for rate in rates:
                    configs.append(
                        TestConfig(nmach, hpn, bf, rate, rounds, failures, 0, 0, False, app)
                    )
    return configs


def pin_fields(configs: Iterable[TestConfig], **overrides: int) -> List[TestConfig]:
    """Return copies of ``configs`` with the given fields forced to one value."""
    for name in overrides:
        _check_field(name)
    return [replace(cfg, **overrides) for cfg in configs]


# --- named matrices -------------------------------------------------------


def rate_load_test(machines: int, hpn: int, bf: int, rounds: int = DEFAULT_ROUNDS) -> List[TestConfig]:
    """Load on the x-axis: shrink the delay between messages, all else fixed."""
    return [
        TestConfig(machines, hpn, bf, rate, rounds)
        for rate in (5000, 5000, 500, 50, 30)
    ]


def depth_test(
    machines: int, hpn: int, low: int, high: int, step: int, rounds: int = DEFAULT_ROUNDS
) -> List[TestConfig]:
    return linear_sweep("bf", low, high, step, TestConfig(machines, hpn, low, 10, rounds))


def depth_test_fixed(machines: int, hpn: int, rounds: int = DEFAULT_ROUNDS) -> List[TestConfig]:
    return geometric_sweep("bf", 1, 512, 2, TestConfig(machines, hpn, 1, 30, rounds))


def scale_test(
    machines: int, bf: int, low: int, high: int, mult: int, rounds: int = DEFAULT_ROUNDS
) -> List[TestConfig]:
    return geometric_sweep("hpn", low, high, mult, TestConfig(machines, low, bf, 10, rounds))


def failure_tests(machines: int, rounds: int = 50) -> List[TestConfig]:
    # (failures, rfail, ffail, test_connect)
    rows = [
        (0, 0, 0, False),
        (0, 5, 0, False),
        (0, 10, 0, False),
        (5, 0, 5, False),
        (5, 0, 10, False),
        (5, 0, 10, True),
    ]
    return [
        TestConfig(machines, 64, 16, 30, rounds, failures, rfail, ffail, connect)
        for failures, rfail, ffail, connect in rows
    ]


def voting_test(machines: int, rounds: int = 50) -> List[TestConfig]:
    return [
        TestConfig(machines, 64, 16, 30, rounds, test_connect=True),
        TestConfig(machines, 64, 16, 30, rounds, test_connect=False),
    ]


def full_tests(
    machines: int | None = None,
    rounds: int = DEFAULT_ROUNDS,
    nmachs: Iterable[int] | None = None,
) -> List[TestConfig]:
    """The complete sweep over hpn, bf and rate.

    ``nmachs`` lists the machine counts to cover and wins over ``machines``.
    Through ``build_matrix`` the sweep runs on the cluster size unless a run
    passes ``nmachs``; called directly with neither, it covers 1, 16 and 32
    machines.
    """
    if nmachs is None:
        nmachs = [machines] if machines is not None else [1, 16, 32]
    return cross_product(
        nmachs,
        hpns=[1, 16, 32, 128],
        bfs=[2, 4, 8, 16, 128],
        rates=[5000, 500, 100, 30],
        rounds=rounds,
    )


def hosts_test(machines: int, rounds: int = 20) -> List[TestConfig]:
    return [
        TestConfig(machines, 1, 2, 30, rounds),
        TestConfig(machines, 2, 3, 30, rounds),
    ]


def sign_test(machines: int) -> List[TestConfig]:
    # (hpn, bf, rounds)
    rows = [
        (1, 2, 20),
        (2, 3, 20),
        (4, 3, 20),
        (8, 8, 20),
        (16, 16, 20),
        (32, 16, 20),
        (64, 16, 20),
        (128, 16, 50),
    ]
    return [TestConfig(machines, hpn, bf, 30, rounds, app="sign") for hpn, bf, rounds in rows]


def vote_test(machines: int, rounds: int = 20) -> List[TestConfig]:
    ladder = [(1, 3), (2, 4), (4, 6), (8, 8), (16, 16), (32, 16), (64, 16), (128, 16)]
    return [
        TestConfig(machines, hpn, bf, 10000000, rounds, app="vote") for hpn, bf in ladder
    ]


MATRICES: Dict[str, Callable[..., List[TestConfig]]] = {
    "rate_load": rate_load_test,
    "depth": depth_test,
    "depth_fixed": depth_test_fixed,
    "scale": scale_test,
    "failure": failure_tests,
    "voting": voting_test,
    "full": full_tests,
    "hosts": hosts_test,
    "sign": sign_test,
    "vote": vote_test,
}


def build_matrix(kind: str, machines: int, **params) -> List[TestConfig]:
    """Build a named matrix, passing ``machines`` plus any generator parameters."""
    fn = MATRICES.get(kind)
    if fn is None:
        raise ValueError(f"Unknown matrix {kind!r}; expected one of {sorted(MATRICES)}")
    return fn(machines=machines, **params)
