import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import matplotlib

matplotlib.use("Agg")  # Must be set before importing pyplot
import matplotlib.pyplot as plt  # noqa: E402

logger = logging.getLogger("deterrun.visualization")

X_COLUMNS = ("nmachs", "hpn", "bf", "rate", "rounds", "failures", "rfail", "ffail")


@dataclass(frozen=True)
class ReportRow:
    nmachs: int
    hpn: int
    bf: int
    rate: int
    rounds: int
    failures: int
    rfail: int
    ffail: int
    test_connect: bool
    app: str
    min_time: float
    max_time: float
    avg_time: float
    std_dev: float
    throughput: float


def read_report(path: str | Path) -> List[ReportRow]:
    rows: List[ReportRow] = []
    with Path(path).open("r", newline="", encoding="utf-8") as f:
        for r in csv.DictReader(f):
            rows.append(
                ReportRow(
                    nmachs=int(r["nmachs"]),
                    hpn=int(r["hpn"]),
                    bf=int(r["bf"]),
                    rate=int(r["rate"]),
                    rounds=int(r["rounds"]),
                    failures=int(r["failures"]),
                    rfail=int(r["rfail"]),
                    ffail=int(r["ffail"]),
                    test_connect=r["test_connect"] == "true",
                    app=r["app"],
                    min_time=float(r["min"]),
                    max_time=float(r["max"]),
                    avg_time=float(r["avg"]),
                    std_dev=float(r["stddev"]),
                    throughput=float(r["throughput"]),
                )
            )
    return rows


def plot_report(path: str | Path, x: str = "hpn", out_path: Optional[str | Path] = None) -> Path:
    """Plot round latency (avg with min/max bars) and throughput against column ``x``.

    The figure is saved next to the report as ``<report>_<x>.png`` unless
    ``out_path`` is given.
    """
    if x not in X_COLUMNS:
        raise ValueError(f"Cannot plot against {x!r}; expected one of {X_COLUMNS}")
    rows = read_report(path)
    if not rows:
        raise ValueError(f"Report {path} has no data rows")
    rows.sort(key=lambda r: getattr(r, x))
    xs = [getattr(r, x) for r in rows]
    avg = [r.avg_time for r in rows]
    lower = [r.avg_time - r.min_time for r in rows]
    upper = [r.max_time - r.avg_time for r in rows]

    fig, (ax_lat, ax_rate) = plt.subplots(
        2, 1, figsize=(10, 8), sharex=True, constrained_layout=True
    )
    ax_lat.errorbar(
        xs,
        avg,
        yerr=[lower, upper],
        fmt="-o",
        linewidth=2,
        markersize=5,
        markerfacecolor="white",
        capsize=4,
        label="avg (min/max)",
    )
    ax_lat.set_ylabel("Round latency [s]", fontsize=12)
    ax_lat.set_title(f"{Path(path).stem}: latency and throughput", fontsize=14, fontweight="bold")
    ax_lat.grid(True, alpha=0.25, linestyle="--", linewidth=0.7)
    ax_lat.legend(frameon=False, fontsize=9)

    ax_rate.plot(xs, [r.throughput for r in rows], "g-s", linewidth=2, markersize=5)
    ax_rate.set_xlabel(x, fontsize=12)
    ax_rate.set_ylabel("Throughput [rounds/s]", fontsize=12)
    ax_rate.grid(True, alpha=0.25, linestyle="--", linewidth=0.7)
    if len(set(xs)) > 1 and min(xs) > 0 and max(xs) / min(xs) >= 16:
        ax_rate.set_xscale("log", base=2)

    if out_path is None:
        out_path = Path(path).with_name(f"{Path(path).stem}_{x}.png")
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(out_path, dpi=180)
    plt.close(fig)
    logger.info("Report plot saved as: %s", out_path)
    return out_path
