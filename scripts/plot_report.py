"""Plot a deterrun report CSV.

Draws round latency (average with min/max bars) and throughput against one
of the swept configuration columns.

Usage:
    python scripts/plot_report.py deploy2deter/test_data/scale_test.csv --x hpn
    python scripts/plot_report.py deploy2deter/test_data/depth_test.csv --x bf --out figures/depth.png
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from deterrun.visualization import X_COLUMNS, plot_report  # noqa: E402


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Plot latency/throughput from a report CSV")
    parser.add_argument("report", type=Path, help="Report CSV written by main.py")
    parser.add_argument("--x", default="hpn", choices=X_COLUMNS, help="Column on the x-axis")
    parser.add_argument("--out", type=Path, default=None, help="Output PNG path")
    args = parser.parse_args(argv)

    if not args.report.exists():
        print(f"Report not found: {args.report}", file=sys.stderr)
        return 1
    out = plot_report(args.report, x=args.x, out_path=args.out)
    print(f"Saved {out}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
