#!/usr/bin/env python3


import argparse
import logging
import sys

import yaml

from deterrun.config import (
    context_from_config,
    load_config,
    parse_bool,
    plan_from_config,
    policy_from_config,
)
from deterrun.errors import DeterrunError, ReportWriteError, SetupError
from deterrun.experiments.report import report_path
from deterrun.experiments.runner import ExperimentRunner
from deterrun.monitor import load_monitor
from deterrun.setup_env import prepare
from deterrun.visualization import X_COLUMNS, plot_report

logger = logging.getLogger("deterrun")

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_PARTIAL = 2


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run deploy2deter test matrices")
    parser.add_argument("--config", default="config.yaml", help="Path to the YAML config")
    parser.add_argument("--user", default=None, help="User on the deterlab machines")
    parser.add_argument("--machines", type=int, default=None, help="Number of machines")
    parser.add_argument("--loggers", type=int, default=None, help="Number of loggers")
    parser.add_argument("--project", default=None, help="Name of the project on DeterLab")
    parser.add_argument(
        "--nobuild", action="store_true", help="Don't rebuild all helpers"
    )
    parser.add_argument("--no-debug", action="store_true", help="Run the driver without -debug")
    return parser.parse_args(argv)


def _plot(path, x: str) -> None:
    """Render the figure for one report, logging instead of raising on failure."""
    try:
        plot_report(path, x=x)
    except (ValueError, OSError) as e:
        logger.warning("Could not plot %s: %s", path, e)


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        config = load_config(args.config)
    except (OSError, yaml.YAMLError) as e:
        logger.error("Cannot read config %s: %s", args.config, e)
        return EXIT_FATAL
    level = str(config.get("log_level", "INFO")).upper()
    logging.getLogger().setLevel(getattr(logging, level, logging.INFO))

    overrides = {
        "user": args.user,
        "machines": args.machines,
        "loggers": args.loggers,
        "project": args.project,
        "build": False if args.nobuild else None,
        "debug": False if args.no_debug else None,
    }
    try:
        context = context_from_config(config, overrides)
        policy = policy_from_config(config)
        plan = plan_from_config(config, machines=context.machines)
        plot = parse_bool(config.get("plot", False), "plot")
        plot_x = str(config.get("plot_x", "hpn"))
        if plot and plot_x not in X_COLUMNS:
            raise ValueError(f"plot_x must be one of {X_COLUMNS}, got {plot_x!r}")
    except ValueError as e:
        logger.error("Invalid configuration: %s", e)
        return EXIT_FATAL
    logger.info(
        "Options: machines %d, loggers %d, user %s, project %s",
        context.machines,
        context.loggers,
        context.user,
        context.project,
    )
    if not plan:
        logger.error("Nothing to run: the 'runs' list is empty")
        return EXIT_FATAL

    try:
        monitor = load_monitor(config.get("monitor", ""))
        logger.info("*** Setting up everything")
        prepare(context)
        runner = ExperimentRunner.from_context(context, monitor, policy)

        logger.info("*** Starting tests")
        partial = False
        for name, configs in plan:
            results = runner.run(name, configs)
            partial = partial or not results.complete
            if plot and results.written:
                _plot(report_path(context.output_path, name), plot_x)
    except (SetupError, ReportWriteError) as e:
        logger.error("Aborting: %s", e)
        return EXIT_FATAL
    except DeterrunError as e:
        logger.error("Unexpected engine error: %s", e)
        return EXIT_FATAL

    return EXIT_PARTIAL if partial else EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
