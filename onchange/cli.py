#!/usr/bin/env python3
"""
Onchange Command-Line Interface.

Runs a command. When anything in the given directory changes, kills the old
command if it is still running and runs it again.
Requires Python 3.11+.

Usage:
    onchange -d ./src -c "python app.py" -e build,dist -i 500ms
"""

import argparse
import asyncio
import signal
import sys

from onchange.supervisor.process import ProcessSupervisor
from onchange.utils.config import RestartConfig
from onchange.utils.errors import ConfigError, OnchangeError
from onchange.utils.logger import configure_logging, get_logger
from onchange.watcher.exclusion import ExclusionFilter
from onchange.watcher.file_watcher import ChangeSource
from onchange.watcher.scheduler import RestartScheduler


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="onchange",
        description="file change command runner",
    )
    parser.add_argument(
        "-d",
        "--watch-dir",
        default=None,
        help="directory to watch",
    )
    parser.add_argument(
        "-c",
        "--command",
        default=None,
        help="command to run (split on whitespace, no quoting)",
    )
    parser.add_argument(
        "-e",
        "--exclude",
        default=None,
        help="comma-separated exclude substrings (.git is always excluded)",
    )
    parser.add_argument(
        "-i",
        "--interval",
        default=None,
        help="check interval (ms/ns), default 1000ms",
    )
    parser.add_argument(
        "-v",
        "--verbose-log",
        action="store_true",
        default=False,
        help="enable verbose logging",
    )
    return parser


def load_config(args: argparse.Namespace) -> RestartConfig:
    """Validate parsed arguments into a run configuration."""
    return RestartConfig.from_options(
        watch_dir=args.watch_dir,
        command=args.command,
        interval=args.interval,
        exclude=args.exclude,
    )


async def run(config: RestartConfig) -> None:
    """Wire the collaborators together and run until stopped or failed."""
    logger = get_logger("onchange")
    supervisor = ProcessSupervisor(logger=logger)
    source = ChangeSource(
        config.watch_dir,
        ExclusionFilter(config.exclude_patterns),
        logger=logger,
    )
    scheduler = RestartScheduler(config, supervisor, source, logger=logger)

    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, scheduler.stop)

    await scheduler.run()


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    configure_logging(level="DEBUG" if args.verbose_log else None)
    logger = get_logger("onchange")
    if args.verbose_log:
        logger.debug("verbose_logging_enabled")

    try:
        config = load_config(args)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        asyncio.run(run(config))
    except OnchangeError as e:
        logger.error("onchange_failed", error=str(e))
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
