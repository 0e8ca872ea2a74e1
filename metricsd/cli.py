"""
CLI - Command-line interface for metricsd.

Runs the daemon in the foreground, or inspects its persistent state.
"""

import argparse
import sys
from typing import List, Optional

from rich import box
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import Config, create_example_config
from .daemon import MetricsDaemon
from .logging_config import setup_logging
from .stats.aggregator import UsageCounters


def parse_args(argv: Optional[List[str]] = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="metricsd",
        description="Host telemetry daemon - usage, crash and memory statistics",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    metricsd
    metricsd --config /etc/metricsd/config.toml

    # Inspect persistent counters
    metricsd --dump

    # One pass of every collector, then exit
    metricsd --once --log-level DEBUG

Environment Variables:
    METRICSD_STORAGE_DIR    Counter storage directory
    METRICSD_LOG_LEVEL      Log level
    METRICSD_TESTING        Enable testing mode
        """,
    )

    parser.add_argument(
        "-c", "--config",
        help="Config file (default: search standard locations)"
    )
    parser.add_argument(
        "--storage-dir",
        help="Directory holding persistent counters"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "debug", "info", "warning", "error"],
        help="Log level (default: INFO)"
    )
    parser.add_argument(
        "--meminfo",
        help="Path to the meminfo source (default: /proc/meminfo)"
    )
    parser.add_argument(
        "--zram-dir",
        help="Zram sysfs directory (default: /sys/block/zram0)"
    )
    parser.add_argument(
        "--testing",
        action="store_true",
        default=None,
        help="Testing mode: fixed version hash, no meminfo/memuse scheduling"
    )

    mode_group = parser.add_argument_group('Operation Modes')
    mode_group.add_argument(
        "--once",
        action="store_true",
        help="Run the crash check, one stats update and one pass of each sampler, then exit"
    )
    mode_group.add_argument(
        "--dump",
        action="store_true",
        help="Print persistent counter values and exit"
    )
    mode_group.add_argument(
        "--init-config",
        metavar="PATH",
        help="Write an example config file and exit"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser.parse_args(argv)


def display_counters(counters: UsageCounters, console: Console):
    """Render every persistent counter as a table."""
    table = Table(title="Persistent counters", box=box.SIMPLE)
    table.add_column("Counter", style="cyan")
    table.add_column("Value", justify="right")
    table.add_column("Stored", style="dim")

    for counter in counters.all():
        stored = "yes" if counter.path.exists() else "no"
        table.add_row(counter.name(), str(counter.get()), stored)

    console.print(table)


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    args = parse_args(argv)
    console = Console()

    if args.init_config:
        try:
            path = create_example_config(args.init_config)
        except FileExistsError as e:
            console.print(f"[red]{e}[/]")
            sys.exit(1)
        console.print(f"Wrote {path}")
        return

    try:
        config = Config.load(args.config)
    except FileNotFoundError as e:
        console.print(f"[red]{e}[/]")
        sys.exit(1)
    config.override_from_args(args)

    errors = config.validate()
    if errors:
        for error in errors:
            console.print(f"[red]Config error:[/] {error}")
        sys.exit(1)

    setup_logging(config.logging.level)

    if args.dump:
        console.print(config.summary())
        display_counters(UsageCounters.open(config.storage.dir), console)
        return

    daemon = MetricsDaemon(config=config)

    if args.once:
        daemon.run_once()
        return

    sys.exit(daemon.run())


if __name__ == "__main__":
    main()
