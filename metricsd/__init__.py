"""
metricsd - Host telemetry daemon

Turns crash markers, /proc statistics, cpufreq and zram sysfs counters into
periodically emitted histogram samples. Usage and crash counters persist
across daemon and device restarts and roll over on day, week and OS
version boundaries.

Usage:
    # As a daemon
    python -m metricsd --config /etc/metricsd/config.toml

    # Programmatically
    from metricsd import MetricsDaemon, Config

    daemon = MetricsDaemon(config=Config.load(), sink=my_sink)
    daemon.run()
"""

__version__ = "1.0.0"

from .config import Config
from .daemon import MetricsDaemon

# Core exports
from .storage.counter import PersistentCounter
from .runner.scheduler import Scheduler, TickResult
from .stats.aggregator import CycleAggregator, CycleType, UsageCounters
from .stats.crash import CrashDetector

# Protocol exports
from .protocol.sample import BucketedSample, LinearSample, SampleSink, LogSampleSink

__all__ = [
    # Version
    "__version__",
    # Daemon
    "Config",
    "MetricsDaemon",
    # Core
    "PersistentCounter",
    "Scheduler",
    "TickResult",
    "CycleAggregator",
    "CycleType",
    "UsageCounters",
    "CrashDetector",
    # Protocol
    "BucketedSample",
    "LinearSample",
    "SampleSink",
    "LogSampleSink",
]
