"""
CycleAggregator - Cumulative usage/crash counters and their rollovers.

v1 Rollover model:
- Each cycle (day, week, OS version) keeps its last-seen index in a
  persistent marker counter
- A tick recomputes the current index; a mismatch is a rollover
- A rollover stores the new index, then emits and resets the counters
  scoped to that cycle

Active time is measured on a monotonic clock, so NTP jumps do not corrupt
it. Day and week indexes come from the wall clock because they are
calendar-relative.
"""

import logging
import time
from dataclasses import dataclass, fields
from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Protocol, Union

from ..protocol.sample import SampleSink
from ..runner.scheduler import TickResult
from ..storage.counter import PersistentCounter


logger = logging.getLogger(__name__)

SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 60 * SECONDS_PER_MINUTE
SECONDS_PER_DAY = 24 * SECONDS_PER_HOUR
DAYS_PER_WEEK = 7
SECONDS_PER_WEEK = DAYS_PER_WEEK * SECONDS_PER_DAY

UPDATE_STATS_INTERVAL_MS = 300000


class CycleType(str, Enum):
    """Cycles whose boundaries trigger emission."""
    DAY = "day"
    WEEK = "week"
    VERSION = "version"


class CpuTimeSource(Protocol):
    def cumulative_cpu_time(self) -> Optional[timedelta]:
        ...


class VersionSource(Protocol):
    def current_version_hash(self) -> int:
        ...


@dataclass
class UsageCounters:
    """Every persistent counter the daemon keeps. Names are storage keys."""
    daily_active_use: PersistentCounter
    version_cumulative_active_use: PersistentCounter
    version_cumulative_cpu_use: PersistentCounter

    kernel_crash_interval: PersistentCounter
    unclean_shutdown_interval: PersistentCounter
    user_crash_interval: PersistentCounter

    any_crashes_daily_count: PersistentCounter
    any_crashes_weekly_count: PersistentCounter
    user_crashes_daily_count: PersistentCounter
    user_crashes_weekly_count: PersistentCounter
    kernel_crashes_daily_count: PersistentCounter
    kernel_crashes_weekly_count: PersistentCounter
    kernel_crashes_version_count: PersistentCounter
    unclean_shutdowns_daily_count: PersistentCounter
    unclean_shutdowns_weekly_count: PersistentCounter

    daily_cycle: PersistentCounter
    weekly_cycle: PersistentCounter
    version_cycle: PersistentCounter

    @classmethod
    def open(cls, storage_dir: Union[str, Path]) -> "UsageCounters":
        """Create counters backed by files in `storage_dir`."""
        def counter(name: str) -> PersistentCounter:
            return PersistentCounter(name, storage_dir)

        return cls(
            daily_active_use=counter("Platform.UseTime.PerDay"),
            version_cumulative_active_use=counter("Platform.CumulativeUseTime"),
            version_cumulative_cpu_use=counter("Platform.CumulativeCpuTime"),
            kernel_crash_interval=counter("Platform.KernelCrashInterval"),
            unclean_shutdown_interval=counter("Platform.UncleanShutdownInterval"),
            user_crash_interval=counter("Platform.UserCrashInterval"),
            any_crashes_daily_count=counter("Platform.AnyCrashes.PerDay"),
            any_crashes_weekly_count=counter("Platform.AnyCrashes.PerWeek"),
            user_crashes_daily_count=counter("Platform.UserCrashes.PerDay"),
            user_crashes_weekly_count=counter("Platform.UserCrashes.PerWeek"),
            kernel_crashes_daily_count=counter("Platform.KernelCrashes.PerDay"),
            kernel_crashes_weekly_count=counter("Platform.KernelCrashes.PerWeek"),
            kernel_crashes_version_count=counter("Platform.KernelCrashesSinceUpdate"),
            unclean_shutdowns_daily_count=counter("Platform.UncleanShutdown.PerDay"),
            unclean_shutdowns_weekly_count=counter("Platform.UncleanShutdowns.PerWeek"),
            daily_cycle=counter("daily.cycle"),
            weekly_cycle=counter("weekly.cycle"),
            version_cycle=counter("version.cycle"),
        )

    def all(self) -> List[PersistentCounter]:
        return [getattr(self, f.name) for f in fields(self)]


class CycleAggregator:
    """
    Advances running counters every tick and handles day/week/version rollovers.

    Usage:
        aggregator = CycleAggregator(UsageCounters.open(dir), sink, cpu, version)
        scheduler.schedule("update_stats", aggregator.interval, aggregator.tick)
    """

    def __init__(
        self,
        counters: UsageCounters,
        sink: SampleSink,
        cpu_time_source: CpuTimeSource,
        version_source: VersionSource,
        monotonic_clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
        interval_ms: int = UPDATE_STATS_INTERVAL_MS,
    ):
        self.counters = counters
        self.sink = sink
        self.cpu_time_source = cpu_time_source
        self.version_source = version_source
        self.monotonic_clock = monotonic_clock
        self.wall_clock = wall_clock
        self.interval_ms = interval_ms

        self.last_update_time = monotonic_clock()
        self.latest_cpu_use = cpu_time_source.cumulative_cpu_time()

    @property
    def interval(self) -> float:
        """Tick period in seconds."""
        return self.interval_ms / 1000

    # =========================================================================
    # Ticks
    # =========================================================================

    def tick(self) -> TickResult:
        """Scheduler handler for the periodic stats update."""
        self.update_stats()
        return TickResult.ok(self.interval)

    def update_stats(self) -> List[CycleType]:
        """
        Account time since the last update and emit any rollovers.

        Returns:
            Cycles that rolled over during this update, in emission order
        """
        c = self.counters

        elapsed_seconds = self._consume_elapsed_seconds()
        c.daily_active_use.add(elapsed_seconds)
        c.version_cumulative_active_use.add(elapsed_seconds)
        c.user_crash_interval.add(elapsed_seconds)
        c.kernel_crash_interval.add(elapsed_seconds)
        c.unclean_shutdown_interval.add(elapsed_seconds)
        c.version_cumulative_cpu_use.add(self._consume_cpu_use_ms())

        day = int(self.wall_clock() // SECONDS_PER_DAY)
        week = day // DAYS_PER_WEEK
        rollovers: List[CycleType] = []

        if c.daily_cycle.get() != day:
            logger.info("day rollover: %d -> %d", c.daily_cycle.get(), day)
            c.daily_cycle.set(day)
            self.send_and_reset_daily_use_sample(c.daily_active_use)
            self.send_and_reset_crash_frequency_sample(c.any_crashes_daily_count)
            self.send_and_reset_crash_frequency_sample(c.user_crashes_daily_count)
            self.send_and_reset_crash_frequency_sample(c.kernel_crashes_daily_count)
            self.send_and_reset_crash_frequency_sample(c.unclean_shutdowns_daily_count)
            self.send_kernel_crashes_cumulative_count_stats()
            rollovers.append(CycleType.DAY)

        if c.weekly_cycle.get() != week:
            logger.info("week rollover: %d -> %d", c.weekly_cycle.get(), week)
            c.weekly_cycle.set(week)
            self.send_and_reset_crash_frequency_sample(c.any_crashes_weekly_count)
            self.send_and_reset_crash_frequency_sample(c.user_crashes_weekly_count)
            self.send_and_reset_crash_frequency_sample(c.kernel_crashes_weekly_count)
            self.send_and_reset_crash_frequency_sample(c.unclean_shutdowns_weekly_count)
            rollovers.append(CycleType.WEEK)

        # The OS version is consulted once per day.
        if CycleType.DAY in rollovers and self.check_version():
            rollovers.append(CycleType.VERSION)

        return rollovers

    def check_version(self) -> bool:
        """
        Zero the version-scoped counters if the OS version changed.

        Returns:
            True if a version rollover happened
        """
        c = self.counters
        version = self.version_source.current_version_hash()
        if c.version_cycle.get() == version:
            return False

        logger.info("OS version changed (%d -> %d), clearing version stats",
                    c.version_cycle.get(), version)
        c.version_cycle.set(version)
        c.kernel_crashes_version_count.set(0)
        c.version_cumulative_active_use.set(0)
        c.version_cumulative_cpu_use.set(0)
        return True

    def _consume_elapsed_seconds(self) -> int:
        # Whole seconds only; the remainder carries over to the next update.
        now = self.monotonic_clock()
        elapsed = int(now - self.last_update_time)
        if elapsed <= 0:
            return 0
        self.last_update_time += elapsed
        return elapsed

    def _consume_cpu_use_ms(self) -> int:
        cpu_use = self.cpu_time_source.cumulative_cpu_time()
        if cpu_use is None:
            logger.warning("cpu time unavailable, counting 0 cpu use this tick")
            return 0
        if self.latest_cpu_use is None:
            self.latest_cpu_use = cpu_use
            return 0

        delta_ms = int((cpu_use - self.latest_cpu_use) / timedelta(milliseconds=1))
        self.latest_cpu_use = cpu_use
        return max(0, delta_ms)

    # =========================================================================
    # Emission
    # =========================================================================

    def send_kernel_crashes_cumulative_count_stats(self):
        """Report per-version totals. The counters are cleared only on version change."""
        c = self.counters

        crashes_count = c.kernel_crashes_version_count.get()
        self.sink.emit_bucketed(c.kernel_crashes_version_count.name(), crashes_count, 1, 500, 100)

        cpu_use_ms = c.version_cumulative_cpu_use.get()
        # Stat is in seconds. Up to a little over 90 days.
        self.sink.emit_bucketed(c.version_cumulative_cpu_use.name(), cpu_use_ms // 1000,
                                1, 8 * 1000 * 1000, 100)

        # Both totals can be zero right after an update.
        if cpu_use_ms > 0:
            self.sink.emit_bucketed(
                "Logging.KernelCrashesPerCpuYear",
                crashes_count * SECONDS_PER_DAY * 365 * 1000 // cpu_use_ms,
                1, 1000 * 1000, 100,
            )

        active_use_seconds = c.version_cumulative_active_use.get()
        if active_use_seconds > 0:
            self.sink.emit_bucketed(c.version_cumulative_active_use.name(), active_use_seconds,
                                    1, 8 * 1000 * 1000, 100)
            self.sink.emit_bucketed(
                "Logging.KernelCrashesPerActiveYear",
                crashes_count * SECONDS_PER_DAY * 365 // active_use_seconds,
                1, 1000 * 1000, 100,
            )

    def send_and_reset_daily_use_sample(self, use: PersistentCounter):
        self.sink.emit_bucketed(use.name(), use.get_and_clear(), 1, SECONDS_PER_DAY, 50)

    def send_and_reset_crash_interval_sample(self, interval: PersistentCounter):
        self.sink.emit_bucketed(interval.name(), interval.get_and_clear(), 1, 4 * SECONDS_PER_WEEK, 50)

    def send_and_reset_crash_frequency_sample(self, frequency: PersistentCounter):
        self.sink.emit_bucketed(frequency.name(), frequency.get_and_clear(), 1, 100, 50)
