"""Tests for CycleAggregator: running counters and day/week/version rollovers."""

from metricsd.stats.aggregator import SECONDS_PER_DAY, SECONDS_PER_WEEK, CycleType
from metricsd.storage.counter import PersistentCounter
from tests.conftest import DAY

DAILY_NAMES = [
    "Platform.UseTime.PerDay",
    "Platform.AnyCrashes.PerDay",
    "Platform.UserCrashes.PerDay",
    "Platform.KernelCrashes.PerDay",
    "Platform.UncleanShutdown.PerDay",
    "Platform.KernelCrashesSinceUpdate",
    "Platform.CumulativeCpuTime",
]

WEEKLY_NAMES = [
    "Platform.AnyCrashes.PerWeek",
    "Platform.UserCrashes.PerWeek",
    "Platform.KernelCrashes.PerWeek",
    "Platform.UncleanShutdowns.PerWeek",
]


# =============================================================================
# Running counters
# =============================================================================

def test_tick_advances_active_time_and_intervals(settled_aggregator, counters, monotonic, sink):
    monotonic.advance(300)
    result = settled_aggregator.tick()

    assert result.succeeded
    assert result.next_delay == 300
    assert counters.daily_active_use.get() == 300
    assert counters.version_cumulative_active_use.get() == 300
    assert counters.user_crash_interval.get() == 300
    assert counters.kernel_crash_interval.get() == 300
    assert counters.unclean_shutdown_interval.get() == 300
    assert sink.samples == []


def test_fractional_seconds_carry_over(settled_aggregator, counters, monotonic):
    monotonic.advance(300.7)
    settled_aggregator.update_stats()
    assert counters.daily_active_use.get() == 300

    monotonic.advance(0.5)
    settled_aggregator.update_stats()
    assert counters.daily_active_use.get() == 301


def test_wall_clock_jump_does_not_count_as_active_time(settled_aggregator, counters, monotonic, wall):
    wall.advance(-3 * 3600)
    monotonic.advance(60)
    settled_aggregator.update_stats()
    assert counters.daily_active_use.get() == 60


def test_cpu_use_delta_in_milliseconds(settled_aggregator, counters, cpu_source):
    cpu_source.seconds = 102.5
    settled_aggregator.update_stats()
    assert counters.version_cumulative_cpu_use.get() == 2500


def test_cpu_read_failure_counts_zero(settled_aggregator, counters, cpu_source):
    cpu_source.seconds = None
    settled_aggregator.update_stats()
    assert counters.version_cumulative_cpu_use.get() == 0

    cpu_source.seconds = 103.0
    settled_aggregator.update_stats()
    assert counters.version_cumulative_cpu_use.get() == 3000


def test_counters_persist_across_restart(settled_aggregator, storage_dir, monotonic):
    monotonic.advance(120)
    settled_aggregator.update_stats()
    assert PersistentCounter("Platform.UseTime.PerDay", storage_dir).get() == 120


# =============================================================================
# Day rollover
# =============================================================================

def test_day_rollover_fires_once(settled_aggregator, counters, sink, monotonic, wall):
    counters.any_crashes_daily_count.set(3)
    counters.kernel_crashes_daily_count.set(1)
    counters.user_crashes_daily_count.set(2)
    counters.unclean_shutdowns_daily_count.set(1)

    monotonic.advance(300)
    wall.advance(SECONDS_PER_DAY)
    assert settled_aggregator.update_stats() == [CycleType.DAY]

    assert counters.daily_cycle.get() == DAY + 1
    for name in DAILY_NAMES:
        assert name in sink.names
    assert sink.value("Platform.UseTime.PerDay") == 300
    assert sink.value("Platform.AnyCrashes.PerDay") == 3
    assert sink.value("Platform.UserCrashes.PerDay") == 2

    assert counters.daily_active_use.get() == 0
    assert counters.any_crashes_daily_count.get() == 0
    assert counters.kernel_crashes_daily_count.get() == 0
    assert counters.user_crashes_daily_count.get() == 0
    assert counters.unclean_shutdowns_daily_count.get() == 0

    # Same day again: nothing more to emit.
    sink.clear()
    monotonic.advance(300)
    assert settled_aggregator.update_stats() == []
    assert sink.samples == []


def test_day_rollover_keeps_cumulative_counters(settled_aggregator, counters, wall):
    counters.kernel_crashes_version_count.set(4)
    counters.version_cumulative_active_use.set(1000)
    counters.version_cumulative_cpu_use.set(5000)

    wall.advance(SECONDS_PER_DAY)
    settled_aggregator.update_stats()

    assert counters.kernel_crashes_version_count.get() == 4
    assert counters.version_cumulative_active_use.get() == 1000
    assert counters.version_cumulative_cpu_use.get() == 5000


def test_day_rollover_emits_crash_rates(settled_aggregator, counters, sink, wall):
    counters.kernel_crashes_version_count.set(2)
    counters.version_cumulative_cpu_use.set(SECONDS_PER_DAY * 1000)
    counters.version_cumulative_active_use.set(2 * SECONDS_PER_DAY)

    wall.advance(SECONDS_PER_DAY)
    settled_aggregator.update_stats()

    assert sink.value("Platform.KernelCrashesSinceUpdate") == 2
    assert sink.value("Platform.CumulativeCpuTime") == SECONDS_PER_DAY
    assert sink.value("Logging.KernelCrashesPerCpuYear") == 730
    assert sink.value("Platform.CumulativeUseTime") == 2 * SECONDS_PER_DAY
    assert sink.value("Logging.KernelCrashesPerActiveYear") == 365

    cpu_sample = sink.get("Platform.CumulativeCpuTime")
    assert (cpu_sample.min, cpu_sample.max, cpu_sample.bucket_count) == (1, 8000000, 100)


def test_crash_rates_skipped_without_usage(settled_aggregator, sink, wall):
    wall.advance(SECONDS_PER_DAY)
    settled_aggregator.update_stats()

    assert "Logging.KernelCrashesPerCpuYear" not in sink.names
    assert "Logging.KernelCrashesPerActiveYear" not in sink.names
    assert "Platform.CumulativeUseTime" not in sink.names
    assert "Platform.CumulativeCpuTime" in sink.names


def test_daily_use_histogram_parameters(settled_aggregator, sink, wall):
    wall.advance(SECONDS_PER_DAY)
    settled_aggregator.update_stats()

    use = sink.get("Platform.UseTime.PerDay")
    assert (use.min, use.max, use.bucket_count) == (1, SECONDS_PER_DAY, 50)
    frequency = sink.get("Platform.AnyCrashes.PerDay")
    assert (frequency.min, frequency.max, frequency.bucket_count) == (1, 100, 50)


# =============================================================================
# Week rollover
# =============================================================================

def test_week_rollover(settled_aggregator, counters, sink, wall):
    counters.any_crashes_weekly_count.set(5)
    counters.unclean_shutdowns_weekly_count.set(2)

    # The week after DAY's starts six days later.
    wall.advance(6 * SECONDS_PER_DAY)
    rollovers = settled_aggregator.update_stats()

    assert rollovers == [CycleType.DAY, CycleType.WEEK]
    assert counters.weekly_cycle.get() == (DAY + 6) // 7
    for name in WEEKLY_NAMES:
        assert name in sink.names
    assert sink.value("Platform.AnyCrashes.PerWeek") == 5
    assert sink.value("Platform.UncleanShutdowns.PerWeek") == 2
    assert counters.any_crashes_weekly_count.get() == 0
    assert counters.unclean_shutdowns_weekly_count.get() == 0

    # Daily emissions come before weekly ones.
    assert sink.names.index("Platform.UseTime.PerDay") < sink.names.index("Platform.AnyCrashes.PerWeek")


def test_week_counts_untouched_within_week(settled_aggregator, counters, wall):
    counters.any_crashes_weekly_count.set(5)
    wall.advance(SECONDS_PER_DAY)
    settled_aggregator.update_stats()
    assert counters.any_crashes_weekly_count.get() == 5


# =============================================================================
# Version rollover
# =============================================================================

def test_version_rollover_zeroes_version_counters(settled_aggregator, counters, sink, wall, version_source):
    counters.kernel_crashes_version_count.set(3)
    counters.version_cumulative_active_use.set(7200)
    counters.version_cumulative_cpu_use.set(9000)

    version_source.version_hash = 1234
    wall.advance(SECONDS_PER_DAY)
    rollovers = settled_aggregator.update_stats()

    assert rollovers == [CycleType.DAY, CycleType.VERSION]
    assert counters.version_cycle.get() == 1234
    assert counters.kernel_crashes_version_count.get() == 0
    assert counters.version_cumulative_active_use.get() == 0
    assert counters.version_cumulative_cpu_use.get() == 0

    # The day emission still reported the outgoing version's totals.
    assert sink.value("Platform.KernelCrashesSinceUpdate") == 3
    assert sink.value("Platform.CumulativeUseTime") == 7200


def test_version_only_checked_on_day_rollover(settled_aggregator, counters, version_source):
    counters.kernel_crashes_version_count.set(3)
    version_source.version_hash = 1234

    assert settled_aggregator.update_stats() == []
    assert counters.version_cycle.get() == 42
    assert counters.kernel_crashes_version_count.get() == 3


def test_check_version_directly(settled_aggregator, counters, version_source):
    assert not settled_aggregator.check_version()
    version_source.version_hash = 7
    assert settled_aggregator.check_version()
    assert counters.version_cycle.get() == 7


def test_fresh_install_first_tick_is_a_rollover(aggregator, counters, sink, monotonic):
    monotonic.advance(300)
    rollovers = aggregator.update_stats()

    assert rollovers == [CycleType.DAY, CycleType.WEEK, CycleType.VERSION]
    assert counters.daily_cycle.get() == DAY
    assert counters.weekly_cycle.get() == DAY // 7
    assert counters.version_cycle.get() == 42
    assert sink.value("Platform.UseTime.PerDay") == 300


def test_crash_interval_sample_parameters(settled_aggregator, counters, sink):
    counters.kernel_crash_interval.set(1000)
    settled_aggregator.send_and_reset_crash_interval_sample(counters.kernel_crash_interval)

    sample = sink.get("Platform.KernelCrashInterval")
    assert sample.value == 1000
    assert (sample.min, sample.max, sample.bucket_count) == (1, 4 * SECONDS_PER_WEEK, 50)
    assert counters.kernel_crash_interval.get() == 0
