"""Shared fixtures: counters on tmp storage, fake clocks and sinks."""

import pytest

from metricsd.stats.aggregator import SECONDS_PER_DAY, CycleAggregator, UsageCounters
from metricsd.stats.crash import CrashDetector
from tests.mocks import FakeClock, FakeCpuTimeSource, FakeVersionSource, RecordingSink

# Noon UTC, day 19650 since the epoch.
DAY = 19650
NOON = DAY * SECONDS_PER_DAY + 12 * 3600


@pytest.fixture
def storage_dir(tmp_path):
    path = tmp_path / "metrics"
    path.mkdir()
    return path


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def monotonic():
    return FakeClock(start=500.0)


@pytest.fixture
def wall():
    return FakeClock(start=float(NOON))


@pytest.fixture
def cpu_source():
    return FakeCpuTimeSource(seconds=100.0)


@pytest.fixture
def version_source():
    return FakeVersionSource(version_hash=42)


@pytest.fixture
def counters(storage_dir):
    return UsageCounters.open(storage_dir)


@pytest.fixture
def aggregator(counters, sink, cpu_source, version_source, monotonic, wall):
    return CycleAggregator(
        counters,
        sink,
        cpu_source,
        version_source,
        monotonic_clock=monotonic,
        wall_clock=wall,
    )


@pytest.fixture
def settled_aggregator(aggregator, counters, sink):
    """Aggregator whose markers already hold the current day, week and version."""
    counters.daily_cycle.set(DAY)
    counters.weekly_cycle.set(DAY // 7)
    counters.version_cycle.set(42)
    sink.clear()
    return aggregator


@pytest.fixture
def crash_detector(settled_aggregator, tmp_path):
    return CrashDetector(
        settled_aggregator,
        kernel_crash_marker=tmp_path / "kernel-crash-detected",
        unclean_shutdown_marker=tmp_path / "unclean-shutdown-detected",
    )
