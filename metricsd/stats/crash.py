"""
CrashDetector - Routes crash and unclean-shutdown events into the counters.

Kernel crashes and unclean shutdowns are detected before the daemon starts
by another component, which leaves a marker file behind. The daemon drains
the markers once at startup. User-space crashes arrive as live signals.
"""

import logging
from pathlib import Path
from typing import Union

from ..storage.counter import PersistentCounter
from .aggregator import CycleAggregator


logger = logging.getLogger(__name__)

KERNEL_CRASH_DETECTED_FILE = "/var/run/kernel-crash-detected"
UNCLEAN_SHUTDOWN_DETECTED_FILE = "/var/run/unclean-shutdown-detected"


class CrashDetector:
    """
    Crash processing on top of the aggregator's counters.

    Every event first brings active time up to date, then reports and
    resets the time since the previous event of its kind, then bumps the
    daily and weekly counts.
    """

    def __init__(
        self,
        aggregator: CycleAggregator,
        kernel_crash_marker: Union[str, Path] = KERNEL_CRASH_DETECTED_FILE,
        unclean_shutdown_marker: Union[str, Path] = UNCLEAN_SHUTDOWN_DETECTED_FILE,
    ):
        self.aggregator = aggregator
        self.counters = aggregator.counters
        self.kernel_crash_marker = Path(kernel_crash_marker)
        self.unclean_shutdown_marker = Path(unclean_shutdown_marker)

    def on_startup_crash_check(self):
        """Drain both markers. Call once, before any periodic work."""
        if self.check_system_crash(self.kernel_crash_marker):
            self.process_kernel_crash()

        if self.check_system_crash(self.unclean_shutdown_marker):
            self.process_unclean_shutdown()

    def check_system_crash(self, marker: Path) -> bool:
        """
        Consume a marker file.

        The marker is deleted so a daemon restart does not count the same
        event twice.

        Returns:
            True if the marker was present
        """
        if not marker.exists():
            return False

        try:
            marker.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error("cannot delete %s, the event may be counted again: %s", marker, e)
        logger.info("found crash marker %s", marker)
        return True

    def process_user_crash(self):
        c = self.counters
        self._account(c.user_crash_interval)
        c.any_crashes_daily_count.add(1)
        c.any_crashes_weekly_count.add(1)
        c.user_crashes_daily_count.add(1)
        c.user_crashes_weekly_count.add(1)

    def process_kernel_crash(self):
        c = self.counters
        self._account(c.kernel_crash_interval)
        c.any_crashes_daily_count.add(1)
        c.any_crashes_weekly_count.add(1)
        c.kernel_crashes_daily_count.add(1)
        c.kernel_crashes_weekly_count.add(1)
        c.kernel_crashes_version_count.add(1)

    def process_unclean_shutdown(self):
        c = self.counters
        self._account(c.unclean_shutdown_interval)
        c.unclean_shutdowns_daily_count.add(1)
        c.unclean_shutdowns_weekly_count.add(1)
        c.any_crashes_daily_count.add(1)
        c.any_crashes_weekly_count.add(1)

    def _account(self, interval: PersistentCounter):
        # Count active time up to now, then report the time since the last event.
        self.aggregator.update_stats()
        self.aggregator.send_and_reset_crash_interval_sample(interval)
