"""
MetricsDaemon - Wires counters, samplers and the scheduler together.

Host entry points:
- on_startup_crash_check(): drain crash markers, once, before periodic work
- tick(): the periodic stats update
- on_user_crash_signal(): a user-space crash was reported

Startup order:
INIT → CRASH CHECK → VERSION CHECK → ARM HANDLERS → RUN → SHUTDOWN
"""

import logging
import signal
import time
from typing import Callable, Optional

from .config import Config
from .protocol.sample import LogSampleSink, SampleSink
from .runner.scheduler import Scheduler, TickResult
from .stats.aggregator import CpuTimeSource, CycleAggregator, UsageCounters, VersionSource
from .stats.crash import CrashDetector
from .telemetry.cpufreq import CpuThrottleSampler
from .telemetry.meminfo import MeminfoSampler
from .telemetry.memuse import MemuseSampler
from .telemetry.sources import OsReleaseVersionSource, ProcStatCpuTimeSource
from .telemetry.zram import ZramSampler


logger = logging.getLogger(__name__)


class MetricsDaemon:
    """
    Main orchestrator for the telemetry daemon.

    Every collaborator can be injected; anything left out is built from
    the config.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        sink: Optional[SampleSink] = None,
        scheduler: Optional[Scheduler] = None,
        cpu_time_source: Optional[CpuTimeSource] = None,
        version_source: Optional[VersionSource] = None,
        monotonic_clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
    ):
        self.config = config or Config()
        paths = self.config.paths
        intervals = self.config.intervals
        testing = self.config.testing

        self.sink = sink or LogSampleSink()
        self.scheduler = scheduler or Scheduler(clock=monotonic_clock)

        cpu_time_source = cpu_time_source or ProcStatCpuTimeSource(paths.proc_stat)
        version_source = version_source or OsReleaseVersionSource(
            paths.os_release, key=paths.version_key, testing=testing,
        )

        self.counters = UsageCounters.open(self.config.storage.dir)
        self.aggregator = CycleAggregator(
            self.counters,
            self.sink,
            cpu_time_source,
            version_source,
            monotonic_clock=monotonic_clock,
            wall_clock=wall_clock,
            interval_ms=intervals.update_stats_ms,
        )
        self.crash_detector = CrashDetector(
            self.aggregator,
            kernel_crash_marker=paths.kernel_crash_marker,
            unclean_shutdown_marker=paths.unclean_shutdown_marker,
        )

        self.meminfo_sampler = MeminfoSampler(self.sink, paths.meminfo, interval=intervals.meminfo_s)
        self.memuse_sampler = MemuseSampler(
            self.sink, paths.meminfo,
            active_clock=monotonic_clock,
            retry_interval=intervals.meminfo_s,
        )
        self.cpu_throttle_sampler = CpuThrottleSampler(
            self.sink,
            scaling_max_freq_path=paths.scaling_max_freq,
            cpuinfo_max_freq_path=paths.cpuinfo_max_freq,
            interval=intervals.cpu_throttle_s,
            testing=testing,
        )
        self.zram_sampler = ZramSampler(self.sink, paths.zram_dir, interval=intervals.zram_s)

        self._started = False

    # =========================================================================
    # Host entry points
    # =========================================================================

    def on_startup_crash_check(self):
        self.crash_detector.on_startup_crash_check()

    def tick(self) -> TickResult:
        return self.aggregator.tick()

    def on_user_crash_signal(self):
        """
        Record a user-space crash.

        Safe to call from a signal-listener thread: while the scheduler is
        running, the work is queued onto its timeline.
        """
        if self.scheduler.running:
            self.scheduler.call_soon("user_crash", self.crash_detector.process_user_crash)
        else:
            self.crash_detector.process_user_crash()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self):
        """Drain crash markers, check the OS version and arm every handler."""
        if self._started:
            raise RuntimeError("Daemon already started")
        self._started = True

        self.on_startup_crash_check()
        # On OS version change, clear version stats (reported daily).
        self.aggregator.check_version()

        scheduler = self.scheduler
        scheduler.schedule("update_stats", self.aggregator.interval, self.tick)
        scheduler.schedule("cpu_throttle", self.config.intervals.cpu_throttle_s, self.cpu_throttle_sampler.run)
        scheduler.schedule("zram", self.config.intervals.zram_s, self.zram_sampler.run)

        if self.config.testing:
            logger.info("testing mode: meminfo and memuse sampling not armed")
        else:
            scheduler.schedule("meminfo", self.meminfo_sampler.interval, self.meminfo_sampler.run)
            scheduler.schedule("memuse", self.memuse_sampler.start(), self.memuse_sampler.run)

        logger.info("armed handlers: %s", ", ".join(scheduler.pending()))

    def run(self) -> int:
        """Start and block until shutdown(). Returns a process exit code."""
        self._install_signal_handlers()
        self.start()
        logger.info("metricsd running, storage at %s", self.config.storage.dir)
        self.scheduler.run_forever()
        logger.info("metricsd stopped")
        return 0

    def run_once(self):
        """Crash check, one stats update and one pass of each periodic sampler."""
        self.on_startup_crash_check()
        self.aggregator.check_version()
        self.tick()
        self.meminfo_sampler.run()
        self.cpu_throttle_sampler.run()
        self.zram_sampler.run()

    def shutdown(self):
        """Stop re-arming handlers. A handler in flight runs to completion."""
        logger.info("shutdown requested")
        self.scheduler.stop()

    def _install_signal_handlers(self):
        def handle(signum, frame):
            self.shutdown()

        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                signal.signal(sig, handle)
            except ValueError:
                # Not on the main thread; the host owns shutdown.
                logger.debug("cannot install handler for %s", sig)
