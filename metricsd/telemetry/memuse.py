"""
Memuse - Anonymous memory use at fixed points of active time after boot.

Samples are taken at 1 minute, 5 minutes, 30 minutes, 2.5 hours and 12.5
hours of active (non-suspended) time; after the last one the sampler
retires. The checkpoint cursor lives in memory only, so a daemon restart
starts the sequence over.
"""

import logging
import math
import time
from typing import Callable, Optional, Sequence

from ..protocol.errors import InvariantViolationError, SourceError
from ..protocol.sample import SampleSink
from ..runner.scheduler import TickResult
from .meminfo import FieldRecord, parse_meminfo
from .sources import PathLike, read_text


logger = logging.getLogger(__name__)

# Gaps between checkpoints, in seconds of active time.
MEMUSE_INTERVALS = (
    1 * 60,     # 1 minute mark
    4 * 60,     # 5 minute mark
    25 * 60,    # 0.5 hour mark
    120 * 60,   # 2.5 hour mark
    600 * 60,   # 12.5 hour mark
)

MEMUSE_FIELDS = (
    FieldRecord("MemTotal", "MemTotal"),
    FieldRecord("ActiveAnon", "Active(anon)"),
    FieldRecord("InactiveAnon", "Inactive(anon)"),
)

METRIC_PREFIX = "Platform.MemuseAnon"


class MemuseSampler:
    """
    Reports (Active(anon) + Inactive(anon)) as percent of MemTotal.

    The scheduler's wakeups follow elapsed time, which may include
    suspend. `active_clock` must not advance during suspend, so an early
    wakeup is re-armed for the active seconds still missing.
    """

    def __init__(
        self,
        sink: SampleSink,
        path: PathLike = "/proc/meminfo",
        active_clock: Callable[[], float] = time.monotonic,
        intervals: Sequence[int] = MEMUSE_INTERVALS,
        retry_interval: float = 30,
    ):
        self.sink = sink
        self.path = path
        self.active_clock = active_clock
        self.intervals = tuple(intervals)
        self.retry_interval = retry_interval

        self.interval_index = 0
        self.final_time: Optional[float] = None

    @property
    def finished(self) -> bool:
        return self.interval_index >= len(self.intervals)

    def start(self) -> float:
        """Reset to the first checkpoint and return the delay until it."""
        self.interval_index = 0
        first = self.intervals[0]
        self.final_time = self.active_clock() + first
        return first

    def run(self) -> TickResult:
        """Scheduler handler."""
        if self.final_time is None:
            return TickResult.ok(self.start())
        if self.finished:
            return TickResult.ok()

        now = self.active_clock()
        # Avoid re-arming for less than one second.
        remaining = math.ceil(self.final_time - now)
        if remaining > 0:
            logger.debug("memuse checkpoint %d not reached, %ds of active time left",
                         self.interval_index, remaining)
            return TickResult.ok(remaining)

        try:
            self.process_memuse(read_text(self.path))
        except SourceError as e:
            logger.warning("memuse sample %d skipped: %s", self.interval_index, e)
            return TickResult.failed(self.retry_interval)

        self.interval_index += 1
        if self.finished:
            logger.info("memuse: last checkpoint reported")
            return TickResult.ok()

        interval = self.intervals[self.interval_index]
        self.final_time = now + interval
        return TickResult.ok(interval)

    def process_memuse(self, raw: str):
        total, active_anon, inactive_anon = (f.value for f in parse_meminfo(raw, MEMUSE_FIELDS))
        if total == 0:
            raise InvariantViolationError("meminfo parser reports MemTotal 0")

        self.sink.emit_linear(
            f"{METRIC_PREFIX}{self.interval_index}",
            (active_anon + inactive_anon) * 100 // total,
            100,
        )
