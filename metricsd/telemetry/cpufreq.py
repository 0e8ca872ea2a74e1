"""
CpuFreq - Thermal CPU throttling as percent of the maximum frequency.

The hardware maximum is read once per process run. If it cannot be read,
or reads as 0, the sampler gives up for the rest of the run.
"""

import logging

from ..protocol.errors import SourceError
from ..protocol.sample import SampleSink
from ..runner.scheduler import TickResult
from .sources import PathLike, read_int


logger = logging.getLogger(__name__)

METRIC_NAME = "Platform.CpuFrequencyThermalScaling"

# Reported when the scaled maximum exceeds the non-turbo maximum.
TURBO_PERCENT = 101

MAX_FREQ_UNKNOWN = 0
MAX_FREQ_GIVE_UP = -1


class CpuThrottleSampler:
    """
    Compares cpufreq's scaling_max_freq against cpuinfo_max_freq.

    Frequencies are in kHz. A maximum congruent to 1000 modulo 10000 is
    taken to include a one-step turbo frequency, and 1000 is subtracted to
    get the top non-turbo frequency. This assumes ordinary frequencies are
    multiples of 10 MHz.
    """

    def __init__(
        self,
        sink: SampleSink,
        scaling_max_freq_path: PathLike = "/sys/devices/system/cpu/cpu0/cpufreq/scaling_max_freq",
        cpuinfo_max_freq_path: PathLike = "/sys/devices/system/cpu/cpu0/cpufreq/cpuinfo_max_freq",
        interval: float = 300,
        testing: bool = False,
    ):
        self.sink = sink
        self.scaling_max_freq_path = scaling_max_freq_path
        self.cpuinfo_max_freq_path = cpuinfo_max_freq_path
        self.interval = interval
        self.testing = testing

        self.max_freq = MAX_FREQ_UNKNOWN

    @property
    def disabled(self) -> bool:
        return self.max_freq == MAX_FREQ_GIVE_UP

    def run(self) -> TickResult:
        """Scheduler handler. Retires itself once the maximum is known bad."""
        if self.disabled:
            return TickResult.failed()

        # Re-read every time when testing.
        if self.max_freq == MAX_FREQ_UNKNOWN or self.testing:
            if not self._load_max_freq():
                return TickResult.failed()

        try:
            scaled_freq = read_int(self.scaling_max_freq_path)
        except SourceError as e:
            logger.warning("cpu throttle sample skipped: %s", e)
            return TickResult.failed(self.interval)

        if scaled_freq > self.max_freq:
            percent = TURBO_PERCENT
        else:
            percent = scaled_freq * 100 // self.max_freq
        self.sink.emit_linear(METRIC_NAME, percent, TURBO_PERCENT)
        return TickResult.ok(self.interval)

    def _load_max_freq(self) -> bool:
        try:
            max_freq = read_int(self.cpuinfo_max_freq_path)
        except SourceError as e:
            logger.warning("cpu throttle sampling disabled: %s", e)
            self.max_freq = MAX_FREQ_GIVE_UP
            return False

        if max_freq == 0:
            logger.warning("sysfs reports 0 max CPU frequency, cpu throttle sampling disabled")
            self.max_freq = MAX_FREQ_GIVE_UP
            return False

        if max_freq % 10000 == 1000:
            max_freq -= 1000

        self.max_freq = max_freq
        return True
