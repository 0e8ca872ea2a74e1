"""
Telemetry module - Periodic samplers over proc and sysfs sources.

- MeminfoSampler: /proc/meminfo breakdown every 30s
- MemuseSampler: anonymous memory at fixed active-time checkpoints
- CpuThrottleSampler: scaled vs. maximum CPU frequency
- ZramSampler: zram compression statistics

Every sampler exposes run() -> TickResult for the scheduler.
"""

from .meminfo import MeminfoSampler, FieldRecord, MeminfoOp, parse_meminfo, MEMINFO_FIELDS
from .memuse import MemuseSampler, MEMUSE_INTERVALS
from .cpufreq import CpuThrottleSampler
from .zram import ZramSampler
from .sources import ProcStatCpuTimeSource, OsReleaseVersionSource

__all__ = [
    "MeminfoSampler",
    "FieldRecord",
    "MeminfoOp",
    "parse_meminfo",
    "MEMINFO_FIELDS",
    "MemuseSampler",
    "MEMUSE_INTERVALS",
    "CpuThrottleSampler",
    "ZramSampler",
    "ProcStatCpuTimeSource",
    "OsReleaseVersionSource",
]
