"""
Mock components for testing metricsd.

These stand in for the sample transport, the clocks and the CPU/version
sources so the core can be driven tick by tick without touching /proc.
"""

from .golden_data import (
    MEMINFO,
    MEMINFO_NO_SWAP,
    MEMINFO_MISSING_SHMEM,
    MEMINFO_BAD_VALUE,
    MEMINFO_ZERO_TOTAL,
    MEMINFO_OUT_OF_ORDER,
    PROC_STAT,
    OS_RELEASE,
    MB,
)
from .mock_sink import RecordingSink
from .mock_sources import FakeClock, FakeCpuTimeSource, FakeVersionSource

__all__ = [
    'RecordingSink',
    'FakeClock',
    'FakeCpuTimeSource',
    'FakeVersionSource',
    # Golden data
    'MEMINFO',
    'MEMINFO_NO_SWAP',
    'MEMINFO_MISSING_SHMEM',
    'MEMINFO_BAD_VALUE',
    'MEMINFO_ZERO_TOTAL',
    'MEMINFO_OUT_OF_ORDER',
    'PROC_STAT',
    'OS_RELEASE',
    'MB',
]
