"""
Stats module - Cumulative usage and crash statistics.

- CycleAggregator: running counters plus day/week/version rollovers
- UsageCounters: the persistent counters the aggregator owns
- CrashDetector: kernel crash, unclean shutdown and user crash processing
"""

from .aggregator import CycleAggregator, CycleType, UsageCounters
from .crash import CrashDetector

__all__ = [
    "CycleAggregator",
    "CycleType",
    "UsageCounters",
    "CrashDetector",
]
