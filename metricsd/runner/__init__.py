"""
Runner module - Drives the daemon's single timeline.

The Scheduler owns every periodic handler; each handler reports back a
TickResult saying whether it succeeded and when it wants to run next.
"""

from .scheduler import Scheduler, ScheduledTask, TickResult

__all__ = [
    "Scheduler",
    "ScheduledTask",
    "TickResult",
]
