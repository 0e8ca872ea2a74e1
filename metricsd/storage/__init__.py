"""
Storage module - Crash-durable named counters.
"""

from .counter import PersistentCounter

__all__ = [
    "PersistentCounter",
]
