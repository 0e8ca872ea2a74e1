"""
Error Protocols - Source read/parse failures.

Every failure in the sampling core is recoverable: the sampler that hit it
logs, skips its emission for this tick and is re-armed by the scheduler.

SourceUnavailableError: a proc/sysfs file cannot be read
MalformedSourceError: the text was read but a field or integer did not parse
InvariantViolationError: parsed values that "cannot happen" (e.g. MemTotal 0)
"""

from enum import Enum
from typing import Optional


class SourceErrorKind(str, Enum):
    """Kinds of source failures."""
    SOURCE_UNAVAILABLE = "SOURCE_UNAVAILABLE"
    MALFORMED_SOURCE = "MALFORMED_SOURCE"
    INVARIANT_VIOLATION = "INVARIANT_VIOLATION"


class SourceError(Exception):
    """Base class for recoverable source failures."""

    kind: SourceErrorKind = SourceErrorKind.SOURCE_UNAVAILABLE

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.path = path

    def __str__(self) -> str:
        if self.path:
            return f"{self.kind.value}: {self.message} ({self.path})"
        return f"{self.kind.value}: {self.message}"


class SourceUnavailableError(SourceError):
    """A proc/sysfs path could not be read."""
    kind = SourceErrorKind.SOURCE_UNAVAILABLE


class MalformedSourceError(SourceError):
    """Source text did not match the expected fields or integer format."""
    kind = SourceErrorKind.MALFORMED_SOURCE


class InvariantViolationError(SourceError):
    """Parsed values violate an invariant of the source format."""
    kind = SourceErrorKind.INVARIANT_VIOLATION
