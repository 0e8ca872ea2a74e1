"""
Protocol module - Value objects and error types shared across the core.

- BucketedSample / LinearSample: what gets handed to the Sample Sink
- SampleSink: the sink interface, LogSampleSink: the default sink
- SourceError hierarchy: recoverable proc/sysfs failures
"""

from .sample import BucketedSample, LinearSample, SampleSink, LogSampleSink
from .errors import (
    SourceErrorKind,
    SourceError,
    SourceUnavailableError,
    MalformedSourceError,
    InvariantViolationError,
)

__all__ = [
    "BucketedSample",
    "LinearSample",
    "SampleSink",
    "LogSampleSink",
    "SourceErrorKind",
    "SourceError",
    "SourceUnavailableError",
    "MalformedSourceError",
    "InvariantViolationError",
]
