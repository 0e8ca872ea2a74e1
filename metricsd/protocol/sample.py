"""
Sample Protocol - Core → Sample Sink.

BucketedSample: value with log-histogram binning (min, max, bucket_count)
LinearSample: value on an enumerated histogram with unit-step buckets

The sink is the transport boundary: it receives samples fire-and-forget and
is responsible for whatever happens to them afterwards.
"""

import logging
from dataclasses import dataclass, asdict
from typing import Any, Dict, Protocol


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BucketedSample:
    """A single observation on an exponential histogram."""
    name: str
    value: int
    min: int
    max: int
    bucket_count: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class LinearSample:
    """A single observation on a linear histogram with buckets 0..max_value."""
    name: str
    value: int
    max_value: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class SampleSink(Protocol):
    """Anything that can receive histogram samples."""

    def emit_bucketed(self, name: str, value: int, min: int, max: int, bucket_count: int) -> None:
        ...

    def emit_linear(self, name: str, value: int, max_value: int) -> None:
        ...


class LogSampleSink:
    """
    Sample sink that writes every sample to the log.

    Used when no transport is configured, and handy when running the daemon
    in the foreground to see what it would report.
    """

    def __init__(self, level: int = logging.INFO):
        self.level = level

    def emit_bucketed(self, name: str, value: int, min: int, max: int, bucket_count: int) -> None:
        sample = BucketedSample(name, int(value), min, max, bucket_count)
        logger.log(self.level, "sample %(name)s=%(value)d [%(min)d..%(max)d/%(bucket_count)d]",
                   sample.to_dict())

    def emit_linear(self, name: str, value: int, max_value: int) -> None:
        sample = LinearSample(name, int(value), max_value)
        logger.log(self.level, "sample %(name)s=%(value)d [linear 0..%(max_value)d]",
                   sample.to_dict())
