"""
Meminfo - /proc/meminfo parsing and the periodic meminfo sampler.

Provides:
- FieldRecord / MeminfoOp: what to extract and how to report it
- parse_meminfo(): single forward scan, fields must appear in table order
- MeminfoSampler: reports memory breakdown as percent of total every 30s
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Sequence

from ..protocol.errors import InvariantViolationError, MalformedSourceError, SourceError
from ..protocol.sample import SampleSink
from ..runner.scheduler import TickResult
from .sources import PathLike, read_text


logger = logging.getLogger(__name__)

METRIC_PREFIX = "Platform.Meminfo"

# kB values on a log scale, about 4 GB max
LOG_MIN = 1
LOG_MAX = 4 * 1000 * 1000
LOG_BUCKETS = 100

SWAP_USED_MAX = 8 * 1000 * 1000


class MeminfoOp(str, Enum):
    """How a parsed meminfo field is reported."""
    PERCENT = "percent"        # linear, percent of MemTotal
    LOG = "log"                # raw kB on a log histogram
    SWAP_TOTAL = "swap_total"  # captured for swap-used derivation
    SWAP_FREE = "swap_free"    # captured for swap-used derivation


@dataclass(frozen=True)
class FieldRecord:
    """One meminfo field: output suffix, exact source key, report op, value."""
    name: str
    match: str
    op: MeminfoOp = MeminfoOp.PERCENT
    value: int = 0


# Order matches the kernel's /proc/meminfo layout. MemTotal must stay first.
MEMINFO_FIELDS = (
    FieldRecord("MemTotal", "MemTotal"),
    FieldRecord("MemFree", "MemFree"),
    FieldRecord("Buffers", "Buffers"),
    FieldRecord("Cached", "Cached"),
    FieldRecord("Active", "Active"),
    FieldRecord("Inactive", "Inactive"),
    FieldRecord("ActiveAnon", "Active(anon)"),
    FieldRecord("InactiveAnon", "Inactive(anon)"),
    FieldRecord("ActiveFile", "Active(file)"),
    FieldRecord("InactiveFile", "Inactive(file)"),
    FieldRecord("Unevictable", "Unevictable", MeminfoOp.LOG),
    FieldRecord("SwapTotal", "SwapTotal", MeminfoOp.SWAP_TOTAL),
    FieldRecord("SwapFree", "SwapFree", MeminfoOp.SWAP_FREE),
    FieldRecord("AnonPages", "AnonPages"),
    FieldRecord("Mapped", "Mapped"),
    FieldRecord("Shmem", "Shmem", MeminfoOp.LOG),
    FieldRecord("Slab", "Slab", MeminfoOp.LOG),
)


def parse_meminfo(raw: str, fields: Sequence[FieldRecord]) -> List[FieldRecord]:
    """
    Fill in field values from meminfo-shaped text.

    Each line is `KEY: VALUE [UNIT]`. A line is consumed only if its key
    equals the next unmatched record's `match`; the scan never looks back
    or ahead in the field list.

    Args:
        raw: Source text
        fields: Records in the order they appear in the source

    Returns:
        New records with `value` set, same order as `fields`

    Raises:
        MalformedSourceError: a field is missing or its value is not an integer
    """
    parsed: List[FieldRecord] = []
    remaining = list(fields)

    for line in raw.split("\n"):
        if not remaining:
            break

        tokens = line.replace(":", " ").split()
        if not tokens or tokens[0] != remaining[0].match:
            continue

        record = remaining.pop(0)
        if len(tokens) < 2:
            raise MalformedSourceError(f"no value for {record.match}")
        try:
            value = int(tokens[1])
        except ValueError:
            raise MalformedSourceError(f"could not convert {tokens[1]!r} to int") from None
        parsed.append(replace(record, value=value))

    if remaining:
        raise MalformedSourceError(f"cannot find field {remaining[0].match} and following")

    return parsed


class MeminfoSampler:
    """
    Periodically reports /proc/meminfo as histogram samples.

    A read or parse failure skips this tick's samples; the sampler is
    re-armed either way.
    """

    def __init__(
        self,
        sink: SampleSink,
        path: PathLike = "/proc/meminfo",
        interval: float = 30,
    ):
        self.sink = sink
        self.path = path
        self.interval = interval

    def run(self) -> TickResult:
        """Scheduler handler."""
        try:
            self.process_meminfo(read_text(self.path))
        except SourceError as e:
            logger.warning("meminfo sample skipped: %s", e)
            return TickResult.failed(self.interval)
        return TickResult.ok(self.interval)

    def process_meminfo(self, raw: str):
        """Parse meminfo text and emit one sample per field plus swap usage."""
        fields = parse_meminfo(raw, MEMINFO_FIELDS)

        total_memory = fields[0].value
        if total_memory == 0:
            raise InvariantViolationError("meminfo parser reports MemTotal 0")

        swap_total = 0
        swap_free = 0
        # MemTotal is only the denominator.
        for field in fields[1:]:
            metric_name = f"{METRIC_PREFIX}{field.name}"
            if field.op == MeminfoOp.PERCENT:
                self.sink.emit_linear(metric_name, field.value * 100 // total_memory, 100)
            elif field.op == MeminfoOp.LOG:
                self.sink.emit_bucketed(metric_name, field.value, LOG_MIN, LOG_MAX, LOG_BUCKETS)
            elif field.op == MeminfoOp.SWAP_TOTAL:
                swap_total = field.value
            elif field.op == MeminfoOp.SWAP_FREE:
                swap_free = field.value

        if swap_total > 0:
            swap_used = swap_total - swap_free
            self.sink.emit_bucketed(f"{METRIC_PREFIX}SwapUsed", swap_used, 1, SWAP_USED_MAX, 100)
            self.sink.emit_linear(f"{METRIC_PREFIX}SwapUsed.Percent", swap_used * 100 // swap_total, 100)
