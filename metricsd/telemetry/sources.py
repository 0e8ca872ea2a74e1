"""
Sources - Small readers for the files the daemon samples.

Provides:
- read_text / read_int: single proc or sysfs file reads
- ProcStatCpuTimeSource: cumulative system CPU time from /proc/stat
- OsReleaseVersionSource: hash of the OS version from an os-release file

Readers raise SourceError subclasses; callers decide whether a failure
skips a tick or degrades to a default.
"""

import hashlib
import logging
import os
from datetime import timedelta
from pathlib import Path
from typing import Dict, Optional, Union

from ..protocol.errors import MalformedSourceError, SourceUnavailableError


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

DEFAULT_VERSION = "0.0.0.0"
TESTING_VERSION_HASH = 42


def read_text(path: PathLike) -> str:
    """Read a whole proc/sysfs file."""
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            return f.read()
    except OSError as e:
        raise SourceUnavailableError(f"cannot read: {e.strerror or e}", str(path)) from e


def read_int(path: PathLike) -> int:
    """
    Read a file holding a single non-negative integer.

    A trailing newline is expected but not required.
    """
    content = read_text(path).strip()
    try:
        value = int(content)
    except ValueError:
        raise MalformedSourceError(f"invalid integer: {content[:32]!r}", str(path)) from None
    if value < 0:
        raise MalformedSourceError(f"negative value: {value}", str(path))
    return value


class ProcStatCpuTimeSource:
    """
    Cumulative CPU time used by the system since boot.

    Sums the user, nice and system columns of the aggregate `cpu` line.
    """

    def __init__(self, path: PathLike = "/proc/stat"):
        self.path = path
        try:
            self.ticks_per_second = os.sysconf("SC_CLK_TCK")
        except (ValueError, OSError, AttributeError):
            self.ticks_per_second = 100

    def cumulative_cpu_time(self) -> Optional[timedelta]:
        """Return CPU time used so far, or None if /proc/stat is unusable."""
        try:
            content = read_text(self.path)
        except SourceUnavailableError as e:
            logger.warning("cpu time unavailable: %s", e)
            return None

        for line in content.splitlines():
            parts = line.split()
            if not parts or parts[0] != "cpu":
                continue
            try:
                user, nice, system = (int(x) for x in parts[1:4])
            except ValueError:
                break
            ticks = user + nice + system
            return timedelta(seconds=ticks / self.ticks_per_second)

        logger.warning("no aggregate cpu line in %s", self.path)
        return None


def parse_os_release(content: str) -> Dict[str, str]:
    """Parse KEY=VALUE lines, dropping comments and surrounding quotes."""
    values = {}
    for line in content.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
            value = value[1:-1]
        values[key.strip()] = value
    return values


def version_hash(version: str) -> int:
    """Stable unsigned 32-bit digest of a version string."""
    digest = hashlib.sha1(version.encode("utf-8")).digest()
    return int.from_bytes(digest[:4], "big")


class OsReleaseVersionSource:
    """
    Identifies the running OS version by hashing one os-release key.

    An unreadable file or missing key falls back to DEFAULT_VERSION so a
    broken os-release never looks like a fresh update on every tick.
    """

    def __init__(
        self,
        path: PathLike = "/etc/os-release",
        key: str = "VERSION_ID",
        testing: bool = False,
    ):
        self.path = path
        self.key = key
        self.testing = testing

    def current_version(self) -> str:
        try:
            values = parse_os_release(read_text(self.path))
        except SourceUnavailableError as e:
            logger.error("failed to read the product version: %s", e)
            return DEFAULT_VERSION

        version = values.get(self.key)
        if not version:
            logger.error("failed to read the product version: no %s in %s", self.key, self.path)
            return DEFAULT_VERSION
        return version

    def current_version_hash(self) -> int:
        if self.testing:
            return TESTING_VERSION_HASH
        return version_hash(self.current_version())
