"""
PersistentCounter - A named integer that survives daemon and device restarts.

Each counter owns one file under the storage directory, named after the
counter, holding a single decimal integer. Writes go through a temporary
file and an atomic rename so a crash mid-write leaves the previous value.

Missing, empty or garbled backing files read as 0. This is never an error:
a fresh install has no files at all.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union


logger = logging.getLogger(__name__)


class PersistentCounter:
    """
    Crash-durable 64-bit accumulator.

    The value is loaded lazily on first access and written through on every
    mutation, so the in-memory copy and the backing file never disagree by
    more than the update in flight.
    """

    def __init__(self, name: str, storage_dir: Union[str, Path]):
        if not name or "/" in name or name in (".", ".."):
            raise ValueError(f"Invalid counter name: {name!r}")
        self._name = name
        self.storage_dir = Path(storage_dir)
        self._value: Optional[int] = None
        self._warned = False

    @property
    def path(self) -> Path:
        """Backing file for this counter."""
        return self.storage_dir / self._name

    def name(self) -> str:
        return self._name

    def get(self) -> int:
        if self._value is None:
            self._value = self._load()
        return self._value

    def set(self, value: int):
        self._value = int(value)
        self._store(self._value)

    def add(self, delta: int):
        self.set(self.get() + int(delta))

    def get_and_clear(self) -> int:
        """Return the current value and reset the counter to 0."""
        value = self.get()
        self.set(0)
        return value

    def reload(self) -> int:
        """Drop the cached value and read it again from storage."""
        self._value = None
        return self.get()

    def _load(self) -> int:
        try:
            content = self.path.read_text().strip()
        except FileNotFoundError:
            return 0
        except OSError as e:
            self._warn_once(f"cannot read counter {self._name}: {e}")
            return 0

        if not content:
            self._warn_once(f"counter {self._name} is empty, using 0")
            return 0

        try:
            return int(content)
        except ValueError:
            self._warn_once(f"counter {self._name} holds non-numeric {content[:32]!r}, using 0")
            return 0

    def _store(self, value: int):
        try:
            self.storage_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self._name}.", dir=str(self.storage_dir))
            try:
                with os.fdopen(fd, "w") as f:
                    f.write(f"{value}\n")
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_name, self.path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            # The in-memory value stays authoritative; the next write retries.
            logger.error("cannot persist counter %s=%d: %s", self._name, value, e)

    def _warn_once(self, message: str):
        if not self._warned:
            logger.warning(message)
            self._warned = True

    def __repr__(self) -> str:
        return f"PersistentCounter({self._name!r}, value={self.get()})"
