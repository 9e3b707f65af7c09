"""In-memory lock primitive for tests.

``MemoryLock`` honours the same contract as the kernel-backed primitives but
keeps ownership in a process-local registry keyed by path, and the file bytes
in memory. Instances bound to the same path contend with each other; nothing
touches the filesystem.
"""

from __future__ import annotations

import errno
import os
import threading
from pathlib import Path

from metalock.core.exceptions import LockContendedError
from metalock.core.locks.deadline import Deadline


class _Slot:
    def __init__(self) -> None:
        self.owner: MemoryLock | None = None
        self.content = bytearray()


_registry_lock = threading.Lock()
_registry: dict[str, _Slot] = {}


def _slot_for(path: Path) -> _Slot:
    key = os.path.abspath(path)
    with _registry_lock:
        return _registry.setdefault(key, _Slot())


def reset_memory_locks() -> None:
    """Forget every registered path. Call between tests."""
    with _registry_lock:
        _registry.clear()


class MemoryLock:
    """Test double implementing the lock primitive capability set."""

    name = "memory"

    def __init__(self, path: str | os.PathLike[str]):
        self.path = Path(path)
        self._slot = _slot_for(self.path)
        self._position = 0
        self.attempts = 0

    @property
    def locked(self) -> bool:
        return self._slot.owner is self

    @property
    def content(self) -> bytes:
        return bytes(self._slot.content)

    def try_lock(self) -> None:
        self.attempts += 1
        with _registry_lock:
            if self._slot.owner is self:
                return
            if self._slot.owner is not None:
                raise LockContendedError(str(self.path))
            self._slot.owner = self
        self._position = 0

    def lock_context(self, deadline: Deadline, retry_interval: float) -> None:
        while True:
            try:
                self.try_lock()
                return
            except LockContendedError:
                deadline.wait(retry_interval)

    def unlock(self) -> None:
        with _registry_lock:
            if self._slot.owner is self:
                self._slot.owner = None

    def _require_held(self) -> None:
        if not self.locked:
            raise OSError(errno.EBADF, "lock file is not open (lock not held)", str(self.path))

    def read(self, size: int = -1) -> bytes:
        self._require_held()
        content = self._slot.content
        end = len(content) if size < 0 else min(len(content), self._position + size)
        data = bytes(content[self._position:end])
        self._position = max(self._position, end)
        return data

    def write(self, data: bytes) -> int:
        self._require_held()
        content = self._slot.content
        if self._position > len(content):
            content.extend(b"\x00" * (self._position - len(content)))
        content[self._position:self._position + len(data)] = data
        self._position += len(data)
        return len(data)

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        self._require_held()
        if whence == os.SEEK_SET:
            position = offset
        elif whence == os.SEEK_CUR:
            position = self._position + offset
        elif whence == os.SEEK_END:
            position = len(self._slot.content) + offset
        else:
            raise OSError(errno.EINVAL, f"invalid whence {whence}")
        if position < 0:
            raise OSError(errno.EINVAL, "negative seek position")
        self._position = position
        return position

    def truncate(self, size: int = 0) -> None:
        self._require_held()
        del self._slot.content[size:]

    def sync(self) -> None:
        self._require_held()
