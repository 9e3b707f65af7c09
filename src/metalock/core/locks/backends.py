"""Lock primitive implementations.

Design principles:
- Exclusion is decided by the kernel advisory lock on the file, never by the
  file's content or existence.
- A primitive owns at most one file descriptor, opened on acquisition and
  closed on release; stream access goes through that descriptor.
- Opening the lock file never truncates it: a losing contender must not
  clobber the holder's record.
"""

from __future__ import annotations

import contextlib
import errno
import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

from metalock.core.constants import (
    BACKEND_AUTO,
    BACKEND_FCNTL,
    BACKEND_FLOCK,
    ENV_BACKEND,
    LOCK_FILE_MODE,
)
from metalock.core.exceptions import LockBackendUnavailableError, LockContendedError
from metalock.core.locks.deadline import Deadline

try:
    import fcntl
except ImportError:  # pragma: no cover - exercised on non-POSIX only
    fcntl = None

_LOCK_UNSUPPORTED_ERRNOS = {
    err_no
    for err_no in (
        getattr(errno, "ENOTSUP", None),
        getattr(errno, "EOPNOTSUPP", None),
        getattr(errno, "ENOSYS", None),
    )
    if err_no is not None
}
_CONTENTION_ERRNOS = {errno.EAGAIN, errno.EWOULDBLOCK, errno.EACCES}


class LockPrimitive(Protocol):
    """Capability set the lock manager depends on."""

    path: Path

    @property
    def locked(self) -> bool:
        """Whether this instance currently holds the lock."""

    def lock_context(self, deadline: Deadline, retry_interval: float) -> None:
        """Acquire, retrying every ``retry_interval`` until ``deadline`` fires."""

    def try_lock(self) -> None:
        """Acquire without waiting. Raises ``LockContendedError`` when held elsewhere."""

    def unlock(self) -> None:
        """Release the lock. A no-op when not held."""

    def read(self, size: int = -1) -> bytes: ...

    def write(self, data: bytes) -> int: ...

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int: ...

    def truncate(self, size: int = 0) -> None: ...

    def sync(self) -> None: ...


LockFactory = Callable[[Path], LockPrimitive]


def _write_all(fd: int, payload: bytes) -> int:
    """Write complete payload to fd, handling short writes."""
    total_written = 0
    while total_written < len(payload):
        written = os.write(fd, payload[total_written:])
        if written <= 0:
            raise OSError("short write while persisting lock metadata")
        total_written += written
    return total_written


def _read_all(fd: int, chunk_size: int = 65536) -> bytes:
    chunks = []
    while True:
        chunk = os.read(fd, chunk_size)
        if not chunk:
            return b"".join(chunks)
        chunks.append(chunk)


class _FileDescriptorLock:
    """Shared fd lifecycle and stream access for the kernel-backed primitives.

    Subclasses provide ``_lock_nb`` and ``_unlock`` around the kernel call.
    """

    name = ""

    def __init__(self, path: str | os.PathLike[str]):
        self.path = Path(path)
        self._fd: int | None = None

    @staticmethod
    def is_supported() -> bool:
        return fcntl is not None

    @property
    def locked(self) -> bool:
        return self._fd is not None

    def _lock_nb(self, fd: int) -> None:
        raise NotImplementedError

    def _unlock(self, fd: int) -> None:
        raise NotImplementedError

    def try_lock(self) -> None:
        if self._fd is not None:
            return
        if not self.is_supported():
            raise LockBackendUnavailableError(f"{self.name} locks are unavailable on this platform")

        fd = os.open(str(self.path), os.O_CREAT | os.O_RDWR, LOCK_FILE_MODE)
        try:
            self._lock_nb(fd)
        except BlockingIOError as e:
            os.close(fd)
            raise LockContendedError(str(self.path)) from e
        except OSError as e:
            os.close(fd)
            if e.errno in _CONTENTION_ERRNOS:
                raise LockContendedError(str(self.path)) from e
            if e.errno in _LOCK_UNSUPPORTED_ERRNOS:
                raise LockBackendUnavailableError(
                    f"{self.name} is unsupported for lock path '{self.path}'"
                ) from e
            raise
        self._fd = fd

    def lock_context(self, deadline: Deadline, retry_interval: float) -> None:
        while True:
            try:
                self.try_lock()
                return
            except LockContendedError:
                pass
            except FileNotFoundError:
                # Lock directory may not exist yet.
                pass
            deadline.wait(retry_interval)

    def unlock(self) -> None:
        fd = self._fd
        if fd is None:
            return
        self._fd = None
        try:
            self._unlock(fd)
        finally:
            with contextlib.suppress(OSError):
                os.close(fd)

    def _require_fd(self) -> int:
        if self._fd is None:
            raise OSError(errno.EBADF, "lock file is not open (lock not held)", str(self.path))
        return self._fd

    def read(self, size: int = -1) -> bytes:
        fd = self._require_fd()
        if size < 0:
            return _read_all(fd)
        return os.read(fd, size)

    def write(self, data: bytes) -> int:
        return _write_all(self._require_fd(), bytes(data))

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        return os.lseek(self._require_fd(), offset, whence)

    def truncate(self, size: int = 0) -> None:
        os.ftruncate(self._require_fd(), size)

    def sync(self) -> None:
        os.fsync(self._require_fd())

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self.path)!r}, locked={self.locked})"


class FlockLock(_FileDescriptorLock):
    """BSD advisory lock backed by `fcntl.flock`.

    Locks belong to the open file description, so two instances contend even
    inside one process.
    """

    name = BACKEND_FLOCK

    def _lock_nb(self, fd: int) -> None:
        assert fcntl is not None  # For type checkers.
        fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)

    def _unlock(self, fd: int) -> None:
        assert fcntl is not None  # For type checkers.
        fcntl.flock(fd, fcntl.LOCK_UN)


class FcntlLock(_FileDescriptorLock):
    """POSIX record lock backed by `fcntl.lockf` (F_SETLK).

    Interoperates with other programs using fcntl record locks on the same
    file. Record locks are per process: instances in one process never
    exclude each other, and closing any descriptor of the file in this
    process drops the lock. In particular, ``LockManager.probe()`` through a
    second instance in the holder's own process releases the holder's lock:
    its try-acquire succeeds and then unlocks, and reading the record opens
    and closes the file. Probe from another process, or through the holding
    manager itself.
    """

    name = BACKEND_FCNTL

    def _lock_nb(self, fd: int) -> None:
        assert fcntl is not None  # For type checkers.
        fcntl.lockf(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)

    def _unlock(self, fd: int) -> None:
        assert fcntl is not None  # For type checkers.
        fcntl.lockf(fd, fcntl.LOCK_UN)


def create_lock_factory(
    backend_name: str | None = None,
    *,
    logger: logging.Logger | None = None,
) -> LockFactory:
    """Create a lock primitive factory from explicit value or environment override."""
    log = logger or logging.getLogger(__name__)
    requested = (backend_name or os.environ.get(ENV_BACKEND, BACKEND_AUTO)).strip().lower()

    if requested in (BACKEND_AUTO, BACKEND_FLOCK):
        if not FlockLock.is_supported():
            raise LockBackendUnavailableError("fcntl module unavailable; no OS lock backend on this platform")
        return FlockLock

    if requested == BACKEND_FCNTL:
        if not FcntlLock.is_supported():
            raise LockBackendUnavailableError("fcntl module unavailable; no OS lock backend on this platform")
        return FcntlLock

    log.warning("Unknown lock backend '%s'; falling back to auto selection", requested)
    return create_lock_factory(BACKEND_AUTO, logger=log)
