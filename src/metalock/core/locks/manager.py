"""Lock manager: timeout-bounded acquisition plus a holder record in the lock file."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime, timedelta
from pathlib import Path

from metalock.core.config import LockConfig
from metalock.core.constants import DEFAULT_RETRY_INTERVAL
from metalock.core.exceptions import (
    DeadlineExceeded,
    LockContendedError,
    LockTimeout,
    MetadataReadError,
    MetadataWriteError,
)
from metalock.core.locks.backends import LockFactory, LockPrimitive, create_lock_factory
from metalock.core.locks.deadline import Deadline
from metalock.core.locks.meta import Meta
from metalock.core.logging import with_log_context


def _seconds(value: float | timedelta) -> float:
    if isinstance(value, timedelta):
        return value.total_seconds()
    return float(value)


class LockManager:
    """Advisory lock on one path, annotated with who holds it and why.

    Usage:
        manager = LockManager("/run/app/compact.lck", session_id)
        manager.lock(timeout=5, intent="compact")
        try:
            ...
        finally:
            manager.unlock()

    The manager is bound to one path and one session for its lifetime and
    owns its lock primitive exclusively. Ownership is decided by the
    primitive; the holder record is informational and may be observed half
    written by concurrent probes.

    Args:
        path: Lock file path
        session_id: Caller-assigned label written into the holder record
        lock_factory: Builds the lock primitive for ``path``. Defaults to the
            backend named by ``METALOCK_BACKEND`` (flock when unset)
        retry_interval: Seconds between acquisition attempts
        logger: Optional logger; lock path and session are bound as context
    """

    def __init__(
        self,
        path: str | os.PathLike[str],
        session_id: str,
        lock_factory: LockFactory | None = None,
        *,
        retry_interval: float | timedelta = DEFAULT_RETRY_INTERVAL,
        logger: logging.Logger | None = None,
    ):
        self._path = Path(path)
        self._session_id = session_id
        self.retry_interval = _seconds(retry_interval)
        base_logger = logger or logging.getLogger(__name__)
        self.logger = with_log_context(base_logger, lock_path=str(self._path), session_id=session_id)
        factory = lock_factory or create_lock_factory(logger=base_logger)
        self.locker: LockPrimitive = factory(self._path)
        self._held = False

    @classmethod
    def from_config(
        cls,
        path: str | os.PathLike[str],
        session_id: str,
        config: LockConfig,
        *,
        logger: logging.Logger | None = None,
    ) -> LockManager:
        config.validate()
        return cls(
            path,
            session_id,
            create_lock_factory(config.backend, logger=logger),
            retry_interval=config.retry_interval,
            logger=logger,
        )

    @property
    def path(self) -> Path:
        return self._path

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def locked(self) -> bool:
        return self._held

    def lock(self, timeout: float | timedelta, intent: str = "") -> Meta:
        """Acquire the lock within ``timeout`` and write the holder record.

        Returns:
            The record written into the lock file

        Raises:
            LockTimeout: The lock stayed contended until the deadline
            MetadataWriteError: The lock was acquired but the record could not
                be written; the lock is still held
            OSError: Any other acquisition failure from the primitive, unchanged
        """
        timeout_seconds = _seconds(timeout)
        deadline = Deadline(timeout_seconds)
        try:
            self.locker.lock_context(deadline, self.retry_interval)
        except DeadlineExceeded as e:
            self.logger.warning("Lock on %s not acquired within %.3fs", self._path, timeout_seconds)
            raise LockTimeout(str(self._path), timeout_seconds) from e

        self._held = True
        self.logger.debug("Lock acquired on %s (intent=%r)", self._path, intent)
        return self._write_meta(intent)

    def _write_meta(self, intent: str) -> Meta:
        meta = Meta(
            at=datetime.now(UTC),
            pid=os.getpid(),
            intent=intent,
            session_id=self._session_id,
        )
        try:
            self.locker.seek(0, os.SEEK_SET)
            self.locker.truncate(0)
            self.locker.write(meta.encode())
            self.locker.sync()
        except OSError as e:
            self.logger.warning("Lock held on %s but metadata write failed: %s", self._path, e)
            raise MetadataWriteError(str(self._path), e) from e
        return meta

    def unlock(self) -> None:
        """Release the lock. Safe to call when nothing is held.

        The lock file is emptied and removed first, best effort, whether or not
        this manager holds it. The primitive release always runs and its error,
        if any, is raised.
        """
        self._remove_lock_file()
        self._held = False
        self.locker.unlock()
        self.logger.debug("Lock released on %s", self._path)

    def _remove_lock_file(self) -> None:
        try:
            os.truncate(self._path, 0)
        except OSError as e:
            self.logger.debug("Ignoring truncate failure on %s: %s", self._path, e)
        try:
            os.remove(self._path)
        except OSError as e:
            self.logger.debug("Ignoring remove failure on %s: %s", self._path, e)

    def probe(self) -> Meta:
        """Report the current holder without blocking.

        Returns an empty ``Meta`` when the lock is free. A missing lock file
        means the lock is free and is not created; otherwise the lock is
        released again before returning. When the lock is held, the holder
        record is read from the lock file with plain file I/O.

        Raises:
            MetadataReadError: The holder record was missing, partial or
                malformed. Expected when the holder has not finished writing.
        """
        if self._held:
            return self._read_own_meta()
        if not self._path.exists():
            return Meta()
        try:
            self.locker.try_lock()
        except LockContendedError:
            return self._read_holder_meta()
        self.locker.unlock()
        return Meta()

    def _read_own_meta(self) -> Meta:
        # Read through the held descriptor: opening and closing the path again
        # would drop a POSIX record lock held by this process.
        position = self.locker.seek(0, os.SEEK_CUR)
        try:
            self.locker.seek(0, os.SEEK_SET)
            raw = self.locker.read()
        finally:
            self.locker.seek(position, os.SEEK_SET)
        return Meta.decode(raw)

    def _read_holder_meta(self) -> Meta:
        try:
            raw = self._path.read_bytes()
        except OSError as e:
            raise MetadataReadError("lock metadata unreadable", details=str(e)) from e
        try:
            return Meta.decode(raw)
        except MetadataReadError as e:
            self.logger.debug("Holder record on %s not decodable yet: %s", self._path, e)
            raise

    @contextmanager
    def hold(self, timeout: float | timedelta, intent: str = "") -> Iterator[LockManager]:
        """Hold the lock for the duration of a ``with`` block."""
        try:
            self.lock(timeout, intent)
        except MetadataWriteError:
            self.unlock()
            raise
        try:
            yield self
        finally:
            self.unlock()

    # Stream access to the held lock file.

    def read(self, size: int = -1) -> bytes:
        return self.locker.read(size)

    def write(self, data: bytes) -> int:
        return self.locker.write(data)

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        return self.locker.seek(offset, whence)

    def truncate(self, size: int = 0) -> None:
        self.locker.truncate(size)

    def sync(self) -> None:
        self.locker.sync()

    def __repr__(self) -> str:
        return f"LockManager({str(self._path)!r}, session_id={self._session_id!r}, locked={self._held})"
