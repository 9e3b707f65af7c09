"""Cancellation signal handed to lock primitives while they retry."""

from __future__ import annotations

import threading
import time

from metalock.core.exceptions import AcquireCancelled, DeadlineExceeded


class Deadline:
    """Monotonic deadline, optionally cancelled early through an event.

    Waiting never starts a thread: ``wait`` sleeps on the calling thread (or
    on the cancel event when one is attached).
    """

    def __init__(self, timeout: float, cancel_event: threading.Event | None = None):
        self.timeout = timeout
        self.expires_at = time.monotonic() + max(0.0, timeout)
        self._cancel_event = cancel_event

    def remaining(self) -> float:
        return max(0.0, self.expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        return time.monotonic() >= self.expires_at

    @property
    def cancelled(self) -> bool:
        return self._cancel_event is not None and self._cancel_event.is_set()

    def check(self) -> None:
        """Raise if the caller should stop waiting."""
        if self.cancelled:
            raise AcquireCancelled()
        if self.expired:
            raise DeadlineExceeded(self.timeout)

    def wait(self, interval: float) -> None:
        """Sleep up to ``interval`` seconds, bounded by the deadline."""
        self.check()
        delay = min(max(0.0, interval), self.remaining())
        if self._cancel_event is not None:
            self._cancel_event.wait(delay)
        else:
            time.sleep(delay)
