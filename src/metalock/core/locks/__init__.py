"""Locking subsystem for cross-process coordination.

This package centralizes lock acquisition/release behavior behind a small
primitive abstraction so callers can use a stable API.
"""

from metalock.core.locks.backends import (
    FcntlLock,
    FlockLock,
    LockFactory,
    LockPrimitive,
    create_lock_factory,
)
from metalock.core.locks.deadline import Deadline
from metalock.core.locks.manager import LockManager
from metalock.core.locks.meta import Meta

__all__ = [
    "Deadline",
    "FcntlLock",
    "FlockLock",
    "LockFactory",
    "LockManager",
    "LockPrimitive",
    "Meta",
    "create_lock_factory",
]
