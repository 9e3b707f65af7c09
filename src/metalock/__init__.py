"""
metalock - advisory file locks that record who holds them and why.

A ``LockManager`` takes an exclusive OS advisory lock on a file, writes a
small JSON record (timestamp, pid, intent, session id) into it, and can probe
the current holder without blocking.
"""

from metalock.core.exceptions import (
    LockTimeout,
    MetadataReadError,
    MetadataWriteError,
    MetalockError,
)
from metalock.core.locks import (
    Deadline,
    FcntlLock,
    FlockLock,
    LockManager,
    Meta,
    create_lock_factory,
)
from metalock.core.version import __version__

__all__ = [
    "__version__",
    "Deadline",
    "FcntlLock",
    "FlockLock",
    "LockManager",
    "LockTimeout",
    "Meta",
    "MetadataReadError",
    "MetadataWriteError",
    "MetalockError",
    "create_lock_factory",
]
