"""Custom exceptions for metalock.

All exception classes carry a short message plus optional details so callers
can log them without having to know which layer raised them.
"""


class MetalockError(Exception):
    """Base exception for all metalock errors."""

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class ConfigurationError(MetalockError):
    """Exception raised for invalid configuration values.

    Examples:
        - Non-numeric METALOCK_RETRY_INTERVAL
        - Negative default timeout
        - Unknown log format
    """

    def __init__(self, message: str, field: str | None = None, details: str | None = None):
        self.field = field
        super().__init__(message, details)


class LockTimeout(MetalockError, TimeoutError):
    """Raised when the lock could not be acquired before the deadline.

    The message is stable so callers matching on text keep working.

    Attributes:
        path: Lock file path that stayed contended
        timeout: Acquisition budget in seconds
    """

    def __init__(self, path: str | None = None, timeout: float | None = None):
        self.path = path
        self.timeout = timeout
        super().__init__("lock timeout exceeded")


class AcquireCancelled(MetalockError):
    """Raised by a lock primitive when its cancel signal fired."""

    def __init__(self, message: str = "lock acquisition cancelled", details: str | None = None):
        super().__init__(message, details)


class DeadlineExceeded(AcquireCancelled):
    """Raised by a lock primitive when its deadline elapsed."""

    def __init__(self, timeout: float | None = None):
        self.timeout = timeout
        super().__init__("deadline exceeded")


class LockContendedError(MetalockError):
    """Raised when a non-blocking lock attempt loses to another holder."""

    def __init__(self, path: str):
        self.path = path
        super().__init__("lock is held elsewhere", path)


class LockBackendUnavailableError(MetalockError, OSError):
    """Raised when a backend exists but is unusable for the target lock path."""


class MetadataWriteError(MetalockError):
    """Raised when the holder record could not be written after acquisition.

    The lock itself stays held; releasing it is up to the caller.
    """

    def __init__(self, path: str, original_error: Exception | None = None):
        self.path = path
        self.original_error = original_error
        super().__init__(
            f"lock acquired but metadata write failed for '{path}'",
            str(original_error) if original_error else None,
        )


class MetadataReadError(MetalockError):
    """Raised when the holder record could not be read or decoded.

    Expected when a probe races the holder's write. ``meta`` is always the
    empty record and ``raw`` holds whatever bytes were read.
    """

    def __init__(self, message: str, raw: bytes = b"", details: str | None = None):
        from metalock.core.locks.meta import Meta

        self.raw = raw
        self.meta = Meta()
        super().__init__(message, details)
