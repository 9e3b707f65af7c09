"""Core module - exceptions, configuration, logging and the lock subsystem."""

from metalock.core.version import __version__

from metalock.core.exceptions import (
    MetalockError,
    ConfigurationError,
    LockTimeout,
    AcquireCancelled,
    DeadlineExceeded,
    LockContendedError,
    LockBackendUnavailableError,
    MetadataWriteError,
    MetadataReadError,
)

from metalock.core.config import LockConfig, LogConfig

from metalock.core.logging import (
    JSONFormatter,
    ContextLoggerAdapter,
    with_log_context,
    setup_logging,
)

__all__ = [
    "__version__",
    # Exceptions
    "MetalockError",
    "ConfigurationError",
    "LockTimeout",
    "AcquireCancelled",
    "DeadlineExceeded",
    "LockContendedError",
    "LockBackendUnavailableError",
    "MetadataWriteError",
    "MetadataReadError",
    # Config
    "LockConfig",
    "LogConfig",
    # Logging
    "JSONFormatter",
    "ContextLoggerAdapter",
    "with_log_context",
    "setup_logging",
]
