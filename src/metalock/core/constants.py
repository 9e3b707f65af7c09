"""Constants and default values for metalock.

This module centralizes defaults and environment variable names used
throughout the package.
"""

from metalock.core.config import LockConfig, LogConfig

# ==================== LOCK DEFAULTS ====================

DEFAULT_RETRY_INTERVAL: float = 0.5  # Seconds between acquisition attempts
DEFAULT_LOCK_TIMEOUT: float = 5.0  # Seconds, used by the CLI when --timeout is omitted
LOCK_FILE_MODE: int = 0o644

# ==================== BACKEND NAMES ====================

BACKEND_AUTO: str = "auto"
BACKEND_FLOCK: str = "flock"
BACKEND_FCNTL: str = "fcntl"
KNOWN_BACKENDS: tuple[str, ...] = (BACKEND_AUTO, BACKEND_FLOCK, BACKEND_FCNTL)

# ==================== ENVIRONMENT ====================

ENV_BACKEND: str = "METALOCK_BACKEND"
ENV_RETRY_INTERVAL: str = "METALOCK_RETRY_INTERVAL"
ENV_DEFAULT_TIMEOUT: str = "METALOCK_DEFAULT_TIMEOUT"
ENV_LOG_LEVEL: str = "LOG_LEVEL"
ENV_LOG_FORMAT: str = "METALOCK_LOG_FORMAT"

# ==================== LOGGING DEFAULTS ====================

LOG_FILE_MAX_BYTES: int = 10 * 1024 * 1024  # 10MB max per log file
LOG_FILE_BACKUP_COUNT: int = 5  # Number of backup log files to keep

# ==================== CLI EXIT CODES ====================

EXIT_OK: int = 0
EXIT_HELD: int = 1
EXIT_UNREADABLE: int = 2
EXIT_USAGE: int = 64  # sysexits.h EX_USAGE
EXIT_OSERR: int = 71  # sysexits.h EX_OSERR
EXIT_TEMPFAIL: int = 75  # sysexits.h EX_TEMPFAIL
EXIT_CONFIG: int = 78  # sysexits.h EX_CONFIG
EXIT_COMMAND_NOT_FOUND: int = 127

# ==================== DEFAULT CONFIG INSTANCES ====================

DEFAULT_LOCK = LockConfig()
DEFAULT_LOG = LogConfig()
