"""Configuration dataclasses for metalock.

These dataclasses centralize configuration options for type safety and easy
testing. They can be built from command-line arguments, from the environment
(optionally seeded from a ``.env`` file), or used directly in code.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

from dotenv import dotenv_values, find_dotenv

from metalock.core.exceptions import ConfigurationError

_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_VALID_LOG_FORMATS = ("text", "json")


def _read_env(env_file: str | Path | None) -> dict[str, str]:
    """Merge a .env file under the process environment; the environment wins."""
    dotenv_path = env_file if env_file is not None else find_dotenv(usecwd=True)
    merged: dict[str, str] = {}
    if dotenv_path:
        merged.update({k: v for k, v in dotenv_values(dotenv_path).items() if v is not None})
    merged.update(os.environ)
    return merged


def _float_from_env(env: dict[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number", field=name, details=repr(raw)) from e


@dataclass
class LockConfig:
    """Configuration for lock acquisition.

    Attributes:
        retry_interval: Seconds between acquisition attempts (default: 0.5)
        default_timeout: Acquisition budget used when none is given (default: 5.0)
        backend: Lock primitive name: auto, flock or fcntl (default: auto)
    """

    retry_interval: float = 0.5
    default_timeout: float = 5.0
    backend: str = "auto"

    def validate(self) -> LockConfig:
        from metalock.core.constants import KNOWN_BACKENDS

        if self.retry_interval <= 0:
            raise ConfigurationError("retry_interval must be positive", field="retry_interval")
        if self.default_timeout < 0:
            raise ConfigurationError("default_timeout cannot be negative", field="default_timeout")
        if self.backend.strip().lower() not in KNOWN_BACKENDS:
            raise ConfigurationError(
                f"Unknown lock backend '{self.backend}'",
                field="backend",
                details=f"expected one of {', '.join(KNOWN_BACKENDS)}",
            )
        return self

    def with_overrides(self, **overrides: Any) -> LockConfig:
        """Return a copy with every non-None override applied."""
        known = {f.name for f in fields(self)}
        applied = {k: v for k, v in overrides.items() if k in known and v is not None}
        return replace(self, **applied).validate()

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> LockConfig:
        from metalock.core.constants import ENV_BACKEND, ENV_DEFAULT_TIMEOUT, ENV_RETRY_INTERVAL

        env = _read_env(env_file)
        defaults = cls()
        return cls(
            retry_interval=_float_from_env(env, ENV_RETRY_INTERVAL, defaults.retry_interval),
            default_timeout=_float_from_env(env, ENV_DEFAULT_TIMEOUT, defaults.default_timeout),
            backend=env.get(ENV_BACKEND, defaults.backend).strip().lower() or defaults.backend,
        ).validate()


@dataclass
class LogConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level string (default: "INFO")
        format: "text" or "json" (default: "text")
        file: Optional log file path; console only when unset
        file_max_bytes: Maximum size per log file (default: 10MB)
        file_backup_count: Number of backup log files (default: 5)
    """

    level: str = "INFO"
    format: str = "text"
    file: str | None = None
    file_max_bytes: int = 10 * 1024 * 1024  # 10MB
    file_backup_count: int = 5

    def validate(self) -> LogConfig:
        if self.level.upper() not in _VALID_LOG_LEVELS:
            raise ConfigurationError(f"Invalid log level '{self.level}'", field="level")
        if self.format.lower() not in _VALID_LOG_FORMATS:
            raise ConfigurationError(f"Invalid log format '{self.format}'", field="format")
        return self

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> LogConfig:
        from metalock.core.constants import ENV_LOG_FORMAT, ENV_LOG_LEVEL

        env = _read_env(env_file)
        defaults = cls()
        return cls(
            level=env.get(ENV_LOG_LEVEL, defaults.level),
            format=env.get(ENV_LOG_FORMAT, defaults.format),
        ).validate()
