"""Tests for configuration dataclasses and environment loading"""
import pytest

from metalock.core.config import LockConfig, LogConfig
from metalock.core.constants import DEFAULT_LOCK, DEFAULT_RETRY_INTERVAL
from metalock.core.exceptions import ConfigurationError


class TestLockConfig:
    """Test lock configuration"""

    def test_defaults(self):
        config = LockConfig()
        assert config.retry_interval == DEFAULT_RETRY_INTERVAL == 0.5
        assert config.default_timeout == 5.0
        assert config.backend == "auto"
        assert DEFAULT_LOCK == config

    def test_from_env_without_variables_uses_defaults(self, clean_env):
        assert LockConfig.from_env() == LockConfig()

    def test_from_env_reads_variables(self, clean_env, monkeypatch):
        monkeypatch.setenv("METALOCK_RETRY_INTERVAL", "0.05")
        monkeypatch.setenv("METALOCK_DEFAULT_TIMEOUT", "30")
        monkeypatch.setenv("METALOCK_BACKEND", "FCNTL")

        config = LockConfig.from_env()

        assert config.retry_interval == 0.05
        assert config.default_timeout == 30.0
        assert config.backend == "fcntl"

    def test_from_env_reads_dotenv_file(self, clean_env):
        env_file = clean_env / "settings.env"
        env_file.write_text("METALOCK_RETRY_INTERVAL=0.25\nMETALOCK_BACKEND=flock\n")

        config = LockConfig.from_env(env_file)

        assert config.retry_interval == 0.25
        assert config.backend == "flock"

    def test_dotenv_in_working_directory_is_discovered(self, clean_env):
        (clean_env / ".env").write_text("METALOCK_DEFAULT_TIMEOUT=12\n")

        assert LockConfig.from_env().default_timeout == 12.0

    def test_process_environment_wins_over_dotenv(self, clean_env, monkeypatch):
        env_file = clean_env / "settings.env"
        env_file.write_text("METALOCK_RETRY_INTERVAL=0.25\n")
        monkeypatch.setenv("METALOCK_RETRY_INTERVAL", "0.75")

        assert LockConfig.from_env(env_file).retry_interval == 0.75

    def test_dotenv_does_not_leak_into_process_environment(self, clean_env):
        import os

        env_file = clean_env / "settings.env"
        env_file.write_text("METALOCK_BACKEND=fcntl\n")

        LockConfig.from_env(env_file)

        assert "METALOCK_BACKEND" not in os.environ

    def test_non_numeric_interval_raises(self, clean_env, monkeypatch):
        monkeypatch.setenv("METALOCK_RETRY_INTERVAL", "fast")

        with pytest.raises(ConfigurationError) as exc_info:
            LockConfig.from_env()

        assert exc_info.value.field == "METALOCK_RETRY_INTERVAL"
        assert "'fast'" in str(exc_info.value)

    @pytest.mark.parametrize(
        "kwargs",
        [{"retry_interval": 0}, {"retry_interval": -1}, {"default_timeout": -0.1}, {"backend": "nfs"}],
    )
    def test_validate_rejects_bad_values(self, kwargs):
        with pytest.raises(ConfigurationError):
            LockConfig(**kwargs).validate()

    def test_with_overrides_skips_none(self):
        config = LockConfig(retry_interval=0.1).with_overrides(retry_interval=None, backend="fcntl", unknown=1)
        assert config.retry_interval == 0.1
        assert config.backend == "fcntl"


class TestLogConfig:
    """Test logging configuration"""

    def test_defaults(self):
        config = LogConfig()
        assert config.level == "INFO"
        assert config.format == "text"
        assert config.file is None
        assert config.file_max_bytes == 10 * 1024 * 1024

    def test_from_env(self, clean_env, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("METALOCK_LOG_FORMAT", "json")

        config = LogConfig.from_env()

        assert config.level == "debug"
        assert config.format == "json"

    @pytest.mark.parametrize("kwargs", [{"level": "LOUD"}, {"format": "xml"}])
    def test_validate_rejects_bad_values(self, kwargs):
        with pytest.raises(ConfigurationError):
            LogConfig(**kwargs).validate()
