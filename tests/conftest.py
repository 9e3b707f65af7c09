"""Pytest configuration and fixtures for metalock tests"""
import pytest

from metalock.core.constants import (
    ENV_BACKEND,
    ENV_DEFAULT_TIMEOUT,
    ENV_LOG_FORMAT,
    ENV_LOG_LEVEL,
    ENV_RETRY_INTERVAL,
)
from metalock.testing import reset_memory_locks


@pytest.fixture(autouse=True)
def clean_memory_locks():
    """Drop in-memory lock state between tests"""
    reset_memory_locks()
    yield
    reset_memory_locks()


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Unset metalock environment variables and run from an empty directory.

    The empty working directory keeps .env discovery from picking up a stray
    file from the checkout.
    """
    for name in (ENV_BACKEND, ENV_DEFAULT_TIMEOUT, ENV_RETRY_INTERVAL, ENV_LOG_LEVEL, ENV_LOG_FORMAT):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def lock_path(tmp_path):
    """Path of a lock file inside an existing temporary directory"""
    return tmp_path / "resource.lck"
