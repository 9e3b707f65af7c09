"""Tests for command-line interface"""
import json
import logging
import sys

import pytest

import metalock.cli as cli_module
import metalock.core.locks.backends as backends_module
from metalock.cli import main, parse_arguments
from metalock.core.constants import (
    EXIT_COMMAND_NOT_FOUND,
    EXIT_CONFIG,
    EXIT_HELD,
    EXIT_OK,
    EXIT_TEMPFAIL,
    EXIT_UNREADABLE,
    EXIT_USAGE,
)
from metalock.core.locks.backends import FlockLock
from metalock.core.locks.manager import LockManager

pytestmark = pytest.mark.skipif(backends_module.fcntl is None, reason="fcntl not available on this platform")


@pytest.fixture(autouse=True)
def _isolated(clean_env, monkeypatch):
    """Keep CLI runs from reconfiguring the test session's root logger"""
    monkeypatch.setattr(cli_module, "setup_logging", lambda config, stream=None: logging.getLogger("metalock"))


class TestCLIArguments:
    """Test command-line argument parsing"""

    def test_parse_probe(self):
        args = parse_arguments(["probe", "/tmp/a.lck"])
        assert args.command == "probe"
        assert args.path == "/tmp/a.lck"
        assert args.backend is None

    def test_parse_run_splits_command_at_double_dash(self):
        args = parse_arguments(
            ["--backend", "fcntl", "run", "/tmp/a.lck", "--timeout", "3", "--intent", "nightly", "--", "ls", "--timeout"]
        )
        assert args.command == "run"
        assert args.backend == "fcntl"
        assert args.timeout == 3.0
        assert args.intent == "nightly"
        assert args.cmd == ["ls", "--timeout"]

    def test_parse_log_level_is_case_insensitive(self):
        args = parse_arguments(["--log-level", "debug", "probe", "x"])
        assert args.log_level == "DEBUG"

    def test_unknown_backend_rejected(self):
        with pytest.raises(SystemExit):
            parse_arguments(["--backend", "nfs", "probe", "x"])

    def test_command_required(self):
        with pytest.raises(SystemExit):
            parse_arguments([])


class TestProbeCommand:
    """Test `metalock probe`"""

    def test_free_lock(self, tmp_path, capsys):
        assert main(["probe", str(tmp_path / "a.lck")]) == EXIT_OK
        assert capsys.readouterr().out.strip() == "free"

    def test_held_lock_prints_holder_record(self, tmp_path, capsys):
        lock_path = tmp_path / "a.lck"
        holder = LockManager(lock_path, "holder-session", FlockLock)
        holder.lock(1.0, "reindex")
        try:
            assert main(["probe", str(lock_path)]) == EXIT_HELD
        finally:
            holder.unlock()

        record = json.loads(capsys.readouterr().out)
        assert record["intent"] == "reindex"
        assert record["session_id"] == "holder-session"

    def test_unreadable_holder_record(self, tmp_path, capsys):
        lock_path = tmp_path / "a.lck"
        holder = LockManager(lock_path, "holder", FlockLock)
        holder.lock(1.0)
        try:
            holder.seek(0)
            holder.truncate(0)
            assert main(["probe", str(lock_path)]) == EXIT_UNREADABLE
        finally:
            holder.unlock()

        assert capsys.readouterr().out.startswith("held (holder record unreadable")


class TestRunCommand:
    """Test `metalock run`"""

    def test_runs_command_and_returns_its_exit_code(self, tmp_path):
        lock_path = tmp_path / "a.lck"
        marker = tmp_path / "marker.json"
        script = (
            "import sys; "
            f"open({str(marker)!r}, 'w').write(open({str(lock_path)!r}).read()); "
            "sys.exit(3)"
        )

        code = main(["run", str(lock_path), "--intent", "scripted", "--session", "s-9", "--", sys.executable, "-c", script])

        assert code == 3
        record = json.loads(marker.read_text())
        assert record["intent"] == "scripted"
        assert record["session_id"] == "s-9"
        assert not lock_path.exists()

    def test_timeout_exit_code_and_holder_report(self, tmp_path, capsys):
        lock_path = tmp_path / "a.lck"
        holder = LockManager(lock_path, "holder-session", FlockLock)
        holder.lock(1.0, "long job")
        try:
            code = main(["--retry-interval", "0.01", "run", str(lock_path), "--timeout", "0.05", "--", "true"])
        finally:
            holder.unlock()

        assert code == EXIT_TEMPFAIL
        err = capsys.readouterr().err
        assert "lock timeout exceeded" in err
        assert "long job" in err

    def test_missing_command(self, tmp_path, capsys):
        assert main(["run", str(tmp_path / "a.lck")]) == EXIT_USAGE
        assert "no command given" in capsys.readouterr().err

    def test_command_not_found_releases_lock(self, tmp_path):
        lock_path = tmp_path / "a.lck"

        code = main(["run", str(lock_path), "--", str(tmp_path / "does-not-exist")])

        assert code == EXIT_COMMAND_NOT_FOUND
        assert not lock_path.exists()

    def test_bad_environment_configuration(self, tmp_path, monkeypatch, capsys):
        monkeypatch.setenv("METALOCK_RETRY_INTERVAL", "soon")

        assert main(["probe", str(tmp_path / "a.lck")]) == EXIT_CONFIG
        assert "METALOCK_RETRY_INTERVAL" in capsys.readouterr().err
