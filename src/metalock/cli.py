"""Command-line interface for inspecting and holding metalock locks."""

from __future__ import annotations

import argparse
import json
import logging
import os
import subprocess
import sys
import uuid
from dataclasses import replace

from metalock.core.config import LockConfig, LogConfig
from metalock.core.constants import (
    EXIT_COMMAND_NOT_FOUND,
    EXIT_CONFIG,
    EXIT_HELD,
    EXIT_OK,
    EXIT_OSERR,
    EXIT_TEMPFAIL,
    EXIT_UNREADABLE,
    EXIT_USAGE,
    KNOWN_BACKENDS,
)
from metalock.core.exceptions import (
    ConfigurationError,
    LockTimeout,
    MetadataReadError,
    MetadataWriteError,
)
from metalock.core.locks.manager import LockManager
from metalock.core.logging import setup_logging
from metalock.core.version import __version__


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments"""
    parser = argparse.ArgumentParser(
        prog="metalock",
        description="metalock - advisory file locks that record who holds them and why",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Is anybody holding the lock?
  metalock probe /run/myapp/compact.lck

  # Run a command while holding the lock, waiting up to 30s for it
  metalock run /run/myapp/compact.lck --timeout 30 --intent "nightly compact" -- ./compact.sh

  # Use POSIX record locks instead of flock
  metalock --backend fcntl probe /run/myapp/compact.lck

Exit codes (probe):
  0 free, 1 held, 2 held but the holder record could not be decoded

Exit codes (run):
  the command's exit code, or 75 when the lock timeout was exceeded
""",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--backend",
        choices=KNOWN_BACKENDS,
        default=None,
        help="Lock primitive to use (default: $METALOCK_BACKEND or auto)",
    )
    parser.add_argument(
        "--retry-interval",
        type=float,
        default=None,
        metavar="SECONDS",
        help="Seconds between acquisition attempts (default: $METALOCK_RETRY_INTERVAL or 0.5)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        default=None,
        help="Logging level (default: $LOG_LEVEL or INFO)",
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default=None,
        help="Log output format (default: text)",
    )
    parser.add_argument("--env-file", default=None, help="Read settings from this .env file")

    subparsers = parser.add_subparsers(dest="command", required=True)

    probe_parser = subparsers.add_parser("probe", help="Report the current lock holder without blocking")
    probe_parser.add_argument("path", help="Lock file path")

    run_parser = subparsers.add_parser("run", help="Run a command while holding the lock")
    run_parser.add_argument("path", help="Lock file path")
    run_parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        metavar="SECONDS",
        help="Give up waiting for the lock after this long (default: $METALOCK_DEFAULT_TIMEOUT or 5)",
    )
    run_parser.add_argument("--intent", default="", help="Why the lock is taken, recorded in the lock file")
    run_parser.add_argument("--session", default=None, help="Session identifier (default: random)")

    # Everything after "--" is the command for `run`.
    argv = list(sys.argv[1:] if argv is None else argv)
    command: list[str] = []
    if "--" in argv:
        split_at = argv.index("--")
        argv, command = argv[:split_at], argv[split_at + 1 :]

    args = parser.parse_args(argv)
    args.cmd = command
    return args


def _error(message: str) -> None:
    print(f"Error: {message}", file=sys.stderr)


def _load_config(args: argparse.Namespace) -> tuple[LockConfig, LogConfig]:
    lock_config = LockConfig.from_env(args.env_file).with_overrides(
        backend=args.backend,
        retry_interval=args.retry_interval,
    )
    log_config = LogConfig.from_env(args.env_file)
    if args.log_level:
        log_config = replace(log_config, level=args.log_level)
    if args.log_format:
        log_config = replace(log_config, format=args.log_format)
    return lock_config, log_config.validate()


def _cmd_probe(args: argparse.Namespace, config: LockConfig, logger: logging.Logger) -> int:
    try:
        meta = LockManager.from_config(args.path, "", config, logger=logger).probe()
    except MetadataReadError as e:
        print(f"held (holder record unreadable: {e})")
        return EXIT_UNREADABLE
    except OSError as e:
        _error(f"cannot probe {args.path}: {e}")
        return EXIT_OSERR

    if meta.is_empty:
        print("free")
        return EXIT_OK
    print(json.dumps(meta.to_dict()))
    return EXIT_HELD


def _cmd_run(args: argparse.Namespace, config: LockConfig, logger: logging.Logger) -> int:
    cmd = args.cmd
    if not cmd:
        _error("no command given; usage: metalock run PATH [options] -- CMD [ARGS...]")
        return EXIT_USAGE

    timeout = args.timeout if args.timeout is not None else config.default_timeout
    session_id = args.session or uuid.uuid4().hex
    try:
        manager = LockManager.from_config(args.path, session_id, config, logger=logger)
        with manager.hold(timeout, args.intent):
            logger.info("Running %s under lock %s", cmd[0], args.path)
            try:
                completed = subprocess.run(cmd, check=False)
            except FileNotFoundError:
                _error(f"command not found: {cmd[0]}")
                return EXIT_COMMAND_NOT_FOUND
            return completed.returncode
    except LockTimeout as e:
        _error(f"{e} waiting {timeout:g}s for {args.path}")
        holder = _describe_holder(args.path, config, logger)
        if holder:
            print(f"Held by: {holder}", file=sys.stderr)
        return EXIT_TEMPFAIL
    except MetadataWriteError as e:
        _error(str(e))
        return EXIT_OSERR
    except OSError as e:
        _error(f"cannot lock {args.path}: {e}")
        return EXIT_OSERR


def _describe_holder(path: str, config: LockConfig, logger: logging.Logger) -> str | None:
    try:
        meta = LockManager.from_config(path, "", config, logger=logger).probe()
    except (MetadataReadError, OSError):
        return None
    if meta.is_empty:
        return None
    return f"pid {meta.pid}, session {meta.session_id!r}, intent {meta.intent!r}"


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the metalock command"""
    args = parse_arguments(argv)

    try:
        lock_config, log_config = _load_config(args)
    except ConfigurationError as e:
        _error(str(e))
        return EXIT_CONFIG

    logger = setup_logging(log_config, stream=sys.stderr)
    logger.debug("metalock %s pid=%d backend=%s", __version__, os.getpid(), lock_config.backend)

    if args.command == "probe":
        return _cmd_probe(args, lock_config, logger)
    return _cmd_run(args, lock_config, logger)
