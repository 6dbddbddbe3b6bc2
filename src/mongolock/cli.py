"""Command-line interface: probe a lock or run a command while holding it."""

import argparse
import logging
import subprocess
import sys
from dataclasses import replace
from datetime import timedelta
from pathlib import Path

from mongolock.config import load_config
from mongolock.exceptions import LockAcquisitionTimeoutError, LockConfigError
from mongolock.locking import LockProvider, create_mongo_lock_provider
from mongolock.logging import LoggingConfig, configure_logging

EXIT_OK = 0
EXIT_HELD = 1
EXIT_TIMEOUT = 2
EXIT_CONFIG_ERROR = 3


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the ``mongolock`` command."""
    parser = argparse.ArgumentParser(
        prog="mongolock",
        description="Distributed locks stored in a MongoDB collection",
    )
    parser.add_argument(
        "--config",
        type=Path,
        required=True,
        help="Path to configuration YAML file",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    probe = subparsers.add_parser(
        "probe",
        help="Exit 0 if the resource is free, 1 if it is held",
    )
    probe.add_argument("resource", help="Resource identifier")

    run = subparsers.add_parser(
        "run",
        help="Run a command while holding the lock for a resource",
    )
    run.add_argument("resource", help="Resource identifier")
    run.add_argument(
        "--expiration-seconds",
        type=float,
        default=None,
        help="Lock lifetime if never released (default: from config)",
    )
    run.add_argument(
        "--max-attempts",
        type=int,
        default=None,
        help="Acquisition attempts before giving up (default: from config)",
    )
    run.add_argument(
        "cmd",
        nargs=argparse.REMAINDER,
        help="Command to execute, after '--'",
    )
    return parser


def probe_resource(provider: LockProvider, resource: str, logger: logging.Logger) -> int:
    """Report whether ``resource`` is currently free."""
    if provider.is_lock_acquired(resource):
        logger.info("Resource %s is free.", resource)
        return EXIT_OK
    logger.info("Resource %s is held by another client.", resource)
    return EXIT_HELD


def run_locked(
    provider: LockProvider,
    resource: str,
    command: list[str],
    logger: logging.Logger,
    expiration_seconds: float | None = None,
) -> int:
    """Hold the lock for ``resource`` while ``command`` runs.

    Returns:
        The command's exit code, or EXIT_TIMEOUT if the lock was never acquired.

    """
    expiration_delay = (
        None if expiration_seconds is None else timedelta(seconds=expiration_seconds)
    )
    try:
        with provider.lock(resource, expiration_delay):
            logger.info("Running %s under lock %s", " ".join(command), resource)
            result = subprocess.run(command, check=False)  # noqa: S603
    except LockAcquisitionTimeoutError as e:
        logger.error(str(e))  # noqa: TRY400
        return EXIT_TIMEOUT

    if result.returncode != 0:
        logger.warning("Command exited with code %d", result.returncode)
    return result.returncode


def main(argv: list[str] | None = None) -> None:
    """Execute the main entry point for the mongolock command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    command = list(getattr(args, "cmd", None) or [])
    if command and command[0] == "--":
        command = command[1:]
    if args.command == "run" and not command:
        parser.error("run requires a command after '--'")

    logger = configure_logging(
        LoggingConfig(log_name="mongolock", log_level=args.log_level),
    )

    try:
        config = load_config(args.config)
        if args.command == "run" and args.max_attempts is not None:
            config.lock = replace(config.lock, max_attempts=args.max_attempts)
    except LockConfigError:
        logger.exception("Configuration error")
        sys.exit(EXIT_CONFIG_ERROR)

    with create_mongo_lock_provider(config, logger=logger) as provider:
        if args.command == "probe":
            exit_code = probe_resource(provider, args.resource, logger)
        else:
            exit_code = run_locked(
                provider,
                args.resource,
                command,
                logger,
                expiration_seconds=args.expiration_seconds,
            )
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
