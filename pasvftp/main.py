"""Command line entry point for pasvftp.

Wires settings, credentials and logging to a session and runs a
single download or upload.
"""

import argparse
import getpass
import logging
import sys
from typing import List, Optional

from .config.credentials import CredentialManager
from .config.paths import get_log_file_path
from .config.settings import ClientSettings, SettingsManager
from .ftp.exceptions import FTPError
from .ftp.session import FTPSession
from .ftp.transfer import TransferEngine, TransferMode, TransferResult
from .utils.logging import setup_logging
from .utils.validators import validate_file_path


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="pasvftp",
        description="Download or upload a file over passive-mode FTP."
    )
    parser.add_argument("--host", help="Server host (default from FTP_HOST or saved settings)")
    parser.add_argument("--port", type=int, help="Server port")
    parser.add_argument("--user", help="Username")
    parser.add_argument("--mode", choices=["A", "I"], help="Transfer mode: A (ASCII) or I (binary)")
    parser.add_argument("--timeout", type=float, help="Data connection timeout in seconds, 0 for none")
    parser.add_argument("--save", action="store_true", help="Remember host, port and user")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log protocol traffic")

    commands = parser.add_subparsers(dest="command", required=True)

    get_cmd = commands.add_parser("get", help="Download REMOTE to LOCAL")
    get_cmd.add_argument("remote")
    get_cmd.add_argument("local")

    put_cmd = commands.add_parser("put", help="Upload LOCAL to REMOTE")
    put_cmd.add_argument("local")
    put_cmd.add_argument("remote")

    return parser


def resolve_settings(args: argparse.Namespace, manager: SettingsManager) -> ClientSettings:
    """
    Merge saved settings, environment and command line arguments.

    Command line arguments win over the environment, which wins over
    saved settings.
    """
    settings = manager.load().with_env_overrides()

    overrides = {
        "host": args.host,
        "port": args.port,
        "username": args.user,
        "transfer_mode": args.mode,
        "timeout": args.timeout,
    }
    for key, value in overrides.items():
        if value is not None:
            setattr(settings, key, value)

    return ClientSettings.from_dict(settings.to_dict())


def run(args: argparse.Namespace) -> TransferResult:
    """Run the requested transfer and return its result."""
    manager = SettingsManager()
    settings = resolve_settings(args, manager)

    level = logging.DEBUG if args.verbose else settings.log_level
    logger = setup_logging(level=level, log_file=get_log_file_path(), trace=args.verbose)

    if not settings.host:
        raise FTPError("No host given; use --host or set FTP_HOST")

    if args.command == "put":
        is_valid, error = validate_file_path(args.local, must_exist=True)
        if not is_valid:
            raise FTPError(error)

    credentials = CredentialManager()
    password = credentials.resolve_password(settings.host, settings.username)
    if password is None:
        password = getpass.getpass(f"Password for {settings.username}@{settings.host}: ")

    mode = TransferMode.coerce(settings.transfer_mode)

    with FTPSession() as session:
        session.dial(settings.address)
        session.login(settings.username, password)

        engine = TransferEngine(session)
        if args.command == "get":
            result = engine.download_file(args.remote, args.local, mode, settings.timeout)
        else:
            result = engine.upload_file(args.local, args.remote, mode, settings.timeout)

    if args.save:
        manager.update(host=settings.host, port=settings.port, username=settings.username)
        credentials.save_password(settings.host, settings.username, password)
        logger.info(f"Saved connection settings for {settings.host}")

    return result


def main(argv: Optional[List[str]] = None) -> int:
    """
    Command line entry point.

    Returns:
        Exit code (0 for success)
    """
    args = build_parser().parse_args(argv)

    try:
        result = run(args)
    except (FTPError, ValueError) as e:
        print(f"pasvftp: {e}", file=sys.stderr)
        return 1

    print(
        f"{result.direction.value}: {result.remote_path} "
        f"({result.bytes_transferred} bytes in {result.duration_seconds:.2f}s)"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
