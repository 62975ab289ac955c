"""Command-line entry point.

    buff login --email E --password P [--registry HOST:PORT]
    buff publish [--path DIR] [--registry HOST:PORT]
    buff pack --output FILE [--path DIR]

Exit codes: 0 on success, 1 on any BuffError (one `error:` line on
stderr), 2 on usage errors.
"""

import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence

import structlog
from pydantic import ValidationError

from buff import __version__
from buff.core.config import MANIFEST_FILE_NAME, Settings, get_settings
from buff.core.errors import BuffError, ConfigError, describe_validation_error
from buff.core.logging import configure_structlog
from buff.packaging import save_artifact_to_path
from buff.registry import CredentialStore, RegistrySession

logger = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="buff",
        description="Buff CLI - publish packages to a buff registry",
    )
    parser.add_argument("--version", action="version", version=f"buff {__version__}")
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log debug output to stderr",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    login = subparsers.add_parser("login", help="Login to the buff registry")
    login.add_argument("-e", "--email", required=True)
    login.add_argument("-p", "--password", required=True)
    login.add_argument("--registry", help="Registry endpoint (host:port)")

    publish = subparsers.add_parser(
        "publish",
        help=f"Publish the package as configured in {MANIFEST_FILE_NAME}",
    )
    publish.add_argument("--path", type=Path, help="Package root (default: BUFF_TARGET_PATH or cwd)")
    publish.add_argument("--registry", help="Registry endpoint (host:port)")

    pack = subparsers.add_parser("pack", help="Write the package artifact to a local file")
    pack.add_argument("-o", "--output", type=Path, required=True)
    pack.add_argument("--path", type=Path, help="Package root (default: BUFF_TARGET_PATH or cwd)")

    return parser


def main(argv: Optional[Sequence[str]] = None, settings: Optional[Settings] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_structlog(debug=args.verbose)

    try:
        if settings is None:
            settings = _load_settings()
        if settings.debug and not args.verbose:
            configure_structlog(debug=True)
        _run(args, settings)
    except BuffError as exc:
        logger.debug("command failed", command=args.command, error=type(exc).__name__)
        print(f"error: {exc.message}", file=sys.stderr)
        return 1
    return 0


def _load_settings() -> Settings:
    try:
        return get_settings()
    except ValidationError as exc:
        raise ConfigError(f"Invalid BUFF_* environment: {describe_validation_error(exc)}") from exc


def _run(args: argparse.Namespace, settings: Settings) -> None:
    if args.command == "pack":
        root = settings.package_root(args.path) / settings.build_dir
        output = save_artifact_to_path(
            root,
            args.output,
            extra_ignores=settings.ignore_patterns(),
            skip_unreadable=not settings.strict_traversal,
        )
        print(f"Wrote artifact to {output}")
        return

    session = RegistrySession(settings, CredentialStore.from_settings(settings))

    if args.command == "login":
        session.login(args.email, args.password, registry=args.registry)
        print(f"Logged in to {session.resolve_endpoint(args.registry)}")
    elif args.command == "publish":
        confirmation = session.publish(package_path=args.path, registry=args.registry)
        version = f" {confirmation.version}" if confirmation.version else ""
        print(
            f"Published {confirmation.package_name}{version} to {confirmation.registry} "
            f"({confirmation.artifact_size} bytes)"
        )
