"""Command-line interface for the hello-world user service."""

from __future__ import annotations
import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Sequence

try:
    import httpx
except ImportError as exc:  # pragma: no cover - exercised in environments missing deps
    raise SystemExit(
        "The 'httpx' package is required. Execute `pip install -e .` to install dependencies."
    ) from exc

from helloworld.config import Settings, load_settings
from helloworld.database import DatabaseConnectionError, DatabaseConnector
from helloworld.logging_config import configure_logging
from helloworld.users import UserStore, UserStoreError

logger = logging.getLogger("helloworld.main")

_DEFAULT_SERVICE_URL = "http://localhost:3000"


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Hello World user service utilities")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a YAML settings file (default: $HELLOWORLD_CONFIG)",
    )
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve", host=None, port=None)

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP service")
    serve_parser.add_argument("--host", default=None, help="Bind address (default: $HOST or 0.0.0.0)")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Listening port (default: $PORT or 3000)",
    )

    subparsers.add_parser("init-db", help="Create the MongoDB indexes used by the service")

    check_parser = subparsers.add_parser("check", help="Query the health endpoint of a running service")
    check_parser.add_argument(
        "--service-url",
        default=_DEFAULT_SERVICE_URL,
        help=f"Base URL of the running service (default: {_DEFAULT_SERVICE_URL})",
    )
    check_parser.add_argument(
        "--timeout",
        type=float,
        default=5.0,
        help="Request timeout in seconds",
    )

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "init-db", "check"}

    # Options given without a subcommand belong to "serve".
    command_index = 0
    if args_list[:1] == ["--config"] and len(args_list) >= 2:
        command_index = 2
    remaining = args_list[command_index:]
    if remaining and remaining[0] not in known_commands and remaining[0] not in ("-h", "--help"):
        if not any(flag in remaining for flag in ("-h", "--help")):
            args_list = [*args_list[:command_index], "serve", *remaining]

    return parser.parse_args(args_list)


def _load_settings(args: argparse.Namespace) -> Settings:
    settings = load_settings(config_path=args.config)
    overrides = {}
    if args.host:
        overrides["host"] = args.host
    if args.port is not None:
        overrides["port"] = args.port
    return replace(settings, **overrides) if overrides else settings


async def _initialise_database(settings: Settings) -> int:
    connector = DatabaseConnector(
        settings.mongodb_uri,
        server_selection_timeout_ms=settings.server_selection_timeout_ms,
    )
    try:
        await connector.connect()
    except DatabaseConnectionError:
        return 1

    try:
        await UserStore(connector).ensure_indexes()
    except UserStoreError as exc:
        logger.error("Failed to create user indexes", extra={"error": str(exc)})
        return 1
    finally:
        await connector.close()

    logger.info("Database indexes are in place")
    return 0


def _check_service(service_url: str, *, timeout: float) -> int:
    endpoint = service_url.rstrip("/") + "/health"

    try:
        response = httpx.get(endpoint, timeout=timeout)
    except httpx.HTTPError as exc:
        print(f"Failed to contact service: {exc}")
        return 1

    if response.status_code != 200:
        print(f"Service responded with {response.status_code}: {response.text.strip()}")
        return 1

    try:
        payload = response.json()
    except ValueError:
        print("Service returned an unexpected response format.")
        return 1

    mongodb = payload.get("mongodb", "unknown")
    uptime = payload.get("uptime")
    print(f"status={payload.get('status')} mongodb={mongodb} uptime={uptime}")
    return 0 if mongodb == "connected" else 1


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for CLI usage."""

    args = _parse_args(argv)
    try:
        settings = _load_settings(args)
    except (OSError, ValueError) as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 2

    configure_logging(settings.log_level, settings.log_file)

    if args.command == "serve":
        from helloworld.server import run_server

        return run_server(settings)
    if args.command == "init-db":
        return asyncio.run(_initialise_database(settings))
    if args.command == "check":
        return _check_service(args.service_url, timeout=args.timeout)
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
