"""
Command-line interface for http-lifecycle.

``http-lifecycle info`` prints the effective settings. ``http-lifecycle
request METHOD URL`` runs one configure/send cycle through RequestLifecycle
with the requests transport, prints the status and body, and exits 1 when the
attempt budget runs out or the parameters are rejected.
"""

from __future__ import annotations

import argparse
import sys
from typing import Any

from http_lifecycle import __version__
from http_lifecycle.config import get_settings
from http_lifecycle.lifecycle import RequestLifecycle
from http_lifecycle.log import configure_logging
from http_lifecycle.schemas import HttpMethod
from http_lifecycle.transport import RequestsTransport


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="http-lifecycle",
        description="Send HTTP requests with a bounded retry budget",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging (includes transport ready-state changes)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("info", help="Show application info")

    request_parser = subparsers.add_parser("request", help="Send one request")
    request_parser.add_argument(
        "method",
        type=str.upper,
        choices=[m.value for m in HttpMethod],
        help="HTTP method",
    )
    request_parser.add_argument("url", help="Absolute http:// or https:// URL")
    request_parser.add_argument(
        "--attempts",
        type=int,
        default=None,
        help="Total attempts, first try included (default: from settings)",
    )
    request_parser.add_argument(
        "--timeout-ms",
        type=int,
        default=None,
        help="Per-attempt timeout in milliseconds (default: from settings)",
    )
    request_parser.add_argument(
        "-H",
        "--header",
        action="append",
        default=[],
        metavar="'NAME: VALUE'",
        help="Request header, may be repeated",
    )
    request_parser.add_argument("--data", default=None, help="Request body")
    request_parser.add_argument(
        "--user",
        default=None,
        metavar="NAME:PASSWORD",
        help="Basic auth credentials",
    )
    request_parser.add_argument(
        "--no-encode-url",
        action="store_true",
        help="Send the URL exactly as given",
    )

    return parser


def parse_header(raw: str) -> tuple[str, str]:
    """Split ``"Name: value"`` into a (name, value) pair."""
    name, sep, value = raw.partition(":")
    if not sep or not name.strip():
        msg = f"Invalid header {raw!r}, expected 'Name: value'"
        raise ValueError(msg)
    return name.strip(), value.strip()


def build_params(args: argparse.Namespace) -> dict[str, Any]:
    """Translate parsed arguments into lifecycle parameters (handlers excluded)."""
    params: dict[str, Any] = {
        "method": args.method,
        "url": args.url,
        "attempts": args.attempts,
        "timeout_ms": args.timeout_ms,
    }
    if args.header:
        params["headers"] = dict(parse_header(h) for h in args.header)
    if args.data is not None:
        params["data"] = args.data
    if args.user is not None:
        username, _, password = args.user.partition(":")
        params["use_credentials"] = True
        params["credentials"] = {"username": username, "password": password}
    if args.no_encode_url:
        params["auto_encode_url"] = False
    return params


def cmd_info(_args: argparse.Namespace) -> int:
    """Handle the 'info' command."""
    settings = get_settings()
    print(f"Application: {settings.app_name}")
    print(f"Version: {__version__}")
    print(f"Environment: {settings.app_env}")
    print(f"Default attempts: {settings.default_attempts}")
    print(f"Default timeout: {settings.default_timeout_ms} ms")
    print(f"Debug: {settings.debug}")
    return 0


def cmd_request(args: argparse.Namespace) -> int:
    """Handle the 'request' command: one configure → send cycle."""
    try:
        params = build_params(args)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    outcome: dict[str, Any] = {}

    def on_success(source: Any) -> None:
        outcome["ok"] = True
        outcome["source"] = source

    def on_error(source: Any) -> None:
        outcome["ok"] = False
        outcome["source"] = source

    lifecycle = RequestLifecycle(transport_factory=RequestsTransport)
    if not lifecycle.configure({**params, "success": on_success, "error": on_error}):
        print(f"Error: {lifecycle.rejection_reason}", file=sys.stderr)
        return 1

    lifecycle.send()
    lifecycle.teardown()

    source = outcome.get("source")
    status = getattr(source, "status", None)
    if outcome.get("ok"):
        print(f"Status: {status}")
        print(getattr(source, "response_text", None) or "")
        return 0

    error = getattr(source, "error", None)
    reason = f"status {status}" if status is not None else repr(error)
    print(f"Error: request failed ({reason})", file=sys.stderr)
    return 1


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    configure_logging(level="DEBUG" if args.debug else None)

    commands = {
        "info": cmd_info,
        "request": cmd_request,
    }

    handler = commands.get(args.command)
    if handler:
        return handler(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
