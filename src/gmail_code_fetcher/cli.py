"""Command-line interface for Gmail Code Fetcher.

This module provides the main entry point for the CLI application.
"""

from __future__ import annotations

import argparse
import logging
import re
import sys
from typing import TextIO

import structlog
from pydantic import ValidationError

from gmail_code_fetcher import __version__
from gmail_code_fetcher.auth import CredentialManager
from gmail_code_fetcher.config import Settings, get_settings
from gmail_code_fetcher.exceptions import (
    AuthenticationError,
    ConfigurationError,
    GmailAPIError,
    TransportError,
)
from gmail_code_fetcher.extraction import list_and_extract
from gmail_code_fetcher.models import ExtractionResult, MessageQuery

logger = structlog.get_logger()

BODY_PREFIX_CHARS = 100


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError("must be at least 1")
    return number


def _regex(value: str) -> str:
    try:
        re.compile(value)
    except re.error as exc:
        raise argparse.ArgumentTypeError(f"invalid regular expression: {exc}") from exc
    return value


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gmail-code-fetch",
        description="Fetch Gmail messages and extract verification codes",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Set logging level (overrides GMAIL_CODE_LOG_LEVEL)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser(
        "auth",
        help="Authorize Gmail access and cache the token (opens a browser on first run)",
    )

    fetch_parser = subparsers.add_parser("fetch", help="List messages and extract codes")
    fetch_parser.add_argument(
        "--query",
        default=None,
        help="Gmail search query (same syntax as Gmail search box; default: QUERY env var)",
    )
    fetch_parser.add_argument(
        "--max-results",
        type=_positive_int,
        default=None,
        help="Maximum number of messages to list (default: MAX_RESULTS env var or 10)",
    )
    fetch_parser.add_argument(
        "--code-pattern",
        type=_regex,
        default=None,
        help="Regular expression whose first group is the code (default: CODE_PATTERN env var)",
    )

    return parser


def _configure_logging(level: str) -> None:
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level)),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def _print_result(result: ExtractionResult, pattern: str, out: TextIO) -> None:
    print("---", file=out)
    print(f"id     : {result.message_id}", file=out)
    print(f"date   : {result.date}", file=out)
    print(f"from   : {result.sender}", file=out)
    print(f"to     : {result.recipient}", file=out)
    print(f"subject: {result.subject}", file=out)
    print(f"snippet: {result.preview}", file=out)
    print(f"body   : {result.decoded_text[:BODY_PREFIX_CHARS]}", file=out)
    print(f"pattern: {pattern}", file=out)
    print(f"code   : {result.matched_code or '[not found]'}", file=out)


def _print_failure(exc: Exception, err: TextIO) -> None:
    print(f"Gmail fetch failed: {exc}", file=err)
    if isinstance(exc, TransportError):
        for name, value in exc.diagnostics().items():
            if name != "message":
                print(f"{name:<7}: {value}", file=err)
    elif exc.__cause__ is not None:
        print(f"cause  : {exc.__cause__}", file=err)


def _cmd_auth(settings: Settings, out: TextIO) -> int:
    manager = CredentialManager.from_settings(settings)
    credential = manager.obtain_credential()
    print(
        "Gmail OAuth complete. "
        f"token_path={manager.token_path} "
        f"scope={' '.join(credential.scopes) or settings.gmail_scope}",
        file=out,
    )
    return 0


def _cmd_fetch(args: argparse.Namespace, settings: Settings, out: TextIO) -> int:
    query = MessageQuery(
        search_expression=args.query if args.query is not None else settings.query,
        max_results=args.max_results or settings.max_results,
    )
    pattern = args.code_pattern or settings.code_pattern

    credential = CredentialManager.from_settings(settings).obtain_credential()

    print(f"Listing messages... query={query.search_expression!r} max={query.max_results}", file=out)
    results = list_and_extract(credential, query, pattern, user_id=settings.user_id)
    if not results:
        print("No messages found.", file=out)
        return 0

    for result in results:
        _print_result(result, pattern, out)
    return 0


def main(args: list[str] | None = None) -> int:
    """Main entry point for the Gmail Code Fetcher CLI.

    Args:
        args: Command-line arguments. If None, uses sys.argv.

    Returns:
        Exit code (0 for success, 1 for a fatal error).
    """
    if args is None:
        args = sys.argv[1:]

    parsed = _build_parser().parse_args(args)

    try:
        settings = get_settings()
    except ValidationError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 1

    _configure_logging(parsed.log_level or settings.log_level)
    logger.info("gmail_code_fetcher_started", version=__version__, command=parsed.command)

    try:
        if parsed.command == "auth":
            return _cmd_auth(settings, sys.stdout)
        if parsed.command == "fetch":
            return _cmd_fetch(parsed, settings, sys.stdout)
    except (ConfigurationError, AuthenticationError, GmailAPIError) as exc:
        logger.error("command_failed", command=parsed.command, error_type=type(exc).__name__)
        _print_failure(exc, sys.stderr)
        return 1

    logger.error("unknown_command", command=parsed.command)
    return 2


if __name__ == "__main__":
    sys.exit(main())
