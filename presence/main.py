"""Command-line entrypoint: ``st <keyword> [date] [time]``."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Sequence, TextIO

from pydantic import ValidationError

from presence.config import Settings, configured_services, load_settings, skip_reasons
from presence.dispatcher import Dispatcher
from presence.errors import ResolutionError, UnknownKeyword
from presence.keywords import keywords
from presence.models import Failed, OutcomeReport, ServiceName, Skipped, Succeeded
from presence.services.asana import AsanaAdapter
from presence.services.base import ServiceAdapter
from presence.services.github import GitHubAdapter
from presence.services.slack import SlackAdapter

_OK = "✓"
_FAIL = "✗"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="st", description="Set your status across services")
    parser.add_argument("keyword", help=f"Status keyword: {', '.join(keywords())}")
    parser.add_argument(
        "date_token",
        nargs="?",
        help="When you'll be back (e.g. friday, 3/10, 3-10-2026, tomorrow). For lunch, a time.",
    )
    parser.add_argument(
        "time_token",
        nargs="?",
        help="What time you'll be back (e.g. 8am, 9:30am, 15:00). Defaults to 7am.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log dispatch details")
    return parser


def build_adapters(settings: Settings) -> dict[ServiceName, ServiceAdapter]:
    """Create an adapter for every service that has credentials."""

    timeout = settings.request_timeout_seconds
    available = configured_services(settings)
    adapters: dict[ServiceName, ServiceAdapter] = {}
    if ServiceName.SLACK in available:
        adapters[ServiceName.SLACK] = SlackAdapter(settings.slack_pat, timeout_seconds=timeout)
    if ServiceName.GITHUB in available:
        adapters[ServiceName.GITHUB] = GitHubAdapter(settings.github_pat, timeout_seconds=timeout)
    if ServiceName.ASANA in available and settings.asana_user_gid:
        adapters[ServiceName.ASANA] = AsanaAdapter(
            settings.asana_pat,
            user_gid=settings.asana_user_gid,
            timeout_seconds=timeout,
        )
    return adapters


def format_entry(service: ServiceName, result: Succeeded | Skipped | Failed) -> str:
    """Render one report line: ✓ success, ! needs attention, - skipped, ✗ failed."""

    if isinstance(result, Succeeded):
        mark = "!" if result.needs_attention else _OK
        text = result.detail
    elif isinstance(result, Skipped):
        mark, text = "-", f"Skipped ({result.reason})"
    else:
        mark, text = _FAIL, result.message
    return f"  {service.label:<8}{mark} {text}"


def print_report(report: OutcomeReport, out: TextIO | None = None, err: TextIO | None = None) -> None:
    out = sys.stdout if out is None else out
    err = sys.stderr if err is None else err
    for service, result in report:
        stream = err if isinstance(result, Failed) else out
        print(format_entry(service, result), file=stream)


async def run(argv: Sequence[str] | None = None) -> int:
    """Parse arguments, dispatch, print the report and return the exit code."""

    args = build_parser().parse_args(argv)
    try:
        settings = load_settings()
    except (ValidationError, ValueError) as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 1

    level = logging.INFO if args.verbose else getattr(logging, settings.log_level.upper(), logging.ERROR)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    dispatcher = Dispatcher(
        build_adapters(settings),
        skip_reasons=skip_reasons(settings),
        org_scope=settings.github_org_id,
    )
    try:
        report = await dispatcher.run(
            args.keyword,
            args.date_token,
            args.time_token,
            configured_services=configured_services(settings),
        )
    except UnknownKeyword as exc:
        print(f"{exc}\nAvailable: {', '.join(keywords())}", file=sys.stderr)
        return 1
    except ResolutionError as exc:
        print(str(exc), file=sys.stderr)
        return 1

    print_report(report)
    return 0 if report.ok else 1


def main() -> None:
    """Synchronous wrapper for asyncio entrypoint."""

    sys.exit(asyncio.run(run()))


if __name__ == "__main__":
    main()
