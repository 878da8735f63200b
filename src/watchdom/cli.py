"""
Command-line interface for the watchdom system.

This module provides the main CLI entry point with commands for:
- query: One-shot WHOIS lookup with classified status
- watch: Phase-aware monitoring until a match, a limit or an interrupt
- time: Countdown to a target time
- list-tlds / add-tld / test-tld: TLD configuration management

Exit codes:
    0  matched / success
    1  check limit reached, cancelled, or no match
    2  invalid arguments or configuration
    3  WHOIS transport failure
    4  unparseable date/time
"""

import argparse
import asyncio
import signal
import sys
from dataclasses import dataclass
from typing import Optional

from rich.console import Console
from rich.markup import escape

from . import __version__
from .audit_logger import AuditLogger
from .cancellation import CancellationToken
from .classifier import StatusClassifier, pattern_matches
from .config import WatchConfig, load_config_from_env
from .enums import LogLevel, SessionOutcome
from .exceptions import ConfigError, ParseError, TransportError, ValidationError, WatchdomError
from .models import PollSession
from .notifications import Notifier
from .prompt import AutoContinuePrompt, ConsolePrompt
from .renderer import StatusRenderer
from .scheduler import PollScheduler
from .time_source import TimeSource
from .tld_registry import TLDRegistry, append_user_entry, normalize_tld
from .validators import DomainValidator, validate_interval, validate_max_checks
from .whois_client import WHOISClient


EXIT_SUCCESS = 0
EXIT_NO_MATCH = 1
EXIT_BAD_ARGS = ValidationError.exit_code
EXIT_TRANSPORT = TransportError.exit_code
EXIT_PARSE = ParseError.exit_code


@dataclass
class AppContext:
    """Everything a command needs, built once from flags and environment."""

    config: WatchConfig
    logger: AuditLogger
    renderer: StatusRenderer
    clock: TimeSource

    def load_registry(self) -> TLDRegistry:
        return TLDRegistry.load(self.config.rc_path, self.logger)

    def whois_client(self) -> WHOISClient:
        return WHOISClient(
            timeout=self.config.whois_timeout,
            simulation_mode=self.config.simulation_mode,
            logger=self.logger,
        )


def resolve_log_level(args: argparse.Namespace) -> LogLevel:
    """-q wins over -d/-t; default is INFO."""
    if getattr(args, "quiet", False):
        return LogLevel.ERROR
    if getattr(args, "debug", False) or getattr(args, "trace", False):
        return LogLevel.DEBUG
    return LogLevel.INFO


def resolve_use_utc(args: argparse.Namespace, config: WatchConfig) -> bool:
    if getattr(args, "utc", False):
        return True
    if getattr(args, "local", False):
        return False
    return not config.time_local


def create_context(
    args: argparse.Namespace,
    config: Optional[WatchConfig] = None,
    console: Optional[Console] = None,
) -> AppContext:
    """Build config, logger and renderer for a command."""
    if config is None:
        config = load_config_from_env()
    if args.dry_run:
        config.simulation_mode = True
    config.logging.level = resolve_log_level(args).value
    if args.log_format:
        config.logging.output_format = args.log_format

    logger = AuditLogger(
        output_format=config.logging.output_format,
        min_level=LogLevel(config.logging.level),
    )
    renderer = StatusRenderer(console, use_utc=resolve_use_utc(args, config))
    return AppContext(config=config, logger=logger, renderer=renderer, clock=TimeSource())


async def run_query(ctx: AppContext, domain: str, full: bool = False) -> int:
    """One WHOIS lookup, classified and printed."""
    entry = ctx.load_registry().resolve(domain)
    response = await ctx.whois_client().query(domain, entry.server)
    status, registrar = StatusClassifier().classify(response.raw_response)
    ctx.renderer.query_result(
        domain,
        status,
        registrar,
        ctx.clock.now(),
        response.raw_response,
        full=full,
    )
    return EXIT_SUCCESS


async def run_watch(
    ctx: AppContext,
    session: PollSession,
    auto_continue: bool = False,
) -> int:
    """Monitor a domain; wires SIGINT/SIGTERM to the cancellation token."""
    token = CancellationToken()
    prompt = AutoContinuePrompt(ctx.renderer) if auto_continue else ConsolePrompt(ctx.renderer)
    notifier = Notifier.from_config(
        ctx.config.notifications,
        ctx.config.retry,
        logger=ctx.logger,
        simulation_mode=ctx.config.simulation_mode,
    )
    scheduler = PollScheduler(
        registry=ctx.load_registry(),
        whois_client=ctx.whois_client(),
        renderer=ctx.renderer,
        clock=ctx.clock,
        token=token,
        prompt=prompt,
        notifier=notifier,
        logger=ctx.logger,
    )

    loop = asyncio.get_running_loop()
    installed = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, token.cancel)
            installed.append(sig)
        except NotImplementedError:
            # Windows event loops; Ctrl+C then surfaces as KeyboardInterrupt
            continue

    try:
        summary = await scheduler.run(session)
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)

    return EXIT_SUCCESS if summary.outcome is SessionOutcome.MATCHED else EXIT_NO_MATCH


async def run_test_tld(
    ctx: AppContext,
    tld: str,
    domain: str,
    show_raw: bool = False,
) -> int:
    """Query a test domain and check the TLD's availability pattern against it."""
    registry = ctx.load_registry()
    entry = registry.get(tld)
    if entry is None:
        raise ConfigError(
            code="tld_not_configured",
            message=f"No WHOIS server configured for TLD {normalize_tld(tld)}",
            details={"tld": tld},
        )
    response = await ctx.whois_client().query(domain, entry.server)
    matched = pattern_matches(response.raw_response, entry.available_pattern)
    ctx.renderer.tld_test_result(
        entry.tld, domain, entry.server, entry.available_pattern, matched
    )
    if show_raw:
        ctx.renderer.raw_output(response.raw_response, full=True)
    return EXIT_SUCCESS if matched else EXIT_NO_MATCH


def cmd_query(args: argparse.Namespace) -> int:
    """Handle the 'query' command."""
    domain = DomainValidator().validate(args.domain)
    ctx = create_context(args)
    return asyncio.run(run_query(ctx, domain, full=args.trace))


def cmd_watch(args: argparse.Namespace) -> int:
    """Handle the 'watch' command."""
    domain = DomainValidator().validate(args.domain)
    ctx = create_context(args)

    interval = validate_interval(
        args.interval if args.interval is not None else ctx.config.interval
    )
    for warning in interval.warnings:
        ctx.renderer.warning(warning)

    max_checks = validate_max_checks(
        args.max_checks if args.max_checks is not None else ctx.config.max_checks
    )

    target_epoch = ctx.clock.parse(args.until) if args.until else 0

    session = PollSession(
        domain=domain,
        base_interval=interval.seconds,
        target_epoch=target_epoch,
        max_checks=max_checks,
        expect_pattern=args.expect or None,
    )
    return asyncio.run(run_watch(ctx, session, auto_continue=args.yes))


def cmd_time(args: argparse.Namespace) -> int:
    """Handle the 'time' command."""
    ctx = create_context(args)
    target_epoch = ctx.clock.parse(args.when)
    ctx.renderer.countdown(target_epoch, ctx.clock.now())
    return EXIT_SUCCESS


def cmd_list_tlds(args: argparse.Namespace) -> int:
    """Handle the 'list-tlds' command."""
    ctx = create_context(args)
    registry = ctx.load_registry()
    source = str(registry.source) if registry.source else None
    ctx.renderer.tld_table(registry.entries(), source)
    return EXIT_SUCCESS


def cmd_add_tld(args: argparse.Namespace) -> int:
    """Handle the 'add-tld' command."""
    ctx = create_context(args)
    entry = append_user_entry(ctx.config.rc_path, args.tld, args.server, args.pattern)
    ctx.logger.log(
        LogLevel.DEBUG,
        "CLI",
        "TLD entry added",
        {"tld": entry.tld, "server": entry.server, "path": str(ctx.config.rc_path)},
    )
    ctx.renderer.success(f"Added {entry.tld} -> {entry.server} to {ctx.config.rc_path}")
    return EXIT_SUCCESS


def cmd_test_tld(args: argparse.Namespace) -> int:
    """Handle the 'test-tld' command."""
    domain = DomainValidator().validate(args.domain)
    ctx = create_context(args)
    return asyncio.run(run_test_tld(ctx, args.tld, domain, show_raw=args.trace))


GLOBAL_FLAG_DEFAULTS = {
    "debug": False,
    "trace": False,
    "quiet": False,
    "yes": False,
    "dry_run": False,
    "log_format": None,
}


def add_global_flags(parser: argparse.ArgumentParser) -> None:
    """
    Flags accepted before or after the command name.

    Defaults are suppressed here and set once on the top-level parser, so
    a flag given before the command is not reset by the subparser.
    """
    parser.add_argument(
        "-d", "--debug",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Enable debug logging",
    )
    parser.add_argument(
        "-t", "--trace",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Debug logging plus full raw WHOIS output",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Only log errors",
    )
    parser.add_argument(
        "-y", "--yes",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Answer 'continue' to the grace-period prompt automatically",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Simulation mode - no real network requests",
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json", "both"],
        default=argparse.SUPPRESS,
        help="Log output format (default: text)",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="watchdom",
        description="Phase-aware WHOIS domain monitor",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    common = argparse.ArgumentParser(add_help=False)
    add_global_flags(common)
    add_global_flags(parser)
    parser.set_defaults(**GLOBAL_FLAG_DEFAULTS)

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # 'query' command
    query_parser = subparsers.add_parser(
        "query",
        parents=[common],
        help="Look up a domain once and show its status",
    )
    query_parser.add_argument("domain", help="Domain to query (e.g., example.com)")
    query_parser.set_defaults(func=cmd_query)

    # 'watch' command
    watch_parser = subparsers.add_parser(
        "watch",
        parents=[common],
        help="Monitor a domain until it becomes available or matches a pattern",
    )
    watch_parser.add_argument("domain", help="Domain to monitor")
    watch_parser.add_argument(
        "--interval", "-i",
        help="Base polling interval in seconds (default: 60 or WATCHDOM_INTERVAL)",
    )
    watch_parser.add_argument(
        "--expect", "-e",
        help="Regex that ends monitoring when found in the WHOIS response",
    )
    watch_parser.add_argument(
        "--max-checks", "-n",
        help="Stop after this many queries (0 = unlimited)",
    )
    watch_parser.add_argument(
        "--until",
        help="Target time, e.g. '2025-12-25 18:00:00 UTC' or an epoch",
    )
    mode = watch_parser.add_mutually_exclusive_group()
    mode.add_argument("--utc", action="store_true", help="Display times in UTC")
    mode.add_argument("--local", action="store_true", help="Display times in local time")
    watch_parser.set_defaults(func=cmd_watch)

    # 'time' command
    time_parser = subparsers.add_parser(
        "time",
        parents=[common],
        help="Show the countdown to a target time",
    )
    time_parser.add_argument("when", help="Target time")
    time_mode = time_parser.add_mutually_exclusive_group()
    time_mode.add_argument("--utc", action="store_true", help="Display times in UTC")
    time_mode.add_argument("--local", action="store_true", help="Display times in local time")
    time_parser.set_defaults(func=cmd_time)

    # 'list-tlds' command
    list_parser = subparsers.add_parser(
        "list-tlds",
        parents=[common],
        help="Show built-in and user TLD configurations",
    )
    list_parser.set_defaults(func=cmd_list_tlds)

    # 'add-tld' command
    add_parser = subparsers.add_parser(
        "add-tld",
        parents=[common],
        help="Add a TLD to the user configuration file",
    )
    add_parser.add_argument("tld", help="TLD, e.g. .uk")
    add_parser.add_argument("server", help="WHOIS server hostname")
    add_parser.add_argument("pattern", help="Text that marks an available domain")
    add_parser.set_defaults(func=cmd_add_tld)

    # 'test-tld' command
    test_parser = subparsers.add_parser(
        "test-tld",
        parents=[common],
        help="Query a domain and check the TLD's availability pattern",
    )
    test_parser.add_argument("tld", help="TLD to test")
    test_parser.add_argument("domain", help="Domain to query")
    test_parser.set_defaults(func=cmd_test_tld)

    return parser


def report_error(error: Exception, console: Optional[Console] = None) -> None:
    """Print a one-line error to stderr."""
    console = console or Console(stderr=True, highlight=False)
    message = getattr(error, "message", str(error))
    console.print(f"[red]✗[/red] {escape(message)}", highlight=False)


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_SUCCESS

    try:
        return args.func(args)
    except WatchdomError as e:
        report_error(e)
        return e.exit_code
    except KeyboardInterrupt:
        return EXIT_NO_MATCH


if __name__ == "__main__":
    sys.exit(main())
