"""
Status renderer for the watchdom terminal display.

Everything the operator sees goes through StatusRenderer: the start
banner, the live countdown line, the muted history trail, phase and
target announcements, the grace prompt and the completion summary.
Pure formatting helpers are module-level functions so they can be tested
without a console.

On a terminal the live line is redrawn in place; on anything else
(pipes, files, captured test output) each cycle prints it once on its own
line and per-second redraws are skipped.
"""

from typing import Iterable, Optional

from rich.console import Console
from rich.control import Control, ControlType
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from .classifier import UNKNOWN_REGISTRAR
from .config import TLDConfig
from .enums import ActivityCode, LifecycleStatus, Phase, Verdict
from .models import CompletionSummary, PollResult
from .time_source import format_clock, format_time_display, human_duration


GREY = "color(244)"

PHASE_STYLES = {
    Phase.POLL: ("λ", "blue"),
    Phase.HEAT: ("▲", "red"),
    Phase.GRACE: ("▵", "magenta"),
    Phase.COOL: ("❅", "cyan"),
}

PHASE_DESCRIPTIONS = {
    Phase.POLL: "Normal polling at the base interval",
    Phase.HEAT: "Entering aggressive polling phase - target approaching!",
    Phase.GRACE: "Target time reached - entering grace period monitoring",
    Phase.COOL: "Entering cooldown phase - backing off polling frequency",
}

SUCCESS_HEADLINES = {
    ActivityCode.DROP: "Domain Drop Detected!",
    ActivityCode.AVAL: "Domain Available!",
    ActivityCode.PTRN: "Pattern Matched!",
    ActivityCode.EXPR: "Expiration Detected!",
}

TIMEOUT_HEADLINES = {
    ActivityCode.DROP: "Drop Monitoring Timeout",
    ActivityCode.AVAL: "Availability Check Timeout",
    ActivityCode.PTRN: "Pattern Search Timeout",
    ActivityCode.EXPR: "Expiration Watch Timeout",
}

STATUS_STYLES = {
    LifecycleStatus.AVAILABLE: ("✓", "green"),
    LifecycleStatus.PENDING_DELETE: ("△", "yellow"),
    LifecycleStatus.REDEMPTION: ("△", "yellow"),
    LifecycleStatus.ON_HOLD: ("△", "yellow"),
}

RESULT_WORDS = {
    Verdict.PASS: "SUCCESS",
    Verdict.FAIL: "TIMEOUT",
    Verdict.WATCH: "CANCELLED",
}

QUERY_PREVIEW_LINES = 20

_ERASE_LINE = Control(ControlType.CARRIAGE_RETURN, (ControlType.ERASE_IN_LINE, 2))


def format_timer(seconds: int) -> str:
    """
    Format a countdown using the fewest components for its magnitude.

    ``27s``, ``30:27``, ``1:30:27``, ``3d 1:30:27``
    """
    seconds = max(0, int(seconds))
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}:{seconds % 60:02d}"
    if seconds < 86400:
        return f"{seconds // 3600}:{(seconds % 3600) // 60:02d}:{seconds % 60:02d}"
    days, remaining = divmod(seconds, 86400)
    return (
        f"{days}d {remaining // 3600}:{(remaining % 3600) // 60:02d}:{remaining % 60:02d}"
    )


def format_target_distance(seconds_to_target: Optional[int]) -> str:
    """
    Distance to the target: ``-`` prefix while it lies ahead, none after.

    ``None`` means no target is set.
    """
    if seconds_to_target is None:
        return "none"
    if seconds_to_target > 0:
        return f"-{format_timer(seconds_to_target)}"
    return format_timer(-seconds_to_target)


def phase_glyph(phase: Phase) -> str:
    return PHASE_STYLES[phase][0]


def phase_color(phase: Phase) -> str:
    return PHASE_STYLES[phase][1]


def status_label(status: LifecycleStatus) -> str:
    return status.value


def build_status_line(
    phase: Phase,
    activity: ActivityCode,
    next_poll_seconds: int,
    seconds_to_target: Optional[int],
    domain: str,
    use_utc: bool,
    check_count: int,
) -> Text:
    """Live line: ``glyph PHASE │ ACTIVITY │ timer │ target │ domain │ MODE [#n]``."""
    glyph, color = PHASE_STYLES[phase]
    line = Text()
    line.append(f"{glyph} {phase.value}", style=color)
    line.append(" │ ")
    line.append(activity.value)
    line.append(" │ ")
    line.append(format_timer(next_poll_seconds))
    line.append(" │ ")
    line.append(format_target_distance(seconds_to_target))
    line.append(" │ ")
    line.append(domain)
    line.append(" │ ")
    line.append(f"{'UTC' if use_utc else 'LOCAL'} [#{check_count}]")
    return line


def build_history_line(
    result: PollResult,
    domain: str,
    check_number: int,
    use_utc: bool = False,
) -> Text:
    """Muted record of a finished, non-matching cycle."""
    parts = [
        format_clock(result.at_epoch, use_utc),
        f"{domain} {status_label(result.status)}",
    ]
    if result.registrar and result.registrar != UNKNOWN_REGISTRAR:
        parts.append(result.registrar)
    parts.append(f"#{check_number}")
    return Text("△ " + " │ ".join(parts), style=GREY)


def completion_headline(summary: CompletionSummary) -> str:
    if summary.celebratory:
        return SUCCESS_HEADLINES.get(summary.activity, "Success!")
    return TIMEOUT_HEADLINES.get(summary.activity, "Monitoring Timeout")


class StatusRenderer:
    """Draws the watchdom display on a rich Console."""

    def __init__(self, console: Optional[Console] = None, use_utc: bool = False) -> None:
        self._console = console or Console(highlight=False)
        self._use_utc = use_utc
        self._live_active = False

    @property
    def console(self) -> Console:
        return self._console

    @property
    def use_utc(self) -> bool:
        return self._use_utc

    @property
    def interactive(self) -> bool:
        return self._console.is_terminal

    def _print(self, *objects, **kwargs) -> None:
        self.clear_live()
        self._console.print(*objects, highlight=False, **kwargs)

    # ------------------------------------------------------------------
    # live line
    # ------------------------------------------------------------------

    def live(self, line: Text, redraw: bool = False) -> None:
        """
        Draw the live line.

        ``redraw`` marks a countdown tick; ticks are only drawn on a
        terminal.
        """
        if not self.interactive:
            if not redraw:
                self._console.print(line, soft_wrap=True, highlight=False)
            return
        self._console.control(_ERASE_LINE)
        self._console.print(line, end="", soft_wrap=True, highlight=False)
        self._live_active = True

    def clear_live(self) -> None:
        """Erase the live line if one is on screen."""
        if self._live_active:
            self._console.control(_ERASE_LINE)
            self._live_active = False

    # ------------------------------------------------------------------
    # session events
    # ------------------------------------------------------------------

    def start_banner(self, domain: str, interval: int, target_epoch: int) -> None:
        self._print("")
        self._print("[blue]λ Watchdom Monitor Starting λ[/blue]")
        self._print(f"[bold]Domain:[/bold] {escape(domain)}")
        self._print(f"[bold]Interval:[/bold] {interval}s base, phase-aware scaling")
        if target_epoch > 0:
            self._print(
                f"[bold]Target:[/bold] {format_time_display(target_epoch, self._use_utc)}"
            )
        self._print(
            "[bold]Phases:[/bold] [blue]λPOLL[/blue] [red]▲HEAT[/red] "
            "[magenta]▵GRACE[/magenta] [cyan]❅COOL[/cyan]"
        )
        self._print("")

    def history(self, result: PollResult, domain: str, check_number: int) -> None:
        self._print(build_history_line(result, domain, check_number, self._use_utc))

    def target_passed(self, target_epoch: int, now: int) -> None:
        self._print("")
        self._print("[bold magenta]▵▵ Target Time Reached ▵▵[/bold magenta]")
        self._print(f"[bold]Target:[/bold] {format_time_display(target_epoch, self._use_utc)}")
        self._print(f"[bold]Now:[/bold]    {format_time_display(now, self._use_utc)}")
        self._print("")

    def phase_transition(self, old: Phase, new: Phase) -> None:
        old_glyph, old_color = PHASE_STYLES[old]
        new_glyph, new_color = PHASE_STYLES[new]
        self._print("")
        self._print("[yellow]✨ Phase Transition ✨[/yellow]")
        self._print(
            f"[{old_color}]{old_glyph} {old.value}[/{old_color}] [yellow]→[/yellow] "
            f"[{new_color}]{new_glyph} {new.value}[/{new_color}]"
        )
        self._print(f"[{new_color}]{PHASE_DESCRIPTIONS[new]}[/{new_color}]")
        self._print("")

    def grace_prompt(self, elapsed_seconds: int) -> None:
        self._print("")
        self._print(
            f"[yellow]Grace period expired ({human_duration(elapsed_seconds)} past target). "
            "Continue watching?[/yellow]"
        )
        self._print("\\[y] Yes, keep watching")
        self._print("\\[n] No, exit")
        self._print("\\[c] Custom interval (specify seconds)")

    def grace_auto_continue(self, elapsed_seconds: int) -> None:
        self._print(
            f"[yellow]△ Grace period expired ({human_duration(elapsed_seconds)} past target); "
            "continuing automatically[/yellow]"
        )

    def info(self, message: str) -> None:
        self._print(f"[blue]λ[/blue] {escape(message)}")

    def warning(self, message: str) -> None:
        self._print(f"[yellow]△[/yellow] {escape(message)}")

    def error(self, message: str) -> None:
        self._print(f"[red]✗[/red] {escape(message)}")

    def success(self, message: str) -> None:
        self._print(f"[green]✓[/green] {escape(message)}")

    # ------------------------------------------------------------------
    # completion
    # ------------------------------------------------------------------

    def completion(self, summary: CompletionSummary) -> None:
        if summary.celebratory:
            color, header_glyph, symbol = "green", "🎉", "✓"
        else:
            color, header_glyph, symbol = "red", "⏰", "✗"

        clock = format_clock(summary.completed_epoch, self._use_utc)
        duration = human_duration(summary.elapsed_seconds)

        self._print("")
        self._print(
            f"[{color}]{header_glyph}✨ Monitoring Complete ✨{header_glyph}[/{color}]"
        )
        self._print("")
        self._print(f"[{color}]{symbol} {completion_headline(summary)}[/{color}] at {clock}")
        self._print("")
        self._print("[bold]Results:[/bold]")
        self._print(f"  [bold]Domain:[/bold]     {escape(summary.domain)}")
        self._print(f"  [bold]Status:[/bold]     {status_label(summary.status)}")
        self._print(f"  [bold]Registrar:[/bold]  {escape(summary.registrar)}")
        self._print(f"  [bold]Duration:[/bold]   {duration}")
        self._print(f"  [bold]Checks:[/bold]     {summary.check_count} queries")
        self._print(f"  [bold]Activity:[/bold]   {summary.activity.value} monitoring")
        self._print(f"  [bold]Verdict:[/bold]    [{color}]{summary.verdict.value}[/{color}]")

        result_word = RESULT_WORDS[summary.verdict]
        trailer = Text(style=GREY)
        trailer.append(
            f"Done {symbol} {clock} │ {summary.domain} {status_label(summary.status)} "
            f"{summary.registrar} │ {duration} │ {result_word}"
        )
        self._print("")
        self._print(trailer)

    # ------------------------------------------------------------------
    # one-shot commands
    # ------------------------------------------------------------------

    def query_result(
        self,
        domain: str,
        status: LifecycleStatus,
        registrar: str,
        queried_epoch: int,
        raw_text: str,
        full: bool = False,
    ) -> None:
        glyph, color = STATUS_STYLES.get(status, ("✗", "red"))
        self._print("")
        self._print("[blue]λ Domain Query Results λ[/blue]")
        self._print(f"[bold]Domain:[/bold] {escape(domain)}")
        self._print(f"[bold]Status:[/bold] [{color}]{glyph} {status_label(status)}[/{color}]")
        self._print(f"[bold]Registrar:[/bold] {escape(registrar)}")
        self._print(f"[bold]Queried:[/bold] {format_time_display(queried_epoch, self._use_utc)}")

        self.raw_output(raw_text, full=full)

    def raw_output(self, raw_text: str, full: bool = False) -> None:
        """Raw WHOIS text, truncated unless ``full``."""
        lines = raw_text.splitlines()
        shown = lines if full else lines[:QUERY_PREVIEW_LINES]
        self._print("")
        self._print(f"[{GREY}]△ Raw WHOIS Output:[/{GREY}]")
        for line in shown:
            self._print(Text(line))
        if len(lines) > len(shown):
            self._print(
                f"[{GREY}]... ({len(lines) - len(shown)} more lines, "
                f"use -t for full output)[/{GREY}]"
            )

    def countdown(self, target_epoch: int, now: int) -> None:
        diff = target_epoch - now
        if diff > 0:
            remaining = f"{human_duration(diff)} remaining"
        elif diff == 0:
            remaining = "TARGET REACHED"
        else:
            remaining = f"{human_duration(-diff)} past target"

        self._print("")
        self._print("[blue]λ Time Countdown Mode λ[/blue]")
        self._print(remaining)
        self._print(f"Target: {format_time_display(target_epoch, self._use_utc)}")
        self._print(f"Current: {format_time_display(now, self._use_utc)}")

    def tld_table(self, entries: Iterable[TLDConfig], source: Optional[str]) -> None:
        table = Table(title="Supported TLD Configurations", show_header=True)
        table.add_column("TLD")
        table.add_column("WHOIS Server")
        table.add_column("Available Pattern")
        for entry in entries:
            table.add_row(escape(entry.tld), escape(entry.server), escape(entry.available_pattern))
        self._print(table)
        if source:
            self._print(f"\nUser configuration file: {escape(source)}")

    def tld_test_result(
        self,
        tld: str,
        domain: str,
        server: str,
        pattern: str,
        matched: bool,
    ) -> None:
        self._print("")
        self._print("[blue]λ TLD Test Results λ[/blue]")
        self._print(f"TLD: {escape(tld)}")
        self._print(f"Test domain: {escape(domain)}")
        self._print(f"WHOIS server: {escape(server)}")
        self._print(f"Expected pattern: {escape(pattern)}")
        self._print("")
        self._print("[yellow]Pattern Match Test:[/yellow]")
        if matched:
            self._print("[green]✓ Pattern MATCHED[/green]")
        else:
            self._print("[red]✗ Pattern NOT matched[/red]")
