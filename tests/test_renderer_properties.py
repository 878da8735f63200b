"""
Property-based tests for the status renderer.

Output is captured with a plain rich Console writing to a StringIO, so
colour codes are absent and the text can be compared directly.
"""

from io import StringIO

from hypothesis import given, settings
from hypothesis import strategies as st
from rich.console import Console

from watchdom.config import TLDConfig
from watchdom.enums import ActivityCode, LifecycleStatus, Phase, SessionOutcome
from watchdom.models import CompletionSummary, PollResult
from watchdom.renderer import (
    StatusRenderer,
    build_history_line,
    build_status_line,
    completion_headline,
    format_target_distance,
    format_timer,
    phase_glyph,
)


TARGET = 1_766_685_600  # 2025-12-25 18:00:00 UTC


def make_renderer(terminal: bool = False) -> tuple[StatusRenderer, StringIO]:
    buffer = StringIO()
    console = Console(
        file=buffer,
        color_system=None,
        width=200,
        force_terminal=terminal,
    )
    return StatusRenderer(console, use_utc=True), buffer


def make_summary(
    outcome: SessionOutcome,
    status: LifecycleStatus = LifecycleStatus.AVAILABLE,
    activity: ActivityCode = ActivityCode.AVAL,
    registrar: str = "Example Registrar",
) -> CompletionSummary:
    return CompletionSummary(
        completed_epoch=TARGET,
        domain="dropping-soon.com",
        status=status,
        registrar=registrar,
        elapsed_seconds=3725,
        check_count=7,
        activity=activity,
        outcome=outcome,
    )


def parse_timer(text: str) -> int:
    """Inverse of format_timer, used to check it."""
    days = 0
    if "d " in text:
        day_part, text = text.split("d ")
        days = int(day_part)
    if text.endswith("s"):
        return days * 86400 + int(text[:-1])
    total = 0
    for part in text.split(":"):
        total = total * 60 + int(part)
    return days * 86400 + total


class TestTimerFormattingProperty:
    """
    Property-based tests for countdown formatting.

    **Feature: watchdom, Property 36: Timers use the fewest components**
    """

    @given(seconds=st.integers(min_value=0, max_value=10_000_000))
    @settings(max_examples=200)
    def test_timer_is_exact(self, seconds: int) -> None:
        """
        Property 36a: The rendered timer always denotes the input seconds.
        """
        assert parse_timer(format_timer(seconds)) == seconds

    @given(seconds=st.integers(min_value=0, max_value=10_000_000))
    @settings(max_examples=200)
    def test_component_count(self, seconds: int) -> None:
        text = format_timer(seconds)
        if seconds < 60:
            assert text.endswith("s") and ":" not in text
        elif seconds < 3600:
            assert text.count(":") == 1
        elif seconds < 86400:
            assert text.count(":") == 2 and "d" not in text
        else:
            assert "d " in text

    def test_examples(self) -> None:
        assert format_timer(27) == "27s"
        assert format_timer(1827) == "30:27"
        assert format_timer(5427) == "1:30:27"
        assert format_timer(3 * 86400 + 5427) == "3d 1:30:27"
        assert format_timer(-5) == "0s"

    @given(seconds=st.integers(min_value=1, max_value=10_000_000))
    @settings(max_examples=100)
    def test_target_distance_sign(self, seconds: int) -> None:
        """
        Property 36b: A ``-`` prefix marks a target that is still ahead.
        """
        assert format_target_distance(seconds) == "-" + format_timer(seconds)
        assert format_target_distance(-seconds) == format_timer(seconds)

    def test_target_distance_edges(self) -> None:
        assert format_target_distance(None) == "none"
        assert format_target_distance(0) == "0s"


class TestStatusLineProperty:
    """
    Property-based tests for the live and history lines.

    **Feature: watchdom, Property 37: Status lines carry every field in order**
    """

    @given(
        phase=st.sampled_from(list(Phase)),
        activity=st.sampled_from(list(ActivityCode)),
        next_poll=st.integers(min_value=0, max_value=100_000),
        distance=st.one_of(st.none(), st.integers(min_value=-100_000, max_value=100_000)),
        use_utc=st.booleans(),
        check_count=st.integers(min_value=1, max_value=10_000),
    )
    @settings(max_examples=100)
    def test_live_line_fields(
        self,
        phase: Phase,
        activity: ActivityCode,
        next_poll: int,
        distance,
        use_utc: bool,
        check_count: int,
    ) -> None:
        line = build_status_line(
            phase, activity, next_poll, distance, "example.com", use_utc, check_count
        )
        fields = line.plain.split(" │ ")
        assert fields == [
            f"{phase_glyph(phase)} {phase.value}",
            activity.value,
            format_timer(next_poll),
            format_target_distance(distance),
            "example.com",
            f"{'UTC' if use_utc else 'LOCAL'} [#{check_count}]",
        ]

    def test_live_line_example(self) -> None:
        line = build_status_line(Phase.HEAT, ActivityCode.DROP, 10, 290, "x.com", True, 3)
        assert line.plain == "▲ HEAT │ DROP │ 10s │ -4:50 │ x.com │ UTC [#3]"

    @given(status=st.sampled_from(list(LifecycleStatus)), check=st.integers(min_value=1, max_value=999))
    @settings(max_examples=50)
    def test_history_line_has_status(self, status: LifecycleStatus, check: int) -> None:
        """
        Property 37a: Every history line names the status and check number.
        """
        result = PollResult(TARGET, "raw", status, "Example Registrar", False, ActivityCode.POLL)
        line = build_history_line(result, "x.com", check, use_utc=True).plain
        assert line == f"△ 6:00:00 pm │ x.com {status.value} │ Example Registrar │ #{check}"

    def test_history_line_omits_unknown_registrar(self) -> None:
        result = PollResult(TARGET, "", LifecycleStatus.UNKNOWN, "UNKNOWN", False, ActivityCode.POLL)
        line = build_history_line(result, "x.com", 1, use_utc=True).plain
        assert line == "△ 6:00:00 pm │ x.com UNKNOWN │ #1"


class TestLiveDisplayProperty:
    """
    Property-based tests for live-line behaviour.

    **Feature: watchdom, Property 38: Redraws only happen on a terminal**
    """

    def test_non_terminal_prints_once_per_cycle(self) -> None:
        renderer, buffer = make_renderer()
        assert renderer.interactive is False
        line = build_status_line(Phase.POLL, ActivityCode.POLL, 60, None, "x.com", True, 1)
        renderer.live(line)
        for remaining in (59, 58, 57):
            renderer.live(
                build_status_line(Phase.POLL, ActivityCode.POLL, remaining, None, "x.com", True, 1),
                redraw=True,
            )
        output = buffer.getvalue()
        assert output.count("λ POLL") == 1
        assert "\x1b" not in output

    def test_terminal_redraws_in_place(self) -> None:
        renderer, buffer = make_renderer(terminal=True)
        assert renderer.interactive is True
        renderer.live(build_status_line(Phase.POLL, ActivityCode.POLL, 60, None, "x.com", True, 1))
        renderer.live(
            build_status_line(Phase.POLL, ActivityCode.POLL, 59, None, "x.com", True, 1),
            redraw=True,
        )
        renderer.info("Using custom interval: 45 seconds")

        output = buffer.getvalue()
        assert output.count("\r\x1b[2K") == 3
        assert output.endswith("λ Using custom interval: 45 seconds\n")

    def test_clear_live_is_idempotent(self) -> None:
        renderer, buffer = make_renderer(terminal=True)
        renderer.clear_live()
        assert buffer.getvalue() == ""
        renderer.live(build_status_line(Phase.COOL, ActivityCode.POLL, 5, -20000, "x.com", True, 9))
        renderer.clear_live()
        renderer.clear_live()
        assert buffer.getvalue().count("\r\x1b[2K") == 2


class TestCompletionProperty:
    """
    Property-based tests for the completion summary.

    **Feature: watchdom, Property 39: The summary reflects the terminal state**
    """

    def test_matched(self) -> None:
        renderer, buffer = make_renderer()
        renderer.completion(make_summary(SessionOutcome.MATCHED))
        output = buffer.getvalue()
        assert "🎉✨ Monitoring Complete ✨🎉" in output
        assert "✓ Domain Available! at 6:00:00 pm" in output
        assert "Checks:     7 queries" in output
        assert "Activity:   AVAL monitoring" in output
        assert "Verdict:    PASS" in output
        assert (
            "Done ✓ 6:00:00 pm │ dropping-soon.com AVAILABLE Example Registrar │ 1h 2m 5s │ SUCCESS"
            in output
        )

    def test_limit_reached(self) -> None:
        renderer, buffer = make_renderer()
        renderer.completion(
            make_summary(
                SessionOutcome.LIMIT_REACHED,
                status=LifecycleStatus.PENDING_DELETE,
                activity=ActivityCode.DROP,
            )
        )
        output = buffer.getvalue()
        assert "⏰✨ Monitoring Complete ✨⏰" in output
        assert "✗ Drop Monitoring Timeout at 6:00:00 pm" in output
        assert "Verdict:    FAIL" in output
        assert output.rstrip().endswith("│ TIMEOUT")

    def test_cancelled(self) -> None:
        renderer, buffer = make_renderer()
        summary = make_summary(
            SessionOutcome.CANCELLED,
            status=LifecycleStatus.REGISTERED,
            activity=ActivityCode.POLL,
        )
        renderer.completion(summary)
        output = buffer.getvalue()
        assert summary.celebratory is False
        assert "Monitoring Timeout" in output
        assert "Verdict:    WATCH" in output
        assert output.rstrip().endswith("│ CANCELLED")

    @given(
        outcome=st.sampled_from(list(SessionOutcome)),
        activity=st.sampled_from(list(ActivityCode)),
    )
    @settings(max_examples=50)
    def test_headline_matches_outcome(self, outcome: SessionOutcome, activity: ActivityCode) -> None:
        summary = make_summary(outcome, activity=activity)
        headline = completion_headline(summary)
        if outcome is SessionOutcome.MATCHED:
            assert "Timeout" not in headline
        else:
            assert "Timeout" in headline


class TestOneShotOutput:
    """Tests for query, time and TLD command output."""

    def test_query_result_truncates_raw_output(self) -> None:
        renderer, buffer = make_renderer()
        raw = "\n".join(f"line {i}" for i in range(25))
        renderer.query_result(
            "x.com", LifecycleStatus.AVAILABLE, "UNKNOWN", TARGET, raw
        )
        output = buffer.getvalue()
        assert "λ Domain Query Results λ" in output
        assert "Status: ✓ AVAILABLE" in output
        assert "Queried: Thu Dec 25 18:00:00 UTC 2025" in output
        assert "line 19" in output
        assert "line 20" not in output
        assert "... (5 more lines, use -t for full output)" in output

    def test_full_raw_output(self) -> None:
        renderer, buffer = make_renderer()
        raw = "\n".join(f"line {i}" for i in range(25))
        renderer.raw_output(raw, full=True)
        output = buffer.getvalue()
        assert "line 24" in output
        assert "more lines" not in output

    def test_raw_output_is_not_markup(self) -> None:
        renderer, buffer = make_renderer()
        renderer.raw_output("[bold]Registrar:[/bold] [x]")
        assert "[bold]Registrar:[/bold] [x]" in buffer.getvalue()

    def test_countdown(self) -> None:
        renderer, buffer = make_renderer()
        renderer.countdown(TARGET, TARGET - 3661)
        renderer.countdown(TARGET, TARGET)
        renderer.countdown(TARGET, TARGET + 60)
        output = buffer.getvalue()
        assert "1h 1m 1s remaining" in output
        assert "TARGET REACHED" in output
        assert "1m 0s past target" in output
        assert "Target: Thu Dec 25 18:00:00 UTC 2025" in output

    def test_tld_table(self) -> None:
        renderer, buffer = make_renderer()
        renderer.tld_table(
            [TLDConfig(".com", "whois.verisign-grs.com", "No match for")],
            "/home/user/.watchdomrc",
        )
        output = buffer.getvalue()
        assert "Supported TLD Configurations" in output
        assert "whois.verisign-grs.com" in output
        assert "No match for" in output
        assert "User configuration file: /home/user/.watchdomrc" in output

    def test_tld_test_result(self) -> None:
        renderer, buffer = make_renderer()
        renderer.tld_test_result(".com", "x.com", "whois.verisign-grs.com", "No match for", True)
        renderer.tld_test_result(".com", "x.com", "whois.verisign-grs.com", "No match for", False)
        output = buffer.getvalue()
        assert "✓ Pattern MATCHED" in output
        assert "✗ Pattern NOT matched" in output

    def test_session_announcements(self) -> None:
        renderer, buffer = make_renderer()
        renderer.start_banner("x.com", 60, TARGET)
        renderer.phase_transition(Phase.POLL, Phase.HEAT)
        renderer.target_passed(TARGET, TARGET + 5)
        output = buffer.getvalue()
        assert "λ Watchdom Monitor Starting λ" in output
        assert "Target: Thu Dec 25 18:00:00 UTC 2025" in output
        assert "λ POLL → ▲ HEAT" in output
        assert "target approaching" in output
        assert "▵▵ Target Time Reached ▵▵" in output
