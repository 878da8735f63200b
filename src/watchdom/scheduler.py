"""
Poll scheduler for the watchdom system.

PollScheduler owns a PollSession for the length of one run and drives
the cycle: query, classify, record, decide, render, sleep. A run ends in
exactly one terminal state:

    MATCHED        the response matched the expected pattern or availability
    LIMIT_REACHED  ``max_checks`` queries were made without a match
    CANCELLED      the cancellation token fired or the operator chose to stop

A TransportError from the WHOIS client is not a terminal state: it
aborts the run and propagates to the caller.

Notifications go out in background tasks. A finished run waits up to
``NOTIFY_FLUSH_SECONDS`` for them; cancellation drops whatever is left.
"""

import asyncio
from typing import Any, Awaitable, Optional, TYPE_CHECKING

from .cancellation import CancellationToken
from .classifier import StatusClassifier
from .enums import GraceChoice, LogLevel, NotificationEvent, Phase, SessionOutcome
from .exceptions import ValidationError
from .models import CompletionSummary, PollResult, PollSession
from .phase_engine import calculate_interval, determine_phase, grace_exceeded
from .prompt import AutoContinuePrompt, GracePrompt
from .renderer import StatusRenderer, build_status_line
from .time_source import TimeSource, format_time_display, human_duration
from .tld_registry import TLDRegistry
from .validators import validate_interval
from .whois_client import WHOISClient

if TYPE_CHECKING:
    from .audit_logger import AuditLogger
    from .notifications import Notifier


# How long a finished run waits for notifications still in flight
NOTIFY_FLUSH_SECONDS = 30


class PollScheduler:
    """
    Phase-aware polling loop for a single domain.

    Collaborators are injected so tests can substitute a fake clock, a
    scripted WHOIS client, a scripted prompt and a fast cancellation
    token.
    """

    def __init__(
        self,
        registry: TLDRegistry,
        whois_client: WHOISClient,
        renderer: StatusRenderer,
        clock: Optional[TimeSource] = None,
        token: Optional[CancellationToken] = None,
        prompt: Optional[GracePrompt] = None,
        notifier: Optional["Notifier"] = None,
        classifier: Optional[StatusClassifier] = None,
        logger: Optional["AuditLogger"] = None,
        tick_seconds: int = 1,
    ) -> None:
        """
        Initialize the scheduler.

        Args:
            registry: TLD snapshot used to resolve the WHOIS server
            whois_client: Client used for every query
            renderer: Display sink
            clock: Time source (wall clock by default)
            token: Cancellation token shared with the signal handlers
            prompt: Grace-timeout prompt (auto-continue by default)
            notifier: Optional best-effort event notifier
            classifier: Status classifier (default rule table by default)
            logger: Optional audit logger
            tick_seconds: Countdown redraw cadence
        """
        self._registry = registry
        self._client = whois_client
        self._renderer = renderer
        self._clock = clock or TimeSource()
        self._token = token or CancellationToken()
        self._prompt = prompt or AutoContinuePrompt(renderer)
        self._notifier = notifier
        self._classifier = classifier or StatusClassifier()
        self._logger = logger
        self._tick_seconds = max(1, tick_seconds)

        self._grace_prompted = False
        self._target_announced = False
        self._cleaned_up = True
        self._pending_sends: set[asyncio.Task] = set()

    @property
    def token(self) -> CancellationToken:
        return self._token

    @property
    def grace_prompted(self) -> bool:
        return self._grace_prompted

    def _log(self, level: LogLevel, message: str, data: Optional[dict] = None) -> None:
        if self._logger and self._logger.is_enabled_for(level):
            # log lines share the terminal with the live line
            self._renderer.clear_live()
            self._logger.log(level, "PollScheduler", message, data)

    async def run(self, session: PollSession) -> CompletionSummary:
        """
        Monitor ``session.domain`` until a terminal state is reached.

        Returns:
            The completion summary, already rendered

        Raises:
            ConfigError: If no WHOIS server covers the domain (before any query)
            TransportError: If a WHOIS query fails mid-session
        """
        tld = self._registry.resolve(session.domain)

        self._grace_prompted = False
        self._target_announced = False
        self._cleaned_up = False

        session.start_epoch = self._clock.now()
        self._renderer.start_banner(session.domain, session.base_interval, session.target_epoch)
        self._log(
            LogLevel.INFO,
            "Monitoring started",
            {
                "domain": session.domain,
                "server": tld.server,
                "interval": session.base_interval,
                "target_epoch": session.target_epoch,
                "max_checks": session.max_checks,
            },
        )

        try:
            outcome = await self._loop(session, tld.server)
            await self._flush_notifications()
        finally:
            self.cleanup()

        summary = self.summarize(session, outcome)
        self._log(
            LogLevel.INFO,
            "Monitoring finished",
            {
                "domain": session.domain,
                "outcome": outcome.value,
                "checks": session.check_count,
            },
        )
        self._renderer.completion(summary)
        return summary

    def cleanup(self) -> None:
        """Release per-session display state. Safe to call more than once."""
        if self._cleaned_up:
            return
        self._cleaned_up = True
        self._renderer.clear_live()
        self._grace_prompted = False

        dropped = [task for task in self._pending_sends if not task.done()]
        for task in dropped:
            task.cancel()
        self._pending_sends.clear()
        if dropped:
            self._log(LogLevel.DEBUG, "Pending notifications dropped", {"count": len(dropped)})

    def summarize(self, session: PollSession, outcome: SessionOutcome) -> CompletionSummary:
        now = self._clock.now()
        last = session.last_result
        if last is not None:
            status, registrar, activity = last.status, last.registrar, last.activity
        else:
            status, registrar = self._classifier.classify("")
            activity = self._classifier.activity_code("", session.expect_pattern)

        return CompletionSummary(
            completed_epoch=now,
            domain=session.domain,
            status=status,
            registrar=registrar,
            elapsed_seconds=max(0, now - session.start_epoch),
            check_count=session.check_count,
            activity=activity,
            outcome=outcome,
        )

    async def _loop(self, session: PollSession, server: str) -> SessionOutcome:
        previous_phase: Optional[Phase] = None

        while True:
            if self._token.cancelled:
                return SessionOutcome.CANCELLED

            session.check_count += 1
            finished, response = await self._until_cancelled(
                self._client.query(session.domain, server)
            )
            if not finished:
                return SessionOutcome.CANCELLED

            result = self._record(session, response.raw_response)

            if result.matched:
                self._log(
                    LogLevel.INFO,
                    "Match found",
                    {"domain": session.domain, "status": result.status.value},
                )
                self._notify(
                    NotificationEvent.MATCH_FOUND,
                    session.domain,
                    f"Status {result.status.value} after {session.check_count} checks",
                )
                return SessionOutcome.MATCHED

            self._renderer.history(result, session.domain, session.check_count)

            if session.limit_reached():
                self._log(
                    LogLevel.WARN,
                    "Maximum checks reached",
                    {"domain": session.domain, "max_checks": session.max_checks},
                )
                return SessionOutcome.LIMIT_REACHED

            now = self._clock.now()
            phase = determine_phase(session.target_epoch, now)
            seconds_to_target = session.target_epoch - now if session.has_target else None
            interval = calculate_interval(
                session.base_interval, phase, seconds_to_target or 0
            )

            if session.has_target and now >= session.target_epoch and not self._target_announced:
                self._target_announced = True
                self._renderer.target_passed(session.target_epoch, now)
                self._notify(
                    NotificationEvent.TARGET_REACHED,
                    session.domain,
                    f"Target {format_time_display(session.target_epoch, True)}",
                )

            if previous_phase is not None and phase is not previous_phase:
                self._log(
                    LogLevel.DEBUG,
                    "Phase transition",
                    {"from": previous_phase.value, "to": phase.value},
                )
                self._renderer.phase_transition(previous_phase, phase)
            previous_phase = phase

            self._draw_live(session, phase, result, interval)

            if (
                session.has_target
                and not self._grace_prompted
                and grace_exceeded(session.target_epoch, now)
            ):
                self._grace_prompted = True
                if not await self._grace_interaction(session, now):
                    return SessionOutcome.CANCELLED
                # a custom interval applies from this cycle on
                interval = calculate_interval(
                    session.base_interval, phase, seconds_to_target or 0
                )

            self._log(
                LogLevel.DEBUG,
                "Sleeping until next poll",
                {"seconds": interval, "phase": phase.value},
            )
            if await self._countdown(session, phase, result, interval):
                return SessionOutcome.CANCELLED

    def _record(self, session: PollSession, raw_text: str) -> PollResult:
        status, registrar = self._classifier.classify(raw_text)
        result = PollResult(
            at_epoch=self._clock.now(),
            raw_text=raw_text,
            status=status,
            registrar=registrar,
            matched=self._classifier.matches(raw_text, session.expect_pattern, status),
            activity=self._classifier.activity_code(raw_text, session.expect_pattern),
        )
        session.record(result)
        self._log(
            LogLevel.DEBUG,
            "Query classified",
            {
                "check": session.check_count,
                "status": status.value,
                "registrar": registrar,
                "matched": result.matched,
            },
        )
        return result

    def _draw_live(
        self,
        session: PollSession,
        phase: Phase,
        result: PollResult,
        remaining: int,
        redraw: bool = False,
    ) -> None:
        now = self._clock.now()
        seconds_to_target = session.target_epoch - now if session.has_target else None
        line = build_status_line(
            phase,
            result.activity,
            remaining,
            seconds_to_target,
            session.domain,
            self._renderer.use_utc,
            session.check_count,
        )
        self._renderer.live(line, redraw=redraw)

    async def _countdown(
        self,
        session: PollSession,
        phase: Phase,
        result: PollResult,
        interval: int,
    ) -> bool:
        """Sleep ``interval`` seconds in ticks. Returns True if cancelled."""
        remaining = interval
        while remaining > 0:
            step = min(self._tick_seconds, remaining)
            if await self._token.sleep(step):
                return True
            remaining -= step
            if remaining > 0:
                self._draw_live(session, phase, result, remaining, redraw=True)
        return False

    async def _grace_interaction(self, session: PollSession, now: int) -> bool:
        """Ask whether to keep watching. Returns False to stop the session."""
        elapsed = now - session.target_epoch
        self._log(
            LogLevel.WARN,
            "Grace period exceeded",
            {"domain": session.domain, "elapsed": human_duration(elapsed)},
        )
        self._notify(
            NotificationEvent.GRACE_EXCEEDED,
            session.domain,
            f"Exceeded at {format_time_display(now, True)}",
        )

        self._renderer.clear_live()
        finished, decision = await self._until_cancelled(self._prompt.ask(elapsed))
        if not finished:
            return False

        if decision.warning:
            self._renderer.warning(decision.warning)

        if decision.choice is GraceChoice.STOP:
            self._renderer.info("Exiting per operator request")
            return False

        if decision.choice is GraceChoice.CUSTOM:
            try:
                validated = validate_interval(decision.custom_interval)
            except ValidationError as e:
                self._renderer.warning(f"{e.message}; keeping current interval")
                return True
            for warning in validated.warnings:
                self._renderer.warning(warning)
            session.base_interval = validated.seconds
            self._renderer.info(f"Using custom interval: {validated.seconds} seconds")

        return True

    async def _until_cancelled(self, awaitable: Awaitable[Any]) -> tuple[bool, Any]:
        """
        Await ``awaitable`` unless the token fires first.

        Returns:
            ``(True, result)`` when it completed, ``(False, None)`` when cancelled
        """
        if self._token.cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            return False, None

        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._token.wait())
        try:
            done, _ = await asyncio.wait(
                {task, waiter}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for pending in (task, waiter):
                if not pending.done():
                    pending.cancel()

        if task in done:
            return True, task.result()
        return False, None

    def _notify(self, event: NotificationEvent, domain: str, details: str) -> None:
        """Send in the background; polling never waits on a channel."""
        if self._notifier is None:
            return
        task = asyncio.create_task(self._notifier.send(event, domain, details))
        self._pending_sends.add(task)
        task.add_done_callback(self._pending_sends.discard)

    async def _flush_notifications(self) -> None:
        """Give in-flight sends a bounded chance to finish unless cancelled."""
        pending = {task for task in self._pending_sends if not task.done()}
        if not pending or self._token.cancelled:
            return
        self._log(LogLevel.DEBUG, "Waiting for notifications", {"pending": len(pending)})
        await self._until_cancelled(asyncio.wait(pending, timeout=NOTIFY_FLUSH_SECONDS))
