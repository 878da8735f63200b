"""
Data models for the watchdom system.

This module defines the session, per-query result and completion
summary structures shared by the scheduler and the renderer.
"""

from dataclasses import dataclass, field
from typing import Optional

from .enums import ActivityCode, LifecycleStatus, SessionOutcome, Verdict


@dataclass(frozen=True)
class PollResult:
    """Outcome of a single WHOIS query. Never mutated after creation."""

    at_epoch: int
    raw_text: str
    status: LifecycleStatus
    registrar: str
    matched: bool
    activity: ActivityCode


@dataclass
class PollSession:
    """One monitoring run against a single domain."""

    domain: str
    base_interval: int
    target_epoch: int = 0  # 0 = no target
    max_checks: int = 0  # 0 = unlimited
    expect_pattern: Optional[str] = None
    check_count: int = 0
    start_epoch: int = 0
    history: list[PollResult] = field(default_factory=list)

    @property
    def has_target(self) -> bool:
        return self.target_epoch > 0

    @property
    def last_result(self) -> Optional[PollResult]:
        return self.history[-1] if self.history else None

    def record(self, result: PollResult) -> None:
        """Append a result to the session history."""
        self.history.append(result)

    def limit_reached(self) -> bool:
        return self.max_checks > 0 and self.check_count >= self.max_checks


@dataclass(frozen=True)
class CompletionSummary:
    """Final report of a session, rendered once at the end of a run."""

    completed_epoch: int
    domain: str
    status: LifecycleStatus
    registrar: str
    elapsed_seconds: int
    check_count: int
    activity: ActivityCode
    outcome: SessionOutcome

    @property
    def matched(self) -> bool:
        return self.outcome is SessionOutcome.MATCHED

    @property
    def verdict(self) -> Verdict:
        if self.outcome is SessionOutcome.MATCHED:
            return Verdict.PASS
        if self.outcome is SessionOutcome.LIMIT_REACHED:
            return Verdict.FAIL
        return Verdict.WATCH

    @property
    def celebratory(self) -> bool:
        return self.matched
