"""
Status classifier for raw WHOIS responses.

Lifecycle detection is an ordered rule table: the first rule whose
pattern matches wins. Order matters because registry text often
satisfies several loose patterns at once (a pending-delete record still
lists name servers, for instance). Every input yields exactly one
status; UNKNOWN is the fallback.

Dotted names such as hostnames are blanked before the rules run, so a
domain like ``available.com`` or ``ns1.clienthold.net`` in the record
cannot decide its own status.
"""

import re
from dataclasses import dataclass
from typing import Optional

from .enums import ActivityCode, LifecycleStatus


@dataclass(frozen=True)
class StatusRule:
    """A single lifecycle rule."""

    status: LifecycleStatus
    pattern: re.Pattern

    def applies(self, raw_text: str) -> bool:
        return self.pattern.search(raw_text) is not None


@dataclass(frozen=True)
class ActivityRule:
    """A single activity-inference rule."""

    activity: ActivityCode
    pattern: re.Pattern


def _rx(pattern: str) -> re.Pattern:
    return re.compile(pattern, re.IGNORECASE)


_AVAILABLE = _rx(r"no match for|not found|no entries found|available")
_PENDING_DELETE = _rx(r"pending.*delete|pendingdelete")
_HOLD = _rx(r"client.*hold|server.*hold")

STATUS_RULES: tuple[StatusRule, ...] = (
    StatusRule(LifecycleStatus.AVAILABLE, _AVAILABLE),
    StatusRule(LifecycleStatus.PENDING_DELETE, _PENDING_DELETE),
    StatusRule(LifecycleStatus.ON_HOLD, _HOLD),
    StatusRule(LifecycleStatus.REDEMPTION, _rx(r"redemption.*period|rgp")),
    StatusRule(LifecycleStatus.REGISTERED, _rx(r"name.*server")),
    StatusRule(LifecycleStatus.RESERVED, _rx(r"reserved|premium")),
)

ACTIVITY_RULES: tuple[ActivityRule, ...] = (
    ActivityRule(ActivityCode.DROP, _PENDING_DELETE),
    ActivityRule(ActivityCode.AVAL, _rx(r"no match|not found|available")),
    ActivityRule(ActivityCode.EXPR, _rx(r"expir")),
    ActivityRule(ActivityCode.STAT, _rx(r"hold|lock|suspend")),
)

# Brand names recognised anywhere in the text when no registrar field exists
KNOWN_REGISTRARS: tuple[tuple[str, str], ...] = (
    ("verisign", "VERISIGN"),
    ("godaddy", "GODADDY"),
    ("namecheap", "NAMECHEAP"),
)

UNKNOWN_REGISTRAR = "UNKNOWN"

# Hostnames, including the part of an e-mail address after the @
_HOSTNAME = re.compile(r"\b[\w-]+(?:\.[\w-]+)+")

_REGISTRAR_FIELD = re.compile(r"^\s*registrar:[ \t]*(.*?)\s*$", re.IGNORECASE | re.MULTILINE)
_SPONSORING_FIELD = re.compile(
    r"^\s*sponsoring registrar:[ \t]*(.*?)\s*$", re.IGNORECASE | re.MULTILINE
)


def without_hostnames(raw_text: str) -> str:
    """Replace every dotted name in ``raw_text`` with a space."""
    return _HOSTNAME.sub(" ", raw_text or "")


def classify_status(
    raw_text: str,
    rules: tuple[StatusRule, ...] = STATUS_RULES,
) -> LifecycleStatus:
    """Return the status of the first matching rule, else UNKNOWN."""
    text = without_hostnames(raw_text)
    for rule in rules:
        if rule.applies(text):
            return rule.status
    return LifecycleStatus.UNKNOWN


def extract_registrar(raw_text: str) -> str:
    """
    Best-effort registrar name.

    Looks for a ``Registrar:`` field, then ``Sponsoring Registrar:``, then
    known brand names anywhere in the text. Returns ``UNKNOWN`` otherwise.
    """
    text = raw_text or ""
    for field_pattern in (_REGISTRAR_FIELD, _SPONSORING_FIELD):
        for match in field_pattern.finditer(text):
            value = match.group(1).strip().rstrip("\r")
            if value:
                return value

    lowered = text.lower()
    for needle, name in KNOWN_REGISTRARS:
        if needle in lowered:
            return name
    return UNKNOWN_REGISTRAR


def classify(
    raw_text: str,
    rules: tuple[StatusRule, ...] = STATUS_RULES,
) -> tuple[LifecycleStatus, str]:
    """Classify raw WHOIS text into (status, registrar). Never raises."""
    return classify_status(raw_text, rules), extract_registrar(raw_text)


def pattern_matches(raw_text: str, pattern: str) -> bool:
    """Case-insensitive regex search; invalid regexes fall back to substring."""
    text = raw_text or ""
    try:
        return re.search(pattern, text, re.IGNORECASE) is not None
    except re.error:
        return pattern.lower() in text.lower()


def matches(
    raw_text: str,
    expect_pattern: Optional[str],
    status: LifecycleStatus,
) -> bool:
    """
    Decide whether a query result ends the watch.

    An explicit pattern always takes precedence and the lifecycle status
    is ignored; without one, only AVAILABLE matches.
    """
    if expect_pattern:
        return pattern_matches(raw_text, expect_pattern)
    return status is LifecycleStatus.AVAILABLE


def activity_code(raw_text: str, expect_pattern: Optional[str]) -> ActivityCode:
    """Describe what is being watched for. Purely informational."""
    if expect_pattern:
        return ActivityCode.PTRN

    text = without_hostnames(raw_text)
    for rule in ACTIVITY_RULES:
        if rule.pattern.search(text):
            return rule.activity
    return ActivityCode.POLL


class StatusClassifier:
    """Classifier bound to a rule table, so registries can extend the rules."""

    def __init__(self, rules: Optional[tuple[StatusRule, ...]] = None) -> None:
        self._rules = tuple(rules) if rules is not None else STATUS_RULES

    @property
    def rules(self) -> tuple[StatusRule, ...]:
        return self._rules

    def with_rule(self, rule: StatusRule, position: int = 0) -> "StatusClassifier":
        """Return a new classifier with ``rule`` inserted at ``position``."""
        rules = list(self._rules)
        rules.insert(position, rule)
        return StatusClassifier(tuple(rules))

    def classify(self, raw_text: str) -> tuple[LifecycleStatus, str]:
        return classify(raw_text, self._rules)

    def matches(
        self,
        raw_text: str,
        expect_pattern: Optional[str],
        status: LifecycleStatus,
    ) -> bool:
        return matches(raw_text, expect_pattern, status)

    def activity_code(self, raw_text: str, expect_pattern: Optional[str]) -> ActivityCode:
        return activity_code(raw_text, expect_pattern)
