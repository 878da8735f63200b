"""
Enumeration types for the watchdom system.

These enums provide type-safe constants for phases, lifecycle states,
activity codes, error codes and terminal session states.
"""

from enum import Enum


class Phase(Enum):
    """Temporal polling regime derived from the target time."""

    POLL = "POLL"
    HEAT = "HEAT"
    GRACE = "GRACE"
    COOL = "COOL"


class LifecycleStatus(Enum):
    """Registry lifecycle state inferred from WHOIS text."""

    AVAILABLE = "AVAILABLE"
    PENDING_DELETE = "PENDING-DELETE"
    ON_HOLD = "ON-HOLD"
    REDEMPTION = "REDEMPTION"
    REGISTERED = "REGISTERED"
    RESERVED = "RESERVED"
    UNKNOWN = "UNKNOWN"


class ActivityCode(Enum):
    """What the operator is watching for."""

    DROP = "DROP"
    AVAL = "AVAL"
    EXPR = "EXPR"
    STAT = "STAT"
    PTRN = "PTRN"
    POLL = "POLL"


class SessionOutcome(Enum):
    """Terminal state of a polling session."""

    MATCHED = "matched"
    LIMIT_REACHED = "limit_reached"
    CANCELLED = "cancelled"


class Verdict(Enum):
    """Verdict tag shown in the completion summary."""

    PASS = "PASS"
    FAIL = "FAIL"
    WATCH = "WATCH"


class GraceChoice(Enum):
    """Operator decision at the grace-timeout prompt."""

    CONTINUE = "continue"
    STOP = "stop"
    CUSTOM = "custom"


class NotificationEvent(Enum):
    """Events that trigger a best-effort notification."""

    MATCH_FOUND = "match_found"
    TARGET_REACHED = "target_reached"
    GRACE_EXCEEDED = "grace_exceeded"


class LogLevel(Enum):
    """Logging severity levels."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class WHOISErrorCode(Enum):
    """Error codes for WHOIS client operations."""

    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"
    EMPTY_RESPONSE = "empty_response"
    RATE_LIMITED = "rate_limited"


class ValidationErrorCode(Enum):
    """Error codes for input validation failures."""

    EMPTY_INPUT = "empty_input"
    FORBIDDEN_CHARS = "forbidden_chars"
    INVALID_FORMAT = "invalid_format"
    TOO_LONG = "too_long"
    IDNA_ERROR = "idna_error"
    INVALID_INTERVAL = "invalid_interval"
    INVALID_MAX_CHECKS = "invalid_max_checks"
