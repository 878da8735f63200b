"""
Exception hierarchy for watchdom.

Every error carries a machine-readable ``code`` (see ``enums``), a
human-readable ``message`` and a ``details`` dict. Each class also names
the process exit code the CLI returns when it escapes a command.
"""

from typing import Optional


class WatchdomError(Exception):
    """Base exception for all watchdom errors."""

    exit_code = 1

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = dict(details or {})

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.code!r}, {self.message!r})"

    def to_dict(self) -> dict:
        return {
            "error_type": type(self).__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(WatchdomError):
    """Bad domain, interval or check limit; raised before any query."""

    exit_code = 2


class ConfigError(WatchdomError):
    """No WHOIS server for the TLD, or an unusable TLD entry."""

    exit_code = 2


class TransportError(WatchdomError):
    """WHOIS lookup failed: network error, timeout or empty answer."""

    exit_code = 3


class RateLimitError(TransportError):
    """The WHOIS server answered with a throttling phrase."""


class ParseError(WatchdomError):
    """A date/time string could not be turned into an epoch."""

    exit_code = 4


class NotificationError(WatchdomError):
    """A channel failed to deliver; never escapes the Notifier."""
