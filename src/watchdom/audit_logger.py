"""
Structured logging for watchdom.

Every component writes through one ``AuditLogger`` injected by the CLI.
Entries carry a UTC timestamp, a level, the emitting component, a message
and a data dict, and are written to stderr as a text line, a JSON line, or
both. The minimum level comes from the ``-d``/``-t``/``-q`` flags.

Credentials that reach a log call (SMTP password, webhook URL) are masked
before the entry is stored or written.
"""

import json
import sys
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional, TextIO

from .enums import LogLevel


LEVEL_ORDER = {
    LogLevel.DEBUG: 10,
    LogLevel.INFO: 20,
    LogLevel.WARN: 30,
    LogLevel.ERROR: 40,
}

# Substrings; a key containing any of them is masked
SENSITIVE_KEYS = frozenset({
    "password", "smtp_pass", "secret", "token", "api_key",
    "webhook_url", "auth", "credential", "private_key",
})

MASK_VALUE = "***MASKED***"

# Entries kept in memory; older ones are still on the stream
DEFAULT_MAX_ENTRIES = 500


@dataclass
class LogEntry:
    """One emitted log record."""

    timestamp: str
    level: LogLevel
    component: str
    message: str
    data: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "level": self.level.value,
            "component": self.component,
            "message": self.message,
            "data": self.data,
        }


def parse_level(value: str) -> LogLevel:
    """Map a level name (``debug``, ``info``, ``warn``/``warning``, ``error``)."""
    name = (value or "").strip().lower()
    if name == "warning":
        name = "warn"
    try:
        return LogLevel(name)
    except ValueError:
        raise ValueError(f"Invalid log level: {value}") from None


def is_sensitive(key: Any) -> bool:
    name = str(key).lower()
    return any(marker in name for marker in SENSITIVE_KEYS)


def mask_sensitive(value: Any) -> Any:
    """Return a copy of ``value`` with sensitive dict keys masked at any depth."""
    if isinstance(value, dict):
        return {
            key: MASK_VALUE if is_sensitive(key) else mask_sensitive(item)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [mask_sensitive(item) for item in value]
    return value


def format_json(entry: LogEntry) -> str:
    return json.dumps(entry.to_dict(), ensure_ascii=False, default=str)


def format_text(entry: LogEntry) -> str:
    """``[timestamp] LEVEL [component] message {data}``"""
    line = f"[{entry.timestamp}] {entry.level.value.upper()} [{entry.component}] {entry.message}"
    if entry.data:
        line += " " + json.dumps(entry.data, ensure_ascii=False, default=str)
    return line


FORMATTERS: dict[str, tuple[Callable[[LogEntry], str], ...]] = {
    "text": (format_text,),
    "json": (format_json,),
    "both": (format_json, format_text),
}


class AuditLogger:
    """
    Structured logger shared by the CLI, scheduler, WHOIS client,
    TLD registry and notifier.
    """

    SENSITIVE_KEYS = SENSITIVE_KEYS
    MASK_VALUE = MASK_VALUE

    def __init__(
        self,
        output_format: str = "text",
        output_stream: Optional[TextIO] = None,
        min_level: LogLevel = LogLevel.INFO,
        max_entries: int = DEFAULT_MAX_ENTRIES,
    ):
        """
        Args:
            output_format: 'text', 'json' or 'both'
            output_stream: Defaults to sys.stderr
            min_level: Entries below this level are dropped
            max_entries: How many recent entries ``entries`` keeps
        """
        if output_format not in FORMATTERS:
            raise ValueError(f"Invalid output_format: {output_format}")

        self._output_format = output_format
        self._output_stream = output_stream or sys.stderr
        self._min_level = min_level
        self._entries: deque[LogEntry] = deque(maxlen=max(1, max_entries))

    @property
    def output_format(self) -> str:
        return self._output_format

    @property
    def min_level(self) -> LogLevel:
        return self._min_level

    @min_level.setter
    def min_level(self, level: LogLevel) -> None:
        self._min_level = level

    @property
    def entries(self) -> list[LogEntry]:
        """Entries emitted so far, oldest first."""
        return list(self._entries)

    def is_enabled_for(self, level: LogLevel) -> bool:
        return LEVEL_ORDER[level] >= LEVEL_ORDER[self._min_level]

    def log(
        self,
        level: LogLevel,
        component: str,
        message: str,
        data: Optional[dict] = None,
    ) -> Optional[LogEntry]:
        """
        Emit an entry.

        Returns:
            The stored LogEntry, or None if ``level`` is below the minimum
        """
        if not self.is_enabled_for(level):
            return None

        entry = LogEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            level=level,
            component=component,
            message=message,
            data=mask_sensitive(data or {}),
        )
        self._entries.append(entry)

        for formatter in FORMATTERS[self._output_format]:
            self._output_stream.write(formatter(entry) + "\n")
        self._output_stream.flush()
        return entry

    def debug(self, component: str, message: str, data: Optional[dict] = None) -> Optional[LogEntry]:
        return self.log(LogLevel.DEBUG, component, message, data)

    def info(self, component: str, message: str, data: Optional[dict] = None) -> Optional[LogEntry]:
        return self.log(LogLevel.INFO, component, message, data)

    def warn(self, component: str, message: str, data: Optional[dict] = None) -> Optional[LogEntry]:
        return self.log(LogLevel.WARN, component, message, data)

    def log_error(
        self,
        component: str,
        message: str,
        error: Optional[BaseException] = None,
        domain: Optional[str] = None,
        server: Optional[str] = None,
        **context: Any,
    ) -> Optional[LogEntry]:
        """
        Log an ERROR entry with the failing exception and query context.

        ``WatchdomError`` subclasses contribute their ``code``; any other
        exception is recorded by type and message only.
        """
        data: dict = {}
        if domain is not None:
            data["domain"] = domain
        if server is not None:
            data["server"] = server
        data.update(context)

        if error is not None:
            data["error_type"] = type(error).__name__
            data["error_message"] = getattr(error, "message", None) or str(error)
            code = getattr(error, "code", None)
            if code is not None:
                data["error_code"] = code

        return self.log(LogLevel.ERROR, component, message, data)
