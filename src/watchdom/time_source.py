"""
Time source for the watchdom system.

Wall-clock access plus flexible parsing of datetime strings into epoch
seconds. Parsing is done in pure Python so it behaves the same on every
host, whatever its ``date`` binary supports. Strings without an explicit
zone are interpreted as UTC.
"""

import re
import time
from datetime import datetime, timezone
from typing import Optional

from .exceptions import ParseError


# Tried in order before the ISO and normalized fallbacks
STRICT_FORMATS = (
    "%Y-%m-%d %H:%M:%S%z",
    "%Y-%m-%d %H:%M:%S %z",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%dT%H:%M",
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d %H:%M",
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%d %b %Y %H:%M:%S",
    "%b %d %Y %H:%M:%S",
    "%a %b %d %H:%M:%S %Y",
)

_EPOCH_PATTERN = re.compile(r"^\d+$")
_TRAILING_ZONE = re.compile(r"\s*\b(?:UTC|GMT|Z|[A-Z]{2,5})$", re.IGNORECASE)
# `date` output puts the zone before the year
_EMBEDDED_ZONE = re.compile(r"\s(?:UTC|GMT)(?=\s)", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")


def _to_epoch(dt: datetime) -> int:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp())


def _try_strict(text: str) -> Optional[int]:
    for fmt in STRICT_FORMATS:
        try:
            return _to_epoch(datetime.strptime(text, fmt))
        except ValueError:
            continue
    return None


def _try_iso(text: str) -> Optional[int]:
    try:
        return _to_epoch(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError:
        return None


def parse_epoch(text: str) -> int:
    """
    Parse a datetime string into epoch seconds.

    Strategies, in order:
    1. bare integer (already an epoch)
    2. strict formats (``2025-12-25 18:00:00``, ``2025-12-25T18:00:00+0000``...)
    3. ISO-8601 via ``datetime.fromisoformat``
    4. normalized fallback: drop a UTC/GMT token before the year
       (``Thu Dec 25 18:00:00 UTC 2025``), strip a trailing zone name,
       collapse whitespace, assume UTC, then retry 2 and 3

    Args:
        text: Datetime string, e.g. ``"2025-12-25 18:00:00 UTC"``

    Returns:
        Epoch seconds

    Raises:
        ParseError: If no strategy yields a valid timestamp
    """
    if text is None or not str(text).strip():
        raise ParseError(
            code="empty_datetime",
            message="Datetime input is empty",
            details={"input": text},
        )

    raw = str(text).strip()

    if _EPOCH_PATTERN.match(raw):
        return int(raw)

    epoch = _try_strict(raw)
    if epoch is None:
        epoch = _try_iso(raw)
    if epoch is not None:
        return epoch

    normalized = _TRAILING_ZONE.sub("", _EMBEDDED_ZONE.sub(" ", raw))
    normalized = _WHITESPACE.sub(" ", normalized).strip()
    if normalized and normalized != raw:
        epoch = _try_strict(normalized)
        if epoch is None:
            epoch = _try_iso(normalized)
        if epoch is not None:
            return epoch

    raise ParseError(
        code="unparseable_datetime",
        message=f"Cannot parse datetime: {raw}",
        details={"input": raw, "normalized": normalized},
    )


def format_time_display(epoch: int, use_utc: bool = False) -> str:
    """Render an epoch like ``Thu Dec 25 18:00:00 UTC 2025``."""
    if use_utc:
        dt = datetime.fromtimestamp(epoch, tz=timezone.utc)
        return dt.strftime("%a %b %d %H:%M:%S UTC %Y")
    dt = datetime.fromtimestamp(epoch).astimezone()
    return dt.strftime("%a %b %d %H:%M:%S %Z %Y")


def format_clock(epoch: int, use_utc: bool = False) -> str:
    """Render a 12-hour clock time with lowercase am/pm, e.g. ``6:05:09 pm``."""
    if use_utc:
        dt = datetime.fromtimestamp(epoch, tz=timezone.utc)
    else:
        dt = datetime.fromtimestamp(epoch)
    hour = dt.hour % 12 or 12
    suffix = "am" if dt.hour < 12 else "pm"
    return f"{hour}:{dt.minute:02d}:{dt.second:02d} {suffix}"


def human_duration(seconds: int) -> str:
    """Render a duration like ``1d 2h 3m 4s``; zero components are omitted."""
    seconds = max(0, int(seconds))
    days, seconds = divmod(seconds, 86400)
    hours, seconds = divmod(seconds, 3600)
    minutes, seconds = divmod(seconds, 60)

    parts = []
    if days:
        parts.append(f"{days}d")
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    parts.append(f"{seconds}s")
    return " ".join(parts)


class TimeSource:
    """Wall clock. Tests substitute a subclass with a controllable ``now``."""

    def now(self) -> int:
        return int(time.time())

    def parse(self, text: str) -> int:
        return parse_epoch(text)
