"""
TLD Registry - WHOIS servers and availability patterns per TLD.

The registry is built once per run from the built-in table plus the
user's ``~/.watchdomrc`` file and is read-only afterwards. User entries
override built-ins.

User file format, one entry per line::

    # comment
    .uk|whois.nic.uk|No such domain
"""

from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, TYPE_CHECKING

from .config import TLDConfig
from .enums import LogLevel
from .exceptions import ConfigError, ValidationError

if TYPE_CHECKING:
    from .audit_logger import AuditLogger


# ============================================================================
# BUILT-IN TLDs
# ============================================================================
BUILTIN_TLDS = [
    TLDConfig(tld=".com", server="whois.verisign-grs.com", available_pattern="No match for"),
    TLDConfig(tld=".net", server="whois.verisign-grs.com", available_pattern="No match for"),
    TLDConfig(tld=".org", server="whois.pir.org", available_pattern="NOT FOUND"),
    TLDConfig(tld=".info", server="whois.afilias.net", available_pattern="Not found"),
    TLDConfig(tld=".biz", server="whois.nic.biz", available_pattern="Not found"),
]


def normalize_tld(tld: str) -> str:
    """Lowercase a TLD and ensure it has a leading dot."""
    tld = tld.strip().lower()
    if not tld.startswith("."):
        tld = f".{tld}"
    return tld


def parse_rc_line(line: str) -> Optional[TLDConfig]:
    """
    Parse one ``TLD|SERVER|PATTERN`` line.

    Returns:
        TLDConfig, or None for comments, blank or malformed lines
    """
    line = line.strip()
    if not line or line.startswith("#"):
        return None

    parts = line.split("|", 2)
    if len(parts) != 3:
        return None

    tld, server, pattern = (part.strip() for part in parts)
    if not tld or not server or not pattern:
        return None

    return TLDConfig(tld=normalize_tld(tld), server=server, available_pattern=pattern)


def load_user_entries(
    rc_path: Path,
    logger: Optional["AuditLogger"] = None,
) -> list[TLDConfig]:
    """Read user TLD entries, skipping anything that does not parse."""
    if not rc_path.is_file():
        return []

    entries = []
    with open(rc_path, "r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, start=1):
            entry = parse_rc_line(line)
            if entry is None:
                if line.strip() and not line.lstrip().startswith("#") and logger:
                    logger.log(
                        LogLevel.DEBUG,
                        "TLDRegistry",
                        "Skipping malformed TLD line",
                        {"path": str(rc_path), "line": lineno},
                    )
                continue
            entries.append(entry)
    return entries


def append_user_entry(rc_path: Path, tld: str, server: str, pattern: str) -> TLDConfig:
    """
    Append a TLD entry to the user file.

    Raises:
        ValidationError: If any field is empty or contains the separator
    """
    fields = {"tld": tld, "server": server, "pattern": pattern}
    for name, value in fields.items():
        if not value or not value.strip() or "|" in value or "\n" in value:
            raise ValidationError(
                code="invalid_tld_entry",
                message=f"Invalid {name} for TLD entry: {value!r}",
                details=fields,
            )

    entry = TLDConfig(
        tld=normalize_tld(tld),
        server=server.strip(),
        available_pattern=pattern.strip(),
    )

    rc_path.parent.mkdir(parents=True, exist_ok=True)
    with open(rc_path, "a", encoding="utf-8") as f:
        f.write(f"{entry.tld}|{entry.server}|{entry.available_pattern}\n")
    return entry


class TLDRegistry:
    """Immutable snapshot of TLD configurations."""

    def __init__(
        self,
        entries: Iterable[TLDConfig],
        source: Optional[Path] = None,
    ) -> None:
        table: dict[str, TLDConfig] = {}
        for entry in entries:
            table[normalize_tld(entry.tld)] = entry
        self._table: Mapping[str, TLDConfig] = MappingProxyType(table)
        self._source = source

    @classmethod
    def load(
        cls,
        rc_path: Optional[Path] = None,
        logger: Optional["AuditLogger"] = None,
    ) -> "TLDRegistry":
        """Build a snapshot from built-ins plus the user file (if any)."""
        entries = list(BUILTIN_TLDS)
        if rc_path is not None:
            entries.extend(load_user_entries(rc_path, logger))
        return cls(entries, source=rc_path)

    @property
    def source(self) -> Optional[Path]:
        return self._source

    def entries(self) -> list[TLDConfig]:
        """All entries sorted by TLD."""
        return [self._table[tld] for tld in sorted(self._table)]

    def get(self, tld: str) -> Optional[TLDConfig]:
        return self._table.get(normalize_tld(tld))

    def resolve(self, domain: str) -> TLDConfig:
        """
        Find the configuration for a domain, longest suffix first.

        Raises:
            ConfigError: If no entry covers the domain's TLD
        """
        labels = domain.lower().strip(".").split(".")
        for start in range(1, len(labels)):
            suffix = "." + ".".join(labels[start:])
            entry = self._table.get(suffix)
            if entry is not None:
                return entry

        tld = "." + labels[-1] if labels and labels[-1] else domain
        raise ConfigError(
            code="tld_not_configured",
            message=f"No WHOIS server configured for TLD {tld}",
            details={"domain": domain, "tld": tld, "known": sorted(self._table)},
        )

    def __contains__(self, tld: str) -> bool:
        return normalize_tld(tld) in self._table

    def __len__(self) -> int:
        return len(self._table)
