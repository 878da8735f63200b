"""
Input validation for domains, intervals and check limits.

Everything here runs before a session starts; failures raise
ValidationError and the CLI maps them to the bad-arguments exit code.
Soft problems (a very short or very long interval) come back as warning
strings instead.
"""

import re
from dataclasses import dataclass, field
from typing import Optional

import idna

from .enums import ValidationErrorCode
from .exceptions import ValidationError


MAX_DOMAIN_LENGTH = 253
MIN_RECOMMENDED_INTERVAL = 10
MAX_RECOMMENDED_INTERVAL = 86400

# Control characters, whitespace and symbols never valid in a hostname
FORBIDDEN_CHARS_PATTERN = re.compile(
    r'[\x00-\x1f\x7f'
    r'\s'
    r'!@#$%^&*()+=\[\]{}|\\:;"\'<>,?/`~]'
)

DOMAIN_PATTERN = re.compile(
    r"^[a-zA-Z0-9](?:[a-zA-Z0-9.-]*[a-zA-Z0-9])?\.(?:[a-zA-Z]{2,}|xn--[a-zA-Z0-9-]+)$"
)

_DIGITS = re.compile(r"^[0-9]+$")


@dataclass
class ValidatedInterval:
    """An accepted interval plus any non-fatal warnings."""

    seconds: int
    warnings: list[str] = field(default_factory=list)


class DomainValidator:
    """
    Validates and normalizes domain names.

    Handles:
    - Conversion to lowercase canonical form
    - IDNA encoding for international characters
    - Rejection of forbidden characters, empty labels and overlong names
    """

    def validate(self, raw_domain: Optional[str]) -> str:
        """
        Validate a domain and return its canonical form.

        Args:
            raw_domain: The raw domain string to validate

        Returns:
            Lowercase, IDNA-encoded domain

        Raises:
            ValidationError: If the domain is not acceptable
        """
        if not raw_domain or not raw_domain.strip():
            raise ValidationError(
                code=ValidationErrorCode.EMPTY_INPUT.value,
                message="Domain is required",
                details={"raw_input": raw_domain},
            )

        domain = raw_domain.strip().rstrip(".")

        if FORBIDDEN_CHARS_PATTERN.search(domain):
            raise ValidationError(
                code=ValidationErrorCode.FORBIDDEN_CHARS.value,
                message=f"Domain contains forbidden characters: {raw_domain}",
                details={
                    "raw_input": raw_domain,
                    "forbidden_chars": FORBIDDEN_CHARS_PATTERN.findall(domain),
                },
            )

        canonical = self.normalize_to_canonical(domain)

        if len(canonical) > MAX_DOMAIN_LENGTH:
            raise ValidationError(
                code=ValidationErrorCode.TOO_LONG.value,
                message=f"Domain too long (max {MAX_DOMAIN_LENGTH} characters)",
                details={"raw_input": raw_domain, "length": len(canonical)},
            )

        if ".." in canonical or not DOMAIN_PATTERN.match(canonical):
            raise ValidationError(
                code=ValidationErrorCode.INVALID_FORMAT.value,
                message=f"Invalid domain format: {raw_domain}",
                details={"raw_input": raw_domain, "canonical": canonical},
            )

        return canonical

    def normalize_to_canonical(self, domain: str) -> str:
        """
        Convert domain to canonical form (lowercase, IDNA-encoded).

        Raises:
            ValidationError: If IDNA encoding fails
        """
        domain_lower = domain.lower()

        if not any(ord(c) > 127 for c in domain_lower):
            return domain_lower

        try:
            return idna.encode(domain_lower, uts46=True).decode("ascii")
        except idna.IDNAError as e:
            raise ValidationError(
                code=ValidationErrorCode.IDNA_ERROR.value,
                message=f"IDNA encoding failed: {e}",
                details={"domain": domain, "idna_error": str(e)},
            ) from e

    def is_valid(self, raw_domain: Optional[str]) -> bool:
        try:
            self.validate(raw_domain)
        except ValidationError:
            return False
        return True


def validate_interval(value) -> ValidatedInterval:
    """
    Validate a polling interval in seconds.

    Values below 10 or above 86400 are accepted with a warning.

    Raises:
        ValidationError: If the value is not a positive integer
    """
    text = str(value).strip() if value is not None else ""
    if not _DIGITS.match(text):
        raise ValidationError(
            code=ValidationErrorCode.INVALID_INTERVAL.value,
            message=f"Interval must be a positive number of seconds: {value}",
            details={"value": value},
        )

    seconds = int(text)
    if seconds < 1:
        raise ValidationError(
            code=ValidationErrorCode.INVALID_INTERVAL.value,
            message="Interval must be at least 1 second",
            details={"value": value},
        )

    warnings = []
    if seconds < MIN_RECOMMENDED_INTERVAL:
        warnings.append(
            f"Interval under {MIN_RECOMMENDED_INTERVAL}s may trigger registry rate limits"
        )
    if seconds > MAX_RECOMMENDED_INTERVAL:
        warnings.append("Interval over 24 hours; changes may be missed for a long time")

    return ValidatedInterval(seconds=seconds, warnings=warnings)


def validate_max_checks(value) -> int:
    """
    Validate a check limit; 0 means unlimited.

    Raises:
        ValidationError: If the value is not a non-negative integer
    """
    text = str(value).strip() if value is not None else ""
    if not _DIGITS.match(text):
        raise ValidationError(
            code=ValidationErrorCode.INVALID_MAX_CHECKS.value,
            message=f"Max checks must be a non-negative integer: {value}",
            details={"value": value},
        )
    return int(text)
