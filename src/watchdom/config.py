"""
Configuration dataclasses for the watchdom system.

This module defines the configuration structures used throughout the
system: TLD-to-server entries, notification channels, retry behaviour,
logging and the watch defaults. Values are read from the environment
(optionally populated from a ``.env`` file via python-dotenv).
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


DEFAULT_INTERVAL = 60
DEFAULT_MAX_CHECKS = 0
DEFAULT_WHOIS_TIMEOUT = 30.0
DEFAULT_RC_PATH = Path.home() / ".watchdomrc"


@dataclass(frozen=True)
class TLDConfig:
    """WHOIS server and default availability pattern for a TLD."""

    tld: str  # with leading dot, e.g. '.com'
    server: str
    available_pattern: str


@dataclass
class RetryConfig:
    """Retry behaviour for notification delivery."""

    max_retries: int = 2
    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 30.0


@dataclass
class EmailConfig:
    """Email notification channel configuration."""

    smtp_host: str
    smtp_port: int
    username: str
    password: str
    from_address: str
    to_addresses: list[str] = field(default_factory=list)


@dataclass
class WebhookConfig:
    """Generic webhook notification channel configuration."""

    url: str
    headers: dict[str, str] = field(default_factory=dict)


@dataclass
class NotificationConfig:
    """Notification channels configuration."""

    email: Optional[EmailConfig] = None
    webhook: Optional[WebhookConfig] = None

    @property
    def enabled(self) -> bool:
        return self.email is not None or self.webhook is not None


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "info"
    output_format: str = "text"  # 'json', 'text', 'both'


@dataclass
class WatchConfig:
    """Main configuration combining watch defaults and sub-configurations."""

    interval: int = DEFAULT_INTERVAL
    max_checks: int = DEFAULT_MAX_CHECKS
    time_local: bool = True
    rc_path: Path = DEFAULT_RC_PATH
    whois_timeout: float = DEFAULT_WHOIS_TIMEOUT
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    simulation_mode: bool = False


def _int_env(env: dict, name: str, default: int) -> int:
    try:
        return int(env.get(name, str(default)))
    except (TypeError, ValueError):
        return default


def _float_env(env: dict, name: str, default: float) -> float:
    try:
        return float(env.get(name, str(default)))
    except (TypeError, ValueError):
        return default


def _email_from_env(env: dict) -> Optional[EmailConfig]:
    """Email is enabled only when every NOTIFY_* variable is present."""
    keys = (
        "NOTIFY_EMAIL",
        "NOTIFY_FROM",
        "NOTIFY_SMTP_HOST",
        "NOTIFY_SMTP_PORT",
        "NOTIFY_SMTP_USER",
        "NOTIFY_SMTP_PASS",
    )
    values = {key: (env.get(key) or "").strip() for key in keys}
    if not all(values.values()):
        return None

    try:
        port = int(values["NOTIFY_SMTP_PORT"])
    except ValueError:
        return None

    return EmailConfig(
        smtp_host=values["NOTIFY_SMTP_HOST"],
        smtp_port=port,
        username=values["NOTIFY_SMTP_USER"],
        password=values["NOTIFY_SMTP_PASS"],
        from_address=values["NOTIFY_FROM"],
        to_addresses=[
            addr.strip() for addr in values["NOTIFY_EMAIL"].split(",") if addr.strip()
        ],
    )


def load_config_from_env(
    env: Optional[dict] = None,
    dotenv: bool = True,
) -> WatchConfig:
    """
    Build a WatchConfig from environment variables.

    Args:
        env: Mapping to read from (defaults to os.environ)
        dotenv: Load a ``.env`` file into os.environ first

    Returns:
        WatchConfig with malformed values replaced by defaults
    """
    if env is None:
        if dotenv:
            load_dotenv()
        env = dict(os.environ)

    webhook = None
    webhook_url = (env.get("NOTIFY_WEBHOOK_URL") or "").strip()
    if webhook_url:
        webhook = WebhookConfig(url=webhook_url)

    rc_path = env.get("WATCHDOM_RC")

    return WatchConfig(
        interval=_int_env(env, "WATCHDOM_INTERVAL", DEFAULT_INTERVAL),
        max_checks=_int_env(env, "WATCHDOM_MAX_CHECKS", DEFAULT_MAX_CHECKS),
        time_local=env.get("WATCHDOM_TIME_LOCAL", "1") != "0",
        rc_path=Path(rc_path).expanduser() if rc_path else DEFAULT_RC_PATH,
        whois_timeout=_float_env(env, "WATCHDOM_WHOIS_TIMEOUT", DEFAULT_WHOIS_TIMEOUT),
        notifications=NotificationConfig(
            email=_email_from_env(env),
            webhook=webhook,
        ),
    )
