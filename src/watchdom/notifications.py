"""
Best-effort notifications for monitoring milestones.

Three events leave the process: the domain matched, the target time was
reached, and the grace window after the target ran out. Each event is
rendered once into a ``NotificationPayload`` and fanned out to every
configured channel (SMTP email, JSON webhook) by ``NotificationRouter``,
which retries each channel with capped exponential backoff.

The scheduler only ever talks to ``Notifier``; it logs every failure and
never raises, so a broken mail server cannot end a monitoring session.
"""

import asyncio
import smtplib
import ssl
from abc import abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.message import EmailMessage
from typing import Optional, Protocol, TYPE_CHECKING, runtime_checkable

import httpx

from .config import EmailConfig, NotificationConfig, RetryConfig, WebhookConfig
from .enums import LogLevel, NotificationEvent
from .exceptions import NotificationError

if TYPE_CHECKING:
    from .audit_logger import AuditLogger


EVENT_SUBJECTS = {
    NotificationEvent.MATCH_FOUND: "Domain Available: {domain}",
    NotificationEvent.TARGET_REACHED: "Target Time Reached: {domain}",
    NotificationEvent.GRACE_EXCEEDED: "Grace Period: {domain}",
}

SMTP_TIMEOUT = 30
WEBHOOK_TIMEOUT = 30.0


@dataclass
class NotificationPayload:
    """A rendered event, identical for every channel."""

    event: NotificationEvent
    domain: str
    subject: str
    body: str
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    def to_dict(self) -> dict:
        return {
            "event": self.event.value,
            "domain": self.domain,
            "subject": self.subject,
            "body": self.body,
            "timestamp": self.timestamp,
        }


@dataclass
class NotificationResult:
    channel: str
    success: bool
    error: Optional[str] = None
    attempts: int = 1


@runtime_checkable
class NotificationChannel(Protocol):
    """A delivery transport. ``send`` returns False or raises NotificationError on failure."""

    @abstractmethod
    async def send(self, payload: NotificationPayload) -> bool:
        ...

    @abstractmethod
    def get_name(self) -> str:
        ...


def build_payload(
    event: NotificationEvent,
    domain: str,
    details: str = "",
) -> NotificationPayload:
    """Render subject and plain-text body for ``event``."""
    timestamp = datetime.now(timezone.utc).isoformat()
    lines = [f"Domain: {domain}", f"Event: {event.value}"]
    if details:
        lines.append(f"Details: {details}")
    lines.append(f"Time: {timestamp}")

    return NotificationPayload(
        event=event,
        domain=domain,
        subject=EVENT_SUBJECTS[event].format(domain=domain),
        body="\n".join(lines) + "\n",
        timestamp=timestamp,
    )


def backoff_delay(retry: RetryConfig, attempt: int) -> float:
    """Delay before retry number ``attempt`` (0-based), capped at ``max_delay_seconds``."""
    return min(retry.base_delay_seconds * (2 ** attempt), retry.max_delay_seconds)


class EmailChannel:
    """SMTP with STARTTLS; the blocking session runs in the default executor."""

    name = "email"

    def __init__(self, config: EmailConfig, simulation_mode: bool = False) -> None:
        self._config = config
        self._simulation_mode = simulation_mode

    def get_name(self) -> str:
        return self.name

    def format_email(self, payload: NotificationPayload) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self._config.from_address
        msg["To"] = ", ".join(self._config.to_addresses)
        msg["Subject"] = payload.subject
        msg.set_content(payload.body)
        return msg

    async def send(self, payload: NotificationPayload) -> bool:
        if self._simulation_mode:
            return True
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._deliver, self.format_email(payload))

    def _deliver(self, msg: EmailMessage) -> bool:
        cfg = self._config
        try:
            with smtplib.SMTP(cfg.smtp_host, cfg.smtp_port, timeout=SMTP_TIMEOUT) as smtp:
                smtp.starttls(context=ssl.create_default_context())
                smtp.login(cfg.username, cfg.password)
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError(
                code="smtp_failed",
                message=f"SMTP delivery via {cfg.smtp_host} failed: {e}",
                details={"host": cfg.smtp_host, "port": cfg.smtp_port},
            ) from e
        return True


class WebhookChannel:
    """POSTs the payload as JSON; any 2xx status counts as delivered."""

    name = "webhook"

    def __init__(self, config: WebhookConfig, simulation_mode: bool = False) -> None:
        self._config = config
        self._simulation_mode = simulation_mode

    def get_name(self) -> str:
        return self.name

    async def send(self, payload: NotificationPayload) -> bool:
        if self._simulation_mode:
            return True

        headers = {"Content-Type": "application/json", **self._config.headers}
        async with httpx.AsyncClient(timeout=WEBHOOK_TIMEOUT) as client:
            try:
                response = await client.post(
                    self._config.url, json=payload.to_dict(), headers=headers
                )
            except httpx.HTTPError as e:
                raise NotificationError(
                    code="webhook_failed",
                    message=f"Webhook request failed: {e}",
                    details={"error_type": type(e).__name__},
                ) from e
        return 200 <= response.status_code < 300


class NotificationRouter:
    """
    Delivers a payload to every registered channel concurrently.

    Each channel gets ``max_retries + 1`` attempts with exponential
    backoff between them. A channel that fails every attempt is logged
    once at ERROR with the per-attempt errors; its result has
    ``success=False``. Exceptions other than NotificationError propagate.
    """

    def __init__(
        self,
        retry_config: RetryConfig,
        logger: Optional["AuditLogger"] = None,
    ) -> None:
        self._channels: list[NotificationChannel] = []
        self._retry = retry_config
        self._logger = logger

    @property
    def channels(self) -> list[NotificationChannel]:
        return self._channels.copy()

    def register_channel(self, channel: NotificationChannel) -> None:
        self._channels.append(channel)

    async def notify(self, payload: NotificationPayload) -> list[NotificationResult]:
        """Results are in registration order."""
        return list(
            await asyncio.gather(*(self._deliver(ch, payload) for ch in self._channels))
        )

    async def _deliver(
        self,
        channel: NotificationChannel,
        payload: NotificationPayload,
    ) -> NotificationResult:
        name = channel.get_name()
        total = self._retry.max_retries + 1
        errors: list[str] = []

        for attempt in range(1, total + 1):
            try:
                delivered = await channel.send(payload)
            except NotificationError as e:
                errors.append(e.message)
            else:
                if delivered:
                    return NotificationResult(channel=name, success=True, attempts=attempt)
                errors.append("Channel returned failure")

            if attempt < total:
                await asyncio.sleep(backoff_delay(self._retry, attempt - 1))

        if self._logger:
            self._logger.log(
                LogLevel.ERROR,
                "NotificationRouter",
                f"All notification retries failed for channel '{name}'",
                {
                    "channel": name,
                    "event": payload.event.value,
                    "domain": payload.domain,
                    "total_attempts": total,
                    "errors": errors,
                },
            )
        return NotificationResult(channel=name, success=False, error=errors[-1], attempts=total)


class Notifier:
    """
    Scheduler-facing notification facade.

    ``send`` never raises: every failure ends up in the audit log.
    """

    def __init__(
        self,
        router: Optional[NotificationRouter] = None,
        logger: Optional["AuditLogger"] = None,
    ) -> None:
        self._router = router
        self._logger = logger

    @classmethod
    def from_config(
        cls,
        config: NotificationConfig,
        retry_config: RetryConfig,
        logger: Optional["AuditLogger"] = None,
        simulation_mode: bool = False,
    ) -> "Notifier":
        """One channel per configured transport; no transports means a disabled Notifier."""
        router = NotificationRouter(retry_config, logger)
        if config.email is not None:
            router.register_channel(EmailChannel(config.email, simulation_mode))
        if config.webhook is not None:
            router.register_channel(WebhookChannel(config.webhook, simulation_mode))
        return cls(router, logger)

    @property
    def enabled(self) -> bool:
        return self._router is not None and bool(self._router.channels)

    async def send(
        self,
        event: NotificationEvent,
        domain: str,
        details: str = "",
    ) -> list[NotificationResult]:
        if not self.enabled:
            return []

        payload = build_payload(event, domain, details)
        try:
            results = await self._router.notify(payload)
        except Exception as e:
            # best-effort
            if self._logger:
                self._logger.log_error(
                    "Notifier",
                    f"Notification for {event.value} failed",
                    error=e,
                    domain=domain,
                    event=event.value,
                )
            return []

        if self._logger:
            self._logger.log(
                LogLevel.DEBUG,
                "Notifier",
                f"Notification sent: {event.value}",
                {
                    "domain": domain,
                    "delivered": [r.channel for r in results if r.success],
                    "failed": [r.channel for r in results if not r.success],
                },
            )
        return results
