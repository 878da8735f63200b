"""
Property-based tests for Notification Router module.

Channels are test doubles or real channels with their transport patched;
nothing leaves the process.
"""

import asyncio
import smtplib
from dataclasses import dataclass
from io import StringIO
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from watchdom.audit_logger import AuditLogger
from watchdom.config import EmailConfig, NotificationConfig, RetryConfig, WebhookConfig
from watchdom.enums import LogLevel, NotificationEvent
from watchdom.exceptions import NotificationError
from watchdom.notifications import (
    EmailChannel,
    NotificationChannel,
    NotificationPayload,
    NotificationRouter,
    Notifier,
    WebhookChannel,
    backoff_delay,
    build_payload,
)


FAST_RETRY = RetryConfig(max_retries=2, base_delay_seconds=0.001, max_delay_seconds=0.01)

EMAIL = EmailConfig(
    smtp_host="smtp.example.com",
    smtp_port=587,
    username="watchdom",
    password="hunter2",
    from_address="watchdom@example.com",
    to_addresses=["ops@example.com"],
)


@dataclass
class MockChannelConfig:
    """Configuration for mock channel behavior."""

    name: str
    should_succeed: bool = True
    fail_count: int = 0  # failures before the first success
    raise_errors: bool = False


class MockNotificationChannel:
    """Mock notification channel for testing."""

    def __init__(self, config: MockChannelConfig) -> None:
        self._config = config
        self._call_count = 0
        self._payloads: list[NotificationPayload] = []

    async def send(self, payload: NotificationPayload) -> bool:
        self._call_count += 1
        self._payloads.append(payload)

        if self._call_count <= self._config.fail_count:
            if self._config.raise_errors:
                raise NotificationError(code="mock_failed", message="Simulated failure")
            return False
        return self._config.should_succeed

    def get_name(self) -> str:
        return self._config.name

    @property
    def call_count(self) -> int:
        return self._call_count

    @property
    def payloads(self) -> list[NotificationPayload]:
        return self._payloads.copy()


class CrashingChannel:
    """Channel that fails with an unexpected exception."""

    async def send(self, payload: NotificationPayload) -> bool:
        raise RuntimeError("Simulated crash")

    def get_name(self) -> str:
        return "crashing"


@st.composite
def domain_strategy(draw) -> str:
    """Generate valid domain names."""
    sld = draw(
        st.text(
            alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyz0123456789"),
            min_size=1,
            max_size=20,
        )
    )
    tld = draw(st.sampled_from(["com", "net", "org", "info", "biz"]))
    return f"{sld}.{tld}"


class TestPayloadProperty:
    """
    Property-based tests for payload construction.

    **Feature: watchdom, Property 32: Payloads name the event and domain**
    """

    @given(
        event=st.sampled_from(list(NotificationEvent)),
        domain=domain_strategy(),
        details=st.text(alphabet=st.sampled_from("abcdef 0123456789:"), max_size=40),
    )
    @settings(max_examples=100)
    def test_payload_fields(self, event: NotificationEvent, domain: str, details: str) -> None:
        payload = build_payload(event, domain, details)
        assert payload.event is event
        assert payload.domain == domain
        assert domain in payload.subject
        assert f"Domain: {domain}\n" in payload.body
        assert f"Event: {event.value}\n" in payload.body
        assert f"Time: {payload.timestamp}\n" in payload.body
        assert ("Details:" in payload.body) == bool(details)

    def test_subjects(self) -> None:
        assert build_payload(NotificationEvent.MATCH_FOUND, "x.com").subject == "Domain Available: x.com"
        assert build_payload(NotificationEvent.TARGET_REACHED, "x.com").subject == "Target Time Reached: x.com"
        assert build_payload(NotificationEvent.GRACE_EXCEEDED, "x.com").subject == "Grace Period: x.com"


class TestRetryProperty:
    """
    Property-based tests for delivery retries.

    **Feature: watchdom, Property 33: Failed deliveries are retried with backoff**
    """

    @given(
        fail_count=st.integers(min_value=0, max_value=2),
        raise_errors=st.booleans(),
    )
    @settings(max_examples=30)
    def test_eventual_success(self, fail_count: int, raise_errors: bool) -> None:
        """
        Property 33a: A channel that recovers within the retry budget succeeds.
        """
        router = NotificationRouter(FAST_RETRY)
        channel = MockNotificationChannel(
            MockChannelConfig(name="mock", fail_count=fail_count, raise_errors=raise_errors)
        )
        router.register_channel(channel)

        results = asyncio.run(router.notify(build_payload(NotificationEvent.MATCH_FOUND, "x.com")))

        assert len(results) == 1
        assert results[0].success is True
        assert results[0].attempts == fail_count + 1
        assert channel.call_count == fail_count + 1

    @given(max_retries=st.integers(min_value=0, max_value=3))
    @settings(max_examples=20)
    def test_exhausted_retries(self, max_retries: int) -> None:
        """
        Property 33b: A channel that never recovers is tried max_retries + 1 times.
        """
        stream = StringIO()
        logger = AuditLogger(output_stream=stream)
        retry = RetryConfig(max_retries=max_retries, base_delay_seconds=0.001, max_delay_seconds=0.01)
        router = NotificationRouter(retry, logger)
        channel = MockNotificationChannel(
            MockChannelConfig(name="mock", fail_count=100, raise_errors=True)
        )
        router.register_channel(channel)

        results = asyncio.run(router.notify(build_payload(NotificationEvent.MATCH_FOUND, "x.com")))

        assert results[0].success is False
        assert results[0].error == "Simulated failure"
        assert results[0].attempts == max_retries + 1
        errors = [e for e in logger.entries if e.level is LogLevel.ERROR]
        assert len(errors) == 1
        assert errors[0].data["total_attempts"] == max_retries + 1

    @given(attempt=st.integers(min_value=0, max_value=20))
    @settings(max_examples=50)
    def test_backoff_is_capped(self, attempt: int) -> None:
        retry = RetryConfig(max_retries=2, base_delay_seconds=1.0, max_delay_seconds=30.0)
        assert backoff_delay(retry, attempt) == min(2 ** attempt, 30.0)

    def test_fan_out_to_every_channel(self) -> None:
        router = NotificationRouter(FAST_RETRY)
        channels = [MockNotificationChannel(MockChannelConfig(name=n)) for n in ("a", "b", "c")]
        for channel in channels:
            router.register_channel(channel)
        assert [c.get_name() for c in router.channels] == ["a", "b", "c"]

        results = asyncio.run(router.notify(build_payload(NotificationEvent.TARGET_REACHED, "x.com")))
        assert [r.channel for r in results] == ["a", "b", "c"]
        assert all(c.call_count == 1 for c in channels)


class TestNotifierProperty:
    """
    Property-based tests for the best-effort facade.

    **Feature: watchdom, Property 34: Notification failures never propagate**
    """

    def test_disabled_notifier_is_a_no_op(self) -> None:
        notifier = Notifier.from_config(NotificationConfig(), FAST_RETRY)
        assert notifier.enabled is False
        assert asyncio.run(notifier.send(NotificationEvent.MATCH_FOUND, "x.com")) == []
        assert Notifier().enabled is False

    def test_from_config_builds_channels(self) -> None:
        config = NotificationConfig(
            email=EMAIL,
            webhook=WebhookConfig(url="https://hooks.example/abc"),
        )
        notifier = Notifier.from_config(config, FAST_RETRY, simulation_mode=True)
        assert notifier.enabled is True
        results = asyncio.run(notifier.send(NotificationEvent.MATCH_FOUND, "x.com", "AVAILABLE"))
        assert sorted(r.channel for r in results) == ["email", "webhook"]
        assert all(r.success for r in results)

    def test_unexpected_errors_are_logged_not_raised(self) -> None:
        stream = StringIO()
        logger = AuditLogger(output_stream=stream)
        router = NotificationRouter(FAST_RETRY, logger)
        router.register_channel(CrashingChannel())
        notifier = Notifier(router, logger)

        results = asyncio.run(notifier.send(NotificationEvent.GRACE_EXCEEDED, "x.com"))

        assert results == []
        errors = [e for e in logger.entries if e.level is LogLevel.ERROR]
        assert len(errors) == 1
        assert errors[0].data["error_type"] == "RuntimeError"

    def test_protocol_conformance(self) -> None:
        assert isinstance(EmailChannel(EMAIL), NotificationChannel)
        assert isinstance(WebhookChannel(WebhookConfig(url="https://x.example")), NotificationChannel)
        assert isinstance(MockNotificationChannel(MockChannelConfig(name="m")), NotificationChannel)


class TestChannelTransportProperty:
    """
    Property-based tests for the concrete channels.

    **Feature: watchdom, Property 35: Transport failures become NotificationError**
    """

    def test_email_format(self) -> None:
        payload = build_payload(NotificationEvent.MATCH_FOUND, "x.com", "AVAILABLE")
        msg = EmailChannel(EMAIL).format_email(payload)
        assert msg["Subject"] == "Domain Available: x.com"
        assert msg["From"] == "watchdom@example.com"
        assert msg["To"] == "ops@example.com"

    def test_email_delivery(self) -> None:
        payload = build_payload(NotificationEvent.MATCH_FOUND, "x.com")
        with patch("smtplib.SMTP") as mock_smtp:
            server = mock_smtp.return_value.__enter__.return_value
            assert asyncio.run(EmailChannel(EMAIL).send(payload)) is True
        mock_smtp.assert_called_once_with("smtp.example.com", 587, timeout=30)
        server.login.assert_called_once_with("watchdom", "hunter2")
        server.starttls.assert_called_once()
        sent = server.send_message.call_args[0][0]
        assert sent["Subject"] == "Domain Available: x.com"

    def test_email_failure(self) -> None:
        payload = build_payload(NotificationEvent.MATCH_FOUND, "x.com")
        with patch("smtplib.SMTP", side_effect=smtplib.SMTPConnectError(421, "busy")):
            with pytest.raises(NotificationError) as exc_info:
                asyncio.run(EmailChannel(EMAIL).send(payload))
        assert exc_info.value.code == "smtp_failed"

    def test_email_simulation_skips_smtp(self) -> None:
        payload = build_payload(NotificationEvent.MATCH_FOUND, "x.com")
        with patch("smtplib.SMTP") as mock_smtp:
            assert asyncio.run(EmailChannel(EMAIL, simulation_mode=True).send(payload)) is True
        mock_smtp.assert_not_called()

    @pytest.mark.parametrize("status_code,expected", [(200, True), (204, True), (500, False)])
    def test_webhook_status(self, status_code: int, expected: bool) -> None:
        payload = build_payload(NotificationEvent.TARGET_REACHED, "x.com")
        with patch("httpx.AsyncClient") as mock_client:
            client = mock_client.return_value.__aenter__.return_value
            client.post = AsyncMock(return_value=MagicMock(status_code=status_code))
            channel = WebhookChannel(WebhookConfig(url="https://hooks.example/abc"))
            assert asyncio.run(channel.send(payload)) is expected

        _, kwargs = client.post.call_args
        assert kwargs["json"]["event"] == "target_reached"
        assert kwargs["json"]["domain"] == "x.com"

    def test_webhook_failure(self) -> None:
        payload = build_payload(NotificationEvent.TARGET_REACHED, "x.com")
        with patch("httpx.AsyncClient") as mock_client:
            client = mock_client.return_value.__aenter__.return_value
            client.post = AsyncMock(side_effect=httpx.ConnectError("refused"))
            channel = WebhookChannel(WebhookConfig(url="https://hooks.example/abc"))
            with pytest.raises(NotificationError) as exc_info:
                asyncio.run(channel.send(payload))
        assert exc_info.value.code == "webhook_failed"
