"""
Unit tests for notification delivery channels.

Tests:
- In-memory and logging channels
- Composite fan-out with failing children
- SendGrid channel in mock mode and with an injected client
- HTML e-mail rendering
"""

import logging

import pytest

from autonomous_ai.config import EmailChannelConfig, NotificationConfig
from autonomous_ai.notifications import (
    CompositeNotificationChannel,
    InMemoryNotificationChannel,
    LoggingNotificationChannel,
    Notification,
    NotificationChannel,
    NotificationSeverity,
    SendGridNotificationChannel,
    build_channel,
    present_error,
)
from autonomous_ai.notifications.templates import render_notification_email


@pytest.fixture
def notification():
    return Notification(
        severity=NotificationSeverity.SUCCESS,
        title="📈 AI decides: BUY NOW! 🏆 Grade A",
        body="80% confidence | Success: 75% | Risk: <2%>",
        duration_ms=6000,
    )


@pytest.fixture
def email_config():
    return EmailChannelConfig(enabled=True, mock_mode=True, to_emails=["ops@example.com"])


class FailingChannel(NotificationChannel):
    name = "failing"

    async def deliver(self, notification):
        raise ConnectionError("unreachable")


class RejectingChannel(NotificationChannel):
    name = "rejecting"

    async def deliver(self, notification):
        return False


# ============================================================================
# Basic Channels
# ============================================================================

@pytest.mark.asyncio
async def test_in_memory_channel(notification):
    channel = InMemoryNotificationChannel()
    assert channel.last is None

    assert await channel.deliver(notification)
    assert channel.delivered == [notification]
    assert channel.last is notification

    channel.clear_history()
    assert channel.delivered == []


@pytest.mark.asyncio
async def test_logging_channel_uses_severity_level(caplog):
    channel = LoggingNotificationChannel()

    with caplog.at_level(logging.INFO, logger="autonomous_ai.notifications"):
        assert await channel.deliver(present_error())

    record = caplog.records[-1]
    assert record.levelno == logging.ERROR
    assert "AI autonomous analysis failed" in record.getMessage()
    assert record.severity == "error"


@pytest.mark.asyncio
async def test_composite_succeeds_if_any_child_does(notification):
    memory = InMemoryNotificationChannel()
    channel = CompositeNotificationChannel([FailingChannel(), memory])

    assert await channel.deliver(notification)
    assert memory.delivered == [notification]


@pytest.mark.asyncio
async def test_composite_fails_when_every_child_fails(notification):
    channel = CompositeNotificationChannel([FailingChannel(), RejectingChannel()])
    assert not await channel.deliver(notification)


# ============================================================================
# SendGrid Channel
# ============================================================================

@pytest.mark.asyncio
async def test_sendgrid_mock_mode(email_config):
    channel = SendGridNotificationChannel(email_config)

    assert await channel.deliver(present_error())

    sent = channel.client.get_sent_emails()
    assert len(sent) == 1
    assert sent[0]["subject"] == "[ERROR] AI autonomous analysis failed"


@pytest.mark.asyncio
async def test_sendgrid_without_recipients(notification):
    channel = SendGridNotificationChannel(EmailChannelConfig(enabled=True, mock_mode=True))

    assert not await channel.deliver(notification)
    assert channel.client.get_sent_emails() == []


def test_sendgrid_requires_api_key_outside_mock_mode(monkeypatch):
    monkeypatch.delenv("SENDGRID_API_KEY", raising=False)

    with pytest.raises(ValueError):
        SendGridNotificationChannel(EmailChannelConfig(mock_mode=False, to_emails=["ops@example.com"]))


class RecordingClient:
    def __init__(self, status_code=202, error=None):
        self.status_code = status_code
        self.error = error
        self.messages = []

    def send(self, message):
        self.messages.append(message)
        if self.error:
            raise self.error
        return type("Response", (), {"status_code": self.status_code})()


@pytest.mark.asyncio
async def test_sendgrid_injected_client(notification):
    client = RecordingClient(status_code=202)
    config = EmailChannelConfig(mock_mode=False, to_emails=["ops@example.com"])
    channel = SendGridNotificationChannel(config, client=client)

    assert await channel.deliver(notification)
    assert len(client.messages) == 1
    assert client.messages[0].subject.subject == f"[SUCCESS] {notification.title}"


@pytest.mark.asyncio
async def test_sendgrid_gives_up_after_max_retries(notification):
    client = RecordingClient(error=ConnectionError("network down"))
    config = EmailChannelConfig(mock_mode=False, to_emails=["ops@example.com"], max_retries=1)
    channel = SendGridNotificationChannel(config, client=client)

    assert not await channel.deliver(notification)
    assert len(client.messages) == 1


def test_build_channel():
    assert isinstance(build_channel(), LoggingNotificationChannel)

    config = NotificationConfig(email=EmailChannelConfig(enabled=True, mock_mode=True, to_emails="ops@example.com"))
    channel = build_channel(config)
    assert isinstance(channel, CompositeNotificationChannel)
    assert [child.name for child in channel.channels] == ["log", "email"]


# ============================================================================
# Templates
# ============================================================================

def test_render_notification_email(notification):
    subject, html_body = render_notification_email(notification)

    assert subject == "[SUCCESS] 📈 AI decides: BUY NOW! 🏆 Grade A"
    assert '<div class="metric">80% confidence</div>' in html_body
    assert '<div class="metric">Success: 75%</div>' in html_body
    assert "Risk: &lt;2%&gt;" in html_body
    assert "<2%>" not in html_body
