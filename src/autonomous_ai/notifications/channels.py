"""
Notification Delivery Channels

A channel performs the side effect of showing or sending a rendered
Notification. Delivery is best effort: channels report success as a
bool and never raise into the decision cycle.

Channels:
- LoggingNotificationChannel: writes notifications to the log (default)
- InMemoryNotificationChannel: records notifications (mock mode, tests)
- SendGridNotificationChannel: e-mail via SendGrid with retries
- CompositeNotificationChannel: fans out to several channels
"""

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from python_http_client.exceptions import HTTPError
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Content, Email, Header, Mail, To

from ..config.settings import EmailChannelConfig, NotificationConfig
from . import templates
from .presenter import Notification, NotificationSeverity

logger = logging.getLogger(__name__)


class NotificationChannel(ABC):
    """Delivery side of the notification pipeline."""

    name: str = "channel"

    @abstractmethod
    async def deliver(self, notification: Notification) -> bool:
        """
        Deliver a notification.

        Returns:
            True if the notification was delivered
        """
        pass


class LoggingNotificationChannel(NotificationChannel):
    """Writes notifications to the log at a level matching their severity."""

    name = "log"

    LEVELS = {
        NotificationSeverity.SUCCESS: logging.INFO,
        NotificationSeverity.INFO: logging.INFO,
        NotificationSeverity.WARNING: logging.WARNING,
        NotificationSeverity.ERROR: logging.ERROR,
    }

    def __init__(self, logger_name: str = "autonomous_ai.notifications"):
        self.logger = logging.getLogger(logger_name)

    async def deliver(self, notification: Notification) -> bool:
        self.logger.log(
            self.LEVELS.get(notification.severity, logging.INFO),
            f"{notification.title} - {notification.body}",
            extra={"severity": notification.severity.value, "duration_ms": notification.duration_ms},
        )
        return True


class InMemoryNotificationChannel(NotificationChannel):
    """Records delivered notifications instead of showing them."""

    name = "memory"

    def __init__(self):
        self.delivered: List[Notification] = []

    async def deliver(self, notification: Notification) -> bool:
        self.delivered.append(notification)
        logger.info(f"[MOCK NOTIFICATION] {notification.severity.value}: {notification.title}")
        return True

    @property
    def last(self) -> Optional[Notification]:
        return self.delivered[-1] if self.delivered else None

    def clear_history(self):
        self.delivered.clear()


class CompositeNotificationChannel(NotificationChannel):
    """Delivers to every child channel; succeeds if any child succeeds."""

    name = "composite"

    def __init__(self, channels: Sequence[NotificationChannel]):
        self.channels = list(channels)

    async def deliver(self, notification: Notification) -> bool:
        results = await asyncio.gather(
            *(channel.deliver(notification) for channel in self.channels),
            return_exceptions=True,
        )
        delivered = False
        for channel, result in zip(self.channels, results):
            if isinstance(result, Exception):
                logger.error(f"Channel {channel.name} failed to deliver notification: {result}")
            elif result:
                delivered = True
        return delivered


# ============================================================================
# SendGrid E-mail Channel
# ============================================================================

class MockSendGridClient:
    """
    Mock SendGrid client for testing without sending real emails.

    Logs all email attempts instead of actually sending them.
    """

    def __init__(self):
        self.sent_emails: List[Dict[str, Any]] = []
        logger.info("Initialized MockSendGridClient (no real emails will be sent)")

    def send(self, message: Mail) -> Dict[str, Any]:
        email_data = {
            'subject': message.subject.subject if message.subject else 'No Subject',
            'timestamp': datetime.utcnow().isoformat(),
        }
        self.sent_emails.append(email_data)

        logger.info(f"[MOCK EMAIL] Subject: {email_data['subject']}")
        return {'status_code': 202, 'body': 'Mock email accepted', 'headers': {}}

    def get_sent_emails(self) -> List[Dict[str, Any]]:
        return self.sent_emails.copy()


class SendGridNotificationChannel(NotificationChannel):
    """
    E-mail delivery through SendGrid.

    Features:
    - HTML rendering via notifications.templates
    - Priority headers derived from severity
    - Retries with exponential backoff, honoring 429 Retry-After
    - Mock mode for testing
    """

    name = "email"

    def __init__(self, config: EmailChannelConfig, client: Any = None):
        """
        Args:
            config: E-mail channel settings
            client: Optional pre-built client (anything with ``send(Mail)``)

        Raises:
            ValueError: If not in mock mode and no API key is available
        """
        self.config = config
        self.mock_mode = config.mock_mode

        if client is not None:
            self.client = client
        elif config.mock_mode:
            self.client = MockSendGridClient()
            logger.info("SendGrid channel initialized in MOCK mode")
        else:
            api_key = os.getenv(config.api_key_env)
            if not api_key:
                raise ValueError(f"SendGrid API key not provided and {config.api_key_env} env var not set")
            self.client = SendGridAPIClient(api_key)
            logger.info("SendGrid channel initialized in PRODUCTION mode")

        if not config.to_emails:
            logger.warning("No recipient emails configured!")

    async def deliver(self, notification: Notification) -> bool:
        if not self.config.to_emails:
            logger.error("Cannot send email: no recipients configured")
            return False

        subject, html_body = templates.render_notification_email(notification)
        message = Mail(
            from_email=Email(self.config.from_email),
            to_emails=[To(email) for email in self.config.to_emails],
            subject=subject,
            html_content=Content("text/html", html_body),
        )
        self._add_priority_headers(message, notification.severity)

        max_retries = self.config.max_retries
        for attempt in range(max_retries):
            try:
                response = await asyncio.to_thread(self.client.send, message)

                if self.mock_mode:
                    return True

                status_code = getattr(response, "status_code", None)
                if status_code in (200, 202):
                    logger.info(f"Email sent successfully: {subject} (status: {status_code})")
                    return True
                logger.warning(f"Unexpected status code {status_code} for email: {subject}")

            except HTTPError as e:
                logger.error(f"SendGrid HTTP error (attempt {attempt + 1}/{max_retries}): {e}")

                if e.status_code == 429:
                    retry_after = int(e.headers.get('Retry-After', 60))
                    logger.warning(f"Rate limited. Waiting {retry_after} seconds before retry...")
                    await asyncio.sleep(retry_after)
                    continue

                if 400 <= e.status_code < 500:
                    logger.error(f"Client error {e.status_code}, not retrying")
                    return False

            except Exception as e:
                logger.error(f"Error sending email (attempt {attempt + 1}/{max_retries}): {e}")

            if attempt < max_retries - 1:
                await asyncio.sleep(2 ** attempt)

        logger.error(f"Failed to send email after {max_retries} attempts: {subject}")
        return False

    def _add_priority_headers(self, message: Mail, severity: NotificationSeverity):
        if severity == NotificationSeverity.ERROR:
            message.header = Header("Priority", "Urgent")
            message.header = Header("Importance", "high")
            message.header = Header("X-Priority", "1")
        elif severity == NotificationSeverity.WARNING:
            message.header = Header("Priority", "Normal")
            message.header = Header("Importance", "normal")
            message.header = Header("X-Priority", "3")
        else:
            message.header = Header("Priority", "Low")
            message.header = Header("Importance", "low")
            message.header = Header("X-Priority", "5")


def build_channel(config: Optional[NotificationConfig] = None) -> NotificationChannel:
    """Create the delivery channel described by the notification config."""
    config = config or NotificationConfig()
    log_channel = LoggingNotificationChannel()

    if not config.email.enabled:
        return log_channel

    return CompositeNotificationChannel([log_channel, SendGridNotificationChannel(config.email)])
