"""
Notification system for autonomous decisions.

Rendering (presenter) is pure; delivery (channels) performs side effects.

Usage:
    from autonomous_ai.notifications import present, InMemoryNotificationChannel

    channel = InMemoryNotificationChannel()
    await channel.deliver(present(decision))
"""

from .channels import (
    CompositeNotificationChannel,
    InMemoryNotificationChannel,
    LoggingNotificationChannel,
    MockSendGridClient,
    NotificationChannel,
    SendGridNotificationChannel,
    build_channel,
)
from .presenter import (
    Notification,
    NotificationSeverity,
    RiskContext,
    grade_marker,
    present,
    present_error,
)

__all__ = [
    'Notification',
    'NotificationSeverity',
    'RiskContext',
    'present',
    'present_error',
    'grade_marker',
    'NotificationChannel',
    'LoggingNotificationChannel',
    'InMemoryNotificationChannel',
    'CompositeNotificationChannel',
    'SendGridNotificationChannel',
    'MockSendGridClient',
    'build_channel',
]
