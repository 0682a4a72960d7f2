"""
Core infrastructure: event definitions, the event bus and component lifecycle.
"""

from .base import Component
from .event_bus import EventBus, EventBusStats
from .events import (
    AnalysisUpdated,
    ConfigurationChanged,
    DecisionComputed,
    DecisionFailed,
    DecisionScheduled,
    Event,
    NotificationDelivered,
    RiskEvaluated,
)

__all__ = [
    'Component',
    'EventBus',
    'EventBusStats',
    'Event',
    'AnalysisUpdated',
    'ConfigurationChanged',
    'DecisionScheduled',
    'DecisionComputed',
    'DecisionFailed',
    'RiskEvaluated',
    'NotificationDelivered',
]
