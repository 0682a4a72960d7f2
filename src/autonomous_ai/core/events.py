"""
Event definitions for the decision orchestrator.

Every event is a dataclass deriving from ``Event``. Upstream producers
publish ``AnalysisUpdated`` and ``ConfigurationChanged``; the orchestrator
publishes the rest so that dashboards, loggers and tests can observe a
decision cycle without reaching into its state.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Sequence


# ============================================================================
# Base Event
# ============================================================================

@dataclass
class Event:
    """Base class for all events."""
    timestamp: datetime = field(default_factory=datetime.utcnow, kw_only=True)
    metadata: Dict[str, Any] = field(default_factory=dict, kw_only=True)

    @property
    def event_type(self) -> str:
        return self.__class__.__name__


# ============================================================================
# Upstream Events (consumed)
# ============================================================================

@dataclass
class AnalysisUpdated(Event):
    """
    New analysis snapshot from the upstream pipeline.

    Carries the three analysis payloads the orchestrator watches:
    per-indicator pattern results, the enhanced analysis (micro patterns,
    visual analysis, timing) and the fast analysis result sequence.
    """
    detailed_results: Optional[Mapping[str, Any]]
    enhanced_analysis: Optional[Mapping[str, Any]]
    fast_analysis_results: Sequence[Any] = ()


@dataclass
class ConfigurationChanged(Event):
    """Timeframe, market type or precision changed."""
    selected_timeframe: str
    market_type: str
    precision: Any = None


# ============================================================================
# Decision Cycle Events (published)
# ============================================================================

@dataclass
class DecisionScheduled(Event):
    """A qualifying update passed the gate and a cycle was scheduled."""
    cycle_id: int
    delay_seconds: float
    timeframe: str
    market_type: str


@dataclass
class DecisionComputed(Event):
    """The decision function returned a valid decision."""
    cycle_id: int
    action: str
    confidence: float
    market_grade: str
    enter_now: bool


@dataclass
class DecisionFailed(Event):
    """The cycle ended without a decision."""
    cycle_id: int
    error_type: str
    error_message: str


@dataclass
class RiskEvaluated(Event):
    """Risk collaborator returned an assessment for a decision."""
    cycle_id: int
    assessment: Any


@dataclass
class NotificationDelivered(Event):
    """A rendered notification was handed to the delivery channel."""
    cycle_id: int
    severity: str
    title: str
    delivered: bool
