"""
Notification Presenter

Maps a computed decision (plus optional risk context) to one of four
categorized, human-readable notifications. Rendering is pure: delivery is
left to a NotificationChannel.

Severity mapping:
- WAIT                        -> warning
- BUY/SELL, enter now         -> success
- BUY/SELL, wait for timing   -> info
- cycle failure               -> error
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from ..config.settings import NotificationConfig
from ..decision.models import Action, AutonomousDecision, get_field


class NotificationSeverity(str, Enum):
    """Severity levels understood by delivery channels."""
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


GRADE_MARKERS = {
    "A": "🏆",
    "B": "🥈",
    "C": "🥉",
}
DEFAULT_GRADE_MARKER = "📊"

ACTION_MARKERS = {
    Action.BUY: "📈",
    Action.SELL: "📉",
    Action.WAIT: "⏳",
}

ERROR_TITLE = "AI autonomous analysis failed"
ERROR_BODY = "The decision could not be computed. The previous decision is unchanged."


@dataclass(frozen=True)
class Notification:
    """Rendered notification handed to a delivery channel."""
    severity: NotificationSeverity
    title: str
    body: str
    duration_ms: int

    def to_dict(self) -> dict:
        return {
            "severity": self.severity.value,
            "title": self.title,
            "body": self.body,
            "duration": self.duration_ms,
        }


@dataclass(frozen=True)
class RiskContext:
    """Risk figures quoted in actionable notifications."""
    total_risk: Any = None
    recommended_size: Any = None

    @classmethod
    def from_service(cls, current_risk: Any, position_sizing: Any) -> Optional["RiskContext"]:
        """Build a context from the risk service's observable state, if any."""
        total_risk = get_field(current_risk, "totalRisk", get_field(current_risk, "total_risk"))
        size = get_field(
            position_sizing, "recommendedSize", get_field(position_sizing, "recommended_size")
        )
        if total_risk is None and size is None:
            return None
        return cls(total_risk=total_risk, recommended_size=size)


def grade_marker(grade: str) -> str:
    return GRADE_MARKERS.get(str(grade).upper(), DEFAULT_GRADE_MARKER)


def _fmt(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _risk_text(risk_context: Optional[RiskContext], include_size: bool) -> str:
    if risk_context is None:
        return ""
    text = ""
    if risk_context.total_risk is not None:
        text += f" | Risk: {_fmt(risk_context.total_risk)}"
    if include_size and risk_context.recommended_size is not None:
        text += f" | Size: {_fmt(risk_context.recommended_size)}"
    return text


def present(
    decision: AutonomousDecision,
    risk_context: Optional[RiskContext] = None,
    config: Optional[NotificationConfig] = None,
) -> Notification:
    """
    Render a decision as a notification.

    Args:
        decision: Decision returned by the decision function
        risk_context: Optional risk/position-size figures for actionable decisions
        config: Durations; defaults to NotificationConfig()

    Returns:
        Notification with severity, title, body and display duration
    """
    config = config or NotificationConfig()
    grade = decision.professional_analysis.market_grade
    grade_text = f"{grade_marker(grade)} Grade {grade}"
    confidence = f"{_fmt(decision.confidence)}% confidence"
    arrow = ACTION_MARKERS[decision.action]

    if decision.action == Action.WAIT:
        return Notification(
            severity=NotificationSeverity.WARNING,
            title=f"{arrow} AI decides: WAIT {grade_text}",
            body=f"{confidence} | Conditions unfavorable",
            duration_ms=config.wait_duration_ms,
        )

    action = decision.action.value

    if decision.timing.enter_now:
        return Notification(
            severity=NotificationSeverity.SUCCESS,
            title=f"{arrow} AI decides: {action} NOW! {grade_text}",
            body=(
                f"{confidence} | Success: {_fmt(decision.expected_success_rate)}%"
                f"{_risk_text(risk_context, include_size=True)}"
            ),
            duration_ms=config.decision_duration_ms,
        )

    return Notification(
        severity=NotificationSeverity.INFO,
        title=f"{arrow} AI decides: {action} in {_fmt(decision.timing.wait_seconds)}s {grade_text}",
        body=f"{confidence} | Optimal timing approaching{_risk_text(risk_context, include_size=False)}",
        duration_ms=config.decision_duration_ms,
    )


def present_error(config: Optional[NotificationConfig] = None) -> Notification:
    """Generic notification for a failed decision cycle."""
    config = config or NotificationConfig()
    return Notification(
        severity=NotificationSeverity.ERROR,
        title=ERROR_TITLE,
        body=ERROR_BODY,
        duration_ms=config.error_duration_ms,
    )
