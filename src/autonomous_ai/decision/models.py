"""
Decision data models.

Defines the structures that flow through a decision cycle:
- DecisionFactors: input handed to the external decision function
- AutonomousDecision: verdict returned by the decision function
- RiskAssessmentRequest / BacktestInput: enrichment requests sent to the
  risk collaborator
- OrchestratorState: the orchestrator's externally visible state
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional


class DecisionError(Exception):
    """Base class for decision cycle errors."""


class InvalidDecisionError(DecisionError):
    """Decision function returned something that is not a usable decision."""


class Action(str, Enum):
    """Decision verdict."""
    BUY = "BUY"
    SELL = "SELL"
    WAIT = "WAIT"


class MarketGrade(str, Enum):
    """Market quality grade attached by the decision function."""
    A = "A"
    B = "B"
    C = "C"
    D = "D"


def get_field(source: Any, key: str, default: Any = None) -> Any:
    """Read ``key`` from a mapping or an attribute-style object."""
    if source is None:
        return default
    if isinstance(source, Mapping):
        value = source.get(key, default)
    else:
        value = getattr(source, key, default)
    return default if value is None else value


# ============================================================================
# Decision Factors
# ============================================================================

@dataclass(frozen=True)
class MarketConditions:
    """Market condition scores, each on a 0-100 scale."""
    volatility: float = 50.0
    noise: float = 50.0
    trend_strength: float = 50.0


@dataclass(frozen=True)
class DecisionFactors:
    """
    Aggregated input for the decision function.

    Built fresh for every qualifying update and never mutated afterwards.
    """
    micro_patterns: List[Any] = field(default_factory=list)
    visual_analysis: Dict[str, Any] = field(default_factory=dict)
    market_conditions: MarketConditions = field(default_factory=MarketConditions)
    timing_analysis: Dict[str, Any] = field(default_factory=dict)
    technical_indicators: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ============================================================================
# Autonomous Decision
# ============================================================================

@dataclass(frozen=True)
class DecisionTiming:
    enter_now: bool = False
    wait_seconds: float = 0.0


@dataclass(frozen=True)
class ProfessionalAnalysis:
    market_grade: str = MarketGrade.D.value
    confluences: int = 0


@dataclass(frozen=True)
class AutonomousDecision:
    """
    Verdict produced by the external decision function.

    Owned by the orchestrator once received and replaced wholesale on the
    next successful cycle.
    """
    action: Action
    confidence: float
    expected_success_rate: float
    timing: DecisionTiming = field(default_factory=DecisionTiming)
    professional_analysis: ProfessionalAnalysis = field(default_factory=ProfessionalAnalysis)

    @property
    def is_actionable(self) -> bool:
        return self.action != Action.WAIT

    @classmethod
    def coerce(cls, value: Any) -> "AutonomousDecision":
        """
        Convert decision function output into an AutonomousDecision.

        Accepts an AutonomousDecision or an equivalent mapping.

        Raises:
            InvalidDecisionError: If required fields are missing or malformed
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, Mapping):
            raise InvalidDecisionError(
                f"Decision function returned {type(value).__name__}, expected a decision"
            )

        try:
            raw_action = value["action"]
            if isinstance(raw_action, Enum):
                raw_action = raw_action.value
            action = Action(str(raw_action).upper())
            confidence = float(value["confidence"])
            expected_success_rate = float(value["expected_success_rate"])

            timing = value.get("timing") or {}
            analysis = value.get("professional_analysis") or {}

            grade = get_field(analysis, "market_grade", MarketGrade.D.value)
            if isinstance(grade, Enum):
                grade = grade.value

            return cls(
                action=action,
                confidence=confidence,
                expected_success_rate=expected_success_rate,
                timing=DecisionTiming(
                    enter_now=bool(get_field(timing, "enter_now", False)),
                    wait_seconds=float(get_field(timing, "wait_seconds", 0)),
                ),
                professional_analysis=ProfessionalAnalysis(
                    market_grade=str(grade),
                    confluences=int(get_field(analysis, "confluences", 0)),
                ),
            )
        except KeyError as e:
            raise InvalidDecisionError(f"Decision is missing required field {e}") from e
        except (TypeError, ValueError) as e:
            raise InvalidDecisionError(f"Malformed decision: {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["action"] = self.action.value
        return data


# ============================================================================
# Enrichment Requests
# ============================================================================

@dataclass(frozen=True)
class RiskAssessmentRequest:
    """Signal handed to the risk collaborator for a non-WAIT decision."""
    action: Action
    confidence: float
    expected_success_rate: float
    timing: DecisionTiming
    professional_analysis: ProfessionalAnalysis
    timeframe: str
    entry_price: float
    stop_loss: float
    take_profit: float
    volatility: float
    confluences: int

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["action"] = self.action.value
        return data


@dataclass(frozen=True)
class BacktestInput:
    """One historical fast-analysis signal mapped for backtesting."""
    action: Action
    confidence: float
    confluences: int
    timeframe: str


# ============================================================================
# Orchestrator State
# ============================================================================

@dataclass(frozen=True)
class OrchestratorState:
    """Snapshot of what the owning UI layer is allowed to see."""
    latest_decision: Optional[AutonomousDecision] = None
    is_processing: bool = False
    current_risk: Any = None
    position_sizing: Any = None
    active_alerts: Any = None
    account_metrics: Any = None
