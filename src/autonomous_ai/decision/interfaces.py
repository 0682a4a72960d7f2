"""
Collaborator interfaces consumed by the decision orchestrator.

- DecisionFunction: maps factors to a verdict (sync or async callable)
- ConfigurationSource: supplies timeframe, market type and precision
- TradingRiskService: risk evaluation, backtesting and account state
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Mapping, Optional, Sequence, Union

from ..config.settings import AnalyzerConfig
from ..core.event_bus import EventBus
from ..core.events import ConfigurationChanged
from .models import AutonomousDecision, BacktestInput, DecisionFactors, RiskAssessmentRequest

logger = logging.getLogger(__name__)

DecisionResult = Union[AutonomousDecision, Mapping[str, Any]]

# (factors, timeframe, market_type) -> decision, or an awaitable of one
DecisionFunction = Callable[
    [DecisionFactors, str, str],
    Union[DecisionResult, Awaitable[DecisionResult]],
]


# ============================================================================
# Configuration Source
# ============================================================================

class ConfigurationSource(ABC):
    """Read-only view of the analyzer selection; may change between cycles."""

    @abstractmethod
    def get_analyzer_config(self) -> AnalyzerConfig:
        pass


class SettingsConfigurationSource(ConfigurationSource):
    """
    In-process configuration source backed by an AnalyzerConfig.

    update() validates the change and, when an event bus is attached and
    the timeframe or market type moved, publishes ConfigurationChanged so
    subscribers can re-run.
    """

    def __init__(self, config: Optional[AnalyzerConfig] = None, event_bus: Optional[EventBus] = None):
        self._config = config or AnalyzerConfig()
        self.event_bus = event_bus

    def get_analyzer_config(self) -> AnalyzerConfig:
        return self._config

    async def update(self, **changes: Any) -> AnalyzerConfig:
        """
        Apply changes to the analyzer selection.

        Raises:
            pydantic.ValidationError: If the resulting configuration is invalid
        """
        new_config = AnalyzerConfig(**{**self._config.model_dump(), **changes})
        if new_config == self._config:
            return self._config

        old_config, self._config = self._config, new_config
        logger.info(
            f"Analyzer configuration changed: timeframe={new_config.selected_timeframe}, "
            f"market={new_config.market_type}, precision={new_config.precision}"
        )

        # precision alone does not warrant a new decision
        selection_changed = (
            new_config.selected_timeframe != old_config.selected_timeframe
            or new_config.market_type != old_config.market_type
        )
        if self.event_bus and selection_changed:
            await self.event_bus.publish(ConfigurationChanged(
                selected_timeframe=new_config.selected_timeframe,
                market_type=new_config.market_type,
                precision=new_config.precision,
            ))
        return new_config


# ============================================================================
# Risk / Backtest Collaborator
# ============================================================================

class TradingRiskService(ABC):
    """
    Risk evaluation, position sizing, backtesting and account metrics.

    Either method may be sync or async; the orchestrator awaits results
    that are awaitable. The observable properties are owned by the service
    and only read by the orchestrator.
    """

    @abstractmethod
    def evaluate_signal_risk(self, request: RiskAssessmentRequest) -> Any:
        """Assess the risk of acting on a decision."""
        pass

    @abstractmethod
    def perform_backtest(self, signals: Sequence[BacktestInput]) -> Any:
        """Backtest a sequence of historical signals."""
        pass

    @property
    def current_risk(self) -> Any:
        return None

    @property
    def position_sizing(self) -> Any:
        return None

    @property
    def active_alerts(self) -> Any:
        return []

    @property
    def account_metrics(self) -> Any:
        return None
