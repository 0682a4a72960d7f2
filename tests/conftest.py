"""
Shared fixtures and fakes for the orchestrator test-suite.
"""

import asyncio
import copy
from typing import Any, List, Optional, Sequence

import pytest

from autonomous_ai.config import AnalyzerConfig, OrchestratorConfig
from autonomous_ai.decision import (
    BacktestInput,
    DecisionOrchestrator,
    RiskAssessmentRequest,
    SettingsConfigurationSource,
    TradingRiskService,
)
from autonomous_ai.notifications import InMemoryNotificationChannel


# ============================================================================
# Sample Payloads
# ============================================================================

DETAILED_RESULTS = {
    "rsi": {"found": True, "buyScore": 0.9, "sellScore": 0.1},
    "macd": {"found": True, "buyScore": 0.5, "sellScore": 0.4},
    "stochastic": {"found": False, "buyScore": 0.5, "sellScore": 0.5},
}

ENHANCED_ANALYSIS = {
    "microPatterns": [{"type": "hammer", "strength": 0.8}],
    "visualAnalysis": {"trendStrength": 70, "priceAction": {"volatility": 35}},
    "timing": {"nextCandleIn": 12},
}


def make_decision(
    action: str = "BUY",
    confidence: float = 80,
    enter_now: bool = True,
    wait_seconds: float = 0,
    grade: str = "A",
    success_rate: float = 75,
    confluences: int = 4,
) -> dict:
    return {
        "action": action,
        "confidence": confidence,
        "expected_success_rate": success_rate,
        "timing": {"enter_now": enter_now, "wait_seconds": wait_seconds},
        "professional_analysis": {"market_grade": grade, "confluences": confluences},
    }


def fast_results(count: int) -> List[dict]:
    directions = ["up", "down", "sideways"]
    return [
        {"direction": directions[i % 3], "confidence": 60 + i}
        for i in range(count)
    ]


# ============================================================================
# Fakes
# ============================================================================

class RecordingDecisionFunction:
    """Decision function stand-in that records its calls."""

    def __init__(self, result: Any = None, error: Optional[Exception] = None):
        self.result = result if result is not None else make_decision()
        self.error = error
        self.calls: List[tuple] = []

    def __call__(self, factors, timeframe, market_type):
        self.calls.append((factors, timeframe, market_type))
        if self.error:
            raise self.error
        return self.result


class FakeRiskService(TradingRiskService):
    def __init__(
        self,
        current_risk: Any = None,
        position_sizing: Any = None,
        risk_error: Optional[Exception] = None,
        backtest_error: Optional[Exception] = None,
    ):
        self._current_risk = current_risk
        self._position_sizing = position_sizing
        self.risk_error = risk_error
        self.backtest_error = backtest_error
        self.risk_requests: List[RiskAssessmentRequest] = []
        self.backtests: List[List[BacktestInput]] = []

    def evaluate_signal_risk(self, request: RiskAssessmentRequest):
        self.risk_requests.append(request)
        if self.risk_error:
            raise self.risk_error
        return {"approved": True, "risk_pct": 2.0}

    async def perform_backtest(self, signals: Sequence[BacktestInput]):
        await asyncio.sleep(0)
        self.backtests.append(list(signals))
        if self.backtest_error:
            raise self.backtest_error

    @property
    def current_risk(self):
        return self._current_risk

    @property
    def position_sizing(self):
        return self._position_sizing

    @property
    def active_alerts(self):
        return ["drawdown-watch"]

    @property
    def account_metrics(self):
        return {"balance": 1000.0}


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def detailed_results():
    return copy.deepcopy(DETAILED_RESULTS)


@pytest.fixture
def enhanced_analysis():
    return copy.deepcopy(ENHANCED_ANALYSIS)


@pytest.fixture
def decision_factory():
    return make_decision


@pytest.fixture
def fast_results_factory():
    return fast_results


@pytest.fixture
def decision_function():
    return RecordingDecisionFunction()


@pytest.fixture
def risk_service():
    return FakeRiskService()


@pytest.fixture
def channel():
    return InMemoryNotificationChannel()


@pytest.fixture
def config_source():
    return SettingsConfigurationSource(AnalyzerConfig(selected_timeframe="1m", market_type="spot"))


@pytest.fixture
def instant_config():
    """No debounce, no simulated latency."""
    return OrchestratorConfig(processing_latency_seconds=0.0)


@pytest.fixture
def orchestrator(decision_function, risk_service, channel, config_source, instant_config):
    return DecisionOrchestrator(
        decision_function,
        risk_service,
        config_source=config_source,
        channel=channel,
        config=instant_config,
    )
