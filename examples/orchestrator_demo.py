"""
Decision Orchestrator Demo

Demonstrates how to:
1. Load configuration and set up logging
2. Wire the orchestrator to an event bus
3. Publish analysis snapshots and watch the debounced decision
4. Change the timeframe and get a fresh decision for the same snapshot

The decision function and risk service here are toy stand-ins for the
real collaborators.
"""

import asyncio
from typing import Any, Sequence

from autonomous_ai.config import load_config
from autonomous_ai.core import AnalysisUpdated, EventBus
from autonomous_ai.decision import (
    DecisionFactors,
    DecisionOrchestrator,
    SettingsConfigurationSource,
    TradingRiskService,
)
from autonomous_ai.notifications import InMemoryNotificationChannel
from autonomous_ai.utils import setup_logging


def toy_decision(factors: DecisionFactors, timeframe: str, market_type: str) -> dict:
    """Buys trending, quiet markets; waits otherwise."""
    conditions = factors.market_conditions
    if conditions.noise < 40 and conditions.trend_strength > 60:
        action = "BUY"
    elif conditions.noise < 40 and conditions.trend_strength < 40:
        action = "SELL"
    else:
        action = "WAIT"

    confidence = round(100 - conditions.noise * 0.5, 1)
    return {
        "action": action,
        "confidence": confidence,
        "expected_success_rate": round(confidence * 0.9, 1),
        "timing": {"enter_now": timeframe != "5m", "wait_seconds": 15},
        "professional_analysis": {"market_grade": "A" if confidence > 80 else "C", "confluences": 3},
    }


class ToyRiskService(TradingRiskService):
    def __init__(self):
        self._current_risk = None
        self._position_sizing = None

    def evaluate_signal_risk(self, request):
        risk_pct = abs(request.entry_price - request.stop_loss) / request.entry_price * 100
        self._current_risk = {"totalRisk": f"{risk_pct:.1f}%"}
        self._position_sizing = {"recommendedSize": round(1.0 / risk_pct, 2)}
        return {"risk_pct": risk_pct, "approved": request.confidence >= 60}

    async def perform_backtest(self, signals: Sequence[Any]):
        await asyncio.sleep(0)
        wins = sum(1 for s in signals if s.action.value != "WAIT")
        print(f"  Backtest: {wins}/{len(signals)} actionable signals")

    @property
    def current_risk(self):
        return self._current_risk

    @property
    def position_sizing(self):
        return self._position_sizing


SNAPSHOT = {
    "detailed": {
        "rsi": {"found": True, "buyScore": 0.9, "sellScore": 0.1},
        "macd": {"found": True, "buyScore": 0.8, "sellScore": 0.2},
        "bollinger": {"found": False},
    },
    "enhanced": {
        "microPatterns": [{"type": "hammer", "strength": 0.7}],
        "visualAnalysis": {"trendStrength": 75, "priceAction": {"volatility": 35}},
        "timing": {"nextCandleIn": 12},
    },
    "fast": [{"direction": d, "confidence": 70} for d in ("up", "up", "down", "up", "flat", "up")],
}


async def main():
    config = load_config()
    setup_logging(config.system.log_level, json_format=config.system.json_logs)

    bus = EventBus()
    await bus.start()

    config_source = SettingsConfigurationSource(config.analyzer, event_bus=bus)
    channel = InMemoryNotificationChannel()
    orchestrator = DecisionOrchestrator(
        toy_decision,
        ToyRiskService(),
        config_source=config_source,
        channel=channel,
        config=config.orchestrator,
        notification_config=config.notifications,
        event_bus=bus,
    )
    await orchestrator.start()

    print("\n" + "=" * 80)
    print("DEMO 1: Burst of updates, one decision")
    print("=" * 80)
    for _ in range(3):
        await bus.publish(AnalysisUpdated(SNAPSHOT["detailed"], SNAPSHOT["enhanced"], SNAPSHOT["fast"]))
    await bus.join()
    await orchestrator.wait_idle()
    print(f"  Decision: {orchestrator.ai_decision}")
    print(f"  Notification: {channel.last.title} | {channel.last.body}")

    print("\n" + "=" * 80)
    print("DEMO 2: Timeframe change re-evaluates the last snapshot")
    print("=" * 80)
    await config_source.update(selected_timeframe="5m")
    await bus.join()
    await orchestrator.wait_idle()
    print(f"  Notification: {channel.last.title} | {channel.last.body}")

    print(f"\nStats: {orchestrator.get_stats()}")

    await orchestrator.stop()
    await bus.stop()


if __name__ == '__main__':
    asyncio.run(main())
