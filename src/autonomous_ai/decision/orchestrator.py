"""
Decision Orchestrator - turns analysis snapshots into one debounced decision.

Reactive component that:
1. Gates every upstream update (pattern results + micro patterns required)
2. Builds DecisionFactors and schedules a delayed decision cycle
3. Calls the external decision function once the delay elapses
4. Enriches the decision with risk evaluation and a detached backtest
5. Renders and delivers a notification describing the outcome

Cycle states: Idle -> Gated-Out -> Scheduled -> Processing -> Settled.
A newer qualifying update cancels a cycle that is still Scheduled when
``supersede_pending`` is on; otherwise the last cycle to finish wins.
"""

import asyncio
import inspect
from typing import Any, Dict, Mapping, Optional, Sequence, Set, Tuple

from ..config.settings import NotificationConfig, OrchestratorConfig
from ..core.base import Component
from ..core.event_bus import EventBus
from ..core.events import (
    AnalysisUpdated,
    ConfigurationChanged,
    DecisionComputed,
    DecisionFailed,
    DecisionScheduled,
    Event,
    NotificationDelivered,
    RiskEvaluated,
)
from ..notifications.channels import LoggingNotificationChannel, NotificationChannel
from ..notifications.presenter import Notification, RiskContext, present, present_error
from ..utils.logger import get_decision_logger
from .factors import build_factors
from .interfaces import ConfigurationSource, DecisionFunction, SettingsConfigurationSource, TradingRiskService
from .models import (
    Action,
    AutonomousDecision,
    BacktestInput,
    DecisionFactors,
    OrchestratorState,
    RiskAssessmentRequest,
    get_field,
)

DIRECTION_ACTIONS = {
    "up": Action.BUY,
    "down": Action.SELL,
}


def passes_gate(
    detailed_results: Optional[Mapping[str, Any]],
    enhanced_analysis: Optional[Mapping[str, Any]],
) -> bool:
    """True when there is enough analysis to justify a decision."""
    if not isinstance(detailed_results, Mapping) or len(detailed_results) == 0:
        return False
    if not isinstance(enhanced_analysis, Mapping):
        return False
    return enhanced_analysis.get("microPatterns") is not None


def _to_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


class DecisionOrchestrator(Component):
    """
    Stateful core of the autonomous decision pipeline.

    Owns ``latest_decision`` and the processing flag; nothing else writes
    them. Risk and account state are read from the TradingRiskService and
    exposed unchanged.

    Usage:
        orchestrator = DecisionOrchestrator(make_decision, risk_service, event_bus=bus)
        await orchestrator.start()          # subscribes to AnalysisUpdated
        await bus.publish(AnalysisUpdated(detailed, enhanced, fast))
        ...
        await orchestrator.stop()           # drops pending cycles
    """

    def __init__(
        self,
        decision_function: DecisionFunction,
        risk_service: TradingRiskService,
        config_source: Optional[ConfigurationSource] = None,
        channel: Optional[NotificationChannel] = None,
        config: Optional[OrchestratorConfig] = None,
        notification_config: Optional[NotificationConfig] = None,
        event_bus: Optional[EventBus] = None,
        name: str = "DecisionOrchestrator",
    ):
        """
        Initialize the orchestrator.

        Args:
            decision_function: (factors, timeframe, market_type) -> decision, sync or async
            risk_service: Risk evaluation / backtest / account collaborator
            config_source: Timeframe and market type source (defaults to AnalyzerConfig())
            channel: Notification delivery channel (defaults to logging)
            config: Timing, supersession and placeholder settings
            notification_config: Notification durations
            event_bus: Optional bus to subscribe to and publish cycle events on
            name: Component name for logging
        """
        super().__init__(name, event_bus)
        self.decision_function = decision_function
        self.risk_service = risk_service
        self.config_source = config_source or SettingsConfigurationSource()
        self.channel = channel or LoggingNotificationChannel()
        self.config = config or OrchestratorConfig()
        self.notification_config = notification_config or NotificationConfig()

        self._latest_decision: Optional[AutonomousDecision] = None
        self._last_snapshot: Optional[AnalysisUpdated] = None
        self._last_selection: Optional[Tuple[str, str]] = None
        self._cycle_counter = 0
        self._closed = False

        # cycles scheduled or processing, and the subset still waiting out the delay
        self._in_flight: Dict[int, asyncio.Task] = {}
        self._pending: Dict[int, asyncio.Task] = {}
        self._background: Set[asyncio.Task] = set()

        self.logger = self._logger
        self.decision_logger = get_decision_logger(self.logger.name)

        self.stats = {
            "updates_received": 0,
            "gated_out": 0,
            "cycles_scheduled": 0,
            "cycles_superseded": 0,
            "cycles_cancelled": 0,
            "decisions_made": 0,
            "decisions_failed": 0,
            "enrichment_failures": 0,
            "backtests_started": 0,
            "notifications_delivered": 0,
            "notifications_failed": 0,
        }

        self.logger.info(
            f"DecisionOrchestrator initialized: delay={self.config.total_delay_seconds:.2f}s "
            f"(debounce={self.config.debounce_seconds:.2f}s, "
            f"latency={self.config.processing_latency_seconds:.2f}s), "
            f"supersede_pending={self.config.supersede_pending}"
        )

    # ========================================================================
    # Lifecycle
    # ========================================================================

    async def start(self) -> None:
        """Start reacting to AnalysisUpdated and ConfigurationChanged events."""
        await super().start()
        self._closed = False

        if self.event_bus:
            self.event_bus.subscribe(AnalysisUpdated, self.on_analysis_updated)
            self.event_bus.subscribe(ConfigurationChanged, self.on_configuration_changed)

    async def stop(self) -> None:
        """
        Tear down: unsubscribe and drop every pending cycle and backtest.

        Cycles that are mid-flight are cancelled; none of them touches
        state or delivers a notification afterwards.
        """
        self._closed = True

        if self.event_bus:
            self.event_bus.unsubscribe_all(self.on_analysis_updated)
            self.event_bus.unsubscribe_all(self.on_configuration_changed)

        tasks = list(self._in_flight.values()) + list(self._background)
        for task in tasks:
            task.cancel()
        self.stats["cycles_cancelled"] += len(self._in_flight)
        self._in_flight.clear()
        self._pending.clear()

        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            self.logger.info(f"Dropped {len(tasks)} pending task(s) on shutdown")

        if self._started:
            await super().stop()

    async def wait_idle(self) -> None:
        """Wait until no cycle or backtest is in flight."""
        while self._in_flight or self._background:
            await asyncio.gather(
                *list(self._in_flight.values()),
                *list(self._background),
                return_exceptions=True,
            )

    # ========================================================================
    # Event Handlers
    # ========================================================================

    async def on_analysis_updated(self, event: AnalysisUpdated) -> None:
        await self.submit(
            event.detailed_results,
            event.enhanced_analysis,
            event.fast_analysis_results,
        )

    async def on_configuration_changed(self, event: ConfigurationChanged) -> None:
        """Re-run the last qualifying snapshot under the new selection."""
        if self._last_snapshot is None:
            return
        if (event.selected_timeframe, event.market_type) == self._last_selection:
            self.logger.debug("Timeframe and market type unchanged, no re-evaluation")
            return

        self.logger.info(
            f"Configuration changed to {event.selected_timeframe}/{event.market_type}, "
            f"re-evaluating last snapshot"
        )
        snapshot = self._last_snapshot
        await self.submit(
            snapshot.detailed_results,
            snapshot.enhanced_analysis,
            snapshot.fast_analysis_results,
        )

    # ========================================================================
    # Gating & Scheduling
    # ========================================================================

    async def submit(
        self,
        detailed_results: Optional[Mapping[str, Any]],
        enhanced_analysis: Optional[Mapping[str, Any]],
        fast_analysis_results: Optional[Sequence[Any]] = None,
    ) -> Optional[int]:
        """
        Feed one upstream update through the gate.

        Args:
            detailed_results: Indicator name -> pattern result
            enhanced_analysis: Enhanced analysis payload (must carry microPatterns)
            fast_analysis_results: Recent fast analysis results (for backtesting)

        Returns:
            Cycle id if a cycle was scheduled, None if the update was gated out
        """
        self.stats["updates_received"] += 1

        if self._closed:
            self.logger.warning("Update received after shutdown, ignoring")
            return None

        if not passes_gate(detailed_results, enhanced_analysis):
            self.stats["gated_out"] += 1
            self.logger.debug("Insufficient analysis data, no decision scheduled")
            return None

        fast_results = list(fast_analysis_results or [])
        self._last_snapshot = AnalysisUpdated(detailed_results, enhanced_analysis, tuple(fast_results))

        if self.config.supersede_pending:
            self._supersede_pending()

        analyzer = self.config_source.get_analyzer_config()
        timeframe = analyzer.selected_timeframe
        market_type = analyzer.market_type
        self._last_selection = (timeframe, market_type)

        factors = build_factors(detailed_results, enhanced_analysis)

        self._cycle_counter += 1
        cycle_id = self._cycle_counter

        task = asyncio.create_task(
            self._run_cycle(cycle_id, factors, fast_results, timeframe, market_type),
            name=f"decision_cycle_{cycle_id}",
        )
        self._in_flight[cycle_id] = task
        self._pending[cycle_id] = task
        self.stats["cycles_scheduled"] += 1

        delay = self.config.total_delay_seconds
        self.decision_logger.cycle_scheduled(cycle_id, delay, timeframe, market_type)
        self.logger.debug(f"Decision factors #{cycle_id}: {factors.to_dict()}")

        await self._publish(DecisionScheduled(
            cycle_id=cycle_id,
            delay_seconds=delay,
            timeframe=timeframe,
            market_type=market_type,
        ))
        return cycle_id

    def _supersede_pending(self) -> None:
        for cycle_id, task in list(self._pending.items()):
            task.cancel()
            self._pending.pop(cycle_id, None)
            self._in_flight.pop(cycle_id, None)
            self.stats["cycles_superseded"] += 1
            self.logger.debug(f"Decision #{cycle_id} superseded by a newer update")

    # ========================================================================
    # Decision Cycle
    # ========================================================================

    async def _run_cycle(
        self,
        cycle_id: int,
        factors: DecisionFactors,
        fast_results: Sequence[Any],
        timeframe: str,
        market_type: str,
    ) -> None:
        try:
            if self.config.debounce_seconds > 0:
                await asyncio.sleep(self.config.debounce_seconds)
            await asyncio.sleep(self.config.processing_latency_seconds)

            self._pending.pop(cycle_id, None)
            await self._process(cycle_id, factors, fast_results, timeframe, market_type)
        finally:
            self._pending.pop(cycle_id, None)
            self._in_flight.pop(cycle_id, None)

    async def _process(
        self,
        cycle_id: int,
        factors: DecisionFactors,
        fast_results: Sequence[Any],
        timeframe: str,
        market_type: str,
    ) -> None:
        stage = "decision"
        try:
            with self.decision_logger.performance.timer("decision_function", cycle_id=cycle_id):
                result = self.decision_function(factors, timeframe, market_type)
                if inspect.isawaitable(result):
                    result = await result
            decision = AutonomousDecision.coerce(result)

            isolated = self.config.isolate_enrichment_failures
            if not isolated:
                # enrichment is part of the cycle: nothing is stored until it succeeds
                if decision.is_actionable:
                    stage = "risk evaluation"
                    await self._evaluate_risk(cycle_id, decision, factors, timeframe)
                stage = "notification"
                risk_context = self._read_risk_context(cycle_id)

            if self._closed:
                self.logger.debug(f"Decision #{cycle_id} finished after shutdown, dropped")
                return

            self._latest_decision = decision
            self.stats["decisions_made"] += 1
            self.decision_logger.decision_made(
                cycle_id,
                decision.action.value,
                decision.confidence,
                decision.professional_analysis.market_grade,
                timeframe=timeframe,
                market_type=market_type,
            )
            await self._publish(DecisionComputed(
                cycle_id=cycle_id,
                action=decision.action.value,
                confidence=decision.confidence,
                market_grade=decision.professional_analysis.market_grade,
                enter_now=decision.timing.enter_now,
            ))

            if isolated:
                if decision.is_actionable:
                    await self._evaluate_risk(cycle_id, decision, factors, timeframe)
                if self._closed:
                    return
                risk_context = self._read_risk_context(cycle_id)

            if len(fast_results) > self.config.backtest_min_signals:
                self._start_backtest(cycle_id, fast_results, timeframe)

            await self._deliver(cycle_id, present(decision, risk_context, self.notification_config))

        except Exception as e:
            self.stats["decisions_failed"] += 1
            self.decision_logger.cycle_failed(cycle_id, stage, e)
            self.logger.exception("Full traceback:")

            if self._closed:
                return

            await self._publish(DecisionFailed(
                cycle_id=cycle_id,
                error_type=type(e).__name__,
                error_message=str(e),
            ))
            await self._deliver(cycle_id, present_error(self.notification_config))

    # ========================================================================
    # Enrichment
    # ========================================================================

    def build_risk_request(
        self,
        decision: AutonomousDecision,
        factors: DecisionFactors,
        timeframe: str,
    ) -> RiskAssessmentRequest:
        """Risk request for an actionable decision using the placeholder prices."""
        entry = self.config.placeholder_entry_price
        stop_offset = entry * self.config.stop_loss_pct / 100
        target_offset = entry * self.config.take_profit_pct / 100

        if decision.action == Action.BUY:
            stop_loss, take_profit = entry - stop_offset, entry + target_offset
        else:
            stop_loss, take_profit = entry + stop_offset, entry - target_offset

        return RiskAssessmentRequest(
            action=decision.action,
            confidence=decision.confidence,
            expected_success_rate=decision.expected_success_rate,
            timing=decision.timing,
            professional_analysis=decision.professional_analysis,
            timeframe=timeframe,
            entry_price=entry,
            stop_loss=stop_loss,
            take_profit=take_profit,
            volatility=factors.market_conditions.volatility,
            confluences=decision.professional_analysis.confluences,
        )

    async def _evaluate_risk(
        self,
        cycle_id: int,
        decision: AutonomousDecision,
        factors: DecisionFactors,
        timeframe: str,
    ) -> Any:
        request = self.build_risk_request(decision, factors, timeframe)
        try:
            assessment = self.risk_service.evaluate_signal_risk(request)
            if inspect.isawaitable(assessment):
                assessment = await assessment
        except Exception as e:
            if not self.config.isolate_enrichment_failures:
                raise
            self.stats["enrichment_failures"] += 1
            self.logger.error(f"Risk evaluation failed for decision #{cycle_id}: {e}")
            self.logger.exception("Full traceback:")
            return None

        self.decision_logger.risk_evaluated(cycle_id, assessment, timeframe=timeframe)
        await self._publish(RiskEvaluated(cycle_id=cycle_id, assessment=assessment))
        return assessment

    def _read_risk_context(self, cycle_id: int) -> Optional[RiskContext]:
        try:
            return RiskContext.from_service(
                self.risk_service.current_risk,
                self.risk_service.position_sizing,
            )
        except Exception as e:
            if not self.config.isolate_enrichment_failures:
                raise
            self.stats["enrichment_failures"] += 1
            self.logger.error(f"Could not read risk state for decision #{cycle_id}: {e}")
            self.logger.exception("Full traceback:")
            return None

    def build_backtest_inputs(self, fast_results: Sequence[Any], timeframe: str) -> list:
        """Map fast analysis results to backtest inputs."""
        return [
            BacktestInput(
                action=DIRECTION_ACTIONS.get(get_field(result, "direction"), Action.WAIT),
                confidence=_to_float(get_field(result, "confidence", 0)),
                confluences=self.config.backtest_confluences,
                timeframe=timeframe,
            )
            for result in fast_results
        ]

    def _start_backtest(self, cycle_id: int, fast_results: Sequence[Any], timeframe: str) -> None:
        task = asyncio.create_task(
            self._run_backtest(cycle_id, fast_results, timeframe),
            name=f"backtest_{cycle_id}",
        )
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        self.stats["backtests_started"] += 1

    async def _run_backtest(self, cycle_id: int, fast_results: Sequence[Any], timeframe: str) -> None:
        try:
            signals = self.build_backtest_inputs(fast_results, timeframe)
            result = self.risk_service.perform_backtest(signals)
            if inspect.isawaitable(result):
                await result
            self.logger.info(f"Backtest for decision #{cycle_id} completed ({len(signals)} signals)")
        except Exception as e:
            self.stats["enrichment_failures"] += 1
            self.logger.error(f"Backtest failed for decision #{cycle_id}: {e}")
            self.logger.exception("Full traceback:")

    # ========================================================================
    # Delivery & Publishing
    # ========================================================================

    async def _deliver(self, cycle_id: int, notification: Notification) -> bool:
        try:
            delivered = await self.channel.deliver(notification)
        except Exception as e:
            self.logger.error(f"Error delivering notification for decision #{cycle_id}: {e}")
            delivered = False

        if delivered:
            self.stats["notifications_delivered"] += 1
        else:
            self.stats["notifications_failed"] += 1

        await self._publish(NotificationDelivered(
            cycle_id=cycle_id,
            severity=notification.severity.value,
            title=notification.title,
            delivered=delivered,
        ))
        return delivered

    async def _publish(self, event: Event) -> None:
        if not self.event_bus:
            return
        try:
            await self.event_bus.publish(event)
        except asyncio.QueueFull as e:
            self.logger.warning(f"Could not publish {event.event_type}: {e}")

    # ========================================================================
    # Exposed State
    # ========================================================================

    @property
    def latest_decision(self) -> Optional[AutonomousDecision]:
        return self._latest_decision

    @property
    def ai_decision(self) -> Optional[AutonomousDecision]:
        return self._latest_decision

    @property
    def is_processing(self) -> bool:
        return bool(self._in_flight)

    @property
    def current_risk(self) -> Any:
        return self.risk_service.current_risk

    @property
    def position_sizing(self) -> Any:
        return self.risk_service.position_sizing

    @property
    def active_alerts(self) -> Any:
        return self.risk_service.active_alerts

    @property
    def account_metrics(self) -> Any:
        return self.risk_service.account_metrics

    def get_state(self) -> OrchestratorState:
        return OrchestratorState(
            latest_decision=self._latest_decision,
            is_processing=self.is_processing,
            current_risk=self.current_risk,
            position_sizing=self.position_sizing,
            active_alerts=self.active_alerts,
            account_metrics=self.account_metrics,
        )

    def get_stats(self) -> dict:
        return {
            'name': self.name,
            'in_flight': len(self._in_flight),
            'pending': len(self._pending),
            'background_tasks': len(self._background),
            **self.stats,
        }

    async def health_check(self) -> dict:
        health = await super().health_check()
        health["details"] = self.get_stats()
        return health
