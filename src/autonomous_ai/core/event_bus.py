"""
Event Bus - in-process broker between the analysis pipeline and the orchestrator.

Producers publish analysis snapshots and configuration changes; the
decision orchestrator subscribes to them and publishes what happened to
each decision cycle. Dashboards, loggers and tests observe cycles by
subscribing to the outcome events.

Behaviour:
- Bounded asyncio.Queue; publishers wait up to ``publish_timeout`` seconds
- Per-type and wildcard subscribers, async or sync
- Handlers for one event run concurrently; a failing handler is logged
  and counted, never propagated
- ``join()`` waits until everything published so far has been dispatched
- ``stop()`` drains the queue before the dispatch loop exits
"""

import asyncio
import inspect
import logging
import time
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Type

from .events import Event

logger = logging.getLogger(__name__)

Handler = Callable[[Event], Any]


# ============================================================================
# Statistics
# ============================================================================

@dataclass
class EventBusStats:
    """Counters exposed through EventBus.get_stats()."""
    events_published: int = 0
    events_dispatched: int = 0
    handlers_executed: int = 0
    handler_errors: int = 0
    dispatch_time_ms: float = 0.0
    started_at: Optional[datetime] = None
    last_event_at: Optional[datetime] = None
    by_type: Counter = field(default_factory=Counter)

    @property
    def avg_dispatch_ms(self) -> float:
        if not self.events_dispatched:
            return 0.0
        return self.dispatch_time_ms / self.events_dispatched

    def to_dict(self, queue_size: int) -> Dict[str, Any]:
        uptime = (datetime.utcnow() - self.started_at).total_seconds() if self.started_at else 0.0
        return {
            "events_published": self.events_published,
            "events_processed": self.events_dispatched,
            "handlers_executed": self.handlers_executed,
            "handler_errors": self.handler_errors,
            "avg_processing_time_ms": round(self.avg_dispatch_ms, 3),
            "events_per_second": round(self.events_dispatched / uptime, 2) if uptime > 0 else 0.0,
            "queue_size": queue_size,
            "uptime_seconds": uptime,
            "by_type": dict(self.by_type),
        }


# ============================================================================
# Event Bus
# ============================================================================

class EventBus:
    """
    Typed publish/subscribe over an asyncio queue.

    Usage:
        bus = EventBus()
        bus.subscribe(AnalysisUpdated, orchestrator.on_analysis_updated)
        await bus.start()
        await bus.publish(AnalysisUpdated(detailed, enhanced, fast))
        await bus.join()
        await bus.stop()
    """

    def __init__(self, max_queue_size: int = 1000, publish_timeout: float = 1.0):
        """
        Args:
            max_queue_size: Queue bound; a full queue makes publishers wait
            publish_timeout: Seconds a publisher waits before QueueFull is raised
        """
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max_queue_size)
        self._publish_timeout = publish_timeout

        self._subscribers: Dict[Type[Event], List[Handler]] = defaultdict(list)
        self._wildcard: List[Handler] = []

        self._running = False
        self._loop_task: Optional[asyncio.Task] = None
        self._stats = EventBusStats()

        logger.info(f"EventBus initialized (max queue size: {max_queue_size})")

    # ========================================================================
    # Subscriptions
    # ========================================================================

    def subscribe(self, event_type: Type[Event], handler: Handler) -> None:
        """
        Register ``handler`` for ``event_type``.

        Coroutine functions are awaited; plain callables run in the
        default executor. Registering the same handler twice is a no-op.
        """
        handlers = self._subscribers[event_type]
        if handler in handlers:
            logger.warning(f"{_name(handler)} is already subscribed to {event_type.__name__}")
            return
        handlers.append(handler)
        logger.debug(f"{_name(handler)} subscribed to {event_type.__name__} ({len(handlers)} handler(s))")

    def subscribe_to_all(self, handler: Handler) -> None:
        """Register ``handler`` for every event type."""
        if handler not in self._wildcard:
            self._wildcard.append(handler)
            logger.debug(f"{_name(handler)} subscribed to all events")

    def unsubscribe(self, event_type: Type[Event], handler: Handler) -> None:
        handlers = self._subscribers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)
            logger.debug(f"{_name(handler)} unsubscribed from {event_type.__name__}")

    def unsubscribe_all(self, handler: Handler) -> None:
        """Remove ``handler`` from every event type and the wildcard list."""
        for event_type in list(self._subscribers):
            self.unsubscribe(event_type, handler)
        if handler in self._wildcard:
            self._wildcard.remove(handler)

    def get_subscriber_count(self, event_type: Optional[Type[Event]] = None) -> int:
        """Handlers for ``event_type``, or typed handlers across all types."""
        if event_type is not None:
            return len(self._subscribers.get(event_type, []))
        return sum(len(handlers) for handlers in self._subscribers.values())

    # ========================================================================
    # Publishing
    # ========================================================================

    async def publish(self, event: Event) -> None:
        """
        Queue an event for dispatch.

        Raises:
            asyncio.QueueFull: If no slot frees up within ``publish_timeout``
        """
        try:
            await asyncio.wait_for(self._queue.put(event), timeout=self._publish_timeout)
        except asyncio.TimeoutError:
            logger.error(f"Event queue full, dropping {event.event_type}")
            raise asyncio.QueueFull(
                f"Event queue full (max: {self._queue.maxsize}), cannot publish {event.event_type}"
            )

        self._stats.events_published += 1
        self._stats.last_event_at = datetime.utcnow()
        logger.debug(f"Published {event.event_type} (queue size: {self._queue.qsize()})")

    async def join(self) -> None:
        """Wait until every published event has been dispatched."""
        await self._queue.join()

    # ========================================================================
    # Dispatch Loop
    # ========================================================================

    async def start(self) -> None:
        if self._running:
            logger.warning("EventBus already running")
            return

        self._running = True
        self._stats.started_at = datetime.utcnow()
        self._loop_task = asyncio.create_task(self._dispatch_loop(), name="event_bus_dispatch")
        logger.info("EventBus started")

    async def stop(self, timeout: float = 5.0) -> None:
        """
        Stop after draining queued events.

        Args:
            timeout: Seconds to wait for the drain before the loop is cancelled
        """
        if not self._running:
            logger.warning("EventBus not running")
            return

        self._running = False
        logger.info(f"Stopping EventBus ({self._queue.qsize()} event(s) left to dispatch)")

        if self._loop_task is None:
            return
        try:
            await asyncio.wait_for(self._loop_task, timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("EventBus drain timed out, cancelling dispatch loop")
            self._loop_task.cancel()
            await asyncio.gather(self._loop_task, return_exceptions=True)
        logger.info("EventBus stopped")

    async def _dispatch_loop(self) -> None:
        while self._running or not self._queue.empty():
            try:
                event = await asyncio.wait_for(self._queue.get(), timeout=0.1)
            except asyncio.TimeoutError:
                continue

            started = time.perf_counter()
            try:
                await self._dispatch(event)
            except Exception as e:
                logger.error(f"Error dispatching {event.event_type}: {e}")
                logger.exception("Full traceback:")
            finally:
                self._stats.events_dispatched += 1
                self._stats.by_type[event.event_type] += 1
                self._stats.dispatch_time_ms += (time.perf_counter() - started) * 1000
                self._queue.task_done()

    async def _dispatch(self, event: Event) -> None:
        handlers = self._subscribers.get(type(event), []) + self._wildcard
        if not handlers:
            logger.debug(f"No handlers for {event.event_type}")
            return

        await asyncio.gather(*(self._run_handler(handler, event) for handler in handlers))

    async def _run_handler(self, handler: Handler, event: Event) -> None:
        try:
            if inspect.iscoroutinefunction(handler):
                await handler(event)
            else:
                await asyncio.get_running_loop().run_in_executor(None, handler, event)
            self._stats.handlers_executed += 1
        except Exception as e:
            self._stats.handler_errors += 1
            logger.error(f"Handler {_name(handler)} failed on {event.event_type}: {e}")
            logger.exception("Full traceback:")

    # ========================================================================
    # Monitoring
    # ========================================================================

    def get_stats(self) -> Dict[str, Any]:
        return self._stats.to_dict(self._queue.qsize())

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def queue_size(self) -> int:
        return self._queue.qsize()

    def __repr__(self) -> str:
        return (
            f"EventBus(running={self._running}, queue_size={self._queue.qsize()}, "
            f"subscribers={self.get_subscriber_count()}, "
            f"events_processed={self._stats.events_dispatched})"
        )


def _name(handler: Handler) -> str:
    return getattr(handler, "__qualname__", repr(handler))
