"""
Lifecycle base class for long-lived orchestrator components.
"""

import logging
from abc import ABC
from datetime import datetime
from typing import Any, Dict, Optional

from .event_bus import EventBus


class Component(ABC):
    """
    Named component with a start/stop lifecycle and an optional event bus.

    Subclasses extend start() to subscribe or spawn work and stop() to
    release it, calling super() so ``is_started`` stays accurate. Repeated
    start() or stop() calls are logged and ignored.
    """

    def __init__(self, name: str, event_bus: Optional[EventBus] = None):
        self.name = name
        self.event_bus = event_bus
        self._started = False
        self._started_at: Optional[datetime] = None
        self._logger = logging.getLogger(f"{self.__class__.__module__}.{name}")

    async def start(self) -> None:
        if self._started:
            self._logger.warning(f"{self.name} is already running")
            return
        self._started = True
        self._started_at = datetime.utcnow()
        self._logger.info(f"{self.name} started")

    async def stop(self) -> None:
        if not self._started:
            self._logger.warning(f"{self.name} is not running")
            return
        self._started = False
        self._started_at = None
        self._logger.info(f"{self.name} stopped")

    async def health_check(self) -> Dict[str, Any]:
        """Status summary; subclasses fill in ``details``."""
        return {
            "component": self.name,
            "status": "healthy" if self._started else "stopped",
            "uptime_seconds": self.uptime_seconds,
            "details": {},
        }

    @property
    def is_started(self) -> bool:
        return self._started

    @property
    def uptime_seconds(self) -> float:
        if self._started_at is None:
            return 0.0
        return (datetime.utcnow() - self._started_at).total_seconds()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r}, started={self._started})"
