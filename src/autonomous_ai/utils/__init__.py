from .logger import (
    DecisionLogger,
    JSONFormatter,
    PerformanceLogger,
    get_decision_logger,
    setup_logging,
)

__all__ = [
    'DecisionLogger',
    'JSONFormatter',
    'PerformanceLogger',
    'get_decision_logger',
    'setup_logging',
]
