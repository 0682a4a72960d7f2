"""
Logging helpers for the decision pipeline.

- JSONFormatter: one JSON object per line, including decision-cycle
  context passed through ``extra=``
- PerformanceLogger: timing of collaborator calls
- DecisionLogger: structured messages for each stage of a cycle
"""

import json
import logging
import sys
import time
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Optional

CONTEXT_FIELDS = (
    'cycle_id',
    'action',
    'confidence',
    'market_grade',
    'timeframe',
    'market_type',
    'severity',
    'execution_time',
)


class JSONFormatter(logging.Formatter):
    """Renders records as JSON, carrying any decision-cycle context fields."""

    def format(self, record):
        log_entry = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        for name in CONTEXT_FIELDS:
            if hasattr(record, name):
                log_entry[name] = getattr(record, name)

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class PerformanceLogger:
    """Logger for tracking operation timings."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    @contextmanager
    def timer(self, operation: str, **context):
        """Log how long the wrapped block took, at DEBUG."""
        start_time = time.perf_counter()
        try:
            yield
        finally:
            execution_time = time.perf_counter() - start_time
            extra = {'execution_time': round(execution_time, 6), **context}
            self.logger.debug(f"Operation completed: {operation} in {execution_time * 1000:.1f}ms", extra=extra)


class DecisionLogger:
    """Specialized logger for decision cycle events."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)
        self.performance = PerformanceLogger(self.logger)

    def cycle_scheduled(self, cycle_id: int, delay_seconds: float, timeframe: str, market_type: str):
        extra = {'cycle_id': cycle_id, 'timeframe': timeframe, 'market_type': market_type}
        self.logger.info(
            f"🤖 Preparing autonomous decision #{cycle_id} ({timeframe}/{market_type}) in {delay_seconds:.2f}s",
            extra=extra
        )

    def decision_made(self, cycle_id: int, action: str, confidence: float, market_grade: str, **context):
        extra = {
            'cycle_id': cycle_id,
            'action': action,
            'confidence': confidence,
            'market_grade': market_grade,
            **context
        }
        self.logger.info(
            f"Decision #{cycle_id}: {action} (confidence={confidence}, grade={market_grade})",
            extra=extra
        )

    def risk_evaluated(self, cycle_id: int, assessment, **context):
        extra = {'cycle_id': cycle_id, **context}
        self.logger.info(f"🎯 Risk assessment for decision #{cycle_id}: {assessment}", extra=extra)

    def cycle_failed(self, cycle_id: int, stage: str, error: BaseException):
        extra = {'cycle_id': cycle_id}
        self.logger.error(f"Autonomous decision #{cycle_id} failed during {stage}: {error}", extra=extra)


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    json_format: bool = False,
) -> logging.Logger:
    """
    Setup logging configuration.

    Args:
        log_level: Level name, case-insensitive
        log_file: Also write to this file, creating parent directories
        json_format: Emit JSON lines instead of plain text

    Returns:
        Configured root logger
    """
    logger = logging.getLogger()
    logger.setLevel(getattr(logging, str(log_level).upper()))

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    if json_format:
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def get_decision_logger(name: str) -> DecisionLogger:
    """Get a decision-cycle logger instance."""
    return DecisionLogger(name)
