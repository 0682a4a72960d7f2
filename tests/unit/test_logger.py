"""
Unit tests for logging utilities.
"""

import json
import logging

from autonomous_ai.utils import JSONFormatter, get_decision_logger, setup_logging


def test_json_formatter_includes_cycle_context():
    record = logging.LogRecord("autonomous_ai.test", logging.INFO, __file__, 10, "Decision #3: BUY", None, None)
    record.cycle_id = 3
    record.action = "BUY"
    record.timeframe = "1m"

    entry = json.loads(JSONFormatter().format(record))

    assert entry["message"] == "Decision #3: BUY"
    assert entry["level"] == "INFO"
    assert entry["cycle_id"] == 3
    assert entry["action"] == "BUY"
    assert entry["timeframe"] == "1m"
    assert "market_grade" not in entry


def test_decision_logger_attaches_extra_fields(caplog):
    decision_logger = get_decision_logger("autonomous_ai.test.decisions")

    with caplog.at_level(logging.DEBUG, logger="autonomous_ai.test.decisions"):
        decision_logger.decision_made(7, "SELL", 66.0, "B", timeframe="5m")
        with decision_logger.performance.timer("decision_function", cycle_id=7):
            pass

    made, timed = caplog.records[-2:]
    assert made.cycle_id == 7
    assert made.action == "SELL"
    assert made.market_grade == "B"
    assert made.timeframe == "5m"
    assert timed.levelno == logging.DEBUG
    assert timed.cycle_id == 7
    assert timed.execution_time >= 0


def test_setup_logging_configures_root(tmp_path):
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    log_file = tmp_path / "logs" / "orchestrator.log"

    try:
        logger = setup_logging("debug", log_file=str(log_file), json_format=True)

        assert logger is root
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 2
        assert all(isinstance(h.formatter, JSONFormatter) for h in root.handlers)
        assert log_file.parent.exists()
    finally:
        for handler in root.handlers[:]:
            root.removeHandler(handler)
            handler.close()
        for handler in saved_handlers:
            root.addHandler(handler)
        root.setLevel(saved_level)
