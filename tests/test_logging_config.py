import json
import logging

from logging_config import JSONFormatter, get_logger, log_error, log_performance, setup_logging


def _record(message, **extra):
    record = logging.LogRecord("stopmerge.test", logging.INFO, __file__, 10, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_known_extras():
    payload = json.loads(JSONFormatter().format(_record("merged", sets_before=10, sets_after=7, junk="x")))

    assert payload["message"] == "merged"
    assert payload["level"] == "INFO"
    assert payload["sets_before"] == 10
    assert payload["sets_after"] == 7
    assert "junk" not in payload
    assert payload["timestamp"].endswith("Z")


def test_get_logger_is_namespaced():
    assert get_logger("processors.parent_stops").name == "stopmerge.processors.parent_stops"


def test_setup_logging_installs_single_handler():
    root = logging.getLogger()
    saved = root.handlers[:], root.level
    try:
        setup_logging("debug", json_format=True)
        setup_logging("debug", json_format=False)
        assert len(root.handlers) == 1
        assert root.level == logging.DEBUG
        assert not isinstance(root.handlers[0].formatter, JSONFormatter)
    finally:
        root.handlers[:] = saved[0]
        root.setLevel(saved[1])


def test_structured_helpers(caplog):
    logger = get_logger("test")
    with caplog.at_level(logging.INFO, logger="stopmerge"):
        log_performance(logger, "build_index", 1.234, sets_before=3)
        log_error(logger, "hierarchy", "Unknown parent station X", stop_id="A")

    perf, error = caplog.records
    assert perf.getMessage() == "Performance: build_index took 1.23s"
    assert perf.operation == "build_index"
    assert perf.sets_before == 3
    assert error.levelno == logging.ERROR
    assert error.error_type == "hierarchy"
    assert error.stop_id == "A"
