"""Tests for the logging setup."""

import json
import logging

import pytest

from tunelight.logging_config import LOG_FILE_NAME, get_logger, log_with_context, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    quiet = {name: logging.getLogger(name).level for name in ("httpx", "PIL")}
    yield
    for handler in root.handlers:
        handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    for name, old in quiet.items():
        logging.getLogger(name).setLevel(old)


def test_structured_fields_reach_json_file(tmp_path, restore_root_logger):
    setup_logging("INFO", tmp_path)
    logger = get_logger("tunelight.test")

    log_with_context(logger, "info", "Command sent to WLED", device_ip="192.168.1.50", event_type="wled_sent")
    log_with_context(logger, "debug", "Below the configured level", event_type="ignored")
    for handler in logging.getLogger().handlers:
        handler.flush()

    lines = (tmp_path / LOG_FILE_NAME).read_text(encoding="utf-8").splitlines()
    records = [json.loads(line) for line in lines]
    assert len(records) == 1
    assert records[0]["message"] == "Command sent to WLED"
    assert records[0]["device_ip"] == "192.168.1.50"
    assert records[0]["event_type"] == "wled_sent"
    assert records[0]["levelname"] == "INFO"


def test_noisy_libraries_are_quietened(tmp_path, restore_root_logger):
    setup_logging("DEBUG", tmp_path)

    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("PIL").level == logging.WARNING
