# tests/test_logging_utils.py
from __future__ import annotations

import json
import logging

import pytest

from sss_control.logging_utils import configure_logging, get_logger, log_event


def test_log_event_emits_one_json_line(caplog: pytest.LogCaptureFixture) -> None:
    log = get_logger("test")
    with caplog.at_level(logging.INFO, logger="sss_control"):
        log_event(log, "operation_submitted", operation="mint", amount=5, mint=object)
    rec = caplog.records[-1]
    assert rec.name == "sss_control.test"
    payload = json.loads(rec.getMessage())
    assert payload["event"] == "operation_submitted"
    assert payload["amount"] == 5
    assert isinstance(payload["ts_ms"], int)
    assert payload["mint"] == str(object)


def test_log_event_level(caplog: pytest.LogCaptureFixture) -> None:
    log = get_logger("test")
    with caplog.at_level(logging.DEBUG, logger="sss_control"):
        log_event(log, "operation_failed", level=logging.WARNING, error="x")
    assert caplog.records[-1].levelno == logging.WARNING


def test_configure_logging_is_idempotent() -> None:
    root = logging.getLogger("sss_control")
    saved = (list(root.handlers), root.level, root.propagate)
    try:
        configure_logging("debug")
        assert root.level == logging.DEBUG
        assert root.propagate is False
        assert len(root.handlers) == 1

        configure_logging("warning")
        assert root.level == logging.WARNING
        assert len(root.handlers) == 1
        assert root.handlers[0].level == logging.WARNING

        configure_logging("nonsense")
        assert root.level == logging.INFO
    finally:
        root.handlers = saved[0]
        root.setLevel(saved[1])
        root.propagate = saved[2]
        if hasattr(root, "_sss_control_configured"):
            delattr(root, "_sss_control_configured")
