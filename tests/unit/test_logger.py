"""
Unit Tests for logging helpers
"""

import logging

import pytest

from orderpay.utils.logger import get_logger, mask_phone


@pytest.mark.parametrize("raw, expected", [
    ("254712345678", "254******678"),
    (254712345678,   "254******678"),
    ("12345",        "*****"),
    ("",             ""),
    (None,           ""),
])
def test_mask_phone(raw, expected):
    assert mask_phone(raw) == expected


def test_get_logger_configures_once():
    logger = get_logger("orderpay.tests.logger")
    handlers = list(logger.handlers)

    assert get_logger("orderpay.tests.logger") is logger
    assert logger.handlers == handlers
    # LOG_DIR is empty under test, so only the console handler is attached
    assert [type(h) for h in handlers] == [logging.StreamHandler]


def test_request_lines_log_caller_address(client, caplog):
    with caplog.at_level(logging.INFO, logger="request"):
        client.get(
            "/api/v1/health/live",
            headers={"X-Forwarded-For": "196.201.214.200"},
            environ_base={"REMOTE_ADDR": "203.0.113.5"},
        )

    # Without a trusted proxy the forwarded header is ignored
    assert any(
        "GET /api/v1/health/live - IP: 203.0.113.5" in record.getMessage()
        for record in caplog.records
    )
