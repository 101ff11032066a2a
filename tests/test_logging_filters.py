from __future__ import annotations

import logging

from apps.core.logging_filters import RedactPayoutAccountFilter, StripRequestBodyFilter


def test_strip_request_body_filter_redacts_fields():
    record = logging.LogRecord("test", logging.INFO, "path", 1, "msg", args=(), exc_info=None)
    record.request = "req"
    record.request_body = "secret"
    record.data = {"password": "secret"}
    record.body = "secret"

    filt = StripRequestBodyFilter()
    assert filt.filter(record) is True
    assert record.request is None
    assert record.request_body is None
    assert record.data is None
    assert record.body is None


def test_redact_payout_account_masks_args_and_message():
    record = logging.LogRecord(
        "test",
        logging.INFO,
        "path",
        1,
        "payments.sync account=%s fallback=acct_1Fallback",
        args=("acct_1AbCdEf", 42),
        exc_info=None,
    )

    assert RedactPayoutAccountFilter().filter(record) is True
    assert record.getMessage() == "payments.sync account=acct_*** fallback=acct_***"
    assert record.args[1] == 42


def test_redact_payout_account_leaves_mapping_args_alone():
    record = logging.LogRecord("test", logging.INFO, "path", 1, "user=%(user)s", args=({"user": "u1"},), exc_info=None)

    assert RedactPayoutAccountFilter().filter(record) is True
    assert record.getMessage() == "user=u1"
