from __future__ import annotations

import logging
import re

STRIPE_ACCOUNT_RE = re.compile(r"acct_[A-Za-z0-9]+")


class StripRequestBodyFilter(logging.Filter):
    """
    Drop request body/content fields from log records to avoid leaking PII.
    """

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        for attr in ("request", "request_body", "data", "body"):
            if hasattr(record, attr):
                setattr(record, attr, None)
        return True


class RedactPayoutAccountFilter(logging.Filter):
    """
    Mask connected payout account ids (acct_...) in formatted log messages.
    """

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if isinstance(record.args, tuple):
            record.args = tuple(
                STRIPE_ACCOUNT_RE.sub("acct_***", arg) if isinstance(arg, str) else arg
                for arg in record.args
            )
        if isinstance(record.msg, str):
            record.msg = STRIPE_ACCOUNT_RE.sub("acct_***", record.msg)
        return True
