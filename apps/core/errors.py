"""
Error taxonomy shared by the ledger, payout and gauntlet services.

Every error carries a stable ``code`` that API views return next to the
human readable ``detail``. Validation-style errors subclass Django's
``ValidationError`` so existing ``except ValidationError`` call sites keep
working; authorization errors subclass ``PermissionDenied``.
"""

from __future__ import annotations

from django.core.exceptions import PermissionDenied, ValidationError


class LedgerValidationError(ValidationError):
    """Bad input: unknown category, non-positive amount, missing field."""

    default_code = "invalid"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message, code=code or self.default_code)
        self.error_code = code or self.default_code

    @property
    def detail(self) -> str:
        return self.messages[0] if self.messages else self.error_code


class InsufficientBalance(LedgerValidationError):
    default_code = "insufficient_funds"


class GracePeriodActive(LedgerValidationError):
    default_code = "grace_period_active"


class StateConflict(Exception):
    """An operation was attempted from a state that does not allow it."""

    error_code = "state_conflict"

    def __init__(self, message: str, current_status: str | None = None) -> None:
        super().__init__(message)
        self.detail = message
        self.current_status = current_status


class NotAParticipant(PermissionDenied):
    error_code = "not_a_participant"

    def __init__(self, message: str = "You are not a player in this challenge.") -> None:
        super().__init__(message)
        self.detail = message


def error_payload(exc: Exception) -> dict:
    detail = getattr(exc, "detail", None) or str(exc)
    code = getattr(exc, "error_code", None) or "error"
    return {"detail": detail, "code": code}
