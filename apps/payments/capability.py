"""
Payment capability consumed by the payout executor.

The executor only sees two calls: ``is_payout_eligible(user_id)`` and
``create_transfer(...)``. ``get_payment_capability()`` returns the Stripe
Connect implementation when payouts are enabled and configured, otherwise an
unavailable capability that reports every user as ineligible so winners are
parked as claimable records instead of being paid.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

import stripe
from django.conf import settings

from apps.payments.clients import StripeClient, get_stripe_client
from apps.payments.feature_flag import payouts_enabled, stripe_configured
from apps.payments.models import PayoutAccount
from apps.users.models import User

logger = logging.getLogger(__name__)


class PayoutTransferError(Exception):
    """A transfer to a connected account failed or timed out."""


@dataclass(frozen=True)
class PayoutEligibility:
    connected: bool
    enabled: bool
    destination: str | None = None

    @property
    def eligible(self) -> bool:
        return self.connected and self.enabled


def resolve_username(user_id: int) -> str:
    handle = User.objects.filter(id=user_id).values_list("handle", flat=True).first()
    return handle or ""


def resolve_payout_eligibility(user_id: int) -> PayoutEligibility:
    account = PayoutAccount.objects.filter(user_id=user_id).only("stripe_account_id", "payouts_enabled").first()
    if account is None:
        return PayoutEligibility(connected=False, enabled=False)
    return PayoutEligibility(
        connected=account.is_connected,
        enabled=account.payouts_enabled,
        destination=account.stripe_account_id,
    )


class PaymentCapability(Protocol):
    def eligibility(self, user_id: int) -> PayoutEligibility: ...

    def is_payout_eligible(self, user_id: int) -> bool: ...

    def create_transfer(
        self,
        destination_account: str,
        amount_units: int,
        metadata: Dict[str, Any],
        idempotency_key: str | None = None,
    ) -> str: ...


class StripePayoutCapability:
    def __init__(self, client: StripeClient, currency: str = "usd") -> None:
        self.client = client
        self.currency = currency

    def eligibility(self, user_id: int) -> PayoutEligibility:
        return resolve_payout_eligibility(user_id)

    def is_payout_eligible(self, user_id: int) -> bool:
        return self.eligibility(user_id).eligible

    def create_transfer(
        self,
        destination_account: str,
        amount_units: int,
        metadata: Dict[str, Any],
        idempotency_key: str | None = None,
    ) -> str:
        batch_id = str(metadata.get("batch_id", ""))
        try:
            transfer = self.client.create_transfer(
                destination=destination_account,
                amount_cents=int(amount_units) * 100,
                currency=self.currency,
                transfer_group=f"rp-{batch_id}" if batch_id else "",
                description=f"Random Payables payout {batch_id}".strip(),
                metadata={key: str(value) for key, value in metadata.items()},
                idempotency_key=idempotency_key,
            )
        except stripe.StripeError as exc:
            raise PayoutTransferError(getattr(exc, "user_message", None) or str(exc)) from exc
        return transfer.id


class UnavailablePaymentCapability:
    """Stand-in used when payouts are disabled; nobody is eligible."""

    def __init__(self, reason: str) -> None:
        self.reason = reason

    def eligibility(self, user_id: int) -> PayoutEligibility:
        found = resolve_payout_eligibility(user_id)
        return PayoutEligibility(connected=found.connected, enabled=False, destination=found.destination)

    def is_payout_eligible(self, user_id: int) -> bool:
        return False

    def create_transfer(
        self,
        destination_account: str,
        amount_units: int,
        metadata: Dict[str, Any],
        idempotency_key: str | None = None,
    ) -> str:
        raise PayoutTransferError(f"Payouts unavailable: {self.reason}")


def get_payment_capability(overrides: Optional[Dict[str, Any]] = None) -> PaymentCapability:
    if not payouts_enabled():
        return UnavailablePaymentCapability("payouts feature disabled")
    if not stripe_configured() and not (overrides or {}).get("api_key"):
        logger.warning("payments.capability.unavailable reason=stripe_not_configured")
        return UnavailablePaymentCapability("stripe not configured")
    currency = getattr(settings, "STRIPE_PAYOUT_CURRENCY", "usd")
    return StripePayoutCapability(client=get_stripe_client(overrides), currency=currency)
