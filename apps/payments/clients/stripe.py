from __future__ import annotations

import os
from typing import Any, Dict, Optional

import stripe
from django.conf import settings


class StripeClient:
    def __init__(
        self,
        api_key: str,
        webhook_secret: str | None = None,
        timeout_seconds: float | None = None,
        max_network_retries: int = 0,
    ) -> None:
        stripe.api_key = api_key
        stripe.max_network_retries = max_network_retries
        if timeout_seconds:
            stripe.default_http_client = stripe.RequestsClient(timeout=timeout_seconds)
        self.webhook_secret = webhook_secret

    def create_transfer(
        self,
        destination: str,
        amount_cents: int,
        currency: str,
        transfer_group: str = "",
        description: str = "",
        metadata: Optional[Dict[str, Any]] = None,
        idempotency_key: str | None = None,
    ) -> stripe.Transfer:
        params: Dict[str, Any] = {
            "amount": amount_cents,
            "currency": currency,
            "destination": destination,
            "metadata": metadata or {},
        }
        if transfer_group:
            params["transfer_group"] = transfer_group
        if description:
            params["description"] = description
        if idempotency_key:
            params["idempotency_key"] = idempotency_key
        return stripe.Transfer.create(**params)

    def retrieve_account(self, account_id: str) -> stripe.Account:
        return stripe.Account.retrieve(account_id)

    def construct_event(self, payload: bytes, signature: str) -> stripe.Event:
        if not self.webhook_secret:
            raise ValueError("Webhook secret not configured")
        return stripe.Webhook.construct_event(payload, signature, self.webhook_secret)


def get_stripe_client(overrides: Optional[Dict[str, Any]] = None) -> StripeClient:
    api_key = (overrides or {}).get("api_key") or os.getenv("STRIPE_API_KEY")
    if not api_key:
        raise RuntimeError("STRIPE_API_KEY is not set")
    webhook_secret = (overrides or {}).get("webhook_secret") or os.getenv("STRIPE_CONNECT_WEBHOOK_SECRET")
    return StripeClient(
        api_key=api_key,
        webhook_secret=webhook_secret,
        timeout_seconds=float(getattr(settings, "STRIPE_TIMEOUT_SECONDS", 20)),
        max_network_retries=int(getattr(settings, "STRIPE_MAX_NETWORK_RETRIES", 0)),
    )
