from __future__ import annotations

import logging

from django.utils import timezone
from django.utils.decorators import method_decorator
from django.views.decorators.csrf import csrf_exempt
from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.payments.clients import get_stripe_client
from apps.payments.models import PayoutAccount

from .feature_flag import payouts_enabled

logger = logging.getLogger(__name__)


def sync_account_from_stripe(account: dict) -> int:
    """Mirror a Connect account's payout capability onto PayoutAccount rows."""
    account_id = account.get("id")
    if not account_id:
        return 0
    return PayoutAccount.objects.filter(stripe_account_id=account_id).update(
        payouts_enabled=bool(account.get("payouts_enabled")),
        details_submitted=bool(account.get("details_submitted")),
        last_synced_at=timezone.now(),
        updated_at=timezone.now(),
    )


@method_decorator(csrf_exempt, name="dispatch")
class StripeConnectWebhookView(APIView):
    authentication_classes: list = []
    permission_classes: list = []

    def post(self, request: Request) -> Response:
        if not payouts_enabled():
            return Response(status=status.HTTP_403_FORBIDDEN)
        signature = request.META.get("HTTP_STRIPE_SIGNATURE")
        if not signature:
            return Response(status=status.HTTP_400_BAD_REQUEST)
        client = get_stripe_client()
        try:
            event = client.construct_event(request.body, signature)
        except Exception as exc:
            logger.warning("stripe_connect.rejected reason=invalid_signature detail=%s", exc)
            return Response(status=status.HTTP_400_BAD_REQUEST)

        event_type = event.get("type")
        data = event.get("data", {}).get("object", {})
        if event_type == "account.updated":
            updated = sync_account_from_stripe(data)
            logger.info(
                "stripe_connect.account_updated account=%s payouts_enabled=%s rows=%s",
                data.get("id"),
                data.get("payouts_enabled"),
                updated,
            )
        return Response({"received": True})
