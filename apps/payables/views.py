from __future__ import annotations

from django.core.exceptions import ValidationError
from rest_framework import permissions, status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.core.responses import error_response
from apps.payables.serializers import PayoutAmountSerializer, PayoutConfigSerializer, PayoutRecordSerializer
from apps.payables.services.config import get_payout_config, update_payout_config
from apps.payables.services.executor import (
    execute,
    get_stats,
    get_user_payout_history,
    list_unclaimed,
    retry_pending,
    simulate,
)


class SimulatePayoutView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request: Request) -> Response:
        serializer = PayoutAmountSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            results = simulate(serializer.validated_data["amount"])
        except ValidationError as exc:
            return error_response(exc)
        return Response({"amount": serializer.validated_data["amount"], "results": results})


class ExecutePayoutView(APIView):
    permission_classes = [permissions.IsAdminUser]
    throttle_scope = "payables_execute"

    def post(self, request: Request) -> Response:
        serializer = PayoutAmountSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            batch_id = execute(serializer.validated_data["amount"])
        except ValidationError as exc:
            return error_response(exc)
        return Response({"batch_id": str(batch_id)}, status=status.HTTP_201_CREATED)


class RetryPendingPayoutsView(APIView):
    permission_classes = [permissions.IsAdminUser]

    def post(self, request: Request) -> Response:
        return Response(retry_pending())


class UnclaimedPayoutsView(APIView):
    permission_classes = [permissions.IsAdminUser]

    def get(self, request: Request) -> Response:
        records = list_unclaimed()
        return Response({"count": len(records), "results": PayoutRecordSerializer(records, many=True).data})


class PayoutConfigView(APIView):
    def get_permissions(self):  # type: ignore[override]
        if self.request.method == "POST":
            return [permissions.IsAdminUser()]
        return [permissions.IsAuthenticated()]

    def get(self, request: Request) -> Response:
        return Response(PayoutConfigSerializer(get_payout_config()).data)

    def post(self, request: Request) -> Response:
        serializer = PayoutConfigSerializer(get_payout_config(), data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        try:
            config = update_payout_config(**serializer.validated_data)
        except ValidationError as exc:
            return error_response(exc)
        return Response(PayoutConfigSerializer(config).data)


class PayoutStatsView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request: Request) -> Response:
        stats = get_stats()
        stats["recent_payouts"] = [{**row, "batch_id": str(row["batch_id"])} for row in stats["recent_payouts"]]
        return Response(stats)


class UserPayoutHistoryView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request: Request) -> Response:
        history = get_user_payout_history(request.user)
        return Response(
            {
                "total_won": history["total_won"],
                "payouts": PayoutRecordSerializer(history["payouts"], many=True).data,
            }
        )
