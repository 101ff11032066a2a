from __future__ import annotations

from django.core.exceptions import ValidationError
from django.db.models import Q
from rest_framework import permissions, status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.contributions.models import PointTransfer, UserContribution
from apps.contributions.serializers import (
    PointTransferCreateSerializer,
    PointTransferSerializer,
    UserContributionSerializer,
)
from apps.contributions.services.ledger import transfer_points
from apps.contributions.services.probability import get_win_probability
from apps.core.pagination import LedgerCursorPagination
from apps.core.responses import error_response


class ContributionView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request: Request) -> Response:
        contribution = UserContribution.objects.filter(user=request.user).first()
        if contribution is None:
            contribution = UserContribution(user=request.user, username=request.user.handle)
        return Response(UserContributionSerializer(contribution).data)


class WinProbabilityView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request: Request) -> Response:
        return Response({"user_id": request.user.id, "win_probability": get_win_probability(request.user)})


class PointTransferView(APIView):
    permission_classes = [permissions.IsAuthenticated]
    throttle_scope = "points_transfer"

    def get(self, request: Request) -> Response:
        qs = PointTransfer.objects.filter(Q(sender=request.user) | Q(recipient=request.user))
        paginator = LedgerCursorPagination()
        page = paginator.paginate_queryset(qs, request, view=self)
        return paginator.get_paginated_response(PointTransferSerializer(page, many=True).data)

    def post(self, request: Request) -> Response:
        serializer = PointTransferCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            transfer = transfer_points(
                sender=request.user,
                recipient_username=data["recipient_username"],
                category=data["point_type"],
                amount=data["amount"],
                memo=data.get("memo", ""),
            )
        except ValidationError as exc:
            return error_response(exc)
        return Response(PointTransferSerializer(transfer).data, status=status.HTTP_201_CREATED)
