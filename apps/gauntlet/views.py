from __future__ import annotations

from django.core.exceptions import PermissionDenied, ValidationError
from rest_framework import permissions, status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.core.errors import StateConflict
from apps.core.responses import error_response
from apps.gauntlet.serializers import (
    ChallengeCreateSerializer,
    ChallengeJoinSerializer,
    ChallengeResolveSerializer,
    GauntletChallengeSerializer,
)
from apps.gauntlet.services import state_machine
from apps.gauntlet.services.state_machine import SettlementResult

SERVICE_ERRORS = (ValidationError, PermissionDenied, StateConflict)


def _result_response(result: SettlementResult) -> Response:
    return Response(
        {
            "applied": result.applied,
            "detail": result.message,
            "challenge": GauntletChallengeSerializer(result.challenge).data,
        }
    )


class ChallengeListCreateView(APIView):
    permission_classes = [permissions.IsAuthenticated]
    throttle_scope = "gauntlet_write"

    def get(self, request: Request) -> Response:
        challenges = state_machine.list_open_challenges()
        return Response({"challenges": GauntletChallengeSerializer(challenges, many=True).data})

    def post(self, request: Request) -> Response:
        serializer = ChallengeCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            challenge = state_machine.create(
                challenger=request.user,
                game_id=data["game_id"],
                wager=data["wager"],
                opponent_wager=data["opponent_wager"],
                team=data["team"],
                setup=data["setup"],
                category=data["category"],
                locked_settings=data.get("locked_settings"),
            )
        except SERVICE_ERRORS as exc:
            return error_response(exc)
        return Response(GauntletChallengeSerializer(challenge).data, status=status.HTTP_201_CREATED)


class ChallengeDetailView(APIView):
    """GET returns the challenge; POST joins it as the opponent."""

    permission_classes = [permissions.IsAuthenticated]
    throttle_scope = "gauntlet_write"

    def get(self, request: Request, challenge_id: int) -> Response:
        try:
            challenge = state_machine.get_challenge(challenge_id)
        except SERVICE_ERRORS as exc:
            return error_response(exc)
        return Response(GauntletChallengeSerializer(challenge).data)

    def post(self, request: Request, challenge_id: int) -> Response:
        serializer = ChallengeJoinSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            challenge = state_machine.join(challenge_id, request.user, setup=serializer.validated_data.get("setup"))
        except SERVICE_ERRORS as exc:
            return error_response(exc)
        return Response(GauntletChallengeSerializer(challenge).data)


class ChallengeStartView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request: Request, challenge_id: int) -> Response:
        try:
            result = state_machine.start(challenge_id, request.user)
        except SERVICE_ERRORS as exc:
            return error_response(exc)
        return _result_response(result)


class ChallengeResolveView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request: Request, challenge_id: int) -> Response:
        serializer = ChallengeResolveSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            result = state_machine.resolve(challenge_id, serializer.validated_data["winner"], caller=request.user)
        except SERVICE_ERRORS as exc:
            return error_response(exc)
        return _result_response(result)


class ChallengeCancelView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request: Request, challenge_id: int) -> Response:
        try:
            result = state_machine.cancel(challenge_id, request.user)
        except SERVICE_ERRORS as exc:
            return error_response(exc)
        return _result_response(result)


class ChallengeAbandonView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request: Request, challenge_id: int) -> Response:
        try:
            result = state_machine.report_abandonment(challenge_id, request.user)
        except SERVICE_ERRORS as exc:
            return error_response(exc)
        return _result_response(result)
