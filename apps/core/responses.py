from __future__ import annotations

from django.core.exceptions import PermissionDenied, ValidationError
from rest_framework import status
from rest_framework.response import Response

from apps.core.errors import StateConflict, error_payload

NOT_FOUND_CODES = {"recipient_not_found", "not_found"}


def error_response(exc: Exception) -> Response:
    """Translate a service-layer error into the API's {"detail", "code"} body."""
    payload = error_payload(exc)
    if isinstance(exc, StateConflict):
        if exc.current_status:
            payload["status"] = exc.current_status
        return Response(payload, status=status.HTTP_409_CONFLICT)
    if isinstance(exc, PermissionDenied):
        if payload["code"] == "error":
            payload["code"] = "forbidden"
        return Response(payload, status=status.HTTP_403_FORBIDDEN)
    if isinstance(exc, ValidationError):
        if payload["code"] == "error":
            payload["detail"] = "; ".join(exc.messages)
            payload["code"] = getattr(exc, "code", None) or "invalid"
        if payload["code"] in NOT_FOUND_CODES:
            return Response(payload, status=status.HTTP_404_NOT_FOUND)
        return Response(payload, status=status.HTTP_400_BAD_REQUEST)
    raise exc
