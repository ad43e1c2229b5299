"""Response helpers shared by the API views.

Every endpoint answers with a `success` flag so callers can branch on the
result without inspecting status codes.
"""

import logging

from django.db import DatabaseError
from rest_framework import exceptions, status
from rest_framework.views import exception_handler as drf_exception_handler
from rest_framework.response import Response

from .exceptions import (
    CheckoutFailed,
    ConflictError,
    EngineError,
    MergeFailure,
    NotFound,
    TransientStorageError,
    ValidationError,
)

logger = logging.getLogger("freshcart.api")

SESSION_HEADER = "X-Session-Id"

_STATUS_BY_ERROR = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFound, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (TransientStorageError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (MergeFailure, status.HTTP_502_BAD_GATEWAY),
    (CheckoutFailed, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def ok(data=None, *, code: int = status.HTTP_200_OK, message: str | None = None) -> Response:
    body = {"success": True, "data": data}
    if message:
        body["message"] = message
    return Response(body, status=code)


def error_response(exc: EngineError) -> Response:
    """Map a service error to a failure response."""

    code = status.HTTP_400_BAD_REQUEST
    for klass, http_status in _STATUS_BY_ERROR:
        if isinstance(exc, klass):
            code = http_status
            break
    return Response(
        {"success": False, "error": {"code": exc.code, "detail": exc.detail}},
        status=code,
    )


def session_key_from(request) -> str:
    """Return the browsing-context key sent by the client, or an empty string."""

    return (request.headers.get(SESSION_HEADER) or "").strip()


def api_exception_handler(exc, context):
    """DRF exception handler that wraps framework errors in the failure envelope.

    Service errors and storage outages that escape a view are answered the
    same way, so no endpoint falls through to an HTML error page.
    """

    if isinstance(exc, EngineError):
        return error_response(exc)
    if isinstance(exc, DatabaseError):
        view = context.get("view")
        logger.error(
            "api.storage_unavailable",
            extra={"event": "api.storage_unavailable", "view": type(view).__name__ if view else None, "error": str(exc)},
        )
        return error_response(TransientStorageError("Storage is unavailable, please retry"))

    response = drf_exception_handler(exc, context)
    if response is None:
        return None
    detail = response.data
    code = getattr(exc, "default_code", "error")
    if isinstance(exc, exceptions.ValidationError):
        code = "validation_error"
    response.data = {"success": False, "error": {"code": code, "detail": detail}}
    return response
