"""Domain error taxonomy and the DRF exception handler.

Services raise subclasses of ``DomainError``; each carries the HTTP status
and a stable machine-readable ``code``.  ``api_exception_handler`` is the
single place where they are rendered, so views never translate exceptions
by hand and every error body has the same shape::

    {"success": false, "message": "...", "error": "<code>"}
"""

from __future__ import annotations

from typing import Any, Optional

import pydantic
import structlog
from django.conf import settings
from rest_framework import exceptions as drf_exceptions
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = structlog.get_logger(__name__)


class DomainError(Exception):
    """Base class for business-rule violations."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "domain_error"
    default_message: str = "Request could not be processed."

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidData(DomainError):
    """Malformed or missing input detected before any mutation."""

    code = "validation_error"
    default_message = "Invalid input data."


class AccessDenied(DomainError):
    """The actor's role does not allow the operation on this resource."""

    status_code = status.HTTP_403_FORBIDDEN
    code = "access_denied"
    default_message = "Access denied."


class NotFound(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    default_message = "Resource not found."


class Conflict(DomainError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"
    default_message = "Request conflicts with the current state."


class UpstreamFailure(DomainError):
    """An external service (payment gateway, message transport) failed."""

    status_code = status.HTTP_502_BAD_GATEWAY
    code = "upstream_failure"
    default_message = "Upstream service failed."


def error_body(message: str, code: str, **extra: Any) -> dict:
    body = {"success": False, "message": message, "error": code}
    body.update(extra)
    return body


def api_exception_handler(exc: Exception, context: dict) -> Optional[Response]:
    """DRF ``EXCEPTION_HANDLER`` producing the standard error body."""
    view = context.get("view")
    view_name = type(view).__name__ if view is not None else None

    if isinstance(exc, DomainError):
        logger.info(
            "api.domain_error",
            error=exc.code,
            status_code=exc.status_code,
            message=exc.message,
            view=view_name,
        )
        return Response(error_body(exc.message, exc.code), status=exc.status_code)

    if isinstance(exc, drf_exceptions.ValidationError):
        return Response(
            error_body("Invalid input data.", "validation_error", details=exc.detail),
            status=status.HTTP_400_BAD_REQUEST,
        )

    if isinstance(exc, pydantic.ValidationError):
        details = [
            {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
            for error in exc.errors()
        ]
        return Response(
            error_body("Invalid input data.", "validation_error", details=details),
            status=status.HTTP_400_BAD_REQUEST,
        )

    response = drf_exception_handler(exc, context)
    if response is not None:
        detail = response.data.get("detail") if isinstance(response.data, dict) else None
        code = _code_for_status(response.status_code, getattr(detail, "code", None))
        response.data = error_body(str(detail or "Request failed."), code)
        return response

    logger.exception("api.unhandled_error", view=view_name)
    message = str(exc) if settings.DEBUG else "Internal server error"
    return Response(
        error_body("Something went wrong", "server_error", detail=message),
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def _code_for_status(status_code: int, fallback: Optional[str] = None) -> str:
    return {
        status.HTTP_401_UNAUTHORIZED: "not_authenticated",
        status.HTTP_403_FORBIDDEN: "access_denied",
        status.HTTP_404_NOT_FOUND: "not_found",
        status.HTTP_405_METHOD_NOT_ALLOWED: "method_not_allowed",
        status.HTTP_429_TOO_MANY_REQUESTS: "throttled",
    }.get(status_code, fallback or "http_error")
