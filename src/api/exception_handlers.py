"""Exception handlers for the API."""

import typing as t

import structlog
from django.conf import settings
from django.core.exceptions import ValidationError
from django.http import HttpRequest
from ninja.responses import Response

from common.exceptions import ServiceError
from common.results import GENERIC_ERROR_MESSAGE, Failure
from common.schema import failure_response

logger = structlog.get_logger(__name__)


def handle_general_exception(request: HttpRequest, exc: Exception | t.Type[Exception]) -> Response:
    """Handle a general exception.

    Args:
        request: The incoming HTTP request.
        exc: The exception.

    Returns:
        The response.
    """
    logger.exception("internal_server_error", method=request.method, path=request.path)
    data: dict[str, t.Any] = {"success": False, "error": GENERIC_ERROR_MESSAGE, "code": "internal"}
    if settings.DEBUG:  # pragma: no cover
        data["detail"] = repr(exc)
    return Response(data, status=500)


def handle_service_error(request: HttpRequest, exc: ServiceError | t.Type[ServiceError]) -> Response:
    """Handle a service error raised outside a result boundary, e.g. while resolving the acting organizer."""
    assert isinstance(exc, ServiceError)
    status, body = failure_response(Failure(exc.message, exc.code))
    return Response(body.model_dump(), status=status)


def handle_django_validation_error(request: HttpRequest, exc: ValidationError | t.Type[ValidationError]) -> Response:
    """Handle a validation error.

    Args:
        request: The incoming HTTP request.
        exc: The exception.
    """
    assert isinstance(exc, ValidationError)
    logger.warning("validation_error", path=request.path, error=str(exc))
    return Response({"success": False, "error": " ".join(exc.messages), "code": "validation"}, status=400)
