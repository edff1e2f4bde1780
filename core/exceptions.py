from rest_framework.views import exception_handler as drf_exception_handler
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework import status
import logging

logger = logging.getLogger("teamup.core")


class DomainError(APIException):
    """
    Base class for business-rule rejections.

    Every subclass carries a stable ``default_code`` which is surfaced to
    clients next to the message, so two errors sharing an HTTP status can
    still be told apart.
    """
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "invalid_argument"
    default_detail = "Invalid request."


class InvalidArgument(DomainError):
    """Malformed input. Not retryable without changing the request."""


class NotFound(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "not_found"
    default_detail = "Not found."


class Forbidden(DomainError):
    status_code = status.HTTP_403_FORBIDDEN
    default_code = "forbidden"
    default_detail = "You do not have permission to perform this action."


class Conflict(DomainError):
    """The operation would break a membership invariant in the current state."""
    default_code = "conflict"
    default_detail = "The request conflicts with the current state."


def custom_exception_handler(exc, context):
    """
    Wrap DRF + Django exceptions into a consistent response format.

    Success responses (2xx) are not touched.
    Only errors come through here.
    """
    response = drf_exception_handler(exc, context)

    if response is not None:
        if isinstance(exc, DomainError):
            errors = {"code": exc.detail.code, "detail": str(exc.detail)}
        else:
            errors = response.data
        return Response(
            {
                "success": False,
                "status_code": response.status_code,
                "errors": errors,
            },
            status=response.status_code,
            headers=_passthrough_headers(response),
        )

    # Unhandled exceptions -> 500
    logger.exception("Unhandled API exception", exc_info=exc)

    return Response(
        {
            "success": False,
            "status_code": status.HTTP_500_INTERNAL_SERVER_ERROR,
            "errors": {"detail": "Internal server error."},
        },
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def _passthrough_headers(response):
    # WWW-Authenticate / Retry-After set by DRF must survive the re-wrap
    return {
        key: response[key]
        for key in ("WWW-Authenticate", "Retry-After")
        if response.has_header(key)
    }
