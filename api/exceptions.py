"""
Maps application exceptions to API responses.
"""
import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from core.exceptions import (
    BaseApplicationException, NotFoundError, ValidationError, InvalidStateError,
    PermissionDeniedError, DuplicateOperationError, ExternalDependencyError,
)

logger = logging.getLogger(__name__)

STATUS_BY_EXCEPTION = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (InvalidStateError, status.HTTP_400_BAD_REQUEST),
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN),
    (DuplicateOperationError, status.HTTP_200_OK),
    (ExternalDependencyError, status.HTTP_502_BAD_GATEWAY),
]


def application_exception_handler(exc, context):
    """
    DRF exception handler.
    Idempotency hits answer 200 with duplicate=true so retries look like success.
    """
    if not isinstance(exc, BaseApplicationException):
        return exception_handler(exc, context)

    status_code = status.HTTP_400_BAD_REQUEST
    for exc_class, code in STATUS_BY_EXCEPTION:
        if isinstance(exc, exc_class):
            status_code = code
            break

    body = {'detail': exc.message}
    if exc.code:
        body['code'] = exc.code
    if exc.details:
        body['details'] = exc.details
    if isinstance(exc, DuplicateOperationError):
        body['duplicate'] = True

    if status_code >= 500:
        logger.error(f"{type(exc).__name__}: {exc.message}", extra={'details': exc.details})
    else:
        logger.info(f"{type(exc).__name__}: {exc.message}")

    return Response(body, status=status_code)
