# core/responses.py
from rest_framework import status
from rest_framework.response import Response
from django.core.exceptions import ValidationError
import logging

from .exceptions import (
    MarketplaceError,
    NotFoundError,
    AccessDeniedError,
    InvalidTransitionError,
    SlotConflictError,
    InsufficientNoticeError,
    InsufficientCreditsError,
    UpstreamUnavailableError,
)

logger = logging.getLogger(__name__)


ERROR_STATUS = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (AccessDeniedError, status.HTTP_403_FORBIDDEN),
    (InvalidTransitionError, status.HTTP_400_BAD_REQUEST),
    (SlotConflictError, status.HTTP_409_CONFLICT),
    (InsufficientNoticeError, status.HTTP_409_CONFLICT),
    (InsufficientCreditsError, status.HTTP_402_PAYMENT_REQUIRED),
    (UpstreamUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def validation_error_response(exc: ValidationError) -> Response:
    if hasattr(exc, 'message_dict'):
        details = exc.message_dict
    else:
        details = {'non_field_errors': exc.messages}
    return Response({
        'error': 'validation_error',
        'details': details,
    }, status=status.HTTP_400_BAD_REQUEST)


def domain_error_response(exc: Exception) -> Response:
    """Response for a service-layer exception"""
    if isinstance(exc, ValidationError):
        return validation_error_response(exc)

    for error_class, http_status in ERROR_STATUS:
        if isinstance(exc, error_class):
            return Response({
                'error': str(exc),
                'code': error_class.__name__,
            }, status=http_status)

    if isinstance(exc, MarketplaceError):
        logger.error(f"Unmapped domain error: {type(exc).__name__}: {str(exc)}")
        return Response({'error': str(exc)}, status=status.HTTP_400_BAD_REQUEST)

    raise exc


HANDLED_ERRORS = (MarketplaceError, ValidationError)
