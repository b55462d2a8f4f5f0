"""DRF exception handler that maps booking domain errors to HTTP responses."""

from __future__ import annotations

import logging

from django.conf import settings  # type: ignore
from rest_framework import status  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import exception_handler  # type: ignore

from shared.domain.exceptions import DomainError
from apps.bookings.domain.exceptions import (
    BookingNotFound,
    InvalidInterval,
    InvalidTransition,
    ResourceNotBookable,
    ResourceNotFound,
    SlotUnavailable,
    StaleConflict,
    StoreUnavailable,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR = (
    (InvalidInterval, status.HTTP_400_BAD_REQUEST),
    (BookingNotFound, status.HTTP_404_NOT_FOUND),
    (ResourceNotFound, status.HTTP_404_NOT_FOUND),
    (SlotUnavailable, status.HTTP_409_CONFLICT),
    (StaleConflict, status.HTTP_409_CONFLICT),
    (InvalidTransition, status.HTTP_409_CONFLICT),
    (ResourceNotBookable, status.HTTP_409_CONFLICT),
    (StoreUnavailable, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def status_for(exc: DomainError) -> int:
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_400_BAD_REQUEST


def booking_exception_handler(exc, context):  # type: ignore
    if not isinstance(exc, DomainError):
        return exception_handler(exc, context)

    status_code = status_for(exc)
    payload = {
        "detail": exc.message,
        "code": exc.__class__.__name__,
    }
    if exc.context:
        payload["context"] = exc.context

    response = Response(payload, status=status_code)
    if exc.retryable:
        response["Retry-After"] = str(getattr(settings, "BOOKING_RETRY_AFTER_SECONDS", 1))
        logger.warning(f"Retryable booking failure: {exc.message}")
    return response
