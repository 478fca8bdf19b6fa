"""
Internal helpers shared by route handlers.

Maps engine errors to HTTP responses. The structured ``detail`` keeps the
error ``kind`` so clients can branch on it: a 409 ``date_conflict`` carries
the conflicting ranges and suggested checkout, while a 503 ``unavailable``
or ``timeout`` must be shown as "try again", never as "dates taken".
"""

from __future__ import annotations

import base64
import binascii
from datetime import date
from typing import Optional

import structlog
from fastapi import HTTPException, status

from rental_booking.errors import (
    BookingError,
    DateConflict,
    DuplicatePaymentReference,
    IllegalCheckIn,
    InvalidDateFormat,
    InvalidRange,
    InvalidTransition,
    NotFound,
    Unauthorized,
    Unavailable,
)
from rental_booking.utils.calendar import parse_iso

logger = structlog.get_logger(__name__)

_STATUS_BY_ERROR: list[tuple[type[BookingError], int]] = [
    (InvalidDateFormat, status.HTTP_400_BAD_REQUEST),
    (InvalidRange, status.HTTP_400_BAD_REQUEST),
    (IllegalCheckIn, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (DateConflict, status.HTTP_409_CONFLICT),
    (DuplicatePaymentReference, status.HTTP_409_CONFLICT),
    (InvalidTransition, status.HTTP_409_CONFLICT),
    (Unauthorized, status.HTTP_403_FORBIDDEN),
    (NotFound, status.HTTP_404_NOT_FOUND),
    (Unavailable, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def http_error(error: BookingError) -> HTTPException:
    """
    Build the HTTPException for an engine error.

    Args:
        error: Any BookingError subclass

    Returns:
        HTTPException: Status code chosen by error type, detail from ``to_detail()``
    """
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            status_code = code
            break

    headers = {"Retry-After": "1"} if error.retryable else None
    return HTTPException(status_code=status_code, detail=error.to_detail(), headers=headers)


def bad_request(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={"kind": "bad_request", "message": message},
    )


def parse_date_param(value: Optional[str], name: str) -> date:
    """
    Parse a required ``YYYY-MM-DD`` query parameter.

    Raises:
        HTTPException: 400 if missing or malformed
    """
    if value is None:
        raise bad_request(f"Query parameter '{name}' is required")
    try:
        return parse_iso(value)
    except InvalidDateFormat as e:
        raise http_error(e)


def basic_auth_matches(
    auth_header: Optional[str], username: Optional[str], password: Optional[str]
) -> bool:
    """
    Check an HTTP Basic Authorization header against configured credentials.

    Always False when no credentials are configured.

    Args:
        auth_header: Authorization header value (e.g., "Basic dXNlcjpwYXNz")
        username: Expected username
        password: Expected password

    Returns:
        bool: True if credentials match, False otherwise
    """
    if not username or not password:
        return False
    if not auth_header or not auth_header.startswith("Basic "):
        return False

    try:
        encoded_credentials = auth_header[len("Basic ") :]
        decoded_credentials = base64.b64decode(encoded_credentials, validate=True).decode("utf-8")
        given_username, given_password = decoded_credentials.split(":", 1)
    except (binascii.Error, UnicodeDecodeError, ValueError):
        logger.warning("basic_auth_header_malformed")
        return False

    return given_username == username and given_password == password
