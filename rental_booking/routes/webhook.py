"""Payment provider webhook receiver route."""

from typing import Any

import structlog
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from rental_booking.config import PAYMENT_WEBHOOK_PASSWORD, PAYMENT_WEBHOOK_USERNAME
from rental_booking.dependencies import get_booking_manager
from rental_booking.errors import BookingError, NotFound
from rental_booking.routes._helpers import basic_auth_matches, http_error
from rental_booking.schemas.reservations import PaymentWebhookPayload
from rental_booking.services.booking import (
    PAYMENT_FAILED,
    PAYMENT_REFUNDED,
    PAYMENT_SUCCEEDED,
    BookingTransactionManager,
)

router = APIRouter()
logger = structlog.get_logger(__name__)

PAYMENT_EVENTS = (PAYMENT_SUCCEEDED, PAYMENT_FAILED, PAYMENT_REFUNDED)


def validate_basic_auth(auth_header: str | None) -> bool:
    """Validate HTTP Basic Auth credentials against the payment webhook credentials."""
    return basic_auth_matches(auth_header, PAYMENT_WEBHOOK_USERNAME, PAYMENT_WEBHOOK_PASSWORD)


@router.post("/webhooks/payments")
async def receive_payment_webhook(
    request: Request,
    manager: BookingTransactionManager = Depends(get_booking_manager),
) -> JSONResponse:
    """
    Handle asynchronous payment events.

    Supported events:
    - payment.succeeded: confirms the pending reservation
    - payment.failed: cancels the reservation
    - payment.refunded: cancels the reservation

    Expected payload:
        {"event": "payment.succeeded", "payment_reference": "pay_123"}

    Unknown events are acknowledged and ignored so the provider stops
    redelivering them.
    """
    auth_header = request.headers.get("Authorization")
    if not validate_basic_auth(auth_header):
        logger.warning("webhook_authentication_failed")
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"error": "Unauthorized"},
        )

    try:
        payload: Any = await request.json()
    except ValueError:
        logger.warning("webhook_invalid_json")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid JSON"},
        )
    if not isinstance(payload, dict):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Payload must be a JSON object"},
        )

    event_type = payload.get("event")
    payment_reference = payload.get("payment_reference")
    logger.info("webhook_received", event_type=event_type, payment_reference=payment_reference)

    if not event_type:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Missing event field"},
        )

    if event_type not in PAYMENT_EVENTS:
        logger.warning("webhook_unsupported_event_type", event_type=event_type)
        return JSONResponse(content={"status": "ignored"})

    try:
        body = PaymentWebhookPayload.model_validate(payload)
    except ValidationError as e:
        logger.warning("webhook_invalid_payload", event_type=event_type, error=str(e))
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid payment payload"},
        )
    payment_reference = body.payment_reference

    try:
        reservation = manager.apply_payment_signal(payment_reference, body.event)
    except NotFound as e:
        logger.warning("webhook_unknown_payment_reference", payment_reference=payment_reference)
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=e.to_detail())
    except BookingError as e:
        error = http_error(e)
        return JSONResponse(
            status_code=error.status_code, content=e.to_detail(), headers=error.headers
        )
    except Exception as e:
        logger.exception(
            "webhook_processing_failed",
            event_type=event_type,
            payment_reference=payment_reference,
            error=str(e),
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )

    if reservation is None:
        return JSONResponse(content={"status": "ignored"})
    return JSONResponse(
        content={
            "status": "applied",
            "reservation_id": reservation.id,
            "reservation_status": reservation.status.value,
        }
    )
