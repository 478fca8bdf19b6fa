"""Prometheus scrape endpoint for booking and availability metrics."""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest

router = APIRouter()


@router.get("/metrics", response_class=Response)
def metrics() -> Response:
    """
    Expose the default registry in Prometheus text format.

    Includes rental_booking_attempts_total, rental_booking_lock_wait_seconds,
    rental_reservation_transitions_total and the availability counters
    defined in rental_booking.metrics.
    """
    return Response(content=generate_latest(REGISTRY), media_type=CONTENT_TYPE_LATEST)
