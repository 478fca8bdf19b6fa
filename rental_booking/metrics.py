"""
Prometheus metrics for booking attempts, availability checks and owner rule changes.

Metrics are exposed via the /metrics endpoint for scraping by Prometheus.

Example:
    >>> from rental_booking.metrics import booking_attempts
    >>> booking_attempts.labels(outcome="committed").inc()
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram

# =============================================================================
# Booking Metrics
# =============================================================================

booking_attempts = Counter(
    "rental_booking_attempts_total",
    "Total proposeAndReserve calls by outcome",
    ["outcome"],
)
"""
Counter for booking attempts.

Labels:
    outcome: committed, or the error kind that rejected the attempt
        (invalid_range, illegal_check_in, date_conflict, not_found,
        timeout, unavailable)
"""

booking_races = Counter(
    "rental_booking_races_total",
    "Booking attempts rejected by the storage-level overlap constraint",
)
"""Counter for overlaps caught by the database after passing validation."""

lock_wait_seconds = Histogram(
    "rental_booking_lock_wait_seconds",
    "Time spent waiting for an item's booking critical section",
    buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, float("inf")),
)

booking_duration_seconds = Histogram(
    "rental_booking_duration_seconds",
    "Duration of the snapshot-validate-insert critical section",
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, float("inf")),
)

status_transitions = Counter(
    "rental_reservation_transitions_total",
    "Reservation status transitions applied",
    ["from_status", "to_status"],
)

# =============================================================================
# Availability Metrics
# =============================================================================

availability_checks = Counter(
    "rental_availability_checks_total",
    "Advisory availability checks by result",
    ["result"],
)
"""
Counter for advisory (quote) checks.

Labels:
    result: ok, or the error kind returned to the client
"""

rule_changes = Counter(
    "rental_rule_changes_total",
    "Owner changes to availability rules",
    ["change"],
)
"""
Counter for owner rule mutations.

Labels:
    change: weekdays_set, blackout_added, blackout_deleted
"""
