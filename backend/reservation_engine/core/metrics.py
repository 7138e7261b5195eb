"""
Prometheus metrics for the reservation engine.
Exposed at /metrics.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Seat holds
hold_attempts = Counter(
    'seat_hold_attempts_total',
    'Seat hold creation attempts',
    ['result']  # created, conflict, error
)

hold_validations = Counter(
    'seat_hold_validations_total',
    'Seat hold validation results',
    ['result']  # valid, expired, invalid
)

holds_swept = Counter(
    'seat_holds_swept_total',
    'Stale holds transitioned to expired by the maintenance sweep'
)

# Bookings
booking_transitions = Counter(
    'booking_transitions_total',
    'Booking status transitions',
    ['to_status']
)

booking_version_conflicts = Counter(
    'booking_version_conflicts_total',
    'Compare-and-swap booking updates that affected zero rows'
)

# Payments
payment_events = Counter(
    'payment_events_total',
    'Payment gateway webhook events',
    ['event_type', 'outcome']
)

reconciliation_escalations = Counter(
    'reconciliation_escalations_total',
    'Paid checkouts that could not be seated and need manual review'
)

payment_event_latency = Histogram(
    'payment_event_latency_seconds',
    'Payment event handling latency',
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)

# Availability cache
cache_operations = Counter(
    'availability_cache_operations_total',
    'Availability cache operations',
    ['operation', 'result']  # get/hit|miss, invalidate/ok
)

# Notifications
notification_failures = Counter(
    'notification_failures_total',
    'Booking notifications that failed to send'
)


def metrics_endpoint() -> Response:
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_hold_attempt(result: str):
    """Result: created, conflict, error"""
    hold_attempts.labels(result=result).inc()


def record_hold_validation(result: str):
    hold_validations.labels(result=result).inc()


def record_transition(to_status: str):
    booking_transitions.labels(to_status=to_status).inc()


def record_payment_event(event_type: str, outcome: str):
    payment_events.labels(event_type=event_type, outcome=outcome).inc()


def record_cache_operation(operation: str, hit: bool):
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
