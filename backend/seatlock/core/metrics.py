"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Seat lock metrics
lock_acquisitions = Counter(
    'seat_lock_acquisitions_total',
    'Seat lock acquisition attempts',
    ['item_type', 'result']  # acquired, capacity_exceeded, unavailable, transient
)

lock_acquisition_latency = Histogram(
    'seat_lock_acquisition_latency_seconds',
    'Seat lock acquisition latency (transaction included)',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)

lock_releases = Counter(
    'seat_lock_releases_total',
    'Seat lock release requests',
    ['result']  # released, noop
)

locks_purged = Counter(
    'seat_locks_purged_total',
    'Stale seat lock rows deleted by cleanup'
)

# Booking workflow metrics
booking_transitions = Counter(
    'booking_transitions_total',
    'Booking status transitions',
    ['status']  # PENDING, CONFIRMED, CANCELLED, COMPLETED
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)

redis_connection_errors = Counter(
    'redis_connection_errors_total',
    'Redis connection errors'
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_lock_acquisition(item_type: str, result: str):
    """Record acquisition outcome. Result: acquired, capacity_exceeded, unavailable, transient"""
    lock_acquisitions.labels(item_type=item_type, result=result).inc()

def record_lock_release(released: bool):
    lock_releases.labels(result="released" if released else "noop").inc()

def record_booking_transition(status: str):
    booking_transitions.labels(status=status).inc()

def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
