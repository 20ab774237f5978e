"""Prometheus metrics for the API and background workers."""

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest

REQUEST_COUNT = Counter(
    "replyo_http_requests_total",
    "Total HTTP requests",
    ["method", "route", "status_code"],
)
REQUEST_LATENCY = Histogram(
    "replyo_http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "route"],
    buckets=[0.1, 0.3, 0.5, 0.7, 1, 3, 5, 7, 10],
)
CONVERSATIONS_TOTAL = Counter("replyo_conversations_total", "Conversations started", ["industry"])
MESSAGES_TOTAL = Counter("replyo_messages_processed_total", "Inbound messages processed", ["industry", "state"])
QUALIFIED_LEADS_TOTAL = Counter("replyo_qualified_leads_total", "Leads that shared the service they need", ["industry"])
BOOKINGS_TOTAL = Counter("replyo_booking_attempts_total", "Conversations that reached a booking state", ["industry"])
FOLLOW_UPS_TOTAL = Counter("replyo_follow_ups_sent_total", "Follow-up messages sent", ["industry"])
JOBS_TOTAL = Counter("replyo_jobs_processed_total", "Background jobs processed", ["job_type", "status"])
QUEUE_LENGTH = Gauge("replyo_job_queue_length", "Pending background jobs", ["job_type"])


def record_request(method: str, route: str, status_code: int, elapsed: float) -> None:
    REQUEST_COUNT.labels(method, route, str(status_code)).inc()
    REQUEST_LATENCY.labels(method, route).observe(elapsed)


def record_conversation_result(industry: str, state: str, *, created: bool, qualified: bool, booked: bool) -> None:
    MESSAGES_TOTAL.labels(industry, state).inc()
    if created:
        CONVERSATIONS_TOTAL.labels(industry).inc()
    if qualified:
        QUALIFIED_LEADS_TOTAL.labels(industry).inc()
    if booked:
        BOOKINGS_TOTAL.labels(industry).inc()


def set_queue_lengths(lengths: dict[str, int]) -> None:
    for job_type, count in lengths.items():
        QUEUE_LENGTH.labels(job_type).set(count)


def render_latest() -> tuple[bytes, str]:
    return generate_latest(), CONTENT_TYPE_LATEST
