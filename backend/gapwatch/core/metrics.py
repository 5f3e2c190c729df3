from __future__ import annotations

from prometheus_client import Counter, Histogram

SESSION_STORE_EVENTS = Counter(
    "gapwatch_session_store_events_total",
    "Session store operations recorded by GapWatch.",
    labelnames=("operation", "event"),
)
UPSTREAM_REQUESTS = Counter(
    "gapwatch_upstream_requests_total",
    "Outbound Open Bus API requests.",
    labelnames=("endpoint", "result"),
)
UPSTREAM_REQUEST_LATENCY = Histogram(
    "gapwatch_upstream_request_seconds",
    "Latency of outbound Open Bus API requests.",
    labelnames=("endpoint",),
)
STALE_RESPONSES = Counter(
    "gapwatch_stale_responses_total",
    "Upstream responses discarded because a newer request superseded them.",
    labelnames=("purpose",),
)
PAGE_VIEWS = Counter(
    "gapwatch_page_views_total",
    "Dashboard page views.",
    labelnames=("page",),
)


def record_session_store_event(operation: str, event: str) -> None:
    """Increment a session store event counter."""
    SESSION_STORE_EVENTS.labels(operation=operation, event=event).inc()


def observe_upstream_request(
    endpoint: str, result: str, duration_seconds: float
) -> None:
    """Record upstream request result and latency."""
    UPSTREAM_REQUESTS.labels(endpoint=endpoint, result=result).inc()
    UPSTREAM_REQUEST_LATENCY.labels(endpoint=endpoint).observe(duration_seconds)


def record_stale_response(purpose: str) -> None:
    """Count a discarded out-of-date response."""
    STALE_RESPONSES.labels(purpose=purpose).inc()


def record_page_view(page: str) -> None:
    """Count a dashboard page view."""
    PAGE_VIEWS.labels(page=page).inc()
