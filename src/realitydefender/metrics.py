"""
Prometheus metrics for SDK traffic and polling.
"""

from prometheus_client import Counter, Histogram

# Request metrics
REQUESTS_TOTAL = Counter(
    "realitydefender_requests_total",
    "Total number of API requests",
    ["method", "status"],
)

REQUEST_DURATION = Histogram(
    "realitydefender_request_duration_seconds",
    "API request duration in seconds",
    ["method"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
)

# Polling metrics
POLL_ATTEMPTS_TOTAL = Counter(
    "realitydefender_poll_attempts_total",
    "Total number of status fetches made while polling",
    ["mode"],
)

POLL_OUTCOMES_TOTAL = Counter(
    "realitydefender_poll_outcomes_total",
    "Terminal outcomes of polling operations",
    ["mode", "state"],
)

# Upload metrics
UPLOADS_TOTAL = Counter(
    "realitydefender_uploads_total",
    "Total uploads submitted for analysis",
    ["kind", "status"],
)


def record_request(method: str, status: str, duration: float, *, enabled: bool) -> None:
    """Record one HTTP round trip unless the owning client disabled metrics."""
    if not enabled:
        return
    REQUESTS_TOTAL.labels(method=method, status=status).inc()
    REQUEST_DURATION.labels(method=method).observe(duration)


def record_poll_attempt(mode: str, *, enabled: bool) -> None:
    if enabled:
        POLL_ATTEMPTS_TOTAL.labels(mode=mode).inc()


def record_poll_outcome(mode: str, state: str, *, enabled: bool) -> None:
    if enabled:
        POLL_OUTCOMES_TOTAL.labels(mode=mode, state=state).inc()


def record_upload(kind: str, status: str, *, enabled: bool) -> None:
    if enabled:
        UPLOADS_TOTAL.labels(kind=kind, status=status).inc()
