"""Prometheus metrics definitions."""

from prometheus_client import Counter, Gauge, Histogram, generate_latest, CONTENT_TYPE_LATEST

http_request_duration = Histogram(
    "http_request_duration_seconds",
    "Duration of HTTP requests in seconds",
    labelnames=["method", "endpoint", "status_code"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

http_requests_total = Counter(
    "http_requests_total",
    "Total number of HTTP requests",
    labelnames=["method", "endpoint", "status_code"],
)

sessions_started = Counter(
    "diagnostic_sessions_started_total",
    "Diagnostic sessions started",
    labelnames=["service_category"],
)

answers_recorded = Counter(
    "diagnostic_answers_total",
    "Answers accepted by the engine",
)

outcomes = Counter(
    "diagnostic_outcomes_total",
    "Resolved diagnostic outcomes",
    labelnames=["kind", "urgency"],
)

cycles_detected = Counter(
    "diagnostic_cycles_detected_total",
    "Traversals ended because a branch pointed back to a visited question",
)

diagnostic_errors = Counter(
    "diagnostic_errors_total",
    "Errors raised while evaluating flows",
    labelnames=["error_type"],
)

active_sessions = Gauge(
    "diagnostic_active_sessions",
    "Sessions currently held in memory",
)


def get_metrics() -> tuple[bytes, str]:
    return generate_latest(), CONTENT_TYPE_LATEST
