"""Prometheus metrics definitions and helpers."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests processed",
    ("method", "route", "status"),
)

REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ("method", "route"),
    buckets=(
        0.005,
        0.01,
        0.025,
        0.05,
        0.1,
        0.25,
        0.5,
        1.0,
        2.5,
        5.0,
        10.0,
        30.0,
        60.0,
        120.0,
    ),
)

ERROR_COUNTER = Counter(
    "app_internal_errors_total",
    "Number of requests ending in internal server error responses",
    ("method", "route"),
)

GENERATION_JOBS = Counter(
    "generation_jobs_total",
    "Generation jobs that reached a final outcome, by kind and outcome",
    ("kind", "outcome"),
)

RELAY_REQUESTS = Counter(
    "relay_upstream_requests_total",
    "Requests forwarded by the generation relay, by upstream status",
    ("method", "status"),
)


def observe_request(
    method: str,
    route: str,
    status_code: int,
    duration_seconds: float,
) -> None:
    """Record metrics for a completed HTTP request."""

    safe_route = route or "unknown"
    safe_method = method or "UNKNOWN"
    status_label = str(status_code)
    observed_duration = duration_seconds if duration_seconds >= 0 else 0

    REQUEST_COUNT.labels(
        method=safe_method,
        route=safe_route,
        status=status_label,
    ).inc()
    REQUEST_LATENCY.labels(
        method=safe_method,
        route=safe_route,
    ).observe(observed_duration)

    if status_code >= 500:
        ERROR_COUNTER.labels(
            method=safe_method,
            route=safe_route,
        ).inc()


def record_generation(kind: str, outcome: str) -> None:
    """Count one image/video job outcome (completed, failed, timeout, error)."""

    GENERATION_JOBS.labels(kind=kind or "unknown", outcome=outcome or "unknown").inc()


def record_relay(method: str, status_code: int) -> None:
    RELAY_REQUESTS.labels(method=method or "UNKNOWN", status=str(status_code)).inc()
