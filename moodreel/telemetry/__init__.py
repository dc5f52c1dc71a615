"""Telemetry helpers and metrics."""

from .metrics import (
    ERROR_COUNTER,
    GENERATION_JOBS,
    RELAY_REQUESTS,
    REQUEST_COUNT,
    REQUEST_LATENCY,
    observe_request,
    record_generation,
    record_relay,
)

__all__ = [
    "ERROR_COUNTER",
    "GENERATION_JOBS",
    "RELAY_REQUESTS",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "observe_request",
    "record_generation",
    "record_relay",
]
