"""Telemetry middleware for request instrumentation."""

from __future__ import annotations

import time
from typing import Any, Iterable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response
from starlette.types import ASGIApp

from moodreel.telemetry import observe_request

DEFAULT_EXCLUDED_PATHS = frozenset({"/metrics"})


class TelemetryMiddleware(BaseHTTPMiddleware):
    """Collect request metrics for Prometheus, skipping the scrape endpoint itself."""

    def __init__(self, app: ASGIApp, excluded_paths: Iterable[str] = DEFAULT_EXCLUDED_PATHS) -> None:
        super().__init__(app)
        self._excluded_paths = frozenset(excluded_paths)

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        if request.url.path in self._excluded_paths:
            return await call_next(request)

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:  # pragma: no cover - defensive
            observe_request(request.method, self._resolve_route(request), 500, time.perf_counter() - start_time)
            raise

        # The route is only attached to the scope once routing has run.
        observe_request(
            request.method,
            self._resolve_route(request),
            response.status_code,
            time.perf_counter() - start_time,
        )
        return response

    @staticmethod
    def _resolve_route(request: Request) -> str:
        """Return the route template so generation ids do not explode label cardinality."""

        scope_route: Any = request.scope.get("route")
        path = getattr(scope_route, "path", None) if scope_route is not None else None
        return path or request.url.path
