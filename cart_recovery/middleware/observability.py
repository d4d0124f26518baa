from __future__ import annotations

import time
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from cart_recovery.core.logging import get_logger
from cart_recovery.core.metrics import normalize_path, record_request_metrics

# Prometheus scrapes and health probes would drown the request metrics.
UNTRACKED_PATHS = frozenset({"/", "/metrics"})


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """Request latency metrics plus structured logs for 4xx/5xx responses."""

    def __init__(self, app, *, log_4xx: bool = True) -> None:
        super().__init__(app)
        self.logger = get_logger("cart_recovery.requests")
        self.log_4xx = log_4xx

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path in UNTRACKED_PATHS:
            return await call_next(request)

        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            duration = time.perf_counter() - start
            record_request_metrics(request, 500, duration)
            self.logger.error("Unhandled server error", extra=self._payload(request, 500, duration))
            raise

        duration = time.perf_counter() - start
        status_code = response.status_code
        record_request_metrics(request, status_code, duration)

        if status_code >= 500:
            self.logger.error("Server error response", extra=self._payload(request, status_code, duration))
        elif status_code >= 400 and self.log_4xx:
            self.logger.warning("Client error response", extra=self._payload(request, status_code, duration))

        return response

    @staticmethod
    def _payload(request: Request, status_code: int, duration: float) -> dict[str, Any]:
        client = request.client
        return {
            "method": request.method,
            "path": normalize_path(request),
            "status_code": status_code,
            "duration_ms": round(duration * 1000, 3),
            "client_ip": client.host if client else None,
            "request_id": request.headers.get("x-request-id"),
        }
