from __future__ import annotations

from typing import Any

from prometheus_client import Counter, Histogram, generate_latest
from prometheus_client.exposition import CONTENT_TYPE_LATEST

from cart_recovery.core.config import settings


class _NoOpMetric:
    def labels(self, *args: Any, **kwargs: Any) -> "_NoOpMetric":
        return self

    def observe(self, *_: Any, **__: Any) -> None:
        return None

    def inc(self, *_: Any, **__: Any) -> None:
        return None


def _metric_or_noop(metric_factory: Any) -> Any:
    if not settings.METRICS_ENABLED:
        return _NoOpMetric()
    return metric_factory()


REQUEST_LATENCY = _metric_or_noop(
    lambda: Histogram(
        f"{settings.METRICS_NAMESPACE}_http_request_duration_seconds",
        "HTTP request latency in seconds.",
        ["method", "path", "status_code"],
        buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
    )
)

REQUEST_COUNT = _metric_or_noop(
    lambda: Counter(
        f"{settings.METRICS_NAMESPACE}_http_requests_total",
        "Total HTTP requests processed.",
        ["method", "path", "status_code"],
    )
)

REQUEST_ERRORS = _metric_or_noop(
    lambda: Counter(
        f"{settings.METRICS_NAMESPACE}_http_errors_total",
        "Total HTTP requests resulting in 4xx/5xx.",
        ["method", "path", "status_code"],
    )
)

CARTS_TRACKED = _metric_or_noop(
    lambda: Counter(
        f"{settings.METRICS_NAMESPACE}_carts_tracked_total",
        "Abandonment tracking calls partitioned by action.",
        ["action"],
    )
)

CARTS_RESOLVED = _metric_or_noop(
    lambda: Counter(
        f"{settings.METRICS_NAMESPACE}_carts_resolved_total",
        "Abandoned carts moved out of the abandoned state.",
        ["status"],
    )
)

REMINDERS_DISPATCHED = _metric_or_noop(
    lambda: Counter(
        f"{settings.METRICS_NAMESPACE}_reminders_dispatched_total",
        "Reminder send attempts partitioned by type and outcome.",
        ["reminder_type", "outcome"],
    )
)

DISPATCH_DURATION = _metric_or_noop(
    lambda: Histogram(
        f"{settings.METRICS_NAMESPACE}_dispatch_duration_seconds",
        "Duration of a full reminder dispatch run.",
        buckets=[0.1, 0.5, 1.0, 5.0, 15.0, 60.0, 300.0],
    )
)


def normalize_path(request) -> str:
    route = request.scope.get("route")
    path = getattr(route, "path", None)
    if path:
        return path
    return request.url.path


def record_request_metrics(request, status_code: int, elapsed: float) -> None:
    labels = (request.method, normalize_path(request), str(status_code))
    REQUEST_COUNT.labels(*labels).inc()
    REQUEST_LATENCY.labels(*labels).observe(elapsed)
    if status_code >= 400:
        REQUEST_ERRORS.labels(*labels).inc()


def record_tracking(action: str) -> None:
    CARTS_TRACKED.labels(action=action).inc()


def record_resolution(status: str, count: int) -> None:
    if count:
        CARTS_RESOLVED.labels(status=status).inc(count)


def record_reminder(reminder_type: str, outcome: str) -> None:
    REMINDERS_DISPATCHED.labels(reminder_type=reminder_type, outcome=outcome).inc()


def observe_dispatch(elapsed: float) -> None:
    DISPATCH_DURATION.observe(elapsed)


def export_metrics() -> tuple[bytes, str]:
    if not settings.METRICS_ENABLED:
        return b"", "text/plain; charset=utf-8"
    return generate_latest(), CONTENT_TYPE_LATEST
