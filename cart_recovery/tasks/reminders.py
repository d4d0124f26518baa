from __future__ import annotations

import asyncio

from cart_recovery.core.celery_app import celery_app
from cart_recovery.services import abandoned_cart_service, reminder_service


def _run(func, *args, **kwargs):
    return asyncio.run(func(*args, **kwargs))


@celery_app.task(name="reminders.dispatch")
def dispatch_reminders_task() -> dict:
    """Beat-driven run of the abandoned-cart reminder dispatcher."""
    summary = _run(reminder_service.process_pending_reminders)
    return summary.model_dump()


@celery_app.task(name="reminders.expire_stale")
def expire_stale_carts_task(older_than_days: int | None = None) -> dict:
    outcome = _run(abandoned_cart_service.expire_stale_carts, older_than_days=older_than_days)
    return outcome.model_dump()
