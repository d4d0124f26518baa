from __future__ import annotations

from celery import Celery
from celery.schedules import crontab
from kombu import Queue

from cart_recovery.core.config import settings


celery_app = Celery(
    "opshop-cart-recovery",
    include=[
        "cart_recovery.tasks.email",
        "cart_recovery.tasks.reminders",
    ],
)

celery_app.conf.update(
    broker_url=settings.CELERY_BROKER_URL,
    result_backend=settings.CELERY_RESULT_BACKEND,
    task_always_eager=settings.CELERY_TASK_ALWAYS_EAGER,
    task_eager_propagates=True,
    task_default_queue=settings.CELERY_TASK_DEFAULT_QUEUE,
    broker_connection_retry_on_startup=True,
    timezone="UTC",
    enable_utc=True,
    worker_prefetch_multiplier=1,
    task_acks_late=True,
)

celery_app.conf.task_queues = (
    Queue(settings.CELERY_TASK_DEFAULT_QUEUE),
    Queue(settings.EMAIL_QUEUE),
    Queue(settings.REMINDERS_QUEUE),
)

celery_app.conf.task_routes = {
    "email.send_plain": {"queue": settings.EMAIL_QUEUE},
    "reminders.*": {"queue": settings.REMINDERS_QUEUE},
}

celery_app.conf.beat_schedule = {
    "dispatch-cart-reminders": {
        "task": "reminders.dispatch",
        "schedule": crontab(minute=f"*/{settings.REMINDER_DISPATCH_INTERVAL_MINUTES}"),
    },
    # Daily at 03:00 UTC
    "expire-stale-abandoned-carts": {
        "task": "reminders.expire_stale",
        "schedule": crontab(hour=3, minute=0),
    },
}

