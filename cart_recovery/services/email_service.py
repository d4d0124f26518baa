# cart_recovery/services/email_service.py
from __future__ import annotations

import asyncio
from typing import Protocol

from cart_recovery.core.config import settings
from cart_recovery.schemas.abandoned_cart import Notification
from cart_recovery.tasks.email import send_email_task


class NotificationSender(Protocol):
    async def send(self, notification: Notification) -> bool:
        """Hand the message to the transport; True means accepted for delivery."""
        ...


def _enqueue_email(to_email: str, subject: str, body: str, html: str | None = None) -> None:
    send_email_task.apply_async((to_email, subject, body, html), queue=settings.EMAIL_QUEUE, ignore_result=True)


class EmailNotificationSender:
    """Sends notifications through the Celery email queue.

    Delivery retries belong to the ``email.send_plain`` task; a message counts
    as accepted once it is enqueued. The broker publish (or, in eager mode, the
    whole SMTP delivery) blocks, so it runs in a worker thread.
    """

    async def send(self, notification: Notification) -> bool:
        await asyncio.to_thread(
            _enqueue_email, notification.to, notification.subject, notification.body, notification.html
        )
        return True


email_sender = EmailNotificationSender()
