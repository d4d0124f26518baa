"""Reminder scheduling and dispatch for abandoned carts.

Dispatch is claim-then-send: a due task is flipped ``pending -> sending`` by
a conditional UPDATE before its email goes out, so overlapping dispatcher
runs never send the same task twice. Each task is processed in its own
transaction; one task failing never stops the others.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from datetime import datetime, timedelta, timezone
from functools import partial
from typing import Literal

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from cart_recovery.core.config import settings
from cart_recovery.core.logging import get_logger
from cart_recovery.core.metrics import observe_dispatch, record_reminder
from cart_recovery.db.operations import flush_async
from cart_recovery.db.session_async import AsyncSessionLocal, SessionFactory, run_in_transaction
from cart_recovery.domain.enums import AbandonedCartStatus, ReminderStatus, ReminderType
from cart_recovery.models.abandoned_cart import AbandonedCart, ReminderTask
from cart_recovery.models.user import User
from cart_recovery.schemas.abandoned_cart import CartSnapshotItem, DispatchSummary
from cart_recovery.services.email_service import NotificationSender, email_sender
from cart_recovery.services.exceptions import MissingContactAddressError, NotificationRejectedError
from cart_recovery.services.reminder_templates import render_reminder

logger = get_logger(__name__)

# Fixed for every abandonment episode.
REMINDER_SCHEDULE: tuple[tuple[ReminderType, timedelta], ...] = (
    (ReminderType.first, timedelta(hours=1)),
    (ReminderType.second, timedelta(hours=24)),
    (ReminderType.final, timedelta(hours=72)),
)

STALE_CLAIM_ERROR = "dispatch interrupted"

DispatchResult = Literal["sent", "failed", "skipped", "error"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def schedule_reminders(
    db: AsyncSession,
    abandoned_cart_id: int,
    user_id: uuid.UUID,
    *,
    now: datetime | None = None,
) -> list[ReminderTask]:
    """Insert the pending reminder sequence for a freshly created abandoned cart.

    Must only be called once per abandoned cart; the tracker guarantees this
    by never scheduling on the refresh path.
    """
    now = now or _utcnow()
    tasks: list[ReminderTask] = []
    for reminder_type, delay in REMINDER_SCHEDULE:
        task = ReminderTask(
            user_id=user_id,
            abandoned_cart_id=abandoned_cart_id,
            reminder_type=reminder_type,
            scheduled_for=now + delay,
            status=ReminderStatus.pending,
        )
        db.add(task)
        tasks.append(task)

    await flush_async(db)

    for task in tasks:
        logger.info(
            "Scheduled reminder email",
            extra={
                "user_id": str(user_id),
                "abandoned_cart_id": abandoned_cart_id,
                "reminder_task_id": task.id,
                "reminder_type": task.reminder_type.value,
                "scheduled_for": task.scheduled_for.isoformat(),
            },
        )
    return tasks


async def _fail_stale_claims(db: AsyncSession, *, now: datetime) -> int:
    """Claims older than the timeout belong to a dispatcher that died mid-send.

    They are failed rather than re-sent: the email may already have gone out.
    """
    cutoff = now - timedelta(minutes=settings.REMINDER_CLAIM_TIMEOUT_MINUTES)
    stmt = (
        update(ReminderTask)
        .where(ReminderTask.status == ReminderStatus.sending, ReminderTask.claimed_at < cutoff)
        .values(status=ReminderStatus.failed, error_message=STALE_CLAIM_ERROR)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    if result.rowcount:
        logger.warning("Failed stale reminder claims", extra={"count": result.rowcount})
    return result.rowcount


async def _due_reminder_ids(db: AsyncSession, *, now: datetime, limit: int) -> list[int]:
    stmt = (
        select(ReminderTask.id)
        .join(AbandonedCart, ReminderTask.abandoned_cart_id == AbandonedCart.id)
        .where(
            ReminderTask.status == ReminderStatus.pending,
            ReminderTask.scheduled_for <= now,
            AbandonedCart.status == AbandonedCartStatus.abandoned,
        )
        .order_by(ReminderTask.scheduled_for, ReminderTask.id)
        .limit(limit)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def _claim(db: AsyncSession, *, task_id: int, now: datetime) -> bool:
    # The cart check is repeated here so a recovery that lands between the
    # due query and the claim still suppresses the send.
    still_abandoned = select(AbandonedCart.id).where(AbandonedCart.status == AbandonedCartStatus.abandoned)
    stmt = (
        update(ReminderTask)
        .where(
            ReminderTask.id == task_id,
            ReminderTask.status == ReminderStatus.pending,
            ReminderTask.abandoned_cart_id.in_(still_abandoned),
        )
        .values(status=ReminderStatus.sending, claimed_at=now)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    return result.rowcount == 1


def _stamp_cart(cart: AbandonedCart, reminder_type: ReminderType, sent_at: datetime) -> None:
    if reminder_type == ReminderType.first:
        cart.first_reminder_sent = sent_at
    elif reminder_type == ReminderType.second:
        cart.second_reminder_sent = sent_at
    elif reminder_type == ReminderType.final:
        cart.final_reminder_sent = sent_at


async def _deliver(
    db: AsyncSession,
    *,
    task_id: int,
    sender: NotificationSender,
    now: datetime,
) -> DispatchResult:
    task = await db.get(ReminderTask, task_id)
    if task is None or task.status != ReminderStatus.sending:
        return "skipped"
    cart = await db.get(AbandonedCart, task.abandoned_cart_id)
    user = await db.get(User, task.user_id)
    log_context = {
        "user_id": str(task.user_id),
        "abandoned_cart_id": task.abandoned_cart_id,
        "reminder_task_id": task.id,
        "reminder_type": task.reminder_type.value,
    }

    try:
        if user is None or not user.email:
            raise MissingContactAddressError()
        notification = render_reminder(
            task.reminder_type,
            recipient=user.email,
            display_name=user.display_name,
            items=[CartSnapshotItem.model_validate(item) for item in cart.cart_snapshot or []],
            total_value=cart.total_value,
            item_count=cart.item_count,
        )
        accepted = await sender.send(notification)
        if not accepted:
            raise NotificationRejectedError()
    except MissingContactAddressError as exc:
        logger.warning("User has no email address for abandoned cart reminder", extra=log_context)
        task.status = ReminderStatus.failed
        task.error_message = exc.detail
        record_reminder(task.reminder_type.value, "failed")
        return "failed"
    except Exception as exc:
        logger.exception("Failed to send reminder email", extra=log_context)
        task.status = ReminderStatus.failed
        task.error_message = str(exc) or exc.__class__.__name__
        record_reminder(task.reminder_type.value, "failed")
        return "failed"

    task.status = ReminderStatus.sent
    task.sent_at = now
    task.error_message = None
    _stamp_cart(cart, task.reminder_type, now)
    record_reminder(task.reminder_type.value, "sent")
    logger.info("Sent abandoned cart reminder email", extra=log_context)
    return "sent"


async def _dispatch_one(
    task_id: int,
    *,
    sender: NotificationSender,
    session_factory: SessionFactory,
    now: datetime,
) -> DispatchResult:
    try:
        claimed = await run_in_transaction(partial(_claim, task_id=task_id, now=now), session_factory)
    except Exception:
        logger.exception("Failed to claim reminder task", extra={"reminder_task_id": task_id})
        return "error"
    if not claimed:
        logger.info("Reminder task already claimed or no longer due", extra={"reminder_task_id": task_id})
        return "skipped"

    try:
        return await run_in_transaction(
            partial(_deliver, task_id=task_id, sender=sender, now=now),
            session_factory,
        )
    except Exception:
        # The task stays claimed and is failed by the stale-claim sweep.
        logger.exception("Failed to record reminder outcome", extra={"reminder_task_id": task_id})
        return "error"


async def process_pending_reminders(
    *,
    sender: NotificationSender | None = None,
    session_factory: SessionFactory | None = None,
    now: datetime | None = None,
    concurrency: int | None = None,
    batch_size: int | None = None,
) -> DispatchSummary:
    """Send every due reminder whose cart is still abandoned. Never raises."""
    sender = sender or email_sender
    factory = session_factory or AsyncSessionLocal
    now = now or _utcnow()
    limit = batch_size or settings.REMINDER_DISPATCH_BATCH_SIZE
    started = time.perf_counter()
    summary = DispatchSummary()

    try:
        summary.reclaimed = await run_in_transaction(partial(_fail_stale_claims, now=now), factory)
        due_ids = await run_in_transaction(partial(_due_reminder_ids, now=now, limit=limit), factory)
    except Exception as exc:
        logger.exception("Failed to process pending reminders")
        summary.ok = False
        summary.error = str(exc)
        return summary

    summary.due = len(due_ids)
    logger.info("Processing pending reminders", extra={"count": summary.due})

    semaphore = asyncio.Semaphore(max(1, concurrency or settings.REMINDER_DISPATCH_CONCURRENCY))

    async def _bounded(task_id: int) -> DispatchResult:
        async with semaphore:
            return await _dispatch_one(task_id, sender=sender, session_factory=factory, now=now)

    results = await asyncio.gather(*(_bounded(task_id) for task_id in due_ids))
    for result in results:
        if result == "sent":
            summary.sent += 1
        elif result == "failed":
            summary.failed += 1
        elif result == "skipped":
            summary.skipped += 1
        else:
            summary.errors += 1

    observe_dispatch(time.perf_counter() - started)
    logger.info("Finished processing pending reminders", extra=summary.model_dump())
    return summary
