from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from functools import partial
from typing import List

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from cart_recovery.core.config import settings
from cart_recovery.core.logging import get_logger
from cart_recovery.core.metrics import record_resolution, record_tracking
from cart_recovery.db.operations import flush_async
from cart_recovery.db.session_async import SessionFactory, run_in_transaction
from cart_recovery.domain.enums import AbandonedCartStatus, ReminderStatus
from cart_recovery.models.abandoned_cart import AbandonedCart, ReminderTask
from cart_recovery.schemas.abandoned_cart import (
    CartLineItem,
    CartSnapshotItem,
    ExpiryOutcome,
    RecoveryOutcome,
    TrackingOutcome,
)
from cart_recovery.services import cart_service, reminder_service
from cart_recovery.services.exceptions import DomainValidationError, ResourceNotFoundError

logger = get_logger(__name__)

CartSource = Callable[[AsyncSession, uuid.UUID], Awaitable[List[CartLineItem]]]

_CENTS = Decimal("0.01")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_uuid(value: uuid.UUID | str, field: str = "user_id") -> uuid.UUID:
    try:
        return uuid.UUID(str(value))
    except Exception as exc:
        raise DomainValidationError(f"Invalid UUID for {field}") from exc


def build_snapshot(lines: List[CartLineItem]) -> tuple[list[CartSnapshotItem], Decimal, int]:
    """Freeze cart lines into a snapshot with its total value and distinct line count."""
    snapshot = [CartSnapshotItem.model_validate(line.model_dump()) for line in lines]
    total = sum((item.price * item.quantity for item in snapshot), Decimal("0"))
    return snapshot, total.quantize(_CENTS), len(snapshot)


async def _latest_abandoned_cart(db: AsyncSession, user_id: uuid.UUID) -> AbandonedCart | None:
    stmt = (
        select(AbandonedCart)
        .where(AbandonedCart.user_id == user_id, AbandonedCart.status == AbandonedCartStatus.abandoned)
        .order_by(AbandonedCart.created_at.desc(), AbandonedCart.id.desc())
        .limit(1)
    )
    result = await db.execute(stmt)
    return result.scalars().first()


async def _track(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
    cart_source: CartSource,
    now: datetime,
) -> TrackingOutcome:
    lines = await cart_source(db, user_id)
    if not lines:
        logger.info("No cart items to track for abandonment", extra={"user_id": str(user_id)})
        return TrackingOutcome(action="skipped")

    snapshot, total_value, item_count = build_snapshot(lines)
    snapshot_json = [item.model_dump(mode="json") for item in snapshot]

    existing = await _latest_abandoned_cart(db, user_id)
    if existing:
        # Same episode: refresh in place, the reminder sequence keeps running.
        existing.cart_snapshot = snapshot_json
        existing.total_value = total_value
        existing.item_count = item_count
        existing.abandoned_at = now
        await flush_async(db)
        logger.info(
            "Updated existing abandoned cart",
            extra={
                "user_id": str(user_id),
                "abandoned_cart_id": existing.id,
                "total_value": str(total_value),
                "item_count": item_count,
            },
        )
        return TrackingOutcome(action="refreshed", abandoned_cart_id=existing.id)

    cart = AbandonedCart(
        user_id=user_id,
        cart_snapshot=snapshot_json,
        total_value=total_value,
        item_count=item_count,
        status=AbandonedCartStatus.abandoned,
        abandoned_at=now,
        created_at=now,
    )
    db.add(cart)
    await flush_async(db)
    logger.info(
        "Created new abandoned cart",
        extra={
            "user_id": str(user_id),
            "abandoned_cart_id": cart.id,
            "total_value": str(total_value),
            "item_count": item_count,
        },
    )

    await reminder_service.schedule_reminders(db, cart.id, user_id, now=now)
    return TrackingOutcome(action="created", abandoned_cart_id=cart.id)


async def track_abandonment(
    user_id: uuid.UUID | str,
    *,
    cart_source: CartSource | None = None,
    session_factory: SessionFactory | None = None,
    now: datetime | None = None,
) -> TrackingOutcome:
    """Record that the user's cart was abandoned. Never raises.

    A new abandoned cart gets its reminder sequence scheduled in the same
    transaction; an already open one is refreshed with the current contents.
    """
    try:
        outcome = await run_in_transaction(
            partial(
                _track,
                user_id=_as_uuid(user_id),
                cart_source=cart_source or cart_service.get_cart_line_items,
                now=now or _utcnow(),
            ),
            session_factory,
        )
    except Exception as exc:
        logger.exception("Failed to track cart abandonment", extra={"user_id": str(user_id)})
        record_tracking("failed")
        return TrackingOutcome(ok=False, action="failed", error=str(exc))

    record_tracking(outcome.action)
    return outcome


async def _recover(db: AsyncSession, *, user_id: uuid.UUID, now: datetime) -> RecoveryOutcome:
    carts = await db.execute(
        update(AbandonedCart)
        .where(AbandonedCart.user_id == user_id, AbandonedCart.status == AbandonedCartStatus.abandoned)
        .values(status=AbandonedCartStatus.recovered, recovered_at=now)
        .execution_options(synchronize_session=False)
    )
    # Every pending reminder of the user, whichever cart it belongs to.
    reminders = await db.execute(
        update(ReminderTask)
        .where(ReminderTask.user_id == user_id, ReminderTask.status == ReminderStatus.pending)
        .values(status=ReminderStatus.cancelled)
        .execution_options(synchronize_session=False)
    )
    return RecoveryOutcome(carts_recovered=carts.rowcount, reminders_cancelled=reminders.rowcount)


async def mark_recovered(
    user_id: uuid.UUID | str,
    *,
    session_factory: SessionFactory | None = None,
    now: datetime | None = None,
) -> RecoveryOutcome:
    """Close the user's abandonment episode after a completed checkout. Never raises."""
    try:
        outcome = await run_in_transaction(
            partial(_recover, user_id=_as_uuid(user_id), now=now or _utcnow()),
            session_factory,
        )
    except Exception as exc:
        logger.exception("Failed to mark cart as recovered", extra={"user_id": str(user_id)})
        return RecoveryOutcome(ok=False, error=str(exc))

    record_resolution(AbandonedCartStatus.recovered.value, outcome.carts_recovered)
    if outcome.carts_recovered or outcome.reminders_cancelled:
        logger.info(
            "Marked abandoned cart as recovered",
            extra={"user_id": str(user_id), **outcome.model_dump(exclude={"ok", "error"})},
        )
    return outcome


async def _expire(db: AsyncSession, *, cutoff: datetime, now: datetime) -> ExpiryOutcome:
    stale_ids = list(
        (
            await db.execute(
                select(AbandonedCart.id).where(
                    AbandonedCart.status == AbandonedCartStatus.abandoned,
                    AbandonedCart.abandoned_at < cutoff,
                )
            )
        )
        .scalars()
        .all()
    )
    if not stale_ids:
        return ExpiryOutcome()

    carts = await db.execute(
        update(AbandonedCart)
        .where(AbandonedCart.id.in_(stale_ids), AbandonedCart.status == AbandonedCartStatus.abandoned)
        .values(status=AbandonedCartStatus.expired, expired_at=now)
        .execution_options(synchronize_session=False)
    )
    reminders = await db.execute(
        update(ReminderTask)
        .where(ReminderTask.abandoned_cart_id.in_(stale_ids), ReminderTask.status == ReminderStatus.pending)
        .values(status=ReminderStatus.cancelled)
        .execution_options(synchronize_session=False)
    )
    return ExpiryOutcome(carts_expired=carts.rowcount, reminders_cancelled=reminders.rowcount)


async def expire_stale_carts(
    *,
    older_than_days: int | None = None,
    session_factory: SessionFactory | None = None,
    now: datetime | None = None,
) -> ExpiryOutcome:
    """Expire abandoned carts nobody came back for. Never raises."""
    now = now or _utcnow()
    cutoff = now - timedelta(days=older_than_days or settings.ABANDONED_CART_EXPIRY_DAYS)
    try:
        outcome = await run_in_transaction(partial(_expire, cutoff=cutoff, now=now), session_factory)
    except Exception as exc:
        logger.exception("Failed to expire stale abandoned carts")
        return ExpiryOutcome(ok=False, error=str(exc))

    record_resolution(AbandonedCartStatus.expired.value, outcome.carts_expired)
    logger.info("Expired stale abandoned carts", extra=outcome.model_dump(exclude={"ok", "error"}))
    return outcome


async def list_abandoned_carts(
    db: AsyncSession,
    *,
    status_filter: AbandonedCartStatus | None = None,
    user_id: uuid.UUID | None = None,
    limit: int = 50,
    offset: int = 0,
) -> List[AbandonedCart]:
    stmt = (
        select(AbandonedCart)
        .order_by(AbandonedCart.abandoned_at.desc(), AbandonedCart.id.desc())
        .offset(offset)
        .limit(limit)
    )
    if status_filter:
        stmt = stmt.where(AbandonedCart.status == status_filter)
    if user_id:
        stmt = stmt.where(AbandonedCart.user_id == user_id)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_abandoned_cart(db: AsyncSession, abandoned_cart_id: int) -> AbandonedCart:
    cart = await db.get(
        AbandonedCart,
        abandoned_cart_id,
        options=[selectinload(AbandonedCart.reminders)],
    )
    if not cart:
        raise ResourceNotFoundError("Abandoned cart not found")
    return cart
