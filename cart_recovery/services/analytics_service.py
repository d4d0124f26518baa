from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from cart_recovery.domain.enums import AbandonedCartStatus, ReminderStatus
from cart_recovery.models.abandoned_cart import AbandonedCart, ReminderTask
from cart_recovery.schemas.abandoned_cart import AbandonedCartStats, ReminderStats

_CENTS = Decimal("0.01")


def _money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(_CENTS)


async def get_abandoned_cart_stats(db: AsyncSession) -> AbandonedCartStats:
    """Dashboard aggregates over every tracked abandonment episode."""
    cart_rows = await db.execute(
        select(
            AbandonedCart.status,
            func.count(AbandonedCart.id),
            func.coalesce(func.sum(AbandonedCart.total_value), 0),
        ).group_by(AbandonedCart.status)
    )
    counts: dict[AbandonedCartStatus, int] = {}
    total_value = Decimal("0")
    for status, count, value in cart_rows.all():
        counts[status] = count
        total_value += _money(value)

    reminder_rows = await db.execute(
        select(ReminderTask.status, func.count(ReminderTask.id)).group_by(ReminderTask.status)
    )
    reminder_counts = {status: count for status, count in reminder_rows.all()}

    total = sum(counts.values())
    recovered = counts.get(AbandonedCartStatus.recovered, 0)
    return AbandonedCartStats(
        total_abandoned=total,
        total_recovered=recovered,
        total_expired=counts.get(AbandonedCartStatus.expired, 0),
        recovery_rate=round(recovered / total, 4) if total else 0.0,
        total_value=total_value.quantize(_CENTS),
        average_cart_value=(total_value / total).quantize(_CENTS) if total else Decimal("0.00"),
        reminder_stats=ReminderStats(
            pending=reminder_counts.get(ReminderStatus.pending, 0),
            sending=reminder_counts.get(ReminderStatus.sending, 0),
            sent=reminder_counts.get(ReminderStatus.sent, 0),
            failed=reminder_counts.get(ReminderStatus.failed, 0),
            cancelled=reminder_counts.get(ReminderStatus.cancelled, 0),
        ),
    )
