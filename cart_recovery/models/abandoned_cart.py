# cart_recovery/models/abandoned_cart.py
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import JSON, Enum, ForeignKey, Index, Integer, Numeric, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cart_recovery.db.base import Base
from cart_recovery.db.types import GUID, UTCDateTime
from cart_recovery.domain.enums import AbandonedCartStatus, ReminderStatus, ReminderType
from cart_recovery.models.user import User


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AbandonedCart(Base):
    """One abandonment episode of a user's cart.

    At most one row per user is expected in ``abandoned`` status; the tracker
    refreshes that row instead of inserting a second one.
    """
    __tablename__ = "abandoned_carts"
    __table_args__ = (
        Index("ix_abandoned_carts_user_id_status", "user_id", "status"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    # [{product_id, title, price, quantity, thumbnail, seller_id}]
    cart_snapshot: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)
    total_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    item_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    status: Mapped[AbandonedCartStatus] = mapped_column(
        Enum(AbandonedCartStatus), default=AbandonedCartStatus.abandoned, nullable=False
    )
    abandoned_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=_utcnow)

    first_reminder_sent: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    second_reminder_sent: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    final_reminder_sent: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    recovered_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    expired_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=_utcnow, onupdate=_utcnow)

    reminders: Mapped[list["ReminderTask"]] = relationship(
        "ReminderTask",
        back_populates="abandoned_cart",
        order_by="ReminderTask.scheduled_for",
        passive_deletes=True,
    )
    user: Mapped[User] = relationship(User)


class ReminderTask(Base):
    """A single scheduled reminder email for an abandoned cart."""
    __tablename__ = "reminder_tasks"
    __table_args__ = (
        Index("ix_reminder_tasks_status_scheduled_for", "status", "scheduled_for"),
        Index("ix_reminder_tasks_user_id_status", "user_id", "status"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    abandoned_cart_id: Mapped[int] = mapped_column(
        ForeignKey("abandoned_carts.id", ondelete="CASCADE"), nullable=False, index=True
    )

    reminder_type: Mapped[ReminderType] = mapped_column(Enum(ReminderType), nullable=False)
    scheduled_for: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    status: Mapped[ReminderStatus] = mapped_column(
        Enum(ReminderStatus), default=ReminderStatus.pending, nullable=False
    )
    claimed_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    sent_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=_utcnow, onupdate=_utcnow)

    abandoned_cart: Mapped[AbandonedCart] = relationship("AbandonedCart", back_populates="reminders")
