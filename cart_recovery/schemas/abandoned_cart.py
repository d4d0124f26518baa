from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from cart_recovery.domain.enums import AbandonedCartStatus, ReminderStatus, ReminderType


class CartLineItem(BaseModel):
    """A live cart line as read from the host cart, with current product data."""
    product_id: int
    title: str
    price: Decimal
    quantity: int = Field(..., gt=0)
    thumbnail: Optional[str] = None
    seller_id: UUID


class CartSnapshotItem(CartLineItem):
    """Point-in-time copy of a cart line stored on the abandoned cart."""

    model_config = ConfigDict(frozen=True)


class Notification(BaseModel):
    to: str
    subject: str = Field(..., max_length=200)
    body: str
    html: Optional[str] = None


# --- Requests ---

class UserReference(BaseModel):
    user_id: UUID


# --- Outcomes of the public entry points (they never raise) ---

class TrackingOutcome(BaseModel):
    ok: bool = True
    action: Literal["created", "refreshed", "skipped", "failed"]
    abandoned_cart_id: Optional[int] = None
    error: Optional[str] = None


class RecoveryOutcome(BaseModel):
    ok: bool = True
    carts_recovered: int = 0
    reminders_cancelled: int = 0
    error: Optional[str] = None


class ExpiryOutcome(BaseModel):
    ok: bool = True
    carts_expired: int = 0
    reminders_cancelled: int = 0
    error: Optional[str] = None


class DispatchSummary(BaseModel):
    ok: bool = True
    due: int = 0
    sent: int = 0
    failed: int = 0
    skipped: int = 0
    errors: int = 0
    reclaimed: int = 0
    error: Optional[str] = None


# --- Read models ---

class ReminderTaskRead(BaseModel):
    id: int
    abandoned_cart_id: int
    reminder_type: ReminderType
    scheduled_for: datetime
    status: ReminderStatus
    sent_at: Optional[datetime]
    error_message: Optional[str]

    model_config = ConfigDict(from_attributes=True)


class AbandonedCartRead(BaseModel):
    id: int
    user_id: UUID
    cart_snapshot: List[CartSnapshotItem]
    total_value: Decimal
    item_count: int
    status: AbandonedCartStatus
    abandoned_at: datetime
    first_reminder_sent: Optional[datetime]
    second_reminder_sent: Optional[datetime]
    final_reminder_sent: Optional[datetime]
    recovered_at: Optional[datetime]
    expired_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)


class AbandonedCartDetail(AbandonedCartRead):
    reminders: List[ReminderTaskRead] = Field(default_factory=list)


class ReminderStats(BaseModel):
    pending: int = 0
    sending: int = 0
    sent: int = 0
    failed: int = 0
    cancelled: int = 0


class AbandonedCartStats(BaseModel):
    total_abandoned: int
    total_recovered: int
    total_expired: int
    recovery_rate: float
    total_value: Decimal
    average_cart_value: Decimal
    reminder_stats: ReminderStats
