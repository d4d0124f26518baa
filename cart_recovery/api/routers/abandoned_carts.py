from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from cart_recovery.api.deps import require_internal_api_key
from cart_recovery.db.session_async import get_async_db
from cart_recovery.domain.enums import AbandonedCartStatus
from cart_recovery.schemas.abandoned_cart import (
    AbandonedCartDetail,
    AbandonedCartRead,
    DispatchSummary,
    RecoveryOutcome,
    TrackingOutcome,
    UserReference,
)
from cart_recovery.services import abandoned_cart_service, reminder_service

router = APIRouter(
    prefix="/abandoned-carts",
    tags=["abandoned-carts"],
    dependencies=[Depends(require_internal_api_key)],
)


@router.post("/track", response_model=TrackingOutcome, status_code=status.HTTP_202_ACCEPTED)
async def track_abandonment(payload: UserReference):
    """Abandonment signal from the storefront (tab hidden, navigation away, unload beacon)."""
    return await abandoned_cart_service.track_abandonment(payload.user_id)


@router.post("/recover", response_model=RecoveryOutcome)
async def mark_recovered(payload: UserReference):
    """Called by checkout once the order is paid."""
    return await abandoned_cart_service.mark_recovered(payload.user_id)


@router.post("/reminders/dispatch", response_model=DispatchSummary)
async def dispatch_reminders():
    return await reminder_service.process_pending_reminders()


@router.get("", response_model=List[AbandonedCartRead])
async def list_abandoned_carts(
    status_filter: Optional[AbandonedCartStatus] = Query(default=None, alias="status"),
    user_id: Optional[UUID] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_async_db),
):
    return await abandoned_cart_service.list_abandoned_carts(
        db,
        status_filter=status_filter,
        user_id=user_id,
        limit=limit,
        offset=offset,
    )


@router.get("/{abandoned_cart_id}", response_model=AbandonedCartDetail)
async def get_abandoned_cart(
    abandoned_cart_id: int,
    db: AsyncSession = Depends(get_async_db),
):
    return await abandoned_cart_service.get_abandoned_cart(db, abandoned_cart_id)
