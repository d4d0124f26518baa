from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from cart_recovery.api.deps import require_internal_api_key
from cart_recovery.db.session_async import get_async_db
from cart_recovery.schemas.abandoned_cart import AbandonedCartStats
from cart_recovery.services import analytics_service

router = APIRouter(
    prefix="/admin/analytics",
    tags=["analytics"],
    dependencies=[Depends(require_internal_api_key)],
)


@router.get("/abandoned-carts", response_model=AbandonedCartStats)
async def abandoned_cart_stats(db: AsyncSession = Depends(get_async_db)):
    return await analytics_service.get_abandoned_cart_stats(db)
