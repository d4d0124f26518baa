"""Read access to the host application's live carts."""

from __future__ import annotations

import uuid
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from cart_recovery.domain.enums import CartStatus
from cart_recovery.models.cart import Cart, CartItem
from cart_recovery.schemas.abandoned_cart import CartLineItem


async def get_active_cart(db: AsyncSession, *, user_id: uuid.UUID) -> Cart | None:
    stmt = (
        select(Cart)
        .options(selectinload(Cart.items).selectinload(CartItem.product))
        .where(Cart.user_id == user_id, Cart.status == CartStatus.active)
        .order_by(Cart.created_at.desc())
        .limit(1)
    )
    result = await db.execute(stmt)
    return result.scalars().first()


async def get_cart_line_items(db: AsyncSession, user_id: uuid.UUID) -> list[CartLineItem]:
    """Current lines of the user's active cart, priced at the product's current price."""
    cart = await get_active_cart(db, user_id=user_id)
    if cart is None:
        return []

    lines: list[CartLineItem] = []
    for item in sorted(cart.items, key=lambda i: (i.created_at, i.product_id)):
        product = item.product
        if product is None or item.quantity <= 0:
            continue
        lines.append(
            CartLineItem(
                product_id=product.id,
                title=product.title,
                price=Decimal(product.price),
                quantity=item.quantity,
                thumbnail=product.thumbnail,
                seller_id=product.seller_id,
            )
        )
    return lines
