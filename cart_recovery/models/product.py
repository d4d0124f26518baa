# cart_recovery/models/product.py
from __future__ import annotations

import uuid
from decimal import Decimal

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cart_recovery.db.base import Base
from cart_recovery.db.types import GUID
from cart_recovery.models.user import User


class Product(Base):
    """Listing published by a seller, owned by the host application."""
    __tablename__ = "products"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    seller_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    images: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    seller: Mapped[User] = relationship(User)

    @property
    def thumbnail(self) -> str | None:
        if self.images:
            return self.images[0]
        return None
