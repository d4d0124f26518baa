# cart_recovery/models/user.py
from __future__ import annotations

import uuid
from sqlalchemy import String, Boolean, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column

from cart_recovery.db.base import Base
from cart_recovery.db.types import GUID


class User(Base):
    """Marketplace account, owned by the host application.

    Only the columns the recovery emails need are mapped here.
    """
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4, nullable=False)
    email: Mapped[str | None] = mapped_column(String(320), unique=True, index=True, nullable=True)
    full_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    @property
    def display_name(self) -> str:
        if self.full_name and self.full_name.strip():
            return self.full_name.split()[0]
        return "there"
