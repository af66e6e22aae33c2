# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Cart item model.

The cart belongs to the shopping collaborator; the application workflow
reads course items from it and removes them once applied.
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, UUIDPrimaryKeyMixin
from src.utils.datetime import utc_now


class CartItem(UUIDPrimaryKeyMixin, Base):
    """A line in a user's cart: either a course (with schedule) or a product."""

    __tablename__ = "cart_items"

    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False, index=True
    )
    item_type: Mapped[str] = mapped_column(String(20), default="course", nullable=False)
    course_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("courses.id"), nullable=True
    )
    schedule_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("training_schedules.id"), nullable=True
    )
    product_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    price_at_time: Mapped[int] = mapped_column(Integer, nullable=False)
    added_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
