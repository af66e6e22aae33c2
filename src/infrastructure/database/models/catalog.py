# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Catalog models: courses and their training schedules."""

from datetime import date

from sqlalchemy import Boolean, Date, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.infrastructure.database.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Course(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Purchasable course. Prices are in won."""

    __tablename__ = "courses"

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    price: Mapped[int] = mapped_column(Integer, nullable=False)
    discounted_price: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    schedules: Mapped[list["TrainingSchedule"]] = relationship(back_populates="course")

    @property
    def effective_price(self) -> int:
        """Price actually charged: the discounted price when one is set."""
        if self.discounted_price is None:
            return self.price
        return self.discounted_price


class TrainingSchedule(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A dated offering of a course with a seat limit.

    ``enrolled_count`` is only ever changed through conditional UPDATE
    statements so it can never exceed ``available_seats``.
    """

    __tablename__ = "training_schedules"

    course_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("courses.id"), nullable=False, index=True
    )
    schedule_name: Mapped[str] = mapped_column(String(200), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    available_seats: Mapped[int] = mapped_column(Integer, default=30, nullable=False)
    enrolled_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="upcoming", nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    course: Mapped[Course] = relationship(back_populates="schedules")

    @property
    def remaining_seats(self) -> int:
        """Seats still open."""
        return max(0, self.available_seats - self.enrolled_count)

    @property
    def is_full(self) -> bool:
        """Check if no seats remain."""
        return self.enrolled_count >= self.available_seats
