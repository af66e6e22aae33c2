# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment model.

One row per student per submitted course line. Rows are never deleted on
cancellation; the status flips to ``cancelled`` so history is preserved.
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from src.utils.datetime import utc_now

_ACTIVE_ONLY = text("status <> 'cancelled'")


class Enrollment(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A student's enrollment in a course schedule."""

    __tablename__ = "enrollments"
    __table_args__ = (
        Index(
            "uq_enrollments_active_student_course_schedule",
            "student_id",
            "course_id",
            "schedule_id",
            unique=True,
            postgresql_where=_ACTIVE_ONLY,
            sqlite_where=_ACTIVE_ONLY,
        ),
    )

    application_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("class_applications.id"), nullable=False, index=True
    )
    course_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("courses.id"), nullable=False, index=True
    )
    schedule_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("training_schedules.id"), nullable=False, index=True
    )
    student_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(String(20), default="enrolled", nullable=False)

    enrolled_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    completion_percentage: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<Enrollment(id={self.id}, student_id={self.student_id}, "
            f"schedule_id={self.schedule_id}, status={self.status})>"
        )
