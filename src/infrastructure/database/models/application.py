# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Class application models.

An application is the aggregate root: it owns its course lines, and each
course line owns its roster of student entries.

Storage-layout constraints:
- ``application_number`` has no default and is never written for drafts.
  Uniqueness applies only to present values (partial unique index), so any
  number of drafts can coexist without tripping the constraint.
- At most one draft per owner (partial unique index on ``owner_id``).
- Numbers come from ``application_number_counters``, one row per day.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.infrastructure.database.models.base import (
    Base,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
)

_DRAFT_ONLY = text("status = 'draft'")
_NUMBER_PRESENT = text("application_number IS NOT NULL")


class ClassApplication(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Class application aggregate root."""

    __tablename__ = "class_applications"
    __table_args__ = (
        Index(
            "uq_class_applications_application_number",
            "application_number",
            unique=True,
            postgresql_where=_NUMBER_PRESENT,
            sqlite_where=_NUMBER_PRESENT,
        ),
        Index(
            "uq_class_applications_owner_draft",
            "owner_id",
            unique=True,
            postgresql_where=_DRAFT_ONLY,
            sqlite_where=_DRAFT_ONLY,
        ),
        Index("ix_class_applications_owner_status", "owner_id", "status"),
    )

    owner_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False, index=True
    )
    application_number: Mapped[str | None] = mapped_column(String(32), nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="draft", nullable=False)

    # Payment information
    payment_method: Mapped[str | None] = mapped_column(String(30), nullable=True)
    total_amount: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    payment_status: Mapped[str] = mapped_column(String(20), default="pending", nullable=False)
    tax_invoice_required: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Invoice manager (tax invoice contact)
    invoice_manager_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    invoice_manager_phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    invoice_manager_email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Agreements, accepted at submission only
    agreed_payment_and_refund_policy: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    agreed_refund_policy: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    courses: Mapped[list["ApplicationCourse"]] = relationship(
        back_populates="application",
        cascade="all, delete-orphan",
        order_by="ApplicationCourse.position",
    )

    @property
    def is_draft(self) -> bool:
        """Check if the application can still be edited."""
        return self.status == "draft"

    @property
    def total_students(self) -> int:
        """Number of students across all course lines."""
        return sum(len(line.students) for line in self.courses)

    def recompute_total(self) -> int:
        """Recompute ``total_amount`` from the course lines' discounted prices."""
        self.total_amount = sum(line.discounted_price for line in self.courses)
        return self.total_amount

    def find_course(self, course_id: str) -> "ApplicationCourse | None":
        """Find the course line for a course id."""
        for line in self.courses:
            if line.course_id == course_id:
                return line
        return None

    def __repr__(self) -> str:
        return f"<ClassApplication(id={self.id}, owner_id={self.owner_id}, status={self.status})>"


class ApplicationCourse(UUIDPrimaryKeyMixin, Base):
    """A course line: one course offering and its roster.

    Name, period and prices are captured when the draft is built so later
    catalog changes do not alter an in-flight application. The roster holds
    individually-added students or a bulk upload, never both.
    """

    __tablename__ = "class_application_courses"

    application_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("class_applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    course_id: Mapped[str] = mapped_column(String(36), ForeignKey("courses.id"), nullable=False)
    schedule_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("training_schedules.id"), nullable=False
    )
    course_name: Mapped[str] = mapped_column(String(200), nullable=False)
    period: Mapped[str | None] = mapped_column(String(30), nullable=True)
    price: Mapped[int] = mapped_column(Integer, nullable=False)
    discounted_price: Mapped[int] = mapped_column(Integer, nullable=False)
    bulk_upload_file: Mapped[str | None] = mapped_column(String(500), nullable=True)

    application: Mapped[ClassApplication] = relationship(back_populates="courses")
    students: Mapped[list["ApplicationStudent"]] = relationship(
        back_populates="course_line",
        cascade="all, delete-orphan",
        order_by="ApplicationStudent.position",
    )

    @property
    def has_bulk_roster(self) -> bool:
        """Check if the roster came from a bulk upload."""
        return bool(self.bulk_upload_file)

    @property
    def individual_students(self) -> list["ApplicationStudent"]:
        """Students added one at a time."""
        return [s for s in self.students if s.source == "individual"]

    @property
    def roster_size(self) -> int:
        """Number of students on the roster."""
        return len(self.students)


class ApplicationStudent(UUIDPrimaryKeyMixin, Base):
    """A verified student on a course line's roster."""

    __tablename__ = "class_application_students"

    course_line_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("class_application_courses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[str] = mapped_column(String(20), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    company: Mapped[str | None] = mapped_column(String(200), nullable=True)
    position_title: Mapped[str | None] = mapped_column("job_position", String(100), nullable=True)
    source: Mapped[str] = mapped_column(String(20), default="individual", nullable=False)
    row_number: Mapped[int | None] = mapped_column(Integer, nullable=True)

    course_line: Mapped[ApplicationCourse] = relationship(back_populates="students")


class ApplicationNumberCounter(Base):
    """Last application number issued per calendar day (UTC).

    Only ever changed by a single upsert that increments and returns
    ``last_value``, so two submissions never read the same value.
    """

    __tablename__ = "application_number_counters"

    day: Mapped[str] = mapped_column(String(8), primary_key=True)
    last_value: Mapped[int] = mapped_column(Integer, nullable=False)
