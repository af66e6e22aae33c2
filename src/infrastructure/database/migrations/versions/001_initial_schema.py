# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Initial schema.

Revision ID: 001_initial
Revises: None
Create Date: 2025-09-14

Creates the collaborator tables the workflow reads (users, courses,
training_schedules, cart_items) and the workflow tables (class
applications, course lines, students, enrollments).
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    ]


def upgrade() -> None:
    """Create all tables and indexes."""
    # ==========================================================================
    # 1. Collaborator tables
    # ==========================================================================
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(100), nullable=False),
        sa.Column("phone", sa.String(20), nullable=True),
        sa.Column("member_type", sa.String(20), nullable=False, server_default="individual"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "courses",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("price", sa.Integer, nullable=False),
        sa.Column("discounted_price", sa.Integer, nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        "training_schedules",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("course_id", sa.String(36), sa.ForeignKey("courses.id"), nullable=False),
        sa.Column("schedule_name", sa.String(200), nullable=False),
        sa.Column("start_date", sa.Date, nullable=False),
        sa.Column("end_date", sa.Date, nullable=False),
        sa.Column("available_seats", sa.Integer, nullable=False, server_default="30"),
        sa.Column("enrolled_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("status", sa.String(20), nullable=False, server_default="upcoming"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.CheckConstraint(
            "enrolled_count >= 0 AND enrolled_count <= available_seats",
            name="valid_enrolled_count",
        ),
    )
    op.create_index("ix_training_schedules_course_id", "training_schedules", ["course_id"])

    op.create_table(
        "cart_items",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("item_type", sa.String(20), nullable=False, server_default="course"),
        sa.Column("course_id", sa.String(36), sa.ForeignKey("courses.id"), nullable=True),
        sa.Column(
            "schedule_id",
            sa.String(36),
            sa.ForeignKey("training_schedules.id"),
            nullable=True,
        ),
        sa.Column("product_id", sa.String(36), nullable=True),
        sa.Column("quantity", sa.Integer, nullable=False, server_default="1"),
        sa.Column("price_at_time", sa.Integer, nullable=False),
        sa.Column(
            "added_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_cart_items_user_id", "cart_items", ["user_id"])

    # ==========================================================================
    # 2. class_applications
    # ==========================================================================
    op.create_table(
        "class_applications",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("owner_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("application_number", sa.String(32), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("payment_method", sa.String(30), nullable=True),
        sa.Column("total_amount", sa.Integer, nullable=False, server_default="0"),
        sa.Column("payment_status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("tax_invoice_required", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("invoice_manager_name", sa.String(100), nullable=True),
        sa.Column("invoice_manager_phone", sa.String(20), nullable=True),
        sa.Column("invoice_manager_email", sa.String(255), nullable=True),
        sa.Column(
            "agreed_payment_and_refund_policy",
            sa.Boolean,
            nullable=False,
            server_default=sa.false(),
        ),
        sa.Column("agreed_refund_policy", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancellation_reason", sa.Text, nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('draft', 'submitted', 'cancelled', 'completed')",
            name="valid_application_status",
        ),
        sa.CheckConstraint(
            "payment_status IN ('pending', 'completed', 'failed', 'refunded')",
            name="valid_payment_status",
        ),
    )
    op.create_index("ix_class_applications_owner_id", "class_applications", ["owner_id"])
    op.create_index(
        "ix_class_applications_owner_status",
        "class_applications",
        ["owner_id", "status"],
    )
    # Numbers are absent on drafts; only present values must be unique
    op.create_index(
        "uq_class_applications_application_number",
        "class_applications",
        ["application_number"],
        unique=True,
        postgresql_where=sa.text("application_number IS NOT NULL"),
        sqlite_where=sa.text("application_number IS NOT NULL"),
    )
    # One draft per owner
    op.create_index(
        "uq_class_applications_owner_draft",
        "class_applications",
        ["owner_id"],
        unique=True,
        postgresql_where=sa.text("status = 'draft'"),
        sqlite_where=sa.text("status = 'draft'"),
    )

    # ==========================================================================
    # 3. class_application_courses
    # ==========================================================================
    op.create_table(
        "class_application_courses",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "application_id",
            sa.String(36),
            sa.ForeignKey("class_applications.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer, nullable=False, server_default="0"),
        sa.Column("course_id", sa.String(36), sa.ForeignKey("courses.id"), nullable=False),
        sa.Column(
            "schedule_id",
            sa.String(36),
            sa.ForeignKey("training_schedules.id"),
            nullable=False,
        ),
        sa.Column("course_name", sa.String(200), nullable=False),
        sa.Column("period", sa.String(30), nullable=True),
        sa.Column("price", sa.Integer, nullable=False),
        sa.Column("discounted_price", sa.Integer, nullable=False),
        sa.Column("bulk_upload_file", sa.String(500), nullable=True),
    )
    op.create_index(
        "ix_class_application_courses_application_id",
        "class_application_courses",
        ["application_id"],
    )

    # ==========================================================================
    # 4. class_application_students
    # ==========================================================================
    op.create_table(
        "class_application_students",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "course_line_id",
            sa.String(36),
            sa.ForeignKey("class_application_courses.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer, nullable=False, server_default="0"),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("phone", sa.String(20), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("company", sa.String(200), nullable=True),
        sa.Column("job_position", sa.String(100), nullable=True),
        sa.Column("source", sa.String(20), nullable=False, server_default="individual"),
        sa.Column("row_number", sa.Integer, nullable=True),
        sa.CheckConstraint("source IN ('individual', 'bulk')", name="valid_student_source"),
    )
    op.create_index(
        "ix_class_application_students_course_line_id",
        "class_application_students",
        ["course_line_id"],
    )

    # ==========================================================================
    # 5. enrollments
    # ==========================================================================
    op.create_table(
        "enrollments",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "application_id",
            sa.String(36),
            sa.ForeignKey("class_applications.id"),
            nullable=False,
        ),
        sa.Column("course_id", sa.String(36), sa.ForeignKey("courses.id"), nullable=False),
        sa.Column(
            "schedule_id",
            sa.String(36),
            sa.ForeignKey("training_schedules.id"),
            nullable=False,
        ),
        sa.Column("student_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="enrolled"),
        sa.Column(
            "enrolled_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("completion_percentage", sa.Integer, nullable=False, server_default="0"),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancellation_reason", sa.Text, nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('enrolled', 'completed', 'cancelled', 'no-show')",
            name="valid_enrollment_status",
        ),
    )
    op.create_index("ix_enrollments_application_id", "enrollments", ["application_id"])
    op.create_index("ix_enrollments_course_id", "enrollments", ["course_id"])
    op.create_index("ix_enrollments_schedule_id", "enrollments", ["schedule_id"])
    op.create_index("ix_enrollments_student_id", "enrollments", ["student_id"])
    op.create_index(
        "uq_enrollments_active_student_course_schedule",
        "enrollments",
        ["student_id", "course_id", "schedule_id"],
        unique=True,
        postgresql_where=sa.text("status <> 'cancelled'"),
        sqlite_where=sa.text("status <> 'cancelled'"),
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("enrollments")
    op.drop_table("class_application_students")
    op.drop_table("class_application_courses")
    op.drop_table("class_applications")
    op.drop_table("cart_items")
    op.drop_table("training_schedules")
    op.drop_table("courses")
    op.drop_table("users")
