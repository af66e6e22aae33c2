# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment schemas."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class EnrollmentStatus(str, Enum):
    """Enrollment lifecycle status."""

    ENROLLED = "enrolled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"


class EnrollmentResponse(BaseModel):
    """A single enrollment row."""

    id: str
    application_id: str
    course_id: str
    schedule_id: str
    student_id: str
    status: EnrollmentStatus
    enrolled_at: datetime
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancellation_reason: str | None = None


class EnrollmentListResponse(BaseModel):
    """Enrollments created for an application."""

    application_id: str
    items: list[EnrollmentResponse] = Field(default_factory=list)
    total: int = 0
