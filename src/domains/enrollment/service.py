# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment service for application fan-out.

This module provides the EnrollmentService class for:
- Expanding a submitted application's rosters into enrollments
- Cancelling an application's enrollments and releasing their seats
- Completing an application's enrollments
- Listing enrollments per application

The service never commits. It runs inside the caller's unit of work so a
failure anywhere in a submission leaves no enrollment and no seat change
behind.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.errors import DuplicateEnrollmentError, SeatsExhaustedError
from src.domains.gateways import ScheduleStore
from src.infrastructure.database.models import ClassApplication, Enrollment
from src.models.enrollment import EnrollmentResponse, EnrollmentStatus
from src.utils.datetime import ensure_utc, utc_now

logger = logging.getLogger(__name__)


class EnrollmentService:
    """Service for managing enrollments created by class applications.

    Attributes:
        db: Async database session.
        schedules: Seat accounting on training schedules.
    """

    def __init__(self, db: AsyncSession, schedules: ScheduleStore | None = None) -> None:
        """Initialize enrollment service.

        Args:
            db: Async database session shared with the caller.
            schedules: Schedule store, defaults to one over ``db``.
        """
        self.db = db
        self.schedules = schedules or ScheduleStore(db)

    async def create_enrollments(self, application: ClassApplication) -> list[Enrollment]:
        """Create one enrollment per rostered student and take their seats.

        Args:
            application: Application with course lines and rosters loaded.

        Returns:
            Created enrollments, in course line and roster order.

        Raises:
            DuplicateEnrollmentError: If a (student, course, schedule) triple
                is already actively enrolled or repeats within the submission.
            SeatsExhaustedError: If a schedule has no seat left.
        """
        now = utc_now()
        seen: set[tuple[str, str, str]] = set()
        created: list[Enrollment] = []

        for line in application.courses:
            for student in line.students:
                triple = (student.user_id, line.course_id, line.schedule_id)
                if triple in seen or await self._has_active_enrollment(*triple):
                    raise DuplicateEnrollmentError(
                        f"{student.name} is already enrolled in {line.course_name}",
                        {
                            "student_id": student.user_id,
                            "course_id": line.course_id,
                            "schedule_id": line.schedule_id,
                        },
                    )
                seen.add(triple)

                if not await self.schedules.conditional_increment(line.schedule_id):
                    raise SeatsExhaustedError(
                        f"No seats left for {line.course_name}",
                        {"course_id": line.course_id, "schedule_id": line.schedule_id},
                    )

                enrollment = Enrollment(
                    application_id=application.id,
                    course_id=line.course_id,
                    schedule_id=line.schedule_id,
                    student_id=student.user_id,
                    status=EnrollmentStatus.ENROLLED.value,
                    enrolled_at=now,
                )
                self.db.add(enrollment)
                created.append(enrollment)

        try:
            await self.db.flush()
        except IntegrityError as e:
            raise DuplicateEnrollmentError(
                "A student on this application is already enrolled in the schedule"
            ) from e

        logger.info(
            "Created enrollments: application=%s, count=%d",
            application.id,
            len(created),
        )
        return created

    async def cancel_enrollments(
        self,
        application_id: str,
        reason: str,
        at: datetime | None = None,
    ) -> int:
        """Cancel every active enrollment of an application.

        All enrollments get the same reason and timestamp, and each one
        gives its seat back to the schedule.

        Args:
            application_id: Application identifier.
            reason: Cancellation reason.
            at: Cancellation timestamp, defaults to now.

        Returns:
            Number of enrollments cancelled.
        """
        at = at or utc_now()
        enrollments = await self.list_for_application(application_id)

        cancelled = 0
        for enrollment in enrollments:
            if enrollment.status == EnrollmentStatus.CANCELLED.value:
                continue
            enrollment.status = EnrollmentStatus.CANCELLED.value
            enrollment.cancellation_reason = reason
            enrollment.cancelled_at = at
            if not await self.schedules.release(enrollment.schedule_id):
                logger.warning(
                    "Seat count already zero on release: schedule=%s, enrollment=%s",
                    enrollment.schedule_id,
                    enrollment.id,
                )
            cancelled += 1

        await self.db.flush()

        logger.info(
            "Cancelled enrollments: application=%s, count=%d",
            application_id,
            cancelled,
        )
        return cancelled

    async def complete_enrollments(
        self,
        application_id: str,
        at: datetime | None = None,
    ) -> int:
        """Mark an application's enrolled students as completed.

        Returns:
            Number of enrollments completed.
        """
        at = at or utc_now()
        enrollments = await self.list_for_application(application_id)

        completed = 0
        for enrollment in enrollments:
            if enrollment.status != EnrollmentStatus.ENROLLED.value:
                continue
            enrollment.status = EnrollmentStatus.COMPLETED.value
            enrollment.completed_at = at
            completed += 1

        await self.db.flush()

        logger.info(
            "Completed enrollments: application=%s, count=%d",
            application_id,
            completed,
        )
        return completed

    async def list_for_application(self, application_id: str) -> list[Enrollment]:
        """List enrollments of an application, oldest first."""
        query = (
            select(Enrollment)
            .where(Enrollment.application_id == application_id)
            .order_by(Enrollment.enrolled_at, Enrollment.id)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def _has_active_enrollment(
        self,
        student_id: str,
        course_id: str,
        schedule_id: str,
    ) -> bool:
        query = select(Enrollment.id).where(
            Enrollment.student_id == student_id,
            Enrollment.course_id == course_id,
            Enrollment.schedule_id == schedule_id,
            Enrollment.status != EnrollmentStatus.CANCELLED.value,
        )
        result = await self.db.execute(query.limit(1))
        return result.scalar_one_or_none() is not None

    @staticmethod
    def to_response(enrollment: Enrollment) -> EnrollmentResponse:
        """Convert an enrollment model to its response schema."""
        return EnrollmentResponse(
            id=enrollment.id,
            application_id=enrollment.application_id,
            course_id=enrollment.course_id,
            schedule_id=enrollment.schedule_id,
            student_id=enrollment.student_id,
            status=EnrollmentStatus(enrollment.status),
            enrolled_at=ensure_utc(enrollment.enrolled_at),
            completed_at=ensure_utc(enrollment.completed_at),
            cancelled_at=ensure_utc(enrollment.cancelled_at),
            cancellation_reason=enrollment.cancellation_reason,
        )
