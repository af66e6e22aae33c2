# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student validation service.

Checks run against pre-existing accounts only; no account is ever created
here. Identity is matched on the full email (case-insensitive), the phone
number compared as digits only, and the name compared exactly after
trimming.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.gateways import AccountDirectory, ScheduleStore
from src.infrastructure.database.models import Enrollment, User

logger = logging.getLogger(__name__)

_NON_DIGITS = re.compile(r"\D+")


def normalize_email(email: str | None) -> str:
    """Trim and lower-case an email address."""
    return (email or "").strip().lower()


def normalize_phone(phone: str | None) -> str:
    """Strip every non-digit character from a phone number."""
    return _NON_DIGITS.sub("", phone or "")


@dataclass(frozen=True)
class StudentValidationResult:
    """Outcome of an identity check.

    Attributes:
        valid: Whether the claimed identity matches an account.
        user_id: Matched account ID when valid.
        reason: account_not_found, phone_mismatch or name_mismatch.
        error: User-facing message when invalid.
        user: Matched account when valid.
    """

    valid: bool
    user_id: str | None = None
    reason: str | None = None
    error: str | None = None
    user: User | None = None


@dataclass(frozen=True)
class EligibilityResult:
    """Outcome of an enrollment eligibility check."""

    eligible: bool
    reason: str | None = None
    error: str | None = None


class StudentValidator:
    """Validates claimed student identities and enrollment eligibility."""

    def __init__(
        self,
        db: AsyncSession,
        accounts: AccountDirectory | None = None,
        schedules: ScheduleStore | None = None,
    ) -> None:
        """Initialize the validator.

        Args:
            db: Async database session.
            accounts: Account lookup, defaults to one over ``db``.
            schedules: Schedule access, defaults to one over ``db``.
        """
        self.db = db
        self.accounts = accounts or AccountDirectory(db)
        self.schedules = schedules or ScheduleStore(db)

    async def validate(self, name: str, email: str, phone: str) -> StudentValidationResult:
        """Confirm a claimed identity matches a registered account.

        Args:
            name: Claimed full name.
            email: Claimed email address.
            phone: Claimed phone number, any formatting.

        Returns:
            StudentValidationResult with the matched user when valid.
        """
        full_email = normalize_email(email)
        user = await self.accounts.find_by_email(full_email) if full_email else None

        if user is None:
            return StudentValidationResult(
                valid=False,
                reason="account_not_found",
                error="Students must have a registered account. Please sign up first.",
            )

        if normalize_phone(user.phone) != normalize_phone(phone):
            logger.debug("Phone mismatch for student: user_id=%s", user.id)
            return StudentValidationResult(
                valid=False,
                reason="phone_mismatch",
                error="The phone number does not match the registered account.",
            )

        if (user.full_name or "").strip() != (name or "").strip():
            logger.debug("Name mismatch for student: user_id=%s", user.id)
            return StudentValidationResult(
                valid=False,
                reason="name_mismatch",
                error="The name does not match the registered account.",
            )

        return StudentValidationResult(valid=True, user_id=user.id, user=user)

    async def check_eligibility(
        self,
        user_id: str,
        course_id: str,
        schedule_id: str,
    ) -> EligibilityResult:
        """Check whether a student can enroll in a course schedule.

        Args:
            user_id: Student account ID.
            course_id: Course ID.
            schedule_id: Training schedule ID.

        Returns:
            EligibilityResult with a reason when not eligible.
        """
        if await self.is_enrolled(user_id, course_id, schedule_id):
            return EligibilityResult(
                eligible=False,
                reason="already_enrolled",
                error="The student is already enrolled in this course.",
            )

        schedule = await self.schedules.get(schedule_id)
        if schedule is None:
            return EligibilityResult(
                eligible=False,
                reason="schedule_not_found",
                error="The training schedule could not be found.",
            )
        if not schedule.is_active:
            return EligibilityResult(
                eligible=False,
                reason="schedule_inactive",
                error="The training schedule is not currently available.",
            )
        if schedule.is_full:
            return EligibilityResult(
                eligible=False,
                reason="seats_full",
                error="The training schedule is full.",
            )

        return EligibilityResult(eligible=True)

    async def is_enrolled(self, user_id: str, course_id: str, schedule_id: str) -> bool:
        """Check for a non-cancelled enrollment on the triple."""
        query = select(func.count(Enrollment.id)).where(
            Enrollment.student_id == user_id,
            Enrollment.course_id == course_id,
            Enrollment.schedule_id == schedule_id,
            Enrollment.status != "cancelled",
        )
        result = await self.db.execute(query)
        return (result.scalar() or 0) > 0
