# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Gateways to the collaborators the application workflow consumes.

Catalog, accounts, schedules and the cart are owned by other parts of the
system. The workflow only needs a handful of reads and two guarded writes,
exposed here over the caller's session so that everything a submission
touches commits or rolls back together.

- CatalogGateway.resolve_cart_courses: cart course IDs -> priced courses
- AccountDirectory.find_by_email: account lookup for identity checks
- ScheduleStore.get / conditional_increment / release: seat accounting
- CartBridge.remove_courses: clear applied courses from the cart
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import and_, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.database.models import CartItem, Course, TrainingSchedule, User
from src.utils.datetime import format_period

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedCourse:
    """A purchasable course offering taken from the cart."""

    course_id: str
    schedule_id: str
    name: str
    period: str | None
    price: int
    discounted_price: int


class CatalogGateway:
    """Resolves cart contents against the course catalog."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def resolve_cart_courses(
        self,
        owner_id: str,
        course_ids: list[str],
    ) -> list[ResolvedCourse]:
        """Resolve course IDs in the owner's cart into priced offerings.

        Only course items whose course and schedule are both active are
        purchasable. When the cart holds the same course twice, the item
        added first wins. Results follow the order of ``course_ids``.

        Args:
            owner_id: Cart owner.
            course_ids: Requested course IDs.

        Returns:
            Resolved courses, possibly fewer than requested.
        """
        if not course_ids:
            return []

        query = (
            select(CartItem, Course, TrainingSchedule)
            .join(Course, Course.id == CartItem.course_id)
            .join(TrainingSchedule, TrainingSchedule.id == CartItem.schedule_id)
            .where(
                CartItem.user_id == owner_id,
                CartItem.item_type == "course",
                CartItem.course_id.in_(course_ids),
                Course.is_active.is_(True),
                TrainingSchedule.is_active.is_(True),
                TrainingSchedule.course_id == Course.id,
            )
            .order_by(CartItem.added_at)
        )
        result = await self.db.execute(query)

        by_course: dict[str, ResolvedCourse] = {}
        for _item, course, schedule in result.all():
            if course.id in by_course:
                continue
            by_course[course.id] = ResolvedCourse(
                course_id=course.id,
                schedule_id=schedule.id,
                name=course.title,
                period=format_period(schedule.start_date, schedule.end_date),
                price=course.price,
                discounted_price=course.effective_price,
            )

        resolved = [by_course[cid] for cid in dict.fromkeys(course_ids) if cid in by_course]
        skipped = set(course_ids) - set(by_course)
        if skipped:
            logger.info(
                "Cart courses not purchasable: owner=%s, skipped=%s",
                owner_id,
                sorted(skipped),
            )
        return resolved


class AccountDirectory:
    """Read-only access to registered accounts."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def find_by_email(self, email: str) -> User | None:
        """Find an account by its full email address, case-insensitively."""
        query = select(User).where(func.lower(User.email) == email.strip().lower())
        result = await self.db.execute(query)
        return result.scalar_one_or_none()


class ScheduleStore:
    """Seat accounting on training schedules.

    Seat counts are only changed with conditional UPDATE statements, so the
    check and the write happen in one statement and two concurrent
    submissions can never push ``enrolled_count`` past ``available_seats``.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get(self, schedule_id: str) -> TrainingSchedule | None:
        """Load a schedule by ID with current seat counts."""
        query = (
            select(TrainingSchedule)
            .where(TrainingSchedule.id == schedule_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def conditional_increment(self, schedule_id: str) -> bool:
        """Take one seat if the schedule is active and not full.

        Returns:
            True if a seat was taken, False if none was available.
        """
        stmt = (
            update(TrainingSchedule)
            .where(
                and_(
                    TrainingSchedule.id == schedule_id,
                    TrainingSchedule.is_active.is_(True),
                    TrainingSchedule.enrolled_count < TrainingSchedule.available_seats,
                )
            )
            .values(enrolled_count=TrainingSchedule.enrolled_count + 1)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    async def release(self, schedule_id: str) -> bool:
        """Give back one seat.

        Returns:
            True if a seat was released, False if the count was already zero.
        """
        stmt = (
            update(TrainingSchedule)
            .where(
                TrainingSchedule.id == schedule_id,
                TrainingSchedule.enrolled_count > 0,
            )
            .values(enrolled_count=TrainingSchedule.enrolled_count - 1)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1


class CartBridge:
    """Removes applied courses from the owner's cart."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def remove_courses(self, owner_id: str, course_ids: list[str]) -> int:
        """Delete course items for the given courses from the cart.

        Returns:
            Number of cart items removed.
        """
        if not course_ids:
            return 0
        stmt = (
            delete(CartItem)
            .where(
                CartItem.user_id == owner_id,
                CartItem.item_type == "course",
                CartItem.course_id.in_(course_ids),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount or 0
