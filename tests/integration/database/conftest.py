# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest fixtures for database integration tests.

Provides a database engine, sessions, seeded collaborator data (accounts,
courses, schedules, carts) and a ClassApplicationService bound to them.

Tests run against a throwaway SQLite file by default. Set
TEST_DATABASE_URL to run them against PostgreSQL instead.
"""

import os
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine

from src.core.config.settings import Settings, UploadSettings
from src.domains.class_application import ClassApplicationService
from src.infrastructure.database import build_sessionmaker
from src.infrastructure.database.models import (
    Base,
    CartItem,
    Course,
    TrainingSchedule,
    User,
)
from src.infrastructure.storage import LocalRosterFileStorage
from src.models.class_application import StudentPayload


@dataclass(frozen=True)
class SeedUser:
    """Account data kept outside the session so rollbacks never expire it."""

    id: str
    email: str
    full_name: str
    phone: str

    def payload(self, **overrides: str) -> StudentPayload:
        """Build the claimed identity for this account."""
        data = {"name": self.full_name, "email": self.email, "phone": self.phone}
        data.update(overrides)
        return StudentPayload(**data)


@dataclass(frozen=True)
class SeedCourse:
    """A course offering: course, its schedule and prices."""

    id: str
    schedule_id: str
    title: str
    price: int
    discounted_price: int


@dataclass(frozen=True)
class Seed:
    """Seeded collaborator data."""

    owner: SeedUser
    other_owner: SeedUser
    students: list[SeedUser]
    design: SeedCourse
    analytics: SeedCourse
    tiny: SeedCourse
    inactive: SeedCourse


def roster_csv(students: list[SeedUser]) -> bytes:
    """Build a CSV roster listing the given students."""
    lines = ["name,email,phone,company,position"]
    for student in students:
        lines.append(f"{student.full_name},{student.email},{student.phone},Acme,Staff")
    return ("\n".join(lines) + "\n").encode("utf-8")


@pytest.fixture(scope="session")
def database_url(tmp_path_factory: pytest.TempPathFactory) -> str:
    """Get database URL for tests."""
    url = os.environ.get("TEST_DATABASE_URL")
    if url:
        return url
    path = tmp_path_factory.mktemp("db") / "class_applications.db"
    return f"sqlite+aiosqlite:///{path}"


@pytest_asyncio.fixture(scope="function")
async def db_engine(database_url: str) -> AsyncGenerator[AsyncEngine, None]:
    """Create async engine with a fresh schema."""
    engine = create_async_engine(database_url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Create async session configured like the application's."""
    async_session = build_sessionmaker(db_engine)

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def other_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """A second session, standing in for a concurrent request."""
    async_session = build_sessionmaker(db_engine)

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def seed(db_session: AsyncSession) -> Seed:
    """Seed accounts, courses, schedules and carts."""
    owner = User(email="buyer@acme.example.com", full_name="Park Jisoo", phone="010-5555-0000")
    other_owner = User(email="hr@globex.example.com", full_name="Choi Hana", phone="010-6666-0000")
    students = [
        User(
            email=f"student{i:02d}@example.com",
            full_name=f"Student {i:02d}",
            phone=f"010-1000-{i:04d}",
        )
        for i in range(1, 9)
    ]
    db_session.add_all([owner, other_owner, *students])

    design = Course(title="Service Design Basics", price=350000, discounted_price=300000)
    analytics = Course(title="Data Analytics with Python", price=450000, discounted_price=None)
    tiny = Course(title="Executive Coaching", price=900000, discounted_price=None)
    inactive = Course(
        title="Retired Course", price=100000, discounted_price=None, is_active=False
    )
    db_session.add_all([design, analytics, tiny, inactive])
    await db_session.flush()

    def schedule(course: Course, seats: int) -> TrainingSchedule:
        return TrainingSchedule(
            course_id=course.id,
            schedule_name=f"{course.title} - October",
            start_date=date(2025, 10, 6),
            end_date=date(2025, 10, 31),
            available_seats=seats,
        )

    schedules = {
        "design": schedule(design, 30),
        "analytics": schedule(analytics, 30),
        "tiny": schedule(tiny, 1),
        "inactive": schedule(inactive, 30),
    }
    db_session.add_all(schedules.values())
    await db_session.flush()

    for cart_owner in (owner, other_owner):
        for course, key in (
            (design, "design"),
            (analytics, "analytics"),
            (tiny, "tiny"),
            (inactive, "inactive"),
        ):
            db_session.add(
                CartItem(
                    user_id=cart_owner.id,
                    course_id=course.id,
                    schedule_id=schedules[key].id,
                    price_at_time=course.effective_price,
                )
            )
    await db_session.commit()

    def seed_user(user: User) -> SeedUser:
        return SeedUser(id=user.id, email=user.email, full_name=user.full_name, phone=user.phone)

    def seed_course(course: Course, key: str) -> SeedCourse:
        return SeedCourse(
            id=course.id,
            schedule_id=schedules[key].id,
            title=course.title,
            price=course.price,
            discounted_price=course.effective_price,
        )

    return Seed(
        owner=seed_user(owner),
        other_owner=seed_user(other_owner),
        students=[seed_user(s) for s in students],
        design=seed_course(design, "design"),
        analytics=seed_course(analytics, "analytics"),
        tiny=seed_course(tiny, "tiny"),
        inactive=seed_course(inactive, "inactive"),
    )


@pytest.fixture
def upload_root(tmp_path: Path) -> Path:
    """Directory where roster files are stored during a test."""
    return tmp_path / "rosters"


@pytest.fixture
def test_settings(upload_root: Path) -> Settings:
    """Application settings with uploads kept in the test directory."""
    return Settings(upload=UploadSettings(directory=str(upload_root)))


@pytest.fixture
def service(
    db_session: AsyncSession,
    test_settings: Settings,
    upload_root: Path,
) -> ClassApplicationService:
    """Create the class application service over the test session."""
    return ClassApplicationService(
        db_session,
        test_settings,
        storage=LocalRosterFileStorage(upload_root),
    )


@pytest.fixture
def other_service(
    other_session: AsyncSession,
    test_settings: Settings,
    upload_root: Path,
) -> ClassApplicationService:
    """Create a second service over an independent session."""
    return ClassApplicationService(
        other_session,
        test_settings,
        storage=LocalRosterFileStorage(upload_root),
    )


@pytest.fixture
def make_roster():
    """Provide the CSV roster builder."""
    return roster_csv


@pytest.fixture
def seats_taken(db_session: AsyncSession):
    """Provide a reader for a schedule's current enrolled count."""

    async def _seats_taken(schedule_id: str) -> int:
        query = select(TrainingSchedule.enrolled_count).where(TrainingSchedule.id == schedule_id)
        result = await db_session.execute(query)
        return result.scalar_one()

    return _seats_taken
