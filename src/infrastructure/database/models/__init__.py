# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""ORM models.

Importing this package registers every table on ``Base.metadata``.
"""

from src.infrastructure.database.models.account import User
from src.infrastructure.database.models.application import (
    ApplicationCourse,
    ApplicationNumberCounter,
    ApplicationStudent,
    ClassApplication,
)
from src.infrastructure.database.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from src.infrastructure.database.models.cart import CartItem
from src.infrastructure.database.models.catalog import Course, TrainingSchedule
from src.infrastructure.database.models.enrollment import Enrollment

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    # Collaborators
    "User",
    "Course",
    "TrainingSchedule",
    "CartItem",
    # Workflow
    "ClassApplication",
    "ApplicationCourse",
    "ApplicationStudent",
    "ApplicationNumberCounter",
    "Enrollment",
]
