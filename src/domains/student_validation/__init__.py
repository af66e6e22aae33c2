# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student identity and eligibility checks.

Students listed on an application must already have an account. The
validator confirms a claimed identity matches that account and that the
student can still enroll in the requested schedule.
"""

from src.domains.student_validation.service import (
    EligibilityResult,
    StudentValidationResult,
    StudentValidator,
    normalize_email,
    normalize_phone,
)

__all__ = [
    "EligibilityResult",
    "StudentValidationResult",
    "StudentValidator",
    "normalize_email",
    "normalize_phone",
]
