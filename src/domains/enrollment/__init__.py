# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment fan-out.

Turns submitted applications into per-student enrollments and keeps
schedule seat counts in step with them.
"""

from src.domains.enrollment.service import EnrollmentService

__all__ = ["EnrollmentService"]
