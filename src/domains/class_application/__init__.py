# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Class application domain package.

This package provides the application workflow:
- Cart conversion into a single draft per owner
- Per-course rosters, added individually or by bulk upload
- Payment metadata and submission with enrollment fan-out
- Cancellation and completion
"""

from src.domains.class_application.service import ClassApplicationService

__all__ = [
    "ClassApplicationService",
]
