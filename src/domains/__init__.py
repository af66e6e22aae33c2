# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Business rules of the class application workflow, one package per area:

    auth: JWT decoding for the acting user.
    class_application: Draft-to-submitted application workflow.
    enrollment: Enrollment fan-out and cancellation.
    roster: Bulk roster parsing and template generation.
    student_validation: Student identity and eligibility checks.
"""
