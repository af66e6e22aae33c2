# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Version 1 of the HTTP API, mounted under /api/v1."""

from fastapi import APIRouter

from src.api.v1 import class_applications

router = APIRouter(prefix="/api/v1")

router.include_router(
    class_applications.router,
    prefix="/class-applications",
    tags=["Class Applications"],
)

__all__ = ["router"]
