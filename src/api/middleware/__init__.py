# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Request middleware: token authentication and per-client rate limits."""

from src.api.middleware.auth import AuthMiddleware, CurrentUser
from src.api.middleware.rate_limit import limiter

__all__ = [
    "AuthMiddleware",
    "CurrentUser",
    "limiter",
]
