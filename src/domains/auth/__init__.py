# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication domain services.

Tokens are issued by the account service; this package verifies them.

Exports:
    JWTManager: JWT token creation and validation.
"""

from src.domains.auth.jwt import (
    InvalidTokenError,
    JWTError,
    JWTManager,
    TokenExpiredError,
    TokenPayload,
)

__all__ = [
    "JWTManager",
    "JWTError",
    "TokenExpiredError",
    "InvalidTokenError",
    "TokenPayload",
]
