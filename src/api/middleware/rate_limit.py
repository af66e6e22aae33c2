# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Per-client request limits backed by slowapi.

Authenticated calls are counted per account and anonymous ones per remote
address. Two routes carry tighter limits than the default: student
validation, because it reveals whether an email has an account, and
roster upload, because it parses a whole file.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from src.core.config import get_settings

logger = logging.getLogger(__name__)

RATE_LIMIT_VALIDATION = "30/minute"
RATE_LIMIT_UPLOAD = "10/minute"

RETRY_AFTER_SECONDS = 60


def get_client_identifier(request: Request) -> str:
    user = getattr(request.state, "user", None)
    if user is not None:
        return f"user:{user.id}"
    return f"ip:{get_remote_address(request)}"


def build_limiter() -> Limiter:
    config = get_settings().rate_limit
    return Limiter(
        key_func=get_client_identifier,
        default_limits=[f"{config.requests_per_minute}/minute"],
        storage_uri=config.storage_uri,
        enabled=config.enabled,
    )


limiter = build_limiter()


async def rate_limit_exceeded_handler(
    request: Request,
    exc: RateLimitExceeded,
) -> JSONResponse:
    """Answer 429 with a Retry-After hint."""
    logger.warning(
        "Rate limit %s hit by %s on %s",
        exc.detail,
        get_client_identifier(request),
        request.url.path,
    )
    return JSONResponse(
        status_code=429,
        content={"detail": {"kind": "rate_limited", "message": "Too many requests"}},
        headers={"Retry-After": str(RETRY_AFTER_SECONDS)},
    )
