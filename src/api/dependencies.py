# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Request dependencies shared by the API routes.

Routes take a request-scoped session from ``get_db`` and an account from
``require_auth`` or ``require_admin``:

    @router.post("/{application_id}/submit")
    async def submit(
        application_id: str,
        db: AsyncSession = Depends(get_db),
        current_user: CurrentUser = Depends(require_auth),
    ): ...
"""

from typing import AsyncGenerator

from fastapi import HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.middleware.auth import CurrentUser, get_current_user
from src.core.config import get_settings
from src.infrastructure.database.connection import (
    close_database,
    get_session,
    init_database,
)


async def init_db() -> None:
    await init_database(get_settings())


async def close_db() -> None:
    await close_database()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a session that commits when the route returns normally."""
    async with get_session() as session:
        yield session


def require_auth(request: Request) -> CurrentUser:
    """Return the calling account or answer 401.

    Raises:
        HTTPException: No valid access token came with the request.
    """
    user = get_current_user(request)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def require_admin(request: Request) -> CurrentUser:
    """Like ``require_auth`` but also answers 403 for non-operators."""
    user = require_auth(request)
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user
