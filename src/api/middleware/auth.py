# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Bearer token authentication for the class application API.

Account sign-in happens elsewhere; this service only trusts the access
tokens that come with each request. A request without a usable token is
not rejected here. It reaches the route with no user attached, and the
route dependencies in src.api.dependencies decide whether that is
acceptable.
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from src.core.config import get_settings
from src.domains.auth.jwt import JWTError, JWTManager, TokenPayload

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"

# Served without looking at credentials at all.
PUBLIC_PATHS = frozenset({
    "/",
    "/health",
    "/health/ready",
    "/docs",
    "/redoc",
    "/openapi.json",
    "/api/v1/class-applications/template",
})


@dataclass(frozen=True)
class CurrentUser:
    """Account acting on the request, as described by its access token.

    Attributes:
        id: Account id, used as the application owner id.
        member_type: Membership kind of the account, if the token carries it.
        roles: Role codes granted to the account.
    """

    id: str
    member_type: str | None = None
    roles: tuple[str, ...] = ()

    @classmethod
    def from_payload(cls, payload: TokenPayload) -> "CurrentUser":
        return cls(
            id=payload.sub,
            member_type=payload.member_type,
            roles=tuple(payload.roles),
        )

    def has_role(self, role: str) -> bool:
        return role in self.roles

    @property
    def is_admin(self) -> bool:
        """Platform operators may complete submitted applications."""
        return self.has_role(ADMIN_ROLE)


def bearer_token(header: str | None) -> str | None:
    """Return the credential of a ``Bearer <token>`` header value, if any."""
    if not header:
        return None
    scheme, _, credential = header.strip().partition(" ")
    credential = credential.strip()
    if scheme.lower() != "bearer" or not credential or " " in credential:
        return None
    return credential


class AuthMiddleware(BaseHTTPMiddleware):
    """Attaches a CurrentUser to ``request.state.user`` when the token checks out."""

    def __init__(self, app: ASGIApp) -> None:
        super().__init__(app)
        self._jwt_manager = JWTManager(get_settings().jwt)

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        request.state.user = (
            None if request.url.path in PUBLIC_PATHS else self._authenticate(request)
        )
        return await call_next(request)

    def _authenticate(self, request: Request) -> CurrentUser | None:
        token = bearer_token(request.headers.get("Authorization"))
        if token is None:
            return None

        try:
            payload = self._jwt_manager.decode_token(token, expected_type="access")
        except JWTError as e:
            logger.debug("Ignoring credentials on %s: %s", request.url.path, str(e))
            return None

        return CurrentUser.from_payload(payload)


def get_current_user(request: Request) -> CurrentUser | None:
    """Return the user attached by AuthMiddleware, or None for anonymous calls."""
    return getattr(request.state, "user", None)
