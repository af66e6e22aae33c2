# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Access token handling.

The account service signs tokens with a shared HS256 secret and this API
verifies them with python-jose. ``create_access_token`` mints tokens with
the same claim layout so scripts and tests can call protected routes.
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Literal

from jose import ExpiredSignatureError, JWTError as JoseJWTError, jwt
from pydantic import BaseModel, Field, ValidationError

from src.core.config.settings import JWTSettings

logger = logging.getLogger(__name__)

TokenType = Literal["access", "refresh"]


class TokenPayload(BaseModel):
    """Claims carried by an account token.

    ``sub`` is the account id. ``exp`` and ``iat`` are unix timestamps and
    ``jti`` is a random id per token.
    """

    sub: str
    type: TokenType
    member_type: str | None = None
    roles: list[str] = Field(default_factory=list)
    exp: int
    iat: int
    jti: str


class JWTError(Exception):
    """A token could not be accepted."""


class TokenExpiredError(JWTError):
    pass


class InvalidTokenError(JWTError):
    pass


class JWTManager:
    """Signs and verifies account tokens with the configured secret."""

    def __init__(self, settings: JWTSettings) -> None:
        self._settings = settings

    @property
    def _key(self) -> str:
        return self._settings.secret_key.get_secret_value()

    def create_access_token(
        self,
        user_id: str,
        member_type: str | None = None,
        roles: list[str] | None = None,
        expires_delta: timedelta | None = None,
    ) -> str:
        """Mint an access token for ``user_id``.

        Args:
            user_id: Account id placed in ``sub``.
            member_type: Optional membership kind claim.
            roles: Role codes; empty when omitted.
            expires_delta: Lifetime override. A negative delta yields a token
                that is already expired.

        Returns:
            The encoded token.
        """
        issued_at = datetime.now(timezone.utc)
        if expires_delta is None:
            expires_delta = timedelta(minutes=self._settings.access_token_expire_minutes)

        claims: dict[str, Any] = {
            "sub": str(user_id),
            "type": "access",
            "member_type": member_type,
            "roles": list(roles or []),
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + expires_delta).timestamp()),
            "jti": secrets.token_urlsafe(16),
        }
        return jwt.encode(claims, self._key, algorithm=self._settings.algorithm)

    def decode_token(
        self,
        token: str,
        expected_type: TokenType | None = None,
    ) -> TokenPayload:
        """Verify ``token`` and return its claims.

        Raises:
            TokenExpiredError: The signature is valid but ``exp`` has passed.
            InvalidTokenError: Bad signature, malformed claims, or a token
                of a type other than ``expected_type``.
        """
        try:
            claims = jwt.decode(token, self._key, algorithms=[self._settings.algorithm])
        except ExpiredSignatureError as e:
            raise TokenExpiredError("Token has expired") from e
        except JoseJWTError as e:
            logger.warning("Rejected token: %s", str(e))
            raise InvalidTokenError(f"Invalid token: {e}") from e

        if expected_type is not None and claims.get("type") != expected_type:
            raise InvalidTokenError(
                f"Expected {expected_type} token, got {claims.get('type')}"
            )

        try:
            return TokenPayload.model_validate(claims)
        except ValidationError as e:
            raise InvalidTokenError(f"Invalid token claims: {e}") from e
