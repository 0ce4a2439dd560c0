"""Session holding the identity resolved by the authentication provider."""
from __future__ import annotations

import logging
from typing import Any, Mapping

from .enums import Role
from .errors import AuthenticationRequired, Forbidden
from .schemas import AuthUser

logger = logging.getLogger(__name__)


def _parse_role(value: Any) -> Role:
    text = str(value or "").strip().lower()
    try:
        return Role(text)
    except ValueError:
        return Role.USER


def user_from_claims(claims: Mapping[str, Any], token: str | None = None) -> AuthUser:
    """Build an :class:`AuthUser` from ID token claims.

    The role claim is read case-insensitively and anything unknown means a
    plain user.
    """

    user_id = str(claims.get("sub") or claims.get("userId") or "").strip()
    if not user_id:
        raise AuthenticationRequired()
    return AuthUser(
        user_id=user_id,
        role=_parse_role(claims.get("custom:role") or claims.get("role")),
        token=token,
        email=claims.get("email"),
    )


class Session:
    """Current identity; empty until the provider resolves a user."""

    def __init__(self, user: AuthUser | None = None) -> None:
        self.user = user

    @property
    def resolved(self) -> bool:
        return self.user is not None and bool(self.user.user_id)

    @property
    def token(self) -> str | None:
        return self.user.token if self.user else None

    def resolve(self, user: AuthUser) -> None:
        logger.info("Session resolved for %s user", user.role.value)
        self.user = user

    def clear(self) -> None:
        self.user = None

    def require_user(self) -> AuthUser:
        if not self.resolved:
            raise AuthenticationRequired()
        assert self.user is not None
        return self.user

    def require_admin(self) -> AuthUser:
        user = self.require_user()
        if not user.is_admin:
            raise Forbidden()
        return user


__all__ = ["Session", "user_from_claims"]
