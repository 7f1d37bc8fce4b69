"""Authorization hook consulted before an agent run touches any state."""

from __future__ import annotations

from typing import Protocol

from ..errors import AuthorizationError


class Authorizer(Protocol):
    async def authorize(self, user_id: str) -> None:
        """Return normally, or raise :class:`AuthorizationError`."""
        ...


class RequireUserAuthorizer:
    """Accepts any non-empty user id."""

    async def authorize(self, user_id: str) -> None:
        if not user_id or not str(user_id).strip():
            raise AuthorizationError("A user id is required")
