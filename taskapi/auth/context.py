"""
Principal - the "who" for each request.

This is the lightweight object handed to route handlers once the bearer
credential has been verified and resolved to a stored user. It exists
only for the duration of one request and is never persisted.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from taskapi.core.models import Role, User, UserPublic


@dataclass(frozen=True)
class Principal:
    """
    Authenticated identity attached to a request.

    Usage in routes:
        async def my_route(principal: Principal = Depends(require_auth())):
            print(f"User {principal.id} ({principal.role})")
    """

    id: str
    role: str = Role.USER.value
    name: str = ""
    email: str = ""
    created_at: datetime | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value

    @classmethod
    def from_user(cls, user: User) -> Principal:
        return cls(
            id=user.id,
            role=user.role,
            name=user.name,
            email=user.email,
            created_at=user.created_at,
        )

    def public(self) -> UserPublic:
        return UserPublic(
            id=self.id,
            name=self.name,
            email=self.email,
            role=self.role,
            created_at=self.created_at,
        )
