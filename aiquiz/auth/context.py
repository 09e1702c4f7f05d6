"""
Auth context - the "who is calling" for each request.

This is the lightweight object passed to route handlers once the
authorization dependency has accepted the request.
"""

from __future__ import annotations

from dataclasses import dataclass

from aiquiz.core.models import UserRole


@dataclass
class AuthContext:
    """
    Identity of an authenticated request.

    Usage in routes:
        async def my_route(ctx: AuthContext = Depends(require_admin())):
            print(f"User {ctx.user_id} ({ctx.role.value})")
    """

    user_id: str
    email: str
    role: UserRole
    name: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
