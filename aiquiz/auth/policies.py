"""
Policies - the single choke point in front of every protected route.

Just use: `ctx: AuthContext = Depends(require_professor())`

Design:
- `require()` returns a FastAPI dependency that resolves to AuthContext
- It extracts the bearer token (header and/or cookie), verifies it,
  loads the user and checks the minimum role
- Missing, malformed, expired or forged tokens → 401
- Valid token but insufficient role → 403
- Only if everything passes does the route handler run
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable

from fastapi import Depends, HTTPException, Request

from aiquiz.api.deps import get_app_settings, get_users
from aiquiz.auth.context import AuthContext
from aiquiz.auth.jwt import TokenExpiredError, TokenInvalidError, decode_session_token
from aiquiz.auth.roles import ROLE_DENIED_MESSAGES, role_satisfies
from aiquiz.auth.users import UserStore
from aiquiz.config import Settings
from aiquiz.core.models import UserRole
from aiquiz.integrations.sentry import set_user

logger = logging.getLogger(__name__)


# =============================================================================
# Token Transport
# =============================================================================


class Transport(str, Enum):
    """Where a bearer token may be read from."""

    HEADER = "header"  # Authorization: Bearer <token>
    COOKIE = "cookie"  # httpOnly cookie set at login


DEFAULT_TRANSPORTS: tuple[Transport, ...] = (Transport.HEADER, Transport.COOKIE)


def _unauthorized(message: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail=message,
        headers={"WWW-Authenticate": "Bearer"},
    )


def extract_token(
    request: Request,
    transports: tuple[Transport, ...],
    cookie_name: str,
) -> str:
    """
    Pull the bearer token out of the request.

    The header wins over the cookie when both are allowed and present.
    """
    if Transport.HEADER in transports:
        header = request.headers.get("authorization")
        if header:
            scheme, _, credentials = header.partition(" ")
            credentials = credentials.strip()
            if scheme.lower() != "bearer" or not credentials:
                raise _unauthorized("Formato de token inválido")
            return credentials

    if Transport.COOKIE in transports:
        token = request.cookies.get(cookie_name)
        if token:
            return token

    raise _unauthorized("Token de autorización no proporcionado")


# =============================================================================
# Policy
# =============================================================================


class Policy:
    """
    What a route demands of its caller.

        Policy()                              # any authenticated user
        Policy(min_role=UserRole.ADMIN)       # admins only
        Policy(transports=(Transport.HEADER,))  # header only, no cookie
    """

    def __init__(
        self,
        min_role: UserRole | None = None,
        transports: tuple[Transport, ...] = DEFAULT_TRANSPORTS,
    ):
        if not transports:
            raise ValueError("A policy needs at least one token transport")
        self.min_role = min_role
        self.transports = tuple(transports)

    async def authenticate(
        self,
        request: Request,
        settings: Settings,
        users: UserStore,
    ) -> AuthContext:
        """Resolve the caller or raise HTTPException (401/403)."""
        token = extract_token(request, self.transports, settings.auth_cookie_name)

        try:
            claims = decode_session_token(token, settings)
        except TokenExpiredError:
            logger.info(f"Rejected expired token on {request.url.path}")
            raise _unauthorized("Token expirado")
        except TokenInvalidError as e:
            logger.warning(f"Rejected invalid token on {request.url.path}: {e}")
            raise _unauthorized("Token inválido")

        user = await users.get(claims.user_id)
        if user is None:
            logger.warning(f"Token for unknown user {claims.user_id} on {request.url.path}")
            raise _unauthorized("Usuario no encontrado")

        if not role_satisfies(claims.role, self.min_role):
            logger.warning(
                f"User {claims.user_id} ({claims.role.value}) denied on {request.url.path}: "
                f"requires {self.min_role.value}"
            )
            raise HTTPException(status_code=403, detail=ROLE_DENIED_MESSAGES[self.min_role])

        set_user(user.id, role=claims.role.value)

        return AuthContext(
            user_id=user.id,
            email=claims.email,
            role=claims.role,
            name=user.name,
        )


# =============================================================================
# Main Interface - the require() function
# =============================================================================


def require(
    min_role: UserRole | None = None,
    transports: tuple[Transport, ...] = DEFAULT_TRANSPORTS,
) -> Callable:
    """
    Require an authenticated caller, optionally with a minimum role.

    Usage:
        @router.delete("/subjects/{subject_id}/professors/{prof_id}")
        async def remove_professor(
            subject_id: str,
            prof_id: str,
            ctx: AuthContext = Depends(require(UserRole.ADMIN)),
        ):
            # ctx is fully populated if we get here
            ...

    Args:
        min_role: Lowest role allowed through (None = any role)
        transports: Where the token may come from

    Returns:
        FastAPI dependency that resolves to AuthContext
    """
    return _create_dependency(Policy(min_role=min_role, transports=transports))


def require_auth(transports: tuple[Transport, ...] = DEFAULT_TRANSPORTS) -> Callable:
    """Just require authentication, no specific role."""
    return require(transports=transports)


def require_professor(transports: tuple[Transport, ...] = DEFAULT_TRANSPORTS) -> Callable:
    """Professors and admins."""
    return require(UserRole.PROFESSOR, transports=transports)


def require_admin(transports: tuple[Transport, ...] = DEFAULT_TRANSPORTS) -> Callable:
    """Admins only."""
    return require(UserRole.ADMIN, transports=transports)


# =============================================================================
# Internal: Create the FastAPI Dependency
# =============================================================================


def _create_dependency(policy: Policy) -> Callable:
    """Create a FastAPI dependency from a policy."""

    async def dependency(
        request: Request,
        settings: Settings = Depends(get_app_settings),
        users: UserStore = Depends(get_users),
    ) -> AuthContext:
        return await policy.authenticate(request, settings, users)

    return dependency
