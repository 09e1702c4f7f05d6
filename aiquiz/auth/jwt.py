# =============================================================================
# JWT Sessions and Download Links
# =============================================================================
#
# Two kinds of signed, self-contained tokens share the process secret:
#
#   access    {userId, email, role}  bearer credential after login
#   download  {fileId}               browser-navigable link to one file
#
# Neither is persisted. Every token carries a "type" claim and is only
# accepted where that type is expected.
#
# =============================================================================

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any
import logging

from pydantic import BaseModel
import jwt

from aiquiz.config import Settings
from aiquiz.core.models import User, UserRole
from aiquiz.core.utils import utc_now

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"
DOWNLOAD_TOKEN_TYPE = "download"


# =============================================================================
# Models
# =============================================================================

class SessionClaims(BaseModel):
    """Validated claims of an access token."""
    user_id: str
    email: str
    role: UserRole
    issued_at: datetime
    expires_at: datetime


class DownloadClaims(BaseModel):
    """Validated claims of a download token."""
    file_id: str
    expires_at: datetime


# =============================================================================
# Errors
# =============================================================================

class TokenError(Exception):
    """Base exception for token errors."""
    pass


class TokenExpiredError(TokenError):
    """Token has expired."""
    pass


class TokenInvalidError(TokenError):
    """Token is invalid, malformed, or of the wrong type."""
    pass


class TokenScopeError(TokenError):
    """Token is genuine but was issued for another resource or purpose."""
    pass


# =============================================================================
# Encoding / Decoding
# =============================================================================

def _encode(claims: dict[str, Any], lifetime: timedelta, settings: Settings) -> str:
    now = utc_now()
    payload = {
        **claims,
        "iat": now,
        "exp": now + lifetime,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str, settings: Settings) -> dict[str, Any]:
    """
    Verify signature and expiry, return raw claims.

    Raises:
        TokenExpiredError: Token has expired
        TokenInvalidError: Bad signature or malformed token
    """
    try:
        return jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp", "iat"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpiredError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenInvalidError(f"Invalid token: {e}")


def _timestamp(value: Any) -> datetime:
    return datetime.fromtimestamp(value, tz=timezone.utc)


# =============================================================================
# Sessions
# =============================================================================

def create_session_token(user: User, settings: Settings) -> str:
    """Sign a bearer token for a user who just proved their password."""
    return _encode(
        {
            "userId": user.id,
            "email": user.email,
            "role": user.role.value,
            "type": ACCESS_TOKEN_TYPE,
        },
        timedelta(days=settings.jwt_expire_days),
        settings,
    )


def decode_session_token(token: str, settings: Settings) -> SessionClaims:
    """
    Validate a bearer token.

    Raises:
        TokenExpiredError: Token has expired
        TokenInvalidError: Token is invalid or not an access token
    """
    payload = decode_token(token, settings)

    if payload.get("type") != ACCESS_TOKEN_TYPE:
        raise TokenInvalidError(f"Expected {ACCESS_TOKEN_TYPE} token, got {payload.get('type')}")

    try:
        return SessionClaims(
            user_id=payload["userId"],
            email=payload["email"],
            role=UserRole(payload["role"]),
            issued_at=_timestamp(payload["iat"]),
            expires_at=_timestamp(payload["exp"]),
        )
    except (KeyError, ValueError) as e:
        raise TokenInvalidError(f"Malformed access token claims: {e}")


# =============================================================================
# Download links
# =============================================================================

def create_download_token(file_id: str, settings: Settings) -> str:
    """Short-lived token that authorizes downloading exactly one file."""
    return _encode(
        {"fileId": file_id, "type": DOWNLOAD_TOKEN_TYPE},
        timedelta(minutes=settings.download_token_expire_minutes),
        settings,
    )


def verify_download_token(token: str, file_id: str, settings: Settings) -> DownloadClaims:
    """
    Validate a download token against the file being requested.

    Raises:
        TokenExpiredError: Token has expired
        TokenInvalidError: Bad signature or malformed token
        TokenScopeError: Valid token for another file, or not a download token
    """
    payload = decode_token(token, settings)

    if payload.get("type") != DOWNLOAD_TOKEN_TYPE or payload.get("fileId") != file_id:
        raise TokenScopeError(f"Token not valid for file {file_id}")

    return DownloadClaims(file_id=file_id, expires_at=_timestamp(payload["exp"]))
