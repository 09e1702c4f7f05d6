# =============================================================================
# One-Time Tokens (invitation & password reset)
# =============================================================================
#
# Lifecycle:
#   issue  -> 32 random bytes, hex-encoded, handed to the caller once.
#             Only SHA-256(token) and an expiry are stored on the user.
#   verify -> hash the presented token, look up a user whose stored hash
#             matches and whose expiry is still in the future.
#   clear  -> the flow that consumes the token removes hash + expiry in
#             the same write that applies its effect.
#
# One outstanding token per purpose per user: issuing again overwrites
# the stored hash, so the previous plaintext stops matching.
#
# =============================================================================

from __future__ import annotations

import hashlib
import logging
import secrets
from datetime import timedelta
from enum import Enum
from typing import Any

from aiquiz.auth.users import UserStore
from aiquiz.config import Settings
from aiquiz.core.models import User
from aiquiz.core.utils import utc_now

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32
PURGE_BATCH = 500


class TokenPurpose(str, Enum):
    """What a one-time token authorizes."""

    INVITATION = "invitation"
    RESET = "reset"


# purpose -> (hash field, expiry field) on the user document
TOKEN_FIELDS: dict[TokenPurpose, tuple[str, str]] = {
    TokenPurpose.INVITATION: ("invitation_token", "invitation_expires"),
    TokenPurpose.RESET: ("reset_password_token", "reset_password_expires"),
}


def generate_token() -> str:
    """High-entropy plaintext token (64 hex chars)."""
    return secrets.token_hex(TOKEN_BYTES)


def hash_token(token: str) -> str:
    """SHA-256 hex digest; the only form a token is ever stored in."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def token_ttl(purpose: TokenPurpose, settings: Settings) -> timedelta:
    """Configured lifetime for a purpose (7 days invitation, 1 hour reset)."""
    if purpose == TokenPurpose.INVITATION:
        return timedelta(days=settings.invitation_token_ttl_days)
    return timedelta(minutes=settings.reset_token_ttl_minutes)


def token_updates(token: str, purpose: TokenPurpose, ttl: timedelta) -> dict[str, Any]:
    """Document fields that store `token` for `purpose`."""
    hash_field, expires_field = TOKEN_FIELDS[purpose]
    return {
        hash_field: hash_token(token),
        expires_field: utc_now() + ttl,
    }


def clear_token_fields(purpose: TokenPurpose) -> dict[str, Any]:
    """Update that removes the stored token for `purpose`."""
    hash_field, expires_field = TOKEN_FIELDS[purpose]
    return {hash_field: None, expires_field: None}


async def issue_token(
    users: UserStore,
    user_id: str,
    purpose: TokenPurpose,
    ttl: timedelta,
) -> str:
    """
    Issue a token for `purpose`, replacing any outstanding one.

    Returns the plaintext; it is not recoverable afterwards.
    """
    token = generate_token()
    await users.update(user_id, token_updates(token, purpose, ttl))
    logger.info(f"Issued {purpose.value} token for user {user_id} (ttl={ttl})")
    return token


async def find_user_by_token(
    users: UserStore,
    token: str,
    purpose: TokenPurpose,
) -> User | None:
    """
    User holding a live token for `purpose`, or None.

    Expired and never-issued tokens are indistinguishable here.
    """
    hash_field, expires_field = TOKEN_FIELDS[purpose]
    return await users.find_one({
        hash_field: hash_token(token),
        expires_field: {"$gt": utc_now()},
    })


async def purge_expired_tokens(users: UserStore) -> int:
    """
    Clear token hashes whose expiry has passed.

    Verification already ignores them; this only tidies storage.
    Returns the number of tokens removed.
    """
    now = utc_now()
    purged = 0
    for purpose, (_, expires_field) in TOKEN_FIELDS.items():
        # Cleared users stop matching, so each pass sees the next batch
        while True:
            batch = await users.find({expires_field: {"$lte": now}}, limit=PURGE_BATCH)
            if not batch:
                break
            for user in batch:
                await users.update(user.id, clear_token_fields(purpose))
                purged += 1
    if purged:
        logger.info(f"Purged {purged} expired one-time tokens")
    return purged
