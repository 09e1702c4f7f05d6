# =============================================================================
# Password Hashing
# =============================================================================
#
# PBKDF2-HMAC-SHA256 with a per-password random salt. Stored format:
#
#     pbkdf2_sha256$<iterations>$<salt>$<hex digest>
#
# The iteration count travels with the hash so it can be raised later
# without invalidating existing passwords.
#
# =============================================================================

from __future__ import annotations

import asyncio
import hashlib
import secrets

ALGORITHM = "pbkdf2_sha256"
ITERATIONS = 100_000
MIN_PASSWORD_LENGTH = 8


def _derive(password: str, salt: str, iterations: int) -> str:
    return hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        salt.encode("utf-8"),
        iterations=iterations,
    ).hex()


def hash_password(password: str) -> str:
    """Hash a password for storage."""
    salt = secrets.token_hex(16)
    digest = _derive(password, salt, ITERATIONS)
    return f"{ALGORITHM}${ITERATIONS}${salt}${digest}"


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its stored hash. Malformed hashes never match."""
    try:
        algorithm, iterations, salt, stored = password_hash.split("$")
        if algorithm != ALGORITHM:
            return False
        digest = _derive(password, salt, int(iterations))
    except (ValueError, AttributeError):
        return False
    return secrets.compare_digest(digest, stored)


def is_strong_enough(password: str) -> bool:
    """Minimum length policy applied by every flow that sets a password."""
    return len(password) >= MIN_PASSWORD_LENGTH


def unusable_password() -> str:
    """Random hash for accounts that must not log in yet (pending invitations)."""
    return hash_password(secrets.token_hex(20))


# Hashing is deliberately slow; keep it off the event loop.

async def hash_password_async(password: str) -> str:
    return await asyncio.to_thread(hash_password, password)


async def verify_password_async(password: str, password_hash: str) -> bool:
    return await asyncio.to_thread(verify_password, password, password_hash)
