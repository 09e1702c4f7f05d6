"""
Bootstrap the first admin account from SUPER_ADMIN_* settings.
"""

from __future__ import annotations

import logging

from aiquiz.auth.passwords import hash_password_async, is_strong_enough
from aiquiz.auth.users import UserStore
from aiquiz.config import Settings
from aiquiz.core.models import User, UserRole
from aiquiz.core.utils import is_valid_email

logger = logging.getLogger(__name__)


def super_admin_configured(settings: Settings) -> bool:
    return bool(settings.super_admin_email and settings.super_admin_password)


async def seed_admin(users: UserStore, settings: Settings) -> User | None:
    """
    Create the super admin if no account uses its email yet.

    Returns the new user, or None if an account with that email exists.

    Raises:
        ValueError: Missing or invalid SUPER_ADMIN_EMAIL / SUPER_ADMIN_PASSWORD
    """
    if not settings.super_admin_email or not is_valid_email(settings.super_admin_email):
        raise ValueError("SUPER_ADMIN_EMAIL must be set to a valid email address")
    if not is_strong_enough(settings.super_admin_password):
        raise ValueError("SUPER_ADMIN_PASSWORD must be set (at least 8 characters)")

    if await users.get_by_email(settings.super_admin_email):
        logger.info("Super admin already exists, nothing to do")
        return None

    user = await users.create(User(
        name=settings.super_admin_name,
        email=settings.super_admin_email,
        role=UserRole.ADMIN,
        faculty=settings.super_admin_faculty or None,
        department=settings.super_admin_department or None,
        password_hash=await hash_password_async(settings.super_admin_password),
        is_active=True,
    ))
    logger.info(f"Seeded super admin {user.id}")
    return user
