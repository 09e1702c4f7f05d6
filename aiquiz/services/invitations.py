"""
Professor invitations.

Adding a professor to a subject by email either creates a pending
(inactive) account or reuses an existing one. Pending accounts get a
fresh invitation token every time; active professors are just assigned.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta

from aiquiz.auth.passwords import unusable_password
from aiquiz.auth.tokens import TokenPurpose, issue_token, token_ttl
from aiquiz.auth.users import UserStore
from aiquiz.core.errors import InvitationError
from aiquiz.core.models import Subject, User, UserRole
from aiquiz.core.utils import normalize_email
from aiquiz.integrations.email import EmailService

logger = logging.getLogger(__name__)


@dataclass
class InvitationResult:
    """Outcome of inviting one professor."""

    user: User
    is_new_invitation: bool = False  # account was created by this call
    invitation_issued: bool = False  # a new token was issued
    email_sent: bool = False


async def invite_professor(
    users: UserStore,
    email_service: EmailService,
    email: str,
    name: str | None,
    subject: Subject,
    inviter_name: str,
    ttl: timedelta | None = None,
) -> InvitationResult:
    """
    Find or create a professor account for `email` and invite it if pending.

    Raises:
        InvitationError: The address belongs to a non-professor account
    """
    email = normalize_email(email)
    ttl = ttl or token_ttl(TokenPurpose.INVITATION, email_service.settings)

    user = await users.get_by_email(email)
    if user is None:
        user = await users.create(User(
            name=(name or "").strip() or email.split("@")[0],
            email=email,
            role=UserRole.PROFESSOR,
            password_hash=unusable_password(),
            is_active=False,
        ))
        result = InvitationResult(user=user, is_new_invitation=True)
    elif user.role != UserRole.PROFESSOR:
        raise InvitationError("El usuario existe pero no es profesor")
    else:
        result = InvitationResult(user=user)

    if user.is_active:
        logger.info(f"Professor {user.id} already active, no invitation for {subject.id}")
        return result

    token = await issue_token(users, user.id, TokenPurpose.INVITATION, ttl)
    result.invitation_issued = True

    try:
        result.email_sent = await email_service.send_professor_invitation(
            email=user.email,
            professor_name=user.name,
            subject_title=subject.title,
            invitation_token=token,
            inviter_name=inviter_name,
        )
    except Exception:
        logger.exception(f"Invitation email to user {user.id} raised")

    if not result.email_sent:
        logger.warning(f"Invitation email to user {user.id} was not delivered")
    return result
