"""
Credential store.

Thin repository over the `users` collection. Everything that reads or
writes a user document goes through UserStore, which keeps emails
normalized and unique.
"""

from __future__ import annotations

import logging
from typing import Any

from aiquiz.core.errors import DuplicateEmailError
from aiquiz.core.models import User
from aiquiz.core.utils import normalize_email, utc_now
from aiquiz.storage.base import Collections, MetadataStorage

logger = logging.getLogger(__name__)


class UserStore:
    """Persisted manager accounts."""

    collection = Collections.USERS

    def __init__(self, metadata: MetadataStorage):
        self.metadata = metadata

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get(self, user_id: str) -> User | None:
        doc = await self.metadata.get(self.collection, user_id)
        return User.model_validate(doc) if doc else None

    async def get_by_email(self, email: str) -> User | None:
        return await self.find_one({"email": normalize_email(email)})

    async def find_one(self, filters: dict[str, Any]) -> User | None:
        doc = await self.metadata.find_one(self.collection, filters)
        return User.model_validate(doc) if doc else None

    async def find(self, filters: dict[str, Any] | None = None, limit: int = 1000) -> list[User]:
        docs = await self.metadata.query(self.collection, filters, limit=limit)
        return [User.model_validate(doc) for doc in docs]

    async def get_many(self, user_ids: list[str]) -> list[User]:
        if not user_ids:
            return []
        return await self.find({"id": {"$in": list(user_ids)}})

    async def email_taken(self, email: str, exclude_id: str | None = None) -> bool:
        existing = await self.get_by_email(email)
        return existing is not None and existing.id != exclude_id

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def create(self, user: User) -> User:
        """Insert a new user. Raises DuplicateEmailError if the email is taken."""
        user.email = normalize_email(user.email)
        if await self.email_taken(user.email):
            raise DuplicateEmailError(user.email)

        await self.metadata.save(self.collection, user.id, user.to_document())
        logger.info(f"Created user {user.id} ({user.role.value}, active={user.is_active})")
        return user

    async def update(self, user_id: str, updates: dict[str, Any]) -> bool:
        """Apply a partial update as a single write."""
        if "email" in updates and updates["email"] is not None:
            updates["email"] = normalize_email(updates["email"])
            if await self.email_taken(updates["email"], exclude_id=user_id):
                raise DuplicateEmailError(updates["email"])

        return await self.metadata.update(
            self.collection,
            user_id,
            {**updates, "updated_at": utc_now()},
        )
