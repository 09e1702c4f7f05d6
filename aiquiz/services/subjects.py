"""
Subject repository over the `subjects` collection.
"""

from __future__ import annotations

import logging
from typing import Any

from aiquiz.core.errors import DuplicateAcronymError, NotFoundError
from aiquiz.core.models import Subject
from aiquiz.core.utils import utc_now
from aiquiz.storage.base import Collections, MetadataStorage

logger = logging.getLogger(__name__)


def normalize_acronym(acronym: str) -> str:
    return acronym.strip().upper()


class SubjectStore:
    collection = Collections.SUBJECTS

    def __init__(self, metadata: MetadataStorage):
        self.metadata = metadata

    async def get(self, subject_id: str) -> Subject | None:
        doc = await self.metadata.get(self.collection, subject_id)
        return Subject.model_validate(doc) if doc else None

    async def require(self, subject_id: str) -> Subject:
        """Like get(), but raises NotFoundError."""
        subject = await self.get(subject_id)
        if subject is None:
            raise NotFoundError("Asignatura no encontrada")
        return subject

    async def list_all(self, limit: int = 1000) -> list[Subject]:
        docs = await self.metadata.query(self.collection, limit=limit)
        return [Subject.model_validate(doc) for doc in docs]

    async def acronym_taken(self, acronym: str, exclude_id: str | None = None) -> bool:
        existing = await self.metadata.find_one(self.collection, {"acronym": normalize_acronym(acronym)})
        return existing is not None and existing["id"] != exclude_id

    async def create(self, subject: Subject) -> Subject:
        """Insert a subject. Raises DuplicateAcronymError if the acronym is taken."""
        subject.acronym = normalize_acronym(subject.acronym)
        if await self.acronym_taken(subject.acronym):
            raise DuplicateAcronymError(subject.acronym)

        await self.metadata.save(self.collection, subject.id, subject.model_dump())
        logger.info(f"Created subject {subject.id} ({subject.acronym})")
        return subject

    async def update(self, subject_id: str, updates: dict[str, Any]) -> bool:
        if updates.get("acronym"):
            updates["acronym"] = normalize_acronym(updates["acronym"])
            if await self.acronym_taken(updates["acronym"], exclude_id=subject_id):
                raise DuplicateAcronymError(updates["acronym"])

        return await self.metadata.update(
            self.collection,
            subject_id,
            {**updates, "updated_at": utc_now()},
        )

    async def delete(self, subject_id: str) -> bool:
        return await self.metadata.delete(self.collection, subject_id)

    async def add_professor(self, subject: Subject, user_id: str) -> Subject:
        if user_id not in subject.professors:
            subject.professors.append(user_id)
            await self.update(subject.id, {"professors": subject.professors})
        return subject

    async def remove_professor(self, subject: Subject, user_id: str) -> Subject:
        if user_id not in subject.professors:
            raise NotFoundError("El profesor no está asignado a esta asignatura")
        subject.professors.remove(user_id)
        await self.update(subject.id, {"professors": subject.professors})
        return subject
