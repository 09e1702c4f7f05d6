"""
Topic and subtopic repository.

Topics belong to a subject and subtopics to a topic; both are kept in
`order`. Lookups are always scoped by their parent, so an id from
another subject or topic reads as not found.
"""

from __future__ import annotations

import logging
from typing import Any

from aiquiz.core.errors import NotFoundError
from aiquiz.core.models import Subtopic, Topic
from aiquiz.core.utils import utc_now
from aiquiz.storage.base import Collections, MetadataStorage

logger = logging.getLogger(__name__)

TOPIC_NOT_FOUND = "Tema no encontrado"
SUBTOPIC_NOT_FOUND = "Subtema no encontrado"


class TopicStore:
    def __init__(self, metadata: MetadataStorage):
        self.metadata = metadata

    async def _next_order(self, collection: str, filters: dict[str, Any]) -> int:
        docs = await self.metadata.query(collection, filters, limit=10_000)
        return max((doc["order"] for doc in docs), default=0) + 1

    async def _delete_all(self, collection: str, filters: dict[str, Any]) -> int:
        deleted = 0
        while True:
            docs = await self.metadata.query(collection, filters, limit=500)
            if not docs:
                return deleted
            for doc in docs:
                await self.metadata.delete(collection, doc["id"])
                deleted += 1

    # -------------------------------------------------------------------------
    # Topics
    # -------------------------------------------------------------------------

    async def list_topics(self, subject_id: str) -> list[Topic]:
        docs = await self.metadata.query(Collections.TOPICS, {"subject_id": subject_id}, limit=1000)
        return sorted((Topic.model_validate(doc) for doc in docs), key=lambda t: t.order)

    async def require_topic(self, subject_id: str, topic_id: str) -> Topic:
        doc = await self.metadata.get(Collections.TOPICS, topic_id)
        if doc is None or doc["subject_id"] != subject_id:
            raise NotFoundError(TOPIC_NOT_FOUND)
        return Topic.model_validate(doc)

    async def create_topic(
        self,
        subject_id: str,
        title: str,
        description: str = "",
        order: int | None = None,
    ) -> Topic:
        """Append a topic; without `order` it goes after the last one."""
        if not order:
            order = await self._next_order(Collections.TOPICS, {"subject_id": subject_id})
        topic = Topic(subject_id=subject_id, title=title, description=description, order=order)
        await self.metadata.save(Collections.TOPICS, topic.id, topic.model_dump())
        logger.info(f"Created topic {topic.id} in {subject_id}")
        return topic

    async def update_topic(self, topic: Topic, updates: dict[str, Any]) -> Topic:
        updates = {**updates, "updated_at": utc_now()}
        await self.metadata.update(Collections.TOPICS, topic.id, updates)
        return topic.model_copy(update=updates)

    async def delete_topic(self, topic: Topic) -> None:
        """Delete a topic and its subtopics."""
        removed = await self._delete_all(Collections.SUBTOPICS, {"topic_id": topic.id})
        await self.metadata.delete(Collections.TOPICS, topic.id)
        logger.info(f"Deleted topic {topic.id} ({removed} subtopics)")

    async def delete_subject_topics(self, subject_id: str) -> int:
        """Delete every topic and subtopic of a subject. Returns topics removed."""
        await self._delete_all(Collections.SUBTOPICS, {"subject_id": subject_id})
        return await self._delete_all(Collections.TOPICS, {"subject_id": subject_id})

    # -------------------------------------------------------------------------
    # Subtopics
    # -------------------------------------------------------------------------

    async def list_subtopics(self, topic: Topic) -> list[Subtopic]:
        docs = await self.metadata.query(Collections.SUBTOPICS, {"topic_id": topic.id}, limit=1000)
        return sorted((Subtopic.model_validate(doc) for doc in docs), key=lambda s: s.order)

    async def require_subtopic(self, topic: Topic, subtopic_id: str) -> Subtopic:
        doc = await self.metadata.get(Collections.SUBTOPICS, subtopic_id)
        if doc is None or doc["topic_id"] != topic.id:
            raise NotFoundError(SUBTOPIC_NOT_FOUND)
        return Subtopic.model_validate(doc)

    async def locate(self, subject_id: str, topic_id: str, subtopic_id: str) -> Subtopic:
        """Resolve a subject/topic/subtopic path, or raise NotFoundError."""
        topic = await self.require_topic(subject_id, topic_id)
        return await self.require_subtopic(topic, subtopic_id)

    async def create_subtopic(
        self,
        topic: Topic,
        title: str,
        description: str = "",
        content: str = "",
        order: int | None = None,
    ) -> Subtopic:
        if not order:
            order = await self._next_order(Collections.SUBTOPICS, {"topic_id": topic.id})
        subtopic = Subtopic(
            subject_id=topic.subject_id,
            topic_id=topic.id,
            title=title,
            description=description,
            content=content,
            order=order,
        )
        await self.metadata.save(Collections.SUBTOPICS, subtopic.id, subtopic.model_dump())
        logger.info(f"Created subtopic {subtopic.id} in {topic.id}")
        return subtopic

    async def update_subtopic(self, subtopic: Subtopic, updates: dict[str, Any]) -> Subtopic:
        updates = {**updates, "updated_at": utc_now()}
        await self.metadata.update(Collections.SUBTOPICS, subtopic.id, updates)
        return subtopic.model_copy(update=updates)

    async def delete_subtopic(self, subtopic: Subtopic) -> None:
        await self.metadata.delete(Collections.SUBTOPICS, subtopic.id)
        logger.info(f"Deleted subtopic {subtopic.id}")
