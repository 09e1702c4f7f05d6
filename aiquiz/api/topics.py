"""
Topics and subtopics of a subject.

Every route needs a professor session with access to the subject.
Deleting a topic or subtopic deletes the files uploaded under it.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from aiquiz.api.deps import get_storage, get_subjects, get_topics
from aiquiz.api.subjects import load_subject
from aiquiz.auth.context import AuthContext
from aiquiz.auth.policies import require_professor
from aiquiz.services.files import delete_files
from aiquiz.services.subjects import SubjectStore
from aiquiz.services.topics import TopicStore
from aiquiz.storage.base import StorageProvider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/manager/subjects/{subject_id}/topics", tags=["topics"])

TITLE_REQUIRED = "El título es obligatorio"


# =============================================================================
# Request Models
# =============================================================================

class TopicRequest(BaseModel):
    title: str | None = None
    description: str | None = None
    order: int | None = None


class SubtopicRequest(BaseModel):
    title: str | None = None
    description: str | None = None
    content: str | None = None
    order: int | None = None


def _require_title(title: str | None) -> str:
    if not title or not title.strip():
        raise HTTPException(status_code=400, detail=TITLE_REQUIRED)
    return title.strip()


# =============================================================================
# Topics
# =============================================================================

@router.get("")
async def list_topics(
    subject_id: str,
    ctx: AuthContext = Depends(require_professor()),
    subjects: SubjectStore = Depends(get_subjects),
    topics: TopicStore = Depends(get_topics),
):
    subject = await load_subject(subject_id, ctx, subjects)
    return {
        "success": True,
        "topics": [t.public() for t in await topics.list_topics(subject.id)],
    }


@router.post("", status_code=201)
async def create_topic(
    subject_id: str,
    data: TopicRequest,
    ctx: AuthContext = Depends(require_professor()),
    subjects: SubjectStore = Depends(get_subjects),
    topics: TopicStore = Depends(get_topics),
):
    title = _require_title(data.title)
    subject = await load_subject(subject_id, ctx, subjects)

    topic = await topics.create_topic(
        subject.id,
        title,
        description=(data.description or "").strip(),
        order=data.order,
    )
    return {
        "success": True,
        "message": "Tema creado correctamente",
        "topic": {**topic.public(), "subtopics": []},
    }


@router.get("/{topic_id}")
async def get_topic(
    subject_id: str,
    topic_id: str,
    ctx: AuthContext = Depends(require_professor()),
    subjects: SubjectStore = Depends(get_subjects),
    topics: TopicStore = Depends(get_topics),
):
    """A topic with its subtopics in order."""
    subject = await load_subject(subject_id, ctx, subjects)
    topic = await topics.require_topic(subject.id, topic_id)
    subtopics = await topics.list_subtopics(topic)
    return {
        "success": True,
        "topic": {**topic.public(), "subtopics": [s.public() for s in subtopics]},
    }


@router.put("/{topic_id}")
async def update_topic(
    subject_id: str,
    topic_id: str,
    data: TopicRequest,
    ctx: AuthContext = Depends(require_professor()),
    subjects: SubjectStore = Depends(get_subjects),
    topics: TopicStore = Depends(get_topics),
):
    title = _require_title(data.title)
    subject = await load_subject(subject_id, ctx, subjects)
    topic = await topics.require_topic(subject.id, topic_id)

    updates = {"title": title, "description": (data.description or "").strip()}
    if data.order is not None:
        updates["order"] = data.order

    topic = await topics.update_topic(topic, updates)
    return {"success": True, "message": "Tema actualizado correctamente", "topic": topic.public()}


@router.delete("/{topic_id}")
async def delete_topic(
    subject_id: str,
    topic_id: str,
    ctx: AuthContext = Depends(require_professor()),
    subjects: SubjectStore = Depends(get_subjects),
    topics: TopicStore = Depends(get_topics),
    storage: StorageProvider = Depends(get_storage),
):
    subject = await load_subject(subject_id, ctx, subjects)
    topic = await topics.require_topic(subject.id, topic_id)

    await delete_files(storage, {"topic_id": topic.id})
    await topics.delete_topic(topic)

    logger.info(f"User {ctx.user_id} deleted topic {topic.id}")
    return {"success": True, "message": "Tema eliminado correctamente"}


# =============================================================================
# Subtopics
# =============================================================================

@router.get("/{topic_id}/subtopics")
async def list_subtopics(
    subject_id: str,
    topic_id: str,
    ctx: AuthContext = Depends(require_professor()),
    subjects: SubjectStore = Depends(get_subjects),
    topics: TopicStore = Depends(get_topics),
):
    subject = await load_subject(subject_id, ctx, subjects)
    topic = await topics.require_topic(subject.id, topic_id)
    return {
        "success": True,
        "subtopics": [s.public() for s in await topics.list_subtopics(topic)],
    }


@router.post("/{topic_id}/subtopics", status_code=201)
async def create_subtopic(
    subject_id: str,
    topic_id: str,
    data: SubtopicRequest,
    ctx: AuthContext = Depends(require_professor()),
    subjects: SubjectStore = Depends(get_subjects),
    topics: TopicStore = Depends(get_topics),
):
    title = _require_title(data.title)
    subject = await load_subject(subject_id, ctx, subjects)
    topic = await topics.require_topic(subject.id, topic_id)

    subtopic = await topics.create_subtopic(
        topic,
        title,
        description=(data.description or "").strip(),
        content=(data.content or "").strip(),
        order=data.order,
    )
    return {
        "success": True,
        "message": "Subtema creado correctamente",
        "subtopic": subtopic.public(),
    }


@router.get("/{topic_id}/subtopics/{subtopic_id}")
async def get_subtopic(
    subject_id: str,
    topic_id: str,
    subtopic_id: str,
    ctx: AuthContext = Depends(require_professor()),
    subjects: SubjectStore = Depends(get_subjects),
    topics: TopicStore = Depends(get_topics),
):
    subject = await load_subject(subject_id, ctx, subjects)
    topic = await topics.require_topic(subject.id, topic_id)
    subtopic = await topics.require_subtopic(topic, subtopic_id)
    return {
        "success": True,
        "subtopic": {
            **subtopic.public(),
            "topicTitle": topic.title,
            "subjectTitle": subject.title,
        },
    }


@router.put("/{topic_id}/subtopics/{subtopic_id}")
async def update_subtopic(
    subject_id: str,
    topic_id: str,
    subtopic_id: str,
    data: SubtopicRequest,
    ctx: AuthContext = Depends(require_professor()),
    subjects: SubjectStore = Depends(get_subjects),
    topics: TopicStore = Depends(get_topics),
):
    """Partial update: only the fields sent change."""
    subject = await load_subject(subject_id, ctx, subjects)
    subtopic = await topics.locate(subject.id, topic_id, subtopic_id)

    updates = {}
    if data.title is not None:
        updates["title"] = _require_title(data.title)
    if data.description is not None:
        updates["description"] = data.description.strip()
    if data.content is not None:
        updates["content"] = data.content.strip()
    if data.order is not None:
        updates["order"] = data.order

    subtopic = await topics.update_subtopic(subtopic, updates)
    return {
        "success": True,
        "message": "Subtema actualizado correctamente",
        "subtopic": subtopic.public(),
    }


@router.delete("/{topic_id}/subtopics/{subtopic_id}")
async def delete_subtopic(
    subject_id: str,
    topic_id: str,
    subtopic_id: str,
    ctx: AuthContext = Depends(require_professor()),
    subjects: SubjectStore = Depends(get_subjects),
    topics: TopicStore = Depends(get_topics),
    storage: StorageProvider = Depends(get_storage),
):
    subject = await load_subject(subject_id, ctx, subjects)
    subtopic = await topics.locate(subject.id, topic_id, subtopic_id)

    await delete_files(storage, {"subtopic_id": subtopic.id})
    await topics.delete_subtopic(subtopic)

    logger.info(f"User {ctx.user_id} deleted subtopic {subtopic.id}")
    return {"success": True, "message": "Subtema eliminado correctamente"}
