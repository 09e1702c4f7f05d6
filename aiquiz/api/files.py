"""
Subtopic files and their download links.

Files are managed with a session token like every other manager route.
Downloading is different: the browser follows a plain link, so the link
carries its own short-lived token scoped to a single file.
"""

from __future__ import annotations

import logging
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import Response

from aiquiz.api.deps import get_app_settings, get_storage, get_subjects, get_topics
from aiquiz.api.subjects import load_subject
from aiquiz.auth.context import AuthContext
from aiquiz.auth.jwt import (
    TokenExpiredError,
    TokenInvalidError,
    TokenScopeError,
    create_download_token,
    verify_download_token,
)
from aiquiz.auth.policies import require_professor
from aiquiz.config import Settings
from aiquiz.core.models import FileRecord
from aiquiz.services.subjects import SubjectStore
from aiquiz.services.topics import TopicStore
from aiquiz.storage.base import Collections, StorageProvider

logger = logging.getLogger(__name__)

BASE_PATH = "/api/manager/subjects/{subject_id}/topics/{topic_id}/subtopics/{subtopic_id}/files"

router = APIRouter(prefix=BASE_PATH, tags=["files"])


async def _get_file(
    storage: StorageProvider,
    subject_id: str,
    topic_id: str,
    subtopic_id: str,
    file_id: str,
) -> FileRecord:
    """The file record, only if it belongs to this subtopic."""
    doc = await storage.metadata.get(Collections.FILES, file_id)
    if doc is not None:
        record = FileRecord.model_validate(doc)
        if (record.subject_id, record.topic_id, record.subtopic_id) == (subject_id, topic_id, subtopic_id):
            return record
    raise HTTPException(status_code=404, detail="Archivo no encontrado")


def _download_path(record: FileRecord) -> str:
    base = BASE_PATH.format(
        subject_id=record.subject_id,
        topic_id=record.topic_id,
        subtopic_id=record.subtopic_id,
    )
    return f"{base}/{record.id}/download"


# =============================================================================
# Managed (session token)
# =============================================================================

@router.post("", status_code=201)
async def upload_file(
    subject_id: str,
    topic_id: str,
    subtopic_id: str,
    file: UploadFile = File(...),
    ctx: AuthContext = Depends(require_professor()),
    subjects: SubjectStore = Depends(get_subjects),
    topics: TopicStore = Depends(get_topics),
    storage: StorageProvider = Depends(get_storage),
):
    subject = await load_subject(subject_id, ctx, subjects)
    subtopic = await topics.locate(subject.id, topic_id, subtopic_id)

    data = await file.read()
    if not data:
        raise HTTPException(status_code=400, detail="No se ha proporcionado ningún archivo")

    record = FileRecord(
        subject_id=subject.id,
        topic_id=subtopic.topic_id,
        subtopic_id=subtopic.id,
        original_name=file.filename or "archivo",
        mime_type=file.content_type or "application/octet-stream",
        size=len(data),
        content_key="",
        uploaded_by=ctx.user_id,
    )
    record.content_key = f"{subject.id}/{record.id}"

    await storage.content.put(record.content_key, data, record.mime_type)
    await storage.metadata.save(Collections.FILES, record.id, record.model_dump())

    logger.info(f"User {ctx.user_id} uploaded {record.id} ({record.size} bytes) to {subject.id}")
    return {
        "success": True,
        "message": "Archivo subido correctamente",
        "file": record.public(),
    }


@router.get("")
async def list_files(
    subject_id: str,
    topic_id: str,
    subtopic_id: str,
    ctx: AuthContext = Depends(require_professor()),
    subjects: SubjectStore = Depends(get_subjects),
    topics: TopicStore = Depends(get_topics),
    storage: StorageProvider = Depends(get_storage),
):
    subject = await load_subject(subject_id, ctx, subjects)
    await topics.locate(subject.id, topic_id, subtopic_id)
    docs = await storage.metadata.query(
        Collections.FILES,
        {"subject_id": subject_id, "topic_id": topic_id, "subtopic_id": subtopic_id},
        limit=1000,
    )
    return {
        "success": True,
        "files": [FileRecord.model_validate(doc).public() for doc in docs],
    }


@router.post("/{file_id}/download-link")
async def create_download_link(
    subject_id: str,
    topic_id: str,
    subtopic_id: str,
    file_id: str,
    ctx: AuthContext = Depends(require_professor()),
    settings: Settings = Depends(get_app_settings),
    subjects: SubjectStore = Depends(get_subjects),
    storage: StorageProvider = Depends(get_storage),
):
    """Mint a short-lived link that downloads this one file."""
    await load_subject(subject_id, ctx, subjects)
    record = await _get_file(storage, subject_id, topic_id, subtopic_id, file_id)

    token = create_download_token(record.id, settings)
    logger.info(f"User {ctx.user_id} created download link for {record.id}")
    return {
        "success": True,
        "downloadUrl": f"{_download_path(record)}?token={token}",
        "expiresIn": settings.download_token_expire_minutes * 60,
    }


@router.delete("/{file_id}")
async def delete_file(
    subject_id: str,
    topic_id: str,
    subtopic_id: str,
    file_id: str,
    ctx: AuthContext = Depends(require_professor()),
    subjects: SubjectStore = Depends(get_subjects),
    storage: StorageProvider = Depends(get_storage),
):
    await load_subject(subject_id, ctx, subjects)
    record = await _get_file(storage, subject_id, topic_id, subtopic_id, file_id)

    await storage.content.delete(record.content_key)
    await storage.metadata.delete(Collections.FILES, record.id)

    logger.info(f"User {ctx.user_id} deleted file {record.id}")
    return {"success": True, "message": "Archivo eliminado correctamente"}


# =============================================================================
# Download (download token only)
# =============================================================================

@router.get("/{file_id}/download")
async def download_file(
    subject_id: str,
    topic_id: str,
    subtopic_id: str,
    file_id: str,
    token: str | None = Query(default=None),
    settings: Settings = Depends(get_app_settings),
    storage: StorageProvider = Depends(get_storage),
):
    if not token:
        raise HTTPException(status_code=403, detail="Token de descarga requerido")

    try:
        verify_download_token(token, file_id, settings)
    except (TokenExpiredError, TokenInvalidError) as e:
        logger.info(f"Rejected download token for {file_id}: {e}")
        raise HTTPException(status_code=403, detail="Token de descarga inválido o expirado")
    except TokenScopeError:
        logger.warning(f"Download token presented for the wrong file ({file_id})")
        raise HTTPException(status_code=403, detail="Token no válido para este archivo")

    record = await _get_file(storage, subject_id, topic_id, subtopic_id, file_id)
    try:
        data = await storage.content.get(record.content_key)
    except FileNotFoundError:
        logger.error(f"File {record.id} has no stored content ({record.content_key})")
        raise HTTPException(status_code=404, detail="Archivo no encontrado")

    return Response(
        content=data,
        media_type=record.mime_type,
        headers={
            "Content-Disposition": f"attachment; filename*=UTF-8''{quote(record.original_name)}",
            "Cache-Control": "no-store",
        },
    )
