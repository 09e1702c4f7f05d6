"""
Subject routes and professor roster.

Adding a professor is where invitations are issued
(see aiquiz.services.invitations).
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from aiquiz.api.deps import get_email_service, get_storage, get_subjects, get_topics, get_users
from aiquiz.auth.context import AuthContext
from aiquiz.auth.policies import require_admin, require_professor
from aiquiz.auth.users import UserStore
from aiquiz.core.errors import InvitationError
from aiquiz.core.models import Subject
from aiquiz.core.utils import is_valid_email
from aiquiz.integrations.email import EmailService
from aiquiz.services.files import delete_subject_content
from aiquiz.services.invitations import InvitationResult, invite_professor
from aiquiz.services.subjects import SubjectStore
from aiquiz.services.topics import TopicStore
from aiquiz.storage.base import StorageProvider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/manager/subjects", tags=["subjects"])


# =============================================================================
# Request Models
# =============================================================================

class ProfessorInvite(BaseModel):
    email: str | None = None
    name: str | None = None


class CreateSubjectRequest(BaseModel):
    title: str | None = None
    acronym: str | None = None
    description: str = ""
    professors: list[ProfessorInvite] = []


class UpdateSubjectRequest(BaseModel):
    title: str | None = None
    acronym: str | None = None
    description: str | None = None


# =============================================================================
# Helpers
# =============================================================================

def can_access(subject: Subject, ctx: AuthContext) -> bool:
    """Admins see every subject; professors only the ones they belong to."""
    return ctx.is_admin or ctx.user_id in subject.professors or ctx.user_id in subject.administrators


async def load_subject(subject_id: str, ctx: AuthContext, subjects: SubjectStore) -> Subject:
    """Fetch a subject the caller may work on, or raise 404/403."""
    subject = await subjects.require(subject_id)
    if not can_access(subject, ctx):
        raise HTTPException(status_code=403, detail="No tienes acceso a esta asignatura")
    return subject


def _invitation_summary(result: InvitationResult) -> dict:
    return {
        "userId": result.user.id,
        "email": result.user.email,
        "isNewUser": result.is_new_invitation,
        "invitationSent": result.invitation_issued,
        "emailSent": result.email_sent,
    }


def _inviter_name(ctx: AuthContext) -> str:
    return ctx.name or "Administrador"


# =============================================================================
# Subjects
# =============================================================================

@router.get("")
async def list_subjects(
    ctx: AuthContext = Depends(require_professor()),
    subjects: SubjectStore = Depends(get_subjects),
):
    visible = [s for s in await subjects.list_all() if can_access(s, ctx)]
    return {"success": True, "subjects": [s.public() for s in visible]}


@router.post("", status_code=201)
async def create_subject(
    data: CreateSubjectRequest,
    ctx: AuthContext = Depends(require_professor()),
    subjects: SubjectStore = Depends(get_subjects),
    users: UserStore = Depends(get_users),
    email_service: EmailService = Depends(get_email_service),
):
    """
    Create a subject. The creator administers it and teaches it; every
    listed professor is invited.
    """
    if not (data.title or "").strip() or not (data.acronym or "").strip():
        raise HTTPException(status_code=400, detail="Título y acrónimo son obligatorios")

    subject = await subjects.create(Subject(
        title=data.title.strip(),
        acronym=data.acronym,
        description=data.description,
        administrators=[ctx.user_id],
        professors=[ctx.user_id],
    ))

    invitations = []
    for invite in data.professors:
        if not invite.email or not is_valid_email(invite.email):
            invitations.append({"email": invite.email, "error": "Formato de email inválido"})
            continue
        try:
            result = await invite_professor(
                users, email_service, invite.email, invite.name, subject, _inviter_name(ctx)
            )
        except InvitationError as e:
            invitations.append({"email": invite.email, "error": e.message})
            continue
        await subjects.add_professor(subject, result.user.id)
        invitations.append(_invitation_summary(result))

    return {
        "success": True,
        "message": "Asignatura creada correctamente",
        "subject": subject.public(),
        "invitations": invitations,
    }


@router.get("/{subject_id}")
async def get_subject(
    subject_id: str,
    ctx: AuthContext = Depends(require_professor()),
    subjects: SubjectStore = Depends(get_subjects),
    users: UserStore = Depends(get_users),
):
    subject = await load_subject(subject_id, ctx, subjects)
    professors = await users.get_many(subject.professors)
    return {
        "success": True,
        "subject": {
            **subject.public(),
            "professorDetails": [p.public() for p in professors],
        },
    }


@router.put("/{subject_id}")
async def update_subject(
    subject_id: str,
    data: UpdateSubjectRequest,
    ctx: AuthContext = Depends(require_professor()),
    subjects: SubjectStore = Depends(get_subjects),
):
    """Edit title, acronym and description. The roster has its own routes."""
    if not data.title or not data.title.strip():
        raise HTTPException(status_code=400, detail="El título es obligatorio")

    subject = await load_subject(subject_id, ctx, subjects)

    updates = {
        "title": data.title.strip(),
        "description": (data.description or "").strip(),
    }
    if data.acronym and data.acronym.strip():
        updates["acronym"] = data.acronym

    # DuplicateAcronymError surfaces as 400
    await subjects.update(subject.id, updates)
    updated = await subjects.require(subject.id)

    return {
        "success": True,
        "message": "Asignatura actualizada correctamente",
        "subject": updated.public(),
    }


@router.delete("/{subject_id}")
async def delete_subject(
    subject_id: str,
    ctx: AuthContext = Depends(require_admin()),
    subjects: SubjectStore = Depends(get_subjects),
    topics: TopicStore = Depends(get_topics),
    storage: StorageProvider = Depends(get_storage),
):
    """Delete a subject with its topics, subtopics and files."""
    subject = await subjects.require(subject_id)

    files_deleted = await delete_subject_content(storage, subject.id)
    topics_deleted = await topics.delete_subject_topics(subject.id)
    await subjects.delete(subject.id)

    logger.info(
        f"User {ctx.user_id} deleted subject {subject.id} "
        f"({topics_deleted} topics, {files_deleted} files)"
    )
    return {"success": True, "message": "Asignatura eliminada correctamente"}


# =============================================================================
# Professors
# =============================================================================

@router.post("/{subject_id}/professors")
async def add_professor(
    subject_id: str,
    data: ProfessorInvite,
    ctx: AuthContext = Depends(require_admin()),
    subjects: SubjectStore = Depends(get_subjects),
    users: UserStore = Depends(get_users),
    email_service: EmailService = Depends(get_email_service),
):
    """Assign a professor by email, inviting them if their account is pending."""
    if not data.email:
        raise HTTPException(status_code=400, detail="El email es obligatorio")
    if not is_valid_email(data.email):
        raise HTTPException(status_code=400, detail="Formato de email inválido")

    subject = await subjects.require(subject_id)

    existing = await users.get_by_email(data.email)
    if existing is not None and existing.id in subject.professors:
        raise HTTPException(status_code=400, detail="El profesor ya está asignado a esta asignatura")

    # InvitationError (non-professor account) surfaces as 400
    result = await invite_professor(
        users, email_service, data.email, data.name, subject, _inviter_name(ctx)
    )
    await subjects.add_professor(subject, result.user.id)

    if result.is_new_invitation:
        message = "Profesor invitado correctamente. Se ha enviado un email de invitación."
    elif result.invitation_issued:
        message = "Profesor añadido correctamente. Se ha reenviado la invitación."
    else:
        message = "Profesor añadido correctamente"

    return {
        "success": True,
        "message": message,
        "professor": result.user.public(),
        "invitation": _invitation_summary(result),
    }


@router.delete("/{subject_id}/professors/{professor_id}")
async def remove_professor(
    subject_id: str,
    professor_id: str,
    ctx: AuthContext = Depends(require_admin()),
    subjects: SubjectStore = Depends(get_subjects),
):
    subject = await subjects.require(subject_id)
    await subjects.remove_professor(subject, professor_id)
    logger.info(f"User {ctx.user_id} removed professor {professor_id} from {subject_id}")
    return {"success": True, "message": "Profesor eliminado correctamente"}
