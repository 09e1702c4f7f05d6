"""
Core data models for AIQuiz.

These are the documents kept in the metadata store: users, the subjects
they teach with their topics and subtopics, and the files uploaded to
subtopics.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from aiquiz.core.utils import generate_id, utc_now


# =============================================================================
# Enums
# =============================================================================


class UserRole(str, Enum):
    """Platform-wide role of a manager user."""

    ADMIN = "admin"          # Manages subjects and invites professors
    PROFESSOR = "professor"  # Curates content of assigned subjects


# =============================================================================
# User
# =============================================================================


# Never leave the API
SENSITIVE_USER_FIELDS = {
    "password_hash",
    "invitation_token",
    "invitation_expires",
    "reset_password_token",
    "reset_password_expires",
}


class User(BaseModel):
    """
    A manager account.

    Invited professors start inactive with an invitation token; they
    become active once they choose a password.
    """

    id: str = Field(default_factory=lambda: generate_id("user"))
    name: str
    email: str
    role: UserRole = UserRole.PROFESSOR
    faculty: str | None = None
    department: str | None = None

    # Credentials
    password_hash: str
    is_active: bool = True

    # One-time tokens (SHA-256 of the plaintext sent by email)
    invitation_token: str | None = None
    invitation_expires: datetime | None = None
    reset_password_token: str | None = None
    reset_password_expires: datetime | None = None

    # Audit
    last_login: datetime | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def to_document(self) -> dict[str, Any]:
        """Full document as stored."""
        return self.model_dump()

    def public(self) -> dict[str, Any]:
        """JSON-safe view without credentials or token hashes."""
        return self.model_dump(mode="json", exclude=SENSITIVE_USER_FIELDS)


# =============================================================================
# Subject
# =============================================================================


class Subject(BaseModel):
    """A university course with its administrators and professors."""

    id: str = Field(default_factory=lambda: generate_id("subj"))
    title: str
    acronym: str
    description: str = ""
    administrators: list[str] = Field(default_factory=list)
    professors: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def public(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


# =============================================================================
# File
# =============================================================================


class FileRecord(BaseModel):
    """
    An uploaded document attached to a subtopic.

    The bytes live in content storage under `content_key`; this record
    only carries metadata.
    """

    id: str = Field(default_factory=lambda: generate_id("file"))
    subject_id: str
    topic_id: str
    subtopic_id: str
    original_name: str
    mime_type: str = "application/octet-stream"
    size: int = 0
    content_key: str
    uploaded_by: str | None = None
    created_at: datetime = Field(default_factory=utc_now)

    def public(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude={"content_key"})


# =============================================================================
# Topics
# =============================================================================


class Topic(BaseModel):
    """A unit of a subject. Ordered within the subject."""

    id: str = Field(default_factory=lambda: generate_id("topic"))
    subject_id: str
    title: str
    description: str = ""
    order: int = 1
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def public(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class Subtopic(BaseModel):
    """A section of a topic; files are uploaded to subtopics."""

    id: str = Field(default_factory=lambda: generate_id("subtopic"))
    subject_id: str
    topic_id: str
    title: str
    description: str = ""
    content: str = ""
    order: int = 1
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def public(self) -> dict[str, Any]:
        return self.model_dump(mode="json")
