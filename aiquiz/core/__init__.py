"""Core models, errors and helpers shared by every AIQuiz module."""

from aiquiz.core.errors import (
    AIQuizError,
    DuplicateAcronymError,
    DuplicateEmailError,
    InvitationError,
    NotFoundError,
)
from aiquiz.core.models import FileRecord, Subject, Subtopic, Topic, User, UserRole
from aiquiz.core.utils import generate_id, utc_now

__all__ = [
    "AIQuizError",
    "DuplicateAcronymError",
    "DuplicateEmailError",
    "InvitationError",
    "NotFoundError",
    "FileRecord",
    "Subject",
    "Subtopic",
    "Topic",
    "User",
    "UserRole",
    "generate_id",
    "utc_now",
]
