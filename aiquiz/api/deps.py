"""
Request dependencies for process-wide collaborators.

Everything here is built once in the app lifespan (see aiquiz.api.app)
and read back from `app.state`, so tests can build an app around their
own settings, storage and email backend.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Request

from aiquiz.config import Settings
from aiquiz.integrations.email import EmailService
from aiquiz.storage.base import StorageProvider

if TYPE_CHECKING:
    # aiquiz.auth imports this module for its policies
    from aiquiz.auth.users import UserStore
    from aiquiz.services.subjects import SubjectStore
    from aiquiz.services.topics import TopicStore


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_storage(request: Request) -> StorageProvider:
    return request.app.state.storage


def get_users(request: Request) -> UserStore:
    return request.app.state.users


def get_email_service(request: Request) -> EmailService:
    return request.app.state.email


def get_subjects(request: Request) -> SubjectStore:
    return request.app.state.subjects


def get_topics(request: Request) -> TopicStore:
    return request.app.state.topics
