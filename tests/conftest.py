"""
Shared fixtures.

Every test gets its own settings, in-memory storage and recording email
backend; route tests get an app built around them.
"""

from __future__ import annotations

import asyncio
import re

import pytest
from fastapi.testclient import TestClient

from aiquiz.api.app import create_app
from aiquiz.auth.jwt import create_session_token
from aiquiz.auth.passwords import hash_password
from aiquiz.auth.users import UserStore
from aiquiz.config import Settings
from aiquiz.core.models import User, UserRole
from aiquiz.integrations.email import EmailBackend, EmailMessage
from aiquiz.services.subjects import SubjectStore
from aiquiz.services.topics import TopicStore
from aiquiz.storage import InMemoryMetadataStorage, LocalContentStorage, StorageProvider

ADMIN_EMAIL = "admin@upm.es"
ADMIN_PASSWORD = "admin-secret-1"
PROFESSOR_EMAIL = "profesor@upm.es"
PROFESSOR_PASSWORD = "profesor-secret-1"

TOKEN_IN_LINK = re.compile(r"token=([0-9a-f]{64})")


class RecordingEmailBackend(EmailBackend):
    """Keeps every message instead of sending it."""

    def __init__(self):
        self.sent: list[EmailMessage] = []
        self.accept = True

    async def deliver(self, message: EmailMessage) -> bool:
        self.sent.append(message)
        return self.accept

    def tokens_for(self, email: str) -> list[str]:
        return [
            TOKEN_IN_LINK.search(m.text).group(1)
            for m in self.sent
            if m.to == email
        ]

    def last_token_for(self, email: str) -> str:
        tokens = self.tokens_for(email)
        assert tokens, f"no email with a token was sent to {email}"
        return tokens[-1]


# =============================================================================
# Core fixtures
# =============================================================================


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        environment="test",
        jwt_secret_key="test-secret-key",
        app_base_url="http://manager.test",
        content_dir=str(tmp_path / "content"),
        metadata_backend="memory",
        metadata_path=str(tmp_path / "aiquiz.db"),
        email_backend="console",
        sentry_dsn="",
        super_admin_email="",
        super_admin_password="",
    )


@pytest.fixture
def storage(settings):
    return StorageProvider(
        content=LocalContentStorage(settings.content_dir),
        metadata=InMemoryMetadataStorage(),
    )


@pytest.fixture
def users(storage):
    return UserStore(storage.metadata)


@pytest.fixture
def subjects(storage):
    return SubjectStore(storage.metadata)


@pytest.fixture
def topics(storage):
    return TopicStore(storage.metadata)


@pytest.fixture
def mailbox():
    return RecordingEmailBackend()


@pytest.fixture
def run():
    """Run a coroutine from a synchronous test."""
    return asyncio.run


# =============================================================================
# Seeded users
# =============================================================================


def make_user(users: UserStore, email: str, password: str, role: UserRole, **fields) -> User:
    user = User(
        name=fields.pop("name", email.split("@")[0].title()),
        email=email,
        role=role,
        password_hash=hash_password(password),
        **fields,
    )
    return asyncio.run(users.create(user))


@pytest.fixture
def admin(users):
    return make_user(users, ADMIN_EMAIL, ADMIN_PASSWORD, UserRole.ADMIN, name="Ana Admin")


@pytest.fixture
def professor(users):
    return make_user(users, PROFESSOR_EMAIL, PROFESSOR_PASSWORD, UserRole.PROFESSOR, name="Pablo Profesor")


@pytest.fixture
def auth_headers(settings):
    """Build an Authorization header for a user."""

    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_session_token(user, settings)}"}

    return _headers


# =============================================================================
# App
# =============================================================================


@pytest.fixture
def app(settings, storage, mailbox):
    return create_app(settings=settings, storage=storage, email_backend=mailbox)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
