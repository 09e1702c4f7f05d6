"""
Tests for session and download JWTs.
"""

from datetime import timedelta

import jwt
import pytest

from aiquiz.auth.jwt import (
    TokenExpiredError,
    TokenInvalidError,
    TokenScopeError,
    create_download_token,
    create_session_token,
    decode_session_token,
    verify_download_token,
)
from aiquiz.core.models import User, UserRole
from aiquiz.core.utils import utc_now


@pytest.fixture
def user():
    return User(
        name="Ana",
        email="ana@upm.es",
        role=UserRole.ADMIN,
        password_hash="x",
    )


def forge(settings, secret=None, **claims):
    now = utc_now()
    payload = {"iat": now, "exp": now + timedelta(hours=1), **claims}
    return jwt.encode(payload, secret or settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


class TestSessionToken:
    def test_round_trip(self, settings, user):
        claims = decode_session_token(create_session_token(user, settings), settings)

        assert claims.user_id == user.id
        assert claims.email == "ana@upm.es"
        assert claims.role == UserRole.ADMIN
        assert claims.expires_at - claims.issued_at == timedelta(days=7)

    def test_expired(self, settings, user):
        past = utc_now() - timedelta(days=8)
        token = forge(
            settings,
            userId=user.id, email=user.email, role="admin", type="access",
            iat=past, exp=past + timedelta(days=7),
        )
        with pytest.raises(TokenExpiredError):
            decode_session_token(token, settings)

    def test_wrong_signature(self, settings, user):
        token = forge(
            settings, secret="someone-else",
            userId=user.id, email=user.email, role="admin", type="access",
        )
        with pytest.raises(TokenInvalidError):
            decode_session_token(token, settings)

    def test_garbage(self, settings):
        with pytest.raises(TokenInvalidError):
            decode_session_token("not.a.jwt", settings)

    def test_missing_expiry(self, settings, user):
        token = jwt.encode(
            {"userId": user.id, "email": user.email, "role": "admin", "type": "access"},
            settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(TokenInvalidError):
            decode_session_token(token, settings)

    def test_unknown_role(self, settings, user):
        token = forge(settings, userId=user.id, email=user.email, role="root", type="access")
        with pytest.raises(TokenInvalidError):
            decode_session_token(token, settings)

    def test_download_token_is_not_a_session(self, settings):
        with pytest.raises(TokenInvalidError):
            decode_session_token(create_download_token("file_1", settings), settings)


class TestDownloadToken:
    def test_valid_for_its_file(self, settings):
        token = create_download_token("file_1", settings)

        claims = verify_download_token(token, "file_1", settings)

        assert claims.file_id == "file_1"
        assert claims.expires_at <= utc_now() + timedelta(minutes=5, seconds=1)

    def test_other_file(self, settings):
        token = create_download_token("file_1", settings)
        with pytest.raises(TokenScopeError):
            verify_download_token(token, "file_2", settings)

    def test_session_token_is_not_a_download(self, settings, user):
        with pytest.raises(TokenScopeError):
            verify_download_token(create_session_token(user, settings), user.id, settings)

    def test_expired(self, settings):
        past = utc_now() - timedelta(minutes=10)
        token = forge(settings, fileId="file_1", type="download", iat=past, exp=past + timedelta(minutes=5))
        with pytest.raises(TokenExpiredError):
            verify_download_token(token, "file_1", settings)

    def test_secret_rotation_invalidates(self, settings):
        token = create_download_token("file_1", settings)
        rotated = settings.model_copy(update={"jwt_secret_key": "rotated"})
        with pytest.raises(TokenInvalidError):
            verify_download_token(token, "file_1", rotated)
