"""
Tests for the authorization dependency.

A throwaway app with one route per policy keeps these independent of the
real routers.
"""

from dataclasses import asdict
from datetime import timedelta

import jwt
import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from aiquiz.api.errors import register_exception_handlers
from aiquiz.auth import AuthContext, Transport, require_admin, require_auth, require_professor
from aiquiz.auth.jwt import create_download_token, create_session_token
from aiquiz.auth.roles import role_satisfies
from aiquiz.core.models import User, UserRole
from aiquiz.core.utils import utc_now


@pytest.fixture
def guarded(settings, users):
    app = FastAPI()
    app.state.settings = settings
    app.state.users = users
    register_exception_handlers(app, settings)

    @app.get("/any")
    async def any_route(ctx: AuthContext = Depends(require_auth())):
        return asdict(ctx)

    @app.get("/professor")
    async def professor_route(ctx: AuthContext = Depends(require_professor())):
        return asdict(ctx)

    @app.get("/admin")
    async def admin_route(ctx: AuthContext = Depends(require_admin())):
        return asdict(ctx)

    @app.get("/header-only")
    async def header_only(ctx: AuthContext = Depends(require_auth(transports=(Transport.HEADER,)))):
        return asdict(ctx)

    return TestClient(app)


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def expired_token(settings, user):
    past = utc_now() - timedelta(days=8)
    return jwt.encode(
        {
            "userId": user.id, "email": user.email, "role": user.role.value, "type": "access",
            "iat": past, "exp": past + timedelta(days=7),
        },
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


# =============================================================================
# Rejections (401)
# =============================================================================


class TestUnauthenticated:
    def test_missing_token(self, guarded):
        response = guarded.get("/any")

        assert response.status_code == 401
        assert response.json() == {
            "success": False,
            "message": "Token de autorización no proporcionado",
        }
        assert response.headers["www-authenticate"] == "Bearer"

    @pytest.mark.parametrize("header", ["Token abc", "Bearer", "Bearer   ", "abc"])
    def test_malformed_header(self, guarded, header):
        response = guarded.get("/any", headers={"Authorization": header})

        assert response.status_code == 401
        assert response.json()["message"] == "Formato de token inválido"

    def test_wrong_signature(self, guarded, settings, professor):
        token = jwt.encode(
            {"userId": professor.id, "email": professor.email, "role": "professor",
             "type": "access", "iat": utc_now(), "exp": utc_now() + timedelta(days=1)},
            "not-the-secret",
            algorithm=settings.jwt_algorithm,
        )
        response = guarded.get("/any", headers=bearer(token))

        assert response.status_code == 401
        assert response.json()["message"] == "Token inválido"

    def test_expired(self, guarded, settings, professor):
        response = guarded.get("/any", headers=bearer(expired_token(settings, professor)))

        assert response.status_code == 401
        assert response.json()["message"] == "Token expirado"

    def test_download_token_is_not_a_session(self, guarded, settings):
        response = guarded.get("/any", headers=bearer(create_download_token("file_1", settings)))

        assert response.status_code == 401
        assert response.json()["message"] == "Token inválido"

    def test_deleted_user(self, guarded, settings):
        ghost = User(name="Ghost", email="ghost@upm.es", role=UserRole.ADMIN, password_hash="x")
        response = guarded.get("/any", headers=bearer(create_session_token(ghost, settings)))

        assert response.status_code == 401
        assert response.json()["message"] == "Usuario no encontrado"


# =============================================================================
# Roles (403 / 200)
# =============================================================================


class TestRoles:
    def test_professor_allowed_on_professor_route(self, guarded, auth_headers, professor):
        response = guarded.get("/professor", headers=auth_headers(professor))

        assert response.status_code == 200
        assert response.json() == {
            "user_id": professor.id,
            "email": professor.email,
            "role": "professor",
            "name": professor.name,
        }

    def test_admin_outranks_professor(self, guarded, auth_headers, admin):
        assert guarded.get("/professor", headers=auth_headers(admin)).status_code == 200
        assert guarded.get("/admin", headers=auth_headers(admin)).status_code == 200

    def test_professor_denied_admin_route(self, guarded, auth_headers, professor):
        response = guarded.get("/admin", headers=auth_headers(professor))

        assert response.status_code == 403
        assert response.json() == {
            "success": False,
            "message": "Acceso denegado. Se requieren permisos de administrador",
        }

    def test_role_comes_from_token(self, guarded, settings, users, run, professor):
        """A token minted before a promotion keeps its original role."""
        token = create_session_token(professor, settings)
        run(users.update(professor.id, {"role": "admin"}))

        assert guarded.get("/admin", headers=bearer(token)).status_code == 403

    def test_role_ordering(self):
        assert role_satisfies(UserRole.ADMIN, UserRole.PROFESSOR)
        assert role_satisfies(UserRole.PROFESSOR, UserRole.PROFESSOR)
        assert not role_satisfies(UserRole.PROFESSOR, UserRole.ADMIN)
        assert role_satisfies("professor", None)
        assert not role_satisfies("student", UserRole.PROFESSOR)


# =============================================================================
# Transports
# =============================================================================


class TestTransports:
    def test_cookie_accepted_by_default(self, guarded, settings, professor):
        guarded.cookies.set(settings.auth_cookie_name, create_session_token(professor, settings))

        response = guarded.get("/any")

        assert response.status_code == 200
        assert response.json()["user_id"] == professor.id

    def test_header_only_ignores_cookie(self, guarded, settings, professor):
        guarded.cookies.set(settings.auth_cookie_name, create_session_token(professor, settings))

        response = guarded.get("/header-only")

        assert response.status_code == 401
        assert response.json()["message"] == "Token de autorización no proporcionado"

    def test_header_wins_over_cookie(self, guarded, settings, auth_headers, admin, professor):
        guarded.cookies.set(settings.auth_cookie_name, create_session_token(professor, settings))

        response = guarded.get("/admin", headers=auth_headers(admin))

        assert response.status_code == 200
        assert response.json()["user_id"] == admin.id
