"""
Tests for the signed-in user's account endpoints.
"""

from aiquiz.auth.passwords import verify_password
from tests.conftest import ADMIN_EMAIL, PROFESSOR_PASSWORD

ACCOUNT = "/api/account"


class TestProfile:
    def test_get(self, client, auth_headers, professor):
        response = client.get(ACCOUNT, headers=auth_headers(professor))

        assert response.status_code == 200
        user = response.json()["user"]
        assert user["id"] == professor.id
        assert "password_hash" not in user
        assert "reset_password_token" not in user

    def test_requires_auth(self, client):
        assert client.get(ACCOUNT).status_code == 401

    def test_update(self, client, auth_headers, users, run, professor):
        response = client.put(
            ACCOUNT,
            json={"name": "Pablo P.", "faculty": "ETSIINF", "department": ""},
            headers=auth_headers(professor),
        )

        assert response.status_code == 200
        assert response.json()["user"]["name"] == "Pablo P."
        stored = run(users.get(professor.id))
        assert stored.faculty == "ETSIINF"
        assert stored.department is None

    def test_change_email(self, client, auth_headers, users, run, professor):
        response = client.put(ACCOUNT, json={"email": "Nuevo@UPM.es"}, headers=auth_headers(professor))

        assert response.status_code == 200
        assert run(users.get(professor.id)).email == "nuevo@upm.es"

    def test_email_in_use(self, client, auth_headers, users, run, admin, professor):
        response = client.put(ACCOUNT, json={"email": ADMIN_EMAIL}, headers=auth_headers(professor))

        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "El email ya está en uso"}
        assert run(users.get(professor.id)).email != ADMIN_EMAIL

    def test_keeping_own_email_is_fine(self, client, auth_headers, professor):
        response = client.put(ACCOUNT, json={"email": professor.email}, headers=auth_headers(professor))
        assert response.status_code == 200

    def test_malformed_email(self, client, auth_headers, professor):
        response = client.put(ACCOUNT, json={"email": "nope"}, headers=auth_headers(professor))
        assert response.status_code == 400


class TestChangePassword:
    def change(self, client, headers, current, new):
        return client.put(
            f"{ACCOUNT}/password",
            json={"currentPassword": current, "newPassword": new},
            headers=headers,
        )

    def test_success(self, client, auth_headers, users, run, professor):
        response = self.change(client, auth_headers(professor), PROFESSOR_PASSWORD, "a-better-password")

        assert response.status_code == 200
        assert response.json()["message"] == "Contraseña actualizada correctamente"
        assert verify_password("a-better-password", run(users.get(professor.id)).password_hash)

    def test_wrong_current_password_changes_nothing(self, client, auth_headers, users, run, professor):
        before = run(users.get(professor.id)).password_hash

        response = self.change(client, auth_headers(professor), "not-my-password", "a-better-password")

        assert response.status_code == 401
        assert response.json()["message"] == "La contraseña actual es incorrecta"
        assert run(users.get(professor.id)).password_hash == before

    def test_same_password(self, client, auth_headers, professor):
        response = self.change(client, auth_headers(professor), PROFESSOR_PASSWORD, PROFESSOR_PASSWORD)

        assert response.status_code == 400
        assert response.json()["message"] == "La nueva contraseña debe ser diferente a la actual"

    def test_short_password(self, client, auth_headers, professor):
        response = self.change(client, auth_headers(professor), PROFESSOR_PASSWORD, "short")

        assert response.status_code == 400
        assert response.json()["message"] == "La nueva contraseña debe tener al menos 8 caracteres"

    def test_missing_fields(self, client, auth_headers, professor):
        response = client.put(f"{ACCOUNT}/password", json={}, headers=auth_headers(professor))

        assert response.status_code == 400
        assert response.json()["message"] == "Todos los campos son obligatorios"

    def test_user_deleted_meanwhile(self, client, auth_headers, storage, run, professor):
        headers = auth_headers(professor)
        run(storage.metadata.delete("users", professor.id))

        response = self.change(client, headers, PROFESSOR_PASSWORD, "a-better-password")

        # The authorization dependency notices first
        assert response.status_code == 401
        assert response.json()["message"] == "Usuario no encontrado"
