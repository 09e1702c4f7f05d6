"""
Tests for subtopic files and single-file download links.
"""

from datetime import timedelta
from urllib.parse import parse_qs, urlparse

import jwt
import pytest

from aiquiz.auth.jwt import create_session_token
from aiquiz.core.models import Subject
from aiquiz.core.utils import utc_now


@pytest.fixture
def subject(subjects, run, admin, professor):
    return run(subjects.create(Subject(
        title="Sistemas Operativos",
        acronym="SO",
        administrators=[admin.id],
        professors=[admin.id, professor.id],
    )))


@pytest.fixture
def topic(topics, run, subject):
    return run(topics.create_topic(subject.id, "Procesos"))


@pytest.fixture
def subtopic(topics, run, topic):
    return run(topics.create_subtopic(topic, "Planificación"))


@pytest.fixture
def other_subtopic(topics, run, topic):
    return run(topics.create_subtopic(topic, "Hilos"))


def url_for(subtopic):
    return f"/api/manager/subjects/{subtopic.subject_id}/topics/{subtopic.topic_id}/subtopics/{subtopic.id}/files"


@pytest.fixture
def files_url(subtopic):
    return url_for(subtopic)


@pytest.fixture
def uploaded(client, auth_headers, professor, files_url):
    response = client.post(
        files_url,
        files={"file": ("tema 1.pdf", b"%PDF-1.4 apuntes", "application/pdf")},
        headers=auth_headers(professor),
    )
    assert response.status_code == 201
    return response.json()["file"]


def download_link(client, headers, files_url, file_id):
    response = client.post(f"{files_url}/{file_id}/download-link", headers=headers)
    assert response.status_code == 200
    return response.json()


def token_of(url):
    return parse_qs(urlparse(url).query)["token"][0]


class TestManageFiles:
    def test_upload_and_list(self, client, auth_headers, professor, files_url, uploaded):
        assert uploaded["original_name"] == "tema 1.pdf"
        assert uploaded["size"] == len(b"%PDF-1.4 apuntes")
        assert uploaded["uploaded_by"] == professor.id
        assert "content_key" not in uploaded

        response = client.get(files_url, headers=auth_headers(professor))

        assert response.status_code == 200
        assert [f["id"] for f in response.json()["files"]] == [uploaded["id"]]

    def test_other_subtopic_is_empty(self, client, auth_headers, professor, other_subtopic, uploaded):
        response = client.get(url_for(other_subtopic), headers=auth_headers(professor))
        assert response.json()["files"] == []

    def test_unknown_topic(self, client, auth_headers, professor, subject, subtopic):
        url = f"/api/manager/subjects/{subject.id}/topics/topic_missing/subtopics/{subtopic.id}/files"

        response = client.post(
            url,
            files={"file": ("a.txt", b"x", "text/plain")},
            headers=auth_headers(professor),
        )

        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Tema no encontrado"}

    def test_unknown_subtopic(self, client, auth_headers, professor, topic):
        url = f"/api/manager/subjects/{topic.subject_id}/topics/{topic.id}/subtopics/subtopic_missing/files"

        response = client.get(url, headers=auth_headers(professor))

        assert response.status_code == 404
        assert response.json()["message"] == "Subtema no encontrado"

    def test_subtopic_of_another_topic(self, client, auth_headers, professor, topics, run, subject, subtopic):
        second = run(topics.create_topic(subject.id, "Memoria"))
        url = f"/api/manager/subjects/{subject.id}/topics/{second.id}/subtopics/{subtopic.id}/files"

        assert client.get(url, headers=auth_headers(professor)).status_code == 404

    def test_upload_requires_session(self, client, files_url):
        response = client.post(files_url, files={"file": ("a.txt", b"x", "text/plain")})
        assert response.status_code == 401

    def test_empty_upload(self, client, auth_headers, professor, files_url):
        response = client.post(
            files_url,
            files={"file": ("vacio.txt", b"", "text/plain")},
            headers=auth_headers(professor),
        )
        assert response.status_code == 400

    def test_unassigned_professor(self, client, auth_headers, subjects, run, admin, professor):
        foreign = run(subjects.create(Subject(title="Física", acronym="FIS", administrators=[admin.id])))
        url = f"/api/manager/subjects/{foreign.id}/topics/t/subtopics/s/files"

        response = client.get(url, headers=auth_headers(professor))

        assert response.status_code == 403

    def test_delete(self, client, auth_headers, professor, files_url, uploaded, storage, run):
        response = client.delete(f"{files_url}/{uploaded['id']}", headers=auth_headers(professor))

        assert response.status_code == 200
        assert client.get(files_url, headers=auth_headers(professor)).json()["files"] == []
        assert run(storage.metadata.get("files", uploaded["id"])) is None

    def test_delete_missing(self, client, auth_headers, professor, files_url):
        response = client.delete(f"{files_url}/file_missing", headers=auth_headers(professor))

        assert response.status_code == 404
        assert response.json()["message"] == "Archivo no encontrado"


class TestDownloadLinks:
    def test_link_downloads_file(self, client, auth_headers, professor, files_url, uploaded, settings):
        link = download_link(client, auth_headers(professor), files_url, uploaded["id"])
        assert link["expiresIn"] == settings.download_token_expire_minutes * 60

        client.cookies.clear()
        response = client.get(link["downloadUrl"])

        assert response.status_code == 200
        assert response.content == b"%PDF-1.4 apuntes"
        assert response.headers["content-type"] == "application/pdf"
        assert response.headers["content-disposition"].startswith("attachment;")
        assert "tema%201.pdf" in response.headers["content-disposition"]

    def test_link_is_reusable_until_expiry(self, client, auth_headers, professor, files_url, uploaded):
        link = download_link(client, auth_headers(professor), files_url, uploaded["id"])

        assert client.get(link["downloadUrl"]).status_code == 200
        assert client.get(link["downloadUrl"]).status_code == 200

    def test_missing_token(self, client, files_url, uploaded):
        response = client.get(f"{files_url}/{uploaded['id']}/download")

        assert response.status_code == 403
        assert response.json() == {"success": False, "message": "Token de descarga requerido"}

    def test_token_for_other_file(self, client, auth_headers, professor, files_url, uploaded):
        second = client.post(
            files_url,
            files={"file": ("tema 2.pdf", b"%PDF-1.4 otro", "application/pdf")},
            headers=auth_headers(professor),
        ).json()["file"]
        token = token_of(download_link(client, auth_headers(professor), files_url, second["id"])["downloadUrl"])

        response = client.get(f"{files_url}/{uploaded['id']}/download", params={"token": token})

        assert response.status_code == 403
        assert response.json()["message"] == "Token no válido para este archivo"

    def test_session_token_is_not_a_download_token(self, client, settings, professor, files_url, uploaded):
        token = create_session_token(professor, settings)

        response = client.get(f"{files_url}/{uploaded['id']}/download", params={"token": token})

        assert response.status_code == 403
        assert response.json()["message"] == "Token no válido para este archivo"

    def test_expired_token(self, client, settings, files_url, uploaded):
        past = utc_now() - timedelta(minutes=10)
        token = jwt.encode(
            {"fileId": uploaded["id"], "type": "download", "iat": past, "exp": past + timedelta(minutes=5)},
            settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
        )

        response = client.get(f"{files_url}/{uploaded['id']}/download", params={"token": token})

        assert response.status_code == 403
        assert response.json()["message"] == "Token de descarga inválido o expirado"

    def test_forged_token(self, client, files_url, uploaded):
        response = client.get(f"{files_url}/{uploaded['id']}/download", params={"token": "garbage"})

        assert response.status_code == 403
        assert response.json()["message"] == "Token de descarga inválido o expirado"

    def test_file_in_other_subtopic(self, client, auth_headers, professor, files_url, other_subtopic, uploaded):
        link = download_link(client, auth_headers(professor), files_url, uploaded["id"])
        wrong = url_for(other_subtopic)

        response = client.get(
            f"{wrong}/{uploaded['id']}/download",
            params={"token": token_of(link["downloadUrl"])},
        )

        assert response.status_code == 404
