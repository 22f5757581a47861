"""
News API tests: CRUD, pagination, the soft-delete lifecycle and the
upload + persist flows.
"""

import io
import os
from unittest.mock import patch

import pytest

from newsroom.core.database import db
from newsroom.modules.news.models import News

from conftest import make_base64_image, make_image_bytes


def _create(client, headers, **fields):
    payload = {"titulo": "Titular", "sub_titulo": "Bajada"}
    payload.update(fields)
    response = client.post("/api/news", json=payload, headers=headers)
    assert response.status_code == 201, response.get_json()
    return response.get_json()["data"]


def _images(storage_root):
    d = os.path.join(storage_root, "images")
    return sorted(os.listdir(d)) if os.path.isdir(d) else []


# ---------------------------------------------------------------------------
# Create / show / update
# ---------------------------------------------------------------------------

def test_create_news(client, auth_headers, user):
    data = _create(client, auth_headers, titulo="Hello, World! 2024",
                   fecha_hora="2024-05-01T10:30:00Z", display=False)

    assert data["slug"] == "hello-world-2024"
    assert data["user_id"] == user.id
    assert data["display"] is False
    assert data["fecha_hora"] == "2024-05-01T10:30:00"
    assert data["link_final"] == "http://localhost/images/hello-world-2024"
    assert data["deleted_at"] is None
    assert data["user"]["email"] == "editor@example.com"


def test_same_title_gets_suffixed_slugs(client, auth_headers):
    slugs = [_create(client, auth_headers, titulo="Última hora")["slug"] for _ in range(3)]
    assert slugs == ["ultima-hora", "ultima-hora-1", "ultima-hora-2"]


def test_create_validation_errors(client, auth_headers):
    response = client.post("/api/news", json={
        "titulo": "",
        "sub_titulo": "x" * 256,
        "ruta": "ftp://nope",
        "fecha_hora": "ayer",
        "display": "quizás",
    }, headers=auth_headers)

    assert response.status_code == 422
    body = response.get_json()
    assert body["success"] is False
    assert body["message"] == "Error de validación"
    assert set(body["errors"]) == {"titulo", "sub_titulo", "ruta", "fecha_hora", "display"}


@pytest.mark.parametrize("ruta, ok", [
    ("/storage/images/a.png", True),
    ("https://cdn.example.com/a.png", True),
    ("http://localhost/storage/images/a.png", False),
    ("cdn.example.com/a.png", False),
])
def test_ruta_must_be_local_or_remote(client, auth_headers, ruta, ok):
    response = client.post("/api/news", json={
        "titulo": "Con ruta", "sub_titulo": "s", "ruta": ruta,
    }, headers=auth_headers)
    assert (response.status_code == 201) is ok


def test_show_and_404(client, auth_headers):
    created = _create(client, auth_headers)

    response = client.get(f"/api/news/{created['id']}")
    assert response.status_code == 200
    assert response.get_json()["data"]["titulo"] == "Titular"

    response = client.get("/api/news/9999")
    assert response.status_code == 404
    assert response.get_json()["message"] == "Noticia no encontrada"


def test_update_is_partial_and_keeps_slug(client, auth_headers):
    created = _create(client, auth_headers, titulo="Original")

    response = client.put(f"/api/news/{created['id']}", json={
        "titulo": "Otro título",
        "display": "false",
        "slug": "hacked",
        "user_id": 999,
    }, headers=auth_headers)

    assert response.status_code == 200
    data = response.get_json()["data"]
    assert data["titulo"] == "Otro título"
    assert data["sub_titulo"] == "Bajada"
    assert data["display"] is False
    assert data["slug"] == "original"
    assert data["user_id"] == created["user_id"]


def test_update_validates_present_fields(client, auth_headers):
    created = _create(client, auth_headers)
    response = client.put(f"/api/news/{created['id']}", json={"titulo": ""},
                          headers=auth_headers)
    assert response.status_code == 422
    assert "titulo" in response.get_json()["errors"]


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------

def test_listing_order_and_pagination(client, auth_headers):
    for day in range(1, 13):
        _create(client, auth_headers, titulo=f"Dia {day}",
                fecha_hora=f"2024-01-{day:02d}T08:00:00")

    response = client.get("/api/news")
    body = response.get_json()
    titles = [item["titulo"] for item in body["data"]]

    assert titles[0] == "Dia 12"
    assert len(titles) == 10
    pagination = body["pagination"]
    assert pagination["current_page"] == 1
    assert pagination["last_page"] == 2
    assert pagination["per_page"] == 10
    assert pagination["total"] == 12
    assert pagination["from"] == 1
    assert pagination["to"] == 10
    assert pagination["has_more_pages"] is True
    assert pagination["next_page_url"].endswith("/api/news?page=2")
    assert pagination["prev_page_url"] is None

    page2 = client.get("/api/news?page=2").get_json()
    assert [item["titulo"] for item in page2["data"]] == ["Dia 2", "Dia 1"]
    assert page2["pagination"]["from"] == 11
    assert page2["pagination"]["to"] == 12
    assert page2["pagination"]["has_more_pages"] is False


def test_empty_listing(client):
    body = client.get("/api/news").get_json()
    assert body["data"] == []
    assert body["pagination"]["total"] == 0
    assert body["pagination"]["from"] is None


def test_top10_only_visible(client, auth_headers):
    for i in range(12):
        _create(client, auth_headers, titulo=f"Visible {i}",
                fecha_hora=f"2024-02-{i + 1:02d}T08:00:00")
    _create(client, auth_headers, titulo="Oculta", display=False,
            fecha_hora="2024-03-01T08:00:00")

    data = client.get("/api/news/top10").get_json()["data"]

    assert len(data) == 10
    assert all(item["display"] for item in data)
    assert data[0]["titulo"] == "Visible 11"


# ---------------------------------------------------------------------------
# Soft delete / restore / force delete
# ---------------------------------------------------------------------------

def test_soft_delete_and_restore(client, auth_headers):
    created = _create(client, auth_headers, titulo="Efímera")

    response = client.delete(f"/api/news/{created['id']}", headers=auth_headers)
    assert response.status_code == 200
    data = response.get_json()["data"]
    assert data["id"] == created["id"]
    assert data["titulo"] == "Efímera"
    assert data["deleted_at"]

    assert client.get(f"/api/news/{created['id']}").status_code == 404
    assert client.get("/api/news").get_json()["pagination"]["total"] == 0
    # Deleting twice is a 404
    assert client.delete(f"/api/news/{created['id']}", headers=auth_headers).status_code == 404

    trashed = client.get("/api/news/trashed", headers=auth_headers).get_json()
    assert [item["id"] for item in trashed["data"]] == [created["id"]]

    response = client.post(f"/api/news/{created['id']}/restore", headers=auth_headers)
    assert response.status_code == 200
    restored = response.get_json()["data"]
    for field in ("titulo", "sub_titulo", "slug", "ruta", "link_final", "fecha_hora", "display"):
        assert restored[field] == created[field]
    assert restored["deleted_at"] is None


def test_restore_errors(client, auth_headers):
    created = _create(client, auth_headers)

    response = client.post(f"/api/news/{created['id']}/restore", headers=auth_headers)
    assert response.status_code == 400
    assert response.get_json()["message"] == "La noticia no está eliminada"

    assert client.post("/api/news/9999/restore", headers=auth_headers).status_code == 404


def test_trashed_slug_still_reserved(client, auth_headers):
    created = _create(client, auth_headers, titulo="Repetida")
    client.delete(f"/api/news/{created['id']}", headers=auth_headers)

    assert _create(client, auth_headers, titulo="Repetida")["slug"] == "repetida-1"


def test_force_delete_removes_local_file(client, auth_headers, storage_root):
    response = client.post("/api/news/upload-base64-and-save", json={
        "titulo": "Con imagen",
        "sub_titulo": "s",
        "file": make_base64_image("PNG"),
        "filename": "con-imagen.png",
    }, headers=auth_headers)
    news_id = response.get_json()["data"]["news"]["id"]
    assert _images(storage_root) == ["con-imagen.png"]

    client.delete(f"/api/news/{news_id}", headers=auth_headers)
    response = client.delete(f"/api/news/{news_id}/force", headers=auth_headers)

    assert response.status_code == 200
    assert response.get_json()["data"]["file_removed"] is True
    assert _images(storage_root) == []
    assert client.post(f"/api/news/{news_id}/restore", headers=auth_headers).status_code == 404


def test_force_delete_never_touches_remote_files(client, auth_headers):
    created = _create(client, auth_headers, ruta="https://cdn.example.com/a.png")

    with patch("newsroom.core.storage.requests.post") as mock_post, \
            patch("newsroom.modules.images.proxy.requests.get") as mock_get:
        response = client.delete(f"/api/news/{created['id']}/force", headers=auth_headers)

    assert response.status_code == 200
    assert response.get_json()["data"]["file_removed"] is False
    mock_post.assert_not_called()
    mock_get.assert_not_called()


# ---------------------------------------------------------------------------
# Uploads
# ---------------------------------------------------------------------------

def test_upload_only_multipart(client, auth_headers, storage_root):
    content = make_image_bytes("PNG")
    response = client.post("/api/news/upload", data={
        "file": (io.BytesIO(content), "foto.png"),
        "filename": "foto-final.png",
    }, headers=auth_headers, content_type="multipart/form-data")

    assert response.status_code == 200
    data = response.get_json()["data"]
    assert data == {
        "filename": "foto-final.png",
        "url": "/storage/images/foto-final.png",
        "size": len(content),
        "mime_type": "image/png",
    }
    assert _images(storage_root) == ["foto-final.png"]


def test_upload_only_base64(client, auth_headers):
    response = client.post("/api/news/upload-base64", json={
        "file": make_base64_image("GIF", data_url=True),
    }, headers=auth_headers)

    assert response.status_code == 200
    assert response.get_json()["data"]["filename"].endswith(".gif")


def test_upload_without_file(client, auth_headers):
    response = client.post("/api/news/upload", data={}, headers=auth_headers,
                           content_type="multipart/form-data")
    assert response.status_code == 422


def test_upload_oversized_file(client, auth_headers, storage_root):
    response = client.post("/api/news/upload", data={
        "file": (io.BytesIO(b"0" * (6 * 1024 * 1024)), "grande.png"),
    }, headers=auth_headers, content_type="multipart/form-data")

    assert response.status_code == 422
    assert _images(storage_root) == []


def test_upload_target_name_keeps_an_image_extension(client, auth_headers, storage_root):
    response = client.post("/api/news/upload", data={
        "file": (io.BytesIO(make_image_bytes("PNG")), "photo.png"),
        "filename": "evil.html",
    }, headers=auth_headers, content_type="multipart/form-data")

    assert response.status_code == 422
    assert "filename" in response.get_json()["errors"]
    assert _images(storage_root) == []
    assert client.get("/storage/images/evil.html").status_code == 404


def test_upload_and_save_then_fetch_image(client, auth_headers, storage_root):
    content = make_image_bytes("JPEG")
    response = client.post("/api/news/upload-and-save", data={
        "titulo": "Foto del día",
        "sub_titulo": "Una imagen",
        "filename": "foto-del-dia.jpg",
        "display": "true",
        "file": (io.BytesIO(content), "camara.jpg"),
    }, headers=auth_headers, content_type="multipart/form-data")

    assert response.status_code == 201
    data = response.get_json()["data"]
    assert data["news"]["slug"] == "foto-del-dia"
    assert data["news"]["ruta"] == "/storage/images/foto-del-dia.jpg"
    assert data["upload"]["url"] == data["news"]["ruta"]

    image = client.get("/images/foto-del-dia")
    assert image.status_code == 200
    assert image.data == content
    assert image.headers["Content-Type"] == "image/jpeg"


def test_upload_and_save_requires_metadata_before_upload(client, auth_headers, storage_root):
    response = client.post("/api/news/upload-base64-and-save", json={
        "file": make_base64_image("PNG"),
    }, headers=auth_headers)

    assert response.status_code == 422
    assert {"titulo", "sub_titulo", "filename"} <= set(response.get_json()["errors"])
    assert _images(storage_root) == []


def test_slug_conflict_after_retries_cleans_up_local_upload(app, client, auth_headers,
                                                            storage_root):
    _create(client, auth_headers, titulo="Duplicada")

    with patch("newsroom.modules.news.service.generate_unique_slug",
               return_value="duplicada") as mock_slug:
        response = client.post("/api/news/upload-base64-and-save", json={
            "titulo": "Duplicada",
            "sub_titulo": "s",
            "file": make_base64_image("PNG"),
            "filename": "duplicada.png",
        }, headers=auth_headers)

    assert response.status_code == 409
    body = response.get_json()
    assert body["error_type"] == "duplicate_slug"
    assert mock_slug.call_count == 3
    assert _images(storage_root) == []
    with app.app_context():
        assert News.query.count() == 1


def test_slug_race_recovers_on_retry(app, client, auth_headers):
    _create(client, auth_headers, titulo="Carrera")

    with patch("newsroom.modules.news.service.generate_unique_slug",
               side_effect=["carrera", "carrera-1"]):
        data = _create(client, auth_headers, titulo="Carrera")

    assert data["slug"] == "carrera-1"


def test_remote_upload_failure_is_connection_error(tmp_dir):
    from conftest import build_app
    app = build_app(tmp_dir, UPLOAD_METHOD="http",
                    REMOTE_SERVER_URL="https://files.example.com",
                    REMOTE_SERVER_API_KEY="k",
                    REMOTE_SERVER_BASE_URL="https://cdn.example.com")
    client = app.test_client()
    with app.app_context():
        from newsroom.modules.auth.models import AccessToken, User
        user = User(name="Remote", email="remote@example.com")
        db.session.add(user)
        token = AccessToken.issue(user)
        db.session.commit()

    with patch("newsroom.core.storage.requests.post") as mock_post:
        mock_post.return_value.status_code = 500
        response = client.post("/api/news/upload-base64", json={
            "file": make_base64_image("PNG"), "filename": "x.png",
        }, headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 500
    assert response.get_json() == {"success": False, "message": "Error de conexión"}


def test_missing_remote_config_is_generic_500(tmp_dir):
    from conftest import build_app
    app = build_app(tmp_dir, UPLOAD_METHOD="ftp")
    client = app.test_client()
    with app.app_context():
        from newsroom.modules.auth.models import AccessToken, User
        user = User(name="Ftp", email="ftp@example.com")
        db.session.add(user)
        token = AccessToken.issue(user)
        db.session.commit()

    with patch("newsroom.core.storage.ftplib.FTP") as mock_ftp:
        response = client.post("/api/news/upload-base64", json={
            "file": make_base64_image("PNG"), "filename": "x.png",
        }, headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 500
    assert "REMOTE_SERVER" not in response.get_json()["message"]
    mock_ftp.assert_not_called()


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("method, path", [
    ("post", "/api/news"),
    ("put", "/api/news/1"),
    ("delete", "/api/news/1"),
    ("get", "/api/news/trashed"),
    ("post", "/api/news/1/restore"),
    ("delete", "/api/news/1/force"),
    ("post", "/api/news/upload"),
    ("post", "/api/news/upload-base64"),
    ("post", "/api/news/upload-and-save"),
    ("post", "/api/news/upload-base64-and-save"),
])
def test_write_routes_require_auth(client, method, path):
    response = getattr(client, method)(path, json={})
    assert response.status_code == 401


def test_session_login_also_authorises(client, user):
    with client.session_transaction() as sess:
        sess["user_id"] = user.id

    response = client.post("/api/news", json={"titulo": "Sesión", "sub_titulo": "s"})
    assert response.status_code == 201


# ---------------------------------------------------------------------------
# Upload filename collisions
# ---------------------------------------------------------------------------

def test_upload_and_save_never_shares_a_local_file(app, client, auth_headers, storage_root):
    def upload_and_save(titulo, color):
        return client.post("/api/news/upload-and-save", data={
            "titulo": titulo,
            "sub_titulo": "s",
            "filename": "same.png",
            "file": (io.BytesIO(make_image_bytes("PNG", color=color)), "same.png"),
        }, headers=auth_headers, content_type="multipart/form-data")

    first = upload_and_save("Primera", (255, 0, 0))
    assert first.status_code == 201

    second = upload_and_save("Segunda", (0, 0, 255))
    assert second.status_code == 409
    assert second.get_json()["error_type"] == "file_exists"

    with app.app_context():
        assert News.query.count() == 1
    assert _images(storage_root) == ["same.png"]
    assert client.get("/images/primera").status_code == 200
