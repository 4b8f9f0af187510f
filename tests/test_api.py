import io

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlmodel import SQLModel, Session, create_engine

from imagehub.database import get_session
from imagehub.dependencies import get_image_store
from imagehub.infrastructure.storage.memory_storage import InMemoryImageStore
from imagehub.main import app


@pytest.fixture
def store():
    return InMemoryImageStore()


@pytest.fixture
def client(tmp_path, store):
    engine = create_engine(f"sqlite:///{tmp_path / 'api.db'}", connect_args={"check_same_thread": False})
    SQLModel.metadata.create_all(engine)

    def override_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_image_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()
    engine.dispose()


def register(client, username, password="correct horse"):
    resp = client.post("/api/auth/register", json={"username": username, "password": password})
    assert resp.status_code == 201, resp.text
    body = resp.json()
    return body["user"]["id"], {"Authorization": f"Bearer {body['token']}"}


def upload(client, headers, data, filename="cat.jpg", content_type="image/jpeg"):
    return client.post("/api/images", headers=headers, files={"image": (filename, data, content_type)})


def test_register_login_and_me(client):
    user_id, headers = register(client, "alice")

    resp = client.post("/api/auth/login", json={"username": "alice", "password": "correct horse"})
    assert resp.status_code == 200
    assert resp.json()["user"]["id"] == user_id

    me = client.get("/api/auth/me", headers=headers)
    assert me.status_code == 200
    assert me.json()["username"] == "alice"


def test_register_duplicate_is_conflict(client):
    register(client, "alice")
    resp = client.post("/api/auth/register", json={"username": "alice", "password": "whatever123"})
    assert resp.status_code == 409
    assert resp.json() == {"success": False, "data": None, "error": "Username already taken"}


def test_login_with_bad_password_is_unauthorized(client):
    register(client, "alice")
    resp = client.post("/api/auth/login", json={"username": "alice", "password": "nope"})
    assert resp.status_code == 401


def test_image_routes_require_a_token(client):
    assert client.get("/api/images").status_code == 401
    assert client.get("/api/images", headers={"Authorization": "Bearer forged"}).status_code == 401


def test_upload_fetch_transform_delete_flow(client, jpeg_bytes, store):
    alice_id, alice = register(client, "alice")
    _, bob = register(client, "bob")

    resp = upload(client, alice, jpeg_bytes)
    assert resp.status_code == 201, resp.text
    image = resp.json()
    assert image["owner_id"] == alice_id
    assert image["size_bytes"] == len(jpeg_bytes)
    assert image["original_name"] == "cat.jpg"
    image_id = image["id"]

    got = client.get(f"/api/images/{image_id}", headers=alice)
    assert got.status_code == 200
    assert got.content == jpeg_bytes
    assert got.headers["content-type"] == "image/jpeg"
    assert "cat.jpg" in got.headers["content-disposition"]

    meta = client.get(f"/api/images/{image_id}/metadata", headers=alice)
    assert meta.json()["id"] == image_id

    transformed = client.post(f"/api/images/{image_id}/transform", headers=alice, json={"resize": {"width": 50, "height": 50}})
    assert transformed.status_code == 200
    assert transformed.headers["content-type"] == "image/jpeg"
    assert Image.open(io.BytesIO(transformed.content)).size == (50, 50)

    assert client.get(f"/api/images/{image_id}", headers=bob).status_code == 403
    assert client.post(f"/api/images/{image_id}/transform", headers=bob, json={}).status_code == 403
    assert client.delete(f"/api/images/{image_id}", headers=bob).status_code == 403

    deleted = client.delete(f"/api/images/{image_id}", headers=alice)
    assert deleted.status_code == 200
    assert deleted.json() == {"deleted": True}
    assert len(store) == 0
    assert client.get(f"/api/images/{image_id}", headers=alice).status_code == 404


def test_unknown_image_is_not_found(client):
    _, alice = register(client, "alice")
    resp = client.get("/api/images/does-not-exist", headers=alice)
    assert resp.status_code == 404
    assert resp.json()["success"] is False


def test_transform_errors_are_bad_requests(client, jpeg_bytes):
    _, alice = register(client, "alice")
    image_id = upload(client, alice, jpeg_bytes).json()["id"]

    bmp = client.post(f"/api/images/{image_id}/transform", headers=alice, json={"format": "bmp"})
    assert bmp.status_code == 400
    assert "unsupported output format" in bmp.json()["error"]

    crop = client.post(f"/api/images/{image_id}/transform", headers=alice,
                       json={"crop": {"x": 100, "y": 0, "width": 100, "height": 10}})
    assert crop.status_code == 400

    png = client.post(f"/api/images/{image_id}/transform", headers=alice, json={"format": "png", "rotate": 90})
    assert png.status_code == 200
    assert png.headers["content-type"] == "image/png"
    assert Image.open(io.BytesIO(png.content)).size == (80, 120)


def test_upload_rejects_disallowed_type_and_empty_file(client):
    _, alice = register(client, "alice")
    assert upload(client, alice, b"hello", filename="a.txt", content_type="text/plain").status_code == 415
    assert upload(client, alice, b"", filename="a.jpg").status_code == 400


def test_list_is_owner_scoped_and_clamped(client, jpeg_bytes):
    _, alice = register(client, "alice")
    _, bob = register(client, "bob")
    for i in range(3):
        upload(client, alice, jpeg_bytes, filename=f"a{i}.jpg")
    upload(client, bob, jpeg_bytes, filename="b.jpg")

    resp = client.get("/api/images", headers=alice, params={"limit": 1000})
    assert resp.status_code == 200
    body = resp.json()
    assert body["limit"] == 100
    assert body["page"] == 1
    assert body["total"] == 3
    assert [i["original_name"] for i in body["images"]] == ["a2.jpg", "a1.jpg", "a0.jpg"]

    paged = client.get("/api/images", headers=alice, params={"page": 2, "limit": 2}).json()
    assert [i["original_name"] for i in paged["images"]] == ["a0.jpg"]


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.headers["x-content-type-options"] == "nosniff"
