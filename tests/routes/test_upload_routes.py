"""Tests for /api/upload/avatar."""

from story_engine import storage

URL = "/api/upload/avatar"
PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def test_upload_avatar(client, headers):
    resp = client.post(URL, headers=headers, files={"file": ("me.png", PNG, "image/png")})
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["filename"].endswith(".png")
    assert body["url"] == f"/avatars/{body['filename']}"
    assert (storage.avatars_dir() / body["filename"]).read_bytes() == PNG

    served = client.get(body["url"])
    assert served.status_code == 200
    assert served.content == PNG


def test_rejects_content_type(client, headers):
    resp = client.post(URL, headers=headers, files={"file": ("me.gif", b"GIF89a", "image/gif")})
    assert resp.status_code == 400


def test_rejects_unsafe_filename(client, headers):
    resp = client.post(URL, headers=headers, files={"file": ("my avatar.png", PNG, "image/png")})
    assert resp.status_code == 400


def test_rejects_extension(client, headers):
    resp = client.post(URL, headers=headers, files={"file": ("me.gif", PNG, "image/png")})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Invalid file extension"


def test_rejects_large_file(client, headers, monkeypatch):
    monkeypatch.setenv("MAX_AVATAR_BYTES", "10")
    resp = client.post(URL, headers=headers, files={"file": ("me.png", PNG, "image/png")})
    assert resp.status_code == 413


def test_rejects_empty_file(client, headers):
    resp = client.post(URL, headers=headers, files={"file": ("me.png", b"", "image/png")})
    assert resp.status_code == 400


def test_requires_auth(client):
    resp = client.post(URL, files={"file": ("me.png", PNG, "image/png")})
    assert resp.status_code == 401
