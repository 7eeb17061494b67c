"""
Tests for admin image uploads.
"""
import io

import pytest

from storefront import utils
from storefront.errors import ValidationError


def test_upload_and_serve(client, admin_headers, settings):
    payload = b"\x89PNG\r\n\x1a\n" + b"0" * 128
    resp = client.post(
        "/api/uploads/image",
        files={"image": ("shirt.png", payload, "image/png")},
        headers=admin_headers,
    )
    assert resp.status_code == 200, resp.text
    data = resp.json()
    assert data["path"] == data["url"]
    assert data["path"].startswith("/uploads/") and data["path"].endswith(".png")

    stored = settings.upload_dir / data["path"].rsplit("/", 1)[1]
    assert stored.read_bytes() == payload
    assert client.get(data["path"]).content == payload


def test_upload_requires_admin(client):
    resp = client.post("/api/uploads/image", files={"image": ("a.png", b"x", "image/png")})
    assert resp.status_code == 401


def test_upload_rejects_other_types(client, admin_headers):
    resp = client.post(
        "/api/uploads/image",
        files={"image": ("notes.txt", b"hello", "text/plain")},
        headers=admin_headers,
    )
    assert resp.status_code == 400
    assert "JPEG" in resp.json()["error"]


def test_oversized_file_is_removed(tmp_path):
    with pytest.raises(ValidationError):
        utils.save_upload_file(io.BytesIO(b"x" * 2048), tmp_path, ".jpg", max_bytes=1024)
    assert list(tmp_path.iterdir()) == []


def test_empty_file_is_rejected(tmp_path):
    with pytest.raises(ValidationError):
        utils.save_upload_file(io.BytesIO(b""), tmp_path, ".jpg", max_bytes=1024)
    assert list(tmp_path.iterdir()) == []
