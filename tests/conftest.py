"""
Pytest configuration and fixtures for the storefront API tests.
"""

import pytest
from fastapi.testclient import TestClient

from storefront import schemas
from storefront.config import Settings
from storefront.main import create_app

ADMIN_EMAIL = "admin@test.com"
ADMIN_PASSWORD = "s3cret-pass"


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at a throwaway SQLite file, with an empty catalog."""
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        jwt_secret="test-secret",
        admin_email=ADMIN_EMAIL,
        admin_password=ADMIN_PASSWORD,
        admin_name="Test Admin",
        seed_products=False,
        upload_dir=tmp_path / "uploads",
        max_image_mb=1,
        mp_access_token="TEST-" + "1" * 60,
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def db(app):
    """A session on the same database the app uses."""
    session = app.state.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def admin_token(client):
    resp = client.post("/api/admin/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert resp.status_code == 200, resp.text
    return resp.json()["token"]


@pytest.fixture
def admin_headers(admin_token):
    return {"Authorization": f"Bearer {admin_token}"}


@pytest.fixture
def make_product(db):
    """Insert a product through the mutation layer."""
    from storefront import crud

    def _make(**overrides):
        data = {
            "name": "Hoodie Oversized",
            "description": "Moleton felpado",
            "category": "masculino",
            "price": 169.9,
            "image_url": "/uploads/hoodie.jpg",
        }
        data.update(overrides)
        return crud.create_product(db, schemas.ProductIn(**data))

    return _make
