import pytest
from fastapi.testclient import TestClient

from config import Settings, get_settings
from main import app, get_storage
from storage import MemStorage

ADMIN_PASSCODE = "letmein"


@pytest.fixture
def storage():
    return MemStorage()


@pytest.fixture
def test_settings():
    return Settings(
        ADMIN_PASSCODE=ADMIN_PASSCODE,
        JWT_SECRET="test-secret",
        SEED_SAMPLE_PRODUCTS=False,
    )


@pytest.fixture
def client(storage, test_settings):
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_settings] = lambda: test_settings
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers(client):
    res = client.post("/api/admin/login", json={"passcode": ADMIN_PASSCODE})
    assert res.status_code == 200
    return {"Authorization": f"Bearer {res.json()['access_token']}"}
