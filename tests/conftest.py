import os
import tempfile
from pathlib import Path

# Configure the app before anything imports config
_TMP_DIR = Path(tempfile.mkdtemp(prefix="finance-tests-"))
DB_PATH = _TMP_DIR / "test.db"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{DB_PATH}"
os.environ["UPLOAD_DIR"] = str(_TMP_DIR / "uploads")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from config import UPLOAD_DIR  # noqa: E402
from main import app  # noqa: E402


def register_and_login(client, email: str, password: str = "password", name: str = "Test User") -> dict:
    client.post(
        "/auth/register",
        json={"name": name, "email": email, "password": password},
    )
    response = client.post(
        "/auth/login",
        data={"username": email, "password": password},
    )
    token = response.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope="function")
def client():
    if DB_PATH.exists():
        DB_PATH.unlink()
    UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
    for f in UPLOAD_DIR.iterdir():
        f.unlink()

    with TestClient(app) as c:
        yield c


@pytest.fixture
def upload_dir():
    return UPLOAD_DIR


@pytest.fixture
def auth_headers(client):
    return register_and_login(client, "owner@example.com")


@pytest.fixture
def other_auth_headers(client):
    return register_and_login(client, "other@example.com", name="Other User")


@pytest.fixture
def create_tx(client, auth_headers):
    def _create(headers=None, **overrides):
        payload = {
            "type": "expense",
            "amount": 12.5,
            "category": "Food",
            "description": "Lunch",
            "date": "2024-01-10",
        }
        payload.update(overrides)
        response = client.post("/transactions", json=payload, headers=headers or auth_headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _create
