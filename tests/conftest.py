from __future__ import annotations

import asyncio
import os
import tempfile

# La configuración se lee al importar app.config: el entorno va antes que la app
_TMP_DIR = tempfile.mkdtemp(prefix="baby-control-tests-")
DB_FILE = os.path.join(_TMP_DIR, "test.db")
ENV_FILE = os.path.join(_TMP_DIR, ".env")

os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{DB_FILE}"
os.environ["ENV_FILE"] = ENV_FILE
os.environ["DEPLOYMENT_MODE"] = "selfhosted"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["ENC_HASH"] = "test-enc-hash"
os.environ.pop("STRIPE_SECRET_KEY", None)
os.environ.pop("STRIPE_WEBHOOK_SECRET", None)

import pytest
from fastapi.testclient import TestClient

from app.db import AsyncSessionLocal
from app.security import clear_token_blacklist
from app.services import ip_lockout
from app.services.seed import seed_defaults
from main import app

DEFAULT_PIN = "111222"
DEFAULT_SLUG = "my-family"


async def _seed() -> None:
    async with AsyncSessionLocal() as session:
        await seed_defaults(session)


def run(coro):
    """Ejecuta una corrutina contra la base de datos de test."""
    return asyncio.run(coro)


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client():
    for path in (DB_FILE, ENV_FILE):
        if os.path.exists(path):
            os.remove(path)
    ip_lockout.reset_all()
    clear_token_blacklist()

    with TestClient(app) as c:
        run(_seed())
        yield c


@pytest.fixture
def admin_token(client) -> str:
    res = client.post("/api/auth", json={"adminPassword": "admin"})
    assert res.status_code == 200, res.text
    return res.json()["data"]["token"]


@pytest.fixture
def family_token(client) -> str:
    """Login con el PIN de la familia por defecto (cuidador de sistema "00")."""
    res = client.post("/api/auth", json={"securityPin": DEFAULT_PIN, "familySlug": DEFAULT_SLUG})
    assert res.status_code == 200, res.text
    client.cookies.clear()
    return res.json()["data"]["token"]


@pytest.fixture
def family_headers(family_token) -> dict:
    return auth(family_token)


@pytest.fixture
def baby(client, family_headers) -> dict:
    res = client.post(
        "/api/baby",
        json={
            "firstName": "Lucia",
            "lastName": "Garcia",
            "birthDate": "2025-01-10T00:00:00Z",
            "gender": "FEMALE",
        },
        headers=family_headers,
    )
    assert res.status_code == 200, res.text
    return res.json()["data"]
