from datetime import timedelta

from sqlalchemy import select

from app.config import settings
from app.db import AsyncSessionLocal
from app.models import Account, utcnow
from conftest import auth, run

PASSWORD = "Str0ng!Pass"


async def _account(email: str) -> Account:
    async with AsyncSessionLocal() as session:
        return await session.scalar(select(Account).where(Account.email == email))


async def _update_account(email: str, **values) -> None:
    async with AsyncSessionLocal() as session:
        account = await session.scalar(select(Account).where(Account.email == email))
        for field, value in values.items():
            setattr(account, field, value)
        await session.commit()


def register(client, email="parent@example.com", password=PASSWORD):
    return client.post(
        "/api/accounts/register",
        json={"email": email, "password": password, "firstName": "Sam", "lastName": "Lee"},
    )


def login(client, email="parent@example.com", password=PASSWORD) -> str:
    res = client.post("/api/accounts/login", json={"email": email, "password": password})
    assert res.status_code == 200, res.text
    return res.json()["data"]["token"]


def test_register_creates_unverified_account(client):
    res = register(client)
    assert res.status_code == 200
    assert res.json()["data"]["success"] is True

    account = run(_account("parent@example.com"))
    assert account.verified is False
    assert account.verification_token
    assert account.password != PASSWORD


def test_register_existing_email_gives_same_answer(client):
    first = register(client).json()
    second = register(client).json()
    assert first == second


def test_register_rejects_weak_password(client):
    res = register(client, password="weakpass")
    assert res.status_code == 400


def test_register_rejects_invalid_email(client):
    res = register(client, email="not-an-email")
    assert res.status_code == 400


def test_registration_is_rate_limited(client):
    for i in range(5):
        assert register(client, email=f"user{i}@example.com").status_code == 200
    assert register(client, email="user5@example.com").status_code == 429


def test_login_and_status_without_family(client):
    register(client)
    token = login(client)

    res = client.get("/api/accounts/status", headers=auth(token))
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["accountStatus"] == "no_family"
    assert data["hasFamily"] is False
    assert data["verified"] is False


def test_login_with_wrong_password(client):
    register(client)
    res = client.post("/api/accounts/login", json={"email": "parent@example.com", "password": "Wrong!Pass1"})
    assert res.status_code == 401


def test_verify_email(client):
    register(client)
    token = run(_account("parent@example.com")).verification_token

    res = client.get("/api/accounts/verify", params={"token": token})
    assert res.status_code == 200
    assert res.json()["data"]["redirectUrl"] == "/account/family-setup"
    assert run(_account("parent@example.com")).verified is True

    res = client.post("/api/accounts/verify", json={"token": "unknown"})
    assert res.status_code == 404


def test_password_reset_flow(client):
    register(client)
    run(_update_account("parent@example.com", verified=True))

    res = client.post("/api/accounts/forgot-password", json={"email": "parent@example.com"})
    assert res.status_code == 200
    reset_token = run(_account("parent@example.com")).password_reset_token
    assert reset_token

    res = client.get("/api/accounts/reset-password", params={"token": reset_token})
    assert res.json()["data"]["email"] == "parent@example.com"

    res = client.post("/api/accounts/reset-password", json={"token": reset_token, "password": "newpass123"})
    assert res.status_code == 200
    login(client, password="newpass123")

    res = client.get("/api/accounts/reset-password", params={"token": reset_token})
    assert res.status_code == 400


def test_expired_reset_token(client):
    register(client)
    run(_update_account(
        "parent@example.com",
        password_reset_token="expired-token",
        reset_token_expires_at=utcnow() - timedelta(minutes=1),
    ))
    res = client.get("/api/accounts/reset-password", params={"token": "expired-token"})
    assert res.status_code == 400


def test_change_password(client):
    register(client)
    headers = auth(login(client))

    res = client.post(
        "/api/accounts/change-password",
        json={"currentPassword": "Wrong!Pass1", "newPassword": "Other!Pass2"},
        headers=headers,
    )
    assert res.status_code == 401

    res = client.post(
        "/api/accounts/change-password",
        json={"currentPassword": PASSWORD, "newPassword": "Other!Pass2"},
        headers=headers,
    )
    assert res.status_code == 200
    login(client, password="Other!Pass2")


def test_account_family_setup_starts_trial_in_saas(client, monkeypatch):
    monkeypatch.setattr(settings, "deployment_mode", "saas")
    register(client)
    headers = auth(login(client))

    res = client.post("/api/setup/start", json={"name": "Lee Family", "slug": "lee-family"}, headers=headers)
    assert res.status_code == 200
    assert res.json()["data"]["slug"] == "lee-family"

    account = run(_account("parent@example.com"))
    assert account.trial_ends is not None

    res = client.post("/api/setup/start", json={"name": "Again", "slug": "lee-family-2"}, headers=headers)
    assert res.status_code == 409

    status = client.get("/api/accounts/status", headers=auth(login(client))).json()["data"]
    assert status["accountStatus"] == "trial"
    assert status["familySlug"] == "lee-family"


def test_expired_trial_blocks_writes(client, monkeypatch):
    monkeypatch.setattr(settings, "deployment_mode", "saas")
    register(client)
    headers = auth(login(client))
    client.post("/api/setup/start", json={"name": "Lee Family", "slug": "lee-family"}, headers=headers)
    run(_update_account("parent@example.com", trial_ends=utcnow() - timedelta(days=1)))

    headers = auth(login(client))
    res = client.post(
        "/api/baby",
        json={"firstName": "Noa", "lastName": "Lee", "birthDate": "2025-02-01T00:00:00Z", "gender": "MALE"},
        headers=headers,
    )
    assert res.status_code == 403
    body = res.json()
    assert body["data"]["expirationInfo"]["type"] == "TRIAL_EXPIRED"
    assert body["data"]["expirationInfo"]["familySlug"] == "lee-family"

    by_slug = client.get("/api/family/by-slug/lee-family").json()["data"]
    assert by_slug["accountStatus"]["isTrialExpired"] is True


def test_close_account(client):
    register(client)
    headers = auth(login(client))
    client.post("/api/setup/start", json={"name": "Lee Family", "slug": "lee-family"}, headers=headers)

    res = client.post("/api/accounts/close", json={"password": "Wrong!Pass1"}, headers=headers)
    assert res.status_code == 401

    res = client.post("/api/accounts/close", json={"password": PASSWORD}, headers=headers)
    assert res.status_code == 200
    assert run(_account("parent@example.com")).closed is True

    res = client.post("/api/accounts/login", json={"email": "parent@example.com", "password": PASSWORD})
    assert res.status_code == 401
    slugs = [f["slug"] for f in client.get("/api/family/public-list").json()["data"]]
    assert "lee-family" not in slugs


def test_update_account(client):
    register(client)
    register(client, email="other@example.com")
    headers = auth(login(client))

    res = client.put("/api/accounts/update", json={"firstName": "Alex", "email": "other@example.com"}, headers=headers)
    assert res.status_code == 400

    res = client.put("/api/accounts/update", json={"firstName": "Alex", "email": "New@Example.com"}, headers=headers)
    assert res.status_code == 200
    assert res.json()["data"]["email"] == "new@example.com"


def test_manage_accounts_requires_sysadmin(client, admin_token, family_headers):
    register(client)
    assert client.get("/api/accounts/manage", headers=family_headers).status_code == 403

    res = client.get("/api/accounts/manage", headers=auth(admin_token))
    assert res.status_code == 200
    assert res.json()["data"]["total"] == 1
