from conftest import DEFAULT_PIN, DEFAULT_SLUG, auth


def test_root(client):
    res = client.get("/")
    assert res.status_code == 200
    assert res.json()["ok"] is True


def test_sysadmin_login(client):
    res = client.post("/api/auth", json={"adminPassword": "admin"})
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["isSysAdmin"] is True
    assert data["role"] == "SYSADMIN"
    assert data["token"]


def test_login_requires_pin_or_password(client):
    res = client.post("/api/auth", json={})
    assert res.status_code == 400
    body = res.json()
    assert body["success"] is False
    assert body["type"] == "http_error"


def test_system_pin_login_sets_cookie(client):
    res = client.post("/api/auth", json={"securityPin": DEFAULT_PIN, "familySlug": DEFAULT_SLUG})
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["familySlug"] == DEFAULT_SLUG
    assert data["role"] == "ADMIN"
    assert "caretakerId" in res.cookies


def test_wrong_pin_is_rejected(client):
    res = client.post("/api/auth", json={"securityPin": "000000", "familySlug": DEFAULT_SLUG})
    assert res.status_code == 401


def test_unknown_family_slug(client):
    res = client.post("/api/auth", json={"securityPin": DEFAULT_PIN, "familySlug": "no-such-family"})
    assert res.status_code == 404


def test_ip_lockout_after_three_failures(client):
    for _ in range(3):
        res = client.post("/api/auth", json={"adminPassword": "wrong"})
        assert res.status_code == 401

    res = client.post("/api/auth", json={"adminPassword": "admin"})
    assert res.status_code == 429

    status = client.get("/api/auth/ip-lockout").json()["data"]
    assert status["locked"] is True
    assert status["remainingTime"] >= 1


def test_me_requires_authentication(client):
    res = client.get("/api/auth/me")
    assert res.status_code == 401


def test_me_returns_context(client, family_token):
    res = client.get("/api/auth/me", headers=auth(family_token))
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["authenticated"] is True
    assert data["familySlug"] == DEFAULT_SLUG


def test_logout_invalidates_token(client, family_token):
    headers = auth(family_token)
    assert client.post("/api/auth/logout", headers=headers).status_code == 200
    assert client.get("/api/auth/me", headers=headers).status_code == 401


def test_caretaker_exists_without_caretakers(client):
    res = client.get("/api/auth/caretaker-exists", params={"familySlug": DEFAULT_SLUG})
    assert res.status_code == 200
    assert res.json()["data"]["exists"] is False


def test_caretaker_mode_login(client, family_headers):
    res = client.post(
        "/api/caretaker",
        json={"loginId": "12", "name": "Ana", "role": "USER", "securityPin": "654321"},
        headers=family_headers,
    )
    assert res.status_code == 200
    res = client.put("/api/settings", json={"authType": "CARETAKER"}, headers=family_headers)
    assert res.status_code == 200

    res = client.post("/api/auth", json={"securityPin": "654321", "loginId": "12", "familySlug": DEFAULT_SLUG})
    assert res.status_code == 200
    assert res.json()["data"]["name"] == "Ana"

    res = client.post("/api/auth", json={"securityPin": DEFAULT_PIN, "loginId": "00", "familySlug": DEFAULT_SLUG})
    assert res.status_code == 403


def test_refresh_token_requires_account(client, family_token):
    res = client.post("/api/auth/refresh-token", headers=auth(family_token))
    assert res.status_code == 400
