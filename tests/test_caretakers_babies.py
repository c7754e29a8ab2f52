from conftest import DEFAULT_PIN, DEFAULT_SLUG, auth


def new_caretaker(client, headers, login_id="10", role="USER", pin="222333", name="Ana"):
    return client.post(
        "/api/caretaker",
        json={"loginId": login_id, "name": name, "role": role, "securityPin": pin},
        headers=headers,
    )


def caretaker_token(client, login_id, pin) -> str:
    client.put("/api/settings", json={"authType": "CARETAKER"}, headers=_system_headers(client))
    res = client.post("/api/auth", json={"loginId": login_id, "securityPin": pin, "familySlug": DEFAULT_SLUG})
    assert res.status_code == 200, res.text
    client.cookies.clear()
    return res.json()["data"]["token"]


def _system_headers(client) -> dict:
    res = client.post("/api/auth", json={"securityPin": DEFAULT_PIN, "familySlug": DEFAULT_SLUG})
    client.cookies.clear()
    return auth(res.json()["data"]["token"])


# -------------------- Cuidadores --------------------

def test_create_and_list_caretakers(client, family_headers):
    assert new_caretaker(client, family_headers, "20", name="Zoe").status_code == 200
    assert new_caretaker(client, family_headers, "10", name="Ana").status_code == 200

    res = client.get("/api/caretaker", headers=family_headers)
    assert res.status_code == 200
    caretakers = res.json()["data"]
    # Ordenados por nombre y sin el cuidador de sistema
    assert [c["name"] for c in caretakers] == ["Ana", "Zoe"]
    assert all(c["loginId"] != "00" for c in caretakers)

    one = client.get("/api/caretaker", params={"id": caretakers[0]["id"]}, headers=family_headers)
    assert one.json()["data"]["loginId"] == "10"


def test_login_id_rules(client, family_headers):
    assert new_caretaker(client, family_headers, "00").status_code == 403
    assert new_caretaker(client, family_headers, "10").status_code == 200
    assert new_caretaker(client, family_headers, "10").status_code == 400
    assert new_caretaker(client, family_headers, "1a").status_code == 422
    assert new_caretaker(client, family_headers, "11", pin="12").status_code == 422


def test_update_and_delete_caretaker(client, family_headers):
    caretaker = new_caretaker(client, family_headers).json()["data"]

    assert client.put("/api/caretaker", json={"name": "X"}, headers=family_headers).status_code == 400
    res = client.put("/api/caretaker", params={"id": caretaker["id"]}, json={"name": "Ana Maria"}, headers=family_headers)
    assert res.status_code == 200
    assert res.json()["data"]["name"] == "Ana Maria"

    res = client.delete("/api/caretaker", params={"id": caretaker["id"]}, headers=family_headers)
    assert res.status_code == 200
    assert client.get("/api/caretaker", headers=family_headers).json()["data"] == []


def test_user_role_cannot_manage_caretakers(client, family_headers):
    new_caretaker(client, family_headers, "10", role="USER", pin="222333")
    headers = auth(caretaker_token(client, "10", "222333"))

    res = new_caretaker(client, headers, "11", pin="444555")
    assert res.status_code == 403


def test_sysadmin_must_pass_family_id(client, admin_token):
    headers = auth(admin_token)
    res = new_caretaker(client, headers, "10")
    assert res.status_code == 400

    family_id = client.get(f"/api/family/by-slug/{DEFAULT_SLUG}").json()["data"]["id"]
    res = client.post(
        "/api/caretaker",
        params={"familyId": family_id},
        json={"loginId": "10", "name": "Ana", "securityPin": "222333"},
        headers=headers,
    )
    assert res.status_code == 200
    assert res.json()["data"]["familyId"] == family_id


def test_unauthenticated_requests_are_rejected(client):
    assert client.get("/api/caretaker").status_code == 401
    assert client.get("/api/baby").status_code == 401


# -------------------- Bebés --------------------

def test_create_and_get_baby(client, family_headers, baby):
    assert baby["firstName"] == "Lucia"
    assert baby["feedWarningTime"] == "03:00"
    assert baby["diaperWarningTime"] == "02:00"

    res = client.get("/api/baby", params={"id": baby["id"]}, headers=family_headers)
    assert res.status_code == 200
    assert res.json()["data"]["gender"] == "FEMALE"


def test_baby_list_includes_inactive_by_default(client, family_headers, baby):
    res = client.put("/api/baby", params={"id": baby["id"]}, json={"inactive": True}, headers=family_headers)
    assert res.status_code == 200

    assert len(client.get("/api/baby", headers=family_headers).json()["data"]) == 1
    res = client.get("/api/baby", params={"includeInactive": "false"}, headers=family_headers)
    assert res.json()["data"] == []


def test_delete_baby_is_soft(client, family_headers, baby):
    res = client.delete("/api/baby", params={"id": baby["id"]}, headers=family_headers)
    assert res.status_code == 200
    assert client.get("/api/baby", headers=family_headers).json()["data"] == []
    assert client.get("/api/baby", params={"id": baby["id"]}, headers=family_headers).status_code == 404


def test_baby_validation(client, family_headers):
    res = client.post(
        "/api/baby",
        json={"firstName": "", "lastName": "X", "birthDate": "2025-01-01T00:00:00Z", "gender": "FEMALE"},
        headers=family_headers,
    )
    assert res.status_code == 422
    assert res.json()["type"] == "validation_error"


def test_baby_from_other_family_is_hidden(client, admin_token, family_headers, baby):
    res = client.post("/api/family/manage", json={"name": "Other", "slug": "other-family"}, headers=auth(admin_token))
    other_id = res.json()["data"]["id"]

    res = client.get("/api/baby", params={"familyId": other_id}, headers=auth(admin_token))
    assert res.json()["data"] == []

    # Un cuidador no puede elegir otra familia con familyId
    res = client.get("/api/baby", params={"familyId": other_id}, headers=family_headers)
    assert [b["id"] for b in res.json()["data"]] == [baby["id"]]
