from datetime import datetime, timedelta, timezone

import pytest


def iso(dt: datetime) -> str:
    return dt.strftime("%Y-%m-%dT%H:%M:%SZ")


# -------------------- Sueño --------------------

def test_sleep_log_duration_is_computed(client, family_headers, baby):
    res = client.post(
        "/api/sleep-log",
        json={
            "babyId": baby["id"],
            "startTime": "2025-03-01T20:00:00Z",
            "endTime": "2025-03-01T21:30:00Z",
            "type": "NAP",
        },
        headers=family_headers,
    )
    assert res.status_code == 200
    log = res.json()["data"]
    assert log["duration"] == 90
    assert log["caretakerId"] is not None

    res = client.put(
        "/api/sleep-log", params={"id": log["id"]}, json={"endTime": "2025-03-01T22:00:00Z"}, headers=family_headers
    )
    assert res.json()["data"]["duration"] == 120


def test_sleep_range_uses_overlap(client, family_headers, baby):
    client.post(
        "/api/sleep-log",
        json={
            "babyId": baby["id"],
            "startTime": "2025-03-01T22:00:00Z",
            "endTime": "2025-03-02T06:00:00Z",
            "type": "NIGHT_SLEEP",
        },
        headers=family_headers,
    )
    res = client.get(
        "/api/sleep-log",
        params={"babyId": baby["id"], "startDate": "2025-03-02T00:00:00Z", "endDate": "2025-03-02T23:59:59Z"},
        headers=family_headers,
    )
    assert len(res.json()["data"]) == 1

    res = client.get(
        "/api/sleep-log",
        params={"babyId": baby["id"], "startDate": "2025-03-03T00:00:00Z", "endDate": "2025-03-03T23:59:59Z"},
        headers=family_headers,
    )
    assert res.json()["data"] == []


def test_log_for_unknown_baby(client, family_headers):
    res = client.post(
        "/api/diaper-log",
        json={"babyId": "missing", "time": "2025-03-01T10:00:00Z", "type": "WET"},
        headers=family_headers,
    )
    assert res.status_code == 404


# -------------------- Tomas --------------------

def test_feed_logs_and_last_feed(client, family_headers, baby):
    params = {"babyId": baby["id"]}
    res = client.get("/api/feed-log/last", params=params, headers=family_headers)
    assert res.json()["data"] is None

    for time, kind in (("2025-03-01T08:00:00Z", "BOTTLE"), ("2025-03-01T11:00:00Z", "BREAST")):
        body = {"babyId": baby["id"], "time": time, "type": kind}
        if kind == "BOTTLE":
            body.update(amount=120, unitAbbr="ML")
        else:
            body.update(side="LEFT", feedDuration=600)
        assert client.post("/api/feed-log", json=body, headers=family_headers).status_code == 200

    last = client.get("/api/feed-log/last", params=params, headers=family_headers).json()["data"]
    assert last["type"] == "BREAST"

    last_bottle = client.get(
        "/api/feed-log/last", params={**params, "type": "BOTTLE"}, headers=family_headers
    ).json()["data"]
    assert last_bottle["amount"] == 120

    logs = client.get("/api/feed-log", params=params, headers=family_headers).json()["data"]
    assert [log["type"] for log in logs] == ["BREAST", "BOTTLE"]


def test_feed_log_rejects_unknown_type(client, family_headers, baby):
    res = client.post(
        "/api/feed-log",
        json={"babyId": baby["id"], "time": "2025-03-01T08:00:00Z", "type": "JUICE"},
        headers=family_headers,
    )
    assert res.status_code == 422


# -------------------- Pañales, baños, extracciones --------------------

def test_diaper_update_and_delete(client, family_headers, baby):
    log = client.post(
        "/api/diaper-log",
        json={"babyId": baby["id"], "time": "2025-03-01T10:00:00Z", "type": "WET"},
        headers=family_headers,
    ).json()["data"]
    assert log["blowout"] is False

    res = client.put("/api/diaper-log", params={"id": log["id"]}, json={"type": "BOTH", "color": "YELLOW"}, headers=family_headers)
    assert res.json()["data"]["type"] == "BOTH"

    assert client.put("/api/diaper-log", json={"type": "WET"}, headers=family_headers).status_code == 400
    assert client.put("/api/diaper-log", params={"id": "nope"}, json={}, headers=family_headers).status_code == 404

    assert client.delete("/api/diaper-log", params={"id": log["id"]}, headers=family_headers).status_code == 200
    assert client.get("/api/diaper-log", params={"id": log["id"]}, headers=family_headers).status_code == 404


def test_bath_log_defaults(client, family_headers, baby):
    res = client.post(
        "/api/bath-log",
        json={"babyId": baby["id"], "time": "2025-03-01T19:00:00Z"},
        headers=family_headers,
    )
    data = res.json()["data"]
    assert data["soapUsed"] is True
    assert data["shampooUsed"] is True


def test_pump_log_totals(client, family_headers, baby):
    res = client.post(
        "/api/pump-log",
        json={
            "babyId": baby["id"],
            "startTime": "2025-03-01T07:00:00Z",
            "endTime": "2025-03-01T07:20:00Z",
            "leftAmount": 60,
            "rightAmount": 45,
            "unitAbbr": "ML",
        },
        headers=family_headers,
    )
    data = res.json()["data"]
    assert data["totalAmount"] == 105
    assert data["duration"] == 20


# -------------------- Notas, hitos, mediciones --------------------

def test_note_categories(client, family_headers, baby):
    for category in ("Health", "Sleep", "Health", None):
        client.post(
            "/api/note",
            json={"babyId": baby["id"], "time": "2025-03-01T10:00:00Z", "content": "note", "category": category},
            headers=family_headers,
        )
    res = client.get("/api/note", params={"categories": "true"}, headers=family_headers)
    assert res.json()["data"] == ["Health", "Sleep"]


def test_milestone_age_in_days(client, family_headers, baby):
    res = client.post(
        "/api/milestone-log",
        json={"babyId": baby["id"], "date": "2025-02-09T12:00:00Z", "title": "First smile", "category": "SOCIAL"},
        headers=family_headers,
    )
    assert res.status_code == 200
    assert res.json()["data"]["ageInDays"] == 30


def test_measurement_type_filter(client, family_headers, baby):
    for kind, value, unit in (("WEIGHT", 4.2, "KG"), ("HEIGHT", 55, "CM")):
        client.post(
            "/api/measurement-log",
            json={"babyId": baby["id"], "date": "2025-03-01T09:00:00Z", "type": kind, "value": value, "unit": unit},
            headers=family_headers,
        )
    res = client.get("/api/measurement-log", params={"babyId": baby["id"], "type": "WEIGHT"}, headers=family_headers)
    data = res.json()["data"]
    assert len(data) == 1
    assert data[0]["value"] == pytest.approx(4.2)

    res = client.post(
        "/api/measurement-log",
        json={"babyId": baby["id"], "date": "2025-03-01T09:00:00Z", "type": "WEIGHT", "value": 0, "unit": "KG"},
        headers=family_headers,
    )
    assert res.status_code == 422


# -------------------- Medicamentos --------------------

def test_medicine_crud(client, family_headers):
    res = client.post(
        "/api/medicine",
        json={"name": "Paracetamol", "typicalDoseSize": 2.5, "unitAbbr": "ML", "doseMinTime": "00:06:00"},
        headers=family_headers,
    )
    assert res.status_code == 200
    medicine = res.json()["data"]

    res = client.put("/api/medicine", params={"id": medicine["id"]}, json={"active": False}, headers=family_headers)
    assert res.json()["data"]["active"] is False
    assert client.get("/api/medicine", params={"active": "true"}, headers=family_headers).json()["data"] == []

    assert client.delete("/api/medicine", params={"id": medicine["id"]}, headers=family_headers).status_code == 200
    assert client.get("/api/medicine", headers=family_headers).json()["data"] == []


def test_medicine_rejects_bad_interval(client, family_headers):
    res = client.post("/api/medicine", json={"name": "Bad", "doseMinTime": "6 hours"}, headers=family_headers)
    assert res.status_code == 422


def test_medicine_log_and_active_doses(client, family_headers, baby):
    medicine = client.post(
        "/api/medicine",
        json={"name": "Ibuprofen", "unitAbbr": "ML", "doseMinTime": "00:08:00"},
        headers=family_headers,
    ).json()["data"]

    now = datetime.now(timezone.utc)
    for hours_ago in (5, 1):
        res = client.post(
            "/api/medicine-log",
            json={
                "babyId": baby["id"],
                "medicineId": medicine["id"],
                "time": iso(now - timedelta(hours=hours_ago)),
                "doseAmount": 2,
            },
            headers=family_headers,
        )
        assert res.status_code == 200
        assert res.json()["data"]["unitAbbr"] == "ML"
        assert res.json()["data"]["medicineName"] == "Ibuprofen"

    # Fuera de la ventana de 24 horas
    client.post(
        "/api/medicine-log",
        json={"babyId": baby["id"], "medicineId": medicine["id"], "time": iso(now - timedelta(hours=30)), "doseAmount": 9},
        headers=family_headers,
    )

    res = client.get("/api/medicine-log/active", params={"babyId": baby["id"]}, headers=family_headers)
    doses = res.json()["data"]
    assert len(doses) == 1
    dose = doses[0]
    assert dose["medicineName"] == "Ibuprofen"
    assert dose["totalIn24h"] == 4
    assert dose["isSafe"] is False
    assert 6 * 60 <= dose["minutesRemaining"] <= 7 * 60 + 1


def test_medicine_log_unknown_medicine(client, family_headers, baby):
    res = client.post(
        "/api/medicine-log",
        json={"babyId": baby["id"], "medicineId": "missing", "time": "2025-03-01T10:00:00Z", "doseAmount": 1},
        headers=family_headers,
    )
    assert res.status_code == 404


def test_logs_require_authentication(client):
    assert client.get("/api/sleep-log").status_code == 401
    assert client.post("/api/note", json={}).status_code in (401, 422)
