def _seed_day(client, headers, baby_id):
    client.post(
        "/api/sleep-log",
        json={"babyId": baby_id, "startTime": "2025-03-01T06:00:00Z", "endTime": "2025-03-01T07:00:00Z", "type": "NAP"},
        headers=headers,
    )
    client.post("/api/feed-log", json={"babyId": baby_id, "time": "2025-03-01T08:00:00Z", "type": "BOTTLE"}, headers=headers)
    client.post("/api/diaper-log", json={"babyId": baby_id, "time": "2025-03-01T09:00:00Z", "type": "WET"}, headers=headers)
    client.post("/api/diaper-log", json={"babyId": baby_id, "time": "2025-03-01T10:00:00Z", "type": "DIRTY"}, headers=headers)
    client.post("/api/diaper-log", json={"babyId": baby_id, "time": "2025-03-01T11:00:00Z", "type": "WET"}, headers=headers)
    client.post(
        "/api/note", json={"babyId": baby_id, "time": "2025-03-01T12:00:00Z", "content": "Happy day"}, headers=headers
    )
    client.post(
        "/api/measurement-log",
        json={"babyId": baby_id, "date": "2025-03-01T13:00:00Z", "type": "WEIGHT", "value": 4.5, "unit": "KG"},
        headers=headers,
    )


def test_timeline_requires_baby(client, family_headers):
    res = client.get("/api/timeline", headers=family_headers)
    assert res.status_code == 400


def test_timeline_merges_and_sorts(client, family_headers, baby):
    _seed_day(client, family_headers, baby["id"])

    res = client.get("/api/timeline", params={"babyId": baby["id"]}, headers=family_headers)
    assert res.status_code == 200
    items = res.json()["data"]
    assert [item["kind"] for item in items] == [
        "measurement", "note", "diaper", "diaper", "diaper", "feed", "sleep",
    ]
    assert all(item["caretakerName"] == "system" for item in items)


def test_timeline_limit_and_range(client, family_headers, baby):
    _seed_day(client, family_headers, baby["id"])

    res = client.get("/api/timeline", params={"babyId": baby["id"], "limit": 2}, headers=family_headers)
    assert [item["kind"] for item in res.json()["data"]] == ["measurement", "note"]

    res = client.get(
        "/api/timeline",
        params={
            "babyId": baby["id"],
            "limit": 2,
            "startDate": "2025-03-01T08:30:00Z",
            "endDate": "2025-03-01T11:30:00Z",
        },
        headers=family_headers,
    )
    # Con rango completo el límite no se aplica
    assert [item["kind"] for item in res.json()["data"]] == ["diaper", "diaper", "diaper"]


def test_baby_last_activities(client, family_headers, baby):
    _seed_day(client, family_headers, baby["id"])

    res = client.get("/api/baby-last-activities", params={"babyId": baby["id"]}, headers=family_headers)
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["lastDiaper"]["time"].startswith("2025-03-01T11:00")
    assert data["lastPoopDiaper"]["type"] == "DIRTY"
    assert data["lastBath"] is None
    assert data["lastNote"]["content"] == "Happy day"
    assert data["lastMeasurements"]["weight"]["value"] == 4.5
    assert data["lastMeasurements"]["height"] is None


def test_timeline_unknown_baby(client, family_headers):
    res = client.get("/api/timeline", params={"babyId": "missing"}, headers=family_headers)
    assert res.status_code == 404
