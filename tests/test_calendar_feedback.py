import time
from datetime import datetime, timedelta, timezone

from conftest import DEFAULT_SLUG, auth
from test_caretakers_babies import caretaker_token, new_caretaker
from test_family_setup import create_setup_link


def iso(value: datetime) -> str:
    return value.strftime("%Y-%m-%dT%H:%M:%S.000Z")


def new_contact(client, headers, name="Dra. Perez", role="Pediatrician"):
    res = client.post("/api/contact", json={"name": name, "role": role, "phone": "600111222"}, headers=headers)
    assert res.status_code == 201, res.text
    return res.json()["data"]


def new_event(client, headers, **overrides):
    body = {
        "title": "Pediatra",
        "startTime": iso(datetime.now(timezone.utc) + timedelta(days=3)),
        "allDay": False,
        "type": "APPOINTMENT",
    }
    body.update(overrides)
    return client.post("/api/calendar-event", json=body, headers=headers)


def family_id_of(client) -> str:
    return client.get(f"/api/family/by-slug/{DEFAULT_SLUG}").json()["data"]["id"]


# -------------------- Contactos --------------------

def test_contact_crud(client, family_headers):
    new_contact(client, family_headers, "Zoe", "Babysitter")
    contact = new_contact(client, family_headers, "Ana", "Pediatrician")

    res = client.get("/api/contact", headers=family_headers)
    assert [c["name"] for c in res.json()["data"]] == ["Ana", "Zoe"]

    res = client.get("/api/contact", params={"role": "Babysitter"}, headers=family_headers)
    assert [c["name"] for c in res.json()["data"]] == ["Zoe"]

    res = client.put(
        "/api/contact", params={"id": contact["id"]}, json={"name": "Ana Ruiz", "role": "Pediatrician"}, headers=family_headers
    )
    assert res.status_code == 200
    assert res.json()["data"]["name"] == "Ana Ruiz"
    assert res.json()["data"]["phone"] is None

    assert client.delete("/api/contact", params={"id": contact["id"]}, headers=family_headers).status_code == 200
    assert client.get("/api/contact", params={"id": contact["id"]}, headers=family_headers).status_code == 404


def test_contact_validation(client, family_headers):
    assert client.post("/api/contact", json={"name": "", "role": "x"}, headers=family_headers).status_code == 422
    assert client.put("/api/contact", json={"name": "a", "role": "b"}, headers=family_headers).status_code == 400
    assert client.delete("/api/contact", params={"id": "missing"}, headers=family_headers).status_code == 404


# -------------------- Eventos --------------------

def test_create_event_with_participants(client, family_headers, baby):
    contact = new_contact(client, family_headers)
    caretaker = new_caretaker(client, family_headers, "10", name="Ana").json()["data"]

    res = new_event(
        client, family_headers,
        babyIds=[baby["id"]], caretakerIds=[caretaker["id"]], contactIds=[contact["id"], contact["id"]],
        reminderTime=30,
    )
    assert res.status_code == 201, res.text
    event = res.json()["data"]
    assert event["babies"] == [{"id": baby["id"], "firstName": "Lucia", "lastName": "Garcia"}]
    assert [c["name"] for c in event["caretakers"]] == ["Ana"]
    assert event["contactIds"] == [contact["id"]]
    assert event["contacts"][0]["role"] == "Pediatrician"
    assert event["recurring"] is False
    assert event["notificationSent"] is False
    assert event["startTime"].endswith("Z")

    one = client.get("/api/calendar-event", params={"id": event["id"]}, headers=family_headers)
    assert one.json()["data"]["reminderTime"] == 30


def test_event_participants_must_belong_to_family(client, family_headers):
    res = new_event(client, family_headers, babyIds=["missing-baby"])
    assert res.status_code == 404
    assert client.get("/api/calendar-event", headers=family_headers).json()["data"] == []


def test_event_validation(client, family_headers):
    assert new_event(client, family_headers, title="").status_code == 422
    assert new_event(client, family_headers, type="PARTY").status_code == 422
    assert new_event(client, family_headers, recurring=True).status_code == 400
    res = new_event(client, family_headers, recurring=True, recurrencePattern="CUSTOM")
    assert res.status_code == 400


def test_list_event_filters(client, family_headers, baby):
    now = datetime.now(timezone.utc)
    new_event(client, family_headers, title="Later", startTime=iso(now + timedelta(days=10)), babyIds=[baby["id"]])
    new_event(client, family_headers, title="Soon", startTime=iso(now + timedelta(days=1)), type="REMINDER")
    new_event(
        client, family_headers, title="Bath", startTime=iso(now + timedelta(days=2)),
        recurring=True, recurrencePattern="DAILY",
    )

    events = client.get("/api/calendar-event", headers=family_headers).json()["data"]
    assert [e["title"] for e in events] == ["Soon", "Bath", "Later"]

    def titles(**params):
        res = client.get("/api/calendar-event", params=params, headers=family_headers)
        assert res.status_code == 200, res.text
        return [e["title"] for e in res.json()["data"]]

    assert titles(babyId=baby["id"]) == ["Later"]
    assert titles(type="REMINDER") == ["Soon"]
    assert titles(recurring="true") == ["Bath"]
    assert titles(startDate=iso(now), endDate=iso(now + timedelta(days=5))) == ["Soon", "Bath"]

    res = client.get("/api/calendar-event", params={"babyId": "missing"}, headers=family_headers)
    assert res.status_code == 404


def test_update_event_keeps_participants_unless_sent(client, family_headers, baby):
    contact = new_contact(client, family_headers)
    event = new_event(client, family_headers, babyIds=[baby["id"]], contactIds=[contact["id"]]).json()["data"]

    res = client.put("/api/calendar-event", params={"id": event["id"]}, json={"title": "Vacuna"}, headers=family_headers)
    assert res.status_code == 200
    updated = res.json()["data"]
    assert updated["title"] == "Vacuna"
    assert updated["contactIds"] == [contact["id"]]
    assert len(updated["babies"]) == 1

    res = client.put("/api/calendar-event", params={"id": event["id"]}, json={"contactIds": []}, headers=family_headers)
    assert res.json()["data"]["contacts"] == []
    assert len(res.json()["data"]["babies"]) == 1

    assert client.put("/api/calendar-event", json={"title": "x"}, headers=family_headers).status_code == 400


def test_delete_event(client, family_headers):
    event = new_event(client, family_headers).json()["data"]
    res = client.delete("/api/calendar-event", params={"id": event["id"]}, headers=family_headers)
    assert res.status_code == 200
    assert client.get("/api/calendar-event", params={"id": event["id"]}, headers=family_headers).status_code == 404
    assert client.get("/api/calendar-event", headers=family_headers).json()["data"] == []


def test_baby_upcoming_events(client, family_headers, baby):
    now = datetime.now(timezone.utc)
    ids = [baby["id"]]
    new_event(client, family_headers, title="Past", startTime=iso(now - timedelta(days=1)), babyIds=ids)
    new_event(client, family_headers, title="One-off", startTime=iso(now + timedelta(days=2)), babyIds=ids)
    new_event(
        client, family_headers, title="Weekly", startTime=iso(now - timedelta(days=20) + timedelta(hours=1)),
        recurring=True, recurrencePattern="WEEKLY", babyIds=ids,
    )
    new_event(
        client, family_headers, title="Ended", startTime=iso(now - timedelta(days=20)),
        recurring=True, recurrencePattern="DAILY", recurrenceEnd=iso(now - timedelta(days=5)), babyIds=ids,
    )
    new_event(client, family_headers, title="Other", startTime=iso(now + timedelta(hours=2)))

    res = client.get("/api/baby-upcoming-events", params={"babyId": baby["id"]}, headers=family_headers)
    assert res.status_code == 200, res.text
    upcoming = res.json()["data"]
    assert [e["title"] for e in upcoming] == ["Weekly", "One-off"]
    assert upcoming[0]["nextOccurrence"] > iso(now)

    res = client.get("/api/baby-upcoming-events", params={"babyId": baby["id"], "limit": 1}, headers=family_headers)
    assert len(res.json()["data"]) == 1


def test_baby_upcoming_events_errors(client, family_headers):
    assert client.get("/api/baby-upcoming-events", headers=family_headers).status_code == 400
    res = client.get("/api/baby-upcoming-events", params={"babyId": "missing"}, headers=family_headers)
    assert res.status_code == 404


# -------------------- Feedback --------------------

def test_submit_feedback_and_mark_viewed(client, family_headers):
    res = client.post("/api/feedback", json={"subject": " Idea ", "message": "Dark mode"}, headers=family_headers)
    assert res.status_code == 201, res.text
    feedback = res.json()["data"]
    assert feedback["subject"] == "Idea"
    assert feedback["submitterName"] == "system"
    assert feedback["viewed"] is False
    assert feedback["familyId"] == family_id_of(client)

    listed = client.get("/api/feedback", headers=family_headers).json()["data"]
    assert [f["id"] for f in listed] == [feedback["id"]]

    res = client.put("/api/feedback", params={"id": feedback["id"]}, json={"viewed": True}, headers=family_headers)
    assert res.json()["data"]["viewed"] is True
    assert client.get("/api/feedback", params={"viewed": "false"}, headers=family_headers).json()["data"] == []


def test_feedback_requires_subject_and_message(client, family_headers):
    res = client.post("/api/feedback", json={"subject": "  ", "message": "x"}, headers=family_headers)
    assert res.status_code == 400
    assert client.post("/api/feedback", json={"subject": "a", "message": "b"}).status_code == 401


def test_feedback_listing_is_for_admins(client, family_headers, admin_token):
    client.post("/api/feedback", json={"subject": "Bug", "message": "Crash"}, headers=family_headers)
    new_caretaker(client, family_headers, "10", role="USER", pin="222333")
    user_headers = auth(caretaker_token(client, "10", "222333"))

    assert client.get("/api/feedback", headers=user_headers).status_code == 403
    assert client.put("/api/feedback", params={"id": "x"}, json={"viewed": True}, headers=user_headers).status_code == 403

    res = client.get("/api/feedback", headers=auth(admin_token))
    assert [f["subject"] for f in res.json()["data"]] == ["Bug"]
    res = client.put("/api/feedback", params={"id": "missing"}, json={"viewed": True}, headers=auth(admin_token))
    assert res.status_code == 404


# -------------------- Cuidador de sistema y zona horaria --------------------

def test_system_caretaker(client, family_headers, admin_token):
    res = client.get("/api/caretaker/system", headers=family_headers)
    assert res.status_code == 200
    assert res.json()["data"]["loginId"] == "00"

    assert client.get("/api/caretaker/system", headers=auth(admin_token)).status_code == 403
    res = client.get("/api/caretaker/system", params={"familyId": family_id_of(client)}, headers=auth(admin_token))
    assert res.json()["data"]["loginId"] == "00"


def test_family_caretakers_for_sysadmin(client, family_headers, admin_token):
    new_caretaker(client, family_headers, "10", name="Ana")
    family_id = family_id_of(client)

    res = client.get(f"/api/family/{family_id}/caretakers", headers=auth(admin_token))
    assert res.status_code == 200
    assert [c["loginId"] for c in res.json()["data"]] == ["00", "10"]

    assert client.get(f"/api/family/{family_id}/caretakers", headers=family_headers).status_code == 403
    assert client.get("/api/family/missing/caretakers", headers=auth(admin_token)).status_code == 404


def test_system_timezone(client):
    res = client.get("/api/system-timezone")
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["systemTimezone"]
    assert data["currentTime"].endswith("Z")


# -------------------- Token de invitación --------------------

def test_setup_link_token(client, admin_token):
    token = create_setup_link(client, admin_token)

    assert client.post("/api/auth/token", json={"token": token, "password": "wrong-pass"}).status_code == 401
    assert client.post("/api/auth/token", json={"token": "nope", "password": "secret123"}).status_code == 404

    res = client.post("/api/auth/token", json={"token": token, "password": "secret123"})
    assert res.status_code == 200
    data = res.json()["data"]
    day_ms = 24 * 60 * 60 * 1000
    assert abs(data["expiresAt"] - (time.time() * 1000 + day_ms)) < 60_000

    res = client.post(
        "/api/setup/start",
        json={"name": "Invited", "slug": "invited-family", "token": token},
        headers=auth(data["token"]),
    )
    assert res.status_code == 200
