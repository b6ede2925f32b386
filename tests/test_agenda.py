from datetime import timedelta

from conftest import login, post_json
from odontosaas.utils_dates import utcnow


def _appointment(client, clinic, when, **extra):
    payload = {
        "dentistId": clinic["dentist_id"],
        "patientId": clinic["patient_id"],
        "date": when.isoformat() if hasattr(when, "isoformat") else when,
    }
    payload.update(extra)
    return post_json(client, "/api/appointments", payload)


def test_create_with_procedure_snapshot(client, clinic):
    login(client, clinic["reception_email"])
    resp = _appointment(client, clinic, "2030-03-01T10:00:00", procedureId=clinic["procedure_id"], durationMinutes=60)
    assert resp.status_code == 201
    data = resp.get_json()["data"]
    assert data["status"] == "SCHEDULED"
    assert data["statusLabel"]
    assert data["procedure"] == "Restauração"
    assert data["procedureSnapshot"]["name"] == "Restauração"
    assert data["end"].startswith("2030-03-01T11:00")
    assert data["patient"]["id"] == clinic["patient_id"]


def test_validation(client, clinic):
    login(client, clinic["reception_email"])
    assert _appointment(client, clinic, "2030-03-01T10:00:00", durationMinutes=5).status_code == 400
    assert _appointment(client, clinic, "nao-e-data").status_code == 400
    assert _appointment(client, clinic, "2030-03-01T10:00:00", status="PERDIDO").status_code == 400
    resp = post_json(client, "/api/appointments", {"patientId": clinic["patient_id"]})
    assert resp.status_code == 400


def test_update_status_and_filters(client, clinic):
    login(client, clinic["reception_email"])
    a1 = _appointment(client, clinic, "2030-03-01T10:00:00").get_json()["data"]
    a2 = _appointment(client, clinic, "2030-03-02T10:00:00").get_json()["data"]

    resp = post_json(client, f"/api/appointments/{a2['id']}", {"status": "CONFIRMED"}, method="patch")
    assert resp.status_code == 200
    assert resp.get_json()["data"]["status"] == "CONFIRMED"

    data = client.get("/api/appointments?status=CONFIRMED").get_json()["data"]
    assert [a["id"] for a in data] == [a2["id"]]
    data = client.get("/api/appointments?date=2030-03-01").get_json()["data"]
    assert [a["id"] for a in data] == [a1["id"]]
    data = client.get("/api/appointments?dateFrom=2030-03-01&dateTo=2030-03-02").get_json()["data"]
    assert [a["id"] for a in data] == [a1["id"], a2["id"]]


def test_upcoming_skips_past_and_canceled(client, clinic):
    login(client, clinic["reception_email"])
    now = utcnow()
    _appointment(client, clinic, now - timedelta(days=1))
    soon = _appointment(client, clinic, now + timedelta(days=1)).get_json()["data"]
    later = _appointment(client, clinic, now + timedelta(days=2)).get_json()["data"]
    canceled = _appointment(client, clinic, now + timedelta(hours=5)).get_json()["data"]
    post_json(client, f"/api/appointments/{canceled['id']}", {"status": "CANCELED"}, method="patch")

    data = client.get("/api/appointments/upcoming").get_json()["data"]
    assert [a["id"] for a in data] == [soon["id"], later["id"]]
    data = client.get("/api/appointments/upcoming?limit=1").get_json()["data"]
    assert [a["id"] for a in data] == [soon["id"]]


def test_dentist_reads_but_cannot_schedule(client, clinic):
    login(client, clinic["dentist_email"])
    assert client.get("/api/appointments").status_code == 200
    assert _appointment(client, clinic, "2030-03-01T10:00:00").status_code == 403
