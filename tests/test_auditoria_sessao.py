from datetime import timedelta

from conftest import login, post_json
from odontosaas.utils_dates import utcnow


def _create_record(client, clinic):
    resp = post_json(
        client,
        "/api/records",
        {
            "patientId": clinic["patient_id"],
            "dentistId": clinic["dentist_id"],
            "description": "Avaliação inicial sem intercorrências",
        },
    )
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["data"]


def test_session_expires_after_inactivity(app, client, clinic):
    login(client, clinic["owner_email"])
    assert client.get("/api/patients").status_code == 200

    with client.session_transaction() as sess:
        old = utcnow() - timedelta(minutes=app.config["SESSION_TIMEOUT_MIN"] + 1)
        sess["_last_activity"] = old.isoformat()

    resp = client.get("/api/patients")
    assert resp.status_code == 401
    assert client.get("/api/auth/session").get_json() == {"user": None}


def test_recent_activity_keeps_session(client, clinic):
    login(client, clinic["owner_email"])
    with client.session_transaction() as sess:
        sess["_last_activity"] = (utcnow() - timedelta(minutes=5)).isoformat()
    assert client.get("/api/patients").status_code == 200


def test_reading_record_writes_access_audit(client, clinic):
    login(client, clinic["dentist_email"])
    record = _create_record(client, clinic)
    assert client.get(f"/api/records/{record['id']}").status_code == 200

    login(client, clinic["owner_email"])
    logs = client.get("/api/audit-logs?action=ACCESS_RECORD").get_json()["data"]
    assert len(logs) == 1
    entry = logs[0]
    assert entry["targetType"] == "Record"
    assert entry["targetId"] == str(record["id"])
    assert entry["userId"] == clinic["dentist_user_id"]
    assert entry["metadata"]["userRole"] == "DENTIST"


def test_audit_log_filters_and_access(client, seed, clinic):
    login(client, clinic["dentist_email"])
    first = _create_record(client, clinic)
    second = _create_record(client, clinic)
    client.get(f"/api/records/{first['id']}")

    login(client, clinic["admin_email"])
    all_logs = client.get("/api/audit-logs").get_json()["data"]
    assert [e["action"] for e in all_logs].count("CREATE_RECORD") == 2
    # mais recentes primeiro
    assert all_logs[0]["action"] == "ACCESS_RECORD"

    created = client.get("/api/audit-logs?action=CREATE_RECORD").get_json()["data"]
    assert {e["targetId"] for e in created} == {str(first["id"]), str(second["id"])}
    by_target = client.get(f"/api/audit-logs?targetType=Record&targetId={second['id']}").get_json()["data"]
    assert [e["action"] for e in by_target] == ["CREATE_RECORD"]

    for email in (clinic["dentist_email"], clinic["reception_email"]):
        login(client, email)
        resp = client.get("/api/audit-logs")
        assert resp.status_code == 403
        assert resp.get_json()["code"] == "FORBIDDEN"

    # outra clínica não enxerga a auditoria desta
    other = seed.clinic(name="Clínica Rival", owner_email="dono@rival.com.br")
    login(client, other["owner_email"])
    assert client.get("/api/audit-logs").get_json()["data"] == []
