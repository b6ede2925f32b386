from conftest import login, post_json
from odontosaas import db
from odontosaas.catalogo.models import Cid, Specialty


def test_create_dentist_profile(client, seed, clinic):
    uid = seed.user(clinic["clinic_id"], "DENTIST", "nova@sorriso.com.br")
    reception = seed.user(clinic["clinic_id"], "RECEPTIONIST", "rec2@sorriso.com.br")
    login(client, clinic["admin_email"])

    eligible = [u["id"] for u in client.get("/api/users/eligible").get_json()["data"]]
    assert eligible == [uid]

    resp = post_json(client, "/api/dentists", {"userId": uid, "cro": "CRO SP 1"})
    assert resp.status_code == 400
    assert "CRO deve estar no formato CRO-UF 12345" in resp.get_json()["error"]

    resp = post_json(client, "/api/dentists", {"userId": reception, "cro": "CRO-SP 4321"})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Usuário deve ter o papel DENTIST"

    resp = post_json(client, "/api/dentists", {"userId": uid, "cro": "CRO-SP 12345"})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "CRO já cadastrado nesta clínica"

    resp = post_json(
        client,
        "/api/dentists",
        {"userId": uid, "cro": "CRO-SP 4321", "commission": 30, "workingHours": {"seg": "08:00-12:00"}},
    )
    assert resp.status_code == 201
    data = resp.get_json()["data"]
    assert data["commission"] == 30.0
    assert data["workingHours"] == {"seg": "08:00-12:00"}
    assert client.get("/api/users/eligible").get_json()["data"] == []


def test_procedure_catalog_and_links(client, clinic):
    login(client, clinic["owner_email"])
    resp = post_json(client, "/api/procedures", {"name": "Extração", "baseValue": 200, "commissionPercentage": 40})
    assert resp.status_code == 201
    proc_id = resp.get_json()["data"]["id"]

    resp = post_json(
        client, f"/api/dentists/{clinic['dentist_id']}/procedures", {"procedureIds": [proc_id, clinic["procedure_id"]]}, method="put"
    )
    assert resp.status_code == 200
    assert sorted(p["id"] for p in resp.get_json()["data"]) == sorted([proc_id, clinic["procedure_id"]])

    assert client.delete(f"/api/procedures/{proc_id}").status_code == 200
    resp = post_json(client, f"/api/dentists/{clinic['dentist_id']}/procedures", {"procedureIds": [proc_id]}, method="put")
    assert resp.status_code == 400
    resp = post_json(client, f"/api/dentists/{clinic['dentist_id']}/procedures", {"procedureIds": [9999]}, method="put")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Procedimentos não encontrados: 9999"


def test_dentist_financial_from_finished_attendance(client, clinic):
    login(client, clinic["owner_email"])
    resp = post_json(client, f"/api/dentists/{clinic['dentist_id']}", {"commission": 10}, method="patch")
    assert resp.status_code == 200

    aid = post_json(client, "/api/attendances", {"patientId": clinic["patient_id"]}).get_json()["data"]["id"]
    login(client, clinic["dentist_email"])
    post_json(client, f"/api/attendances/{aid}/start")
    post_json(client, f"/api/attendances/{aid}/cids", {"cidCode": "K02.1", "description": "Cárie"})
    post_json(
        client,
        f"/api/attendances/{aid}/procedures",
        {"procedureId": clinic["procedure_id"], "tooth": "21", "faces": ["V"], "clinicalStatus": "RESTAURADO"},
    )
    assert post_json(client, f"/api/attendances/{aid}/finish").status_code == 200

    data = client.get(f"/api/dentists/{clinic['dentist_id']}/financial").get_json()["data"]
    assert data["grossProduction"] == 150.0
    assert data["totalPending"] == 15.0
    assert data["totalReceived"] == 0
    [tx] = data["transactions"]
    assert tx["source"] == "ATTENDANCE"
    assert tx["commissionType"] == "GENERAL"
    assert tx["status"] == "PENDENTE"


def test_financial_access_restricted_to_own_profile(client, seed, clinic):
    other = seed.dentist(clinic["clinic_id"], "outro@sorriso.com.br", cro="CRO-SP 222")
    login(client, clinic["dentist_email"])
    assert client.get(f"/api/dentists/{other['dentist_id']}/financial").status_code == 403
    assert client.get(f"/api/dentists/{clinic['dentist_id']}/financial").status_code == 200


def test_cid_search(app, client, clinic):
    with app.app_context():
        for code, description in (("K02.1", "Cárie da dentina"), ("K04.0", "Pulpite"), ("Z01.2", "Exame dentário")):
            cid = Cid()
            cid.code = code
            cid.description = description
            cid.category = "Odontologia"
            db.session.add(cid)
        db.session.commit()

    login(client, clinic["dentist_email"])
    found = client.get("/api/cids?q=pulp").get_json()["data"]
    assert [c["code"] for c in found] == ["K04.0"]
    assert len(client.get("/api/cids").get_json()["data"]) == 3


def test_seed_catalog_command_is_idempotent(app, runner):
    result = runner.invoke(args=["seed-catalog"])
    assert result.exit_code == 0, result.output
    assert "CIDs inseridos: 53" in result.output
    assert "especialidades inseridas: 23" in result.output

    result = runner.invoke(args=["seed-catalog"])
    assert "CIDs inseridos: 0 | especialidades inseridas: 0" in result.output
    with app.app_context():
        assert Cid.query.filter_by(code="K02.1").one().category
        assert Specialty.query.count() == 23
