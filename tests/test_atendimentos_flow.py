from conftest import login, post_json


def _check_in(client, clinic, **extra):
    payload = {"patientId": clinic["patient_id"], **extra}
    resp = post_json(client, "/api/attendances", payload)
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["data"]


def _procedure_payload(clinic, **extra):
    payload = {
        "procedureId": clinic["procedure_id"],
        "tooth": "16",
        "faces": ["o", "M"],
        "clinicalStatus": "CARIE",
    }
    payload.update(extra)
    return payload


def test_full_attendance_lifecycle_creates_record(client, clinic):
    login(client, clinic["reception_email"])
    attendance = _check_in(client, clinic, notes="Dor no dente")
    assert attendance["status"] == "CHECKED_IN"
    assert attendance["dentistId"] is None
    aid = attendance["id"]

    waiting = client.get("/api/attendances/waiting-room").get_json()["data"]
    assert [a["id"] for a in waiting] == [aid]

    login(client, clinic["dentist_email"])
    resp = post_json(client, f"/api/attendances/{aid}/start")
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["status"] == "IN_PROGRESS"
    assert data["dentistId"] == clinic["dentist_id"]
    assert data["startedAt"]

    # Sem CID/procedimento não finaliza
    resp = post_json(client, f"/api/attendances/{aid}/finish")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "É necessário adicionar pelo menos um CID antes de finalizar"

    resp = post_json(
        client, f"/api/attendances/{aid}/cids", {"cidCode": "K02.1", "description": "Cárie da dentina"}
    )
    assert resp.status_code == 201
    assert resp.get_json()["data"]["createdByDentistId"] == clinic["dentist_id"]

    resp = post_json(client, f"/api/attendances/{aid}/procedures", _procedure_payload(clinic))
    assert resp.status_code == 201
    item = resp.get_json()["data"]
    assert item["faces"] == ["O", "M"]
    assert item["description"] == "Restauração"
    assert item["price"] == 150.0

    resp = post_json(
        client, f"/api/attendances/{aid}/odontogram", {"data": {"16": "CARIE", "21": "SAUDAVEL"}}, method="put"
    )
    assert resp.status_code == 200
    assert resp.get_json()["data"]["data"]["16"] == "CARIE"

    resp = post_json(client, f"/api/attendances/{aid}/finish")
    assert resp.status_code == 200
    assert resp.get_json()["data"]["status"] == "DONE"
    assert resp.get_json()["data"]["finishedAt"]

    records = client.get(f"/api/records?patientId={clinic['patient_id']}").get_json()["data"]
    assert len(records) == 1
    record = records[0]
    assert record["attendanceId"] == aid
    assert "CIDs: K02.1 - Cárie da dentina" in record["description"]
    assert "Restauração (Dente 16)" in record["description"]
    assert record["odontogram"] == {"16": "CARIE", "21": "SAUDAVEL"}

    # Finalizado não pode ser cancelado nem reiniciado
    resp = post_json(client, f"/api/attendances/{aid}/cancel")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Não é possível cancelar um atendimento já finalizado"
    resp = post_json(client, f"/api/attendances/{aid}/start")
    assert resp.status_code == 400


def test_clinical_document_only_after_finish(client, clinic):
    login(client, clinic["reception_email"])
    aid = _check_in(client, clinic)["id"]
    login(client, clinic["dentist_email"])
    post_json(client, f"/api/attendances/{aid}/start")

    doc = {"type": "atestado", "payload": {"dias": 2, "cid": "K02.1"}}
    resp = post_json(client, f"/api/attendances/{aid}/documents", doc)
    assert resp.status_code == 400

    post_json(client, f"/api/attendances/{aid}/cids", {"cidCode": "K02.1", "description": "Cárie"})
    post_json(client, f"/api/attendances/{aid}/procedures", _procedure_payload(clinic))
    post_json(client, f"/api/attendances/{aid}/finish")

    resp = post_json(client, f"/api/attendances/{aid}/documents", doc)
    assert resp.status_code == 201
    body = resp.get_json()["data"]
    assert body["document"]["type"] == "atestado"
    assert body["document"]["payload"]["dias"] == 2
    assert len(body["attendance"]["documents"]) == 1


def test_owner_start_requires_dentist(client, clinic):
    login(client, clinic["owner_email"])
    aid = _check_in(client, clinic)["id"]
    resp = post_json(client, f"/api/attendances/{aid}/start")
    assert resp.status_code == 400
    assert "Informe o dentista" in resp.get_json()["error"]

    resp = post_json(client, f"/api/attendances/{aid}/start", {"dentistId": clinic["dentist_id"]})
    assert resp.status_code == 200
    assert resp.get_json()["data"]["dentistId"] == clinic["dentist_id"]


def test_dentist_cannot_start_for_another_dentist(client, seed, clinic):
    other = seed.dentist(clinic["clinic_id"], "outro@sorriso.com.br", cro="CRO-SP 99999")
    login(client, clinic["dentist_email"])
    aid = _check_in(client, clinic)["id"]
    resp = post_json(client, f"/api/attendances/{aid}/start", {"dentistId": other["dentist_id"]})
    assert resp.status_code == 403


def test_dentist_cannot_finish_other_dentists_attendance(client, seed, clinic):
    other = seed.dentist(clinic["clinic_id"], "outro@sorriso.com.br", cro="CRO-SP 99999")
    login(client, clinic["owner_email"])
    aid = _check_in(client, clinic, dentistId=clinic["dentist_id"])["id"]
    post_json(client, f"/api/attendances/{aid}/start")
    post_json(client, f"/api/attendances/{aid}/cids", {"cidCode": "K02.1", "description": "Cárie"})
    post_json(client, f"/api/attendances/{aid}/procedures", _procedure_payload(clinic))

    login(client, other["email"])
    resp = post_json(client, f"/api/attendances/{aid}/finish")
    assert resp.status_code == 403
    assert resp.get_json()["error"] == "Você só pode finalizar seus próprios atendimentos"


def test_cancel_rules_and_appointment_release(client, clinic):
    login(client, clinic["reception_email"])
    resp = post_json(
        client,
        "/api/appointments",
        {
            "dentistId": clinic["dentist_id"],
            "patientId": clinic["patient_id"],
            "date": "2030-05-10T14:00:00",
        },
    )
    assert resp.status_code == 201
    appointment_id = resp.get_json()["data"]["id"]

    first = _check_in(client, clinic, appointmentId=appointment_id)
    assert first["dentistId"] == clinic["dentist_id"]

    resp = post_json(client, "/api/attendances", {"patientId": clinic["patient_id"], "appointmentId": appointment_id})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Este agendamento já possui um atendimento em andamento"

    resp = post_json(client, f"/api/attendances/{first['id']}/cancel", {"reason": "Paciente desistiu"})
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["status"] == "CANCELED"
    assert data["cancelReason"] == "Paciente desistiu"
    assert data["appointmentId"] is None

    resp = post_json(client, f"/api/attendances/{first['id']}/cancel")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Atendimento já está cancelado"

    # Agendamento liberado para novo check-in
    second = _check_in(client, clinic, appointmentId=appointment_id)
    assert second["appointmentId"] == appointment_id


def test_check_in_inactive_patient(client, seed, clinic):
    inactive = seed.patient(clinic["clinic_id"], name="Inativo", is_active=False)
    login(client, clinic["reception_email"])
    resp = post_json(client, "/api/attendances", {"patientId": inactive})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Paciente não encontrado ou inativo"


def test_cid_and_procedure_validation(client, seed, clinic):
    login(client, clinic["dentist_email"])
    aid = _check_in(client, clinic)["id"]

    # Ainda em check-in
    resp = post_json(client, f"/api/attendances/{aid}/cids", {"cidCode": "K02.1", "description": "Cárie"})
    assert resp.status_code == 400

    post_json(client, f"/api/attendances/{aid}/start")
    resp = post_json(client, f"/api/attendances/{aid}/cids", {"cidCode": "k021", "description": "Cárie"})
    assert resp.status_code == 400
    assert "Código CID deve ter formato válido" in resp.get_json()["error"]

    resp = post_json(client, f"/api/attendances/{aid}/procedures", _procedure_payload(clinic, tooth="19"))
    assert resp.status_code == 400
    resp = post_json(client, f"/api/attendances/{aid}/procedures", _procedure_payload(clinic, faces=["X"]))
    assert resp.status_code == 400
    assert "Faces devem ser O, M, D, V ou L" in resp.get_json()["error"]
    resp = post_json(client, f"/api/attendances/{aid}/procedures", _procedure_payload(clinic, faces=[]))
    assert resp.status_code == 400

    unlinked = seed.procedure(clinic["clinic_id"], name="Canal")
    resp = post_json(client, f"/api/attendances/{aid}/procedures", _procedure_payload(clinic, procedureId=unlinked))
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Procedimento não está vinculado a este dentista"


def test_remove_cid_and_procedure(client, clinic):
    login(client, clinic["dentist_email"])
    aid = _check_in(client, clinic)["id"]
    post_json(client, f"/api/attendances/{aid}/start")
    cid_id = post_json(
        client, f"/api/attendances/{aid}/cids", {"cidCode": "Z01.2", "description": "Exame"}
    ).get_json()["data"]["id"]
    item_id = post_json(
        client, f"/api/attendances/{aid}/procedures", _procedure_payload(clinic)
    ).get_json()["data"]["id"]

    assert client.delete(f"/api/attendances/{aid}/cids/{cid_id}").status_code == 200
    assert client.delete(f"/api/attendances/{aid}/procedures/{item_id}").status_code == 200
    assert client.delete(f"/api/attendances/{aid}/procedures/{item_id}").status_code == 404

    data = client.get(f"/api/attendances/{aid}").get_json()["data"]
    assert data["cids"] == [] and data["procedures"] == []


def test_list_filters_by_status(client, clinic):
    login(client, clinic["owner_email"])
    a1 = _check_in(client, clinic)["id"]
    a2 = _check_in(client, clinic)["id"]
    post_json(client, f"/api/attendances/{a2}/cancel")

    resp = client.get("/api/attendances?status=CANCELED")
    assert [a["id"] for a in resp.get_json()["data"]] == [a2]
    resp = client.get("/api/attendances?status=CHECKED_IN")
    assert [a["id"] for a in resp.get_json()["data"]] == [a1]
    assert client.get("/api/attendances?status=XPTO").status_code == 400


def test_finish_requires_in_progress(client, clinic):
    login(client, clinic["reception_email"])
    aid = _check_in(client, clinic)["id"]

    login(client, clinic["dentist_email"])
    resp = post_json(client, f"/api/attendances/{aid}/finish")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Apenas atendimentos em andamento podem ser finalizados"
    assert client.get(f"/api/attendances/{aid}").get_json()["data"]["status"] == "CHECKED_IN"


def test_cancel_in_progress_attendance(client, clinic):
    login(client, clinic["reception_email"])
    aid = _check_in(client, clinic)["id"]

    login(client, clinic["dentist_email"])
    assert post_json(client, f"/api/attendances/{aid}/start").get_json()["data"]["status"] == "IN_PROGRESS"

    login(client, clinic["reception_email"])
    resp = post_json(client, f"/api/attendances/{aid}/cancel", {"reason": "Intercorrência"})
    assert resp.status_code == 200
    assert resp.get_json()["data"]["status"] == "CANCELED"

    # cancelado não volta ao fluxo
    login(client, clinic["dentist_email"])
    resp = post_json(client, f"/api/attendances/{aid}/finish")
    assert resp.status_code == 400
    resp = post_json(client, f"/api/attendances/{aid}/start")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Apenas atendimentos em check-in podem ser iniciados"
