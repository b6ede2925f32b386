from decimal import Decimal

import pytest

from conftest import login, post_json
from odontosaas import db
from odontosaas.errors import BusinessRuleError
from odontosaas.financeiro.models import Payment


def _create_plan(client, clinic, value=200):
    resp = post_json(
        client,
        "/api/treatment-plans",
        {
            "patientId": clinic["patient_id"],
            "dentistId": clinic["dentist_id"],
            "items": [{"description": "Restauração", "value": value}],
        },
    )
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["data"]


def test_payment_with_amount(client, clinic):
    login(client, clinic["owner_email"])
    resp = post_json(
        client,
        "/api/payments",
        {"amount": 120.5, "method": "PIX", "patientId": clinic["patient_id"], "description": "Consulta"},
    )
    assert resp.status_code == 201
    data = resp.get_json()["data"]
    assert data["amount"] == 120.5
    assert data["method"] == "PIX"
    assert data["treatmentPlanIds"] == []

    assert client.get(f"/api/payments/{data['id']}").get_json()["data"]["id"] == data["id"]


def test_payment_amount_from_plans_approves_them(client, clinic):
    login(client, clinic["owner_email"])
    p1 = _create_plan(client, clinic, 200)
    p2 = _create_plan(client, clinic, 50.25)

    resp = post_json(
        client,
        "/api/payments",
        {"method": "CARD", "patientId": clinic["patient_id"], "treatmentPlanIds": [p1["id"], p2["id"]]},
    )
    assert resp.status_code == 201
    data = resp.get_json()["data"]
    assert data["amount"] == 250.25
    assert sorted(data["treatmentPlanIds"]) == sorted([p1["id"], p2["id"]])

    plan = client.get(f"/api/treatment-plans/{p1['id']}").get_json()["data"]
    assert plan["status"] == "APPROVED"


def test_payment_validation(client, seed, clinic):
    login(client, clinic["owner_email"])
    resp = post_json(client, "/api/payments", {"method": "PIX"})
    assert resp.status_code == 400
    resp = post_json(client, "/api/payments", {"amount": 10, "method": "BOLETO"})
    assert resp.status_code == 400
    resp = post_json(client, "/api/payments", {"amount": 10, "method": "PIX", "treatmentPlanIds": [999]})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Orçamentos não encontrados: 999"

    other_patient = seed.patient(clinic["clinic_id"], name="João")
    plan = _create_plan(client, clinic)
    resp = post_json(
        client,
        "/api/payments",
        {"method": "PIX", "patientId": other_patient, "treatmentPlanIds": [plan["id"]]},
    )
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Orçamentos informados não pertencem ao paciente"


def test_payments_are_immutable(app, client, clinic):
    login(client, clinic["owner_email"])
    payment_id = post_json(client, "/api/payments", {"amount": 10, "method": "CASH"}).get_json()["data"]["id"]

    with app.app_context():
        payment = db.session.get(Payment, payment_id)
        payment.amount = Decimal("99.00")
        with pytest.raises(BusinessRuleError):
            db.session.commit()
        db.session.rollback()

        payment = db.session.get(Payment, payment_id)
        db.session.delete(payment)
        with pytest.raises(BusinessRuleError):
            db.session.commit()
        db.session.rollback()

        assert db.session.get(Payment, payment_id).amount == Decimal("10.00")


def test_payment_routes_have_no_update_or_delete(client, clinic):
    login(client, clinic["owner_email"])
    payment_id = post_json(client, "/api/payments", {"amount": 10, "method": "CASH"}).get_json()["data"]["id"]
    assert client.delete(f"/api/payments/{payment_id}").status_code == 405
    assert post_json(client, f"/api/payments/{payment_id}", {"amount": 1}, method="patch").status_code == 405


def test_daily_and_monthly_summary(client, clinic):
    login(client, clinic["owner_email"])
    post_json(client, "/api/payments", {"amount": 100, "method": "PIX"})
    post_json(client, "/api/payments", {"amount": 50, "method": "PIX"})
    post_json(client, "/api/payments", {"amount": 30, "method": "CASH"})

    daily = client.get("/api/payments/summary?type=daily").get_json()["data"]
    assert daily["totalAmount"] == 180.0
    assert daily["totalCount"] == 3
    by_method = {m["method"]: m for m in daily["byMethod"]}
    assert by_method["PIX"] == {"method": "PIX", "total": 150.0, "count": 2}
    assert by_method["CARD"]["count"] == 0

    monthly = client.get("/api/payments/summary?type=monthly").get_json()["data"]
    assert monthly["totalAmount"] == 180.0

    assert client.get("/api/payments/summary?type=monthly&year=2999&month=1").status_code == 400
    assert client.get("/api/payments/summary?type=monthly&month=13").status_code == 400


def test_recent_and_date_range(client, clinic):
    login(client, clinic["owner_email"])
    for amount in (10, 20, 30):
        post_json(client, "/api/payments", {"amount": amount, "method": "CASH"})
    recent = client.get("/api/payments/recent?limit=2").get_json()["data"]
    assert [p["amount"] for p in recent] == [30.0, 20.0]

    resp = client.get("/api/payments?startDate=2024-02-10&endDate=2024-02-01")
    assert resp.status_code == 400
