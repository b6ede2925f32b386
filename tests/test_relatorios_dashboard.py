from datetime import datetime

from conftest import login, post_json
from odontosaas.main.services import percentage_change, trend
from odontosaas.utils_dates import utcnow


def _this_month(day=2, hour=10):
    now = utcnow()
    return datetime(now.year, now.month, day, hour).isoformat()


def _schedule(client, clinic, when, status=None):
    payload = {"dentistId": clinic["dentist_id"], "patientId": clinic["patient_id"], "date": when}
    if status:
        payload["status"] = status
    resp = post_json(client, "/api/appointments", payload)
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["data"]


def test_percentage_change_and_trend():
    assert percentage_change(110, 100) == 10.0
    assert percentage_change(5, 0) == 100.0
    assert percentage_change(0, 0) == 0.0
    assert trend(10) == "up"
    assert trend(-6) == "down"
    assert trend(4.9) == "stable"


def test_appointments_report(client, clinic):
    login(client, clinic["owner_email"])
    _schedule(client, clinic, _this_month(2, 9), status="DONE")
    _schedule(client, clinic, _this_month(2, 9), status="DONE")
    _schedule(client, clinic, _this_month(3, 14), status="NO_SHOW")
    _schedule(client, clinic, _this_month(4, 14))

    data = client.get("/api/reports/appointments").get_json()["data"]
    assert data["total"] == 4
    assert data["byStatus"]["DONE"] == 2
    assert data["byStatus"]["NO_SHOW"] == 1
    # 2 concluídos de 3 finalizados
    assert data["attendanceRate"] == 66.67
    assert data["byDentist"][0]["dentistId"] == clinic["dentist_id"]
    assert data["byDentist"][0]["done"] == 2
    assert data["busiestHours"][0]["hour"] in (9, 14)
    assert data["thisMonth"] == 4
    assert len(data["busiestDays"]) == 7


def test_dentist_report_is_scoped(client, seed, clinic):
    other = seed.dentist(clinic["clinic_id"], "outro@sorriso.com.br", cro="CRO-SP 777")
    login(client, clinic["owner_email"])
    _schedule(client, clinic, _this_month())
    post_json(
        client,
        "/api/appointments",
        {"dentistId": other["dentist_id"], "patientId": clinic["patient_id"], "date": _this_month()},
    )
    assert client.get("/api/reports/appointments").get_json()["data"]["total"] == 2

    login(client, clinic["dentist_email"])
    data = client.get(f"/api/reports/appointments?dentistId={other['dentist_id']}").get_json()["data"]
    assert data["total"] == 1
    assert data["byDentist"][0]["dentistId"] == clinic["dentist_id"]


def test_report_period_validation(client, clinic):
    login(client, clinic["owner_email"])
    resp = client.get("/api/reports/finance?from=2024-02-10&to=2024-02-01")
    assert resp.status_code == 400
    login(client, clinic["reception_email"])
    assert client.get("/api/reports/appointments").status_code == 403


def test_finance_and_inventory_reports(client, clinic):
    login(client, clinic["owner_email"])
    post_json(client, "/api/payments", {"amount": 100, "method": "PIX", "patientId": clinic["patient_id"]})
    post_json(client, "/api/payments", {"amount": 40, "method": "CASH"})
    item = post_json(
        client, "/api/inventory-items", {"name": "Resina", "unit": "un", "currentQuantity": 5, "minQuantity": 2}
    ).get_json()["data"]
    post_json(client, "/api/inventory-movements", {"itemId": item["id"], "type": "OUT", "quantity": 3})

    finance = client.get("/api/reports/finance").get_json()["data"]
    assert finance["totalReceived"] == 140.0
    assert finance["paymentCount"] == 2
    assert finance["byMethod"]["PIX"] == 100.0
    assert finance["topPatients"][0]["patientId"] == clinic["patient_id"]
    assert len(finance["byMonth"]) == 6
    assert finance["dailyAverage"] > 0

    inventory = client.get("/api/reports/inventory").get_json()["data"]
    assert inventory["totalItems"] == 1
    assert inventory["lowStock"] == 1
    assert inventory["movementsOut"] == 3
    assert inventory["lowStockItems"][0]["name"] == "Resina"


def test_patients_and_users_reports(client, clinic):
    login(client, clinic["admin_email"])
    patients = client.get("/api/reports/patients").get_json()["data"]
    assert patients["total"] == 1
    assert patients["newThisMonth"] == 1
    assert len(patients["byMonth"]) == 6

    users = client.get("/api/reports/users").get_json()["data"]
    assert users["total"] == 4
    assert users["byRole"] == {"OWNER": 1, "ADMIN": 1, "DENTIST": 1, "RECEPTIONIST": 1}
    dentists = client.get("/api/reports/users?role=DENTIST").get_json()["data"]["users"]
    assert [u["email"] for u in dentists] == [clinic["dentist_email"]]


def test_dashboard(client, clinic):
    login(client, clinic["reception_email"])
    post_json(
        client,
        "/api/treatment-plans",
        {
            "patientId": clinic["patient_id"],
            "dentistId": clinic["dentist_id"],
            "items": [{"description": "Limpeza", "value": 80}],
        },
    )
    login(client, clinic["owner_email"])
    post_json(client, "/api/payments", {"amount": 100, "method": "PIX"})
    _schedule(client, clinic, utcnow().replace(microsecond=0).isoformat(), status="DONE")

    data = client.get("/api/dashboard").get_json()["data"]
    assert data["newPatients"]["current"] == 1
    assert data["newPatients"]["trend"] == "up"
    assert data["todayAppointments"] == {"total": 1, "completed": 1, "pending": 0}
    assert data["monthlyRevenue"]["current"] == 100.0
    assert data["openTreatmentPlans"] == {"count": 1, "totalAmount": 80.0}
    performance = data["monthlyPerformance"]
    assert len(performance) == 6
    assert performance[-1]["isCurrentMonth"] is True
    assert performance[-1]["revenue"] == 100.0
