import pytest

from conftest import login, post_json
from odontosaas.auth.models import UserRole
from odontosaas.auth.permissions import Permission, get_role_permissions, has_permission


def test_owner_has_every_permission():
    assert get_role_permissions(UserRole.OWNER) == frozenset(Permission.ALL)


def test_admin_cannot_manage_clinic_or_billing():
    assert not has_permission(UserRole.ADMIN, Permission.CLINIC_MANAGE)
    assert not has_permission(UserRole.ADMIN, Permission.BILLING_MANAGE)
    assert has_permission(UserRole.ADMIN, Permission.USERS_MANAGE)


@pytest.mark.parametrize(
    "role,permission,expected",
    [
        (UserRole.DENTIST, Permission.RECORDS_MANAGE, True),
        (UserRole.DENTIST, Permission.FINANCE_VIEW, False),
        (UserRole.DENTIST, Permission.PATIENTS_MANAGE, False),
        (UserRole.RECEPTIONIST, Permission.APPOINTMENTS_MANAGE, True),
        (UserRole.RECEPTIONIST, Permission.RECORDS_VIEW, False),
        (UserRole.RECEPTIONIST, Permission.TREATMENT_PLANS_APPROVE, False),
        ("DESCONHECIDO", Permission.PATIENTS_VIEW, False),
    ],
)
def test_role_matrix(role, permission, expected):
    assert has_permission(role, permission) is expected


def test_receptionist_blocked_from_records(client, clinic):
    login(client, clinic["reception_email"])
    resp = client.get("/api/records")
    assert resp.status_code == 403
    assert resp.get_json()["code"] == "FORBIDDEN"


def test_dentist_blocked_from_finance_and_users(client, clinic):
    login(client, clinic["dentist_email"])
    assert client.get("/api/payments").status_code == 403
    assert client.get("/api/users").status_code == 403
    assert client.get("/api/reports/finance").status_code == 403


def test_receptionist_cannot_start_attendance(client, clinic):
    login(client, clinic["reception_email"])
    resp = post_json(client, "/api/attendances", {"patientId": clinic["patient_id"]})
    assert resp.status_code == 201
    attendance_id = resp.get_json()["data"]["id"]

    resp = post_json(client, f"/api/attendances/{attendance_id}/start")
    assert resp.status_code == 403
    assert resp.get_json()["error"] == "Apenas dentistas e proprietários podem iniciar atendimentos"


def test_admin_cannot_edit_clinic(client, clinic):
    login(client, clinic["admin_email"])
    resp = post_json(client, "/api/clinic", {"name": "Novo Nome"}, method="patch")
    assert resp.status_code == 403

    login(client, clinic["owner_email"])
    resp = post_json(client, "/api/clinic", {"name": "Novo Nome"}, method="patch")
    assert resp.status_code == 200
    assert resp.get_json()["data"]["name"] == "Novo Nome"
