from flask import Blueprint

from ..auth.permissions import Permission, current_clinic_id, current_user, require_permission
from ..core.services import AuditAction, TargetType, create_audit_log
from ..prontuarios import services as record_services
from ..prontuarios.forms import RecordForm
from ..prontuarios.prontuarios import RECORDS_FORBIDDEN
from ..utils_api import arg_bool, arg_str, get_json_body, ok, submitted, validate_json
from ..utils_db import get_or_404
from . import services
from .forms import PatientForm, PatientUpdateForm
from .models import Patient

pacientes_bp = Blueprint("pacientes", __name__)

NOT_FOUND = "Paciente não encontrado"


@pacientes_bp.route("", methods=["GET"])
@require_permission(Permission.PATIENTS_VIEW)
def list_patients():
    patients = services.list_patients(
        current_clinic_id(), search=arg_str("search"), is_active=arg_bool("isActive")
    )
    return ok([p.to_dict() for p in patients])


@pacientes_bp.route("", methods=["POST"])
@require_permission(Permission.PATIENTS_MANAGE)
def create_patient():
    form = validate_json(PatientForm)
    patient = services.create_patient(current_clinic_id(), submitted(form))
    return ok(patient.to_dict(), 201)


@pacientes_bp.route("/<int:patient_id>", methods=["GET"])
@require_permission(Permission.PATIENTS_VIEW)
def get_patient(patient_id: int):
    patient = get_or_404(Patient, patient_id, current_clinic_id(), NOT_FOUND)
    return ok(patient.to_dict())


@pacientes_bp.route("/<int:patient_id>", methods=["PATCH", "PUT"])
@require_permission(Permission.PATIENTS_MANAGE)
def update_patient(patient_id: int):
    patient = get_or_404(Patient, patient_id, current_clinic_id(), NOT_FOUND)
    form = validate_json(PatientUpdateForm)
    services.update_patient(patient, submitted(form))
    return ok(patient.to_dict())


@pacientes_bp.route("/<int:patient_id>", methods=["DELETE"])
@require_permission(Permission.PATIENTS_MANAGE)
def deactivate_patient(patient_id: int):
    # Exclusão lógica: histórico clínico e financeiro permanece
    patient = get_or_404(Patient, patient_id, current_clinic_id(), NOT_FOUND)
    services.deactivate_patient(patient)
    return ok(patient.to_dict())


@pacientes_bp.route("/<int:patient_id>/records", methods=["GET"])
@require_permission(Permission.RECORDS_VIEW, message=RECORDS_FORBIDDEN)
def list_patient_records(patient_id: int):
    clinic_id = current_clinic_id()
    get_or_404(Patient, patient_id, clinic_id, NOT_FOUND)
    records = record_services.list_records(clinic_id, patient_id=patient_id)
    return ok([r.to_dict() for r in records])


@pacientes_bp.route("/<int:patient_id>/records", methods=["POST"])
@require_permission(Permission.RECORDS_MANAGE, message=RECORDS_FORBIDDEN)
def create_patient_record(patient_id: int):
    user = current_user()
    payload = get_json_body()
    payload["patientId"] = patient_id
    form = validate_json(RecordForm, payload)
    record = record_services.create_record(user.clinic_id, submitted(form))
    create_audit_log(
        clinic_id=user.clinic_id,
        user_id=user.id,
        action=AuditAction.CREATE_RECORD,
        target_id=record.id,
        target_type=TargetType.RECORD,
        metadata={
            "patientId": patient_id,
            "dentistId": record.dentist_id,
            "hasOdontogram": bool(record.odontogram),
            "proceduresCount": len(record.procedures or []),
        },
    )
    return ok(record.to_dict(), 201)
