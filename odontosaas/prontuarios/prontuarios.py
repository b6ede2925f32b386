from flask import Blueprint

from ..auth.permissions import Permission, current_clinic_id, current_user, require_permission
from ..core.services import AuditAction, TargetType, create_audit_log
from ..utils_api import arg_int, ok, submitted, validate_json
from ..utils_db import get_or_404
from . import services
from .forms import RecordForm
from .models import Record

prontuarios_bp = Blueprint("prontuarios", __name__)

RECORDS_FORBIDDEN = "Você não tem permissão para acessar prontuários"


@prontuarios_bp.route("", methods=["GET"])
@require_permission(Permission.RECORDS_VIEW, message=RECORDS_FORBIDDEN)
def list_records():
    records = services.list_records(
        current_clinic_id(), patient_id=arg_int("patientId"), dentist_id=arg_int("dentistId")
    )
    return ok([r.to_dict() for r in records])


@prontuarios_bp.route("", methods=["POST"])
@require_permission(Permission.RECORDS_MANAGE, message=RECORDS_FORBIDDEN)
def create_record():
    user = current_user()
    form = validate_json(RecordForm)
    record = services.create_record(user.clinic_id, submitted(form))
    create_audit_log(
        clinic_id=user.clinic_id,
        user_id=user.id,
        action=AuditAction.CREATE_RECORD,
        target_id=record.id,
        target_type=TargetType.RECORD,
        metadata={"patientId": record.patient_id, "dentistId": record.dentist_id},
    )
    return ok(record.to_dict(), 201)


@prontuarios_bp.route("/<int:record_id>", methods=["GET"])
@require_permission(Permission.RECORDS_VIEW, message=RECORDS_FORBIDDEN)
def get_record(record_id: int):
    user = current_user()
    record = get_or_404(Record, record_id, user.clinic_id, "Prontuário não encontrado")
    create_audit_log(
        clinic_id=user.clinic_id,
        user_id=user.id,
        action=AuditAction.ACCESS_RECORD,
        target_id=record.id,
        target_type=TargetType.RECORD,
        metadata={
            "patientId": record.patient_id,
            "dentistId": record.dentist_id,
            "userRole": user.role,
        },
    )
    return ok(record.to_dict())
