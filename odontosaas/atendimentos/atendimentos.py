from flask import Blueprint

from ..auth.models import UserRole
from ..auth.permissions import current_clinic_id, current_user, require_roles
from ..utils_api import arg_choice, arg_datetime, arg_int, get_json_body, ok, submitted, validate_json
from . import services
from .forms import (
    AttendanceProcedureForm,
    CancelForm,
    CheckInForm,
    CidForm,
    DocumentForm,
    OdontogramForm,
    StartForm,
)
from .models import AttendanceStatus

atendimentos_bp = Blueprint("atendimentos", __name__)

CID_ROLES = (UserRole.DENTIST, UserRole.OWNER)
PROCEDURE_ROLES = (UserRole.DENTIST, UserRole.ADMIN, UserRole.OWNER)


@atendimentos_bp.route("", methods=["GET"])
@require_roles()
def list_attendances():
    attendances = services.list_attendances(
        current_clinic_id(),
        status=arg_choice("status", AttendanceStatus.ALL),
        patient_id=arg_int("patientId"),
        dentist_id=arg_int("dentistId"),
        day=arg_datetime("date"),
        date_from=arg_datetime("dateFrom"),
        date_to=arg_datetime("dateTo"),
    )
    return ok([a.summary() for a in attendances])


@atendimentos_bp.route("/waiting-room", methods=["GET"])
@require_roles()
def waiting_room():
    attendances = services.waiting_room(current_clinic_id(), dentist_id=arg_int("dentistId"))
    return ok([a.summary() for a in attendances])


@atendimentos_bp.route("", methods=["POST"])
@require_roles()
def check_in():
    user = current_user()
    form = validate_json(CheckInForm)
    attendance = services.check_in(user.clinic_id, user, submitted(form))
    return ok(attendance.to_dict(), 201)


@atendimentos_bp.route("/<int:attendance_id>", methods=["GET"])
@require_roles()
def get_attendance(attendance_id: int):
    return ok(services.get_attendance(current_clinic_id(), attendance_id).to_dict())


@atendimentos_bp.route("/<int:attendance_id>/start", methods=["POST"])
@require_roles(*CID_ROLES, message="Apenas dentistas e proprietários podem iniciar atendimentos")
def start_attendance(attendance_id: int):
    user = current_user()
    attendance = services.get_attendance(user.clinic_id, attendance_id)
    form = validate_json(StartForm)
    dentist_id = services.resolve_start_dentist(attendance, user, submitted(form).get("dentist_id"))
    services.start(attendance, dentist_id)
    return ok(attendance.to_dict())


@atendimentos_bp.route("/<int:attendance_id>/finish", methods=["POST"])
@require_roles(*CID_ROLES, message="Apenas dentistas e proprietários podem finalizar atendimentos")
def finish_attendance(attendance_id: int):
    user = current_user()
    attendance = services.get_attendance(user.clinic_id, attendance_id)
    services.finish(attendance, user)
    return ok(attendance.to_dict())


@atendimentos_bp.route("/<int:attendance_id>/cancel", methods=["POST"])
@require_roles()
def cancel_attendance(attendance_id: int):
    attendance = services.get_attendance(current_clinic_id(), attendance_id)
    form = validate_json(CancelForm)
    services.cancel(attendance, submitted(form).get("reason"))
    return ok(attendance.to_dict())


# --- CIDs -------------------------------------------------------------------


@atendimentos_bp.route("/<int:attendance_id>/cids", methods=["GET"])
@require_roles()
def list_cids(attendance_id: int):
    attendance = services.get_attendance(current_clinic_id(), attendance_id)
    return ok([c.to_dict() for c in attendance.cids])


@atendimentos_bp.route("/<int:attendance_id>/cids", methods=["POST"])
@require_roles(*CID_ROLES, message="Apenas dentistas e proprietários podem adicionar CIDs")
def add_cid(attendance_id: int):
    user = current_user()
    attendance = services.get_attendance(user.clinic_id, attendance_id)
    form = validate_json(CidForm)
    dentist_id = services.resolve_cid_dentist(attendance, user)
    cid = services.add_cid(attendance, dentist_id, submitted(form))
    return ok(cid.to_dict(), 201)


@atendimentos_bp.route("/<int:attendance_id>/cids/<int:cid_id>", methods=["DELETE"])
@require_roles(*CID_ROLES, message="Apenas dentistas e proprietários podem remover CIDs")
def remove_cid(attendance_id: int, cid_id: int):
    user = current_user()
    attendance = services.get_attendance(user.clinic_id, attendance_id)
    services.resolve_cid_dentist(attendance, user)
    services.remove_cid(attendance, cid_id)
    return ok({"id": cid_id})


# --- Procedimentos ------------------------------------------------------------


@atendimentos_bp.route("/<int:attendance_id>/procedures", methods=["GET"])
@require_roles()
def list_procedures(attendance_id: int):
    attendance = services.get_attendance(current_clinic_id(), attendance_id)
    return ok([p.to_dict() for p in attendance.procedures])


@atendimentos_bp.route("/<int:attendance_id>/procedures", methods=["POST"])
@require_roles(
    *PROCEDURE_ROLES,
    message="Apenas dentistas, administradores ou proprietários podem adicionar tratamentos",
)
def add_procedure(attendance_id: int):
    user = current_user()
    attendance = services.get_attendance(user.clinic_id, attendance_id)
    form = validate_json(AttendanceProcedureForm)
    data = submitted(form)
    dentist_id = services.resolve_procedure_dentist(attendance, user, data.get("dentist_id"))
    item = services.add_procedure(attendance, dentist_id, data)
    return ok(item.to_dict(), 201)


@atendimentos_bp.route("/<int:attendance_id>/procedures/<int:item_id>", methods=["DELETE"])
@require_roles(
    *PROCEDURE_ROLES,
    message="Apenas dentistas, administradores ou proprietários podem remover tratamentos",
)
def remove_procedure(attendance_id: int, item_id: int):
    attendance = services.get_attendance(current_clinic_id(), attendance_id)
    services.remove_procedure(attendance, item_id)
    return ok({"id": item_id})


# --- Odontograma e documentos -------------------------------------------------


@atendimentos_bp.route("/<int:attendance_id>/odontogram", methods=["GET"])
@require_roles()
def get_odontogram(attendance_id: int):
    attendance = services.get_attendance(current_clinic_id(), attendance_id)
    return ok({"data": attendance.odontogram.data if attendance.odontogram else {}})


@atendimentos_bp.route("/<int:attendance_id>/odontogram", methods=["PUT"])
@require_roles(UserRole.DENTIST, message="Apenas dentistas podem atualizar odontograma")
def update_odontogram(attendance_id: int):
    attendance = services.get_attendance(current_clinic_id(), attendance_id)
    body = get_json_body()
    form = validate_json(OdontogramForm, {"teeth": body.get("data")})
    odontogram = services.update_odontogram(attendance, form.teeth.data)
    return ok({"data": odontogram.data})


@atendimentos_bp.route("/<int:attendance_id>/documents", methods=["GET"])
@require_roles()
def list_documents(attendance_id: int):
    attendance = services.get_attendance(current_clinic_id(), attendance_id)
    return ok([d.to_dict() for d in attendance.documents])


@atendimentos_bp.route("/<int:attendance_id>/documents", methods=["POST"])
@require_roles(UserRole.DENTIST, message="Apenas dentistas podem criar documentos clínicos")
def create_document(attendance_id: int):
    user = current_user()
    attendance = services.get_attendance(user.clinic_id, attendance_id)
    form = validate_json(DocumentForm)
    document = services.create_document(attendance, user, submitted(form))
    return ok({"document": document.to_dict(), "attendance": attendance.to_dict()}, 201)
