from flask import Blueprint

from ..auth.permissions import Permission, current_clinic_id, require_permission
from ..utils_api import arg_choice, arg_datetime, arg_int, arg_limit, ok, submitted, validate_json
from ..utils_db import get_or_404
from . import services
from .forms import AppointmentForm, AppointmentUpdateForm
from .models import Appointment, AppointmentStatus

agenda_bp = Blueprint("agenda", __name__)

NOT_FOUND = "Agendamento não encontrado"


@agenda_bp.route("", methods=["GET"])
@require_permission(Permission.APPOINTMENTS_VIEW)
def list_appointments():
    appointments = services.list_appointments(
        current_clinic_id(),
        dentist_id=arg_int("dentistId"),
        patient_id=arg_int("patientId"),
        status=arg_choice("status", AppointmentStatus.ALL),
        day=arg_datetime("date"),
        date_from=arg_datetime("dateFrom"),
        date_to=arg_datetime("dateTo"),
    )
    return ok([a.to_dict() for a in appointments])


@agenda_bp.route("/upcoming", methods=["GET"])
@require_permission(Permission.APPOINTMENTS_VIEW)
def upcoming():
    return ok([a.to_dict() for a in services.upcoming_appointments(current_clinic_id(), arg_limit())])


@agenda_bp.route("", methods=["POST"])
@require_permission(Permission.APPOINTMENTS_MANAGE)
def create_appointment():
    form = validate_json(AppointmentForm)
    appt = services.create_appointment(current_clinic_id(), submitted(form))
    return ok(appt.to_dict(), 201)


@agenda_bp.route("/<int:appointment_id>", methods=["GET"])
@require_permission(Permission.APPOINTMENTS_VIEW)
def get_appointment(appointment_id: int):
    appt = get_or_404(Appointment, appointment_id, current_clinic_id(), NOT_FOUND)
    return ok(appt.to_dict())


@agenda_bp.route("/<int:appointment_id>", methods=["PATCH", "PUT"])
@require_permission(Permission.APPOINTMENTS_MANAGE)
def update_appointment(appointment_id: int):
    appt = get_or_404(Appointment, appointment_id, current_clinic_id(), NOT_FOUND)
    form = validate_json(AppointmentUpdateForm)
    services.update_appointment(appt, submitted(form))
    return ok(appt.to_dict())
