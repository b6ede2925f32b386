from flask import Blueprint

from ..auth.permissions import (
    Permission,
    current_clinic_id,
    current_user,
    require_permission,
    require_roles,
)
from ..utils_api import arg_choice, arg_datetime, arg_int, arg_str, ok, submitted, validate_json
from ..utils_db import get_or_404
from . import services
from .forms import DentistForm, DentistProceduresForm, DentistSpecialtiesForm, DentistUpdateForm
from .models import Dentist

dentistas_bp = Blueprint("dentistas", __name__)

NOT_FOUND = "Dentista não encontrado"


def _get_dentist(dentist_id: int) -> Dentist:
    return get_or_404(Dentist, dentist_id, current_clinic_id(), NOT_FOUND)


@dentistas_bp.route("", methods=["GET"])
@require_roles()
def list_dentists():
    dentists = services.list_dentists(
        current_clinic_id(), search=arg_str("search"), specialty=arg_str("specialty")
    )
    return ok([d.to_dict() for d in dentists])


@dentistas_bp.route("", methods=["POST"])
@require_permission(Permission.DENTISTS_MANAGE)
def create_dentist():
    form = validate_json(DentistForm)
    dentist = services.create_dentist(current_clinic_id(), submitted(form))
    return ok(dentist.to_dict(), 201)


@dentistas_bp.route("/<int:dentist_id>", methods=["GET"])
@require_roles()
def get_dentist(dentist_id: int):
    return ok(_get_dentist(dentist_id).to_dict(include_links=True))


@dentistas_bp.route("/<int:dentist_id>", methods=["PATCH", "PUT"])
@require_permission(Permission.DENTISTS_MANAGE)
def update_dentist(dentist_id: int):
    dentist = _get_dentist(dentist_id)
    form = validate_json(DentistUpdateForm)
    data = submitted(form)
    data.pop("user_id", None)  # vínculo com usuário não muda
    services.update_dentist(dentist, data)
    return ok(dentist.to_dict())


@dentistas_bp.route("/<int:dentist_id>", methods=["DELETE"])
@require_permission(Permission.DENTISTS_MANAGE)
def delete_dentist(dentist_id: int):
    dentist = _get_dentist(dentist_id)
    services.delete_dentist(dentist)
    return ok({"id": dentist_id})


@dentistas_bp.route("/<int:dentist_id>/procedures", methods=["GET"])
@require_roles()
def list_dentist_procedures(dentist_id: int):
    dentist = _get_dentist(dentist_id)
    return ok([link.procedure.to_dict() for link in dentist.procedure_links])


@dentistas_bp.route("/<int:dentist_id>/procedures", methods=["PUT"])
@require_permission(Permission.DENTISTS_MANAGE)
def replace_dentist_procedures(dentist_id: int):
    dentist = _get_dentist(dentist_id)
    form = validate_json(DentistProceduresForm)
    services.replace_procedures(dentist, form.procedure_ids.data)
    return ok([link.procedure.to_dict() for link in dentist.procedure_links])


@dentistas_bp.route("/<int:dentist_id>/specialties", methods=["GET"])
@require_roles()
def list_dentist_specialties(dentist_id: int):
    dentist = _get_dentist(dentist_id)
    return ok([link.specialty.to_dict() for link in dentist.specialty_links])


@dentistas_bp.route("/<int:dentist_id>/specialties", methods=["PUT"])
@require_permission(Permission.DENTISTS_MANAGE)
def replace_dentist_specialties(dentist_id: int):
    dentist = _get_dentist(dentist_id)
    form = validate_json(DentistSpecialtiesForm)
    services.replace_specialties(dentist, form.specialty_ids.data)
    return ok([link.specialty.to_dict() for link in dentist.specialty_links])


@dentistas_bp.route("/<int:dentist_id>/financial", methods=["GET"])
@require_roles()
def dentist_financial(dentist_id: int):
    dentist = _get_dentist(dentist_id)
    services.check_financial_access(current_user(), dentist)
    data = services.dentist_financial(
        dentist,
        date_from=arg_datetime("dateFrom"),
        date_to=arg_datetime("dateTo"),
        patient_id=arg_int("patientId"),
        procedure_id=arg_int("procedureId"),
        commission_type=arg_choice(
            "commissionType", (services.COMMISSION_GENERAL, services.COMMISSION_PROCEDURE)
        ),
    )
    return ok(data)
