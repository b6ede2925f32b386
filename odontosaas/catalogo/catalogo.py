from flask import Blueprint

from ..auth.permissions import Permission, current_clinic_id, require_permission, require_roles
from ..utils_api import arg_bool, arg_int, arg_str, ok, submitted, validate_json
from ..utils_db import get_or_404
from . import services
from .forms import ProcedureForm, ProcedureUpdateForm, SpecialtyForm
from .models import Procedure

catalogo_bp = Blueprint("catalogo", __name__)


# ===== Especialidades =====
@catalogo_bp.route("/specialties", methods=["GET"])
@require_roles()
def list_specialties():
    return ok([s.to_dict() for s in services.list_specialties()])


@catalogo_bp.route("/specialties", methods=["POST"])
@require_permission(Permission.CLINIC_MANAGE)
def create_specialty():
    form = validate_json(SpecialtyForm)
    spec = services.create_specialty(name=form.name.data, description=form.description.data)
    return ok(spec.to_dict(), 201)


# ===== Procedimentos =====
@catalogo_bp.route("/procedures", methods=["GET"])
@require_roles()
def list_procedures():
    procs = services.list_procedures(
        current_clinic_id(),
        search=arg_str("search"),
        specialty_id=arg_int("specialtyId"),
        is_active=arg_bool("isActive"),
    )
    return ok([p.to_dict() for p in procs])


@catalogo_bp.route("/procedures", methods=["POST"])
@require_permission(Permission.DENTISTS_MANAGE)
def create_procedure():
    form = validate_json(ProcedureForm)
    proc = services.create_procedure(current_clinic_id(), submitted(form))
    return ok(proc.to_dict(), 201)


@catalogo_bp.route("/procedures/<int:procedure_id>", methods=["GET"])
@require_roles()
def get_procedure(procedure_id: int):
    proc = get_or_404(Procedure, procedure_id, current_clinic_id(), "Procedimento não encontrado")
    return ok(proc.to_dict())


@catalogo_bp.route("/procedures/<int:procedure_id>", methods=["PATCH"])
@require_permission(Permission.DENTISTS_MANAGE)
def update_procedure(procedure_id: int):
    proc = get_or_404(Procedure, procedure_id, current_clinic_id(), "Procedimento não encontrado")
    form = validate_json(ProcedureUpdateForm)
    services.update_procedure(proc, submitted(form))
    return ok(proc.to_dict())


@catalogo_bp.route("/procedures/<int:procedure_id>", methods=["DELETE"])
@require_permission(Permission.DENTISTS_MANAGE)
def deactivate_procedure(procedure_id: int):
    proc = get_or_404(Procedure, procedure_id, current_clinic_id(), "Procedimento não encontrado")
    services.deactivate_procedure(proc)
    return ok(proc.to_dict())


# ===== CIDs =====
@catalogo_bp.route("/cids", methods=["GET"])
@require_roles()
def search_cids():
    query = arg_str("q", max_length=100)
    return ok([c.to_dict() for c in services.search_cids(query)])
