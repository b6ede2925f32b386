from flask import Blueprint

from ..auth.models import UserRole
from ..auth.permissions import (
    Permission,
    current_clinic_id,
    current_user,
    has_permission,
    require_permission,
)
from ..errors import ForbiddenError
from ..utils_api import arg_choice, arg_int, ok, submitted, validate_json
from ..utils_db import get_or_404
from . import services
from .forms import TreatmentPlanForm, TreatmentPlanUpdateForm
from .models import TreatmentPlan, TreatmentPlanStatus

orcamentos_bp = Blueprint("orcamentos", __name__)

NOT_FOUND = "Orçamento não encontrado"


def _require_plan_editor(user, message: str) -> None:
    # Recepção monta orçamentos, mas não aprova
    if user.role != UserRole.RECEPTIONIST and not has_permission(
        user.role, Permission.TREATMENT_PLANS_MANAGE
    ):
        raise ForbiddenError(message)


@orcamentos_bp.route("", methods=["GET"])
@require_permission(Permission.TREATMENT_PLANS_VIEW)
def list_plans():
    plans = services.list_plans(
        current_clinic_id(),
        patient_id=arg_int("patientId"),
        dentist_id=arg_int("dentistId"),
        status=arg_choice("status", TreatmentPlanStatus.ALL),
    )
    return ok([p.to_dict() for p in plans])


@orcamentos_bp.route("", methods=["POST"])
@require_permission(Permission.TREATMENT_PLANS_VIEW)
def create_plan():
    user = current_user()
    _require_plan_editor(user, "Você não tem permissão para criar orçamentos")
    form = validate_json(TreatmentPlanForm)
    plan = services.create_plan(user.clinic_id, submitted(form))
    return ok(plan.to_dict(), 201)


@orcamentos_bp.route("/<int:plan_id>", methods=["GET"])
@require_permission(Permission.TREATMENT_PLANS_VIEW)
def get_plan(plan_id: int):
    plan = get_or_404(TreatmentPlan, plan_id, current_clinic_id(), NOT_FOUND)
    return ok(plan.to_dict())


@orcamentos_bp.route("/<int:plan_id>", methods=["PATCH", "PUT"])
@require_permission(Permission.TREATMENT_PLANS_VIEW)
def update_plan(plan_id: int):
    user = current_user()
    _require_plan_editor(user, "Você não tem permissão para editar orçamentos")
    plan = get_or_404(TreatmentPlan, plan_id, user.clinic_id, NOT_FOUND)
    form = validate_json(TreatmentPlanUpdateForm)
    services.update_plan(plan, user, submitted(form))
    return ok(plan.to_dict())


@orcamentos_bp.route("/<int:plan_id>", methods=["DELETE"])
@require_permission(Permission.TREATMENT_PLANS_MANAGE)
def delete_plan(plan_id: int):
    plan = get_or_404(TreatmentPlan, plan_id, current_clinic_id(), NOT_FOUND)
    services.delete_plan(plan)
    return ok({"id": plan_id})
