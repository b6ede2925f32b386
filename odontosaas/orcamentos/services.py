"""Orçamentos (planos de tratamento) e suas regras de status."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from .. import db
from ..auth.models import UserRole
from ..catalogo.models import Procedure
from ..dentistas.services import require_active_dentist
from ..errors import BusinessRuleError, ForbiddenError
from ..pacientes.services import require_active_patient
from ..utils_api import to_money
from ..utils_db import get_or_404, transactional
from .models import TreatmentPlan, TreatmentPlanItem, TreatmentPlanStatus

# Papéis que podem aprovar/rejeitar
APPROVER_ROLES = (UserRole.OWNER, UserRole.ADMIN, UserRole.DENTIST)


def list_plans(
    clinic_id: int,
    *,
    patient_id: int | None = None,
    dentist_id: int | None = None,
    status: str | None = None,
) -> list[TreatmentPlan]:
    q = TreatmentPlan.query.filter(TreatmentPlan.clinic_id == clinic_id)
    if patient_id is not None:
        q = q.filter(TreatmentPlan.patient_id == patient_id)
    if dentist_id is not None:
        q = q.filter(TreatmentPlan.dentist_id == dentist_id)
    if status:
        q = q.filter(TreatmentPlan.status == status)
    return q.order_by(TreatmentPlan.created_at.desc(), TreatmentPlan.id.desc()).all()


def calculate_total(items: list[dict[str, Any]]) -> Decimal:
    total = Decimal("0")
    for item in items:
        total += to_money(item["value"]) * (item.get("quantity") or 1)
    return to_money(total)


def _build_items(plan: TreatmentPlan, items: list[dict[str, Any]]) -> None:
    for data in items:
        item = TreatmentPlanItem()
        if data.get("procedure_id"):
            item.procedure_id = get_or_404(
                Procedure, data["procedure_id"], plan.clinic_id, "Procedimento não encontrado"
            ).id
        item.description = data["description"].strip()
        item.tooth = (data.get("tooth") or "").strip() or None
        item.value = to_money(data["value"])
        item.quantity = data.get("quantity") or 1
        plan.items.append(item)
    plan.total_amount = calculate_total(items)


def create_plan(clinic_id: int, data: dict[str, Any]) -> TreatmentPlan:
    patient = require_active_patient(clinic_id, data["patient_id"])
    dentist = require_active_dentist(clinic_id, data["dentist_id"])
    with transactional():
        plan = TreatmentPlan()
        plan.clinic_id = clinic_id
        plan.patient_id = patient.id
        plan.dentist_id = dentist.id
        plan.status = TreatmentPlanStatus.OPEN
        plan.notes = (data.get("notes") or "").strip() or None
        db.session.add(plan)
        _build_items(plan, data["items"])
    return plan


def update_plan(plan: TreatmentPlan, user, data: dict[str, Any]) -> TreatmentPlan:
    status = data.get("status")
    if status and status != TreatmentPlanStatus.OPEN and user.role not in APPROVER_ROLES:
        raise ForbiddenError("Você não tem permissão para aprovar ou rejeitar orçamentos")
    label = TreatmentPlanStatus.LABELS.get(plan.status, plan.status)
    if status and plan.status != TreatmentPlanStatus.OPEN:
        raise BusinessRuleError(f"Não é possível alterar o status de um orçamento {label}")
    if "items" in data and plan.status != TreatmentPlanStatus.OPEN:
        raise BusinessRuleError(
            f"Não é possível editar os itens de um orçamento {label}. "
            "Apenas orçamentos em aberto podem ser editados."
        )

    with transactional():
        if status:
            plan.status = status
        if "notes" in data:
            plan.notes = (data["notes"] or "").strip() or None
        if "items" in data:
            plan.items.clear()
            db.session.flush()
            _build_items(plan, data["items"])
    return plan


def delete_plan(plan: TreatmentPlan) -> None:
    if plan.status != TreatmentPlanStatus.OPEN:
        raise BusinessRuleError("Apenas orçamentos em aberto podem ser excluídos")
    with transactional():
        db.session.delete(plan)
